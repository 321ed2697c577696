"""Streaming protocol: message dispatch, tools and the HTTP client."""

from memory_bank_server.protocol.client import MemoryBankClient, MemoryBankClientError
from memory_bank_server.protocol.server import ProtocolServer
from memory_bank_server.protocol.tools import TOOL_DEFINITIONS, MemoryBankTools

__all__ = [
    "MemoryBankClient",
    "MemoryBankClientError",
    "ProtocolServer",
    "TOOL_DEFINITIONS",
    "MemoryBankTools",
]
