"""Configuration models for the memory bank server."""

from memory_bank_server.models.config.server import *

__all__ = ["DEFAULT_CONFIG_PATH", "PolicyConfig", "ServerSettings"]
