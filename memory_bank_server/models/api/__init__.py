"""API request/response models."""

from memory_bank_server.models.api.protocol import *
from memory_bank_server.models.api.system import *
from memory_bank_server.models.api.tools import *

__all__ = [
    # Protocol
    "MethodName",
    "EventType",
    "Message",
    "ErrorPayload",
    "Event",
    "MessageAck",
    # System
    "HealthResponse",
    "DocumentStatus",
    "RequestStatistics",
    "FileOperationStatistics",
    "PerformanceReport",
    "StatusResponse",
    # Tools
    "ToolCallParams",
    "ReadResourceParams",
    "UpdateDocumentArgs",
    "ExportSnapshotArgs",
    "NoArgs",
]
