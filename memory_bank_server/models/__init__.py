"""Centralized model definitions for the memory bank server.

This package contains all Pydantic models organized by domain:
- api/: protocol and HTTP request/response models
- domain/: core document models
- config/: configuration models
"""

from memory_bank_server.models.api import *
from memory_bank_server.models.config import *
from memory_bank_server.models.domain import *

__all__ = [
    # API models
    "MethodName",
    "EventType",
    "Message",
    "ErrorPayload",
    "Event",
    "MessageAck",
    "HealthResponse",
    "DocumentStatus",
    "RequestStatistics",
    "FileOperationStatistics",
    "PerformanceReport",
    "StatusResponse",
    "ToolCallParams",
    "ReadResourceParams",
    "UpdateDocumentArgs",
    "ExportSnapshotArgs",
    "NoArgs",
    # Domain models
    "RESOURCE_SCHEME",
    "DocumentKey",
    "compute_checksum",
    "Document",
    "DocumentChange",
    "IntegrityReport",
    "SkippedEntry",
    "ImportReport",
    "StoreStatistics",
    # Config models
    "DEFAULT_CONFIG_PATH",
    "PolicyConfig",
    "ServerSettings",
]
