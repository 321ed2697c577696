"""Memory bank core.

- store.py: versioned document store (TOP LEVEL)
- security/: validation, authorization gate and audit log
- sessions.py: streaming connection registry
- host.py: host capability interface and the local filesystem adapter
- metrics.py: request outcome and file I/O timing counters
- context.py: explicit server context wiring the above together
"""

from memory_bank_server.core.errors import *
from memory_bank_server.core.host import HostCapabilities, LocalFileHost
from memory_bank_server.core.metrics import PerformanceMetrics, RequestOutcome
from memory_bank_server.core.security import AuditLog, SecurityGate
from memory_bank_server.core.store import DocumentStore
from memory_bank_server.core.sessions import Connection, ConnectionManager
from memory_bank_server.core.context import ServerContext

__all__ = [
    # Store
    "DocumentStore",
    # Security
    "AuditLog",
    "SecurityGate",
    # Sessions
    "Connection",
    "ConnectionManager",
    # Host
    "HostCapabilities",
    "LocalFileHost",
    # Metrics
    "PerformanceMetrics",
    "RequestOutcome",
    # Wiring
    "ServerContext",
    # Errors
    "MemoryBankError",
    "ValidationError",
    "SecurityError",
    "NotFoundError",
    "StorageError",
    "ProtocolError",
    "MethodNotFoundError",
    "CapacityError",
    "ToolTimeoutError",
]
