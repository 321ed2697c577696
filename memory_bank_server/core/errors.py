"""Error taxonomy shared by the store, the gate and the protocol server."""


class MemoryBankError(Exception):
    """Base class for every error the core reports to clients.

    ``message`` is client-facing and must not carry absolute filesystem paths
    or tracebacks. Anything sensitive goes into server-side logs instead.
    """

    code = "MEMORY_BANK_ERROR"
    status_code = 500

    def __init__(self, message: str, details: dict | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    @property
    def kind(self) -> str:
        return type(self).__name__


class ValidationError(MemoryBankError):
    """Bad content, path or arguments. Always recoverable."""

    code = "VALIDATION_ERROR"
    status_code = 400


class SecurityError(MemoryBankError):
    """Policy violation. Audited and never retried."""

    code = "SECURITY_ERROR"
    status_code = 403


class NotFoundError(MemoryBankError):
    """Unknown document key, resource URI or tool."""

    code = "NOT_FOUND"
    status_code = 404


class StorageError(MemoryBankError):
    """Persistence failed after the bounded recovery attempts."""

    code = "IO_ERROR"
    status_code = 500


class ProtocolError(MemoryBankError):
    """Malformed message."""

    code = "PROTOCOL_ERROR"
    status_code = 400


class MethodNotFoundError(ProtocolError):
    """Method outside the fixed method table."""

    code = "METHOD_NOT_FOUND"
    status_code = 404


class CapacityError(MemoryBankError):
    """Connection cap reached. Callers are expected to retry later."""

    code = "CAPACITY_EXCEEDED"
    status_code = 503


class ToolTimeoutError(MemoryBankError):
    """A call produced no result within the configured timeout."""

    code = "TIMEOUT"
    status_code = 504


__all__ = [
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
