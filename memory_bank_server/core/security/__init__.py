"""Security gate: validation, authorization and auditing."""

from memory_bank_server.core.security.audit import (
    AuditEntry,
    AuditLog,
    AuditOutcome,
)
from memory_bank_server.core.security.gate import (
    Authorization,
    AuthorizationStage,
    SecurityGate,
)
from memory_bank_server.core.security.self_audit import (
    SecurityAuditResult,
    run_self_audit,
)
from memory_bank_server.core.security.validator import (
    InputValidator,
    ValidationResult,
)

__all__ = [
    "AuditEntry",
    "AuditLog",
    "AuditOutcome",
    "Authorization",
    "AuthorizationStage",
    "SecurityGate",
    "SecurityAuditResult",
    "run_self_audit",
    "InputValidator",
    "ValidationResult",
]
