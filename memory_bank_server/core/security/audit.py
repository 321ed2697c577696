"""Append-only audit log of authorization decisions."""

import threading
from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from memory_bank_server.core.logging import get_logger

AUDIT_LOGGER_NAME = "memory_bank_server.audit"


class AuditOutcome(str, Enum):
    ALLOWED = "allowed"
    DENIED = "denied"


class AuditEntry(BaseModel):
    """One authorization decision. Never mutated once recorded."""

    model_config = ConfigDict(frozen=True)

    timestamp: datetime = Field(default_factory=datetime.now)
    operation: str
    target: str | None = None
    outcome: AuditOutcome
    reason: str
    stage: str


class AuditLog:
    """In-memory audit trail with a server-side log mirror.

    Entries are only ever appended. Details that must not reach clients, such
    as absolute paths and tracebacks, are written to the
    ``memory_bank_server.audit`` logger by :meth:`record_failure`.
    """

    def __init__(self):
        self._entries: list[AuditEntry] = []
        self._lock = threading.Lock()
        self._logger = get_logger(AUDIT_LOGGER_NAME)

    def record(
        self,
        operation: str,
        target: str | None,
        outcome: AuditOutcome,
        reason: str,
        stage: str,
    ) -> AuditEntry:
        entry = AuditEntry(
            operation=operation,
            target=target,
            outcome=outcome,
            reason=reason,
            stage=stage,
        )
        with self._lock:
            self._entries.append(entry)

        if outcome is AuditOutcome.DENIED:
            self._logger.warning(
                f"Denied {operation}", target=target, reason=reason, stage=stage
            )
        else:
            self._logger.debug(f"Allowed {operation}", target=target, stage=stage)
        return entry

    def record_failure(self, operation: str, exc: BaseException, **context) -> None:
        """Log an internal failure with full detail, server-side only."""
        self._logger.error(
            f"Operation {operation} failed: {exc!r}",
            exc_info=(type(exc), exc, exc.__traceback__),
            **context,
        )

    def entries(self) -> tuple[AuditEntry, ...]:
        with self._lock:
            return tuple(self._entries)

    def denied(self) -> list[AuditEntry]:
        return [e for e in self.entries() if e.outcome is AuditOutcome.DENIED]

    def for_target(self, target: str) -> list[AuditEntry]:
        return [e for e in self.entries() if e.target == target]

    def export(self) -> list[dict]:
        return [entry.model_dump(mode="json") for entry in self.entries()]

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


__all__ = ["AUDIT_LOGGER_NAME", "AuditOutcome", "AuditEntry", "AuditLog"]
