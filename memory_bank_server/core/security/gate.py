"""Authorization gate consulted before every mutating operation."""

from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from memory_bank_server.core.errors import SecurityError, ValidationError
from memory_bank_server.core.security.audit import AuditLog, AuditOutcome
from memory_bank_server.core.security.validator import InputValidator, ValidationResult
from memory_bank_server.models.config import PolicyConfig


class AuthorizationStage(str, Enum):
    """Stages an operation passes through.

    ``RECEIVED → PATH_VALIDATED → CONTENT_VALIDATED → AUTHORIZED`` happen in
    the gate; ``EXECUTED`` belongs to the caller. A failed check moves straight
    to ``REJECTED``.
    """

    RECEIVED = "received"
    PATH_VALIDATED = "path_validated"
    CONTENT_VALIDATED = "content_validated"
    AUTHORIZED = "authorized"
    EXECUTED = "executed"
    REJECTED = "rejected"


@dataclass(frozen=True)
class Authorization:
    """Proof that an operation passed the gate."""

    operation: str
    target: str | None
    stage: AuthorizationStage
    sanitized_content: str | None = None


class SecurityGate:
    """Composes path, content and command checks and audits every decision.

    The gate holds no state apart from the append-only audit log, so one
    instance is shared by the store and the protocol server.
    """

    def __init__(
        self,
        policy: PolicyConfig,
        base_path: str | Path,
        audit_log: AuditLog | None = None,
    ):
        self.policy = policy
        self.base_path = str(base_path)
        self.audit_log = audit_log or AuditLog()
        self.validator = InputValidator(policy)
        self._allowed_bases = {self.base_path, *policy.allowed_base_paths}

    def validate_content(self, content: str) -> ValidationResult:
        return self.validator.validate_content(content)

    def validate_path(self, path: str, base_path: str | None = None) -> ValidationResult:
        return self.validator.validate_path(path, base_path or self.base_path)

    def authorize_operation(
        self,
        operation: str,
        target: str | None = None,
        content: str | None = None,
        args=(),
        base_path: str | None = None,
    ) -> Authorization:
        """Authorize ``operation`` on ``target``, auditing the decision.

        Args:
            operation: Whitelisted operation name (``write``, ``read``, ...)
            target: Path of the document, relative to ``base_path``
            content: Payload to be written, if any
            args: Extra string arguments checked for shell metacharacters
            base_path: Directory ``target`` must live in; defaults to the
                store directory and must be one of the allowed base paths

        Returns:
            Authorization carrying the sanitized content to persist

        Raises:
            SecurityError: Command, argument or path rejected
            ValidationError: Content rejected
        """
        stage = AuthorizationStage.RECEIVED
        try:
            command_args = [target, *args] if target is not None else list(args)
            command_check = self.validator.validate_command(operation, command_args)
            if not command_check.is_valid:
                raise SecurityError(
                    f"Command validation failed: {', '.join(command_check.errors)}"
                )

            if target is not None:
                base = base_path or self.base_path
                if base not in self._allowed_bases:
                    raise SecurityError("Base path is not allowed by policy")
                path_check = self.validator.validate_path(target, base)
                if not path_check.is_valid:
                    raise SecurityError(
                        f"Invalid file path: {', '.join(path_check.errors)}"
                    )
            stage = AuthorizationStage.PATH_VALIDATED

            sanitized = None
            if content is not None:
                content_check = self.validator.validate_content(content)
                if not content_check.is_valid:
                    raise ValidationError(
                        f"Content validation failed: {', '.join(content_check.errors)}"
                    )
                sanitized = content_check.sanitized_content
            stage = AuthorizationStage.CONTENT_VALIDATED

        except (SecurityError, ValidationError) as e:
            self.audit_log.record(
                operation,
                target,
                AuditOutcome.DENIED,
                e.message,
                stage=f"{AuthorizationStage.REJECTED.value}@{stage.value}",
            )
            raise

        self.audit_log.record(
            operation,
            target,
            AuditOutcome.ALLOWED,
            "authorized",
            stage=AuthorizationStage.AUTHORIZED.value,
        )
        return Authorization(
            operation=operation,
            target=target,
            stage=AuthorizationStage.AUTHORIZED,
            sanitized_content=sanitized,
        )

    def is_allowed(self, operation: str, target: str | None = None, args=()) -> bool:
        """Side-effect free variant of the command and path checks. Not audited."""
        command_args = [target, *args] if target is not None else list(args)
        if not self.validator.validate_command(operation, command_args).is_valid:
            return False
        if target is not None:
            return self.validator.validate_path(target, self.base_path).is_valid
        return True


__all__ = ["AuthorizationStage", "Authorization", "SecurityGate"]
