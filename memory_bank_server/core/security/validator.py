"""Input validation and sanitization for memory bank content, paths and commands.

The content checks are a deny-list of known script-injection constructs. They
are defence in depth only: anything that renders document content as HTML
remains responsible for its own escaping.
"""

import os
import re
from dataclasses import dataclass, field

from memory_bank_server.models.config import PolicyConfig

MAX_FILENAME_LENGTH = 255
MAX_ARGUMENT_LENGTH = 1000

ALLOWED_COMMANDS = frozenset(
    {"read", "write", "list", "export", "import", "validate", "status"}
)
SHELL_METACHARACTERS = (";", "|", "&", "`")

# Detection patterns, keyed by a client-safe description
DANGEROUS_PATTERNS: dict[str, re.Pattern] = {
    "script block": re.compile(r"<\s*script\b", re.IGNORECASE),
    "script URI": re.compile(
        r"\b(?:javascript|vbscript)\s*:|\bdata\s*:\s*text/html", re.IGNORECASE
    ),
    "inline event handler": re.compile(
        r"<[^<>]*?\bon[a-z]+\s*=", re.IGNORECASE
    ),
    "style expression": re.compile(
        r"\bstyle\s*=\s*[\"'][^\"']*expression\s*\(", re.IGNORECASE
    ),
}

# Stripping patterns, applied in order. Each one only removes text that a
# detection pattern above also matches.
_SCRIPT_BLOCK = re.compile(
    r"<\s*script\b[^>]*>.*?<\s*/\s*script\s*>", re.IGNORECASE | re.DOTALL
)
_SCRIPT_TAG = re.compile(r"<\s*script\b[^>]*>", re.IGNORECASE)
_EVENT_HANDLER = re.compile(
    r"\s+on[a-z]+\s*=\s*(?:\"[^\"]*\"|'[^']*'|[^\s>]+)", re.IGNORECASE
)
_SCRIPT_URI = re.compile(
    r"\b(?:javascript|vbscript)\s*:[^\"'\s>]*|\bdata\s*:\s*text/html[^\"'\s>]*",
    re.IGNORECASE,
)
_STYLE_EXPRESSION = re.compile(
    r"\s*\bstyle\s*=\s*([\"'])[^\"']*expression\s*\([^\"']*\1", re.IGNORECASE
)
_TAG = re.compile(r"<[^<>]*>")


@dataclass
class ValidationResult:
    """Outcome of a single validation."""

    is_valid: bool
    errors: list[str] = field(default_factory=list)
    sanitized_content: str | None = None


class InputValidator:
    """Policy-driven validator for content, paths and command input."""

    def __init__(self, policy: PolicyConfig | None = None):
        self.policy = policy or PolicyConfig()

    def validate_content(self, content: str) -> ValidationResult:
        """Validate document content against size and the deny-list.

        Oversized content is rejected without being scanned. Otherwise the
        result carries the sanitized content; clean content is returned
        unchanged.
        """
        if not isinstance(content, str):
            return ValidationResult(False, ["Content must be a string"])

        size = len(content.encode("utf-8"))
        if size > self.policy.max_content_size:
            return ValidationResult(
                False,
                [
                    f"Content exceeds maximum size of {self.policy.max_content_size} bytes"
                ],
            )

        errors = [
            f"Content contains a potentially dangerous {name}"
            for name, pattern in DANGEROUS_PATTERNS.items()
            if pattern.search(content)
        ]

        sanitized = content
        if errors and self.policy.sanitization_enabled:
            sanitized = self.sanitize(content)
        return ValidationResult(not errors, errors, sanitized)

    @staticmethod
    def sanitize(content: str) -> str:
        """Strip the deny-listed constructs, leaving all other text untouched."""
        sanitized = _SCRIPT_BLOCK.sub("", content)
        sanitized = _SCRIPT_TAG.sub("", sanitized)
        sanitized = _TAG.sub(InputValidator._clean_tag, sanitized)
        sanitized = _SCRIPT_URI.sub("", sanitized)
        return sanitized

    @staticmethod
    def _clean_tag(match: re.Match) -> str:
        tag = _EVENT_HANDLER.sub("", match.group(0))
        return _STYLE_EXPRESSION.sub("", tag)

    def validate_path(self, path: str, base_path: str) -> ValidationResult:
        """Check that ``path`` names an allowed file strictly inside ``base_path``.

        Both paths are normalized lexically; symlinks are not followed.
        """
        if not isinstance(path, str) or not isinstance(base_path, str):
            return ValidationResult(False, ["File path must be a string"])

        if "\0" in path or "\0" in base_path:
            return ValidationResult(False, ["File path contains null bytes"])

        errors = []

        segments = re.split(r"[\\/]+", path)
        if ".." in segments:
            errors.append("File path contains directory traversal sequences")

        resolved_base = os.path.abspath(os.path.normpath(base_path))
        resolved = os.path.abspath(os.path.join(resolved_base, os.path.normpath(path)))
        try:
            inside = (
                os.path.commonpath([resolved_base, resolved]) == resolved_base
                and resolved != resolved_base
            )
        except ValueError:
            inside = False
        if not inside:
            errors.append("File path is outside allowed directory")

        filename = os.path.basename(resolved)
        if len(filename) > MAX_FILENAME_LENGTH:
            errors.append(
                f"Filename exceeds maximum length of {MAX_FILENAME_LENGTH} characters"
            )

        extension = os.path.splitext(filename)[1].lower()
        allowed = self.policy.allowed_path_extensions
        if extension and allowed and extension not in allowed:
            errors.append(f"File extension '{extension}' is not allowed")

        return ValidationResult(not errors, errors)

    def validate_command(self, command: str, args=()) -> ValidationResult:
        """Validate an operation name and its string arguments."""
        errors = []

        if not command or not isinstance(command, str):
            errors.append("Command must be a non-empty string")
        else:
            if any(ch in command for ch in SHELL_METACHARACTERS):
                errors.append("Command contains dangerous shell operators")
            if command not in ALLOWED_COMMANDS:
                errors.append(f"Command '{command}' is not allowed")

        for i, arg in enumerate(args):
            if not isinstance(arg, str):
                errors.append(f"Argument {i} must be a string")
                continue
            if any(ch in arg for ch in SHELL_METACHARACTERS):
                errors.append(f"Argument {i} contains dangerous characters")
            if len(arg) > MAX_ARGUMENT_LENGTH:
                errors.append(f"Argument {i} exceeds maximum length")

        return ValidationResult(not errors, errors)


__all__ = [
    "MAX_FILENAME_LENGTH",
    "MAX_ARGUMENT_LENGTH",
    "ALLOWED_COMMANDS",
    "SHELL_METACHARACTERS",
    "DANGEROUS_PATTERNS",
    "ValidationResult",
    "InputValidator",
]
