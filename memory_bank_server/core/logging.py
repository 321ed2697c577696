"""
Unified logging for the memory bank server.

- Structured logging with contextual key=value data
- Consistent format across all modules
- Configurable log level and optional log file
"""

import logging
import sys
from datetime import datetime
from pathlib import Path


class MemoryBankFormatter(logging.Formatter):
    """
    Console formatter with level emoji, short timestamp and structured data.
    """

    LEVEL_EMOJIS = {
        "DEBUG": "🔍",
        "INFO": "ℹ️",
        "WARNING": "⚠️",
        "ERROR": "❌",
        "CRITICAL": "🚨",
    }

    COLORS = {
        "DEBUG": "\033[90m",  # Gray
        "INFO": "\033[36m",  # Cyan
        "WARNING": "\033[33m",  # Yellow
        "ERROR": "\033[31m",  # Red
        "CRITICAL": "\033[35m",  # Magenta
        "RESET": "\033[0m",
    }

    def format(self, record: logging.LogRecord) -> str:
        """Format log record with emoji, color, and structured data."""
        emoji = self.LEVEL_EMOJIS.get(record.levelname, "📝")
        timestamp = datetime.fromtimestamp(record.created).strftime("%H:%M:%S")

        message = f"[{timestamp}] {emoji}  {record.getMessage()}"

        extra_data = getattr(record, "extra_data", None)
        if extra_data:
            extra_parts = [f"{key}={value}" for key, value in extra_data.items()]
            message += f" ({', '.join(extra_parts)})"

        if record.exc_info:
            message += "\n" + self.formatException(record.exc_info)

        if hasattr(sys.stderr, "isatty") and sys.stderr.isatty():
            color = self.COLORS.get(record.levelname, "")
            reset = self.COLORS["RESET"]
            message = f"{color}{message}{reset}"

        return message


class StructuredLogger:
    """
    Thin wrapper that attaches keyword arguments to records as ``extra_data``.

    Handlers are inherited from the root logger configured by
    :func:`setup_logging`.
    """

    def __init__(self, name: str, level: str | None = None):
        self.logger = logging.getLogger(name)
        if level:
            self.logger.setLevel(getattr(logging, level.upper()))

    def debug(self, message: str, **kwargs) -> None:
        self._log(logging.DEBUG, message, kwargs)

    def info(self, message: str, **kwargs) -> None:
        self._log(logging.INFO, message, kwargs)

    def warning(self, message: str, **kwargs) -> None:
        self._log(logging.WARNING, message, kwargs)

    def error(self, message: str, exc_info=None, **kwargs) -> None:
        self._log(logging.ERROR, message, kwargs, exc_info=exc_info)

    def critical(self, message: str, **kwargs) -> None:
        self._log(logging.CRITICAL, message, kwargs)

    def _log(self, level: int, message: str, extra_data: dict, exc_info=None) -> None:
        if not self.logger.isEnabledFor(level):
            return
        self.logger.log(
            level, message, exc_info=exc_info, extra={"extra_data": extra_data}
        )


def setup_logging(level: str = "INFO", log_file: Path | None = None) -> None:
    """
    Configure application-wide logging.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional file to also write logs to
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper()))

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(MemoryBankFormatter())
    root_logger.addHandler(console_handler)

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(
            logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
        )
        root_logger.addHandler(file_handler)


def get_logger(name: str) -> StructuredLogger:
    """
    Get a structured logger for a module.

    Args:
        name: Logger name (typically __name__)
    """
    return StructuredLogger(name)


__all__ = ["MemoryBankFormatter", "StructuredLogger", "setup_logging", "get_logger"]
