"""Logging configuration with credential redaction."""

import logging
import os
import re
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any

DEFAULT_LOG_FILE = Path.home() / ".fxconv" / "fxconv.log"

SENSITIVE_KEYS = {"app_id", "apikey", "api_key", "token", "secret", "authorization"}


class APIKeyFilter(logging.Filter):
    """Redact provider credentials from log records.

    Open Exchange Rates takes its key as the ``app_id`` query parameter, so
    request URLs logged at debug level would otherwise leak it.
    """

    SENSITIVE_PATTERNS = [
        (
            re.compile(r"(app_id|apikey|api_key|token|secret)=([^&\s]+)", re.IGNORECASE),
            r"\1=[REDACTED]",
        ),
        (re.compile(r'("app_id"\s*:\s*)"([^"]+)"', re.IGNORECASE), r'\1"[REDACTED]"'),
        (re.compile(r"Bearer\s+[A-Za-z0-9\-._~+/]+=*", re.IGNORECASE), "Bearer [REDACTED]"),
        (re.compile(r"Authorization:\s*[^\s]+", re.IGNORECASE), "Authorization: [REDACTED]"),
    ]

    def filter(self, record: logging.LogRecord) -> bool:
        """
        Redact sensitive information from a record in place.

        Args:
            record: Log record to filter

        Returns:
            Always True; records are rewritten, never dropped
        """
        if isinstance(record.msg, str):
            record.msg = self._redact_text(record.msg)

        if record.args:
            if isinstance(record.args, dict):
                record.args = self._redact_dict(record.args)
            elif isinstance(record.args, tuple):
                record.args = tuple(self._redact_value(arg) for arg in record.args)

        return True

    def _redact_text(self, text: str) -> str:
        for pattern, replacement in self.SENSITIVE_PATTERNS:
            text = pattern.sub(replacement, text)
        return text

    def _redact_dict(self, data: dict[str, Any]) -> dict[str, Any]:
        return {
            k: "[REDACTED]" if str(k).lower() in SENSITIVE_KEYS else self._redact_value(v)
            for k, v in data.items()
        }

    def _redact_value(self, value: Any) -> Any:
        if isinstance(value, str):
            return self._redact_text(value)
        if isinstance(value, dict):
            return self._redact_dict(value)
        if isinstance(value, (list, tuple)):
            return type(value)(self._redact_value(item) for item in value)
        return value


def setup_logging(level: int = logging.INFO, log_file: str | None = None) -> None:
    """
    Configure root logging with redaction and file rotation.

    Args:
        level: Logging level (default: INFO)
        log_file: Path to log file. None uses $LOG_FILE or ~/.fxconv/fxconv.log;
                  an empty string disables file logging.

    Example:
        >>> from fxconv.lib.logging_config import setup_logging
        >>> setup_logging(logging.DEBUG, log_file="")
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    api_key_filter = APIKeyFilter()
    formatter = logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s", datefmt="%Y-%m-%d %H:%M:%S"
    )

    if root_logger.handlers:
        for handler in root_logger.handlers:
            if not any(isinstance(f, APIKeyFilter) for f in handler.filters):
                handler.addFilter(api_key_filter)
        return

    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    console_handler.addFilter(api_key_filter)
    root_logger.addHandler(console_handler)

    if log_file is None:
        log_file = os.getenv("LOG_FILE", str(DEFAULT_LOG_FILE))

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        # 10MB per file, keep 5 backups
        file_handler = RotatingFileHandler(
            log_path,
            maxBytes=10 * 1024 * 1024,
            backupCount=5,
            encoding="utf-8",
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        file_handler.addFilter(api_key_filter)
        root_logger.addHandler(file_handler)


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger with credential redaction enabled.

    Args:
        name: Logger name (usually __name__)

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)

    if not any(isinstance(f, APIKeyFilter) for f in logger.filters):
        logger.addFilter(APIKeyFilter())

    return logger
