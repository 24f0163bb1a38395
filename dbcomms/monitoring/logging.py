"""
Structured Logging for dbcomms

JSON-lines error sink with sensitive data masking. Failure records carry the
human message, the error detail and type, the driver's error code, and the
query/parameter context.
"""

import hashlib
import json
import logging
import os
import re
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Any

ERROR_LOGGER_NAME = "dbcomms.errors"

# Attributes present on every LogRecord; anything else came in through extra=.
_STANDARD_FIELDS = set(vars(logging.makeLogRecord({}))) | {"message", "asctime"}


@dataclass
class SensitiveDataConfig:
    """Configuration for sensitive data masking."""

    field_patterns: list[str] = field(
        default_factory=lambda: [
            r"pass(word|wd)?",
            r"secret",
            r"token",
            r"api[_-]?key",
            r"authorization",
        ]
    )

    mask_replacement: str = "***MASKED***"


class SensitiveDataMasker:
    """Masks values of sensitive keys in structured log fields."""

    def __init__(self, config: SensitiveDataConfig) -> None:
        self.config = config
        self._compiled = [re.compile(p, re.IGNORECASE) for p in config.field_patterns]

    def is_sensitive(self, key: str) -> bool:
        """Check if a field name indicates sensitive data."""
        return any(pattern.search(key) for pattern in self._compiled)

    def mask(self, value: Any) -> Any:
        """Recursively mask sensitive keys in dicts (and dicts inside lists)."""
        if isinstance(value, dict):
            return {
                key: self.config.mask_replacement
                if self.is_sensitive(str(key))
                else self.mask(item)
                for key, item in value.items()
            }
        if isinstance(value, (list, tuple)):
            return [self.mask(item) for item in value]
        return value


class JSONLogFormatter(logging.Formatter):
    """JSON formatter for structured error records."""

    def __init__(
        self,
        sensitive_data_config: SensitiveDataConfig | None = None,
        sort_keys: bool = False,
    ) -> None:
        super().__init__()
        self.sort_keys = sort_keys
        self.masker = SensitiveDataMasker(sensitive_data_config or SensitiveDataConfig())

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as a single JSON line."""
        log_entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created).strftime("%Y-%m-%d %H:%M:%S"),
            "level": record.levelname,
            "message": record.getMessage(),
        }

        extra = {
            key: value
            for key, value in record.__dict__.items()
            if key not in _STANDARD_FIELDS and not key.startswith("_")
        }
        if extra:
            log_entry.update(self.masker.mask(extra))

        if record.exc_info:
            log_entry["exception"] = {
                "type": record.exc_info[0].__name__ if record.exc_info[0] else None,
                "message": str(record.exc_info[1]) if record.exc_info[1] else None,
            }

        return json.dumps(log_entry, sort_keys=self.sort_keys, default=self._serialize_value)

    @staticmethod
    def _serialize_value(value: Any) -> Any:
        """Serialize values json cannot handle natively."""
        if isinstance(value, Decimal):
            return str(value)
        if isinstance(value, (datetime, date)):
            return value.isoformat()
        if isinstance(value, (set, frozenset)):
            return list(value)
        if isinstance(value, bytes):
            return value.hex()
        return str(value)


def get_error_logger(path: str) -> logging.Logger:
    """
    Get the error logger appending JSON lines to path.

    Each distinct file gets its own child of the 'dbcomms.errors' logger with
    exactly one FileHandler; repeated calls with the same path reuse it.
    """
    resolved = os.path.abspath(path)
    suffix = hashlib.sha1(resolved.encode("utf-8")).hexdigest()[:12]
    logger = logging.getLogger(ERROR_LOGGER_NAME).getChild(suffix)

    if not any(
        isinstance(handler, logging.FileHandler) and handler.baseFilename == resolved
        for handler in logger.handlers
    ):
        handler = logging.FileHandler(resolved, mode="a", encoding="utf-8", delay=True)
        handler.setFormatter(JSONLogFormatter())
        logger.addHandler(handler)
        logger.setLevel(logging.INFO)

    return logger
