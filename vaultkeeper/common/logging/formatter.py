"""JSON log formatter for structured logging.

Example log output:
    {
        "timestamp": "2025-10-21T10:30:00.000Z",
        "level": "WARNING",
        "service": "vaultkeeper",
        "logger": "vaultkeeper.renewer",
        "thread": "vault-token-renewer",
        "message": "Token is close to expiry",
        "context": {"ttl": 120}
    }
"""

import json
import logging
import traceback
from datetime import UTC, datetime
from types import TracebackType
from typing import Any

_RESERVED_FIELDS = {
    "name",
    "msg",
    "args",
    "created",
    "filename",
    "funcName",
    "levelname",
    "levelno",
    "lineno",
    "module",
    "msecs",
    "pathname",
    "process",
    "processName",
    "relativeCreated",
    "thread",
    "threadName",
    "taskName",
    "context",
    "exc_info",
    "exc_text",
    "stack_info",
    "message",
    "asctime",
}

# Context keys whose values are credentials and must never reach a log sink
SENSITIVE_FIELDS = frozenset({"token", "vault_token", "client_token", "secret_value", "value"})

REDACTED = "***"


class JSONFormatter(logging.Formatter):
    """Formats log records as single-line JSON objects.

    Context comes from ``extra={"context": {...}}`` or from any other extra
    fields on the record. Sensitive context keys are redacted.

    Example:
        >>> handler = logging.StreamHandler()
        >>> handler.setFormatter(JSONFormatter(service_name="vaultkeeper"))
        >>> logger = logging.getLogger("vaultkeeper.reader")
        >>> logger.addHandler(handler)
        >>> logger.warning("Store warning on secret read", extra={"secret_path": "secret/db"})
    """

    def __init__(
        self, service_name: str, include_context: bool = True, *args: Any, **kwargs: Any
    ) -> None:
        super().__init__(*args, **kwargs)
        self.service_name = service_name
        self.include_context = include_context

    def format(self, record: logging.LogRecord) -> str:
        log_entry: dict[str, Any] = {
            "timestamp": self._format_timestamp(record.created),
            "level": record.levelname,
            "service": self.service_name,
            "logger": record.name,
            "thread": record.threadName,
            "message": record.getMessage(),
        }

        if self.include_context:
            context = self._extract_context(record)
            if context:
                log_entry["context"] = context

        if record.exc_info:
            log_entry["exception"] = {
                "type": record.exc_info[0].__name__ if record.exc_info[0] else None,
                "message": str(record.exc_info[1]) if record.exc_info[1] else None,
                "traceback": self._format_exception(record.exc_info),
            }

        log_entry["source"] = {
            "file": record.pathname,
            "line": record.lineno,
            "function": record.funcName,
        }

        return json.dumps(log_entry, default=str)

    def _format_timestamp(self, created: float) -> str:
        """Format a LogRecord timestamp as ISO 8601 UTC with milliseconds.

        Example:
            >>> JSONFormatter(service_name="test")._format_timestamp(1697884200.0)
            '2023-10-21T10:30:00.000Z'
        """
        dt = datetime.fromtimestamp(created, tz=UTC)
        return dt.strftime("%Y-%m-%dT%H:%M:%S.%f")[:-3] + "Z"

    def _extract_context(self, record: logging.LogRecord) -> dict[str, Any] | None:
        context = getattr(record, "context", None)
        if isinstance(context, dict):
            fields = dict(context)
        else:
            fields = {
                key: value
                for key, value in record.__dict__.items()
                if key not in _RESERVED_FIELDS and not key.startswith("_")
            }

        if not fields:
            return None
        return {
            key: REDACTED if key in SENSITIVE_FIELDS else value for key, value in fields.items()
        }

    def _format_exception(
        self,
        exc_info: tuple[type[BaseException] | None, BaseException | None, TracebackType | None],
    ) -> str:
        return "".join(traceback.format_exception(*exc_info))
