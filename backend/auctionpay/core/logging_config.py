from __future__ import annotations

import json
import logging
from contextvars import ContextVar
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any

request_id_ctx_var: ContextVar[str | None] = ContextVar("request_id", default=None)
correlation_id_ctx_var: ContextVar[str | None] = ContextVar("correlation_id", default=None)

_MAX_TEXT = 5000
_MAX_ITEMS = 200

# Attributes every LogRecord carries; anything else on the record came from `extra=`.
_RESERVED_RECORD_KEYS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", None, None))) | {"message", "asctime"}


class ContextIdsFilter(logging.Filter):
    """Attach request_id and correlation_id from contextvars to every log record."""

    def filter(self, record: logging.LogRecord) -> bool:  # pragma: no cover - trivial
        if not getattr(record, "request_id", None):
            record.request_id = request_id_ctx_var.get() or "-"
        if not getattr(record, "correlation_id", None):
            record.correlation_id = correlation_id_ctx_var.get() or "-"
        return True


def _json_safe(value: Any) -> Any:
    if value is None or isinstance(value, (bool, int, float)):
        return value
    if isinstance(value, Decimal):
        # Money stays a string so the log never reintroduces binary floats.
        return format(value, "f")
    if isinstance(value, str):
        return value[:_MAX_TEXT]
    if isinstance(value, dict):
        return {str(key): _json_safe(item) for key, item in list(value.items())[:_MAX_ITEMS]}
    if isinstance(value, (list, tuple, set, frozenset)):
        return [_json_safe(item) for item in list(value)[:_MAX_ITEMS]]
    return str(value)[:_MAX_TEXT]


def _record_payload(record: logging.LogRecord) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
        "level": record.levelname,
        "logger": record.name,
        "message": record.getMessage(),
        "request_id": getattr(record, "request_id", "-"),
        "correlation_id": getattr(record, "correlation_id", "-"),
    }
    for key, value in record.__dict__.items():
        if key in _RESERVED_RECORD_KEYS or key in payload or key.startswith("_"):
            continue
        payload[key] = _json_safe(value)
    return payload


class JsonFormatter(logging.Formatter):
    """One JSON object per line, including every `extra=` field."""

    def format(self, record: logging.LogRecord) -> str:
        payload = _record_payload(record)
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False)


def configure_logging(json_logs: bool = False, level: int = logging.INFO) -> None:
    """Configure the root logger with a request/correlation-id aware formatter."""
    handler = logging.StreamHandler()
    handler.addFilter(ContextIdsFilter())
    if json_logs:
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(
            logging.Formatter(
                "%(asctime)s [%(levelname)s] %(name)s [%(request_id)s/%(correlation_id)s] %(message)s"
            )
        )

    logging.basicConfig(level=level, handlers=[handler], force=True)
