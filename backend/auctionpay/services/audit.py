from __future__ import annotations

import hashlib
import json
import logging
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from threading import Lock
from typing import Any, Protocol

from auctionpay.core import metrics
from auctionpay.core.config import settings

logger = logging.getLogger(__name__)
audit_logger = logging.getLogger("auctionpay.audit")

CALCULATION_PERFORMED = "calculation_performed"


@dataclass(frozen=True)
class AuditEvent:
    event_type: str
    entity_type: str
    correlation_id: str
    processing_time_ms: float
    inputs: dict[str, Any] = field(default_factory=dict)
    results: dict[str, Any] | None = None
    error: dict[str, Any] | None = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def succeeded(self) -> bool:
        return self.error is None

    def to_payload(self) -> dict[str, Any]:
        payload = asdict(self)
        payload["created_at"] = self.created_at.isoformat()
        return payload


class AuditSink(Protocol):
    def emit(self, event: AuditEvent) -> None: ...


class NullAuditSink:
    def emit(self, event: AuditEvent) -> None:
        return None


class MemoryAuditSink:
    def __init__(self) -> None:
        self.events: list[AuditEvent] = []

    def emit(self, event: AuditEvent) -> None:
        self.events.append(event)


def _json_default(value: Any) -> str:
    if isinstance(value, Decimal):
        return format(value, "f")
    return str(value)


def _canonical_json(value: Any) -> str:
    return json.dumps(value, sort_keys=True, separators=(",", ":"), ensure_ascii=False, default=_json_default)


def _hash_bytes(secret: str, prev_hash: str, material: str) -> str:
    hasher = hashlib.sha256()
    hasher.update(secret.encode("utf-8"))
    hasher.update(b"\n")
    hasher.update((prev_hash or "").encode("utf-8"))
    hasher.update(b"\n")
    hasher.update(material.encode("utf-8"))
    return hasher.hexdigest()


class LoggingAuditSink:
    """Write audit events to the ``auctionpay.audit`` logger.

    With ``hash_chain=True`` each record carries the previous record's hash and
    its own, so gaps or edits in the exported log are detectable.
    """

    def __init__(self, *, hash_chain: bool = False, secret: str = "", log: logging.Logger | None = None) -> None:
        self.hash_chain = hash_chain
        self.secret = secret
        self.tail_hash: str | None = None
        self._log = log or audit_logger
        self._lock = Lock()

    def emit(self, event: AuditEvent) -> None:
        payload = event.to_payload()
        if not self.hash_chain:
            self._log.info(event.event_type, extra={"audit": payload})
            return
        # Records must reach the log in chain order.
        with self._lock:
            prev = self.tail_hash
            digest = _hash_bytes(self.secret, prev or "", _canonical_json(payload))
            payload["chain_prev_hash"] = prev
            payload["chain_hash"] = digest
            self._log.info(event.event_type, extra={"audit": payload})
            self.tail_hash = digest


def emit_best_effort(sink: AuditSink, event: AuditEvent) -> bool:
    """Deliver ``event``; a failing sink is logged and never reaches the caller."""
    try:
        sink.emit(event)
    except Exception as exc:
        metrics.record(metrics.AUDIT_SINK_FAILURES)
        logger.warning(
            "audit_sink_failed",
            extra={"event_type": event.event_type, "correlation_id": event.correlation_id, "error": str(exc)},
        )
        return False
    return True


_default_sink: AuditSink | None = None
_default_sink_lock = Lock()


def get_audit_sink() -> AuditSink:
    global _default_sink
    with _default_sink_lock:
        if _default_sink is None:
            if settings.audit_log_enabled:
                _default_sink = LoggingAuditSink(
                    hash_chain=settings.audit_hash_chain_enabled,
                    secret=settings.audit_hash_chain_secret or "",
                )
            else:
                _default_sink = NullAuditSink()
        return _default_sink


def reset_audit_sink() -> None:
    global _default_sink
    with _default_sink_lock:
        _default_sink = None
