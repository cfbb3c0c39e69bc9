"""Process-local counters exposed at ``/metrics``.

Failure events can carry a code; the code gets its own ``<event>.<code>``
counter next to the event total.
"""

from __future__ import annotations

from collections import Counter
from threading import Lock

CALCULATIONS_PERFORMED = "calculations_performed"
CALCULATIONS_FAILED = "calculations_failed"
VERIFICATION_FAILURES = "verification_failures"
AUDIT_SINK_FAILURES = "audit_sink_failures"

_counts: Counter[str] = Counter()
_lock = Lock()


def record(event: str, *, code: str | None = None) -> None:
    with _lock:
        _counts[event] += 1
        if code:
            _counts[f"{event}.{code}"] += 1


def count(event: str, *, code: str | None = None) -> int:
    key = f"{event}.{code}" if code else event
    with _lock:
        return _counts[key]


def snapshot() -> dict[str, int]:
    with _lock:
        return dict(_counts)


def reset() -> None:
    with _lock:
        _counts.clear()
