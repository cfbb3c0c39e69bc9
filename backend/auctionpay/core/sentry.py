from __future__ import annotations

import logging
from typing import Any

from auctionpay.core.config import settings
from auctionpay.core.logging_config import correlation_id_ctx_var, request_id_ctx_var


def _tag_context_ids(event: dict[str, Any], hint: dict[str, Any]) -> dict[str, Any]:
    tags = event.setdefault("tags", {})
    request_id = request_id_ctx_var.get()
    correlation_id = correlation_id_ctx_var.get()
    if request_id:
        tags.setdefault("request_id", request_id)
    if correlation_id:
        tags.setdefault("correlation_id", correlation_id)
    return event


def init_sentry() -> bool:
    """Start Sentry when a DSN is configured; returns whether it was started."""
    if not settings.sentry_dsn:
        return False

    import sentry_sdk
    from sentry_sdk.integrations import Integration
    from sentry_sdk.integrations.fastapi import FastApiIntegration
    from sentry_sdk.integrations.logging import LoggingIntegration

    integrations: list[Integration] = [FastApiIntegration()]
    if settings.sentry_enable_logs:
        event_level = getattr(logging, str(settings.sentry_log_level or "error").strip().upper(), logging.ERROR)
        integrations.append(LoggingIntegration(level=logging.INFO, event_level=event_level))

    sentry_sdk.init(
        dsn=settings.sentry_dsn,
        environment=settings.environment,
        release=f"{settings.app_name}@{settings.app_version}",
        traces_sample_rate=settings.sentry_traces_sample_rate,
        profiles_sample_rate=settings.sentry_profiles_sample_rate,
        integrations=integrations,
        before_send=_tag_context_ids,
        send_default_pii=False,
    )
    return True
