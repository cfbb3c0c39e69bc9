from collections.abc import Generator

import pytest

from auctionpay.core import metrics
from auctionpay.services import audit as audit_service
from auctionpay.services.audit import MemoryAuditSink
from auctionpay.services.money import MoneyConfig


@pytest.fixture(autouse=True)
def _reset_process_state() -> Generator[None, None, None]:
    # Counters and the cached audit sink are process-global and can leak across tests.
    metrics.reset()
    audit_service.reset_audit_sink()
    yield
    metrics.reset()
    audit_service.reset_audit_sink()


@pytest.fixture
def money_config() -> MoneyConfig:
    return MoneyConfig()


@pytest.fixture
def audit_sink() -> MemoryAuditSink:
    return MemoryAuditSink()
