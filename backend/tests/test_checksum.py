import re
from dataclasses import replace
from decimal import Decimal

from auctionpay.services import checksum
from auctionpay.services import calculations as calculations_service
from auctionpay.services.audit import MemoryAuditSink
from auctionpay.services.money import MoneyConfig
from auctionpay.services.totals import CalculationInputs, LineItem

FIGURES = (Decimal("100.00"), Decimal("10.00"), Decimal("9.35"), Decimal("119.35"))


def test_rolling_hash_matches_known_values() -> None:
    assert checksum.rolling_hash("") == 0
    assert checksum.rolling_hash("a") == 97
    assert checksum.rolling_hash("hello") == 99162322
    # Wraps to the most negative 32-bit value.
    assert checksum.rolling_hash("polygenelubricants") == -2147483648


def test_material_formats_two_decimal_places() -> None:
    material = checksum.checksum_material(Decimal("100"), Decimal("10.0"), Decimal("9.35"), Decimal("119.350"), "usd")
    assert material == "100.00|10.00|9.35|119.35|USD"


def test_checksum_has_fixed_format() -> None:
    value = checksum.generate_checksum(*FIGURES, "USD")
    assert re.fullmatch(r"[0-9a-z]{6}", value)


def test_checksum_ignores_trailing_precision() -> None:
    noisy = (Decimal("100"), Decimal("10.000"), Decimal("9.3500"), Decimal("119.35"))
    assert checksum.generate_checksum(*noisy, "USD") == checksum.generate_checksum(*FIGURES, "USD")


def test_checksum_is_deterministic() -> None:
    first = checksum.generate_checksum(*FIGURES, "USD")
    assert all(checksum.generate_checksum(*FIGURES, "USD") == first for _ in range(5))


def test_checksum_changes_with_figures_and_currency() -> None:
    base = checksum.generate_checksum(*FIGURES, "USD")
    assert checksum.generate_checksum(Decimal("100.00"), Decimal("10.00"), Decimal("9.35"), Decimal("119.36"), "USD") != base
    assert checksum.generate_checksum(*FIGURES, "CAD") != base


def test_checksum_matches_result(money_config: MoneyConfig, audit_sink: MemoryAuditSink) -> None:
    inputs = CalculationInputs(items=[LineItem(lot_id="L1", title="Vase", quantity=1, unit_price=Decimal("100.00"))])
    result = calculations_service.compute(inputs, config=money_config, audit_sink=audit_sink)
    assert checksum.checksum_matches(result) is True
    assert checksum.checksum_matches(replace(result, tax_amount=Decimal("0.00"))) is False
    assert checksum.checksum_matches(replace(result, checksum="")) is False
