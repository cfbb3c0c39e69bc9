from decimal import Decimal, ROUND_HALF_EVEN

import pytest

from auctionpay.core.config import Settings
from auctionpay.services import money


def test_quantize_money_uses_bankers_rounding_by_default() -> None:
    assert money.quantize_money(Decimal("1.005")) == Decimal("1.00")
    assert money.quantize_money(Decimal("1.015")) == Decimal("1.02")
    assert money.quantize_money(Decimal("2.675")) == Decimal("2.68")
    assert money.quantize_money(Decimal("1.005"), rounding="half_up") == Decimal("1.01")
    assert money.quantize_money(Decimal("1.001"), rounding="up") == Decimal("1.01")
    assert money.quantize_money(Decimal("1.009"), rounding="down") == Decimal("1.00")


def test_to_decimal_avoids_binary_float_artifacts() -> None:
    assert money.to_decimal(0.1) == Decimal("0.1")
    assert money.to_decimal(99.99) == Decimal("99.99")
    assert money.to_decimal(" 12.50 ") == Decimal("12.50")
    assert money.to_decimal(7) == Decimal(7)


@pytest.mark.parametrize("value", [True, None, "abc", "nan", "Infinity", float("inf"), object()])
def test_to_decimal_rejects_non_numbers(value: object) -> None:
    with pytest.raises(ValueError):
        money.to_decimal(value)


def test_money_str_always_has_two_places() -> None:
    assert money.money_str(Decimal("100")) == "100.00"
    assert money.money_str(Decimal("1E+2")) == "100.00"
    assert money.money_str(Decimal("9.345")) == "9.34"


def test_format_currency() -> None:
    assert money.format_currency(1234.56) == "$1,234.56"
    assert money.format_currency("0") == "$0.00"
    assert money.format_currency("-5") == "-$5.00"
    assert money.format_currency(Decimal("1000000"), "usd") == "$1,000,000.00"
    assert money.format_currency(10, "EUR") == "10.00 EUR"


def test_money_config_builds_isolated_context() -> None:
    config = money.MoneyConfig(precision=34)
    ctx = config.context()
    assert ctx.prec == 34
    assert ctx.rounding == ROUND_HALF_EVEN
    # The process-wide context is left alone.
    assert money.MoneyConfig().context().prec == 28


def test_money_config_rejects_low_precision() -> None:
    with pytest.raises(ValueError):
        money.MoneyConfig(precision=12)


def test_money_config_from_settings() -> None:
    source = Settings(
        default_buyers_premium_rate=Decimal("0.12"),
        default_tax_rate=Decimal("0.07"),
        default_currency=" usd ",
        strict_premium_tiers=True,
    )
    config = money.MoneyConfig.from_settings(source)
    assert config.default_premium_rate == Decimal("0.12")
    assert config.default_tax_rate == Decimal("0.07")
    assert config.currency == "USD"
    assert config.rounding == "half_even"
    assert config.strict_tiers is True
