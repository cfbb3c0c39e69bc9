"""Decimal configuration and money helpers shared by every calculator.

All arithmetic runs under an explicit :class:`MoneyConfig` instead of the
process-wide decimal context, so tests (or tenants) with different settings
never interfere with each other. Values are only quantized to cents at output
boundaries.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from decimal import (
    ROUND_DOWN,
    ROUND_HALF_EVEN,
    ROUND_HALF_UP,
    ROUND_UP,
    Context,
    Decimal,
    DivisionByZero,
    InvalidOperation,
    Overflow,
)
from typing import Literal

from auctionpay.core.config import Settings, settings as app_settings


MONEY_QUANT = Decimal("0.01")
MIN_PRECISION = 28

MoneyRounding = Literal["half_up", "half_even", "up", "down"]

_ROUNDING_MAP: dict[str, str] = {
    "half_up": ROUND_HALF_UP,
    "half_even": ROUND_HALF_EVEN,
    "up": ROUND_UP,
    "down": ROUND_DOWN,
}

_CURRENCY_SYMBOLS = {"USD": "$"}

DecimalInput = Decimal | int | float | str


def quantize_money(value: Decimal, *, rounding: MoneyRounding = "half_even") -> Decimal:
    mode = _ROUNDING_MAP.get(str(rounding), ROUND_HALF_EVEN)
    return Decimal(value).quantize(MONEY_QUANT, rounding=mode)


def to_decimal(value: object) -> Decimal:
    """Convert a price, amount or rate to Decimal.

    Floats go through ``str`` so binary artifacts never reach the arithmetic.
    Raises ``ValueError`` for booleans, unparseable text and non-finite values.
    """
    if isinstance(value, bool) or value is None:
        raise ValueError(f"not a decimal value: {value!r}")
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, int):
        result = Decimal(value)
    elif isinstance(value, float):
        if not math.isfinite(value):
            raise ValueError(f"not a finite number: {value!r}")
        result = Decimal(str(value))
    elif isinstance(value, str):
        try:
            result = Decimal(value.strip())
        except InvalidOperation as exc:
            raise ValueError(f"not a decimal value: {value!r}") from exc
    else:
        raise ValueError(f"not a decimal value: {value!r}")
    if not result.is_finite():
        raise ValueError(f"not a finite number: {value!r}")
    return result


def money_str(value: Decimal) -> str:
    """Render an amount with exactly two decimal places, never in exponent form."""
    return format(quantize_money(value), "f")


def format_currency(amount: DecimalInput, currency: str = "USD") -> str:
    value = quantize_money(to_decimal(amount))
    code = (currency or "").strip().upper()
    sign = "-" if value < 0 else ""
    rendered = f"{abs(value):,.2f}"
    symbol = _CURRENCY_SYMBOLS.get(code)
    if symbol is None:
        return f"{sign}{rendered} {code}"
    return f"{sign}{symbol}{rendered}"


@dataclass(frozen=True)
class MoneyConfig:
    precision: int = MIN_PRECISION
    rounding: MoneyRounding = "half_even"
    currency: str = "USD"
    default_premium_rate: Decimal = Decimal("0.10")
    default_tax_rate: Decimal = Decimal("0.085")
    tolerance: Decimal = Decimal("0.01")
    strict_tiers: bool = False

    def __post_init__(self) -> None:
        if self.precision < MIN_PRECISION:
            raise ValueError(f"Decimal precision must be at least {MIN_PRECISION} significant digits")
        if self.rounding not in _ROUNDING_MAP:
            raise ValueError(f"Unknown rounding mode: {self.rounding}")

    @classmethod
    def from_settings(cls, source: Settings | None = None) -> "MoneyConfig":
        cfg = source or app_settings
        return cls(
            precision=cfg.decimal_precision,
            rounding=cfg.money_rounding,
            currency=cfg.default_currency.strip().upper(),
            default_premium_rate=cfg.default_buyers_premium_rate,
            default_tax_rate=cfg.default_tax_rate,
            tolerance=cfg.verification_tolerance,
            strict_tiers=cfg.strict_premium_tiers,
        )

    def context(self) -> Context:
        return Context(
            prec=self.precision,
            rounding=_ROUNDING_MAP[self.rounding],
            traps=[InvalidOperation, DivisionByZero, Overflow],
        )

    def quantize(self, value: Decimal) -> Decimal:
        return quantize_money(value, rounding=self.rounding)
