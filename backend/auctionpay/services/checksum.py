"""Deterministic fingerprint of a calculation's final figures.

This is an integrity fingerprint for audit correlation, not a security
control: anyone can recompute it for altered figures. Python's built-in
``hash`` is salted per process, so a fixed 32-bit rolling hash is used to keep
the value identical across runs, hosts and platforms.
"""

from __future__ import annotations

from decimal import Decimal

from auctionpay.services.money import money_str
from auctionpay.services.totals import CalculationResult

CHECKSUM_WIDTH = 6

_BASE36_DIGITS = "0123456789abcdefghijklmnopqrstuvwxyz"
_UINT32_MASK = 0xFFFFFFFF


def checksum_material(
    subtotal: Decimal,
    buyers_premium_amount: Decimal,
    tax_amount: Decimal,
    grand_total: Decimal,
    currency: str,
) -> str:
    parts = [money_str(value) for value in (subtotal, buyers_premium_amount, tax_amount, grand_total)]
    parts.append((currency or "").strip().upper())
    return "|".join(parts)


def rolling_hash(text: str) -> int:
    """``h = h * 31 + code_point`` wrapped to a signed 32-bit integer."""
    value = 0
    for char in text:
        value = (value * 31 + ord(char)) & _UINT32_MASK
    if value & 0x80000000:
        value -= 0x100000000
    return value


def _base36(number: int) -> str:
    if number == 0:
        return "0"
    digits: list[str] = []
    while number:
        number, remainder = divmod(number, 36)
        digits.append(_BASE36_DIGITS[remainder])
    return "".join(reversed(digits))


def generate_checksum(
    subtotal: Decimal,
    buyers_premium_amount: Decimal,
    tax_amount: Decimal,
    grand_total: Decimal,
    currency: str,
) -> str:
    material = checksum_material(subtotal, buyers_premium_amount, tax_amount, grand_total, currency)
    return _base36(abs(rolling_hash(material))).rjust(CHECKSUM_WIDTH, "0")


def checksum_for(result: CalculationResult) -> str:
    return generate_checksum(
        result.subtotal,
        result.buyers_premium_amount,
        result.tax_amount,
        result.grand_total,
        result.currency,
    )


def checksum_matches(result: CalculationResult) -> bool:
    return bool(result.checksum) and result.checksum == checksum_for(result)
