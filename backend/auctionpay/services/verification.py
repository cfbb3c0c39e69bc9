from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from auctionpay.services.totals import CalculationResult

DEFAULT_TOLERANCE = Decimal("0.01")


@dataclass(frozen=True)
class VerificationOutcome:
    accurate: bool
    error: str | None = None
    discrepancy: Decimal | None = None


def verify_figures(
    subtotal: Decimal,
    buyers_premium_amount: Decimal,
    tax_amount: Decimal,
    grand_total: Decimal,
    *,
    tolerance: Decimal = DEFAULT_TOLERANCE,
) -> VerificationOutcome:
    """Re-derive the grand total from its components; stop at the first failed check."""
    figures = (
        ("subtotal", subtotal),
        ("buyers_premium_amount", buyers_premium_amount),
        ("tax_amount", tax_amount),
        ("grand_total", grand_total),
    )
    for name, value in figures:
        if value < 0:
            return VerificationOutcome(
                accurate=False,
                error=f"negative_component: {name} is {value}",
                discrepancy=-value,
            )

    expected = subtotal + buyers_premium_amount + tax_amount
    discrepancy = abs(expected - grand_total)
    if discrepancy > tolerance:
        return VerificationOutcome(
            accurate=False,
            error=(
                f"total_mismatch: subtotal + premium + tax = {expected}, grand_total = {grand_total} "
                f"(discrepancy {discrepancy}, tolerance {tolerance})"
            ),
            discrepancy=discrepancy,
        )
    return VerificationOutcome(accurate=True)


def verify(result: CalculationResult, *, tolerance: Decimal = DEFAULT_TOLERANCE) -> VerificationOutcome:
    return verify_figures(
        result.subtotal,
        result.buyers_premium_amount,
        result.tax_amount,
        result.grand_total,
        tolerance=tolerance,
    )
