from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal, localcontext
from typing import Sequence

from auctionpay.services.errors import (
    EmptyInputError,
    InvalidItemError,
    InvalidRateError,
    NoTierMatchError,
    ZeroSubtotalError,
)
from auctionpay.services.money import DecimalInput, MoneyConfig, to_decimal

logger = logging.getLogger(__name__)

_RATE_LABELS = {
    "buyers_premium_rate": "buyer's premium rate",
    "tax_rate": "tax rate",
    "premium_tier_rate": "premium tier rate",
}


@dataclass(frozen=True)
class LineItem:
    lot_id: str
    title: str
    quantity: int
    unit_price: Decimal


@dataclass(frozen=True)
class PremiumTier:
    min_amount: Decimal
    rate: Decimal
    max_amount: Decimal | None = None
    id: str | None = None
    name: str = ""
    description: str | None = None


@dataclass(frozen=True)
class CalculationInputs:
    items: Sequence[LineItem] | None
    buyers_premium_rate: DecimalInput | None = None
    tax_rate: DecimalInput | None = None
    premium_tiers: Sequence[PremiumTier] | None = None
    currency: str | None = None
    correlation_id: str | None = None

    @property
    def uses_tiers(self) -> bool:
        return bool(self.premium_tiers)


@dataclass(frozen=True)
class PremiumResult:
    amount: Decimal
    rate: Decimal
    applied_tier: PremiumTier | None = None


@dataclass(frozen=True)
class TaxResult:
    rate: Decimal
    taxable_amount: Decimal
    amount: Decimal


@dataclass(frozen=True)
class ItemTotal:
    lot_id: str
    title: str
    quantity: int
    unit_price: Decimal
    total_price: Decimal


@dataclass(frozen=True)
class CalculationBreakdown:
    items: tuple[ItemTotal, ...]
    buyers_premium: PremiumResult
    tax: TaxResult


@dataclass(frozen=True)
class CalculationResult:
    subtotal: Decimal
    buyers_premium_amount: Decimal
    tax_amount: Decimal
    grand_total: Decimal
    currency: str
    checksum: str
    breakdown: CalculationBreakdown


def _config(config: MoneyConfig | None) -> MoneyConfig:
    return config if config is not None else MoneyConfig.from_settings()


def item_quantity(item: LineItem) -> int:
    quantity = item.quantity
    if isinstance(quantity, bool) or not isinstance(quantity, int):
        raise InvalidItemError(f"Invalid item data: quantity must be a whole number (lot: {item.lot_id})", lot_id=item.lot_id)
    if quantity <= 0:
        raise InvalidItemError(f"Invalid item data: quantity must be greater than 0 (lot: {item.lot_id})", lot_id=item.lot_id)
    return quantity


def item_unit_price(item: LineItem) -> Decimal:
    try:
        price = to_decimal(item.unit_price)
    except ValueError as exc:
        raise InvalidItemError(f"Invalid item data: {exc} (lot: {item.lot_id})", lot_id=item.lot_id) from exc
    if price < 0:
        raise InvalidItemError(f"Invalid item data: unit_price must be non-negative (lot: {item.lot_id})", lot_id=item.lot_id)
    return price


def resolve_rate(value: object | None, *, default: Decimal, name: str) -> Decimal:
    """Return the explicit rate, or ``default`` when none was supplied, bounded to [0, 1]."""
    label = _RATE_LABELS.get(name, name)
    if value is None:
        rate = default
    else:
        try:
            rate = to_decimal(value)
        except ValueError as exc:
            raise InvalidRateError(f"Invalid {label}: {value!r}. Rate must be a number.", rate_name=name) from exc
    if rate < 0 or rate > 1:
        raise InvalidRateError(f"Invalid {label}: {value}. Rate must be between 0 and 1.", rate_name=name)
    return rate


def calculate_subtotal(items: Sequence[LineItem], *, config: MoneyConfig | None = None) -> Decimal:
    """Sum ``quantity * unit_price`` at full working precision."""
    if not items:
        raise EmptyInputError("At least one item is required for calculation")
    with localcontext(_config(config).context()):
        subtotal = Decimal(0)
        for item in items:
            subtotal += item_unit_price(item) * item_quantity(item)
    if subtotal == 0:
        raise ZeroSubtotalError("Subtotal cannot be zero")
    return subtotal


def _tier_bounds(tier: PremiumTier) -> tuple[Decimal, Decimal | None]:
    try:
        low = to_decimal(tier.min_amount)
        high = None if tier.max_amount is None else to_decimal(tier.max_amount)
    except ValueError as exc:
        raise InvalidRateError(f"Invalid premium tier bounds ({tier.name or tier.id}): {exc}", rate_name="premium_tiers") from exc
    return low, high


def _tier_rate(tier: PremiumTier) -> Decimal:
    if tier.rate is None:
        raise InvalidRateError(f"Premium tier {tier.name or tier.id} has no rate", rate_name="premium_tier_rate")
    return resolve_rate(tier.rate, default=Decimal(0), name="premium_tier_rate")


def select_premium_tier(subtotal: Decimal, tiers: Sequence[PremiumTier]) -> PremiumTier | None:
    """Lowest-bracket tier whose ``[min_amount, max_amount)`` contains the subtotal."""
    bounded = sorted(((_tier_bounds(tier), tier) for tier in tiers), key=lambda entry: entry[0][0])
    for (low, high), tier in bounded:
        if subtotal >= low and (high is None or subtotal < high):
            return tier
    return None


def calculate_buyers_premium(
    subtotal: Decimal,
    rate: object | None = None,
    tiers: Sequence[PremiumTier] | None = None,
    *,
    config: MoneyConfig | None = None,
) -> PremiumResult:
    cfg = _config(config)
    with localcontext(cfg.context()):
        if tiers:
            for candidate in tiers:
                _tier_rate(candidate)
            tier = select_premium_tier(subtotal, tiers)
            if tier is not None:
                tier_rate = _tier_rate(tier)
                return PremiumResult(amount=cfg.quantize(subtotal * tier_rate), rate=tier_rate, applied_tier=tier)
            if cfg.strict_tiers:
                raise NoTierMatchError(f"No premium tier covers subtotal {subtotal}")
            logger.info("premium_tier_fallback", extra={"subtotal": subtotal, "rate": cfg.default_premium_rate})
            fallback = cfg.default_premium_rate
            return PremiumResult(amount=cfg.quantize(subtotal * fallback), rate=fallback)

        premium_rate = resolve_rate(rate, default=cfg.default_premium_rate, name="buyers_premium_rate")
        return PremiumResult(amount=cfg.quantize(subtotal * premium_rate), rate=premium_rate)


def calculate_tax(
    subtotal: Decimal,
    buyers_premium: Decimal,
    rate: object | None = None,
    *,
    config: MoneyConfig | None = None,
) -> TaxResult:
    """Tax on subtotal plus buyer's premium; the subtotal is not rounded first."""
    cfg = _config(config)
    tax_rate = resolve_rate(rate, default=cfg.default_tax_rate, name="tax_rate")
    with localcontext(cfg.context()):
        taxable = subtotal + buyers_premium
        return TaxResult(rate=tax_rate, taxable_amount=taxable, amount=cfg.quantize(taxable * tax_rate))


def calculate_grand_total(
    subtotal: Decimal,
    buyers_premium: Decimal,
    tax: Decimal,
    *,
    config: MoneyConfig | None = None,
) -> Decimal:
    cfg = _config(config)
    with localcontext(cfg.context()):
        return cfg.quantize(cfg.quantize(subtotal) + buyers_premium + tax)


def item_totals(items: Sequence[LineItem], *, config: MoneyConfig | None = None) -> tuple[ItemTotal, ...]:
    cfg = _config(config)
    rows: list[ItemTotal] = []
    with localcontext(cfg.context()):
        for item in items:
            price = item_unit_price(item)
            quantity = item_quantity(item)
            rows.append(
                ItemTotal(
                    lot_id=item.lot_id,
                    title=item.title,
                    quantity=quantity,
                    unit_price=price,
                    total_price=cfg.quantize(price * quantity),
                )
            )
    return tuple(rows)
