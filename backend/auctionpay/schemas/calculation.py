from __future__ import annotations

from decimal import Decimal
from typing import Annotated

from pydantic import BaseModel, Field, PlainSerializer

from auctionpay.services.money import money_str
from auctionpay.services.totals import (
    CalculationBreakdown,
    CalculationInputs,
    CalculationResult,
    ItemTotal,
    LineItem,
    PremiumResult,
    PremiumTier,
    TaxResult,
)
from auctionpay.services.verification import VerificationOutcome


def _plain_decimal(value: Decimal) -> str:
    return format(value, "f")


# Monetary fields always serialize as strings with exactly two decimal places.
Money = Annotated[Decimal, PlainSerializer(money_str, return_type=str)]
Rate = Annotated[Decimal, PlainSerializer(_plain_decimal, return_type=str)]


class LineItemIn(BaseModel):
    lot_id: str = ""
    title: str = ""
    quantity: int
    unit_price: Decimal

    def to_item(self) -> LineItem:
        return LineItem(lot_id=self.lot_id, title=self.title, quantity=self.quantity, unit_price=self.unit_price)


class PremiumTierSchema(BaseModel):
    id: str | None = None
    name: str = ""
    min_amount: Rate
    max_amount: Rate | None = None
    rate: Rate
    description: str | None = None

    def to_tier(self) -> PremiumTier:
        return PremiumTier(
            id=self.id,
            name=self.name,
            min_amount=self.min_amount,
            max_amount=self.max_amount,
            rate=self.rate,
            description=self.description,
        )

    @classmethod
    def from_tier(cls, tier: PremiumTier) -> "PremiumTierSchema":
        return cls(
            id=tier.id,
            name=tier.name,
            min_amount=tier.min_amount,
            max_amount=tier.max_amount,
            rate=tier.rate,
            description=tier.description,
        )


class CalculationRequest(BaseModel):
    items: list[LineItemIn] | None = None
    buyers_premium_rate: Decimal | None = None
    tax_rate: Decimal | None = None
    premium_tiers: list[PremiumTierSchema] | None = None
    currency: str | None = Field(default=None, min_length=3, max_length=3)
    correlation_id: str | None = Field(default=None, max_length=64)

    def to_inputs(self, *, correlation_id: str | None = None) -> CalculationInputs:
        return CalculationInputs(
            items=None if self.items is None else [item.to_item() for item in self.items],
            buyers_premium_rate=self.buyers_premium_rate,
            tax_rate=self.tax_rate,
            premium_tiers=None if self.premium_tiers is None else [tier.to_tier() for tier in self.premium_tiers],
            currency=self.currency,
            correlation_id=self.correlation_id or correlation_id,
        )


class ItemTotalRead(BaseModel):
    lot_id: str
    title: str = ""
    quantity: int
    unit_price: Money
    total_price: Money


class PremiumRead(BaseModel):
    rate: Rate
    amount: Money
    applied_tier: PremiumTierSchema | None = None


class TaxRead(BaseModel):
    rate: Rate
    taxable_amount: Rate
    amount: Money


class BreakdownRead(BaseModel):
    items: list[ItemTotalRead] = Field(default_factory=list)
    buyers_premium: PremiumRead
    tax: TaxRead


class CalculationResultRead(BaseModel):
    subtotal: Money
    buyers_premium_amount: Money
    tax_amount: Money
    grand_total: Money
    currency: str = Field(min_length=3, max_length=3)
    checksum: str = ""
    breakdown: BreakdownRead

    @classmethod
    def from_result(cls, result: CalculationResult) -> "CalculationResultRead":
        premium = result.breakdown.buyers_premium
        tax = result.breakdown.tax
        return cls(
            subtotal=result.subtotal,
            buyers_premium_amount=result.buyers_premium_amount,
            tax_amount=result.tax_amount,
            grand_total=result.grand_total,
            currency=result.currency,
            checksum=result.checksum,
            breakdown=BreakdownRead(
                items=[
                    ItemTotalRead(
                        lot_id=row.lot_id,
                        title=row.title,
                        quantity=row.quantity,
                        unit_price=row.unit_price,
                        total_price=row.total_price,
                    )
                    for row in result.breakdown.items
                ],
                buyers_premium=PremiumRead(
                    rate=premium.rate,
                    amount=premium.amount,
                    applied_tier=PremiumTierSchema.from_tier(premium.applied_tier) if premium.applied_tier else None,
                ),
                tax=TaxRead(rate=tax.rate, taxable_amount=tax.taxable_amount, amount=tax.amount),
            ),
        )

    def to_result(self) -> CalculationResult:
        premium = self.breakdown.buyers_premium
        tax = self.breakdown.tax
        return CalculationResult(
            subtotal=self.subtotal,
            buyers_premium_amount=self.buyers_premium_amount,
            tax_amount=self.tax_amount,
            grand_total=self.grand_total,
            currency=self.currency.strip().upper(),
            checksum=self.checksum,
            breakdown=CalculationBreakdown(
                items=tuple(
                    ItemTotal(
                        lot_id=row.lot_id,
                        title=row.title,
                        quantity=row.quantity,
                        unit_price=row.unit_price,
                        total_price=row.total_price,
                    )
                    for row in self.breakdown.items
                ),
                buyers_premium=PremiumResult(
                    amount=premium.amount,
                    rate=premium.rate,
                    applied_tier=premium.applied_tier.to_tier() if premium.applied_tier else None,
                ),
                tax=TaxResult(rate=tax.rate, taxable_amount=tax.taxable_amount, amount=tax.amount),
            ),
        )


class VerificationRead(BaseModel):
    accurate: bool
    error: str | None = None
    discrepancy: Rate | None = None
    checksum_valid: bool

    @classmethod
    def from_outcome(cls, outcome: VerificationOutcome, *, checksum_valid: bool) -> "VerificationRead":
        return cls(
            accurate=outcome.accurate,
            error=outcome.error,
            discrepancy=outcome.discrepancy,
            checksum_valid=checksum_valid,
        )


class RatesRead(BaseModel):
    buyers_premium_rate: Rate
    tax_rate: Rate


class RatesOverview(BaseModel):
    currency: str
    default_rates: RatesRead
    category_rates: dict[str, RatesRead] = Field(default_factory=dict)


class CategoryRatesRead(BaseModel):
    category: str
    currency: str
    rates: RatesRead
