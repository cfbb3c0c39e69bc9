from __future__ import annotations

import logging
import time
import uuid
from decimal import Decimal, InvalidOperation, Overflow, localcontext
from typing import Any

from auctionpay.core.logging_config import correlation_id_ctx_var
from auctionpay.services import checksum as checksum_service
from auctionpay.services.audit import CALCULATION_PERFORMED, AuditEvent, AuditSink, emit_best_effort, get_audit_sink
from auctionpay.services.errors import (
    AmountOutOfRangeError,
    CalculationError,
    EmptyInputError,
    VerificationFailedError,
)
from auctionpay.services.money import MoneyConfig, money_str, to_decimal
from auctionpay.services.totals import (
    CalculationBreakdown,
    CalculationInputs,
    CalculationResult,
    calculate_buyers_premium,
    calculate_grand_total,
    calculate_subtotal,
    calculate_tax,
    item_totals,
    resolve_rate,
)
from auctionpay.services.verification import verify_figures

logger = logging.getLogger(__name__)


def _normalize_currency(value: str | None, *, fallback: str) -> str:
    code = (value or "").strip().upper()
    return code or fallback


def _compute(inputs: CalculationInputs, config: MoneyConfig) -> CalculationResult:
    if inputs.items is None or len(inputs.items) == 0:
        raise EmptyInputError("At least one item is required for calculation")
    items = tuple(inputs.items)
    currency = _normalize_currency(inputs.currency, fallback=config.currency)

    # Explicit rates are rejected up front, before any item arithmetic.
    if inputs.buyers_premium_rate is not None:
        resolve_rate(inputs.buyers_premium_rate, default=config.default_premium_rate, name="buyers_premium_rate")
    tax_rate = resolve_rate(inputs.tax_rate, default=config.default_tax_rate, name="tax_rate")

    with localcontext(config.context()):
        try:
            subtotal = calculate_subtotal(items, config=config)
            premium = calculate_buyers_premium(subtotal, inputs.buyers_premium_rate, inputs.premium_tiers, config=config)
            tax = calculate_tax(subtotal, premium.amount, tax_rate, config=config)
            grand_total = calculate_grand_total(subtotal, premium.amount, tax.amount, config=config)
            subtotal_q = config.quantize(subtotal)
            rows = item_totals(items, config=config)
        except (InvalidOperation, Overflow) as exc:
            # Cent quantization traps once integer digits exceed precision - 2.
            raise AmountOutOfRangeError(
                f"Amounts exceed {config.precision - 2} integer digits and cannot be represented in cents"
            ) from exc

        outcome = verify_figures(subtotal_q, premium.amount, tax.amount, grand_total, tolerance=config.tolerance)
        if not outcome.accurate:
            raise VerificationFailedError(outcome.error or "verification failed", discrepancy=outcome.discrepancy)

        checksum = checksum_service.generate_checksum(subtotal_q, premium.amount, tax.amount, grand_total, currency)
        breakdown = CalculationBreakdown(items=rows, buyers_premium=premium, tax=tax)

    return CalculationResult(
        subtotal=subtotal_q,
        buyers_premium_amount=premium.amount,
        tax_amount=tax.amount,
        grand_total=grand_total,
        currency=currency,
        checksum=checksum,
        breakdown=breakdown,
    )


def _rate_summary(value: object | None) -> str | None:
    if value is None:
        return None
    try:
        return format(to_decimal(value), "f")
    except ValueError:
        return str(value)


def summarize_inputs(inputs: CalculationInputs | None) -> dict[str, Any]:
    if inputs is None:
        return {"item_count": 0}
    return {
        "item_count": len(inputs.items or ()),
        "buyers_premium_rate": _rate_summary(inputs.buyers_premium_rate),
        "tax_rate": _rate_summary(inputs.tax_rate),
        "uses_tiers": inputs.uses_tiers,
        "tier_count": len(inputs.premium_tiers or ()),
        "currency": inputs.currency,
    }


def summarize_result(result: CalculationResult) -> dict[str, Any]:
    premium = result.breakdown.buyers_premium
    return {
        "subtotal": money_str(result.subtotal),
        "buyers_premium_amount": money_str(result.buyers_premium_amount),
        "tax_amount": money_str(result.tax_amount),
        "grand_total": money_str(result.grand_total),
        "currency": result.currency,
        "checksum": result.checksum,
        "premium_rate": format(premium.rate, "f"),
        "applied_tier": premium.applied_tier.name if premium.applied_tier else None,
        "tax_rate": format(result.breakdown.tax.rate, "f"),
    }


def compute(
    inputs: CalculationInputs,
    *,
    config: MoneyConfig | None = None,
    audit_sink: AuditSink | None = None,
) -> CalculationResult:
    """Compute and self-verify the totals of a sale.

    Raises the first :class:`CalculationError` encountered; a partial result is
    never returned. Exactly one ``calculation_performed`` audit event is emitted
    per call, and a failing audit sink does not change the outcome.
    """
    cfg = config if config is not None else MoneyConfig.from_settings()
    sink = audit_sink if audit_sink is not None else get_audit_sink()
    correlation_id = (inputs.correlation_id if inputs is not None else None) or str(uuid.uuid4())
    token = correlation_id_ctx_var.set(correlation_id)
    started = time.perf_counter()
    result: CalculationResult | None = None
    failure: Exception | None = None
    try:
        if inputs is None:
            raise EmptyInputError("At least one item is required for calculation")
        result = _compute(inputs, cfg)
        return result
    except CalculationError as exc:
        failure = exc
        logger.info("calculation_failed", extra={"code": exc.code, "error": exc.message})
        raise
    except Exception as exc:
        failure = exc
        raise
    finally:
        elapsed_ms = round((time.perf_counter() - started) * 1000, 3)
        error: dict[str, Any] | None = None
        if failure is not None:
            error = {"code": getattr(failure, "code", "internal_error"), "message": str(failure)}
        event = AuditEvent(
            event_type=CALCULATION_PERFORMED,
            entity_type="calculation",
            correlation_id=correlation_id,
            processing_time_ms=elapsed_ms,
            inputs=summarize_inputs(inputs),
            results=summarize_result(result) if result is not None else None,
            error=error,
        )
        emit_best_effort(sink, event)
        correlation_id_ctx_var.reset(token)


def validate_calculation_inputs(inputs: CalculationInputs) -> list[str]:
    """Collect every input problem at once, without computing anything."""
    errors: list[str] = []
    if not inputs.items:
        errors.append("At least one item is required")
    else:
        for index, item in enumerate(inputs.items, start=1):
            if not (item.lot_id or "").strip():
                errors.append(f"Item {index}: lot_id is required")
            if not (item.title or "").strip():
                errors.append(f"Item {index}: title is required")
            quantity = item.quantity
            if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
                errors.append(f"Item {index}: quantity must be greater than 0")
            try:
                price_ok = to_decimal(item.unit_price) >= 0
            except ValueError:
                price_ok = False
            if not price_ok:
                errors.append(f"Item {index}: unit_price must be a non-negative number")

    for value, message in (
        (inputs.buyers_premium_rate, "Buyer's premium rate must be between 0 and 1"),
        (inputs.tax_rate, "Tax rate must be between 0 and 1"),
    ):
        if value is None:
            continue
        try:
            rate = to_decimal(value)
        except ValueError:
            errors.append(message)
            continue
        if rate < Decimal(0) or rate > Decimal(1):
            errors.append(message)

    for index, tier in enumerate(inputs.premium_tiers or (), start=1):
        try:
            tier_rate = to_decimal(tier.rate)
            low = to_decimal(tier.min_amount)
            high = None if tier.max_amount is None else to_decimal(tier.max_amount)
        except ValueError:
            errors.append(f"Premium tier {index}: rate and bounds must be numbers")
            continue
        if tier_rate < 0 or tier_rate > 1:
            errors.append(f"Premium tier {index}: rate must be between 0 and 1")
        if high is not None and high <= low:
            errors.append(f"Premium tier {index}: max_amount must be greater than min_amount")
    return errors
