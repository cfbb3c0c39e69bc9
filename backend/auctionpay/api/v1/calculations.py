from fastapi import APIRouter, Query, Request, status
from fastapi.responses import JSONResponse

from auctionpay.core import metrics
from auctionpay.core.config import settings
from auctionpay.schemas.calculation import (
    CalculationRequest,
    CalculationResultRead,
    CategoryRatesRead,
    RatesOverview,
    RatesRead,
    VerificationRead,
)
from auctionpay.schemas.error import ErrorResponse
from auctionpay.services import calculations as calculations_service
from auctionpay.services import checksum as checksum_service
from auctionpay.services import verification as verification_service
from auctionpay.services.errors import CalculationError
from auctionpay.services.money import MoneyConfig

router = APIRouter(prefix="/calculations", tags=["calculations"])


def _default_rates() -> RatesRead:
    return RatesRead(buyers_premium_rate=settings.default_buyers_premium_rate, tax_rate=settings.default_tax_rate)


@router.get("/rates", response_model=RatesOverview | CategoryRatesRead)
def read_rates(category: str | None = Query(default=None, max_length=40)) -> RatesOverview | CategoryRatesRead:
    defaults = _default_rates()
    table = {name.lower(): RatesRead(**rates) for name, rates in settings.category_rates.items()}
    if category:
        key = category.strip().lower()
        return CategoryRatesRead(category=key, currency=settings.default_currency, rates=table.get(key, defaults))
    return RatesOverview(currency=settings.default_currency, default_rates=defaults, category_rates=table)


@router.post("/preview", response_model=CalculationResultRead)
def preview_calculation(body: CalculationRequest, request: Request):
    inputs = body.to_inputs(correlation_id=getattr(request.state, "request_id", None))
    errors = calculations_service.validate_calculation_inputs(inputs)
    if errors:
        metrics.record(metrics.CALCULATIONS_FAILED, code="invalid_inputs")
        payload = ErrorResponse.invalid_inputs(errors)
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content=payload.model_dump())
    try:
        result = calculations_service.compute(inputs, config=MoneyConfig.from_settings())
    except CalculationError as exc:
        metrics.record(metrics.CALCULATIONS_FAILED, code=exc.code)
        if exc.code == "verification_failed":
            metrics.record(metrics.VERIFICATION_FAILURES)
        raise
    metrics.record(metrics.CALCULATIONS_PERFORMED)
    return CalculationResultRead.from_result(result)


@router.post("/verify", response_model=VerificationRead)
def verify_calculation(payload: CalculationResultRead) -> VerificationRead:
    result = payload.to_result()
    outcome = verification_service.verify(result, tolerance=settings.verification_tolerance)
    if not outcome.accurate:
        metrics.record(metrics.VERIFICATION_FAILURES)
    return VerificationRead.from_outcome(outcome, checksum_valid=checksum_service.checksum_matches(result))
