from typing import Any

from pydantic import BaseModel

from auctionpay.services.errors import CalculationError


class ErrorResponse(BaseModel):
    detail: Any
    code: str | None = None

    @classmethod
    def from_calculation_error(cls, exc: CalculationError) -> "ErrorResponse":
        return cls(detail=exc.message, code=exc.code)

    @classmethod
    def invalid_inputs(cls, errors: list[str]) -> "ErrorResponse":
        return cls(detail=list(errors), code="invalid_inputs")
