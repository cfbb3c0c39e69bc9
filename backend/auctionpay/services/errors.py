from __future__ import annotations

from decimal import Decimal


class CalculationError(Exception):
    """Base class for every terminal failure of a totals calculation."""

    code = "calculation_error"
    # HTTP callers map input problems to 4xx and engine defects to 5xx.
    client_error = True

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class EmptyInputError(CalculationError):
    code = "empty_input"


class InvalidItemError(CalculationError):
    code = "invalid_item"

    def __init__(self, message: str, *, lot_id: str | None = None) -> None:
        super().__init__(message)
        self.lot_id = lot_id


class ZeroSubtotalError(CalculationError):
    code = "zero_subtotal"


class InvalidRateError(CalculationError):
    code = "invalid_rate"

    def __init__(self, message: str, *, rate_name: str) -> None:
        super().__init__(message)
        self.rate_name = rate_name


class NoTierMatchError(CalculationError):
    code = "no_tier_match"


class VerificationFailedError(CalculationError):
    code = "verification_failed"
    client_error = False

    def __init__(self, message: str, *, discrepancy: Decimal | None = None) -> None:
        super().__init__(message)
        self.discrepancy = discrepancy


class AmountOutOfRangeError(CalculationError):
    code = "amount_out_of_range"
