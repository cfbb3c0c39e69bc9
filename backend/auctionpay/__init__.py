from auctionpay.services.calculations import compute, validate_calculation_inputs  # noqa: F401
from auctionpay.services.checksum import checksum_matches, generate_checksum  # noqa: F401
from auctionpay.services.errors import (  # noqa: F401
    AmountOutOfRangeError,
    CalculationError,
    EmptyInputError,
    InvalidItemError,
    InvalidRateError,
    NoTierMatchError,
    VerificationFailedError,
    ZeroSubtotalError,
)
from auctionpay.services.money import MoneyConfig  # noqa: F401
from auctionpay.services.totals import CalculationInputs, CalculationResult, LineItem, PremiumTier  # noqa: F401
from auctionpay.services.verification import VerificationOutcome, verify  # noqa: F401
