"""
Services Layer for Checkout Billing.

Exports fee resolution, charge calculation and checkout summary services.
"""

from dermis_billing.services.charge_calculator import (
    ChargeCalculator,
    calculate_insured_charges,
    calculate_self_pay_charges,
)
from dermis_billing.services.checkout import build_checkout_summary
from dermis_billing.services.errors import (
    ChargeCalculationError,
    InvalidInputError,
    UnknownCodeError,
)
from dermis_billing.services.fee_schedule import FeeResolver, resolve_fee

__all__ = [
    # Charge calculation
    "ChargeCalculator",
    "calculate_insured_charges",
    "calculate_self_pay_charges",
    # Checkout
    "build_checkout_summary",
    # Fee schedule
    "FeeResolver",
    "resolve_fee",
    # Errors
    "ChargeCalculationError",
    "InvalidInputError",
    "UnknownCodeError",
]
