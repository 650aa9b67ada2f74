"""
Pydantic Schemas for Checkout Billing.

This module exports the calculator inputs/outputs and checkout schemas.
"""

from dermis_billing.schemas.billing import (
    CalculationResult,
    ChargeLineResult,
    CopayDetails,
    DeductibleAllocation,
    InsuranceBenefits,
    ProcedureCode,
    SelfPayLineResult,
    SelfPayResult,
)
from dermis_billing.schemas.checkout import (
    CheckoutRequest,
    CheckoutSummary,
    CosmeticCharge,
    CouponDiscount,
    ProductCharge,
)
from dermis_billing.schemas.fee_schedule import (
    CategoryProfile,
    CategoryRule,
    CategoryTable,
    FeeResolution,
    FeeScheduleConfig,
)

__all__ = [
    # Billing
    "CalculationResult",
    "ChargeLineResult",
    "CopayDetails",
    "DeductibleAllocation",
    "InsuranceBenefits",
    "ProcedureCode",
    "SelfPayLineResult",
    "SelfPayResult",
    # Checkout
    "CheckoutRequest",
    "CheckoutSummary",
    "CosmeticCharge",
    "CouponDiscount",
    "ProductCharge",
    # Fee schedule
    "CategoryProfile",
    "CategoryRule",
    "CategoryTable",
    "FeeResolution",
    "FeeScheduleConfig",
]
