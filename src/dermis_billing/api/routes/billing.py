"""
Checkout Billing API Endpoints.

Provides:
- Insured charge calculation
- Self-pay charge calculation
- Full checkout summary (medical, cosmetic, products, prior balance)
"""

from decimal import Decimal
from typing import Optional, Union

from fastapi import APIRouter
from pydantic import BaseModel, Field

from dermis_billing.core.enums import CopayPolicy, DeductiblePolicy, UnknownCodePolicy
from dermis_billing.schemas.billing import (
    CalculationResult,
    InsuranceBenefits,
    ProcedureCode,
    SelfPayResult,
)
from dermis_billing.schemas.checkout import CheckoutRequest, CheckoutSummary
from dermis_billing.schemas.fee_schedule import FeeScheduleConfig
from dermis_billing.services.charge_calculator import ChargeCalculator
from dermis_billing.services.checkout import build_checkout_summary
from dermis_billing.services.errors import ChargeCalculationError
from dermis_billing.utils.errors import to_http_error
from dermis_billing.utils.logging import get_logger

logger = get_logger(__name__)

# Full config ({"practice_rates": ..., "modifier_factors": ...}) or a plain code->fee map
FeeScheduleField = Union[FeeScheduleConfig, dict[str, Decimal]]

router = APIRouter(
    prefix="/api/v1/billing",
    tags=["billing"],
)


# =============================================================================
# Request Schemas
# =============================================================================


class CalculationOptions(BaseModel):
    """Per-request policy overrides; unset fields use BILLING_* settings."""

    deductible_policy: Optional[DeductiblePolicy] = None
    copay_policy: Optional[CopayPolicy] = None
    unknown_code_policy: Optional[UnknownCodePolicy] = None

    def calculator(self) -> ChargeCalculator:
        return ChargeCalculator(
            deductible_policy=self.deductible_policy,
            copay_policy=self.copay_policy,
            unknown_code_policy=self.unknown_code_policy,
        )


class InsuredChargesRequest(BaseModel):
    """Request for an insured charge calculation."""

    procedure_codes: list[ProcedureCode] = Field(default_factory=list)
    fee_schedule: FeeScheduleField = Field(
        default_factory=dict, description="Practice fee per code, or a full fee schedule"
    )
    insurance: InsuranceBenefits
    options: CalculationOptions = Field(default_factory=CalculationOptions)


class SelfPayChargesRequest(BaseModel):
    """Request for a self-pay charge calculation."""

    procedure_codes: list[ProcedureCode] = Field(default_factory=list)
    fee_schedule: FeeScheduleField = Field(default_factory=dict)
    discount_percent: Optional[Decimal] = Field(default=None, ge=0, le=100)
    apply_discount: bool = True
    unknown_code_policy: Optional[UnknownCodePolicy] = None


class CheckoutSummaryRequest(CheckoutRequest):
    """Checkout request with the practice fee schedule attached."""

    fee_schedule: FeeScheduleField = Field(default_factory=dict)
    options: CalculationOptions = Field(default_factory=CalculationOptions)


# =============================================================================
# Endpoints
# =============================================================================


@router.post("/insured", response_model=CalculationResult)
async def calculate_insured(request: InsuredChargesRequest) -> CalculationResult:
    """Calculate insured patient responsibility for a set of procedure codes."""
    try:
        return request.options.calculator().calculate_insured_charges(
            request.procedure_codes,
            request.fee_schedule,
            request.insurance,
        )
    except ChargeCalculationError as e:
        logger.warning(f"Insured calculation rejected: {e.message}")
        raise to_http_error(e) from e


@router.post("/self-pay", response_model=SelfPayResult)
async def calculate_self_pay(request: SelfPayChargesRequest) -> SelfPayResult:
    """Calculate self-pay charges with the practice discount."""
    calculator = ChargeCalculator(unknown_code_policy=request.unknown_code_policy)
    try:
        return calculator.calculate_self_pay_charges(
            request.procedure_codes,
            request.fee_schedule,
            request.discount_percent,
            apply_discount=request.apply_discount,
        )
    except ChargeCalculationError as e:
        logger.warning(f"Self-pay calculation rejected: {e.message}")
        raise to_http_error(e) from e


@router.post("/checkout", response_model=CheckoutSummary)
async def checkout_summary(request: CheckoutSummaryRequest) -> CheckoutSummary:
    """Total an encounter checkout."""
    try:
        return build_checkout_summary(
            request,
            request.fee_schedule,
            calculator=request.options.calculator(),
        )
    except ChargeCalculationError as e:
        logger.warning(f"Checkout summary rejected: {e.message}")
        raise to_http_error(e) from e
