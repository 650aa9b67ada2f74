"""
Pydantic Schemas for Checkout Charge Calculation.

Inputs (procedure codes, insurance benefit snapshot) and outputs
(itemized insured and self-pay charge breakdowns).
"""

from decimal import Decimal
from typing import Literal, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from dermis_billing.core.enums import ChargeCategory, CopayType, FeeSource
from dermis_billing.schemas.fee_schedule import normalize_code

ZERO = Decimal("0.00")


# =============================================================================
# Input Schemas
# =============================================================================


class ProcedureCode(BaseModel):
    """A billable service line supplied by the encounter."""

    code: str = Field(..., min_length=1, description="CPT/HCPCS procedure code")
    description: str = Field(default="", description="Procedure description")
    units: int = Field(default=1, ge=1, description="Billed units")
    modifiers: list[str] = Field(default_factory=list, description="CPT modifiers")

    @field_validator("code")
    @classmethod
    def normalize(cls, v: str) -> str:
        v = normalize_code(v)
        if not v:
            raise ValueError("Procedure code must not be blank")
        return v

    @field_validator("modifiers")
    @classmethod
    def normalize_modifiers(cls, v: list[str]) -> list[str]:
        return [normalize_code(m) for m in v if m.strip()]


class InsuranceBenefits(BaseModel):
    """
    Patient benefit accumulation snapshot as of the encounter date.

    The snapshot is read-only: the calculator never moves accumulators,
    posting deductible usage is the payer's job.
    """

    carrier: str = Field(..., description="Insurance carrier name")
    plan: str = Field(default="", description="Plan name")
    member_id: str = Field(default="", description="Member ID")

    # Copays
    office_visit_copay: Decimal = Field(default=ZERO, ge=0)
    specialist_copay: Decimal = Field(default=ZERO, ge=0)
    procedure_copay: Optional[Decimal] = Field(
        default=None, ge=0, description="Separate procedure copay, if the plan has one"
    )

    # Deductible
    deductible_total: Decimal = Field(default=ZERO, ge=0)
    deductible_met: Decimal = Field(default=ZERO, ge=0)
    deductible_remaining: Decimal = Field(default=ZERO, ge=0)
    is_deductible_met: bool = True

    # Coinsurance (patient share, 20 means patient pays 20%)
    coinsurance_percent: Decimal = Field(default=ZERO, ge=0, le=100)

    # Plan type
    is_hdhp: bool = False
    hsa_eligible: bool = False

    @model_validator(mode="after")
    def validate_deductible(self) -> "InsuranceBenefits":
        if self.deductible_met + self.deductible_remaining != self.deductible_total:
            raise ValueError(
                f"deductible_met ({self.deductible_met}) + deductible_remaining "
                f"({self.deductible_remaining}) must equal deductible_total "
                f"({self.deductible_total})"
            )
        if self.is_deductible_met != (self.deductible_remaining == 0):
            raise ValueError(
                "is_deductible_met must be true exactly when deductible_remaining is 0"
            )
        return self

    @classmethod
    def from_accumulators(
        cls,
        carrier: str,
        deductible_total: Decimal,
        deductible_met: Decimal,
        **kwargs,
    ) -> "InsuranceBenefits":
        """Build a consistent snapshot from the payer's total/met figures."""
        total = Decimal(str(deductible_total))
        met = min(Decimal(str(deductible_met)), total)
        remaining = total - met
        return cls(
            carrier=carrier,
            deductible_total=total,
            deductible_met=met,
            deductible_remaining=remaining,
            is_deductible_met=remaining == 0,
            **kwargs,
        )


# =============================================================================
# Insured Result Schemas
# =============================================================================


class ChargeLineResult(BaseModel):
    """Insured patient responsibility for a single procedure line."""

    code: str
    description: str = ""
    category: ChargeCategory
    unit_fee: Decimal
    units: int = 1
    total_fee: Decimal
    fee_source: FeeSource

    # Patient responsibility breakdown
    copay_applied: Decimal = ZERO
    deductible_applied: Decimal = ZERO
    coinsurance_amount: Decimal = ZERO
    patient_responsibility: Decimal = ZERO
    insurance_pays: Decimal = ZERO

    # Flags
    applied_to_deductible: bool = False
    is_hsa_eligible: bool = False

    breakdown: list[str] = Field(default_factory=list)


class CopayDetails(BaseModel):
    """Visit-level copay outcome."""

    type: CopayType = CopayType.NONE
    amount: Decimal = ZERO
    waived: bool = False
    waived_reason: Optional[str] = None


class DeductibleAllocation(BaseModel):
    """Deductible absorbed by one charge category."""

    category: ChargeCategory
    category_label: str
    charges_in_category: Decimal
    deductible_applied: Decimal
    remaining_after: Decimal


class CalculationResult(BaseModel):
    """Aggregate insured checkout breakdown, derived from the charge lines."""

    kind: Literal["insured"] = "insured"

    charges: list[ChargeLineResult] = Field(default_factory=list)

    # Totals
    total_fees: Decimal = ZERO
    total_deductible_applied: Decimal = ZERO
    total_coinsurance: Decimal = ZERO
    total_copay: Decimal = ZERO
    total_insurance_pays: Decimal = ZERO
    total_patient_responsibility: Decimal = ZERO
    total_hsa_eligible: Decimal = ZERO

    deductible_remaining_after: Decimal = ZERO
    deductible_waterfall: list[DeductibleAllocation] = Field(default_factory=list)
    copay_details: CopayDetails = Field(default_factory=CopayDetails)
    summary: list[str] = Field(default_factory=list)


# =============================================================================
# Self-Pay Result Schemas
# =============================================================================


class SelfPayLineResult(BaseModel):
    """Self-pay charge for a single procedure line."""

    code: str
    description: str = ""
    category: ChargeCategory
    unit_fee: Decimal
    units: int = 1
    total_fee: Decimal
    fee_source: FeeSource
    discount: Decimal = ZERO
    patient_responsibility: Decimal = ZERO
    breakdown: list[str] = Field(default_factory=list)


class SelfPayResult(BaseModel):
    """Aggregate self-pay checkout breakdown."""

    kind: Literal["self_pay"] = "self_pay"

    charges: list[SelfPayLineResult] = Field(default_factory=list)
    subtotal: Decimal = ZERO
    discount_percent: Decimal = ZERO
    discount_applied: bool = False
    total_discount: Decimal = ZERO
    total_due: Decimal = ZERO
