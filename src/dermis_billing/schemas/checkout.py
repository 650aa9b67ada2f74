"""
Pydantic Schemas for the Checkout Summary.

A checkout combines the medical charge calculation with cosmetic
treatments, coupon discounts, retail products and any balance carried
on the patient account.
"""

from decimal import Decimal
from typing import Optional, Union

from pydantic import BaseModel, Field

from dermis_billing.core.enums import DiscountType, PaymentStatus
from dermis_billing.schemas.billing import (
    ZERO,
    CalculationResult,
    InsuranceBenefits,
    ProcedureCode,
    SelfPayResult,
)

# Per-unit default prices for cosmetic treatments (botox/dysport per unit)
DEFAULT_COSMETIC_PRICES: dict[str, Decimal] = {
    "botox": Decimal("12.00"),
    "dysport": Decimal("4.00"),
    "filler": Decimal("600.00"),
    "laser": Decimal("350.00"),
    "chemical_peel": Decimal("200.00"),
    "microneedling": Decimal("400.00"),
}


class CosmeticCharge(BaseModel):
    """Cosmetic (non-covered) treatment performed at the encounter."""

    treatment_type: str = Field(..., min_length=1)
    description: str = ""
    units: Decimal = Field(default=Decimal("1"), gt=0)
    unit_price: Optional[Decimal] = Field(
        default=None, ge=0, description="Overrides the default cosmetic price"
    )

    def effective_unit_price(self) -> Decimal:
        if self.unit_price is not None:
            return self.unit_price
        return DEFAULT_COSMETIC_PRICES.get(self.treatment_type.strip().lower(), ZERO)


class CouponDiscount(BaseModel):
    """Loyalty program or custom discount against cosmetic charges."""

    type: DiscountType
    amount: Decimal = Field(..., ge=0)
    description: str = ""


class ProductCharge(BaseModel):
    """Retail skincare product sold at checkout."""

    product_id: str
    product_name: str = ""
    quantity: int = Field(default=1, ge=1)
    unit_price: Decimal = Field(..., ge=0)


class CheckoutRequest(BaseModel):
    """Everything needed to total an encounter checkout."""

    procedure_codes: list[ProcedureCode] = Field(default_factory=list)
    insurance: Optional[InsuranceBenefits] = None
    apply_self_pay_discount: bool = True
    self_pay_discount_percent: Optional[Decimal] = Field(default=None, ge=0, le=100)

    cosmetic_charges: list[CosmeticCharge] = Field(default_factory=list)
    discounts: list[CouponDiscount] = Field(default_factory=list)
    product_charges: list[ProductCharge] = Field(default_factory=list)

    previous_balance: Decimal = Field(default=ZERO, ge=0)
    amount_paid: Decimal = Field(default=ZERO, ge=0)


class CheckoutSummary(BaseModel):
    """Totals presented to the front desk at checkout."""

    is_self_pay: bool
    medical: Union[CalculationResult, SelfPayResult] = Field(..., discriminator="kind")
    medical_total: Decimal = ZERO

    cosmetic_subtotal: Decimal = ZERO
    total_discounts: Decimal = ZERO
    cosmetic_total: Decimal = ZERO

    products_total: Decimal = ZERO
    previous_balance: Decimal = ZERO

    grand_total: Decimal = ZERO
    amount_paid: Decimal = ZERO
    amount_remaining: Decimal = ZERO
    payment_status: PaymentStatus = PaymentStatus.PENDING

    # Payment allocation: prior balance is settled first
    to_previous_balance: Decimal = ZERO
    to_today_charges: Decimal = ZERO
