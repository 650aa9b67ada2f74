"""
Checkout Summary Service.

Totals an encounter checkout: medical charges (insured or self-pay),
cosmetic treatments net of coupons, retail products and the balance
already owed on the patient account.
"""

import logging
from decimal import Decimal
from typing import Optional

from dermis_billing.core.enums import PaymentStatus
from dermis_billing.schemas.billing import ZERO, CalculationResult
from dermis_billing.schemas.checkout import CheckoutRequest, CheckoutSummary
from dermis_billing.services.charge_calculator import ChargeCalculator, FeeScheduleInput
from dermis_billing.services.fee_schedule import to_cents

logger = logging.getLogger(__name__)


def _payment_status(grand_total: Decimal, amount_paid: Decimal) -> PaymentStatus:
    if amount_paid >= grand_total:
        return PaymentStatus.PAID
    if amount_paid > 0:
        return PaymentStatus.PARTIAL
    return PaymentStatus.PENDING


def build_checkout_summary(
    request: CheckoutRequest,
    fee_schedule: FeeScheduleInput = None,
    calculator: Optional[ChargeCalculator] = None,
) -> CheckoutSummary:
    """
    Build the checkout totals for an encounter.

    Args:
        request: Checkout request with codes, benefits and retail items
        fee_schedule: Practice fee schedule (defaults only when None)
        calculator: Charge calculator (default policies when None)

    Returns:
        CheckoutSummary with grand total and payment status
    """
    calculator = calculator or ChargeCalculator()

    if request.insurance is not None:
        medical = calculator.calculate_insured_charges(
            request.procedure_codes, fee_schedule, request.insurance
        )
    else:
        medical = calculator.calculate_self_pay_charges(
            request.procedure_codes,
            fee_schedule,
            request.self_pay_discount_percent,
            apply_discount=request.apply_self_pay_discount,
        )

    if isinstance(medical, CalculationResult):
        medical_total = medical.total_patient_responsibility
    else:
        medical_total = medical.total_due

    cosmetic_subtotal = sum(
        (to_cents(c.units * c.effective_unit_price()) for c in request.cosmetic_charges), ZERO
    )
    total_discounts = sum((d.amount for d in request.discounts), ZERO)
    cosmetic_total = max(ZERO, cosmetic_subtotal - total_discounts)

    products_total = sum(
        (p.unit_price * p.quantity for p in request.product_charges), ZERO
    )

    grand_total = to_cents(
        medical_total + cosmetic_total + products_total + request.previous_balance
    )
    amount_remaining = max(ZERO, grand_total - request.amount_paid)

    summary = CheckoutSummary(
        is_self_pay=request.insurance is None,
        medical=medical,
        medical_total=medical_total,
        cosmetic_subtotal=cosmetic_subtotal,
        total_discounts=total_discounts,
        cosmetic_total=cosmetic_total,
        products_total=to_cents(products_total),
        previous_balance=request.previous_balance,
        grand_total=grand_total,
        amount_paid=request.amount_paid,
        amount_remaining=to_cents(amount_remaining),
        payment_status=_payment_status(grand_total, request.amount_paid),
        to_previous_balance=min(request.amount_paid, request.previous_balance),
        to_today_charges=max(ZERO, request.amount_paid - request.previous_balance),
    )

    logger.info(
        f"Checkout summary built: self_pay={summary.is_self_pay}, "
        f"grand_total={summary.grand_total}, status={summary.payment_status.value}"
    )
    return summary
