"""
Checkout Charge Calculator.

Computes patient responsibility for the procedure codes of an encounter:
- Fee resolution (practice schedule, default table, unknown-code policy)
- Deductible application against the benefit snapshot
- Flat copay selection by charge category
- Coinsurance on the post-copay amount
- HSA eligibility tagging for HDHP members
- Self-pay discounting

The calculator is pure: it reads its inputs, never mutates them and keeps
no state between calls, so re-running it (e.g. when the self-pay discount
is toggled) always starts from scratch.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any, Mapping, Optional, Sequence, Union

from pydantic import ValidationError as PydanticValidationError

from dermis_billing.core.config import BillingSettings, get_billing_settings
from dermis_billing.core.enums import (
    ChargeCategory,
    CopayPolicy,
    CopayType,
    DeductiblePolicy,
    FeeSource,
    UnknownCodePolicy,
)
from dermis_billing.schemas.billing import (
    ZERO,
    CalculationResult,
    ChargeLineResult,
    CopayDetails,
    DeductibleAllocation,
    InsuranceBenefits,
    ProcedureCode,
    SelfPayLineResult,
    SelfPayResult,
)
from dermis_billing.schemas.fee_schedule import CategoryProfile, CategoryTable, FeeScheduleConfig
from dermis_billing.services.errors import InvalidInputError, UnknownCodeError
from dermis_billing.services.fee_schedule import FeeResolver, to_cents

logger = logging.getLogger(__name__)

HUNDRED = Decimal("100")

ProcedureCodeInput = Union[ProcedureCode, Mapping[str, Any], str]
FeeScheduleInput = Union[FeeScheduleConfig, Mapping[str, Any], None]
InsuranceInput = Union[InsuranceBenefits, Mapping[str, Any]]


def _money(amount: Decimal) -> str:
    return f"${amount:,.2f}"


def _percent(value: Decimal) -> str:
    return format(value.normalize(), "f")


@dataclass(frozen=True)
class _PricedLine:
    """A procedure code with its category and resolved fee."""

    procedure: ProcedureCode
    category: ChargeCategory
    profile: CategoryProfile
    unit_fee: Decimal
    total_fee: Decimal
    source: FeeSource

    def fee_breakdown(self) -> list[str]:
        steps = []
        if self.source == FeeSource.UNKNOWN:
            steps.append(
                f"WARNING: {self.procedure.code} not in fee schedule, billed at {_money(ZERO)}"
            )
        if self.procedure.units > 1:
            steps.append(
                f"Fee: {self.procedure.units} x {_money(self.unit_fee)} = {_money(self.total_fee)}"
            )
        else:
            steps.append(f"Fee: {_money(self.total_fee)}")
        return steps


class ChargeCalculator:
    """
    Checkout charge calculation engine.

    Policies default to the values in BillingSettings and can be
    overridden per calculator.
    """

    def __init__(
        self,
        settings: Optional[BillingSettings] = None,
        categories: Optional[CategoryTable] = None,
        deductible_policy: Optional[Union[DeductiblePolicy, str]] = None,
        copay_policy: Optional[Union[CopayPolicy, str]] = None,
        unknown_code_policy: Optional[Union[UnknownCodePolicy, str]] = None,
    ):
        """
        Initialize charge calculator.

        Args:
            settings: Billing settings (defaults from environment)
            categories: Code-range classification table
            deductible_policy: Override for BILLING_DEDUCTIBLE_POLICY
            copay_policy: Override for BILLING_COPAY_POLICY
            unknown_code_policy: Override for BILLING_UNKNOWN_CODE_POLICY
        """
        self.settings = settings or get_billing_settings()
        self.categories = categories or CategoryTable()
        self.deductible_policy = DeductiblePolicy(
            deductible_policy or self.settings.DEDUCTIBLE_POLICY
        )
        self.copay_policy = CopayPolicy(copay_policy or self.settings.COPAY_POLICY)
        self.unknown_code_policy = UnknownCodePolicy(
            unknown_code_policy or self.settings.UNKNOWN_CODE_POLICY
        )

    # =========================================================================
    # Insured
    # =========================================================================

    def calculate_insured_charges(
        self,
        procedure_codes: Sequence[ProcedureCodeInput],
        fee_schedule: FeeScheduleInput,
        insurance: InsuranceInput,
    ) -> CalculationResult:
        """
        Calculate insured patient responsibility for an encounter.

        Codes are evaluated in the order supplied; order decides which
        line carries the visit copay under the per-visit copay policy.

        Args:
            procedure_codes: Billable procedure lines
            fee_schedule: FeeScheduleConfig or plain code->fee mapping
            insurance: Benefit accumulation snapshot

        Returns:
            CalculationResult with itemized charges and totals

        Raises:
            InvalidInputError: Malformed or inconsistent inputs
            UnknownCodeError: Codes without a fee under the reject policy
        """
        benefits = self._coerce_insurance(insurance)
        lines = self._price_lines(procedure_codes, fee_schedule)

        snapshot_remaining = benefits.deductible_remaining
        running_remaining = snapshot_remaining
        # Unpaid part of the visit copay; None until a line sets it
        visit_copay_due: Optional[Decimal] = None
        copay_type = CopayType.NONE
        charges: list[ChargeLineResult] = []

        for line in lines:
            if self.deductible_policy == DeductiblePolicy.RUNNING:
                remaining = running_remaining
            else:
                remaining = snapshot_remaining

            if not benefits.is_deductible_met and remaining > 0:
                charge = self._deductible_line(line, benefits, remaining)
                running_remaining = max(ZERO, running_remaining - charge.deductible_applied)
            else:
                candidate = self._copay_for(line.profile.copay_type, benefits)
                if candidate > 0 and visit_copay_due is None:
                    visit_copay_due = candidate
                    copay_type = line.profile.copay_type
                charge = self._copay_line(line, benefits, visit_copay_due)
                if visit_copay_due is not None:
                    visit_copay_due = max(ZERO, visit_copay_due - charge.copay_applied)
            charges.append(charge)

        uncollected = ZERO
        if self.copay_policy == CopayPolicy.PER_VISIT and visit_copay_due is not None:
            uncollected = visit_copay_due
        result = self._build_result(charges, benefits, copay_type, uncollected)

        logger.info(
            f"Insured charge calculation complete: carrier={benefits.carrier}, "
            f"lines={len(charges)}, "
            f"deductible_policy={self.deductible_policy.value}, "
            f"patient_resp={result.total_patient_responsibility}"
        )
        return result

    def _deductible_line(
        self,
        line: _PricedLine,
        benefits: InsuranceBenefits,
        remaining: Decimal,
    ) -> ChargeLineResult:
        """Deductible not met: patient owes the fee up to the remaining deductible."""
        deductible = to_cents(min(line.total_fee, remaining))
        insurance_pays = line.total_fee - deductible

        breakdown = line.fee_breakdown()
        breakdown.append(f"Deductible remaining: {_money(remaining)}")
        breakdown.append(f"Deductible applied: {_money(deductible)}")
        if insurance_pays > 0:
            breakdown.append(f"Insurance pays: {_money(insurance_pays)}")
        breakdown.append(f"You owe: {_money(deductible)}")

        return ChargeLineResult(
            code=line.procedure.code,
            description=line.procedure.description,
            category=line.category,
            unit_fee=line.unit_fee,
            units=line.procedure.units,
            total_fee=line.total_fee,
            fee_source=line.source,
            deductible_applied=deductible,
            patient_responsibility=deductible,
            insurance_pays=insurance_pays,
            applied_to_deductible=deductible > 0,
            is_hsa_eligible=self._is_hsa_eligible(line, benefits),
            breakdown=breakdown,
        )

    def _copay_line(
        self,
        line: _PricedLine,
        benefits: InsuranceBenefits,
        visit_copay_due: Optional[Decimal],
    ) -> ChargeLineResult:
        """
        Deductible met: patient owes copay plus coinsurance on the rest.

        Under the per-visit policy a line pays at most what is still due
        on the visit copay, so a line cheaper than the copay leaves the
        balance for the next copay-bearing line.
        """
        breakdown = line.fee_breakdown()
        breakdown.append("Deductible met")

        candidate = self._copay_for(line.profile.copay_type, benefits)
        if (
            candidate > 0
            and visit_copay_due is not None
            and self.copay_policy == CopayPolicy.PER_VISIT
        ):
            if visit_copay_due == 0:
                breakdown.append("Copay already collected for this visit")
            candidate = visit_copay_due
        copay = min(candidate, line.total_fee)
        if copay > 0:
            breakdown.append(f"{line.profile.copay_type.value.title()} copay: {_money(copay)}")

        coinsurance = ZERO
        percent = benefits.coinsurance_percent
        if percent > 0:
            base = line.total_fee - copay
            coinsurance = to_cents(base * percent / HUNDRED)
            breakdown.append(
                f"{_percent(percent)}% coinsurance on {_money(base)}: {_money(coinsurance)}"
            )

        patient = copay + coinsurance
        insurance_pays = line.total_fee - patient
        if insurance_pays > 0:
            breakdown.append(f"Insurance pays: {_money(insurance_pays)}")
        breakdown.append(f"You owe: {_money(patient)}")

        return ChargeLineResult(
            code=line.procedure.code,
            description=line.procedure.description,
            category=line.category,
            unit_fee=line.unit_fee,
            units=line.procedure.units,
            total_fee=line.total_fee,
            fee_source=line.source,
            copay_applied=copay,
            coinsurance_amount=coinsurance,
            patient_responsibility=patient,
            insurance_pays=insurance_pays,
            is_hsa_eligible=self._is_hsa_eligible(line, benefits),
            breakdown=breakdown,
        )

    @staticmethod
    def _copay_for(copay_type: CopayType, benefits: InsuranceBenefits) -> Decimal:
        if copay_type == CopayType.OFFICE:
            return benefits.office_visit_copay
        if copay_type == CopayType.SPECIALIST:
            return benefits.specialist_copay
        if copay_type == CopayType.PROCEDURE:
            if benefits.procedure_copay is not None:
                return benefits.procedure_copay
            return benefits.specialist_copay
        return ZERO

    @staticmethod
    def _is_hsa_eligible(line: _PricedLine, benefits: InsuranceBenefits) -> bool:
        return benefits.is_hdhp and benefits.hsa_eligible and line.profile.deductible_eligible

    def _build_result(
        self,
        charges: list[ChargeLineResult],
        benefits: InsuranceBenefits,
        copay_type: CopayType,
        uncollected_copay: Decimal = ZERO,
    ) -> CalculationResult:
        """Roll the charge lines up into visit totals."""
        total_deductible = sum((c.deductible_applied for c in charges), ZERO)
        total_coinsurance = sum((c.coinsurance_amount for c in charges), ZERO)
        total_copay = sum((c.copay_applied for c in charges), ZERO)
        total_patient = sum((c.patient_responsibility for c in charges), ZERO)
        total_hsa = sum((c.total_fee for c in charges if c.is_hsa_eligible), ZERO)
        remaining_after = to_cents(max(ZERO, benefits.deductible_remaining - total_deductible))

        waived = not benefits.is_deductible_met and total_copay == 0
        copay_details = CopayDetails(
            type=copay_type,
            amount=total_copay,
            waived=waived,
            waived_reason="Copay waived - applying charges to deductible" if waived else None,
        )
        summary: list[str] = []

        if waived:
            summary.append("Deductible not yet met - charges applied to deductible first")
        elif total_copay > 0:
            summary.append(f"{copay_type.value.title()} copay of {_money(total_copay)} collected")
        if uncollected_copay > 0:
            summary.append(
                f"Visit copay short by {_money(uncollected_copay)}: charges below copay amount"
            )

        if total_deductible > 0:
            summary.append(f"{_money(total_deductible)} applied to deductible")
            summary.append(f"Deductible remaining after visit: {_money(remaining_after)}")
        if total_coinsurance > 0:
            summary.append(
                f"Patient coinsurance ({_percent(benefits.coinsurance_percent)}%): "
                f"{_money(total_coinsurance)}"
            )
        if benefits.is_hdhp and benefits.hsa_eligible:
            summary.append(f"HSA-eligible amount: {_money(total_hsa)}")

        return CalculationResult(
            charges=charges,
            total_fees=sum((c.total_fee for c in charges), ZERO),
            total_deductible_applied=total_deductible,
            total_coinsurance=total_coinsurance,
            total_copay=total_copay,
            total_insurance_pays=sum((c.insurance_pays for c in charges), ZERO),
            total_patient_responsibility=total_patient,
            total_hsa_eligible=total_hsa,
            deductible_remaining_after=remaining_after,
            deductible_waterfall=self._deductible_waterfall(charges, benefits),
            copay_details=copay_details,
            summary=summary,
        )

    def _deductible_waterfall(
        self,
        charges: list[ChargeLineResult],
        benefits: InsuranceBenefits,
    ) -> list[DeductibleAllocation]:
        """Deductible absorbed per category, in category order."""
        cursor = benefits.deductible_remaining
        waterfall = []
        for category in self.categories.order():
            in_category = [c for c in charges if c.category == category]
            if not in_category:
                continue
            applied = sum((c.deductible_applied for c in in_category), ZERO)
            cursor = to_cents(max(ZERO, cursor - applied))
            waterfall.append(
                DeductibleAllocation(
                    category=category,
                    category_label=self.categories.profile(category).label,
                    charges_in_category=sum((c.total_fee for c in in_category), ZERO),
                    deductible_applied=applied,
                    remaining_after=cursor,
                )
            )
        return waterfall

    # =========================================================================
    # Self-Pay
    # =========================================================================

    def calculate_self_pay_charges(
        self,
        procedure_codes: Sequence[ProcedureCodeInput],
        fee_schedule: FeeScheduleInput,
        discount_percent: Optional[Union[Decimal, int, float, str]] = None,
        apply_discount: bool = True,
    ) -> SelfPayResult:
        """
        Calculate self-pay charges with the practice discount.

        Args:
            procedure_codes: Billable procedure lines
            fee_schedule: FeeScheduleConfig or plain code->fee mapping
            discount_percent: Discount percent (defaults to
                BILLING_SELF_PAY_DISCOUNT_PERCENT)
            apply_discount: Discount toggle from the checkout screen

        Returns:
            SelfPayResult with itemized charges and total due
        """
        percent = self._coerce_percent(discount_percent)
        lines = self._price_lines(procedure_codes, fee_schedule)
        effective = percent if apply_discount else ZERO

        charges = []
        for line in lines:
            discount = to_cents(line.total_fee * effective / HUNDRED)
            breakdown = line.fee_breakdown()
            if discount > 0:
                breakdown.append(
                    f"{_percent(effective)}% self-pay discount: -{_money(discount)}"
                )
            breakdown.append(f"You owe: {_money(line.total_fee - discount)}")
            charges.append(
                SelfPayLineResult(
                    code=line.procedure.code,
                    description=line.procedure.description,
                    category=line.category,
                    unit_fee=line.unit_fee,
                    units=line.procedure.units,
                    total_fee=line.total_fee,
                    fee_source=line.source,
                    discount=discount,
                    patient_responsibility=line.total_fee - discount,
                    breakdown=breakdown,
                )
            )

        subtotal = sum((c.total_fee for c in charges), ZERO)
        total_discount = sum((c.discount for c in charges), ZERO)
        result = SelfPayResult(
            charges=charges,
            subtotal=subtotal,
            discount_percent=percent,
            discount_applied=apply_discount and percent > 0,
            total_discount=total_discount,
            total_due=sum((c.patient_responsibility for c in charges), ZERO),
        )

        logger.info(
            f"Self-pay charge calculation complete: lines={len(charges)}, "
            f"discount={_percent(effective)}%, total_due={result.total_due}"
        )
        return result

    # =========================================================================
    # Input handling
    # =========================================================================

    def _price_lines(
        self,
        procedure_codes: Sequence[ProcedureCodeInput],
        fee_schedule: FeeScheduleInput,
    ) -> list[_PricedLine]:
        """Validate inputs, classify and price every line before computing."""
        procedures = self._coerce_codes(procedure_codes)
        try:
            config = FeeScheduleConfig.from_mapping(fee_schedule)
        except PydanticValidationError as exc:
            raise InvalidInputError.from_validation_error(exc, prefix="fee_schedule") from exc
        except (TypeError, ValueError) as exc:
            raise InvalidInputError(f"Invalid fee schedule: {exc}") from exc

        resolver = FeeResolver(config)
        lines = []
        for procedure in procedures:
            fee = resolver.resolve(procedure.code, procedure.modifiers)
            category = self.categories.classify(procedure.code)
            lines.append(
                _PricedLine(
                    procedure=procedure,
                    category=category,
                    profile=self.categories.profile(category),
                    unit_fee=fee.unit_fee,
                    total_fee=to_cents(fee.unit_fee * procedure.units),
                    source=fee.source,
                )
            )

        unknown = list(
            dict.fromkeys(
                line.procedure.code for line in lines if line.source == FeeSource.UNKNOWN
            )
        )
        if unknown and self.unknown_code_policy == UnknownCodePolicy.REJECT:
            raise UnknownCodeError(unknown)
        return lines

    @staticmethod
    def _coerce_codes(procedure_codes: Sequence[ProcedureCodeInput]) -> list[ProcedureCode]:
        procedures = []
        for index, item in enumerate(procedure_codes):
            if isinstance(item, ProcedureCode):
                procedures.append(item)
                continue
            try:
                if isinstance(item, str):
                    procedures.append(ProcedureCode(code=item))
                else:
                    procedures.append(ProcedureCode.model_validate(item))
            except PydanticValidationError as exc:
                raise InvalidInputError.from_validation_error(
                    exc, prefix=f"procedure_codes.{index}"
                ) from exc
        return procedures

    @staticmethod
    def _coerce_insurance(insurance: InsuranceInput) -> InsuranceBenefits:
        if isinstance(insurance, InsuranceBenefits):
            return insurance
        if insurance is None:
            raise InvalidInputError(
                "Insurance benefits are required for an insured calculation",
                errors=[{"field": "insurance", "message": "Field required"}],
            )
        try:
            return InsuranceBenefits.model_validate(insurance)
        except PydanticValidationError as exc:
            raise InvalidInputError.from_validation_error(exc, prefix="insurance") from exc

    def _coerce_percent(self, value: Optional[Union[Decimal, int, float, str]]) -> Decimal:
        if value is None:
            return self.settings.SELF_PAY_DISCOUNT_PERCENT
        try:
            percent = Decimal(str(value))
        except InvalidOperation as exc:
            raise InvalidInputError(
                f"Discount percent must be a number, got {value!r}",
                errors=[{"field": "discount_percent", "message": "Invalid number"}],
            ) from exc
        if not percent.is_finite():
            raise InvalidInputError(
                f"Discount percent must be a finite number, got {value!r}",
                errors=[{"field": "discount_percent", "message": "Invalid number"}],
            )
        if not ZERO <= percent <= HUNDRED:
            raise InvalidInputError(
                f"Discount percent must be between 0 and 100, got {percent}",
                errors=[{"field": "discount_percent", "message": "Out of range [0, 100]"}],
            )
        return percent


# =============================================================================
# Module-level API
# =============================================================================


def calculate_insured_charges(
    procedure_codes: Sequence[ProcedureCodeInput],
    fee_schedule: FeeScheduleInput,
    insurance: InsuranceInput,
    *,
    deductible_policy: Optional[Union[DeductiblePolicy, str]] = None,
    copay_policy: Optional[Union[CopayPolicy, str]] = None,
    unknown_code_policy: Optional[Union[UnknownCodePolicy, str]] = None,
    categories: Optional[CategoryTable] = None,
) -> CalculationResult:
    """Calculate insured charges; see ChargeCalculator.calculate_insured_charges."""
    calculator = ChargeCalculator(
        categories=categories,
        deductible_policy=deductible_policy,
        copay_policy=copay_policy,
        unknown_code_policy=unknown_code_policy,
    )
    return calculator.calculate_insured_charges(procedure_codes, fee_schedule, insurance)


def calculate_self_pay_charges(
    procedure_codes: Sequence[ProcedureCodeInput],
    fee_schedule: FeeScheduleInput,
    discount_percent: Optional[Union[Decimal, int, float, str]] = None,
    *,
    apply_discount: bool = True,
    unknown_code_policy: Optional[Union[UnknownCodePolicy, str]] = None,
    categories: Optional[CategoryTable] = None,
) -> SelfPayResult:
    """Calculate self-pay charges; see ChargeCalculator.calculate_self_pay_charges."""
    calculator = ChargeCalculator(categories=categories, unknown_code_policy=unknown_code_policy)
    return calculator.calculate_self_pay_charges(
        procedure_codes, fee_schedule, discount_percent, apply_discount
    )
