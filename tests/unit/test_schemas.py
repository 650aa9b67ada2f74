"""
Unit Tests for Pydantic Schemas
Tests input validation and normalization
"""

from decimal import Decimal

import pytest
from pydantic import ValidationError

from dermis_billing.schemas import (
    CheckoutSummary,
    InsuranceBenefits,
    ProcedureCode,
    SelfPayResult,
)
from dermis_billing.services.errors import InvalidInputError, UnknownCodeError


@pytest.mark.unit
class TestProcedureCode:
    """Test procedure line validation"""

    def test_code_normalized(self):
        procedure = ProcedureCode(code=" j3301 ", modifiers=["lt", " "])

        assert procedure.code == "J3301"
        assert procedure.modifiers == ["LT"]
        assert procedure.units == 1

    def test_blank_code_rejected(self):
        with pytest.raises(ValidationError):
            ProcedureCode(code="   ")

    def test_zero_units_rejected(self):
        with pytest.raises(ValidationError):
            ProcedureCode(code="99213", units=0)


@pytest.mark.unit
class TestInsuranceBenefits:
    """Test benefit snapshot consistency"""

    def test_consistent_snapshot(self, deductible_open_benefits):
        assert deductible_open_benefits.deductible_remaining == Decimal("150.00")

    def test_met_plus_remaining_must_equal_total(self):
        with pytest.raises(ValidationError) as exc_info:
            InsuranceBenefits(
                carrier="Aetna",
                deductible_total=Decimal("1000"),
                deductible_met=Decimal("500"),
                deductible_remaining=Decimal("400"),
                is_deductible_met=False,
            )

        assert "deductible_total" in str(exc_info.value)

    def test_coinsurance_bounds(self):
        with pytest.raises(ValidationError):
            InsuranceBenefits(carrier="Aetna", coinsurance_percent=Decimal("101"))

    def test_negative_copay_rejected(self):
        with pytest.raises(ValidationError):
            InsuranceBenefits(carrier="Aetna", specialist_copay=Decimal("-5"))

    def test_from_accumulators(self):
        benefits = InsuranceBenefits.from_accumulators(
            "Cigna", deductible_total=2000, deductible_met=1250.5, coinsurance_percent=30
        )

        assert benefits.deductible_remaining == Decimal("749.5")
        assert benefits.is_deductible_met is False
        assert benefits.coinsurance_percent == Decimal("30")

    def test_from_accumulators_caps_met_at_total(self):
        benefits = InsuranceBenefits.from_accumulators(
            "Cigna", deductible_total=Decimal("500"), deductible_met=Decimal("650")
        )

        assert benefits.deductible_met == Decimal("500")
        assert benefits.deductible_remaining == Decimal("0")
        assert benefits.is_deductible_met is True


@pytest.mark.unit
class TestCheckoutSummarySchema:
    """Test the medical result discriminator"""

    def test_self_pay_payload_validates_as_self_pay(self):
        summary = CheckoutSummary.model_validate(
            {"is_self_pay": True, "medical": {"kind": "self_pay", "total_due": "127.50"}}
        )

        assert isinstance(summary.medical, SelfPayResult)
        assert summary.medical.total_due == Decimal("127.50")

    def test_unknown_kind_rejected(self):
        with pytest.raises(ValidationError):
            CheckoutSummary.model_validate({"is_self_pay": True, "medical": {"kind": "cash"}})


@pytest.mark.unit
class TestCalculationErrors:
    """Test structured error payloads"""

    def test_unknown_code_message(self):
        error = UnknownCodeError(["99999", "Q1234"])

        assert error.message == "No fee found for procedure code(s): 99999, Q1234"
        assert error.to_dict() == {
            "error": "unknown_code",
            "message": error.message,
            "codes": ["99999", "Q1234"],
        }

    def test_invalid_input_from_validation_error(self):
        with pytest.raises(ValidationError) as exc_info:
            ProcedureCode(code="99213", units=0)

        error = InvalidInputError.from_validation_error(exc_info.value, prefix="procedure_codes.2")

        assert error.errors[0]["field"] == "procedure_codes.2.units"
        assert error.message.startswith("Invalid billing input: procedure_codes.2.units")
