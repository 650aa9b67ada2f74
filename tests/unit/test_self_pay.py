"""
Self-Pay Charge Tests.

Tests for the self-pay discount path: per-line discounting, the discount
toggle, the configured default percent and input validation.
"""

from decimal import Decimal

import pytest

from dermis_billing.core.enums import FeeSource, UnknownCodePolicy
from dermis_billing.schemas.billing import ProcedureCode
from dermis_billing.services.charge_calculator import calculate_self_pay_charges
from dermis_billing.services.errors import InvalidInputError, UnknownCodeError


@pytest.mark.unit
class TestSelfPayDiscount:
    """Discount applied to each line's total fee."""

    def test_office_visit_with_fifteen_percent(self, practice_fees):
        """$150 visit with 15% discount: $22.50 off, $127.50 due."""
        result = calculate_self_pay_charges(["99213"], practice_fees, Decimal("15"))

        charge = result.charges[0]
        assert charge.discount == Decimal("22.50")
        assert charge.patient_responsibility == Decimal("127.50")
        assert result.total_due == Decimal("127.50")
        assert result.discount_applied is True

    def test_discount_per_line_and_totals(self, practice_fees):
        result = calculate_self_pay_charges(
            ["99213", "11104", "88305"], practice_fees, Decimal("15")
        )

        assert result.subtotal == Decimal("520.00")
        assert [c.discount for c in result.charges] == [
            Decimal("22.50"),
            Decimal("37.50"),
            Decimal("18.00"),
        ]
        assert result.total_discount == Decimal("78.00")
        assert result.total_due == Decimal("442.00")
        assert result.subtotal - result.total_discount == result.total_due

    def test_discount_toggle_off(self, practice_fees):
        result = calculate_self_pay_charges(
            ["99213"], practice_fees, Decimal("15"), apply_discount=False
        )

        assert result.total_discount == Decimal("0")
        assert result.total_due == Decimal("150.00")
        assert result.discount_applied is False
        assert result.discount_percent == Decimal("15")

    def test_zero_percent_is_not_applied(self, practice_fees):
        result = calculate_self_pay_charges(["99213"], practice_fees, 0)

        assert result.discount_applied is False
        assert result.total_due == Decimal("150.00")

    def test_full_discount(self, practice_fees):
        result = calculate_self_pay_charges(["99213"], practice_fees, 100)

        assert result.total_due == Decimal("0.00")

    def test_default_percent_from_settings(self, practice_fees):
        result = calculate_self_pay_charges(["99213"], practice_fees)

        assert result.discount_percent == Decimal("15")
        assert result.total_due == Decimal("127.50")

    def test_default_percent_env_override(self, practice_fees, monkeypatch):
        monkeypatch.setenv("BILLING_SELF_PAY_DISCOUNT_PERCENT", "20")

        result = calculate_self_pay_charges(["99213"], practice_fees)

        assert result.total_discount == Decimal("30.00")
        assert result.total_due == Decimal("120.00")

    def test_units_multiply_before_discount(self, practice_fees):
        result = calculate_self_pay_charges(
            [ProcedureCode(code="17110", units=2)], practice_fees, Decimal("15")
        )

        charge = result.charges[0]
        assert charge.total_fee == Decimal("200.00")
        assert charge.discount == Decimal("30.00")
        assert charge.breakdown[-1] == "You owe: $170.00"

    def test_discount_rounds_half_up(self):
        result = calculate_self_pay_charges(["99213"], {"99213": "0.10"}, 15)

        # 0.10 * 15% = 0.015 -> 0.02
        assert result.charges[0].discount == Decimal("0.02")

    def test_monotone_in_discount_percent(self, practice_fees):
        codes = ["99213", "11104", "17110"]
        totals = [
            calculate_self_pay_charges(codes, practice_fees, pct).total_due
            for pct in range(0, 101, 5)
        ]

        assert totals == sorted(totals, reverse=True)
        for charge in calculate_self_pay_charges(codes, practice_fees, 35).charges:
            assert Decimal("0") <= charge.patient_responsibility <= charge.total_fee


@pytest.mark.unit
class TestSelfPayValidation:
    """Invalid discounts and codes."""

    @pytest.mark.parametrize("percent", [Decimal("-1"), Decimal("100.01"), 150])
    def test_out_of_range_percent(self, practice_fees, percent):
        with pytest.raises(InvalidInputError) as exc_info:
            calculate_self_pay_charges(["99213"], practice_fees, percent)

        assert exc_info.value.errors[0]["field"] == "discount_percent"

    @pytest.mark.parametrize("percent", ["fifteen", float("nan"), "NaN", "Infinity"])
    def test_non_numeric_percent(self, practice_fees, percent):
        with pytest.raises(InvalidInputError) as exc_info:
            calculate_self_pay_charges(["99213"], practice_fees, percent)

        assert exc_info.value.errors[0]["field"] == "discount_percent"

    def test_blank_code(self, practice_fees):
        with pytest.raises(InvalidInputError) as exc_info:
            calculate_self_pay_charges(["  "], practice_fees, 15)

        assert exc_info.value.errors[0]["field"].startswith("procedure_codes.0")

    def test_unknown_code_rejected(self, practice_fees):
        with pytest.raises(UnknownCodeError):
            calculate_self_pay_charges(["99213", "Q9999"], practice_fees, 15)

    def test_unknown_code_zero_fee(self, practice_fees):
        result = calculate_self_pay_charges(
            ["99213", "Q9999"],
            practice_fees,
            15,
            unknown_code_policy=UnknownCodePolicy.ZERO_FEE,
        )

        unknown = result.charges[1]
        assert unknown.fee_source == FeeSource.UNKNOWN
        assert unknown.patient_responsibility == Decimal("0.00")
        assert result.total_due == Decimal("127.50")
