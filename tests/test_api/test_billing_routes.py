"""API tests for billing routes.
Ensures /api/v1/billing endpoints calculate charges and map calculator
errors to structured 422 responses.
"""

from __future__ import annotations

from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from dermis_billing.api.main import app

client = TestClient(app)

FEES = {"99213": "150.00", "99215": "300.00", "11104": "250.00", "17110": "100", "17111": "100"}


def _insurance(**overrides: object) -> dict[str, object]:
    """Deductible-met PPO payload."""
    payload: dict[str, object] = {
        "carrier": "Blue Cross",
        "specialist_copay": "40.00",
        "deductible_total": "1000.00",
        "deductible_met": "1000.00",
        "deductible_remaining": "0.00",
        "is_deductible_met": True,
        "coinsurance_percent": "20",
    }
    payload.update(overrides)
    return payload


@pytest.mark.api
def test_insured_charges() -> None:
    response = client.post(
        "/api/v1/billing/insured",
        json={
            "procedure_codes": [{"code": "99215"}],
            "fee_schedule": FEES,
            "insurance": _insurance(),
        },
    )

    assert response.status_code == 200
    body = response.json()
    assert body["kind"] == "insured"
    assert Decimal(body["total_patient_responsibility"]) == Decimal("92.00")
    assert Decimal(body["charges"][0]["coinsurance_amount"]) == Decimal("52.00")
    assert body["copay_details"]["type"] == "specialist"


@pytest.mark.api
def test_insured_running_deductible_option() -> None:
    insurance = _insurance(
        deductible_total="1500.00",
        deductible_met="1350.00",
        deductible_remaining="150.00",
        is_deductible_met=False,
    )
    response = client.post(
        "/api/v1/billing/insured",
        json={
            "procedure_codes": [{"code": "17110"}, {"code": "17111"}],
            "fee_schedule": FEES,
            "insurance": insurance,
            "options": {"deductible_policy": "running"},
        },
    )

    assert response.status_code == 200
    applied = [Decimal(c["deductible_applied"]) for c in response.json()["charges"]]
    assert applied == [Decimal("100"), Decimal("50")]


@pytest.mark.api
def test_insured_unknown_code_returns_422() -> None:
    response = client.post(
        "/api/v1/billing/insured",
        json={
            "procedure_codes": [{"code": "99999"}],
            "fee_schedule": FEES,
            "insurance": _insurance(),
        },
    )

    assert response.status_code == 422
    detail = response.json()["detail"]
    assert detail["error"] == "unknown_code"
    assert detail["codes"] == ["99999"]


@pytest.mark.api
def test_insured_negative_fee_returns_422() -> None:
    response = client.post(
        "/api/v1/billing/insured",
        json={
            "procedure_codes": [{"code": "99213"}],
            "fee_schedule": {"99213": "-10"},
            "insurance": _insurance(),
        },
    )

    assert response.status_code == 422
    assert response.json()["detail"]["error"] == "invalid_input"


@pytest.mark.api
def test_insured_invalid_coinsurance_rejected() -> None:
    response = client.post(
        "/api/v1/billing/insured",
        json={
            "procedure_codes": [{"code": "99213"}],
            "fee_schedule": FEES,
            "insurance": _insurance(coinsurance_percent="150"),
        },
    )

    assert response.status_code == 422


@pytest.mark.api
def test_self_pay_charges() -> None:
    response = client.post(
        "/api/v1/billing/self-pay",
        json={
            "procedure_codes": [{"code": "99213"}],
            "fee_schedule": FEES,
            "discount_percent": "15",
        },
    )

    assert response.status_code == 200
    body = response.json()
    assert body["kind"] == "self_pay"
    assert Decimal(body["total_discount"]) == Decimal("22.50")
    assert Decimal(body["total_due"]) == Decimal("127.50")


@pytest.mark.api
def test_insured_full_fee_schedule_with_modifiers() -> None:
    response = client.post(
        "/api/v1/billing/insured",
        json={
            "procedure_codes": [{"code": "11104", "modifiers": ["50"]}],
            "fee_schedule": {
                "practice_rates": {"11104": "250.00"},
                "modifier_factors": {"50": "1.5"},
            },
            "insurance": _insurance(),
        },
    )

    assert response.status_code == 200
    charge = response.json()["charges"][0]
    assert Decimal(charge["unit_fee"]) == Decimal("375.00")
    assert charge["fee_source"] == "practice"
    assert Decimal(charge["coinsurance_amount"]) == Decimal("67.00")


@pytest.mark.api
def test_self_pay_default_rates_override() -> None:
    response = client.post(
        "/api/v1/billing/self-pay",
        json={
            "procedure_codes": [{"code": "99213"}],
            "fee_schedule": {"default_rates": {"99213": "90.00"}},
            "discount_percent": "15",
        },
    )

    assert response.status_code == 200
    charge = response.json()["charges"][0]
    assert charge["fee_source"] == "default"
    assert Decimal(response.json()["total_due"]) == Decimal("76.50")


@pytest.mark.api
def test_self_pay_zero_fee_policy() -> None:
    response = client.post(
        "/api/v1/billing/self-pay",
        json={
            "procedure_codes": [{"code": "99213"}, {"code": "Q9999"}],
            "fee_schedule": FEES,
            "unknown_code_policy": "zero_fee",
        },
    )

    assert response.status_code == 200
    unknown = response.json()["charges"][1]
    assert unknown["fee_source"] == "unknown"
    assert unknown["breakdown"][0].startswith("WARNING")


@pytest.mark.api
def test_checkout_summary() -> None:
    response = client.post(
        "/api/v1/billing/checkout",
        json={
            "procedure_codes": [{"code": "99213"}],
            "fee_schedule": FEES,
            "cosmetic_charges": [{"treatment_type": "botox", "units": "20"}],
            "discounts": [{"type": "alle", "amount": "50"}],
            "product_charges": [{"product_id": "SPF50", "quantity": 2, "unit_price": "35.00"}],
            "previous_balance": "40.00",
            "amount_paid": "100.00",
        },
    )

    assert response.status_code == 200
    body = response.json()
    assert body["medical"]["kind"] == "self_pay"
    assert Decimal(body["grand_total"]) == Decimal("427.50")
    assert Decimal(body["amount_remaining"]) == Decimal("327.50")
    assert body["payment_status"] == "partial"
