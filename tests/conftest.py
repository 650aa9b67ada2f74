"""
Pytest Configuration and Fixtures.
Shared test fixtures for all test modules.
"""

import sys
from decimal import Decimal
from pathlib import Path

import pytest

# Add src to path for imports
src_path = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_path))

from dermis_billing.core.config import get_billing_settings  # noqa: E402
from dermis_billing.schemas.billing import InsuranceBenefits  # noqa: E402


@pytest.fixture(autouse=True)
def reset_billing_settings():
    """Reload billing settings per test so monkeypatched env vars apply."""
    get_billing_settings.cache_clear()
    yield
    get_billing_settings.cache_clear()


@pytest.fixture
def practice_fees():
    """Practice fee schedule used across calculator tests."""
    return {
        "99213": Decimal("150.00"),
        "99214": Decimal("200.00"),
        "99215": Decimal("300.00"),
        "11104": Decimal("250.00"),
        "17110": Decimal("100.00"),
        "17111": Decimal("100.00"),
        "88305": Decimal("120.00"),
    }


@pytest.fixture
def deductible_met_benefits():
    """Commercial PPO, deductible satisfied for the year."""
    return InsuranceBenefits(
        carrier="Blue Cross",
        plan="PPO Gold",
        member_id="BCX123456",
        office_visit_copay=Decimal("25.00"),
        specialist_copay=Decimal("40.00"),
        deductible_total=Decimal("1000.00"),
        deductible_met=Decimal("1000.00"),
        deductible_remaining=Decimal("0.00"),
        is_deductible_met=True,
        coinsurance_percent=Decimal("20"),
    )


@pytest.fixture
def deductible_open_benefits():
    """Commercial PPO with $150 of deductible left."""
    return InsuranceBenefits(
        carrier="Aetna",
        plan="Open Access",
        member_id="AET987654",
        office_visit_copay=Decimal("25.00"),
        specialist_copay=Decimal("40.00"),
        deductible_total=Decimal("1500.00"),
        deductible_met=Decimal("1350.00"),
        deductible_remaining=Decimal("150.00"),
        is_deductible_met=False,
        coinsurance_percent=Decimal("20"),
    )


@pytest.fixture
def hdhp_benefits():
    """HSA-eligible high deductible plan with $250 remaining."""
    return InsuranceBenefits(
        carrier="UnitedHealthcare",
        plan="HSA Bronze",
        member_id="UHC555000",
        specialist_copay=Decimal("0"),
        deductible_total=Decimal("3000.00"),
        deductible_met=Decimal("2750.00"),
        deductible_remaining=Decimal("250.00"),
        is_deductible_met=False,
        coinsurance_percent=Decimal("10"),
        is_hdhp=True,
        hsa_eligible=True,
    )


# Configure pytest markers
def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line(
        "markers", "unit: mark test as a unit test"
    )
    config.addinivalue_line(
        "markers", "api: mark test as an API test"
    )
