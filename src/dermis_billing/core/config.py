"""
Billing Calculation Configuration
Practice-level defaults for the checkout charge calculator.
Source: https://docs.pydantic.dev/latest/concepts/pydantic_settings/
"""

from decimal import Decimal
from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from dermis_billing.core.enums import CopayPolicy, DeductiblePolicy, UnknownCodePolicy


class BillingSettings(BaseSettings):
    """
    Charge calculator configuration settings.

    All settings are read from environment variables prefixed with BILLING_,
    e.g. BILLING_SELF_PAY_DISCOUNT_PERCENT=20.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        env_prefix="BILLING_",
    )

    # =========================================================================
    # Self-Pay
    # =========================================================================
    SELF_PAY_DISCOUNT_PERCENT: Decimal = Field(
        default=Decimal("15"),
        ge=0,
        le=100,
        description="Discount percent offered to self-pay patients",
    )

    # =========================================================================
    # Insured Calculation Policies
    # =========================================================================
    DEDUCTIBLE_POLICY: DeductiblePolicy = Field(
        default=DeductiblePolicy.PER_LINE,
        description="per_line: each line uses the starting remaining deductible; "
        "running: remaining deductible decrements across lines",
    )
    COPAY_POLICY: CopayPolicy = Field(
        default=CopayPolicy.PER_VISIT,
        description="per_visit: one flat copay per encounter; per_line: copay on every line",
    )
    UNKNOWN_CODE_POLICY: UnknownCodePolicy = Field(
        default=UnknownCodePolicy.REJECT,
        description="reject: fail on codes with no fee; zero_fee: bill them at $0 with a warning",
    )


@lru_cache
def get_billing_settings() -> BillingSettings:
    """Get cached billing settings instance."""
    return BillingSettings()
