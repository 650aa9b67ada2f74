"""
Core Enumerations for Checkout Billing.
Charge categories, copay types and calculation policy switches.
"""

from enum import Enum


# =============================================================================
# Charge Classification Enums
# =============================================================================


class ChargeCategory(str, Enum):
    """Billing category assigned to a procedure code."""

    EVALUATION_MANAGEMENT = "evaluation_management"  # Office visits (E&M)
    PREVENTIVE = "preventive"  # Preventive/wellness visits
    SURGICAL = "surgical"  # Excisions, repairs, Mohs
    PATHOLOGY = "pathology"  # Biopsies, path interpretation
    DESTRUCTIVE = "destructive"  # Cryotherapy, electrosurgery, skin tags
    OTHER = "other"


class CopayType(str, Enum):
    """Which plan copay is a candidate for a category."""

    OFFICE = "office"
    SPECIALIST = "specialist"
    PROCEDURE = "procedure"
    NONE = "none"


# =============================================================================
# Calculation Policy Enums
# =============================================================================


class DeductiblePolicy(str, Enum):
    """How the remaining deductible is evaluated across lines of one call."""

    PER_LINE = "per_line"  # Every line sees the same starting snapshot
    RUNNING = "running"  # Remaining deductible decrements line by line


class CopayPolicy(str, Enum):
    """How many lines of a visit may carry the flat copay."""

    PER_VISIT = "per_visit"  # First copay-bearing line only
    PER_LINE = "per_line"  # Every copay-bearing line


class UnknownCodePolicy(str, Enum):
    """Handling of codes absent from both practice and default rates."""

    REJECT = "reject"
    ZERO_FEE = "zero_fee"


class FeeSource(str, Enum):
    """Where a resolved unit fee came from."""

    PRACTICE = "practice"
    DEFAULT = "default"
    UNKNOWN = "unknown"


# =============================================================================
# Checkout Enums
# =============================================================================


class DiscountType(str, Enum):
    """Coupon/loyalty discount programs accepted at checkout."""

    ALLE = "alle"  # Allergan Alle rewards
    ASPIRE = "aspire"  # Galderma Aspire rewards
    CUSTOM = "custom"


class PaymentStatus(str, Enum):
    """Payment state of a checkout."""

    PENDING = "pending"
    PARTIAL = "partial"
    PAID = "paid"
