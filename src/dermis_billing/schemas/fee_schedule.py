"""
Pydantic Schemas for Fee Schedules and Charge Classification.

A fee schedule is the practice's own rate card layered over a default
rate table. A category table maps code ranges to charge categories and
each category to its copay and deductible treatment.
"""

from decimal import Decimal
from typing import Mapping, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from dermis_billing.core.enums import ChargeCategory, CopayType, FeeSource


def normalize_code(code: str) -> str:
    """Canonical form of a CPT/HCPCS code or modifier."""
    return code.strip().upper()


# =============================================================================
# Fee Schedule Schemas
# =============================================================================


_DEFAULT_FEE_RATES: tuple[tuple[str, str], ...] = (
    # Evaluation and Management (E/M)
    ("99203", "175.00"),
    ("99204", "250.00"),
    ("99205", "350.00"),
    ("99213", "150.00"),
    ("99214", "200.00"),
    ("99215", "275.00"),
    # Biopsies
    ("11102", "250.00"),  # Tangential biopsy, single lesion
    ("11104", "200.00"),  # Punch biopsy, single lesion
    # Shave removal
    ("11300", "175.00"),
    ("11301", "200.00"),
    ("11302", "225.00"),
    ("11303", "250.00"),
    # Destruction
    ("17000", "150.00"),  # Premalignant lesion, first
    ("17110", "175.00"),  # Benign lesions, up to 14
    ("17111", "225.00"),  # Benign lesions, 15 or more
)


def default_fee_rates() -> dict[str, Decimal]:
    """Fresh copy of the built-in dermatology fee table."""
    return {code: Decimal(amount) for code, amount in _DEFAULT_FEE_RATES}


class FeeScheduleConfig(BaseModel):
    """Practice fee schedule with default-rate fallback."""

    model_config = ConfigDict(extra="forbid")

    practice_rates: dict[str, Decimal] = Field(
        default_factory=dict, description="Practice-specific standard fee per code"
    )
    default_rates: dict[str, Decimal] = Field(
        default_factory=default_fee_rates, description="Fallback fee per code"
    )
    modifier_factors: dict[str, Decimal] = Field(
        default_factory=dict, description="Unit-fee multiplier per modifier, e.g. {'50': 1.5}"
    )

    @field_validator("practice_rates", "default_rates", "modifier_factors")
    @classmethod
    def validate_rates(cls, v: dict[str, Decimal]) -> dict[str, Decimal]:
        normalized: dict[str, Decimal] = {}
        for code, amount in v.items():
            if amount < 0:
                raise ValueError(f"Fee for {code} must be non-negative, got {amount}")
            normalized[normalize_code(code)] = amount
        return normalized

    @classmethod
    def from_mapping(
        cls, fee_schedule: Union["FeeScheduleConfig", Mapping[str, object], None]
    ) -> "FeeScheduleConfig":
        """Accept a config, a plain code->fee mapping, or None."""
        if isinstance(fee_schedule, FeeScheduleConfig):
            return fee_schedule
        if fee_schedule is None:
            return cls()
        return cls(practice_rates=dict(fee_schedule))


class FeeResolution(BaseModel):
    """Result of resolving one code against a fee schedule."""

    code: str
    unit_fee: Decimal = Decimal("0.00")
    source: FeeSource
    modifier_factor: Decimal = Decimal("1")

    @property
    def found(self) -> bool:
        return self.source != FeeSource.UNKNOWN


# =============================================================================
# Category Classification Schemas
# =============================================================================


class CategoryRule(BaseModel):
    """Inclusive code range mapped to a charge category."""

    model_config = ConfigDict(frozen=True)

    start: str
    end: str
    category: ChargeCategory

    @field_validator("start", "end")
    @classmethod
    def normalize_bounds(cls, v: str) -> str:
        return normalize_code(v)

    @model_validator(mode="after")
    def validate_range(self) -> "CategoryRule":
        if len(self.start) != len(self.end) or self.start > self.end:
            raise ValueError(f"Invalid code range {self.start}-{self.end}")
        return self

    def matches(self, code: str) -> bool:
        return len(code) == len(self.start) and self.start <= code <= self.end


class CategoryProfile(BaseModel):
    """Billing treatment shared by all codes in a category."""

    model_config = ConfigDict(frozen=True)

    label: str
    copay_type: CopayType = CopayType.NONE
    deductible_eligible: bool = True


_DEFAULT_RULES: tuple[tuple[str, str, ChargeCategory], ...] = (
    # Office visits, consultations, online E&M
    ("99201", "99205", ChargeCategory.EVALUATION_MANAGEMENT),
    ("99211", "99215", ChargeCategory.EVALUATION_MANAGEMENT),
    ("99241", "99245", ChargeCategory.EVALUATION_MANAGEMENT),
    ("99421", "99423", ChargeCategory.EVALUATION_MANAGEMENT),
    # Preventive medicine visits
    ("99381", "99397", ChargeCategory.PREVENTIVE),
    # Excisions, repairs, Mohs
    ("11400", "11446", ChargeCategory.SURGICAL),
    ("11600", "11646", ChargeCategory.SURGICAL),
    ("12001", "13160", ChargeCategory.SURGICAL),
    ("17311", "17315", ChargeCategory.SURGICAL),
    # Biopsies and path interpretation
    ("11102", "11107", ChargeCategory.PATHOLOGY),
    ("88300", "88309", ChargeCategory.PATHOLOGY),
    # Skin tags, shave removal, destruction
    ("11200", "11201", ChargeCategory.DESTRUCTIVE),
    ("11300", "11313", ChargeCategory.DESTRUCTIVE),
    ("17000", "17004", ChargeCategory.DESTRUCTIVE),
    ("17110", "17111", ChargeCategory.DESTRUCTIVE),
    ("17260", "17286", ChargeCategory.DESTRUCTIVE),
)


def default_category_rules() -> list[CategoryRule]:
    return [CategoryRule(start=s, end=e, category=c) for s, e, c in _DEFAULT_RULES]


def default_category_profiles() -> dict[ChargeCategory, CategoryProfile]:
    return {
        ChargeCategory.EVALUATION_MANAGEMENT: CategoryProfile(
            label="Office Visit (E&M)", copay_type=CopayType.SPECIALIST
        ),
        ChargeCategory.PREVENTIVE: CategoryProfile(
            label="Preventive Visit", copay_type=CopayType.OFFICE, deductible_eligible=False
        ),
        ChargeCategory.SURGICAL: CategoryProfile(
            label="Surgical Procedures", copay_type=CopayType.PROCEDURE
        ),
        ChargeCategory.PATHOLOGY: CategoryProfile(
            label="Pathology/Biopsy", copay_type=CopayType.PROCEDURE
        ),
        ChargeCategory.DESTRUCTIVE: CategoryProfile(
            label="Destructive Procedures", copay_type=CopayType.PROCEDURE
        ),
        ChargeCategory.OTHER: CategoryProfile(label="Other Services"),
    }


class CategoryTable(BaseModel):
    """Code-range lookup table plus per-category billing profiles."""

    rules: list[CategoryRule] = Field(default_factory=default_category_rules)
    profiles: dict[ChargeCategory, CategoryProfile] = Field(
        default_factory=default_category_profiles
    )
    fallback: ChargeCategory = ChargeCategory.OTHER

    @model_validator(mode="after")
    def validate_profiles(self) -> "CategoryTable":
        used = {rule.category for rule in self.rules} | {self.fallback}
        missing = sorted(c.value for c in used if c not in self.profiles)
        if missing:
            raise ValueError(f"No profile for categories: {', '.join(missing)}")
        return self

    def classify(self, code: str) -> ChargeCategory:
        """Return the category of the first rule matching the code."""
        code = normalize_code(code)
        for rule in self.rules:
            if rule.matches(code):
                return rule.category
        return self.fallback

    def profile(self, category: ChargeCategory) -> CategoryProfile:
        return self.profiles[category]

    def order(self) -> list[ChargeCategory]:
        """Categories in waterfall order (profile declaration order)."""
        return list(self.profiles)
