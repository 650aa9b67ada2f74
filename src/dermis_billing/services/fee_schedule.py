"""
Fee Schedule Resolution.

Resolves per-unit standard fees: practice rate first, then the default
rate table. Codes found in neither resolve with source "unknown" and a
zero fee; the caller decides whether that is fatal.
"""

import logging
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

from dermis_billing.core.enums import FeeSource
from dermis_billing.schemas.fee_schedule import FeeResolution, FeeScheduleConfig, normalize_code

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")


def to_cents(amount: Decimal) -> Decimal:
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


class FeeResolver:
    """Merged view over a practice fee schedule and its defaults."""

    def __init__(self, config: Optional[FeeScheduleConfig] = None):
        self.config = config or FeeScheduleConfig()
        # Practice rates win over defaults; merged once per resolver
        self._rates: dict[str, tuple[Decimal, FeeSource]] = {
            code: (amount, FeeSource.DEFAULT) for code, amount in self.config.default_rates.items()
        }
        self._rates.update(
            {code: (amount, FeeSource.PRACTICE) for code, amount in self.config.practice_rates.items()}
        )

    def resolve(self, code: str, modifiers: Optional[list[str]] = None) -> FeeResolution:
        """
        Resolve the unit fee for a procedure code.

        Args:
            code: CPT/HCPCS procedure code
            modifiers: Modifiers on the line; only those listed in the
                schedule's modifier_factors change the fee

        Returns:
            FeeResolution with the (modifier-adjusted) unit fee
        """
        code = normalize_code(code)
        entry = self._rates.get(code)
        if entry is None:
            logger.warning(f"No fee schedule entry for procedure code {code}")
            return FeeResolution(code=code, unit_fee=to_cents(Decimal("0")), source=FeeSource.UNKNOWN)

        amount, source = entry
        factor = Decimal("1")
        for modifier in modifiers or []:
            factor *= self.config.modifier_factors.get(normalize_code(modifier), Decimal("1"))

        return FeeResolution(
            code=code,
            unit_fee=to_cents(amount * factor),
            source=source,
            modifier_factor=factor,
        )


def resolve_fee(
    code: str,
    config: Optional[FeeScheduleConfig] = None,
    modifiers: Optional[list[str]] = None,
) -> FeeResolution:
    """Convenience wrapper resolving a single code."""
    return FeeResolver(config).resolve(code, modifiers)
