"""
Health Check Routes
Service health monitoring endpoints
Source: https://microservices.io/patterns/observability/health-check-api.html
"""

from typing import Any

from fastapi import APIRouter

from dermis_billing import __version__
from dermis_billing.core.config import get_billing_settings

router = APIRouter(tags=["Health"])


@router.get("/health")
async def health_check() -> dict[str, Any]:
    """Basic health check endpoint."""
    billing = get_billing_settings()
    return {
        "status": "healthy",
        "service": "dermis-billing-api",
        "version": __version__,
        "policies": {
            "deductible": billing.DEDUCTIBLE_POLICY.value,
            "copay": billing.COPAY_POLICY.value,
            "unknown_code": billing.UNKNOWN_CODE_POLICY.value,
        },
    }
