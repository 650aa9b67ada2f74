"""
HTTP Exceptions
Maps charge calculation failures to API error responses
Source: https://fastapi.tiangolo.com/tutorial/handling-errors/
"""

from typing import Any

from fastapi import HTTPException, status

from dermis_billing.services.errors import ChargeCalculationError


class ValidationError(HTTPException):
    """Raised when billing inputs fail validation"""

    def __init__(self, detail: Any = "Validation error"):
        super().__init__(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=detail,
        )


def to_http_error(exc: ChargeCalculationError) -> HTTPException:
    """Convert a calculator error into a structured 422 response."""
    return ValidationError(detail=exc.to_dict())
