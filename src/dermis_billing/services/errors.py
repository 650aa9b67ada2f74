"""
Charge Calculation Exceptions.

Raised synchronously before any line is computed; a failed call never
returns a partial result.
"""

from typing import Any

from pydantic import ValidationError as PydanticValidationError


class ChargeCalculationError(Exception):
    """Base exception for charge calculation failures."""

    error_code = "charge_calculation_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict[str, Any]:
        """Structured form for API responses."""
        return {"error": self.error_code, "message": self.message}


class InvalidInputError(ChargeCalculationError):
    """Raised when inputs are out of range or internally inconsistent."""

    error_code = "invalid_input"

    def __init__(self, message: str, errors: list[dict[str, str]] | None = None):
        super().__init__(message)
        self.errors = errors or []

    @classmethod
    def from_validation_error(
        cls, exc: PydanticValidationError, prefix: str = ""
    ) -> "InvalidInputError":
        errors = []
        for error in exc.errors():
            location = ".".join(str(part) for part in error["loc"])
            field = ".".join(part for part in (prefix, location) if part)
            errors.append({"field": field, "message": error["msg"]})
        summary = "; ".join(f"{e['field'] or 'input'}: {e['message']}" for e in errors)
        return cls(f"Invalid billing input: {summary}", errors=errors)

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["errors"] = self.errors
        return data


class UnknownCodeError(ChargeCalculationError):
    """Raised when codes have no practice or default fee."""

    error_code = "unknown_code"

    def __init__(self, codes: list[str]):
        super().__init__(f"No fee found for procedure code(s): {', '.join(codes)}")
        self.codes = codes

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["codes"] = self.codes
        return data
