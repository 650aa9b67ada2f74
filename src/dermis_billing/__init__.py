"""Dermatology checkout billing: insured and self-pay charge calculation."""

__version__ = "1.0.0"
