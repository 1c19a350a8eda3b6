"""Utility functions and helpers."""

from .dates import add_months, month_end
from .exceptions import (
    raise_bad_request,
    raise_conflict,
    raise_internal_error,
    raise_not_found,
)

__all__ = [
    "add_months",
    "month_end",
    "raise_bad_request",
    "raise_conflict",
    "raise_internal_error",
    "raise_not_found",
]
