"""Core functionality for the CRM dashboard."""

from .classifier import (
    PlatformBucket,
    ALL_PLATFORMS,
    PLATFORM_ORDER,
    classify,
    classify_series,
    platform_case_expression,
    platform_filter,
)
from .normalize import normalize_date, is_won, normalize_label, normalize_amount
from .validation import ValidationResult, InvalidRequestError, DateRange, RequestValidator

__all__ = [
    "PlatformBucket",
    "ALL_PLATFORMS",
    "PLATFORM_ORDER",
    "classify",
    "classify_series",
    "platform_case_expression",
    "platform_filter",
    "normalize_date",
    "is_won",
    "normalize_label",
    "normalize_amount",
    "ValidationResult",
    "InvalidRequestError",
    "DateRange",
    "RequestValidator",
]
