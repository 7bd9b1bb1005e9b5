"""
Request parameter validation.
"""

from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Any, Callable, Optional
import logging

from .classifier import ALL_PLATFORMS, PLATFORM_ORDER
from .normalize import normalize_date

logger = logging.getLogger(__name__)


@dataclass
class ValidationResult:
    """Result of a validation check."""
    valid: bool
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def add_error(self, message: str) -> None:
        """Add an error message."""
        self.errors.append(message)
        self.valid = False

    def add_warning(self, message: str) -> None:
        """Add a warning message."""
        self.warnings.append(message)

    def merge(self, other: "ValidationResult") -> None:
        """Merge another validation result into this one."""
        self.errors.extend(other.errors)
        self.warnings.extend(other.warnings)
        if not other.valid:
            self.valid = False

    def __str__(self) -> str:
        """String representation of validation result."""
        lines = []
        if self.valid:
            lines.append("Validation PASSED")
        else:
            lines.append("Validation FAILED")

        if self.errors:
            lines.append(f"  Errors ({len(self.errors)}):")
            for err in self.errors:
                lines.append(f"    - {err}")

        if self.warnings:
            lines.append(f"  Warnings ({len(self.warnings)}):")
            for warn in self.warnings:
                lines.append(f"    - {warn}")

        return "\n".join(lines)


class InvalidRequestError(ValueError):
    """Raised when request parameters are rejected before any query runs."""

    def __init__(self, result: ValidationResult):
        self.result = result
        super().__init__("; ".join(result.errors))


@dataclass(frozen=True)
class DateRange:
    """Inclusive calendar date range."""
    start: date
    end: date

    @property
    def n_days(self) -> int:
        return (self.end - self.start).days + 1


class RequestValidator:
    """Validate and resolve query parameters shared by the API endpoints."""

    def __init__(self, today: Optional[Callable[[], date]] = None):
        """
        Initialize RequestValidator.

        Parameters
        ----------
        today : callable, optional
            Returns the current date; defaults to ``date.today``.
        """
        self._today = today or date.today

    def validate_date_range(
        self,
        date_start: Any,
        date_end: Any,
        default_lookback_days: int,
    ) -> tuple[ValidationResult, Optional[DateRange]]:
        """
        Parse and check a date range, filling in defaults.

        A missing end defaults to today, a missing start to
        ``default_lookback_days`` before the end.
        """
        result = ValidationResult(valid=True)
        start = self._parse(date_start, "dateStart", result)
        end = self._parse(date_end, "dateEnd", result)
        if not result.valid:
            return result, None

        if end is None:
            end = self._today()
        if start is None:
            start = end - timedelta(days=default_lookback_days)

        if start > end:
            result.add_error(f"dateStart ({start}) must not be after dateEnd ({end})")
            return result, None

        return result, DateRange(start=start, end=end)

    def validate_platform(self, platform: Optional[str]) -> tuple[ValidationResult, str]:
        """Check a platform filter; None means all platforms."""
        result = ValidationResult(valid=True)
        value = (platform or ALL_PLATFORMS).strip().lower()
        allowed = (ALL_PLATFORMS,) + PLATFORM_ORDER
        if value not in allowed:
            result.add_error(
                f"Unknown platform '{platform}'. Expected one of: {', '.join(allowed)}"
            )
        return result, value

    def validate_pagination(
        self,
        page: int,
        page_size: int,
        max_page_size: int,
    ) -> ValidationResult:
        """Check 1-based page number and page size bounds."""
        result = ValidationResult(valid=True)
        if page < 1:
            result.add_error(f"page must be >= 1, got {page}")
        if page_size < 1 or page_size > max_page_size:
            result.add_error(f"pageSize must be between 1 and {max_page_size}, got {page_size}")
        return result

    def resolve(
        self,
        date_start: Any,
        date_end: Any,
        platform: Optional[str],
        default_lookback_days: int,
    ) -> tuple[DateRange, str]:
        """
        Validate a date range and platform together.

        Raises
        ------
        InvalidRequestError
            If any parameter is invalid.
        """
        result, date_range = self.validate_date_range(
            date_start, date_end, default_lookback_days
        )
        platform_result, platform_value = self.validate_platform(platform)
        result.merge(platform_result)

        if not result.valid:
            logger.info(f"Rejected request parameters: {result.errors}")
            raise InvalidRequestError(result)

        return date_range, platform_value

    @staticmethod
    def _parse(value: Any, name: str, result: ValidationResult) -> Optional[date]:
        try:
            return normalize_date(value)
        except ValueError:
            result.add_error(f"{name} is not a valid date: {value!r}")
            return None
