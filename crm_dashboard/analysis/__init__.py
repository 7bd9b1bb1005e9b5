"""Analysis modules for the CRM dashboard."""

from .overview import (
    OverviewService,
    summarize_overview,
    build_platform_cards,
    safe_divide,
)

__all__ = [
    "OverviewService",
    "summarize_overview",
    "build_platform_cards",
    "safe_divide",
]
