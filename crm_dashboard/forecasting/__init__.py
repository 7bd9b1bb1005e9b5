"""
Forecasting module for won-deal revenue.

Provides the moving-average expected revenue model with optimistic and
pessimistic bands and its backward-looking accuracy score.
"""

from crm_dashboard.forecasting.revenue_forecast import (
    RevenueForecastEngine,
    RevenueForecast,
    ForecastPoint,
    # Pipeline steps
    aggregate_revenue_facts,
    densify,
    project,
    score,
)

__all__ = [
    "RevenueForecastEngine",
    "RevenueForecast",
    "ForecastPoint",
    # Pipeline steps
    "aggregate_revenue_facts",
    "densify",
    "project",
    "score",
]
