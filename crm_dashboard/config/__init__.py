"""Configuration management for the CRM dashboard."""

from .schema import (
    DashboardConfig,
    WarehouseConfig,
    ForecastConfig,
    ListingConfig,
    ApiConfig,
)
from .loader import ConfigLoader

__all__ = [
    "DashboardConfig",
    "WarehouseConfig",
    "ForecastConfig",
    "ListingConfig",
    "ApiConfig",
    "ConfigLoader",
]
