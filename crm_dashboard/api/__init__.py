"""
API module for the CRM dashboard.

- client.py: Client for reading dashboard data over HTTP
- server.py: FastAPI server
"""

from .client import DashboardClient, DashboardAPIError, ForecastResponse, get_client

__all__ = ["DashboardClient", "DashboardAPIError", "ForecastResponse", "get_client"]
