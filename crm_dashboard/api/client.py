"""
Client for the dashboard API.

Used by notebooks, scripts and the CLI to read forecasts and funnel
metrics from a running server.
"""

import os
import logging
from datetime import date
from typing import Dict, Any, Optional, Union
from dataclasses import dataclass

import httpx
import pandas as pd

logger = logging.getLogger(__name__)


class DashboardAPIError(RuntimeError):
    """The API answered with a non-success status."""

    def __init__(self, status_code: int, detail: str):
        self.status_code = status_code
        self.detail = detail
        super().__init__(f"API request failed ({status_code}): {detail}")


@dataclass
class ForecastResponse:
    """Revenue forecast returned by the API."""
    start: date
    end: date
    ma_window: int
    band: float
    accuracy_rate: float
    series: pd.DataFrame  # date, revenue_actual, expected, pessimistic, optimistic, is_history

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "ForecastResponse":
        series = pd.DataFrame(payload.get("series", []))
        if not series.empty:
            series["date"] = pd.to_datetime(series["date"]).dt.date
        return cls(
            start=date.fromisoformat(payload["start"]),
            end=date.fromisoformat(payload["end"]),
            ma_window=int(payload["maWindow"]),
            band=float(payload["band"]),
            accuracy_rate=float(payload["accuracy_rate"]),
            series=series,
        )


DateLike = Union[date, str, None]


def _date_param(value: DateLike) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, date):
        return value.isoformat()
    return value


class DashboardClient:
    """
    Client for the dashboard API.

    Usage:
        with DashboardClient("http://localhost:8080") as client:
            forecast = client.get_revenue_forecast(
                date_start="2025-01-01",
                date_end="2025-03-31",
                platform="google_ads",
            )
            print(forecast.accuracy_rate)
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: float = 30.0,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        """
        Initialize the client.

        Parameters
        ----------
        base_url : str, optional
            Base URL of the API. Defaults to DASHBOARD_API_URL env var or localhost.
        timeout : float
            Request timeout in seconds.
        transport : httpx.BaseTransport, optional
            Custom transport, e.g. for tests.
        """
        self.base_url = base_url or os.getenv("DASHBOARD_API_URL", "http://localhost:8080")
        self.timeout = timeout
        self._client = httpx.Client(
            base_url=self.base_url,
            timeout=httpx.Timeout(timeout),
            transport=transport,
        )

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self._client.close()

    def close(self):
        """Close the client."""
        self._client.close()

    def health_check(self) -> bool:
        """
        Check if the API is healthy.

        Returns
        -------
        bool
            True if healthy, False otherwise.
        """
        try:
            response = self._client.get("/health")
            return response.status_code == 200
        except httpx.HTTPError as e:
            logger.warning(f"Health check failed: {e}")
            return False

    def _get(self, path: str, params: Dict[str, Any]) -> Any:
        params = {k: v for k, v in params.items() if v is not None}
        response = self._client.get(path, params=params)
        if response.status_code >= 400:
            try:
                detail = response.json().get("detail", response.text)
            except ValueError:
                detail = response.text
            raise DashboardAPIError(response.status_code, str(detail))
        return response.json()

    def get_revenue_forecast(
        self,
        date_start: DateLike = None,
        date_end: DateLike = None,
        platform: str = "all",
    ) -> ForecastResponse:
        """
        Fetch the revenue forecast.

        Returns
        -------
        ForecastResponse
            Series as a DataFrame plus the accuracy rate.
        """
        payload = self._get("/api/revenue-forecast", {
            "dateStart": _date_param(date_start),
            "dateEnd": _date_param(date_end),
            "platform": platform,
        })
        forecast = ForecastResponse.from_payload(payload)
        logger.info(
            f"Fetched forecast {forecast.start}..{forecast.end}: "
            f"{len(forecast.series)} days, accuracy={forecast.accuracy_rate:.3f}"
        )
        return forecast

    def get_overview(
        self,
        date_start: DateLike = None,
        date_end: DateLike = None,
        platform: str = "all",
    ) -> Dict[str, Any]:
        """Fetch funnel totals, per-platform cards and CRM revenue by platform."""
        return self._get("/api/overview", {
            "dateStart": _date_param(date_start),
            "dateEnd": _date_param(date_end),
            "platform": platform,
        })

    def get_deals(
        self,
        date_start: DateLike = None,
        date_end: DateLike = None,
        platform: str = "all",
        won: Optional[bool] = None,
        search: Optional[str] = None,
        page: int = 1,
        page_size: Optional[int] = None,
    ) -> Dict[str, Any]:
        """Fetch one page of deals."""
        return self._get("/api/deals", {
            "dateStart": _date_param(date_start),
            "dateEnd": _date_param(date_end),
            "platform": platform,
            "won": None if won is None else str(won).lower(),
            "search": search,
            "page": page,
            "pageSize": page_size,
        })

    def get_contacts(
        self,
        search: Optional[str] = None,
        page: int = 1,
        page_size: Optional[int] = None,
    ) -> Dict[str, Any]:
        """Fetch one page of contacts."""
        return self._get("/api/contacts", {
            "search": search,
            "page": page,
            "pageSize": page_size,
        })


def get_client(base_url: Optional[str] = None) -> DashboardClient:
    """Create a client for the configured API URL."""
    return DashboardClient(base_url=base_url)
