"""
Tests for api/client.py using an in-process transport.
"""

from datetime import date

import httpx
import pytest

from crm_dashboard.api.client import DashboardAPIError, DashboardClient, ForecastResponse, get_client


FORECAST_PAYLOAD = {
    "start": "2025-03-01",
    "end": "2025-03-02",
    "horizon": 0,
    "maWindow": 14,
    "band": 0.2,
    "accuracy_rate": 0.5,
    "series": [
        {"date": "2025-03-01", "revenue_actual": 100.0, "expected": 100.0,
         "pessimistic": 80.0, "optimistic": 120.0, "is_history": True},
        {"date": "2025-03-02", "revenue_actual": 0.0, "expected": 100.0,
         "pessimistic": 80.0, "optimistic": 120.0, "is_history": True},
    ],
}


@pytest.fixture
def requests_seen():
    return []


@pytest.fixture
def api(requests_seen):
    def handler(request: httpx.Request) -> httpx.Response:
        requests_seen.append(request)
        if request.url.path == "/health":
            return httpx.Response(200, json={"ok": True})
        if request.url.path == "/api/revenue-forecast":
            if request.url.params.get("platform") == "tiktok":
                return httpx.Response(400, json={"detail": "Unknown platform 'tiktok'"})
            return httpx.Response(200, json=FORECAST_PAYLOAD)
        if request.url.path == "/api/deals":
            return httpx.Response(200, json={"data": [], "total": 0, "page": 1, "pageSize": 50})
        if request.url.path == "/api/overview":
            return httpx.Response(500, json={"detail": "Failed to fetch overview"})
        return httpx.Response(404, text="not found")

    with DashboardClient("http://dashboard.test", transport=httpx.MockTransport(handler)) as client:
        yield client


class TestDashboardClient:

    def test_health_check(self, api):
        assert api.health_check() is True

    def test_health_check_unreachable(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        client = DashboardClient("http://dashboard.test", transport=httpx.MockTransport(handler))
        assert client.health_check() is False
        client.close()

    def test_forecast(self, api, requests_seen):
        forecast = api.get_revenue_forecast(date(2025, 3, 1), "2025-03-02", platform="google_ads")

        assert isinstance(forecast, ForecastResponse)
        assert forecast.start == date(2025, 3, 1)
        assert forecast.ma_window == 14
        assert forecast.accuracy_rate == 0.5
        assert list(forecast.series["date"]) == [date(2025, 3, 1), date(2025, 3, 2)]
        assert list(forecast.series["expected"]) == [100.0, 100.0]

        params = requests_seen[-1].url.params
        assert params["dateStart"] == "2025-03-01"
        assert params["platform"] == "google_ads"

    def test_omitted_params_not_sent(self, api, requests_seen):
        api.get_deals(won=False)
        params = requests_seen[-1].url.params
        assert "dateStart" not in params
        assert "search" not in params
        assert params["won"] == "false"

    def test_client_error_detail(self, api):
        with pytest.raises(DashboardAPIError) as exc_info:
            api.get_revenue_forecast(platform="tiktok")
        assert exc_info.value.status_code == 400
        assert "tiktok" in exc_info.value.detail

    def test_server_error(self, api):
        with pytest.raises(DashboardAPIError, match="Failed to fetch overview"):
            api.get_overview()

    def test_non_json_error(self, api):
        with pytest.raises(DashboardAPIError) as exc_info:
            api.get_contacts()
        assert exc_info.value.status_code == 404
        assert exc_info.value.detail == "not found"

    def test_base_url_from_env(self, monkeypatch):
        monkeypatch.setenv("DASHBOARD_API_URL", "http://api.internal:9000")
        client = DashboardClient()
        assert client.base_url == "http://api.internal:9000"
        client.close()

    def test_get_client(self):
        client = get_client("http://dashboard.test")
        assert isinstance(client, DashboardClient)
        assert client.base_url == "http://dashboard.test"
        client.close()
