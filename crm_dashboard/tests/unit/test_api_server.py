"""
Tests for the FastAPI server.

Runs the app against the seeded in-memory warehouse through
FastAPI's TestClient.
"""

from unittest.mock import Mock

import pytest
from fastapi.testclient import TestClient

from crm_dashboard.api.server import create_app
from crm_dashboard.database.connection import WarehouseConnection, WarehouseQueryError


@pytest.fixture
def client(dashboard_config, seeded_warehouse, validator):
    app = create_app(dashboard_config, warehouse=seeded_warehouse, validator=validator)
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def failing_client(dashboard_config, validator):
    """App whose every warehouse query fails."""
    warehouse = Mock(spec=WarehouseConnection)
    warehouse.execute.side_effect = WarehouseQueryError("connection reset")
    app = create_app(dashboard_config, warehouse=warehouse, validator=validator)
    with TestClient(app) as test_client:
        yield test_client


class TestHealth:

    def test_root(self, client):
        response = client.get("/")
        assert response.status_code == 200
        assert response.json()["status"] == "ok"

    def test_health(self, client):
        body = client.get("/health").json()
        assert body["ok"] is True
        assert body["status"] == "healthy"
        assert "timestamp" in body

    def test_cors_allows_dashboard_origin(self, client):
        response = client.get("/health", headers={"Origin": "http://localhost:5173"})
        assert response.headers["access-control-allow-origin"] == "http://localhost:5173"


# =============================================================================
# Revenue forecast
# =============================================================================

class TestRevenueForecastEndpoint:

    def test_payload_shape(self, client):
        response = client.get(
            "/api/revenue-forecast",
            params={"dateStart": "2025-03-01", "dateEnd": "2025-03-05"},
        )
        assert response.status_code == 200

        body = response.json()
        assert body["start"] == "2025-03-01"
        assert body["end"] == "2025-03-05"
        assert body["horizon"] == 0
        assert body["maWindow"] == 14
        assert body["band"] == 0.2
        assert set(body["series"][0]) == {
            "date", "revenue_actual", "expected", "pessimistic", "optimistic", "is_history"
        }

    def test_series_values(self, client):
        body = client.get(
            "/api/revenue-forecast",
            params={"dateStart": "2025-03-01", "dateEnd": "2025-03-05"},
        ).json()

        series = body["series"]
        assert [p["date"] for p in series] == [
            "2025-03-01", "2025-03-02", "2025-03-03", "2025-03-04", "2025-03-05"
        ]
        assert [p["revenue_actual"] for p in series] == [150.0, 0.0, 300.0, 0.0, 200.0]
        assert [p["expected"] for p in series] == pytest.approx([150.0, 150.0, 225.0, 150.0, 162.5])
        assert series[2]["pessimistic"] == pytest.approx(180.0)
        assert series[2]["optimistic"] == pytest.approx(270.0)
        assert body["accuracy_rate"] == pytest.approx(0.48718, abs=1e-4)

    def test_platform_scope(self, client):
        body = client.get(
            "/api/revenue-forecast",
            params={"dateStart": "2025-03-01", "dateEnd": "2025-03-05", "platform": "google_ads"},
        ).json()
        assert [p["revenue_actual"] for p in body["series"]] == [100.0, 0.0, 300.0, 0.0, 0.0]
        assert body["accuracy_rate"] == pytest.approx(0.3)

    def test_defaults_to_last_90_days(self, client):
        body = client.get("/api/revenue-forecast").json()
        assert body["end"] == "2025-03-05"
        assert body["start"] == "2024-12-05"
        assert len(body["series"]) == 91

    def test_single_day(self, client):
        body = client.get(
            "/api/revenue-forecast",
            params={"dateStart": "2025-03-03", "dateEnd": "2025-03-03"},
        ).json()
        assert len(body["series"]) == 1
        assert body["series"][0]["expected"] == pytest.approx(300.0)
        assert body["accuracy_rate"] == pytest.approx(1.0)

    @pytest.mark.parametrize("params", [
        {"dateStart": "2025-03-05", "dateEnd": "2025-03-01"},
        {"dateStart": "first of march"},
        {"platform": "tiktok"},
    ])
    def test_bad_request(self, client, params):
        response = client.get("/api/revenue-forecast", params=params)
        assert response.status_code == 400
        assert response.json()["detail"]

    def test_warehouse_failure(self, failing_client):
        response = failing_client.get("/api/revenue-forecast")
        assert response.status_code == 500
        assert response.json() == {"detail": "Failed to fetch revenue forecast"}


# =============================================================================
# Overview
# =============================================================================

class TestOverviewEndpoint:

    def test_overview(self, client):
        body = client.get(
            "/api/overview",
            params={"dateStart": "2025-03-01", "dateEnd": "2025-03-05"},
        ).json()

        assert body["total"]["leads"] == 25
        assert body["total"]["sales_crm"] == 5
        assert body["crm_by_platform"]["meta_ads"] == {"sales_crm": 1, "revenue_crm": 50.0}
        assert [c["platform"] for c in body["cards"]] == [
            "google_ads", "meta_ads", "linkedin_ads", "other"
        ]

    def test_other_platform(self, client):
        body = client.get(
            "/api/overview",
            params={"dateStart": "2025-03-01", "dateEnd": "2025-03-05", "platform": "other"},
        ).json()
        assert body["total"]["leads"] == 2
        assert len(body["cards"]) == 1

    def test_bad_platform(self, client):
        assert client.get("/api/overview", params={"platform": "bing"}).status_code == 400

    def test_warehouse_failure(self, failing_client):
        response = failing_client.get("/api/overview")
        assert response.status_code == 500
        assert response.json() == {"detail": "Failed to fetch overview"}


# =============================================================================
# Listings
# =============================================================================

class TestListingEndpoints:

    def test_won_deals(self, client):
        body = client.get(
            "/api/deals",
            params={"dateStart": "2025-03-01", "dateEnd": "2025-03-05", "won": "true"},
        ).json()
        assert body["total"] == 5
        assert body["pageSize"] == 50
        assert body["data"][0]["id"] == "d8"
        assert body["data"][0]["platform"] == "linkedin_ads"

    def test_deals_page_size(self, client):
        body = client.get(
            "/api/deals",
            params={"dateStart": "2025-03-01", "dateEnd": "2025-03-05", "won": "true",
                    "page": 3, "pageSize": 2},
        ).json()
        assert [d["id"] for d in body["data"]] == ["d1"]

    @pytest.mark.parametrize("params", [{"pageSize": 501}, {"page": 0}])
    def test_deals_bad_paging(self, client, params):
        assert client.get("/api/deals", params=params).status_code == 400

    def test_contacts(self, client):
        body = client.get("/api/contacts", params={"search": "example"}).json()
        assert body["total"] == 2
        assert [c["id"] for c in body["data"]] == ["c2", "c1"]

    def test_contacts_bad_paging(self, client):
        assert client.get("/api/contacts", params={"pageSize": 10_000}).status_code == 400

    def test_warehouse_failure(self, failing_client):
        assert failing_client.get("/api/deals").json() == {"detail": "Failed to fetch deals"}
        assert failing_client.get("/api/contacts").json() == {"detail": "Failed to fetch contacts"}
