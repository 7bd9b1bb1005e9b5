"""
Global pytest fixtures for CRM dashboard tests.
"""
import pytest
import pandas as pd
from datetime import date, datetime

from crm_dashboard.config.schema import (
    DashboardConfig, WarehouseConfig, ForecastConfig, ListingConfig
)
from crm_dashboard.core.validation import RequestValidator
from crm_dashboard.database.connection import WarehouseConnection
from crm_dashboard.database.models import Contact, Deal, OverviewDaily
from crm_dashboard.database.repository import CRMRepository


RANGE_START = date(2025, 3, 1)
RANGE_END = date(2025, 3, 5)
TODAY = date(2025, 3, 5)


# =============================================================================
# Raw records
# =============================================================================

def _deal_records() -> list[dict]:
    """
    Deals covering every selection rule.

    In [2025-03-01, 2025-03-05] the won revenue per day is
    03-01: 150, 03-02: none, 03-03: 300, 03-04: 0 (null amount), 03-05: 200.
    """
    return [
        {"id": "d1", "name": "Acme", "win": "true", "win_at": datetime(2025, 3, 1, 10),
         "amount_total": 100.0, "deal_source_name": "Google Ads - Search",
         "created_at": datetime(2025, 2, 10)},
        {"id": "d2", "name": "Globex", "win": "TRUE", "win_at": datetime(2025, 3, 1, 15),
         "amount_total": 50.0, "deal_source_name": "Instagram Stories",
         "created_at": datetime(2025, 2, 11)},
        {"id": "d3", "name": "Initech", "win": "True", "win_at": datetime(2025, 3, 3, 9),
         "amount_total": 300.0, "deal_source_name": "Google / Meta Campaign",
         "created_at": datetime(2025, 2, 12)},
        {"id": "d4", "name": "Umbrella", "win": "false", "win_at": datetime(2025, 3, 2, 9),
         "amount_total": 999.0, "deal_source_name": "Google Ads",
         "created_at": datetime(2025, 3, 1)},
        {"id": "d5", "name": "Hooli", "win": "true", "win_at": None,
         "amount_total": 500.0, "deal_source_name": "Google Ads",
         "created_at": datetime(2025, 3, 2)},
        {"id": "d6", "name": "Stark", "win": "True", "win_at": datetime(2025, 3, 4, 18),
         "amount_total": None, "deal_source_name": "Referral",
         "created_at": datetime(2025, 2, 20)},
        {"id": "d7", "name": "Wayne", "win": "true", "win_at": datetime(2025, 2, 28, 23),
         "amount_total": 1000.0, "deal_source_name": "Google Ads",
         "created_at": datetime(2025, 2, 1)},
        {"id": "d8", "name": "Wonka", "win": "true", "win_at": datetime(2025, 3, 5, 8),
         "amount_total": 200.0, "deal_source_name": "LinkedIn Lead Gen",
         "created_at": datetime(2025, 2, 25)},
    ]


def _overview_records() -> list[dict]:
    return [
        {"date": date(2025, 3, 1), "platform": "google_ads", "leads": 10, "qualified_leads": 5,
         "opportunities": 2, "sales": 1, "spend": 100.0, "clicks": 50, "impressions": 1000},
        {"date": date(2025, 3, 2), "platform": "google_ads", "leads": 5, "qualified_leads": 3,
         "opportunities": 1, "sales": 1, "spend": 50.0, "clicks": 20, "impressions": 500},
        {"date": date(2025, 3, 1), "platform": "meta_ads", "leads": 8, "qualified_leads": 2,
         "opportunities": 1, "sales": 0, "spend": 80.0, "clicks": 40, "impressions": 2000},
        {"date": date(2025, 3, 1), "platform": None, "leads": 2, "qualified_leads": 0,
         "opportunities": 0, "sales": 0, "spend": 0.0, "clicks": 0, "impressions": 0},
        {"date": date(2025, 2, 20), "platform": "google_ads", "leads": 100, "qualified_leads": 50,
         "opportunities": 20, "sales": 10, "spend": 1000.0, "clicks": 500, "impressions": 10000},
    ]


def _contact_records() -> list[dict]:
    return [
        {"id": "c1", "name": "Ana Souza", "email": "ana@example.com",
         "created_at": datetime(2025, 3, 1)},
        {"id": "c2", "name": "Bruno Lima", "email": "bruno@example.com",
         "created_at": datetime(2025, 3, 3)},
        {"id": "c3", "name": "Carla Dias", "email": "carla@acme.com",
         "created_at": datetime(2025, 2, 1)},
    ]


@pytest.fixture
def deal_records() -> list[dict]:
    return _deal_records()


@pytest.fixture
def deals_df() -> pd.DataFrame:
    return pd.DataFrame(_deal_records())


# =============================================================================
# Configuration
# =============================================================================

@pytest.fixture
def dashboard_config() -> DashboardConfig:
    """In-memory warehouse with default model parameters."""
    return DashboardConfig(
        name="test_dashboard",
        warehouse=WarehouseConfig(database_url="sqlite://"),
        forecast=ForecastConfig(window_size=14, band=0.2, default_lookback_days=90),
        listing=ListingConfig(default_lookback_days=30, default_page_size=50, max_page_size=500),
    )


@pytest.fixture
def validator() -> RequestValidator:
    """Validator whose today is the last day of the seeded range."""
    return RequestValidator(today=lambda: TODAY)


# =============================================================================
# Warehouse
# =============================================================================

@pytest.fixture
def warehouse():
    """Empty in-memory SQLite warehouse with tables created."""
    connection = WarehouseConnection("sqlite://")
    connection.create_tables()
    yield connection
    connection.dispose()


@pytest.fixture
def seeded_warehouse(warehouse):
    """Warehouse holding the sample deals, contacts and funnel rows."""
    with warehouse.get_session() as session:
        session.add_all([Deal(**r) for r in _deal_records()])
        session.add_all([Contact(**r) for r in _contact_records()])
        session.add_all([OverviewDaily(**r) for r in _overview_records()])
    return warehouse


@pytest.fixture
def repository(seeded_warehouse) -> CRMRepository:
    return CRMRepository(seeded_warehouse)


@pytest.fixture
def empty_repository(warehouse) -> CRMRepository:
    return CRMRepository(warehouse)
