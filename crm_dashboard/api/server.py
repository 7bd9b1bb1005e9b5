"""
FastAPI server for the marketing/CRM dashboard.

Provides endpoints for:
- Funnel overview per platform
- Revenue forecast with optimistic/pessimistic bands
- CRM deal and contact listings
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Optional, Dict, Any, List

from fastapi import Depends, FastAPI, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel
from starlette.concurrency import run_in_threadpool

from crm_dashboard.analysis.overview import OverviewService
from crm_dashboard.config.loader import ConfigLoader
from crm_dashboard.config.schema import DashboardConfig
from crm_dashboard.core.validation import InvalidRequestError, RequestValidator
from crm_dashboard.database.connection import WarehouseConnection, WarehouseQueryError
from crm_dashboard.database.repository import CRMRepository
from crm_dashboard.forecasting.revenue_forecast import RevenueForecastEngine

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

SERVICE_NAME = "CRM Dashboard API"
SERVICE_VERSION = "1.0.0"

# ============================================================================
# Pydantic Models for API
# ============================================================================

class ForecastPointResponse(BaseModel):
    date: str
    revenue_actual: float
    expected: float
    pessimistic: float
    optimistic: float
    is_history: bool = True


class RevenueForecastResponse(BaseModel):
    """Revenue forecast series consumed by the dashboard chart."""
    start: str
    end: str
    horizon: int = 0
    maWindow: int
    band: float
    accuracy_rate: float
    series: List[ForecastPointResponse]


class PaginatedResponse(BaseModel):
    data: List[Dict[str, Any]]
    total: int
    page: int
    pageSize: int


# ============================================================================
# Dependencies
# ============================================================================

def get_config(request: Request) -> DashboardConfig:
    return request.app.state.config


def get_repository(request: Request) -> CRMRepository:
    return request.app.state.repository


def get_validator(request: Request) -> RequestValidator:
    return request.app.state.validator


def _bad_request(error: InvalidRequestError) -> HTTPException:
    return HTTPException(status_code=400, detail=str(error))


def _service_error(resource: str, error: Exception) -> HTTPException:
    logger.error(f"Failed to fetch {resource}: {error}")
    return HTTPException(status_code=500, detail=f"Failed to fetch {resource}")


# ============================================================================
# FastAPI App
# ============================================================================

def create_app(
    config: Optional[DashboardConfig] = None,
    warehouse: Optional[WarehouseConnection] = None,
    validator: Optional[RequestValidator] = None,
) -> FastAPI:
    """
    Build the API application.

    Parameters
    ----------
    config : DashboardConfig, optional
        Defaults to :meth:`ConfigLoader.from_env`.
    warehouse : WarehouseConnection, optional
        Defaults to a connection built from ``config.warehouse``.
    validator : RequestValidator, optional
        Injects the notion of "today" used for default date ranges.
    """
    config = config or ConfigLoader.from_env()
    if warehouse is None:
        warehouse = WarehouseConnection(
            config.warehouse.resolved_url(), echo=config.warehouse.echo
        )

    app = FastAPI(
        title=SERVICE_NAME,
        description="Funnel metrics, CRM records and revenue forecast for the marketing dashboard",
        version=SERVICE_VERSION,
    )
    app.state.config = config
    app.state.warehouse = warehouse
    app.state.repository = CRMRepository(warehouse, config.warehouse)
    app.state.validator = validator or RequestValidator()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.api.cors_origins,
        allow_credentials=True,
        allow_methods=config.api.allow_methods,
        allow_headers=["*"],
    )

    _register_routes(app)
    return app


def _register_routes(app: FastAPI) -> None:

    @app.get("/")
    async def root():
        """Health check endpoint."""
        return {
            "status": "ok",
            "service": SERVICE_NAME,
            "version": SERVICE_VERSION,
        }

    @app.get("/health")
    async def health():
        """Liveness check."""
        return {
            "ok": True,
            "status": "healthy",
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    @app.get("/api/revenue-forecast", response_model=RevenueForecastResponse)
    async def revenue_forecast(
        date_start: Optional[str] = Query(None, alias="dateStart"),
        date_end: Optional[str] = Query(None, alias="dateEnd"),
        platform: Optional[str] = Query("all"),
        config: DashboardConfig = Depends(get_config),
        repository: CRMRepository = Depends(get_repository),
        validator: RequestValidator = Depends(get_validator),
    ):
        """
        Moving-average revenue forecast for the date range.

        Defaults to the last 90 days when dateStart is omitted.
        """
        try:
            date_range, platform_value = validator.resolve(
                date_start, date_end, platform, config.forecast.default_lookback_days
            )
        except InvalidRequestError as e:
            raise _bad_request(e)

        engine = RevenueForecastEngine(repository, config.forecast)
        try:
            result = await run_in_threadpool(
                engine.forecast, date_range.start, date_range.end, platform_value
            )
        except WarehouseQueryError as e:
            raise _service_error("revenue forecast", e)

        return result.to_dict()

    @app.get("/api/overview")
    async def overview(
        date_start: Optional[str] = Query(None, alias="dateStart"),
        date_end: Optional[str] = Query(None, alias="dateEnd"),
        platform: Optional[str] = Query("all"),
        config: DashboardConfig = Depends(get_config),
        repository: CRMRepository = Depends(get_repository),
        validator: RequestValidator = Depends(get_validator),
    ):
        """Funnel totals, per-platform rows and cards, CRM revenue by platform."""
        try:
            date_range, platform_value = validator.resolve(
                date_start, date_end, platform, config.listing.default_lookback_days
            )
        except InvalidRequestError as e:
            raise _bad_request(e)

        # Independent queries
        try:
            rows, crm_by_platform = await asyncio.gather(
                run_in_threadpool(
                    repository.fetch_overview_rows,
                    date_range.start, date_range.end, platform_value,
                ),
                run_in_threadpool(
                    repository.fetch_crm_by_platform,
                    date_range.start, date_range.end,
                ),
            )
        except WarehouseQueryError as e:
            raise _service_error("overview", e)

        return OverviewService(repository).assemble(rows, crm_by_platform, platform_value)

    @app.get("/api/deals", response_model=PaginatedResponse)
    async def list_deals(
        date_start: Optional[str] = Query(None, alias="dateStart"),
        date_end: Optional[str] = Query(None, alias="dateEnd"),
        platform: Optional[str] = Query("all"),
        won: Optional[bool] = Query(None),
        search: Optional[str] = Query(None),
        page: int = Query(1),
        page_size: Optional[int] = Query(None, alias="pageSize"),
        config: DashboardConfig = Depends(get_config),
        repository: CRMRepository = Depends(get_repository),
        validator: RequestValidator = Depends(get_validator),
    ):
        """Deals, newest first, filtered by date, platform, won flag and search term."""
        page_size = page_size or config.listing.default_page_size
        try:
            date_range, platform_value = validator.resolve(
                date_start, date_end, platform, config.listing.default_lookback_days
            )
            paging = validator.validate_pagination(page, page_size, config.listing.max_page_size)
            if not paging.valid:
                raise InvalidRequestError(paging)
        except InvalidRequestError as e:
            raise _bad_request(e)

        try:
            return await run_in_threadpool(
                repository.list_deals,
                date_range.start,
                date_range.end,
                platform_value,
                won,
                search,
                page,
                page_size,
            )
        except WarehouseQueryError as e:
            raise _service_error("deals", e)

    @app.get("/api/contacts", response_model=PaginatedResponse)
    async def list_contacts(
        search: Optional[str] = Query(None),
        page: int = Query(1),
        page_size: Optional[int] = Query(None, alias="pageSize"),
        config: DashboardConfig = Depends(get_config),
        repository: CRMRepository = Depends(get_repository),
        validator: RequestValidator = Depends(get_validator),
    ):
        """Contacts, newest first."""
        page_size = page_size or config.listing.default_page_size
        paging = validator.validate_pagination(page, page_size, config.listing.max_page_size)
        if not paging.valid:
            raise _bad_request(InvalidRequestError(paging))

        try:
            return await run_in_threadpool(repository.list_contacts, search, page, page_size)
        except WarehouseQueryError as e:
            raise _service_error("contacts", e)


app = create_app()

# ============================================================================
# Run with: uvicorn crm_dashboard.api.server:app --host 0.0.0.0 --port 8080
# ============================================================================

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=app.state.config.api.host, port=app.state.config.api.port)
