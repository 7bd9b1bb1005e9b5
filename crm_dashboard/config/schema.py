"""
Pydantic schemas for dashboard configuration.

These schemas define the structure and validation rules for the
warehouse connection, the revenue forecast model parameters, the
listing endpoints and the HTTP server.
"""

import os
from typing import Optional
from pydantic import BaseModel, Field, field_validator, model_validator


# =============================================================================
# Warehouse
# =============================================================================

class WarehouseConfig(BaseModel):
    """Connection settings for the analytics warehouse."""
    database_url: Optional[str] = Field(
        None,
        description="SQLAlchemy URL. Falls back to DATABASE_URL, then BigQuery, then SQLite",
    )
    project_id: Optional[str] = Field(None, description="BigQuery project id")
    dataset: Optional[str] = Field(None, description="BigQuery dataset holding the CRM tables")
    echo: bool = Field(False, description="Echo SQL statements")

    deals_table: str = Field("rd_station__deals", description="CRM deals table")
    contacts_table: str = Field("rd_station__contacts", description="CRM contacts table")
    overview_table: str = Field(
        "dashboard_overview_daily",
        description="Daily funnel metrics per platform",
    )

    def resolved_url(self) -> str:
        """
        Resolve the URL the engine should connect to.

        Returns
        -------
        str
            Explicit URL, else DATABASE_URL, else a BigQuery URL when
            project and dataset are set, else a local SQLite file.
        """
        url = self.database_url or os.getenv("DATABASE_URL")
        if not url and self.project_id and self.dataset:
            url = f"bigquery://{self.project_id}/{self.dataset}"
        if not url:
            url = "sqlite:///./crm_dashboard.db"

        # Handle postgres:// vs postgresql:// for compatibility
        if url.startswith("postgres://"):
            url = url.replace("postgres://", "postgresql://", 1)
        return url


# =============================================================================
# Forecast model
# =============================================================================

class ForecastConfig(BaseModel):
    """Parameters of the moving-average revenue forecast."""
    window_size: int = Field(14, ge=1, description="Trailing window in days")
    band: float = Field(0.2, gt=0, lt=1, description="Symmetric optimistic/pessimistic band")
    default_lookback_days: int = Field(
        90, ge=0,
        description="Days before today used when dateStart is omitted",
    )


# =============================================================================
# Listing endpoints
# =============================================================================

class ListingConfig(BaseModel):
    """Defaults for the overview and CRM listing endpoints."""
    default_lookback_days: int = Field(30, ge=0)
    default_page_size: int = Field(50, ge=1)
    max_page_size: int = Field(500, ge=1)

    @model_validator(mode="after")
    def validate_page_sizes(self) -> "ListingConfig":
        """Ensure the default page fits within the maximum."""
        if self.default_page_size > self.max_page_size:
            raise ValueError(
                f"default_page_size ({self.default_page_size}) cannot exceed "
                f"max_page_size ({self.max_page_size})"
            )
        return self


# =============================================================================
# HTTP server
# =============================================================================

class ApiConfig(BaseModel):
    """FastAPI server settings."""
    host: str = "0.0.0.0"
    port: int = Field(8080, ge=1, le=65535)
    cors_origins: list[str] = Field(
        default_factory=lambda: [
            "http://localhost:5173",
            "http://localhost:3000",
        ]
    )
    allow_methods: list[str] = Field(default_factory=lambda: ["GET"])

    @field_validator("allow_methods")
    @classmethod
    def uppercase_methods(cls, v: list[str]) -> list[str]:
        return [m.upper() for m in v]


# =============================================================================
# Root
# =============================================================================

class DashboardConfig(BaseModel):
    """Complete dashboard configuration."""
    name: str = Field("crm_dashboard", description="Deployment name")
    description: Optional[str] = None

    warehouse: WarehouseConfig = Field(default_factory=WarehouseConfig)
    forecast: ForecastConfig = Field(default_factory=ForecastConfig)
    listing: ListingConfig = Field(default_factory=ListingConfig)
    api: ApiConfig = Field(default_factory=ApiConfig)
