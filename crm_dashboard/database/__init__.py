"""Warehouse access layer for the CRM dashboard."""

from .connection import WarehouseConnection, WarehouseQueryError, get_warehouse, init_warehouse
from .models import Base, Deal, Contact, OverviewDaily
from .repository import CRMRepository

__all__ = [
    "WarehouseConnection",
    "WarehouseQueryError",
    "init_warehouse",
    "get_warehouse",
    "Base",
    "Deal",
    "Contact",
    "OverviewDaily",
    "CRMRepository",
]
