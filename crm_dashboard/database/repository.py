"""
Repository of parameterized warehouse queries.
"""

from datetime import date
from typing import Any, Optional
import logging

import pandas as pd
from sqlalchemy import Date, MetaData, String, Table, and_, cast, func, or_, select

from .connection import WarehouseConnection
from .models import Contact, Deal, OverviewDaily
from ..config.schema import WarehouseConfig
from ..core.classifier import ALL_PLATFORMS, PlatformBucket, classify, classify_series, platform_filter
from ..core.normalize import WON_STRINGS

logger = logging.getLogger(__name__)

FACT_COLUMNS = ["date", "revenue_actual"]

OVERVIEW_METRICS = [
    "total_users",
    "visits",
    "leads",
    "qualified_leads",
    "opportunities",
    "sales",
    "spend",
    "clicks",
    "impressions",
]


class CRMRepository:
    """
    Read-only queries over the CRM and marketing tables.
    """

    def __init__(
        self,
        connection: WarehouseConnection,
        config: Optional[WarehouseConfig] = None,
    ):
        """
        Initialize repository.

        Parameters
        ----------
        connection : WarehouseConnection
            Connection used to run every query.
        config : WarehouseConfig, optional
            Supplies the physical table names.
        """
        self.connection = connection
        self.config = config or WarehouseConfig()
        self._metadata = MetaData()

        self.deals = self._table(Deal, self.config.deals_table)
        self.contacts = self._table(Contact, self.config.contacts_table)
        self.overview = self._table(OverviewDaily, self.config.overview_table)

    def _table(self, model: Any, name: str) -> Table:
        """Model table, renamed when the deployment uses a different name."""
        table = model.__table__
        if name == table.name:
            return table
        return table.to_metadata(self._metadata, name=name)

    # =========================================================================
    # Shared predicates
    # =========================================================================

    def _win_date(self):
        return func.date(self.deals.c.win_at, type_=Date)

    def _won_deal_conditions(self, start: date, end: date) -> list:
        """Won flag true-equivalent, win timestamp set, win date in range."""
        win_date = self._win_date()
        return [
            func.lower(cast(self.deals.c.win, String)).in_(WON_STRINGS),
            self.deals.c.win_at.isnot(None),
            win_date >= start,
            win_date <= end,
        ]

    # =========================================================================
    # Revenue
    # =========================================================================

    def fetch_revenue_facts(self, start: date, end: date, platform: str = ALL_PLATFORMS) -> pd.DataFrame:
        """
        Won-deal revenue per calendar day.

        Parameters
        ----------
        start, end : date
            Inclusive range on the win date.
        platform : str
            "all" or a PlatformBucket value matched against the deal source.

        Returns
        -------
        pd.DataFrame
            Columns ``date`` and ``revenue_actual``; days without a won
            deal have no row.
        """
        conditions = self._won_deal_conditions(start, end)
        source_filter = platform_filter(self.deals.c.deal_source_name, platform)
        if source_filter is not None:
            conditions.append(source_filter)

        win_date = self._win_date()
        stmt = (
            select(
                win_date.label("date"),
                func.sum(func.coalesce(self.deals.c.amount_total, 0)).label("revenue_actual"),
            )
            .where(and_(*conditions))
            .group_by(win_date)
            .order_by(win_date)
        )

        rows = self.connection.execute(stmt)
        logger.info(f"Fetched {len(rows)} revenue days for {start}..{end} (platform={platform})")
        return pd.DataFrame(rows, columns=FACT_COLUMNS)

    def fetch_crm_by_platform(self, start: date, end: date) -> dict[str, dict[str, float]]:
        """
        Won-deal count and revenue per platform bucket.

        Sums are grouped by the raw source label in the warehouse and the
        labels are bucketed here with the same classifier.
        """
        stmt = (
            select(
                self.deals.c.deal_source_name.label("deal_source_name"),
                func.count().label("sales_crm"),
                func.sum(func.coalesce(self.deals.c.amount_total, 0)).label("revenue_crm"),
            )
            .where(and_(*self._won_deal_conditions(start, end)))
            .group_by(self.deals.c.deal_source_name)
        )
        df = pd.DataFrame(
            self.connection.execute(stmt),
            columns=["deal_source_name", "sales_crm", "revenue_crm"],
        )

        result = {
            bucket.value: {"sales_crm": 0, "revenue_crm": 0.0}
            for bucket in PlatformBucket
        }
        if df.empty:
            return result

        df["platform"] = classify_series(df["deal_source_name"])
        grouped = df.groupby("platform")[["sales_crm", "revenue_crm"]].sum()
        for platform, row in grouped.iterrows():
            result[platform] = {
                "sales_crm": int(row["sales_crm"]),
                "revenue_crm": float(row["revenue_crm"] or 0.0),
            }
        return result

    # =========================================================================
    # Funnel
    # =========================================================================

    def fetch_overview_rows(self, start: date, end: date, platform: str = ALL_PLATFORMS) -> pd.DataFrame:
        """
        Funnel metrics summed per (date, platform).

        Rows with no platform count as "other".
        """
        table = self.overview
        conditions = [table.c.date >= start, table.c.date <= end]
        if platform == PlatformBucket.OTHER.value:
            conditions.append(or_(table.c.platform == platform, table.c.platform.is_(None)))
        elif platform != ALL_PLATFORMS:
            conditions.append(table.c.platform == PlatformBucket(platform).value)

        stmt = (
            select(
                table.c.date,
                table.c.platform,
                *[func.sum(table.c[m]).label(m) for m in OVERVIEW_METRICS],
            )
            .where(and_(*conditions))
            .group_by(table.c.date, table.c.platform)
            .order_by(table.c.date)
        )

        rows = self.connection.execute(stmt)
        logger.info(f"Fetched {len(rows)} overview rows for {start}..{end} (platform={platform})")
        df = pd.DataFrame(rows, columns=["date", "platform"] + OVERVIEW_METRICS)
        df[OVERVIEW_METRICS] = df[OVERVIEW_METRICS].fillna(0)
        return df

    # =========================================================================
    # Listings
    # =========================================================================

    def list_deals(
        self,
        start: date,
        end: date,
        platform: str = ALL_PLATFORMS,
        won: Optional[bool] = None,
        search: Optional[str] = None,
        page: int = 1,
        page_size: int = 50,
    ) -> dict[str, Any]:
        """
        Page through deals, newest first.

        Won deals are filtered on their win date, others on creation date.
        Every row carries its derived ``platform`` bucket.
        """
        table = self.deals
        if won:
            conditions = self._won_deal_conditions(start, end)
        else:
            created = func.date(table.c.created_at, type_=Date)
            conditions = [created >= start, created <= end]
            if won is False:
                conditions.append(
                    or_(
                        table.c.win.is_(None),
                        func.lower(cast(table.c.win, String)).not_in(WON_STRINGS),
                    )
                )

        source_filter = platform_filter(table.c.deal_source_name, platform)
        if source_filter is not None:
            conditions.append(source_filter)
        if search:
            pattern = f"%{search.lower()}%"
            conditions.append(or_(
                func.lower(table.c.name).like(pattern),
                func.lower(table.c.organization_name).like(pattern),
                func.lower(table.c.email).like(pattern),
            ))

        rows, total = self._paginate(table, conditions, page, page_size)
        for row in rows:
            row["platform"] = classify(row.get("deal_source_name")).value
        return {"data": rows, "total": total, "page": page, "pageSize": page_size}

    def list_contacts(
        self,
        search: Optional[str] = None,
        page: int = 1,
        page_size: int = 50,
    ) -> dict[str, Any]:
        """Page through contacts, newest first."""
        table = self.contacts
        conditions = []
        if search:
            pattern = f"%{search.lower()}%"
            conditions.append(or_(
                func.lower(table.c.name).like(pattern),
                func.lower(table.c.email).like(pattern),
            ))

        rows, total = self._paginate(table, conditions, page, page_size)
        return {"data": rows, "total": total, "page": page, "pageSize": page_size}

    def _paginate(
        self,
        table: Table,
        conditions: list,
        page: int,
        page_size: int,
    ) -> tuple[list[dict[str, Any]], int]:
        where = and_(*conditions) if conditions else None

        count_stmt = select(func.count()).select_from(table)
        page_stmt = (
            select(table)
            .order_by(table.c.created_at.desc())
            .limit(page_size)
            .offset((page - 1) * page_size)
        )
        if where is not None:
            count_stmt = count_stmt.where(where)
            page_stmt = page_stmt.where(where)

        total_rows = self.connection.execute(count_stmt)
        total = int(next(iter(total_rows[0].values()))) if total_rows else 0
        return self.connection.execute(page_stmt), total
