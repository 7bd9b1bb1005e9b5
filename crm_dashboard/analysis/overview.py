"""
Funnel overview aggregation.

Combines the daily marketing funnel rows (leads through sales, media
spend) with won-deal revenue from the CRM into dashboard totals and one
card per paid media platform.
"""

from datetime import date
from typing import Any, Optional
import logging

import pandas as pd

from ..core.classifier import ALL_PLATFORMS, PLATFORM_ORDER, PlatformBucket

logger = logging.getLogger(__name__)

FUNNEL_TOTALS = [
    "leads",
    "qualified_leads",
    "opportunities",
    "sales",
    "spend",
    "clicks",
    "impressions",
]

CARD_METRICS = ["leads", "qualified_leads", "opportunities", "spend", "clicks", "impressions"]


def safe_divide(numerator: float, denominator: float) -> Optional[float]:
    """Divide, returning None when the denominator is zero or missing."""
    if denominator is None or pd.isna(denominator) or denominator == 0:
        return None
    return float(numerator) / float(denominator)


def summarize_overview(rows: pd.DataFrame) -> dict[str, Any]:
    """
    Funnel totals and cost/conversion ratios over all rows.

    Parameters
    ----------
    rows : pd.DataFrame
        Output of ``CRMRepository.fetch_overview_rows``.

    Returns
    -------
    dict
        Summed metrics plus ``cpl``, ``cpq``, ``cpo``, ``cpv`` and the
        three stage conversion rates (None when undefined).
    """
    total: dict[str, Any] = {}
    for metric in FUNNEL_TOTALS:
        value = rows[metric].sum() if metric in rows.columns else 0
        total[metric] = float(value) if metric == "spend" else int(value)

    total["cpl"] = safe_divide(total["spend"], total["leads"])
    total["cpq"] = safe_divide(total["spend"], total["qualified_leads"])
    total["cpo"] = safe_divide(total["spend"], total["opportunities"])
    total["cpv"] = safe_divide(total["spend"], total["sales"])
    total["rate_leads_to_qualified"] = safe_divide(total["qualified_leads"], total["leads"])
    total["rate_qualified_to_opportunity"] = safe_divide(total["opportunities"], total["qualified_leads"])
    total["rate_opportunity_to_sale"] = safe_divide(total["sales"], total["opportunities"])
    return total


def build_platform_cards(
    rows: pd.DataFrame,
    crm_by_platform: dict[str, dict[str, float]],
    platform: str = ALL_PLATFORMS,
) -> list[dict[str, Any]]:
    """
    One performance card per platform bucket.

    Marketing rows without a platform are attributed to "other". CRM
    sales and revenue come from won deals bucketed by their source.

    Parameters
    ----------
    rows : pd.DataFrame
        Daily funnel rows with a ``platform`` column.
    crm_by_platform : dict
        ``{bucket: {"sales_crm": n, "revenue_crm": x}}``.
    platform : str
        "all" for every bucket, or a single bucket value.

    Returns
    -------
    list[dict]
        Cards ordered google_ads, meta_ads, linkedin_ads, other.
    """
    buckets = list(PLATFORM_ORDER) if platform == ALL_PLATFORMS else [PlatformBucket(platform).value]

    rows = rows.copy()
    if "platform" not in rows.columns:
        rows["platform"] = None
    rows["platform"] = rows["platform"].fillna(PlatformBucket.OTHER.value)
    rows.loc[~rows["platform"].isin(PLATFORM_ORDER), "platform"] = PlatformBucket.OTHER.value

    cards = []
    for bucket in buckets:
        subset = rows[rows["platform"] == bucket]
        metrics = {m: subset[m].sum() if m in subset.columns else 0 for m in CARD_METRICS}
        crm = crm_by_platform.get(bucket, {})
        sales_crm = int(crm.get("sales_crm", 0))
        revenue_crm = float(crm.get("revenue_crm", 0.0))
        spend = float(metrics["spend"])

        if subset.empty:
            daily_history = []
        else:
            daily = subset.groupby("date", as_index=False)[["spend", "leads"]].sum().sort_values("date")
            daily_history = [
                {
                    "date": d.isoformat() if isinstance(d, date) else str(d),
                    "spend": float(day_spend),
                    "leads": int(day_leads),
                }
                for d, day_spend, day_leads in zip(daily["date"], daily["spend"], daily["leads"])
            ]

        cards.append({
            "platform": bucket,
            "leads": int(metrics["leads"]),
            "qualified_leads": int(metrics["qualified_leads"]),
            "opportunities": int(metrics["opportunities"]),
            "spend": spend,
            "clicks": int(metrics["clicks"]),
            "impressions": int(metrics["impressions"]),
            "sales_crm": sales_crm,
            "revenue_crm": revenue_crm,
            "cpl": safe_divide(spend, metrics["leads"]),
            "cpv": safe_divide(spend, sales_crm),
            "roas": safe_divide(revenue_crm, spend),
            "ticket": safe_divide(revenue_crm, sales_crm),
            "daily_history": daily_history,
        })

    return cards


def _rows_to_records(rows: pd.DataFrame) -> list[dict[str, Any]]:
    # Missing values (NaN, NA, NaT) serialize as null
    rows = rows.astype(object).where(rows.notna(), None)
    records = []
    for record in rows.to_dict(orient="records"):
        d = record.get("date")
        if isinstance(d, date):
            record["date"] = d.isoformat()
        for key, value in record.items():
            if hasattr(value, "item"):
                record[key] = value.item()
        records.append(record)
    return records


class OverviewService:
    """
    Assemble the funnel overview for a date range and platform.

    Parameters
    ----------
    repository : CRMRepository
        Source of funnel rows and CRM revenue.
    """

    def __init__(self, repository: Any):
        self.repository = repository

    def overview(self, start: date, end: date, platform: str = ALL_PLATFORMS) -> dict[str, Any]:
        """Run both queries and assemble the response."""
        rows = self.repository.fetch_overview_rows(start, end, platform)
        crm_by_platform = self.repository.fetch_crm_by_platform(start, end)
        return self.assemble(rows, crm_by_platform, platform)

    def assemble(
        self,
        rows: pd.DataFrame,
        crm_by_platform: dict[str, dict[str, float]],
        platform: str = ALL_PLATFORMS,
    ) -> dict[str, Any]:
        """Build totals and cards from already fetched inputs."""
        total = summarize_overview(rows)
        scoped_crm = (
            crm_by_platform.values()
            if platform == ALL_PLATFORMS
            else [crm_by_platform.get(platform, {})]
        )
        total["sales_crm"] = int(sum(c.get("sales_crm", 0) for c in scoped_crm))
        total["revenue_crm"] = float(sum(c.get("revenue_crm", 0.0) for c in scoped_crm))

        logger.info(
            f"Overview (platform={platform}): {len(rows)} rows, "
            f"{total['leads']} leads, {total['sales_crm']} CRM sales"
        )

        return {
            "total": total,
            "platforms": _rows_to_records(rows),
            "crm_by_platform": crm_by_platform,
            "cards": build_platform_cards(rows, crm_by_platform, platform),
        }
