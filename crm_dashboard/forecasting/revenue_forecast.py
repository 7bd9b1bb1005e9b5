"""
Revenue forecast engine.

Projects an expected daily revenue for every day of a requested range
from a trailing moving average of won-deal revenue, brackets it with a
fixed symmetric band, and scores how well the expectation tracked the
actuals over the most recent window.

Pipeline:
    facts (one row per day with won deals)
      -> densify  (one row per calendar day, raw value <NA> when no deal)
      -> project  (trailing mean of raw values, optimistic/pessimistic band)
      -> score    (1 - MAPE over the last window, clamped to [0, 1])
"""

from dataclasses import dataclass
from datetime import date, timedelta
from typing import Any, Iterable, Optional, Union
import logging

import numpy as np
import pandas as pd

from ..config.schema import ForecastConfig
from ..core.classifier import ALL_PLATFORMS, PlatformBucket, classify_series
from ..core.normalize import is_won, normalize_amount, normalize_date, normalize_label

logger = logging.getLogger(__name__)

FACT_COLUMNS = ["date", "revenue_actual"]
DAY_COLUMNS = ["date", "revenue_actual_filled", "revenue_actual_raw"]
SERIES_COLUMNS = [
    "date",
    "revenue_actual",
    "expected",
    "pessimistic",
    "optimistic",
    "is_history",
]


@dataclass
class ForecastPoint:
    """One day of the forecast series."""
    date: date
    revenue_actual: float
    expected: float
    pessimistic: float
    optimistic: float
    is_history: bool = True

    def to_dict(self) -> dict[str, Any]:
        return {
            "date": self.date.isoformat(),
            "revenue_actual": self.revenue_actual,
            "expected": self.expected,
            "pessimistic": self.pessimistic,
            "optimistic": self.optimistic,
            "is_history": self.is_history,
        }


@dataclass
class RevenueForecast:
    """
    Result of a revenue forecast.

    ``series`` holds one row per calendar day in [start, end] with the
    columns of :data:`SERIES_COLUMNS`.
    """
    start: date
    end: date
    ma_window: int
    band: float
    accuracy_rate: float
    series: pd.DataFrame

    @property
    def points(self) -> list[ForecastPoint]:
        return [
            ForecastPoint(
                date=row.date,
                revenue_actual=float(row.revenue_actual),
                expected=float(row.expected),
                pessimistic=float(row.pessimistic),
                optimistic=float(row.optimistic),
                is_history=bool(row.is_history),
            )
            for row in self.series.itertuples(index=False)
        ]

    @property
    def total_actual(self) -> float:
        return float(self.series["revenue_actual"].sum())

    def to_dict(self) -> dict[str, Any]:
        """Response payload consumed by the dashboard chart."""
        return {
            "start": self.start.isoformat(),
            "end": self.end.isoformat(),
            # No extrapolation beyond the requested range
            "horizon": 0,
            "maWindow": self.ma_window,
            "band": self.band,
            "accuracy_rate": self.accuracy_rate,
            "series": [p.to_dict() for p in self.points],
        }


# =============================================================================
# Revenue facts
# =============================================================================

def _column(df: pd.DataFrame, name: str) -> pd.Series:
    if name in df.columns:
        return df[name]
    return pd.Series([None] * len(df), index=df.index, dtype="object")


def aggregate_revenue_facts(
    deals: Union[pd.DataFrame, Iterable[dict]],
    start: date,
    end: date,
    platform: str = ALL_PLATFORMS,
) -> pd.DataFrame:
    """
    Won-deal revenue per win date, computed from raw deal records.

    Same selection as ``CRMRepository.fetch_revenue_facts``: won flag
    true-equivalent, win timestamp set and within [start, end], and the
    classified source matching ``platform`` unless it is "all". Null
    amounts count as 0.

    Parameters
    ----------
    deals : pd.DataFrame or iterable of dict
        Records with ``win``, ``win_at``, ``amount_total`` and
        ``deal_source_name`` fields in any storage form.
    start, end : date
        Inclusive win date range.
    platform : str
        "all" or a PlatformBucket value.

    Returns
    -------
    pd.DataFrame
        Columns ``date`` and ``revenue_actual`` sorted by date, one row
        per date with at least one qualifying deal.
    """
    df = deals if isinstance(deals, pd.DataFrame) else pd.DataFrame(list(deals))
    if df.empty:
        return pd.DataFrame(columns=FACT_COLUMNS)

    win_dates = _column(df, "win_at").map(normalize_date)
    mask = _column(df, "win").map(is_won).astype(bool)
    mask &= win_dates.map(lambda d: d is not None and start <= d <= end).astype(bool)

    if platform != ALL_PLATFORMS:
        labels = _column(df, "deal_source_name").map(normalize_label)
        mask &= classify_series(labels) == PlatformBucket(platform).value

    if not mask.any():
        return pd.DataFrame(columns=FACT_COLUMNS)

    qualifying = pd.DataFrame({
        "date": win_dates[mask],
        "revenue_actual": _column(df, "amount_total")[mask].map(normalize_amount).astype(float),
    })
    return (
        qualifying.groupby("date", as_index=False)["revenue_actual"]
        .sum()
        .sort_values("date")
        .reset_index(drop=True)
    )


# =============================================================================
# Calendar densification
# =============================================================================

def densify(facts: pd.DataFrame, start: date, end: date) -> pd.DataFrame:
    """
    Expand facts to one row per calendar day of [start, end].

    Parameters
    ----------
    facts : pd.DataFrame
        Columns ``date`` and ``revenue_actual``; dates may be any form
        accepted by :func:`normalize_date`.
    start, end : date
        Inclusive range.

    Returns
    -------
    pd.DataFrame
        ``date``, ``revenue_actual_filled`` (0 on days without a fact)
        and ``revenue_actual_raw`` (nullable Float64, <NA> on days
        without a fact), ascending with no gaps.
    """
    if start > end:
        raise ValueError(f"start ({start}) must not be after end ({end})")

    calendar = pd.DataFrame({"date": pd.date_range(start, end, freq="D").date})

    facts = facts[FACT_COLUMNS].copy() if not facts.empty else pd.DataFrame(columns=FACT_COLUMNS)
    facts["date"] = facts["date"].map(normalize_date)
    facts["revenue_actual"] = pd.to_numeric(facts["revenue_actual"], errors="coerce")
    facts = facts.groupby("date", as_index=False)["revenue_actual"].sum()
    facts["date"] = facts["date"].astype(object)

    days = calendar.merge(facts, on="date", how="left")
    raw = pd.to_numeric(days["revenue_actual"], errors="coerce").astype("Float64")
    days["revenue_actual_raw"] = raw
    days["revenue_actual_filled"] = raw.fillna(0.0).astype("float64")

    return days[DAY_COLUMNS]


# =============================================================================
# Moving-average projection
# =============================================================================

def project(days: pd.DataFrame, window_size: int = 14, band: float = 0.2) -> pd.DataFrame:
    """
    Trailing moving-average expectation with a symmetric band.

    For each day the expected value is the mean of the raw actuals over
    the trailing ``window_size`` days ending at that day. Days without a
    raw value are left out of both sum and count; a window with no raw
    value at all yields 0.

    Parameters
    ----------
    days : pd.DataFrame
        Output of :func:`densify`.
    window_size : int
        Trailing window length in days, >= 1.
    band : float
        Fraction in (0, 1) applied around the expectation.

    Returns
    -------
    pd.DataFrame
        Columns of :data:`SERIES_COLUMNS`.
    """
    if window_size < 1:
        raise ValueError(f"window_size must be >= 1, got {window_size}")
    if not 0 < band < 1:
        raise ValueError(f"band must be in (0, 1), got {band}")

    raw = pd.Series(
        days["revenue_actual_raw"].to_numpy(dtype="float64", na_value=np.nan),
        index=days.index,
    )
    expected = raw.rolling(window=window_size, min_periods=1).mean().fillna(0.0)

    return pd.DataFrame({
        "date": days["date"],
        "revenue_actual": days["revenue_actual_filled"].astype("float64"),
        "expected": expected,
        "pessimistic": expected * (1 - band),
        "optimistic": expected * (1 + band),
        "is_history": True,
    })[SERIES_COLUMNS]


# =============================================================================
# Accuracy
# =============================================================================

def score(series: pd.DataFrame, window_size: int, end_date: date) -> float:
    """
    Backward-looking accuracy of the expectation.

    Uses the points dated within the last ``window_size`` days up to
    ``end_date``. Points whose expected value is 0 contribute no term.

    Returns
    -------
    float
        ``1 - mean(|actual - expected| / expected)`` clamped to [0, 1];
        0 when no point has a non-zero expectation.
    """
    tail_start = end_date - timedelta(days=window_size - 1)
    dates = series["date"]
    tail = series[(dates >= tail_start) & (dates <= end_date)]
    tail = tail[tail["expected"] != 0]
    if tail.empty:
        return 0.0

    relative_errors = (tail["revenue_actual"] - tail["expected"]).abs() / tail["expected"]
    accuracy = 1.0 - float(relative_errors.mean())
    return float(np.clip(accuracy, 0.0, 1.0))


# =============================================================================
# Engine
# =============================================================================

class RevenueForecastEngine:
    """
    Compute revenue forecasts for a date range and platform scope.

    Parameters
    ----------
    repository : CRMRepository
        Source of won-deal revenue facts.
    config : ForecastConfig, optional
        Window size and band; defaults to 14 days and 20%.

    Examples
    --------
    >>> engine = RevenueForecastEngine(repository)
    >>> result = engine.forecast(date(2025, 1, 1), date(2025, 3, 31), "google_ads")
    >>> print(f"Accuracy: {result.accuracy_rate:.0%}")
    """

    def __init__(self, repository: Any, config: Optional[ForecastConfig] = None):
        self.repository = repository
        self.config = config or ForecastConfig()

    def forecast(self, start: date, end: date, platform: str = ALL_PLATFORMS) -> RevenueForecast:
        """Fetch facts for the range and build the forecast."""
        if start > end:
            raise ValueError(f"start ({start}) must not be after end ({end})")

        facts = self.repository.fetch_revenue_facts(start, end, platform)
        return self.forecast_from_facts(facts, start, end, platform=platform)

    def forecast_from_facts(
        self,
        facts: pd.DataFrame,
        start: date,
        end: date,
        platform: str = ALL_PLATFORMS,
    ) -> RevenueForecast:
        """Build the forecast from already extracted facts."""
        window_size = self.config.window_size
        band = self.config.band

        if facts.empty:
            logger.warning(f"No won deals between {start} and {end} (platform={platform})")

        days = densify(facts, start, end)
        series = project(days, window_size=window_size, band=band)
        accuracy_rate = score(series, window_size=window_size, end_date=end)

        logger.info(
            f"Revenue forecast {start}..{end} (platform={platform}): "
            f"{len(series)} days, {len(facts)} with revenue, accuracy={accuracy_rate:.3f}"
        )

        return RevenueForecast(
            start=start,
            end=end,
            ma_window=window_size,
            band=band,
            accuracy_rate=accuracy_rate,
            series=series,
        )
