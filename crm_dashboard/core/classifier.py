"""
Origin classification for CRM deal sources.

A deal's free-text source label is mapped to one of a closed set of paid
media platforms. The ordered rules table below is the only place the
keywords live: the in-memory classifier and the SQL predicate used by the
warehouse queries are both generated from it.
"""

from enum import Enum
from typing import Any, Optional

import pandas as pd
from sqlalchemy import String, case, func, or_
from sqlalchemy.sql.elements import ColumnElement


class PlatformBucket(str, Enum):
    """Paid media platform a deal is attributed to."""
    GOOGLE_ADS = "google_ads"
    META_ADS = "meta_ads"
    LINKEDIN_ADS = "linkedin_ads"
    OTHER = "other"


ALL_PLATFORMS = "all"

# Evaluated top to bottom; the first matching bucket wins.
PLATFORM_RULES: tuple[tuple[PlatformBucket, tuple[str, ...]], ...] = (
    (PlatformBucket.GOOGLE_ADS, ("google",)),
    (PlatformBucket.META_ADS, ("meta", "facebook", "instagram")),
    (PlatformBucket.LINKEDIN_ADS, ("linkedin",)),
)

PLATFORM_ORDER: tuple[str, ...] = tuple(b.value for b in PlatformBucket)

PLATFORM_LABELS = {
    ALL_PLATFORMS: "All",
    PlatformBucket.GOOGLE_ADS.value: "Google Ads",
    PlatformBucket.META_ADS.value: "Meta Ads",
    PlatformBucket.LINKEDIN_ADS.value: "LinkedIn Ads",
    PlatformBucket.OTHER.value: "Other",
}


def classify(source_label: Optional[str]) -> PlatformBucket:
    """
    Map a deal source label to its platform bucket.

    Parameters
    ----------
    source_label : str or None
        Free-text origin of the deal (e.g. "Google Ads - Search").

    Returns
    -------
    PlatformBucket
        First bucket whose keyword appears in the lower-cased label,
        or OTHER when none does.
    """
    label = (source_label or "").lower()
    for bucket, keywords in PLATFORM_RULES:
        if any(keyword in label for keyword in keywords):
            return bucket
    return PlatformBucket.OTHER


def classify_series(labels: pd.Series) -> pd.Series:
    """Classify every label of a Series, returning bucket values as strings."""
    return labels.map(
        lambda v: classify(v if isinstance(v, str) else None).value
    ).astype("object")


def platform_case_expression(column: Any) -> ColumnElement:
    """
    Build the SQL CASE expression equivalent to :func:`classify`.

    Parameters
    ----------
    column : ColumnElement
        Column holding the source label.

    Returns
    -------
    ColumnElement
        CASE over LOWER(COALESCE(column, '')) LIKE predicates yielding
        the bucket value.
    """
    label = func.lower(func.coalesce(column, ""), type_=String)
    whens = [
        (or_(*[label.contains(keyword) for keyword in keywords]), bucket.value)
        for bucket, keywords in PLATFORM_RULES
    ]
    return case(*whens, else_=PlatformBucket.OTHER.value)


def platform_filter(column: Any, platform: str) -> Optional[ColumnElement]:
    """
    Build the WHERE predicate restricting rows to one platform.

    Returns None for "all" so callers can skip the clause.
    """
    if platform == ALL_PLATFORMS:
        return None
    bucket = PlatformBucket(platform)
    return platform_case_expression(column) == bucket.value
