"""
Normalization of loosely typed warehouse values.

The warehouse client may hand back dates as plain strings, as native
date/datetime objects, or wrapped in ``{"value": ...}`` objects, and the
won flag of a deal is stored as either a boolean or its string form.
Everything is converted to one canonical type here, before it reaches
the forecasting code.
"""

import re
from datetime import date, datetime
from typing import Any, Optional

import numpy as np
import pandas as pd

_ISO_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_SLASHED_ISO_DATE = re.compile(r"^\d{4}/\d{2}/\d{2}$")
_DAY_FIRST_DATE = re.compile(r"^\d{2}/\d{2}/\d{4}$")

WON_STRINGS = ("true",)


def unwrap_value(value: Any) -> Any:
    """Return the inner value of a ``{"value": x}`` wrapper, else the value itself."""
    if isinstance(value, dict) and "value" in value:
        return value["value"]
    return value


def _is_missing(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return value.strip() == ""
    try:
        return bool(pd.isna(value))
    except (TypeError, ValueError):
        return False


def normalize_date(value: Any) -> Optional[date]:
    """
    Convert any supported date representation to a calendar date.

    Accepted forms: ``date``, ``datetime`` / ``pd.Timestamp`` (time
    dropped), ``"YYYY-MM-DD"``, ``"YYYY/MM/DD"``, ``"DD/MM/YYYY"``, ISO
    timestamps, and any of these inside a ``{"value": ...}`` wrapper.

    Parameters
    ----------
    value : Any
        Raw value from the warehouse or a request.

    Returns
    -------
    date or None
        None for null or empty values.

    Raises
    ------
    ValueError
        If the value is not a recognizable date.
    """
    value = unwrap_value(value)
    if _is_missing(value):
        return None

    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, np.datetime64):
        return pd.Timestamp(value).date()

    if not isinstance(value, str):
        raise ValueError(f"Unrecognized date value: {value!r}")

    s = value.strip()[:10]
    try:
        if _ISO_DATE.match(s):
            return date.fromisoformat(s)
        if _SLASHED_ISO_DATE.match(s):
            return date.fromisoformat(s.replace("/", "-"))
        if _DAY_FIRST_DATE.match(s):
            dd, mm, yyyy = s.split("/")
            return date(int(yyyy), int(mm), int(dd))
    except ValueError as e:
        raise ValueError(f"Invalid date value {value!r}: {e}") from e

    raise ValueError(f"Unrecognized date value: {value!r}")


def is_won(value: Any) -> bool:
    """
    Interpret a won flag stored as boolean, number or string.

    True for boolean true, the number 1 and the string "true" in any
    case. Other strings, "1" included, are not won.
    """
    value = unwrap_value(value)
    if isinstance(value, (bool, np.bool_)):
        return bool(value)
    if isinstance(value, (int, float, np.integer, np.floating)):
        return bool(value == 1)
    if isinstance(value, str):
        return value.lower() in WON_STRINGS
    return False


def normalize_label(value: Any) -> str:
    """Source labels: unwrap, map null to an empty string, strip whitespace."""
    value = unwrap_value(value)
    if _is_missing(value):
        return ""
    return str(value).strip()


def normalize_amount(value: Any) -> float:
    """Monetary amounts: null counts as 0."""
    value = unwrap_value(value)
    if _is_missing(value):
        return 0.0
    return float(value)
