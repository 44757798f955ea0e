"""Date normalization.

Every date-keyed view groups on a canonical ``YYYY-MM-DD`` string taken
from the *local* calendar date, so a value entered as ``2026-01-13`` and
one entered as ``1/13/2026`` land in the same bucket.
"""

from __future__ import annotations

import re
import warnings
from datetime import date, datetime
from typing import Any, Dict, Optional

import pandas as pd


ISO_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
MDY_DATE = re.compile(r"(\d{1,2})[/\-](\d{1,2})[/\-](\d{4})")
MDY_DATE_EXACT = re.compile(r"^\d{1,2}/\d{1,2}/\d{4}$")
NUMERIC = re.compile(r"^[-+]?\d+(?:\.\d+)?$")
DATE_LIKE_KEY = re.compile(r"date|created", re.IGNORECASE)

MS_THRESHOLD = 1e12
SECONDS_THRESHOLD = 1e9
MAX_SEARCH_DEPTH = 4


def _from_epoch_ms(ms: float) -> Optional[str]:
    try:
        return datetime.fromtimestamp(ms / 1000.0).date().isoformat()
    except (OverflowError, OSError, ValueError):
        return None


def _from_number(value: float) -> Optional[str]:
    if value > MS_THRESHOLD:
        return _from_epoch_ms(value)
    if value > SECONDS_THRESHOLD:
        return _from_epoch_ms(value * 1000.0)
    return None


def _from_datetime(value: datetime) -> str:
    if value.tzinfo is not None:
        value = value.astimezone()
    return value.date().isoformat()


def _from_string(text: str) -> Optional[str]:
    text = text.replace("\u00a0", "").strip()
    if not text:
        return None

    if ISO_DATE.match(text):
        try:
            return date.fromisoformat(text).isoformat()
        except ValueError:
            return None

    match = MDY_DATE.search(text)
    if match:
        month, day, year = (int(g) for g in match.groups())
        try:
            return date(year, month, day).isoformat()
        except ValueError:
            return None

    if NUMERIC.match(text):
        return _from_number(float(text))

    with warnings.catch_warnings():
        warnings.simplefilter("ignore")
        try:
            parsed = pd.to_datetime(text, errors="coerce")
        except (ValueError, OverflowError, TypeError):
            return None
    if parsed is None or pd.isna(parsed):
        return None
    return _from_datetime(parsed.to_pydatetime())


def normalize_date(value: Any) -> Optional[str]:
    """Return the canonical ``YYYY-MM-DD`` key for a loosely typed date, or None."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, dict):
        seconds = value.get("seconds", value.get("_seconds"))
        if seconds:
            try:
                return _from_epoch_ms(float(seconds) * 1000.0)
            except (TypeError, ValueError):
                return None
        if "value" in value:
            return normalize_date(value["value"])
        return None
    if isinstance(value, pd.Timestamp):
        return None if pd.isna(value) else _from_datetime(value.to_pydatetime())
    if isinstance(value, datetime):
        return _from_datetime(value)
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, (int, float)):
        if pd.isna(value):
            return None
        return _from_number(float(value))
    return _from_string(str(value))


def _looks_like_date(value: Any) -> bool:
    if isinstance(value, dict):
        return any(value.get(k) for k in ("seconds", "_seconds", "nanoseconds", "_nanoseconds"))
    if isinstance(value, bool):
        return False
    if isinstance(value, (int, float)):
        return value > SECONDS_THRESHOLD
    if isinstance(value, (date, datetime)):
        return True
    if isinstance(value, str):
        return bool(ISO_DATE.match(value) or MDY_DATE_EXACT.match(value)) or normalize_date(value) is not None
    return False


def find_date_in_object(obj: Any, depth: int = 0, seen: Optional[set] = None) -> Any:
    if not isinstance(obj, dict) or depth > MAX_SEARCH_DEPTH:
        return None
    seen = set() if seen is None else seen
    if id(obj) in seen:
        return None
    seen.add(id(obj))

    for value in obj.values():
        if value is None:
            continue
        if _looks_like_date(value):
            return value
        if isinstance(value, dict):
            found = find_date_in_object(value, depth + 1, seen)
            if found is not None:
                return found
    return None


def resolve_record_date(record: Dict[str, Any], date_key: Optional[str]) -> Any:
    """Raw date value for a record: the resolved key, then any date-like key, then a nested search."""
    if not record:
        return None
    if date_key and record.get(date_key) is not None:
        return record[date_key]
    for key, value in record.items():
        if value is not None and DATE_LIKE_KEY.search(str(key)):
            return value
    return find_date_in_object(record)

