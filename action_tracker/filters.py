from __future__ import annotations

from dataclasses import asdict, dataclass, fields, replace
from typing import Any, Dict, List, Mapping, Optional

import pandas as pd

from action_tracker.dates import normalize_date
from action_tracker.values import normalize_value


# Filter predicate -> normalized frame column.
CATEGORICAL_PREDICATES = {
    "business": "business",
    "business_type": "business_type",
    "process": "process",
    "sub_type": "sub_type",
    "status": "status",
    "user": "owner",
}
DATE_PREDICATES = ("date_from", "date_to")

# Accept the camelCase names the browser client sends.
PREDICATE_ALIASES = {
    "businessType": "business_type",
    "subType": "sub_type",
    "owner": "user",
    "dateFrom": "date_from",
    "dateTo": "date_to",
}


@dataclass(frozen=True)
class FilterSet:
    business: Optional[str] = None
    business_type: Optional[str] = None
    process: Optional[str] = None
    sub_type: Optional[str] = None
    status: Optional[str] = None
    user: Optional[str] = None
    date_from: Optional[str] = None
    date_to: Optional[str] = None

    def with_business(self, value: Any) -> "FilterSet":
        return set_filter(self, "business", value)

    def with_business_type(self, value: Any) -> "FilterSet":
        return set_filter(self, "business_type", value)

    def with_process(self, value: Any) -> "FilterSet":
        return set_filter(self, "process", value)

    def with_sub_type(self, value: Any) -> "FilterSet":
        return set_filter(self, "sub_type", value)

    def with_status(self, value: Any) -> "FilterSet":
        return set_filter(self, "status", value)

    def with_user(self, value: Any) -> "FilterSet":
        return set_filter(self, "user", value)

    def with_date_from(self, value: Any) -> "FilterSet":
        return set_filter(self, "date_from", value)

    def with_date_to(self, value: Any) -> "FilterSet":
        return set_filter(self, "date_to", value)

    def active(self) -> Dict[str, str]:
        return {k: v for k, v in asdict(self).items() if v is not None}


FILTER_FIELDS = [f.name for f in fields(FilterSet)]


class InvalidFilter(ValueError):
    pass


def _canonical(name: str, value: Any) -> Optional[str]:
    if name in DATE_PREDICATES:
        canonical = normalize_date(value)
        # A blank bound means unset; a non-blank one must parse.
        if canonical is None and normalize_value(value) is not None:
            raise InvalidFilter(f"Unparseable {name}: {value!r}")
        return canonical
    return normalize_value(value)


def set_filter(filters: FilterSet, name: str, value: Any) -> FilterSet:
    name = PREDICATE_ALIASES.get(name, name)
    if name not in FILTER_FIELDS:
        raise InvalidFilter(f"Unknown filter: {name}")
    return replace(filters, **{name: _canonical(name, value)})


def normalize_filters(raw: Mapping[str, Any]) -> FilterSet:
    out = FilterSet()
    for name, value in (raw or {}).items():
        name = PREDICATE_ALIASES.get(name, name)
        if name in FILTER_FIELDS:
            out = set_filter(out, name, value)
    return out


def reduce_filters(state: FilterSet, action: Mapping[str, Any]) -> FilterSet:
    """Apply a filter-control action: ``{"type": "set", "field", "value"}`` or ``{"type": "clear"}``."""
    kind = action.get("type")
    if kind == "set":
        return set_filter(state, str(action.get("field")), action.get("value"))
    if kind == "unset":
        return set_filter(state, str(action.get("field")), None)
    if kind == "clear":
        return FilterSet()
    raise ValueError(f"Unknown filter action: {kind}")


def apply_filters(frame: pd.DataFrame, filters: FilterSet) -> pd.DataFrame:
    if frame.empty:
        return frame.copy()
    mask = pd.Series(True, index=frame.index)
    for name, column in CATEGORICAL_PREDICATES.items():
        wanted = getattr(filters, name)
        if wanted is not None:
            mask &= frame[column].eq(wanted).fillna(False).astype(bool)

    if filters.date_from is not None or filters.date_to is not None:
        dates = frame["date"]
        mask &= dates.notna()
        if filters.date_from is not None:
            mask &= dates.fillna("") >= filters.date_from
        if filters.date_to is not None:
            # Canonical dates are calendar days, so the upper bound covers the whole day.
            mask &= dates.fillna("") <= filters.date_to
    return frame[mask].copy()


def filter_options(frame: pd.DataFrame) -> Dict[str, List[str]]:
    out: Dict[str, List[str]] = {}
    for name, column in CATEGORICAL_PREDICATES.items():
        if frame.empty or column not in frame.columns:
            out[name] = []
            continue
        out[name] = sorted(str(v) for v in frame[column].dropna().unique().tolist())
    return out
