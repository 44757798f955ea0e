from __future__ import annotations

import json
import logging
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence

import pandas as pd

from action_tracker.columns import CATEGORICAL_FIELDS, ColumnResolver, columns_from_payload
from action_tracker.dates import normalize_date, resolve_record_date
from action_tracker.filters import FilterSet, apply_filters, normalize_filters
from action_tracker.values import coerce_minutes, normalize_value
from action_tracker.warehouse import get_warehouse_client


logger = logging.getLogger(__name__)

FRAME_COLUMNS = ["row_index", "id"] + CATEGORICAL_FIELDS + ["create_date", "deadline", "date", "minutes"]


def empty_frame() -> pd.DataFrame:
    frame = pd.DataFrame({c: pd.Series(dtype=object) for c in FRAME_COLUMNS})
    frame["row_index"] = frame["row_index"].astype("int64")
    frame["minutes"] = frame["minutes"].astype(float)
    return frame


def _unwrap(value: Any) -> Any:
    if isinstance(value, dict) and "value" in value:
        return value["value"]
    return value


def normalize_records(rows: Sequence[Mapping[str, Any]], key_map: Mapping[str, Optional[str]]) -> pd.DataFrame:
    """Project raw records onto the fixed semantic fields. Raw records are left untouched."""
    if not rows:
        return empty_frame()

    def pick(row: Mapping[str, Any], semantic: str) -> Any:
        key = key_map.get(semantic)
        return row.get(key) if key else None

    out: List[Dict[str, Any]] = []
    for idx, row in enumerate(rows):
        record: Dict[str, Any] = {"row_index": idx, "id": _unwrap(row.get("id"))}
        for field in CATEGORICAL_FIELDS:
            record[field] = normalize_value(pick(row, field))
        record["create_date"] = normalize_date(pick(row, "create_date"))
        record["deadline"] = normalize_date(pick(row, "deadline"))
        record["date"] = record["create_date"] or normalize_date(resolve_record_date(row, key_map.get("create_date")))
        record["minutes"] = coerce_minutes(pick(row, "minutes"))
        out.append(record)

    frame = pd.DataFrame(out, columns=FRAME_COLUMNS, dtype=object)
    frame["minutes"] = frame["minutes"].astype(float)
    frame["row_index"] = frame["row_index"].astype("int64")

    undated = int(frame["date"].isna().sum())
    if undated:
        logger.debug("%d of %d records have no resolvable date", undated, len(frame))
    return frame


def rows_for(frame: pd.DataFrame, rows: Sequence[Mapping[str, Any]]) -> List[Mapping[str, Any]]:
    if frame.empty:
        return []
    return [rows[int(i)] for i in frame["row_index"].tolist()]


def format_cell(value: Any) -> Any:
    if value is None:
        return ""
    if isinstance(value, dict):
        inner = value.get("value")
        return inner if inner is not None else json.dumps(value, default=str)
    try:
        if pd.isna(value):
            return ""
    except (TypeError, ValueError):
        pass
    return value


def unique_raw_values(rows: Sequence[Mapping[str, Any]], key: Optional[str]) -> List[str]:
    if not key:
        return []
    values = {str(_unwrap(r.get(key))).strip() for r in rows if _unwrap(r.get(key)) not in (None, "")}
    return sorted(v for v in values if v)


# ---------------- Public API (Streamlit parity + FastAPI use) ----------------
def build_data_context(payload: Mapping[str, Any]) -> Dict[str, Any]:
    rows = list(payload.get("rows") or [])
    columns = columns_from_payload(payload.get("columns"), rows)
    resolver = ColumnResolver(columns)
    key_map = resolver.resolve_all()
    logger.debug("Resolved column keys: %s", key_map)
    return {
        "columns": [{"key": c.key, "label": c.label} for c in columns],
        "rows": rows,
        "resolver": resolver,
        "key_map": key_map,
        "frame": normalize_records(rows, key_map),
    }


def load_dashboard_data(fetch: Optional[Callable[[], Mapping[str, Any]]] = None) -> Dict[str, Any]:
    if fetch is None:
        fetch = get_warehouse_client().fetch_records
    return build_data_context(fetch())


def prepare_context(filters: dict | FilterSet | None, data_ctx: Dict[str, Any]) -> Dict[str, Any]:
    frame: pd.DataFrame = data_ctx.get("frame", empty_frame())
    filt = filters if isinstance(filters, FilterSet) else normalize_filters(filters or {})
    filtered = apply_filters(frame, filt)
    return {
        "filters": filt,
        "frame": frame,
        "filtered": filtered,
        "rows": data_ctx.get("rows", []),
        "columns": data_ctx.get("columns", []),
        "key_map": data_ctx.get("key_map", {}),
    }
