from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Literal, Mapping, Optional, Sequence

import pandas as pd

from action_tracker.data import format_cell, rows_for, unique_raw_values
from action_tracker.dates import normalize_date
from action_tracker.metrics_overview import priority_options, status_options
from action_tracker.values import normalize_value

SortDir = Literal["asc", "desc"]


@dataclass(frozen=True)
class AdminQuery:
    owner: Optional[str] = None
    business_type: Optional[str] = None
    status: Optional[str] = None
    business_query: str = ""
    deadline_from: Optional[str] = None
    deadline_to: Optional[str] = None
    sort_key: Optional[str] = None
    sort_dir: SortDir = "asc"


def normalize_admin_query(raw: Mapping[str, Any]) -> AdminQuery:
    sort_dir = str(raw.get("sort_dir") or "asc").lower()
    return AdminQuery(
        owner=normalize_value(raw.get("owner")),
        business_type=normalize_value(raw.get("business_type")),
        status=normalize_value(raw.get("status")),
        business_query=(raw.get("business_query") or "").strip().lower(),
        deadline_from=normalize_date(raw.get("deadline_from")),
        deadline_to=normalize_date(raw.get("deadline_to")),
        sort_key=raw.get("sort_key") or None,
        sort_dir="desc" if sort_dir == "desc" else "asc",
    )


def filter_admin_frame(frame: pd.DataFrame, query: AdminQuery) -> pd.DataFrame:
    if frame.empty:
        return frame
    mask = pd.Series(True, index=frame.index)
    for name in ("owner", "business_type", "status"):
        wanted = getattr(query, name)
        if wanted is not None:
            mask &= frame[name].eq(wanted).fillna(False).astype(bool)
    if query.business_query:
        mask &= frame["business"].fillna("").str.lower().str.contains(query.business_query, regex=False)
    deadlines = frame["deadline"].fillna("")
    if query.deadline_from:
        mask &= frame["deadline"].notna() & (deadlines >= query.deadline_from)
    if query.deadline_to:
        mask &= frame["deadline"].notna() & (deadlines <= query.deadline_to)
    return frame[mask]


def sort_records(records: Sequence[Mapping[str, Any]], sort_key: Optional[str], sort_dir: SortDir = "asc") -> List[Mapping[str, Any]]:
    if not sort_key:
        return list(records)

    def key(r: Mapping[str, Any]) -> str:
        value = r.get(sort_key)
        return "" if value is None else str(format_cell(value))

    return sorted(records, key=key, reverse=(sort_dir == "desc"))


def compute_admin_table(ctx: Dict[str, Any], query: AdminQuery) -> Dict[str, Any]:
    frame: pd.DataFrame = ctx.get("frame", pd.DataFrame())
    rows = ctx.get("rows", [])
    columns = ctx.get("columns", [])
    filtered = filter_admin_frame(frame, query)
    records = sort_records(rows_for(filtered, rows), query.sort_key, query.sort_dir)
    table = [{c["key"]: format_cell(r.get(c["key"])) for c in columns} | {"id": r.get("id")} for r in records]
    return {
        "columns": columns,
        "rows": table,
        "shown": len(table),
        "total": len(rows),
        "summary": f"Showing {len(table)} of {len(rows)}",
    }


def compute_form_options(ctx: Dict[str, Any]) -> Dict[str, List[str]]:
    key_map = ctx.get("key_map", {})
    rows = ctx.get("rows", [])
    return {
        "business": unique_raw_values(rows, key_map.get("business")),
        "business_type": unique_raw_values(rows, key_map.get("business_type")),
        "process": unique_raw_values(rows, key_map.get("process")),
        "sub_type": unique_raw_values(rows, key_map.get("sub_type")),
        "owner": unique_raw_values(rows, key_map.get("owner")),
        "status": status_options(),
        "priority": priority_options(),
    }
