"""Two-dimensional pivot over the normalized frame.

Row and column values keep first-seen order. Records with no value for a
dimension are grouped under ``(Blank)`` so the grand total always covers
every filtered record.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Literal, Optional

import pandas as pd

from action_tracker.columns import CATEGORICAL_FIELDS
from action_tracker.config import WORKDAY_HOURS
from action_tracker.values import label_value

Metric = Literal["Count", "Minutes", "Hours", "Days"]
METRICS = ("Count", "Minutes", "Hours", "Days")
PIVOT_DIMENSIONS = list(CATEGORICAL_FIELDS)

TOTAL_LABEL = "TOTAL"
GRAND_TOTAL_LABEL = "GRAND TOTAL"
ZERO_PLACEHOLDER = "-"


@dataclass
class PivotTable:
    row_dim: str
    col_dim: str
    metric: str
    row_values: List[str] = field(default_factory=list)
    col_values: List[str] = field(default_factory=list)
    grid: Dict[str, Dict[str, float]] = field(default_factory=dict)
    row_totals: Dict[str, float] = field(default_factory=dict)
    col_totals: Dict[str, float] = field(default_factory=dict)
    grand_total: float = 0

    @property
    def empty(self) -> bool:
        return not self.row_values

    def cell(self, row_value: str, col_value: str) -> float:
        return self.grid.get(row_value, {}).get(col_value, 0)

    def to_rows(self, formatted: bool = False) -> List[Dict[str, Any]]:
        """Table rows with the TOTAL column and a trailing GRAND TOTAL row."""
        fmt = (lambda v: format_cell(v, self.metric)) if formatted else (lambda v: v)
        out: List[Dict[str, Any]] = []
        for r in self.row_values:
            row: Dict[str, Any] = {self.row_dim: r}
            row.update({c: fmt(self.cell(r, c)) for c in self.col_values})
            row[TOTAL_LABEL] = fmt(self.row_totals.get(r, 0))
            out.append(row)
        total_row: Dict[str, Any] = {self.row_dim: GRAND_TOTAL_LABEL}
        total_row.update({c: fmt(self.col_totals.get(c, 0)) for c in self.col_values})
        total_row[TOTAL_LABEL] = fmt(self.grand_total)
        out.append(total_row)
        return out


def format_cell(value: float, metric: str) -> str:
    """Count shows every integer including 0; effort metrics show ``-`` for zero."""
    if metric == "Count":
        return str(int(value))
    if not value:
        return ZERO_PLACEHOLDER
    return f"{value:.2f}"


def scale_minutes(minutes: float, metric: str) -> float:
    if metric == "Hours":
        return minutes / 60
    if metric == "Days":
        return minutes / 60 / WORKDAY_HOURS
    return minutes


def dimension_labels(frame: pd.DataFrame, dim: str) -> pd.Series:
    if dim not in PIVOT_DIMENSIONS:
        raise ValueError(f"Unknown pivot dimension: {dim}")
    if dim not in frame.columns:
        return pd.Series([label_value(None)] * len(frame), index=frame.index, dtype=object)
    return frame[dim].map(label_value).astype(object)


def build_pivot(frame: pd.DataFrame, row_dim: str, col_dim: str, metric: Metric = "Count") -> PivotTable:
    if metric not in METRICS:
        raise ValueError(f"Unknown pivot metric: {metric}")
    rows = dimension_labels(frame, row_dim)
    cols = dimension_labels(frame, col_dim)
    table = PivotTable(row_dim=row_dim, col_dim=col_dim, metric=metric)
    if frame.empty:
        return table

    base = pd.DataFrame({"_row": rows, "_col": cols, "minutes": frame["minutes"].astype(float)})
    table.row_values = [str(v) for v in pd.unique(base["_row"])]
    table.col_values = [str(v) for v in pd.unique(base["_col"])]

    grouped = base.groupby(["_row", "_col"], sort=False)["minutes"]
    agg = grouped.size() if metric == "Count" else grouped.sum().map(lambda m: scale_minutes(m, metric))
    wide = agg.unstack("_col", fill_value=0).reindex(index=table.row_values, columns=table.col_values, fill_value=0)

    cast = int if metric == "Count" else float
    for r in table.row_values:
        table.grid[r] = {c: cast(wide.at[r, c]) for c in table.col_values}
        table.row_totals[r] = cast(sum(table.grid[r].values()))
    for c in table.col_values:
        table.col_totals[c] = cast(sum(table.grid[r][c] for r in table.row_values))
    table.grand_total = cast(sum(table.row_totals.values()))
    return table


def pivot_payload(table: PivotTable) -> Dict[str, Any]:
    return {
        "row_dim": table.row_dim,
        "col_dim": table.col_dim,
        "metric": table.metric,
        "row_values": table.row_values,
        "col_values": table.col_values,
        "grid": table.grid,
        "row_totals": table.row_totals,
        "col_totals": table.col_totals,
        "grand_total": table.grand_total,
        "rows": table.to_rows(),
        "display_rows": table.to_rows(formatted=True),
        "empty": table.empty,
    }


def resolve_dimension(name: Optional[str], default: str) -> str:
    if not name:
        return default
    key = name.strip().lower().replace(" ", "_")
    aliases = {"businesstype": "business_type", "subtype": "sub_type", "user": "owner", "process_subtype": "sub_type"}
    key = aliases.get(key, key)
    if key not in PIVOT_DIMENSIONS:
        raise ValueError(f"Unknown pivot dimension: {name}")
    return key
