from __future__ import annotations

from dataclasses import asdict
from typing import Any, Dict, List, Optional, Sequence

import altair as alt
import pandas as pd

from action_tracker.charts import to_vega_spec
from action_tracker.config import WORKDAY_HOURS
from action_tracker.drilldown import select_cell_detail, select_node_detail
from action_tracker.filters import FilterSet
from action_tracker.pivot import build_pivot, pivot_payload
from action_tracker.rollup import ExpansionState, build_rollup, visible_rows


def compute_pivot(
    filters: FilterSet,
    ctx: Dict[str, Any],
    *,
    row_dim: str = "business",
    col_dim: str = "owner",
    metric: str = "Minutes",
) -> Dict[str, Any]:
    df: pd.DataFrame = ctx.get("filtered", pd.DataFrame())
    table = build_pivot(df, row_dim, col_dim, metric)
    payload = pivot_payload(table)
    payload["filters"] = asdict(filters)
    payload["record_count"] = int(len(df))
    return payload


def compute_pivot_detail(
    filters: FilterSet,
    ctx: Dict[str, Any],
    *,
    row_dim: str,
    col_dim: str,
    row_value: Optional[str],
    col_value: Optional[str],
) -> Dict[str, Any]:
    records = select_cell_detail(ctx["filtered"], ctx.get("rows", []), row_dim, col_dim, row_value, col_value)
    return {
        "filters": asdict(filters),
        "row_dim": row_dim,
        "col_dim": col_dim,
        "row_value": row_value,
        "col_value": col_value,
        "count": len(records),
        "records": list(records),
    }


def daywise_table(df: pd.DataFrame) -> pd.DataFrame:
    cols = ["date", "minutes", "hours", "days", "items", "by_owner"]
    if df.empty:
        return pd.DataFrame(columns=cols)
    dated = df[df["date"].notna()].copy()
    if dated.empty:
        return pd.DataFrame(columns=cols)
    dated["owner"] = dated["owner"].fillna("Unknown")
    summary = (
        dated.groupby("date", sort=True)
        .agg(minutes=("minutes", "sum"), items=("minutes", "size"))
        .reset_index()
    )
    by_owner = {
        day: {str(k): float(v) for k, v in grp.groupby("owner", sort=False)["minutes"].sum().items()}
        for day, grp in dated.groupby("date", sort=True)
    }
    summary["hours"] = summary["minutes"] / 60
    summary["days"] = summary["minutes"] / 60 / WORKDAY_HOURS
    summary["items"] = summary["items"].astype(int)
    summary["by_owner"] = [by_owner[d] for d in summary["date"]]
    return summary[cols]


def compute_daywise(filters: FilterSet, ctx: Dict[str, Any]) -> Dict[str, Any]:
    df: pd.DataFrame = ctx.get("filtered", pd.DataFrame())
    table = daywise_table(df)
    charts: Dict[str, Any] = {}
    if not table.empty:
        hover = alt.selection_point(fields=["date"], on="mouseover", empty="all")
        chart = (
            alt.Chart(table[["date", "hours", "items"]])
            .mark_bar()
            .encode(
                x=alt.X("date:O", title="Date", axis=alt.Axis(grid=False)),
                y=alt.Y("hours:Q", title="Hours", axis=alt.Axis(gridDash=[4, 4], domain=False, ticks=False)),
                opacity=alt.condition(hover, alt.value(1), alt.value(0.6)),
                tooltip=["date", alt.Tooltip("hours:Q", format=".2f"), alt.Tooltip("items:Q", title="Items")],
            )
            .add_params(hover)
            .properties(height=260)
        )
        charts["workload"] = to_vega_spec(chart)
    return {
        "filters": asdict(filters),
        "days": table.to_dict(orient="records"),
        "undated_records": int(df["date"].isna().sum()) if not df.empty else 0,
        "charts": charts,
        "empty": table.empty,
    }


def compute_rollup(
    filters: FilterSet,
    ctx: Dict[str, Any],
    *,
    expanded: Sequence[Sequence[str]] = (),
    expand_all: bool = False,
) -> Dict[str, Any]:
    df: pd.DataFrame = ctx.get("filtered", pd.DataFrame())
    nodes = build_rollup(df)
    state = ExpansionState(frozenset(tuple(p) for p in expanded))
    if expand_all:
        state = state.expand_all(nodes)
    return {
        "filters": asdict(filters),
        "tree": [n.to_dict() for n in nodes],
        "rows": visible_rows(nodes, state),
        "totals": {
            "count": sum(n.count for n in nodes),
            "minutes": sum(n.minutes for n in nodes),
        },
        "empty": not nodes,
    }


def compute_rollup_detail(filters: FilterSet, ctx: Dict[str, Any], *, path: List[str]) -> Dict[str, Any]:
    records = select_node_detail(ctx["filtered"], ctx.get("rows", []), path)
    return {"filters": asdict(filters), "path": list(path), "count": len(records), "records": list(records)}
