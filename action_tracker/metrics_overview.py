from __future__ import annotations

from dataclasses import asdict
from datetime import date
from typing import Any, Dict, List, Optional

import altair as alt
import pandas as pd

from action_tracker.charts import PALETTE, count_bar, to_vega_spec
from action_tracker.filters import FilterSet

IN_PROGRESS_TOKENS = ("in progress", "inprogress")
STUCK_TOKENS = ("stuck", "blocked")
DONE_TOKENS = ("completed", "done", "closed")

OVERDUE_BUCKETS = ["Completed", "Not Started", "In Progress", "Stuck", "Other"]
PRIORITY_ORDER = ["V High", "High", "Medium", "Low"]


def _status_has(status: Optional[str], tokens) -> bool:
    s = (status or "").lower()
    return any(t in s for t in tokens)


def overdue_bucket(status: Optional[str]) -> str:
    s = (status or "").lower()
    if "completed" in s or "done" in s:
        return "Completed"
    if "not started" in s:
        return "Not Started"
    if "in progress" in s:
        return "In Progress"
    if "stuck" in s or "blocked" in s:
        return "Stuck"
    return "Other"


def compute_kpis(df: pd.DataFrame) -> Dict[str, int]:
    statuses = df["status"].tolist() if not df.empty else []
    return {
        "all_tasks": int(len(df)),
        "in_progress": sum(1 for s in statuses if _status_has(s, IN_PROGRESS_TOKENS)),
        "stuck": sum(1 for s in statuses if _status_has(s, STUCK_TOKENS)),
        "done": sum(1 for s in statuses if _status_has(s, DONE_TOKENS)),
    }


def tasks_by_status(df: pd.DataFrame) -> pd.DataFrame:
    status = df["status"].fillna("Unknown") if not df.empty else pd.Series(dtype=object)
    out = status.value_counts(sort=False).rename_axis("status").reset_index(name="count")
    total = int(out["count"].sum()) if not out.empty else 0
    out["pct"] = out["count"] / total if total else 0.0
    out["label"] = [f"{s}: {p * 100:.1f}%" for s, p in zip(out["status"], out["pct"])]
    return out


def deliveries_by_user(df: pd.DataFrame) -> pd.DataFrame:
    owner = df["owner"].fillna("Unassigned") if not df.empty else pd.Series(dtype=object)
    out = owner.value_counts(sort=False).rename_axis("owner").reset_index(name="count")
    return out.sort_values("count", ascending=False, kind="stable").reset_index(drop=True)


def overdue_tasks(df: pd.DataFrame, today: Optional[date] = None) -> pd.DataFrame:
    today_key = (today or date.today()).isoformat()
    counts = {b: 0 for b in OVERDUE_BUCKETS}
    if not df.empty:
        overdue = df[df["deadline"].notna() & (df["deadline"].fillna("") < today_key)]
        for status in overdue["status"].tolist():
            counts[overdue_bucket(status)] += 1
    return pd.DataFrame({"bucket": list(counts.keys()), "count": list(counts.values())})


def tasks_by_priority(df: pd.DataFrame) -> pd.DataFrame:
    priority = df["priority"].fillna("Unspecified") if not df.empty else pd.Series(dtype=object)
    out = priority.value_counts(sort=False).rename_axis("priority").reset_index(name="count")
    rank = {p: i for i, p in enumerate(PRIORITY_ORDER)}
    out["_rank"] = out["priority"].map(lambda p: rank.get(p, len(PRIORITY_ORDER)))
    return out.sort_values("_rank", kind="stable").drop(columns="_rank").reset_index(drop=True)


def compute_overview(filters: FilterSet, ctx: Dict[str, Any], *, today: Optional[date] = None) -> Dict[str, Any]:
    df: pd.DataFrame = ctx.get("filtered", pd.DataFrame())
    if df.empty:
        return {
            "filters": asdict(filters),
            "kpis": compute_kpis(df),
            "status": [],
            "users": [],
            "overdue": [],
            "priority": [],
            "charts": {},
            "empty": True,
        }

    status_df = tasks_by_status(df)
    users_df = deliveries_by_user(df)
    overdue_df = overdue_tasks(df, today)
    priority_df = tasks_by_priority(df)

    status_hover = alt.selection_point(fields=["status"], on="mouseover", empty="all")
    status_pie = (
        alt.Chart(status_df)
        .mark_arc(stroke="#fff", strokeWidth=2)
        .encode(
            theta=alt.Theta("count:Q"),
            color=alt.Color("label:N", scale=alt.Scale(range=PALETTE), legend=alt.Legend(orient="right", title=None)),
            opacity=alt.condition(status_hover, alt.value(1), alt.value(0.6)),
            tooltip=[alt.Tooltip("status", title="Status"), alt.Tooltip("count", title="Tasks"), alt.Tooltip("pct:Q", format=".1%")],
        )
        .add_params(status_hover)
        .properties(height=300)
    )

    charts = {
        "tasks_by_status": to_vega_spec(status_pie),
        "deliveries_by_user": to_vega_spec(count_bar(users_df, "owner", title="Tasks Count")),
        "overdue_tasks": to_vega_spec(count_bar(overdue_df, "bucket", title="Overdue Tasks", sort=OVERDUE_BUCKETS)),
        "priority_tasks": to_vega_spec(
            count_bar(priority_df, "priority", title="Tasks by Priority", sort=priority_df["priority"].tolist())
        ),
    }
    return {
        "filters": asdict(filters),
        "kpis": compute_kpis(df),
        "status": status_df.to_dict(orient="records"),
        "users": users_df.to_dict(orient="records"),
        "overdue": overdue_df.to_dict(orient="records"),
        "priority": priority_df.to_dict(orient="records"),
        "charts": charts,
        "empty": False,
    }


def status_options() -> List[str]:
    return ["Not Started", "Open", "In Progress", "Completed", "On Hold"]


def priority_options() -> List[str]:
    return list(PRIORITY_ORDER)
