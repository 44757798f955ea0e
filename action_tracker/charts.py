from __future__ import annotations

from typing import Any, Dict, List, Optional

import altair as alt
import pandas as pd

alt.data_transformers.disable_max_rows()

PALETTE = ["#3b82f6", "#ef4444", "#f59e0b", "#10b981", "#8b5cf6", "#ec4899", "#14b8a6", "#f97316"]


def to_vega_spec(chart: alt.Chart) -> Dict[str, Any]:
    """Convert an Altair chart into a Vega-Lite spec dict (JSON-serializable)."""
    return chart.to_dict()


def count_bar(
    df: pd.DataFrame,
    category: str,
    *,
    title: str,
    value: str = "count",
    sort: Optional[List[str]] = None,
    height: int = 260,
) -> alt.Chart:
    hover = alt.selection_point(fields=[category], on="mouseover", empty="all")
    return (
        alt.Chart(df)
        .mark_bar()
        .encode(
            x=alt.X(f"{category}:N", title=None, sort=sort if sort is not None else "-y", axis=alt.Axis(grid=False, labelAngle=0)),
            y=alt.Y(f"{value}:Q", title=title, axis=alt.Axis(tickMinStep=1, gridDash=[4, 4], domain=False, ticks=False)),
            color=alt.Color(f"{category}:N", scale=alt.Scale(range=PALETTE), legend=None),
            opacity=alt.condition(hover, alt.value(1), alt.value(0.6)),
            tooltip=[alt.Tooltip(category), alt.Tooltip(value, title=title)],
        )
        .add_params(hover)
        .properties(height=height)
    )
