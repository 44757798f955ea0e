from __future__ import annotations

from typing import Any, List, Mapping, Optional, Sequence

import pandas as pd

from action_tracker.data import rows_for
from action_tracker.pivot import GRAND_TOTAL_LABEL, TOTAL_LABEL, dimension_labels
from action_tracker.rollup import LEVEL_ORDER, UNKNOWN_LABEL


def cell_frame(
    frame: pd.DataFrame,
    row_dim: str,
    col_dim: str,
    row_value: Optional[str],
    col_value: Optional[str],
) -> pd.DataFrame:
    """Records behind one pivot cell. ``None`` (or a TOTAL label) on either axis means any value."""
    mask = pd.Series(True, index=frame.index)
    if row_value is not None and row_value != GRAND_TOTAL_LABEL:
        mask &= dimension_labels(frame, row_dim).eq(row_value)
    if col_value is not None and col_value != TOTAL_LABEL:
        mask &= dimension_labels(frame, col_dim).eq(col_value)
    return frame[mask]


def select_cell_detail(
    frame: pd.DataFrame,
    rows: Sequence[Mapping[str, Any]],
    row_dim: str,
    col_dim: str,
    row_value: Optional[str],
    col_value: Optional[str],
) -> List[Mapping[str, Any]]:
    return rows_for(cell_frame(frame, row_dim, col_dim, row_value, col_value), rows)


def node_frame(frame: pd.DataFrame, path: Sequence[str], level_order: Sequence[str] = LEVEL_ORDER) -> pd.DataFrame:
    if len(path) > len(level_order):
        raise ValueError(f"Path is deeper than the hierarchy: {list(path)}")
    mask = pd.Series(True, index=frame.index)
    for level, key in enumerate(path):
        values = frame[level_order[level]]
        if level > 0 and key == UNKNOWN_LABEL:
            mask &= values.isna()
        else:
            mask &= values.eq(key).fillna(False).astype(bool)
    return frame[mask]


def select_node_detail(
    frame: pd.DataFrame,
    rows: Sequence[Mapping[str, Any]],
    path: Sequence[str],
    level_order: Sequence[str] = LEVEL_ORDER,
) -> List[Mapping[str, Any]]:
    return rows_for(node_frame(frame, path, level_order), rows)
