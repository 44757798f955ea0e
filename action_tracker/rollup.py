"""Day-wise drill-down tree.

Level order is fixed: date, business type, business, process, sub type,
deliverable. Records without a resolvable date are left out of the tree;
below the date level a missing value is grouped under ``(Unknown)``.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date
from typing import Any, Dict, FrozenSet, Iterable, List, Sequence, Tuple

import pandas as pd


LEVEL_ORDER: Tuple[str, ...] = ("date", "business_type", "business", "process", "sub_type", "deliverable")
LEVEL_LABELS = {
    "date": "Date",
    "business_type": "Business Type",
    "business": "Business",
    "process": "Process",
    "sub_type": "Sub Type",
    "deliverable": "Deliverable",
}
UNKNOWN_LABEL = "(Unknown)"

Path = Tuple[str, ...]


@dataclass
class HierarchyNode:
    key: str
    display_value: str
    level: int
    level_field: str
    path: Path
    count: int = 0
    minutes: float = 0.0
    children: List["HierarchyNode"] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "key": self.key,
            "display_value": self.display_value,
            "level": self.level,
            "field": self.level_field,
            "path": list(self.path),
            "count": self.count,
            "minutes": self.minutes,
            "hours": self.minutes / 60,
            "children": [c.to_dict() for c in self.children],
        }


def _display_date(key: str) -> str:
    try:
        return date.fromisoformat(key).strftime("%a, %d %b %Y")
    except ValueError:
        return key


def _build_level(frame: pd.DataFrame, level_order: Sequence[str], level: int, parent: Path) -> List[HierarchyNode]:
    if level >= len(level_order) or frame.empty:
        return []
    field_name = level_order[level]
    if level == 0:
        frame = frame[frame[field_name].notna()]
        keys = frame[field_name].astype(str)
    else:
        keys = frame[field_name].map(lambda v: UNKNOWN_LABEL if v is None or pd.isna(v) else str(v))

    nodes: List[HierarchyNode] = []
    for key, group in frame.groupby(keys, sort=False):
        key = str(key)
        path = parent + (key,)
        children = _build_level(group, level_order, level + 1, path)
        # Parents total their children so node.minutes == sum(child.minutes) holds exactly.
        if children:
            count = sum(c.count for c in children)
            minutes = sum(c.minutes for c in children)
        else:
            count = int(len(group))
            minutes = float(group["minutes"].sum())
        nodes.append(
            HierarchyNode(
                key=key,
                display_value=_display_date(key) if field_name == "date" else key,
                level=level,
                level_field=field_name,
                path=path,
                count=count,
                minutes=minutes,
                children=children,
            )
        )

    if field_name == "date":
        nodes.sort(key=lambda n: n.key, reverse=True)
    else:
        nodes.sort(key=lambda n: n.display_value)
    return nodes


def build_rollup(frame: pd.DataFrame, level_order: Sequence[str] = LEVEL_ORDER) -> List[HierarchyNode]:
    if frame.empty:
        return []
    return _build_level(frame, level_order, 0, ())


def iter_nodes(nodes: Iterable[HierarchyNode]) -> Iterable[HierarchyNode]:
    for node in nodes:
        yield node
        yield from iter_nodes(node.children)


def find_node(nodes: Iterable[HierarchyNode], path: Sequence[str]) -> HierarchyNode | None:
    path = tuple(path)
    for node in nodes:
        if node.path == path:
            return node
        if node.path == path[: len(node.path)]:
            return find_node(node.children, path)
    return None


@dataclass(frozen=True)
class ExpansionState:
    expanded: FrozenSet[Path] = frozenset()

    def is_expanded(self, path: Sequence[str]) -> bool:
        return tuple(path) in self.expanded

    def expand(self, path: Sequence[str]) -> "ExpansionState":
        return replace(self, expanded=self.expanded | {tuple(path)})

    def collapse(self, path: Sequence[str]) -> "ExpansionState":
        return replace(self, expanded=self.expanded - {tuple(path)})

    def toggle(self, path: Sequence[str]) -> "ExpansionState":
        return self.collapse(path) if self.is_expanded(path) else self.expand(path)

    def expand_all(self, nodes: Iterable[HierarchyNode]) -> "ExpansionState":
        return replace(self, expanded=frozenset(n.path for n in iter_nodes(nodes) if n.children))

    def collapse_all(self) -> "ExpansionState":
        return ExpansionState()


def visible_rows(nodes: Iterable[HierarchyNode], state: ExpansionState) -> List[Dict[str, Any]]:
    out: List[Dict[str, Any]] = []
    for node in nodes:
        out.append(
            {
                "path": list(node.path),
                "level": node.level,
                "field": node.level_field,
                "label": LEVEL_LABELS.get(node.level_field, node.level_field),
                "display_value": node.display_value,
                "count": node.count,
                "minutes": node.minutes,
                "hours": node.minutes / 60,
                "has_children": bool(node.children),
                "expanded": state.is_expanded(node.path),
            }
        )
        if node.children and state.is_expanded(node.path):
            out.extend(visible_rows(node.children, state))
    return out
