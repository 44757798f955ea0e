from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple


@dataclass(frozen=True)
class Column:
    key: str
    label: str


# Semantic field -> (aliases in precedence order, fallback key).
SEMANTIC_FIELDS: Dict[str, Tuple[Tuple[str, ...], str]] = {
    "business": (("business",), "business"),
    "business_type": (("business type", "businesstype"), "businessType"),
    "process": (("process",), "process"),
    "sub_type": (("process subtype", "sub type", "subtype", "process sub type"), "subType"),
    "deliverable": (("deliverable", "deliverables"), "deliverable"),
    "status": (("status",), "status"),
    "owner": (("owner", "user", "assignee"), "owner"),
    "priority": (("priority",), "priority"),
    "create_date": (("create date", "created date", "created at", "created", "date"), "createDate"),
    "deadline": (("deadline", "due date", "due"), "deadline"),
    "minutes": (("min", "minutes", "mins"), "min"),
}

CATEGORICAL_FIELDS = ["business", "business_type", "process", "sub_type", "deliverable", "status", "owner", "priority"]


def _squash(text: object) -> str:
    return re.sub(r"[\s_\-]+", "", str(text or "")).lower()


def columns_from_payload(columns: Optional[Iterable[Mapping[str, Any]]], rows: Sequence[Mapping[str, Any]] = ()) -> List[Column]:
    """Column metadata from an API payload, or from the union of record keys when none was sent."""
    out: List[Column] = []
    for c in columns or []:
        key = c.get("key")
        if key is None:
            continue
        out.append(Column(key=str(key), label=str(c.get("label") or key)))
    if out:
        return out
    seen: Dict[str, None] = {}
    for row in rows:
        for key in row.keys():
            seen.setdefault(str(key), None)
    return [Column(key=k, label=k.upper()) for k in seen]


class ColumnResolver:
    """Maps semantic field names onto the record keys of one data source.

    Precedence: exact label match, exact key match, substring match (first column wins),
    then the field's fallback key when the source has it.
    """

    def __init__(self, columns: Sequence[Column]):
        self.columns = list(columns)

    def _match(self, alias: str) -> Optional[str]:
        wanted = _squash(alias)
        for c in self.columns:
            if _squash(c.label) == wanted:
                return c.key
        for c in self.columns:
            if _squash(c.key) == wanted:
                return c.key
        return None

    def _contains(self, alias: str) -> Optional[str]:
        wanted = _squash(alias)
        for c in self.columns:
            if wanted in _squash(c.label) or wanted in _squash(c.key):
                return c.key
        return None

    def resolve_key(self, label: str, fallback: Optional[str] = None) -> Optional[str]:
        return self._resolve((label,), fallback)

    def _resolve(self, aliases: Iterable[str], fallback: Optional[str]) -> Optional[str]:
        aliases = list(aliases)
        for alias in aliases:
            key = self._match(alias)
            if key is not None:
                return key
        for alias in aliases:
            key = self._contains(alias)
            if key is not None:
                return key
        if fallback is not None and any(c.key == fallback for c in self.columns):
            return fallback
        return None

    def resolve(self, semantic: str) -> Optional[str]:
        if semantic not in SEMANTIC_FIELDS:
            raise ValueError(f"Unknown semantic field: {semantic}")
        aliases, fallback = SEMANTIC_FIELDS[semantic]
        return self._resolve(aliases, fallback)

    def resolve_all(self) -> Dict[str, Optional[str]]:
        return {name: self.resolve(name) for name in SEMANTIC_FIELDS}
