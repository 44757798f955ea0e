from __future__ import annotations

import math
import re
from decimal import Decimal
from typing import Optional

import pandas as pd


# Normalization lower-cases everything after a token's first character,
# so no normalized value can equal this label.
BLANK_LABEL = "(Blank)"

_LEADING_NUMBER = re.compile(r"^\s*([-+]?(?:\d+\.?\d*|\.\d+)(?:[eE][-+]?\d+)?)")


def _is_missing(value: object) -> bool:
    if value is None:
        return True
    try:
        return bool(pd.isna(value))
    except (TypeError, ValueError):
        return False


def normalize_value(value: object) -> Optional[str]:
    """Canonical form of a free-text category: trimmed, lower-cased, then title-cased per token.

    "  in progress " -> "In Progress". Blank input -> None.
    """
    if isinstance(value, dict):
        value = value.get("value")
    if _is_missing(value):
        return None
    tokens = str(value).strip().lower().split()
    if not tokens:
        return None
    return " ".join(t[:1].upper() + t[1:] for t in tokens)


def label_value(value: Optional[str]) -> str:
    return BLANK_LABEL if value is None else value


def coerce_minutes(value: object) -> float:
    if isinstance(value, dict):
        value = value.get("value")
    if value is None or isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float, Decimal)):
        out = float(value)
        return out if math.isfinite(out) else 0.0
    match = _LEADING_NUMBER.match(str(value))
    if not match:
        return 0.0
    out = float(match.group(1))
    return out if math.isfinite(out) else 0.0
