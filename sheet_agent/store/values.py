from __future__ import annotations

import math
import numbers
from datetime import date, datetime, time, timezone
from typing import Any, Dict, Optional, Tuple

import numpy as np
import pandas as pd

# Closed set of value kinds found in row data. Everything that is not null,
# boolean, number or date is treated as a string.
NULL = "null"
BOOLEAN = "boolean"
NUMBER = "number"
DATE = "date"
STRING = "string"

# ascending order used when a sort field holds mixed kinds
_SORT_RANK = {NUMBER: 0, DATE: 1, STRING: 2, BOOLEAN: 3}
_NULL_RANK = 4


def value_kind(value: Any) -> str:
    if value is None:
        return NULL
    # bool is an int subclass
    if isinstance(value, (bool, np.bool_)):
        return BOOLEAN
    if isinstance(value, numbers.Real):
        # ints cannot be NaN, and very large ones do not fit in a float
        if isinstance(value, (float, np.floating)) and math.isnan(value):
            return NULL
        return NUMBER
    if isinstance(value, (datetime, date)):
        if value is pd.NaT:
            return NULL
        return DATE
    return STRING


def is_missing(value: Any) -> bool:
    return value_kind(value) == NULL


def is_empty(value: Any) -> bool:
    return is_missing(value) or value == ""


def as_number(value: Any) -> Optional[float]:
    if value_kind(value) != NUMBER:
        return None
    try:
        return float(value)
    except OverflowError:
        return None


def as_datetime(value: Any) -> Optional[datetime]:
    """Best-effort date parsing for trend analysis.

    Date objects pass through (naive values are taken as UTC); strings are
    parsed with pandas. Numbers and booleans are never dates.
    """
    kind = value_kind(value)
    if kind == DATE:
        if not isinstance(value, datetime):
            value = datetime.combine(value, time.min)
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)
    if kind == STRING and str(value).strip():
        ts = pd.to_datetime(str(value), utc=True, errors="coerce")
        if pd.isna(ts):
            return None
        return ts.to_pydatetime()
    return None


def as_text(value: Any) -> str:
    kind = value_kind(value)
    if kind == BOOLEAN:
        return "true" if value else "false"
    if kind == NUMBER:
        if isinstance(value, numbers.Integral):
            return str(int(value))
        number = float(value)
        if number.is_integer():
            return str(int(number))
        return repr(number)
    if kind == DATE:
        return value.isoformat()
    if kind == NULL:
        return ""
    return str(value)


def sort_key(value: Any) -> Tuple[int, Any]:
    kind = value_kind(value)
    if kind == NUMBER:
        # int and float compare exactly, so big ints need no conversion
        if isinstance(value, numbers.Integral):
            return (_SORT_RANK[NUMBER], int(value))
        return (_SORT_RANK[NUMBER], float(value))
    if kind == DATE:
        return (_SORT_RANK[DATE], as_datetime(value))
    if kind == STRING:
        return (_SORT_RANK[STRING], str(value))
    if kind == BOOLEAN:
        return (_SORT_RANK[BOOLEAN], int(bool(value)))
    return (_NULL_RANK, 0)


def resolve_key(data: Dict[str, Any], field: str) -> Optional[str]:
    # exact key first, then case-insensitive
    if not isinstance(data, dict):
        return None
    if field in data:
        return field
    lf = field.lower()
    for key in data:
        if str(key).lower() == lf:
            return key
    return None


def lookup(data: Dict[str, Any], field: str) -> Any:
    key = resolve_key(data, field)
    return data[key] if key is not None else None
