from __future__ import annotations

from datetime import datetime
from typing import Any, List, Optional, Sequence, Tuple

import numpy as np

from sheet_agent.store.models import Row
from sheet_agent.store.values import as_datetime, as_number, as_text, is_empty


def column_values(rows: Sequence[Row], column: str) -> List[Any]:
    return [r.get(column) for r in rows]


def numeric_values(rows: Sequence[Row], column: str) -> np.ndarray:
    vals = [as_number(v) for v in column_values(rows, column)]
    return np.array([v for v in vals if v is not None], dtype=float)


def mean_std(values: np.ndarray) -> Tuple[float, float]:
    # population standard deviation (ddof=0)
    return float(values.mean()), float(values.std())


def outlier_mask(values: np.ndarray, mean: float, std: float, k: float = 2.0) -> np.ndarray:
    # strict comparison: a zero-variance column has no outliers
    return np.abs(values - mean) > k * std


def upper_median(values: np.ndarray) -> float:
    """Middle element of the sorted values; even lengths take the upper one."""
    ordered = np.sort(values)
    return float(ordered[len(ordered) // 2])


def describe_numeric(values: np.ndarray) -> dict:
    return {
        "min": float(values.min()),
        "max": float(values.max()),
        "avg": float(values.mean()),
        "median": upper_median(values),
        "sum": float(values.sum()),
        "count": int(values.size),
    }


def non_empty_values(rows: Sequence[Row], column: str) -> List[Any]:
    return [v for v in column_values(rows, column) if not is_empty(v)]


def completeness(non_empty: int, row_count: int) -> float:
    return (non_empty / row_count) * 100 if row_count > 0 else 100.0


def unique_count(values: Sequence[Any]) -> int:
    return len({as_text(v) for v in values})


def time_series(rows: Sequence[Row], date_column: str, value_column: str) -> List[Tuple[datetime, float]]:
    points = []
    for r in rows:
        when = as_datetime(r.get(date_column))
        value = as_number(r.get(value_column))
        if when is None or value is None:
            continue
        points.append((when, value))
    # stable on equal dates
    points.sort(key=lambda p: p[0])
    return points


def classify_trend(values: Sequence[float], share: float = 0.6) -> str:
    diffs = np.diff(np.asarray(values, dtype=float))
    increasing = int((diffs > 0).sum())
    decreasing = int((diffs < 0).sum())
    steps = len(values) - 1
    if increasing > decreasing and increasing > steps * share:
        return "increasing"
    if decreasing > increasing and decreasing > steps * share:
        return "decreasing"
    return "fluctuating"


def percent_change(start: float, end: float) -> Optional[float]:
    # undefined when the series starts at zero
    if start == 0:
        return None
    return ((end - start) / start) * 100
