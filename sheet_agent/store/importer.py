from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Optional

import pandas as pd
from pandas.api import types as ptypes

from sheet_agent.exec.duck import DuckDBExecutor
from sheet_agent.store.models import COLUMN_TYPES, Column, Sheet
from sheet_agent.store.values import value_kind

logger = logging.getLogger(__name__)

_FORMATS = {".parquet": "parquet", ".csv": "csv", ".tsv": "csv", ".txt": "csv"}


def infer_column_type(series: pd.Series) -> str:
    if ptypes.is_bool_dtype(series):
        return "boolean"
    if ptypes.is_numeric_dtype(series):
        return "number"
    if ptypes.is_datetime64_any_dtype(series):
        return "date"
    # object columns: trust the values when they agree on one kind
    kinds = {value_kind(to_python(v)) for v in series.dropna()}
    if len(kinds) == 1:
        kind = kinds.pop()
        if kind in COLUMN_TYPES:
            return kind
    return "string"


def to_python(value: Any) -> Any:
    if value is None:
        return None
    try:
        if pd.isna(value):
            return None
    except (TypeError, ValueError):
        # list-like cell
        return value
    if isinstance(value, pd.Timestamp):
        return value.to_pydatetime()
    if hasattr(value, "item"):
        return value.item()
    return value


def frame_to_records(df: pd.DataFrame) -> List[Dict[str, Any]]:
    return [{str(k): to_python(v) for k, v in rec.items()} for rec in df.to_dict(orient="records")]


def frame_columns(df: pd.DataFrame) -> List[Column]:
    return [Column(name=str(name), type=infer_column_type(df[name])) for name in df.columns]


def load_frame(executor: DuckDBExecutor, path: str) -> pd.DataFrame:
    if not os.path.exists(path):
        raise FileNotFoundError(f"No such file: {path}")
    fmt = _FORMATS.get(Path(path).suffix.lower())
    if fmt is None:
        raise ValueError(f"Unsupported file type: {path} (expected .csv or .parquet)")
    return executor.read_file(os.path.abspath(path), fmt)


def import_file(store, path: str, name: Optional[str] = None, executor: Optional[DuckDBExecutor] = None) -> Sheet:
    """Create a sheet from a CSV or Parquet file.

    The file is read with DuckDB; column types are inferred from the
    resulting pandas dtypes. The sheet name defaults to the file stem.
    """
    ex = executor or getattr(store, "executor", None) or DuckDBExecutor()
    df = load_frame(ex, path)
    sheet_name = name or Path(path).stem
    sheet = store.create_sheet(sheet_name, columns=frame_columns(df), rows=frame_to_records(df))
    logger.info("imported %s as sheet %r (%d rows, %d columns)", path, sheet_name, len(df), len(df.columns))
    return sheet
