from __future__ import annotations

import json
import math
from datetime import date, datetime, time as dtime
from typing import Any

import pandas as pd
import pyarrow as pa


def to_jsonable(obj: Any) -> Any:
    # Normalize common datetime types
    if obj is pd.NaT:
        return None
    if isinstance(obj, (date, datetime, dtime)):
        return obj.isoformat()
    if isinstance(obj, float) and (math.isnan(obj) or math.isinf(obj)):
        return None
    if isinstance(obj, (list, tuple)):
        return [to_jsonable(x) for x in obj]
    if isinstance(obj, dict):
        return {str(k): to_jsonable(v) for k, v in obj.items()}
    if isinstance(obj, pd.DataFrame):
        return [to_jsonable(r) for r in obj.to_dict(orient="records")]
    if isinstance(obj, pa.Table):
        return [to_jsonable(r) for r in obj.to_pylist()]
    if isinstance(obj, pa.Scalar):
        return to_jsonable(obj.as_py())
    # numpy scalars
    if hasattr(obj, "item") and not isinstance(obj, (str, bytes)):
        return to_jsonable(obj.item())
    try:
        json.dumps(obj)
        return obj
    except (TypeError, ValueError):
        return str(obj)


def dumps(obj: Any, indent: int = 2) -> str:
    return json.dumps(to_jsonable(obj), indent=indent)
