from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

import pyarrow as pa

from sheet_agent.planner.intent import Comparison, QueryIntent, SortSpec
from sheet_agent.store.models import Row, Sheet
from sheet_agent.store.values import as_number, as_text, is_missing, lookup, resolve_key, sort_key

logger = logging.getLogger(__name__)

COLLECTION = "Data"
NO_SHEET_MESSAGE = "No matching sheet found. Please specify a valid sheet name."

SheetResolver = Callable[[Optional[str]], Optional[Sheet]]


@dataclass
class ExecutionResult:
    type: str  # 'data' | 'message' | 'error'
    message: str
    data: Optional[List[Dict[str, Any]]] = None
    database: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"type": self.type, "message": self.message}
        if self.data is not None:
            out["data"] = self.data
        if self.database is not None:
            out["database"] = self.database
        return out

    def to_arrow(self) -> pa.Table:
        # row values may mix kinds within a column, so render everything as text
        names: List[str] = []
        for rec in self.data or []:
            for k in rec:
                if k not in names:
                    names.append(k)
        cols = {n: [as_text(rec.get(n)) if n in rec else None for rec in self.data or []] for n in names}
        return pa.table({n: pa.array(v, type=pa.string()) for n, v in cols.items()})


def store_resolver(store) -> SheetResolver:
    def resolve(sheet_name: Optional[str]) -> Optional[Sheet]:
        if sheet_name:
            # the name is matched literally, case-insensitively, anywhere in the sheet name
            return store.find_sheet_by_name_regex(re.escape(sheet_name))
        return store.first_sheet()
    return resolve


def row_matches(row: Row, filters: Dict[str, Any]) -> bool:
    for field, condition in filters.items():
        value = lookup(row.data, field)
        if isinstance(condition, Comparison):
            number = as_number(value)
            if number is None or not condition.matches(number):
                return False
        else:
            if is_missing(value) or as_text(value).lower() != str(condition).lower():
                return False
    return True


def sort_rows(rows: List[Row], sort: SortSpec) -> List[Row]:
    # sorted() is stable, including with reverse=True
    return sorted(rows, key=lambda r: sort_key(lookup(r.data, sort.field)), reverse=sort.direction == -1)


def project(data: Dict[str, Any], fields: List[str]) -> Dict[str, Any]:
    if not fields:
        return dict(data)
    out: Dict[str, Any] = {}
    for field in fields:
        key = resolve_key(data, field)
        if key is not None:
            out[key] = data[key]
    return out


def execute(intent: QueryIntent, resolve_sheet: SheetResolver) -> ExecutionResult:
    """Run an intent against the sheet it resolves to.

    Count returns a message; find applies filter -> sort -> project -> limit
    and returns the rows. Both carry a description of the equivalent store
    operation so callers can show what was run.
    """
    lookup_op: Dict[str, Any] = {"collection": COLLECTION, "operation": "findOne"}
    lookup_op["filter"] = {"sheetName": {"$regex": intent.sheet_name, "$options": "i"}} if intent.sheet_name else {}
    logger.debug("Executing store lookup: %s", lookup_op)

    sheet = resolve_sheet(intent.sheet_name)
    if sheet is None:
        return ExecutionResult(type="message", message=NO_SHEET_MESSAGE)

    matched = [r for r in sheet.rows if row_matches(r, intent.filters)] if intent.filters else list(sheet.rows)
    database: Dict[str, Any] = {
        "operation": "find",
        "collection": COLLECTION,
        "filter": {"sheetName": sheet.name},
        "appliedFilters": intent.applied_filters(),
    }

    if intent.action == "count":
        count = len(matched)
        database["resultCount"] = count
        return ExecutionResult(
            type="message",
            message=f'Found {count} matching rows in "{sheet.name}".',
            database=database,
        )

    if intent.sort:
        matched = sort_rows(matched, intent.sort)
    limited = matched[: max(intent.limit, 0)]
    data = [project(r.data if isinstance(r.data, dict) else {}, intent.fields) for r in limited]
    database.update({
        "resultCount": len(data),
        "limit": intent.limit,
        "sort": intent.sort.to_dict() if intent.sort else None,
    })
    return ExecutionResult(
        type="data",
        message=f'Query results from "{sheet.name}"',
        data=data,
        database=database,
    )
