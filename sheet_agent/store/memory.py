from __future__ import annotations

import logging
import re
from typing import Any, Dict, Iterable, List, Optional

from sheet_agent.store.errors import RowNotFound, SheetNotFound
from sheet_agent.store.models import Column, Row, Sheet, utcnow

logger = logging.getLogger(__name__)


def match_sheet_name(pattern: str, names: Iterable[tuple]) -> Optional[str]:
    """Return the id of the first (id, name) pair whose name matches `pattern`.

    Matching is a case-insensitive regex search, so partial names match.
    """
    rx = re.compile(pattern, re.IGNORECASE)
    for sheet_id, name in names:
        if name is not None and rx.search(name):
            return sheet_id
    return None


class InMemorySheetStore:
    def __init__(self, sheets: Optional[List[Sheet]] = None) -> None:
        self._sheets: List[Sheet] = list(sheets or [])

    # Read side
    def list_sheets(self) -> List[Sheet]:
        return list(self._sheets)

    def first_sheet(self) -> Optional[Sheet]:
        return self._sheets[0] if self._sheets else None

    def find_sheet_by_id(self, sheet_id: str) -> Optional[Sheet]:
        for sheet in self._sheets:
            if sheet.id == sheet_id:
                return sheet
        return None

    def find_sheet_by_name_regex(self, pattern: str) -> Optional[Sheet]:
        sheet_id = match_sheet_name(pattern, ((s.id, s.name) for s in self._sheets))
        return self.find_sheet_by_id(sheet_id) if sheet_id else None

    # Write side
    def create_sheet(self, name: str, columns: Optional[List[Column]] = None, rows: Optional[List[Dict[str, Any]]] = None) -> Sheet:
        sheet = Sheet(name=name, columns=list(columns or []), rows=[Row(data=dict(d)) for d in (rows or [])])
        self._sheets.append(sheet)
        logger.debug("created sheet %s (%s) with %d rows", sheet.name, sheet.id, len(sheet.rows))
        return sheet

    def update_sheet(self, sheet_id: str, name: Optional[str] = None, columns: Optional[List[Column]] = None) -> Sheet:
        sheet = self._require(sheet_id)
        if name:
            sheet.name = name
        if columns is not None:
            sheet.columns = list(columns)
        sheet.updated_at = utcnow()
        return sheet

    def delete_sheet(self, sheet_id: str) -> None:
        sheet = self._require(sheet_id)
        self._sheets.remove(sheet)

    def add_row(self, sheet_id: str, data: Dict[str, Any]) -> Row:
        sheet = self._require(sheet_id)
        row = Row(data=dict(data))
        sheet.rows.append(row)
        sheet.updated_at = row.updated_at
        return row

    def update_row(self, sheet_id: str, row_id: str, data: Dict[str, Any]) -> Row:
        sheet = self._require(sheet_id)
        row = sheet.find_row(row_id)
        if row is None:
            raise RowNotFound(sheet_id, row_id)
        row.data = dict(data)
        row.updated_at = utcnow()
        sheet.updated_at = row.updated_at
        return row

    def delete_row(self, sheet_id: str, row_id: str) -> None:
        sheet = self._require(sheet_id)
        row = sheet.find_row(row_id)
        if row is None:
            raise RowNotFound(sheet_id, row_id)
        sheet.rows.remove(row)
        sheet.updated_at = utcnow()

    def clear(self) -> None:
        self._sheets.clear()

    def _require(self, sheet_id: str) -> Sheet:
        sheet = self.find_sheet_by_id(sheet_id)
        if sheet is None:
            raise SheetNotFound(sheet_id)
        return sheet
