from __future__ import annotations

import json
import logging
from datetime import date, datetime
from typing import Any, Dict, List, Optional, Tuple

from sheet_agent.exec.duck import DuckDBExecutor
from sheet_agent.store.errors import RowNotFound, SheetNotFound
from sheet_agent.store.memory import match_sheet_name
from sheet_agent.store.models import Column, Row, Sheet, as_utc, new_id, utcnow

logger = logging.getLogger(__name__)

_SCHEMA = (
    "CREATE TABLE IF NOT EXISTS sheets ("
    "  id VARCHAR NOT NULL, name VARCHAR NOT NULL, position BIGINT NOT NULL,"
    "  created_at TIMESTAMP, updated_at TIMESTAMP)",
    "CREATE TABLE IF NOT EXISTS sheet_columns ("
    "  sheet_id VARCHAR NOT NULL, position INTEGER NOT NULL, name VARCHAR NOT NULL,"
    "  type VARCHAR NOT NULL, width INTEGER)",
    "CREATE TABLE IF NOT EXISTS sheet_rows ("
    "  id VARCHAR NOT NULL, sheet_id VARCHAR NOT NULL, position BIGINT NOT NULL,"
    "  data VARCHAR, created_at TIMESTAMP, updated_at TIMESTAMP)",
)

_DATE_TAG = "$date"


def _encode_value(obj: Any) -> Any:
    if isinstance(obj, (datetime, date)):
        return {_DATE_TAG: obj.isoformat()}
    # numpy scalars and the like
    if hasattr(obj, "item"):
        return obj.item()
    raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")


def _decode_object(obj: Dict[str, Any]) -> Any:
    if len(obj) == 1 and _DATE_TAG in obj:
        return as_utc(datetime.fromisoformat(obj[_DATE_TAG]))
    return obj


def dump_row_data(data: Dict[str, Any]) -> str:
    return json.dumps(data, default=_encode_value)


def load_row_data(raw: Optional[str]) -> Dict[str, Any]:
    if not raw:
        return {}
    data = json.loads(raw, object_hook=_decode_object)
    return data if isinstance(data, dict) else {}


def _ts(value: datetime) -> datetime:
    # DuckDB TIMESTAMP is naive; keep UTC wall time
    return as_utc(value).replace(tzinfo=None)


class DuckDBSheetStore:
    """Sheet store persisted in DuckDB.

    Sheets, their column definitions and their rows live in three tables;
    row data is schema-less and kept as JSON text so that extra or missing
    keys survive a round trip.
    """

    def __init__(self, executor: Optional[DuckDBExecutor] = None):
        self.executor = executor or DuckDBExecutor()
        for ddl in _SCHEMA:
            self.executor.execute(ddl)

    # Read side
    def list_sheets(self) -> List[Sheet]:
        heads = self.executor.fetchall("SELECT id, name, created_at, updated_at FROM sheets ORDER BY position")
        return self._hydrate(heads)

    def first_sheet(self) -> Optional[Sheet]:
        heads = self.executor.fetchall("SELECT id, name, created_at, updated_at FROM sheets ORDER BY position LIMIT 1")
        sheets = self._hydrate(heads)
        return sheets[0] if sheets else None

    def find_sheet_by_id(self, sheet_id: str) -> Optional[Sheet]:
        heads = self.executor.fetchall("SELECT id, name, created_at, updated_at FROM sheets WHERE id = ?", [sheet_id])
        sheets = self._hydrate(heads)
        return sheets[0] if sheets else None

    def find_sheet_by_name_regex(self, pattern: str) -> Optional[Sheet]:
        names = self.executor.fetchall("SELECT id, name FROM sheets ORDER BY position")
        sheet_id = match_sheet_name(pattern, names)
        logger.debug("sheet lookup %r -> %s", pattern, sheet_id)
        return self.find_sheet_by_id(sheet_id) if sheet_id else None

    def _hydrate(self, heads: List[Tuple[Any, ...]]) -> List[Sheet]:
        if not heads:
            return []
        ids = [h[0] for h in heads]
        placeholders = ", ".join(["?"] * len(ids))
        col_rows = self.executor.fetchall(
            f"SELECT sheet_id, name, type, width FROM sheet_columns WHERE sheet_id IN ({placeholders}) ORDER BY position",
            ids,
        )
        data_rows = self.executor.fetchall(
            f"SELECT sheet_id, id, data, created_at, updated_at FROM sheet_rows WHERE sheet_id IN ({placeholders}) ORDER BY position",
            ids,
        )
        columns: Dict[str, List[Column]] = {i: [] for i in ids}
        for sheet_id, name, type_, width in col_rows:
            columns[sheet_id].append(Column(name=name, type=type_, width=width))
        rows: Dict[str, List[Row]] = {i: [] for i in ids}
        for sheet_id, row_id, raw, created, updated in data_rows:
            rows[sheet_id].append(Row(data=load_row_data(raw), id=row_id, created_at=as_utc(created), updated_at=as_utc(updated)))
        return [
            Sheet(name=name, columns=columns[sid], rows=rows[sid], id=sid, created_at=as_utc(created), updated_at=as_utc(updated))
            for sid, name, created, updated in heads
        ]

    # Write side
    def create_sheet(self, name: str, columns: Optional[List[Column]] = None, rows: Optional[List[Dict[str, Any]]] = None) -> Sheet:
        now = utcnow()
        sheet = Sheet(
            name=name,
            columns=list(columns or []),
            rows=[Row(data=dict(d), created_at=now, updated_at=now) for d in (rows or [])],
            created_at=now,
            updated_at=now,
        )
        with self.executor.transaction() as ex:
            (position,) = ex.fetchall("SELECT COALESCE(MAX(position), -1) + 1 FROM sheets")[0]
            ex.execute(
                "INSERT INTO sheets VALUES (?, ?, ?, ?, ?)",
                [sheet.id, sheet.name, position, _ts(now), _ts(now)],
            )
            self._write_columns(sheet.id, sheet.columns)
            ex.executemany(
                "INSERT INTO sheet_rows VALUES (?, ?, ?, ?, ?, ?)",
                [(r.id, sheet.id, i, dump_row_data(r.data), _ts(now), _ts(now)) for i, r in enumerate(sheet.rows)],
            )
        logger.debug("created sheet %s (%s) with %d rows", sheet.name, sheet.id, len(sheet.rows))
        return sheet

    def update_sheet(self, sheet_id: str, name: Optional[str] = None, columns: Optional[List[Column]] = None) -> Sheet:
        with self.executor.transaction():
            self._require(sheet_id)
            if name:
                self.executor.execute("UPDATE sheets SET name = ? WHERE id = ?", [name, sheet_id])
            if columns is not None:
                self.executor.execute("DELETE FROM sheet_columns WHERE sheet_id = ?", [sheet_id])
                self._write_columns(sheet_id, columns)
            self._touch(sheet_id)
        return self.find_sheet_by_id(sheet_id)

    def delete_sheet(self, sheet_id: str) -> None:
        with self.executor.transaction() as ex:
            self._require(sheet_id)
            ex.execute("DELETE FROM sheet_rows WHERE sheet_id = ?", [sheet_id])
            ex.execute("DELETE FROM sheet_columns WHERE sheet_id = ?", [sheet_id])
            ex.execute("DELETE FROM sheets WHERE id = ?", [sheet_id])

    def add_row(self, sheet_id: str, data: Dict[str, Any]) -> Row:
        row = Row(data=dict(data), id=new_id())
        with self.executor.transaction() as ex:
            self._require(sheet_id)
            (position,) = ex.fetchall("SELECT COALESCE(MAX(position), -1) + 1 FROM sheet_rows WHERE sheet_id = ?", [sheet_id])[0]
            ex.execute(
                "INSERT INTO sheet_rows VALUES (?, ?, ?, ?, ?, ?)",
                [row.id, sheet_id, position, dump_row_data(row.data), _ts(row.created_at), _ts(row.updated_at)],
            )
            self._touch(sheet_id, row.updated_at)
        return row

    def update_row(self, sheet_id: str, row_id: str, data: Dict[str, Any]) -> Row:
        now = utcnow()
        with self.executor.transaction() as ex:
            self._require(sheet_id)
            found = ex.fetchall("SELECT created_at FROM sheet_rows WHERE sheet_id = ? AND id = ?", [sheet_id, row_id])
            if not found:
                raise RowNotFound(sheet_id, row_id)
            ex.execute(
                "UPDATE sheet_rows SET data = ?, updated_at = ? WHERE sheet_id = ? AND id = ?",
                [dump_row_data(data), _ts(now), sheet_id, row_id],
            )
            self._touch(sheet_id, now)
        return Row(data=dict(data), id=row_id, created_at=as_utc(found[0][0]), updated_at=now)

    def delete_row(self, sheet_id: str, row_id: str) -> None:
        with self.executor.transaction() as ex:
            self._require(sheet_id)
            found = ex.fetchall("SELECT 1 FROM sheet_rows WHERE sheet_id = ? AND id = ?", [sheet_id, row_id])
            if not found:
                raise RowNotFound(sheet_id, row_id)
            ex.execute("DELETE FROM sheet_rows WHERE sheet_id = ? AND id = ?", [sheet_id, row_id])
            self._touch(sheet_id)

    def clear(self) -> None:
        with self.executor.transaction() as ex:
            ex.execute("DELETE FROM sheet_rows")
            ex.execute("DELETE FROM sheet_columns")
            ex.execute("DELETE FROM sheets")

    def _write_columns(self, sheet_id: str, columns: List[Column]) -> None:
        self.executor.executemany(
            "INSERT INTO sheet_columns VALUES (?, ?, ?, ?, ?)",
            [(sheet_id, i, c.name, c.type, c.width) for i, c in enumerate(columns)],
        )

    def _touch(self, sheet_id: str, when: Optional[datetime] = None) -> None:
        self.executor.execute("UPDATE sheets SET updated_at = ? WHERE id = ?", [_ts(when or utcnow()), sheet_id])

    def _require(self, sheet_id: str) -> None:
        if not self.executor.fetchall("SELECT 1 FROM sheets WHERE id = ?", [sheet_id]):
            raise SheetNotFound(sheet_id)
