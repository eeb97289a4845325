from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Iterator, List, Optional, Sequence, Tuple

import duckdb
import pandas as pd

from sheet_agent.store.errors import StoreError

logger = logging.getLogger(__name__)


@dataclass
class DuckDBConfig:
    database: str = ':memory:'
    read_only: bool = False


class DuckDBExecutor:
    def __init__(self, config: Optional[DuckDBConfig] = None):
        self.config = config or DuckDBConfig()
        self._con = duckdb.connect(database=self.config.database, read_only=self.config.read_only)
        # a single connection is shared; statements and transactions are serialized
        self._lock = threading.RLock()

    def execute(self, sql: str, params: Optional[Sequence[Any]] = None) -> None:
        with self._lock:
            try:
                self._con.execute(sql, list(params or []))
            except duckdb.Error as e:
                raise StoreError(str(e)) from e

    def executemany(self, sql: str, rows: List[Sequence[Any]]) -> None:
        if not rows:
            return
        with self._lock:
            try:
                self._con.executemany(sql, [list(r) for r in rows])
            except duckdb.Error as e:
                raise StoreError(str(e)) from e

    def fetchall(self, sql: str, params: Optional[Sequence[Any]] = None) -> List[Tuple[Any, ...]]:
        with self._lock:
            try:
                return self._con.execute(sql, list(params or [])).fetchall()
            except duckdb.Error as e:
                raise StoreError(str(e)) from e

    def fetchdf(self, sql: str, params: Optional[Sequence[Any]] = None) -> pd.DataFrame:
        with self._lock:
            try:
                return self._con.execute(sql, list(params or [])).fetchdf()
            except duckdb.Error as e:
                raise StoreError(str(e)) from e

    def read_file(self, path: str, fmt: str, limit: Optional[int] = None) -> pd.DataFrame:
        reader = {"parquet": "read_parquet", "csv": "read_csv_auto"}[fmt]
        sql = f"SELECT * FROM {reader}(?)"
        params: List[Any] = [path]
        if limit is not None:
            sql += " LIMIT ?"
            params.append(limit)
        return self.fetchdf(sql, params)

    @contextmanager
    def transaction(self) -> Iterator["DuckDBExecutor"]:
        with self._lock:
            try:
                self._con.begin()
            except duckdb.Error as e:
                raise StoreError(str(e)) from e
            try:
                yield self
            except BaseException:
                self._con.rollback()
                raise
            else:
                try:
                    self._con.commit()
                except duckdb.Error as e:
                    raise StoreError(str(e)) from e

    def close(self) -> None:
        with self._lock:
            self._con.close()
