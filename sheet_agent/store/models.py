from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

COLUMN_TYPES = ("string", "number", "date", "boolean")

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def new_id() -> str:
    return uuid.uuid4().hex[:24]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(ts: Optional[datetime]) -> Optional[datetime]:
    # naive timestamps are stored as UTC
    if ts is None:
        return None
    if ts.tzinfo is None:
        return ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(timezone.utc)


@dataclass
class Column:
    name: str
    type: str = "string"  # 'string' | 'number' | 'date' | 'boolean'
    width: Optional[int] = None

    def __post_init__(self) -> None:
        if self.type not in COLUMN_TYPES:
            self.type = "string"

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "type": self.type, "width": self.width}


@dataclass
class Row:
    data: Dict[str, Any]
    id: str = field(default_factory=new_id)
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    def get(self, key: Optional[str]) -> Any:
        if key is None or not isinstance(self.data, dict):
            return None
        return self.data.get(key)


@dataclass
class Sheet:
    name: str
    columns: List[Column] = field(default_factory=list)
    rows: List[Row] = field(default_factory=list)
    id: str = field(default_factory=new_id)
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    def columns_of_type(self, type_: str) -> List[Column]:
        return [c for c in self.columns if c.type == type_]

    def find_row(self, row_id: str) -> Optional[Row]:
        for row in self.rows:
            if row.id == row_id:
                return row
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "sheetName": self.name,
            "columns": [c.to_dict() for c in self.columns],
            "rows": [
                {"id": r.id, "data": r.data, "createdAt": r.created_at, "updatedAt": r.updated_at}
                for r in self.rows
            ],
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }
