from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

DEFAULT_LIMIT = 100


@dataclass(frozen=True)
class Comparison:
    op: str  # 'gt' | 'lt'
    value: float

    def matches(self, number: float) -> bool:
        if self.op == "gt":
            return number > self.value
        if self.op == "lt":
            return number < self.value
        return False

    def to_dict(self) -> Dict[str, Any]:
        # echoed in the store-operation descriptor
        return {f"${self.op}": self.value}


@dataclass(frozen=True)
class SortSpec:
    field: str
    direction: int = 1  # 1 ascending, -1 descending

    def to_dict(self) -> Dict[str, Any]:
        return {"field": self.field, "direction": self.direction}


FilterValue = Union[Comparison, str]


@dataclass(frozen=True)
class QueryIntent:
    action: str = "find"  # 'find' | 'count'
    sheet_name: Optional[str] = None
    filters: Dict[str, FilterValue] = field(default_factory=dict)
    fields: List[str] = field(default_factory=list)
    limit: int = DEFAULT_LIMIT
    sort: Optional[SortSpec] = None
    # optional annotation from the enrichment models
    confidence: Optional[float] = None
    enhanced_understanding: Optional[str] = None

    def applied_filters(self) -> Dict[str, Any]:
        return {k: (v.to_dict() if isinstance(v, Comparison) else v) for k, v in self.filters.items()}

    def describe(self) -> str:
        parts = [f"{self.action} rows"]
        if self.sheet_name:
            parts.append(f"in sheet matching '{self.sheet_name}'")
        conds = []
        for name, cond in self.filters.items():
            if isinstance(cond, Comparison):
                conds.append(f"{name} {'>' if cond.op == 'gt' else '<'} {cond.value}")
            else:
                conds.append(f"{name} = '{cond}'")
        if conds:
            parts.append("where " + " and ".join(conds))
        if self.sort:
            parts.append(f"sorted by {self.sort.field} {'desc' if self.sort.direction == -1 else 'asc'}")
        if self.fields:
            parts.append("fields " + ", ".join(self.fields))
        if self.action == "find":
            parts.append(f"limit {self.limit}")
        return " ".join(parts)

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "action": self.action,
            "sheetName": self.sheet_name,
            "filters": self.applied_filters(),
            "fields": list(self.fields),
            "limit": self.limit,
            "sort": self.sort.to_dict() if self.sort else None,
        }
        if self.confidence is not None:
            out["confidence"] = self.confidence
        if self.enhanced_understanding is not None:
            out["enhancedUnderstanding"] = self.enhanced_understanding
        return out
