from __future__ import annotations

import re
from typing import Any, Callable, Dict, List, Optional, Tuple

from sheet_agent.planner.intent import DEFAULT_LIMIT, Comparison, QueryIntent, SortSpec

# Each rule reads the same lowercased text and writes into a shared draft.
# Rules run in a fixed order and a later rule may overwrite what an earlier
# one wrote for the same filter field (equality runs after gt/lt).
Draft = Dict[str, Any]
Rule = Callable[[str, Draft], None]

# A word run is words joined by single spaces. Every sheet-name form lies
# inside one run, so forms are resolved per run with find/rfind.
_RUN = re.compile(r"\w+(?: \w+)*")

# (prefix, suffix) forms, tried in order: "in <words> sheet",
# "from <words> sheet", "<words> data", "<words> sheet". The first form that
# matches anywhere wins; within a form the leftmost start and the last suffix
# in that run are taken.
SHEET_NAME_FORMS: Tuple[Tuple[str, str], ...] = (
    ("in ", " sheet"),
    ("from ", " sheet"),
    ("", " data"),
    ("", " sheet"),
)

GT_PATTERN = re.compile(r"(\w+) (greater than|more than|higher than|over|above) (\d+)")
LT_PATTERN = re.compile(r"(\w+) (less than|lower than|under|below) (\d+)")
EQ_PATTERN = re.compile(r"(\w+) (equal to|equals|is|=) ([\w\s]+)")
FIELDS_PATTERN = re.compile(r"show (me |us )?(the |all )?(\w+(?:, \w+)*)", re.IGNORECASE)
LIMIT_PATTERN = re.compile(r"limit (to |of )?(\d+)|(\d+) results")
SORT_PATTERN = re.compile(r"sort by (\w+)( (asc|ascending|desc|descending))?")


def _rule_action(text: str, draft: Draft) -> None:
    if "how many" in text or "count" in text:
        draft["action"] = "count"
    else:
        draft["action"] = "find"


def _find_sheet_name(text: str, prefix: str, suffix: str) -> Optional[str]:
    for m in _RUN.finditer(text):
        run = m.group(0)
        start = 0
        if prefix:
            start = run.find(prefix)
            if start < 0:
                continue
            start += len(prefix)
        end = run.rfind(suffix)
        if end > start:
            return run[start:end]
    return None


def _rule_sheet_name(text: str, draft: Draft) -> None:
    for prefix, suffix in SHEET_NAME_FORMS:
        name = _find_sheet_name(text, prefix, suffix)
        if name:
            draft["sheet_name"] = name
            return


def _rule_greater_than(text: str, draft: Draft) -> None:
    m = GT_PATTERN.search(text)
    if m:
        draft["filters"][m.group(1)] = Comparison(op="gt", value=int(m.group(3)))


def _rule_less_than(text: str, draft: Draft) -> None:
    m = LT_PATTERN.search(text)
    if m:
        draft["filters"][m.group(1)] = Comparison(op="lt", value=int(m.group(3)))


def _rule_equality(text: str, draft: Draft) -> None:
    m = EQ_PATTERN.search(text)
    if m:
        draft["filters"][m.group(1)] = m.group(3).strip()


def _rule_fields(text: str, draft: Draft) -> None:
    if not ("show" in text or "display" in text or "get" in text):
        return
    m = FIELDS_PATTERN.search(text)
    if m and m.group(3):
        draft["fields"] = m.group(3).split(", ")


def _rule_limit(text: str, draft: Draft) -> None:
    m = LIMIT_PATTERN.search(text)
    if m:
        limit = m.group(2) or m.group(3)
        if limit:
            draft["limit"] = int(limit)


def _rule_sort(text: str, draft: Draft) -> None:
    m = SORT_PATTERN.search(text)
    if m:
        direction = -1 if m.group(3) in ("desc", "descending") else 1
        draft["sort"] = SortSpec(field=m.group(1), direction=direction)


RULES: List[Rule] = [
    _rule_action,
    _rule_sheet_name,
    _rule_greater_than,
    _rule_less_than,
    _rule_equality,
    _rule_fields,
    _rule_limit,
    _rule_sort,
]


def extract_intent(query: Optional[str]) -> QueryIntent:
    """Translate a free-text question into a QueryIntent.

    Never fails: a rule that finds nothing leaves its field at the default
    (find, no sheet, no filters, all fields, limit 100, no sort).
    """
    text = (query or "").lower()
    draft: Draft = {
        "action": "find",
        "sheet_name": None,
        "filters": {},
        "fields": [],
        "limit": DEFAULT_LIMIT,
        "sort": None,
    }
    for rule in RULES:
        rule(text, draft)
    return QueryIntent(**draft)
