from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Tuple

from sheet_agent.exec.executor import execute, store_resolver
from sheet_agent.planner.enrichment import EnrichmentAdapter, plan_query
from sheet_agent.tools.insights import generate_insights, generate_sheet_insights
from sheet_agent.utils.serialize import to_jsonable

logger = logging.getLogger(__name__)

Response = Tuple[int, Any]


def handle_query(payload: Optional[Dict[str, Any]], store, adapter: Optional[EnrichmentAdapter] = None) -> Response:
    """Answer `{"query": ...}` with a data, message or error body."""
    query = (payload or {}).get("query")
    if not isinstance(query, str) or not query.strip():
        return 400, {"type": "error", "message": "Query is required"}
    try:
        intent = plan_query(query, adapter)
        result = execute(intent, store_resolver(store))
    except Exception as e:
        logger.error("query failed: %s", e, exc_info=True)
        return 500, {"type": "error", "message": f"Failed to process query: {e}"}
    logger.info("query %r -> %s", query, intent.describe())
    return 200, to_jsonable(result.to_dict())


def handle_insights(store) -> Response:
    try:
        sheets = store.list_sheets()
        if not sheets:
            return 404, {"message": "No sheets found for analysis"}
        report = generate_insights(sheets)
    except Exception as e:
        logger.error("insights failed: %s", e, exc_info=True)
        return 500, {"message": str(e)}
    return 200, to_jsonable(report)


def handle_sheet_insights(store, sheet_id: str) -> Response:
    try:
        sheet = store.find_sheet_by_id(sheet_id)
        if sheet is None:
            return 404, {"message": "Sheet not found"}
        report = generate_sheet_insights(sheet)
    except Exception as e:
        logger.error("sheet insights failed for %s: %s", sheet_id, e, exc_info=True)
        return 500, {"message": str(e)}
    return 200, to_jsonable(report)


def handle_list_sheets(store) -> Response:
    try:
        sheets = store.list_sheets()
    except Exception as e:
        logger.error("listing sheets failed: %s", e, exc_info=True)
        return 500, {"message": str(e)}
    return 200, [{"id": s.id, "sheetName": s.name} for s in sheets]
