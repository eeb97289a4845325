from __future__ import annotations

from typing import Any, Dict


def make_concise_answer(body: Dict[str, Any]) -> str:
    kind = body.get("type")
    if kind == "error":
        return f"Error: {body.get('message', 'unknown error')}"
    if kind == "data":
        rows = body.get("data") or []
        db = body.get("database") or {}
        sheet = (db.get("filter") or {}).get("sheetName", "?")
        return f"Answer: {len(rows)} row(s) from \"{sheet}\""
    if kind == "message":
        return f"Answer: {body.get('message', '')}"
    return "Answer: results computed."


def insights_headline(report: Dict[str, Any]) -> str:
    summary = report.get("summary") or {}
    # per-sheet report
    if "sheetName" in summary:
        trends = report.get("trends") or []
        recs = report.get("recommendations") or []
        return (
            f"Answer: {summary['sheetName']} has {summary.get('rowCount', 0)} rows x "
            f"{summary.get('columnCount', 0)} columns; {len(trends)} trend(s), {len(recs)} recommendation(s)"
        )
    anomalies = report.get("anomalies") or []
    return (
        f"Answer: {summary.get('totalSheets', 0)} sheets, {summary.get('totalRows', 0)} rows; "
        f"{len(anomalies)} anomaly group(s) detected"
    )
