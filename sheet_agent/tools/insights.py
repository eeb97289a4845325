from __future__ import annotations

import logging
from collections import Counter
from datetime import datetime
from typing import Any, Dict, List, Sequence

from sheet_agent.store.models import COLUMN_TYPES, EPOCH, Sheet, as_utc
from sheet_agent.store.values import as_text, value_kind, STRING
from sheet_agent.tools.analytics import (
    classify_trend,
    completeness,
    describe_numeric,
    mean_std,
    non_empty_values,
    numeric_values,
    outlier_mask,
    percent_change,
    time_series,
    unique_count,
)

logger = logging.getLogger(__name__)

MIN_ROWS = 3
OUTLIER_K = 2.0
LOW_COMPLETENESS = 70
VERY_LOW_COMPLETENESS = 50


# Global report

def most_recent_update(sheets: Sequence[Sheet]) -> datetime:
    latest = EPOCH
    for sheet in sheets:
        stamps = [sheet.updated_at] + [r.updated_at for r in sheet.rows]
        for ts in stamps:
            ts = as_utc(ts)
            if ts is not None and ts > latest:
                latest = ts
    return latest


def sheet_comparisons(sheets: Sequence[Sheet]) -> List[Dict[str, Any]]:
    if len(sheets) < 2:
        return []
    sizes = [{"id": s.id, "name": s.name, "rowCount": len(s.rows)} for s in sheets]
    # stable: ties keep store order
    sizes = sorted(sizes, key=lambda s: s["rowCount"], reverse=True)
    top, bottom = sizes[0], sizes[-1]
    return [{
        "type": "sheetSize",
        "title": "Sheet Size Comparison",
        "description": f"{top['name']} has the most rows ({top['rowCount']}), while {bottom['name']} has the least ({bottom['rowCount']}).",
        "data": sizes,
    }]


def data_distribution(sheets: Sequence[Sheet]) -> List[Dict[str, Any]]:
    counts = {t: 0 for t in COLUMN_TYPES}
    for sheet in sheets:
        for column in sheet.columns:
            counts[column.type] = counts.get(column.type, 0) + 1
    return [{
        "type": "dataTypes",
        "title": "Data Type Distribution",
        "description": "Distribution of data types across all sheets",
        "data": counts,
    }]


def detect_anomalies(sheets: Sequence[Sheet]) -> List[Dict[str, Any]]:
    anomalies = []
    for sheet in sheets:
        if not sheet.rows:
            continue
        for column in sheet.columns_of_type("number"):
            values = numeric_values(sheet.rows, column.name)
            if values.size == 0:
                continue
            mean, std = mean_std(values)
            outliers = int(outlier_mask(values, mean, std, OUTLIER_K).sum())
            if outliers > 0:
                anomalies.append({
                    "type": "outlier",
                    "sheetId": sheet.id,
                    "sheetName": sheet.name,
                    "column": column.name,
                    "description": f"Found {outliers} outliers in {column.name} column",
                    "outlierCount": outliers,
                    "mean": mean,
                    "stdDev": std,
                })
    return anomalies


def recommendations(sheets: Sequence[Sheet], anomalies: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    recs = []
    for sheet in sheets:
        if len(sheet.rows) < MIN_ROWS:
            recs.append({
                "type": "dataVolume",
                "sheetId": sheet.id,
                "sheetName": sheet.name,
                "description": f"Consider adding more data to {sheet.name} for better analysis.",
                "importance": "medium",
            })
    if anomalies:
        recs.append({
            "type": "anomalyCheck",
            "description": f"Review {len(anomalies)} potential data anomalies found across your sheets.",
            "importance": "high",
        })
    return recs


def generate_insights(sheets: Sequence[Sheet]) -> Dict[str, Any]:
    anomalies = detect_anomalies(sheets)
    report = {
        "summary": {
            "totalSheets": len(sheets),
            "totalRows": sum(len(s.rows) for s in sheets),
            "lastUpdated": most_recent_update(sheets),
        },
        "sheetComparisons": sheet_comparisons(sheets),
        "dataDistribution": data_distribution(sheets),
        "anomalies": anomalies,
        "recommendations": recommendations(sheets, anomalies),
    }
    logger.debug("insights over %d sheets: %d anomalies", len(sheets), len(anomalies))
    return report


# Per-sheet report

def analyze_columns(sheet: Sheet) -> List[Dict[str, Any]]:
    row_count = len(sheet.rows)
    analysis = []
    for column in sheet.columns:
        present = non_empty_values(sheet.rows, column.name)
        entry: Dict[str, Any] = {
            "name": column.name,
            "type": column.type,
            "nonEmptyCount": len(present),
            "uniqueValueCount": unique_count(present),
            "completeness": completeness(len(present), row_count),
        }
        if column.type == "number":
            values = numeric_values(sheet.rows, column.name)
            if values.size:
                stats = describe_numeric(values)
                entry.update({"min": stats["min"], "max": stats["max"], "avg": stats["avg"]})
        analysis.append(entry)
    return analysis


def identify_trends(sheet: Sheet) -> List[Dict[str, Any]]:
    trends = []
    for date_col in sheet.columns_of_type("date"):
        for num_col in sheet.columns_of_type("number"):
            points = time_series(sheet.rows, date_col.name, num_col.name)
            if len(points) < 2:
                continue
            (start_date, start_value), (end_date, end_value) = points[0], points[-1]
            trends.append({
                "type": "timeSeries",
                "dateColumn": date_col.name,
                "valueColumn": num_col.name,
                "trendType": classify_trend([v for _, v in points]),
                "dataPoints": len(points),
                "startDate": start_date,
                "endDate": end_date,
                "startValue": start_value,
                "endValue": end_value,
                "percentChange": percent_change(start_value, end_value),
            })
    return trends


def calculate_statistics(sheet: Sheet) -> Dict[str, Any]:
    numeric: Dict[str, Any] = {}
    categorical: Dict[str, Dict[str, int]] = {}
    for column in sheet.columns:
        if column.type == "number":
            values = numeric_values(sheet.rows, column.name)
            if values.size:
                numeric[column.name] = describe_numeric(values)
        elif column.type == "string":
            present = [v for v in non_empty_values(sheet.rows, column.name) if value_kind(v) == STRING]
            if present:
                categorical[column.name] = dict(Counter(as_text(v) for v in present))
    return {
        "rowCount": len(sheet.rows),
        "columnCount": len(sheet.columns),
        "numericColumns": numeric,
        "categoricalColumns": categorical,
    }


def sheet_recommendations(sheet: Sheet, column_analysis: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    recs = []
    if len(sheet.rows) < MIN_ROWS:
        recs.append({
            "type": "dataVolume",
            "description": f"Consider adding more data to {sheet.name} for better analysis.",
            "importance": "medium",
        })
    for col in column_analysis:
        if col["completeness"] < LOW_COMPLETENESS:
            recs.append({
                "type": "dataCompleteness",
                "column": col["name"],
                "description": f"{col['name']} column is only {col['completeness']:.0f}% complete. Consider filling in missing values.",
                "importance": "high" if col["completeness"] < VERY_LOW_COMPLETENESS else "medium",
            })
    return recs


def generate_sheet_insights(sheet: Sheet) -> Dict[str, Any]:
    column_analysis = analyze_columns(sheet)
    return {
        "summary": {
            "sheetName": sheet.name,
            "rowCount": len(sheet.rows),
            "columnCount": len(sheet.columns),
            "lastUpdated": sheet.updated_at,
        },
        "columnAnalysis": column_analysis,
        "trends": identify_trends(sheet),
        "statistics": calculate_statistics(sheet),
        "recommendations": sheet_recommendations(sheet, column_analysis),
    }
