from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List

from sheet_agent.store.models import Column, Sheet

logger = logging.getLogger(__name__)


def _d(year: int, month: int, day: int) -> datetime:
    return datetime(year, month, day, tzinfo=timezone.utc)


SAMPLE_SHEETS: List[Dict[str, Any]] = [
    {
        "name": "Sales Data",
        "columns": [
            Column("Product", "string"),
            Column("Category", "string"),
            Column("Price", "number"),
            Column("Quantity", "number"),
            Column("Date", "date"),
            Column("InStock", "boolean"),
        ],
        "rows": [
            {"Product": "Laptop", "Category": "Electronics", "Price": 1299.99, "Quantity": 5, "Date": _d(2023, 12, 1), "InStock": True},
            {"Product": "Smartphone", "Category": "Electronics", "Price": 899.99, "Quantity": 10, "Date": _d(2023, 12, 2), "InStock": True},
            {"Product": "Headphones", "Category": "Accessories", "Price": 199.99, "Quantity": 15, "Date": _d(2023, 12, 3), "InStock": True},
            {"Product": "Monitor", "Category": "Electronics", "Price": 349.99, "Quantity": 3, "Date": _d(2023, 12, 4), "InStock": False},
            {"Product": "Keyboard", "Category": "Accessories", "Price": 89.99, "Quantity": 8, "Date": _d(2023, 12, 5), "InStock": True},
        ],
    },
    {
        "name": "Employee Records",
        "columns": [
            Column("Name", "string"),
            Column("Department", "string"),
            Column("Salary", "number"),
            Column("HireDate", "date"),
            Column("FullTime", "boolean"),
        ],
        "rows": [
            {"Name": "John Smith", "Department": "Engineering", "Salary": 85000, "HireDate": _d(2022, 1, 15), "FullTime": True},
            {"Name": "Sarah Johnson", "Department": "Marketing", "Salary": 75000, "HireDate": _d(2022, 3, 10), "FullTime": True},
            {"Name": "Michael Brown", "Department": "Finance", "Salary": 90000, "HireDate": _d(2021, 11, 5), "FullTime": True},
            {"Name": "Emily Davis", "Department": "Design", "Salary": 65000, "HireDate": _d(2023, 2, 20), "FullTime": False},
        ],
    },
    {
        "name": "Project Tracker",
        "columns": [
            Column("ProjectName", "string"),
            Column("Client", "string"),
            Column("Budget", "number"),
            Column("StartDate", "date"),
            Column("EndDate", "date"),
            Column("Completed", "boolean"),
        ],
        "rows": [
            {"ProjectName": "Website Redesign", "Client": "ABC Corp", "Budget": 15000, "StartDate": _d(2023, 10, 1), "EndDate": _d(2023, 12, 15), "Completed": False},
            {"ProjectName": "Mobile App Development", "Client": "XYZ Inc", "Budget": 50000, "StartDate": _d(2023, 9, 15), "EndDate": _d(2024, 3, 15), "Completed": False},
            {"ProjectName": "Brand Identity", "Client": "Acme Co", "Budget": 8000, "StartDate": _d(2023, 11, 1), "EndDate": _d(2023, 12, 1), "Completed": True},
        ],
    },
]


def seed_store(store, clear: bool = True) -> List[Sheet]:
    if clear:
        store.clear()
    created = []
    for sample in SAMPLE_SHEETS:
        sheet = store.create_sheet(sample["name"], columns=list(sample["columns"]), rows=[dict(r) for r in sample["rows"]])
        logger.info("created sheet: %s with %d rows", sheet.name, len(sheet.rows))
        created.append(sheet)
    return created
