from datetime import datetime, timezone

from sheet_agent.exec.executor import NO_SHEET_MESSAGE, execute, store_resolver
from sheet_agent.planner.intent import Comparison, QueryIntent, SortSpec
from sheet_agent.planner.rule_planner import extract_intent
from sheet_agent.store.memory import InMemorySheetStore
from sheet_agent.store.models import Column, Row, Sheet


def _sales() -> Sheet:
    return Sheet(
        name="Sales Data",
        columns=[Column("Product"), Column("Category"), Column("Price", "number")],
        rows=[
            Row({"Product": "Laptop", "Category": "Electronics", "Price": 1299.99}),
            Row({"Product": "Cable", "Category": "Accessories", "Price": 9.5}),
            Row({"Product": "Monitor", "Category": "Electronics", "Price": 349.99}),
            Row({"Product": "Mouse", "Category": "Accessories", "Price": "cheap"}),
            Row({"Product": "Phone", "Category": "electronics", "Price": 899}),
        ],
    )


store = InMemorySheetStore([
    Sheet(name="Employee Records", columns=[Column("Name")], rows=[Row({"Name": "Ann"})]),
    _sales(),
])
resolve = store_resolver(store)


def test_count_end_to_end():
    single = store_resolver(InMemorySheetStore([_sales()]))
    res = execute(extract_intent("how many products with price greater than 100"), single)
    assert res.type == "message"
    assert res.message == 'Found 3 matching rows in "Sales Data".'
    assert res.data is None
    assert res.database["resultCount"] == 3
    assert res.database["appliedFilters"] == {"price": {"$gt": 100}}
    assert "limit" not in res.database


def test_projection_and_limit_end_to_end():
    res = execute(extract_intent("show me all Product, Price from Sales Data sheet limit of 2"), resolve)
    assert res.type == "data"
    assert len(res.data) <= 2
    for row in res.data:
        assert set(row) == {"Product", "Price"}
    assert res.database["limit"] == 2
    assert res.database["filter"] == {"sheetName": "Sales Data"}


def test_no_sheet_found():
    res = execute(QueryIntent(sheet_name="inventory"), resolve)
    assert res.type == "message"
    assert res.message == NO_SHEET_MESSAGE
    assert res.database is None


def test_first_sheet_when_no_name():
    res = execute(QueryIntent(action="count"), resolve)
    assert res.message == 'Found 1 matching rows in "Employee Records".'


def test_sheet_name_is_matched_literally():
    assert execute(QueryIntent(sheet_name="sales.*"), resolve).message == NO_SHEET_MESSAGE
    assert execute(QueryIntent(action="count", sheet_name="SALES"), resolve).database["filter"] == {"sheetName": "Sales Data"}


def test_gt_excludes_non_numeric_and_boundary():
    intent = QueryIntent(sheet_name="sales", filters={"Price": Comparison("gt", 899)})
    res = execute(intent, resolve)
    assert [r["Product"] for r in res.data] == ["Laptop"]


def test_lt_filter():
    res = execute(QueryIntent(sheet_name="sales", filters={"price": Comparison("lt", 350)}), resolve)
    assert [r["Product"] for r in res.data] == ["Cable", "Monitor"]


def test_equality_is_case_insensitive_exact():
    res = execute(QueryIntent(sheet_name="sales", filters={"category": "electronics"}), resolve)
    assert [r["Product"] for r in res.data] == ["Laptop", "Monitor", "Phone"]
    res = execute(QueryIntent(sheet_name="sales", filters={"category": "electro"}), resolve)
    assert res.data == []


def test_equality_on_numbers_and_booleans():
    sheet = Sheet(name="t", rows=[Row({"n": 5.0, "b": True}), Row({"n": 6, "b": False}), Row({})])
    r = store_resolver(InMemorySheetStore([sheet]))
    assert len(execute(QueryIntent(filters={"n": "5"}), r).data) == 1
    assert len(execute(QueryIntent(filters={"b": "true"}), r).data) == 1


def test_filters_are_anded():
    intent = QueryIntent(sheet_name="sales", filters={"category": "accessories", "price": Comparison("lt", 100)})
    res = execute(intent, resolve)
    assert [r["Product"] for r in res.data] == ["Cable"]


def test_empty_filters_and_fields_return_full_rows():
    res = execute(QueryIntent(sheet_name="sales"), resolve)
    assert len(res.data) == 5
    assert res.data[0] == {"Product": "Laptop", "Category": "Electronics", "Price": 1299.99}


def test_limit_zero_is_empty():
    res = execute(QueryIntent(sheet_name="sales", limit=0), resolve)
    assert res.type == "data"
    assert res.data == []
    assert res.database["resultCount"] == 0


def test_sort_is_stable_both_directions():
    sheet = Sheet(name="s", rows=[
        Row({"k": 2, "id": "a"}),
        Row({"k": 1, "id": "b"}),
        Row({"k": 2, "id": "c"}),
        Row({"k": 1, "id": "d"}),
    ])
    r = store_resolver(InMemorySheetStore([sheet]))
    asc = execute(QueryIntent(sort=SortSpec("k", 1)), r)
    assert [x["id"] for x in asc.data] == ["b", "d", "a", "c"]
    desc = execute(QueryIntent(sort=SortSpec("k", -1)), r)
    assert [x["id"] for x in desc.data] == ["a", "c", "b", "d"]


def test_sort_mixed_kinds_and_missing():
    sheet = Sheet(name="s", rows=[
        Row({"id": "none"}),
        Row({"v": "text", "id": "str"}),
        Row({"v": 3, "id": "num"}),
        Row({"v": datetime(2023, 1, 1, tzinfo=timezone.utc), "id": "date"}),
    ])
    r = store_resolver(InMemorySheetStore([sheet]))
    asc = execute(QueryIntent(sort=SortSpec("v", 1)), r)
    assert [x["id"] for x in asc.data] == ["num", "date", "str", "none"]
    desc = execute(QueryIntent(sort=SortSpec("v", -1)), r)
    assert [x["id"] for x in desc.data] == ["none", "str", "date", "num"]


def test_find_database_block():
    res = execute(QueryIntent(sheet_name="sales", sort=SortSpec("price", -1), limit=1), resolve)
    assert res.database == {
        "operation": "find",
        "collection": "Data",
        "filter": {"sheetName": "Sales Data"},
        "appliedFilters": {},
        "resultCount": 1,
        "limit": 1,
        "sort": {"field": "price", "direction": -1},
    }
    # numbers sort before strings, so descending starts at the string value
    assert res.data[0]["Product"] == "Mouse"


def test_to_arrow_renders_text():
    res = execute(QueryIntent(sheet_name="sales", fields=["product", "price"], limit=2), resolve)
    tbl = res.to_arrow()
    assert tbl.column_names == ["Product", "Price"]
    assert tbl.column("Price").to_pylist() == ["1299.99", "9.5"]
