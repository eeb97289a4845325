from datetime import datetime, timezone

import pandas as pd
import pytest

from sheet_agent.exec.duck import DuckDBConfig, DuckDBExecutor
from sheet_agent.store.duck_store import DuckDBSheetStore, dump_row_data, load_row_data
from sheet_agent.store.errors import RowNotFound, SheetNotFound, StoreError
from sheet_agent.store.importer import import_file, infer_column_type
from sheet_agent.store.memory import InMemorySheetStore
from sheet_agent.store.models import Column
from sheet_agent.store.seed import seed_store
from sheet_agent.store.values import as_number, as_text, sort_key, value_kind


@pytest.fixture(params=["memory", "duckdb"])
def store(request):
    if request.param == "memory":
        yield InMemorySheetStore()
    else:
        s = DuckDBSheetStore(DuckDBExecutor())
        yield s
        s.executor.close()


def test_create_and_find(store):
    sheet = store.create_sheet("Sales Data", columns=[Column("Price", "number")], rows=[{"Price": 10}, {"Price": 20}])
    assert store.find_sheet_by_id(sheet.id).name == "Sales Data"
    assert [r.data for r in store.find_sheet_by_id(sheet.id).rows] == [{"Price": 10}, {"Price": 20}]
    assert store.find_sheet_by_id("missing") is None
    assert store.first_sheet().id == sheet.id


def test_name_regex_is_case_insensitive_partial_first_match(store):
    first = store.create_sheet("Sales Data")
    store.create_sheet("Sales Archive")
    assert store.find_sheet_by_name_regex("sales").id == first.id
    assert store.find_sheet_by_name_regex("ARCHIVE").name == "Sales Archive"
    assert store.find_sheet_by_name_regex("inventory") is None


def test_list_keeps_creation_order(store):
    for name in ("b", "a", "c"):
        store.create_sheet(name)
    assert [s.name for s in store.list_sheets()] == ["b", "a", "c"]


def test_row_crud(store):
    sheet = store.create_sheet("S", rows=[{"x": 1}])
    row = store.add_row(sheet.id, {"x": 2, "extra": "kept"})
    store.update_row(sheet.id, row.id, {"x": 3})
    rows = store.find_sheet_by_id(sheet.id).rows
    assert [r.data for r in rows] == [{"x": 1}, {"x": 3}]
    store.delete_row(sheet.id, rows[0].id)
    assert [r.data for r in store.find_sheet_by_id(sheet.id).rows] == [{"x": 3}]
    with pytest.raises(RowNotFound):
        store.update_row(sheet.id, "nope", {})
    with pytest.raises(SheetNotFound):
        store.add_row("nope", {})


def test_update_and_delete_sheet(store):
    sheet = store.create_sheet("Old", columns=[Column("a")])
    updated = store.update_sheet(sheet.id, name="New", columns=[Column("b", "number"), Column("c", "weird")])
    assert updated.name == "New"
    assert [(c.name, c.type) for c in updated.columns] == [("b", "number"), ("c", "string")]
    store.delete_sheet(sheet.id)
    assert store.list_sheets() == []
    with pytest.raises(SheetNotFound):
        store.delete_sheet(sheet.id)


def test_duckdb_row_data_round_trip():
    store = DuckDBSheetStore()
    when = datetime(2023, 12, 1, 8, 30, tzinfo=timezone.utc)
    data = {"Date": when, "Price": 1299.99, "InStock": False, "Note": None, "Tags": ["a", "b"]}
    sheet = store.create_sheet("Round", rows=[data])
    (row,) = store.find_sheet_by_id(sheet.id).rows
    assert row.data == data
    assert row.data["Date"].tzinfo is not None
    assert row.created_at.tzinfo is not None


def test_duckdb_persists_to_file(tmp_path):
    path = str(tmp_path / "sheets.duckdb")
    ex = DuckDBExecutor(DuckDBConfig(database=path))
    DuckDBSheetStore(ex).create_sheet("Kept", rows=[{"a": 1}])
    ex.close()
    ex = DuckDBExecutor(DuckDBConfig(database=path))
    assert [s.name for s in DuckDBSheetStore(ex).list_sheets()] == ["Kept"]
    ex.close()


def test_failed_write_rolls_back():
    store = DuckDBSheetStore()
    sheet = store.create_sheet("S", rows=[{"a": 1}])
    with pytest.raises(StoreError):
        with store.executor.transaction() as ex:
            ex.execute("DELETE FROM sheet_rows")
            ex.execute("SELECT * FROM no_such_table")
    assert len(store.find_sheet_by_id(sheet.id).rows) == 1


def test_row_json_date_tag():
    raw = dump_row_data({"d": datetime(2024, 1, 2, tzinfo=timezone.utc)})
    assert "$date" in raw
    assert load_row_data(raw)["d"] == datetime(2024, 1, 2, tzinfo=timezone.utc)
    assert load_row_data(None) == {}


def test_seed(store):
    store.create_sheet("Leftover")
    created = seed_store(store)
    assert [s.name for s in store.list_sheets()] == ["Sales Data", "Employee Records", "Project Tracker"]
    assert [len(s.rows) for s in created] == [5, 4, 3]
    sales = store.find_sheet_by_name_regex("sales")
    assert [c.type for c in sales.columns] == ["string", "string", "number", "number", "date", "boolean"]


def test_import_csv(tmp_path, store):
    path = tmp_path / "inventory.csv"
    path.write_text("item,qty,received,active\nbolt,10,2024-01-01,true\nnut,,2024-02-01,false\n")
    sheet = import_file(store, str(path), executor=DuckDBExecutor())
    assert sheet.name == "inventory"
    assert [(c.name, c.type) for c in sheet.columns] == [
        ("item", "string"), ("qty", "number"), ("received", "date"), ("active", "boolean"),
    ]
    rows = store.find_sheet_by_id(sheet.id).rows
    assert rows[0].data["item"] == "bolt"
    assert rows[0].data["qty"] == 10
    assert rows[1].data["qty"] is None
    assert rows[0].data["active"] is True


def test_import_errors(tmp_path):
    store = InMemorySheetStore()
    with pytest.raises(FileNotFoundError):
        import_file(store, str(tmp_path / "missing.csv"))
    bad = tmp_path / "notes.xlsx"
    bad.write_text("x")
    with pytest.raises(ValueError):
        import_file(store, str(bad))


def test_infer_column_type_from_objects():
    assert infer_column_type(pd.Series(["a", None, "b"])) == "string"
    assert infer_column_type(pd.Series([1.5, 2.0])) == "number"
    assert infer_column_type(pd.Series([True, False])) == "boolean"
    assert infer_column_type(pd.Series([datetime(2024, 1, 1), None], dtype=object)) == "date"
    assert infer_column_type(pd.Series(["a", 1], dtype=object)) == "string"


def test_value_kinds():
    assert value_kind(True) == "boolean"
    assert value_kind(1) == "number"
    assert value_kind(float("nan")) == "null"
    assert value_kind(None) == "null"
    assert value_kind(datetime(2024, 1, 1)) == "date"
    assert value_kind("12") == "string"
    assert as_text(2.0) == "2"
    assert as_text(False) == "false"
    assert sort_key(1) < sort_key("a") < sort_key(True) < sort_key(None)


def test_huge_integers_are_numbers_without_float_conversion():
    big = 10 ** 400
    assert value_kind(big) == "number"
    assert as_number(big) is None
    assert as_text(big) == str(big)
    assert sort_key(5) < sort_key(big) < sort_key("a")


def test_huge_integer_survives_duckdb_round_trip():
    store = DuckDBSheetStore()
    sheet = store.create_sheet("Big", columns=[Column("n", "number")], rows=[{"n": 10 ** 400}, {"n": 5}])
    rows = store.find_sheet_by_id(sheet.id).rows
    assert rows[0].data["n"] == 10 ** 400
