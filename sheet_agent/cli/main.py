import atexit
import logging
import sys
from typing import Any, Dict, Optional

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.prompt import Prompt
from rich.table import Table

from sheet_agent.api.handlers import handle_insights, handle_list_sheets, handle_query, handle_sheet_insights
from sheet_agent.config import Settings
from sheet_agent.exec.duck import DuckDBConfig, DuckDBExecutor
from sheet_agent.exec.executor import ExecutionResult
from sheet_agent.planner.enrichment import EnrichmentAdapter
from sheet_agent.store.duck_store import DuckDBSheetStore
from sheet_agent.store.errors import StoreError
from sheet_agent.store.importer import import_file
from sheet_agent.store.seed import seed_store
from sheet_agent.utils.answers import insights_headline, make_concise_answer
from sheet_agent.utils.serialize import dumps

logger = logging.getLogger("sheet_agent")


def open_store(database: str) -> DuckDBSheetStore:
    return DuckDBSheetStore(DuckDBExecutor(DuckDBConfig(database=database)))


def _render_rows(console: Console, title: str, body: Dict[str, Any]) -> None:
    result = ExecutionResult(type=body["type"], message=body.get("message", ""), data=body.get("data"))
    tbl = result.to_arrow()
    table = Table(title=title)
    for name in tbl.column_names:
        table.add_column(name)
    columns = [tbl.column(i).to_pylist() for i in range(tbl.num_columns)]
    for i in range(min(50, tbl.num_rows)):
        table.add_row(*["" if col[i] is None else escape(col[i]) for col in columns])
    console.print(table)


def _render_report(console: Console, report: Dict[str, Any]) -> None:
    summary = report.get("summary") or {}
    console.print(Panel.fit("\n".join(f"{k}: {v}" for k, v in summary.items()), title="Summary"))
    for section in ("sheetComparisons", "dataDistribution", "anomalies", "trends"):
        for item in report.get(section) or []:
            line = item.get("description") or f"{item.get('valueColumn')} by {item.get('dateColumn')}: {item.get('trendType')}"
            console.print(f"{section}: {line}", markup=False)
    analysis = report.get("columnAnalysis") or []
    if analysis:
        table = Table(title="Column analysis")
        for name in ("name", "type", "nonEmptyCount", "uniqueValueCount", "completeness"):
            table.add_column(name)
        for col in analysis:
            table.add_row(col["name"], col["type"], str(col["nonEmptyCount"]), str(col["uniqueValueCount"]), f"{col['completeness']:.0f}%")
        console.print(table)
    for rec in report.get("recommendations") or []:
        console.print(f"({rec['importance']}) {rec['description']}", markup=False)


def main(argv=None):
    argv = argv if argv is not None else sys.argv[1:]
    import argparse
    settings = Settings.from_env()
    parser = argparse.ArgumentParser(prog="sheet-agent", description="Query and analyze sheets in plain language")
    parser.add_argument("--db", dest="db", default=settings.database, help="DuckDB database file (default :memory:)")
    parser.add_argument("--seed", dest="seed", action="store_true", help="Replace the store contents with sample sheets")
    parser.add_argument("--import", dest="import_path", default=None, help="Create a sheet from a .csv or .parquet file")
    parser.add_argument("--name", dest="name", default=None, help="Sheet name for --import (defaults to file name)")
    parser.add_argument("--sheets", dest="sheets", action="store_true", help="List sheets and exit")
    parser.add_argument("--query", dest="query", default=None, help="Run a single question non-interactively and exit")
    parser.add_argument("--insights", dest="insights", action="store_true", help="Print the insights report and exit")
    parser.add_argument("--sheet-id", dest="sheet_id", default=None, help="Limit --insights to one sheet")
    parser.add_argument("--json", dest="json", action="store_true", help="Print raw JSON bodies")
    parser.add_argument("--no-enrich", dest="enrich", action="store_false", default=settings.enrichment_enabled)
    parser.add_argument("--log-level", dest="log_level", default=settings.log_level)
    args = parser.parse_args(argv)

    logging.basicConfig(level=getattr(logging, str(args.log_level).upper(), logging.WARNING), format="%(levelname)s %(name)s: %(message)s")
    console = Console()

    try:
        store = open_store(args.db)
        logger.debug("opened store at %s", args.db)
        if args.seed:
            created = seed_store(store)
            console.print(Panel.fit(f"Seeded {len(created)} sample sheets"))
        if args.import_path:
            sheet = import_file(store, args.import_path, name=args.name)
            console.print(Panel.fit(f"Imported {escape(args.import_path)} as \"{escape(sheet.name)}\" ({len(sheet.rows)} rows, id {sheet.id})"))
    except (FileNotFoundError, ValueError, StoreError) as e:
        console.print(Panel.fit(escape(str(e))))
        return 2

    adapter: Optional[EnrichmentAdapter] = None
    if args.enrich and settings.openai_api_key:
        adapter = EnrichmentAdapter(settings)
        atexit.register(adapter.close)

    def emit(status: int, body: Any) -> int:
        if args.json:
            console.print_json(dumps(body))
        return 0 if status < 400 else 1

    def run_once(question: str) -> int:
        status, body = handle_query({"query": question}, store, adapter)
        code = emit(status, body)
        if args.json:
            return code
        console.print(make_concise_answer(body), markup=False)
        db = body.get("database")
        if db:
            console.print(Panel.fit(escape(dumps(db)), title="Store operation"))
        if body.get("type") == "data":
            _render_rows(console, body.get("message", ""), body)
        return code

    if args.sheets:
        status, body = handle_list_sheets(store)
        if args.json:
            return emit(status, body)
        if status != 200:
            console.print(Panel.fit(body.get("message", "error")))
            return 1
        table = Table(title="Sheets")
        table.add_column("id")
        table.add_column("sheetName")
        for item in body:
            table.add_row(item["id"], item["sheetName"])
        console.print(table)
        return 0

    if args.insights:
        status, body = handle_sheet_insights(store, args.sheet_id) if args.sheet_id else handle_insights(store)
        if args.json:
            return emit(status, body)
        if status != 200:
            console.print(Panel.fit(body.get("message", "error")))
            return 1
        console.print(insights_headline(body), markup=False)
        _render_report(console, body)
        return 0

    # Non-interactive
    if args.query:
        return run_once(args.query)

    # Interactive loop
    while True:
        q = Prompt.ask("Ask a question (:exit to quit)")
        if q.strip().lower() in {":exit", ":quit", "exit", "quit"}:
            break
        if q.strip().lower() == ":insights":
            status, body = handle_insights(store)
            console.print(insights_headline(body) if status == 200 else body.get("message"), markup=False)
            continue
        run_once(q)
    return 0


if __name__ == "__main__":
    sys.exit(main())
