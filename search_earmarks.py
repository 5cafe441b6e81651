"""
Earmarks Search Tool

Search earmark records by recipient, budget function, or agency from the
terminal.  Reads a local SQLite database built by load_earmarks.py, or a
PostgREST/Supabase endpoint when --url is given.

Usage:
    python search_earmarks.py "acme"
    python search_earmarks.py "transportation" --page-size 25
    python search_earmarks.py "dot" --json
    python search_earmarks.py --url https://xyz.supabase.co --key $KEY "acme"
    python search_earmarks.py --interactive
"""

import argparse
import asyncio
import json
import logging
import sys
import textwrap
from pathlib import Path

from earmarks.controller import SearchController
from earmarks.state import RequestState, Succeeded
from earmarks.store import PostgrestStore, SQLiteStore
from utils.config import AppConfig, SearchConfig
from utils.formatting import DISPLAY_COLUMNS, TableFormatter, format_count, project_record
from utils.http import RetryStrategy

logger = logging.getLogger("search_earmarks")


def display_state(state: RequestState) -> None:
    """Print a search outcome as a table, an error line, or nothing."""
    if state.status == "failed":
        print(f"\n  ERROR: {state.message}")
        return
    if not isinstance(state, Succeeded):
        return

    result = state.result
    print(f"\n  Found {format_count(result.count)} results for: '{state.query}'")
    if not result.rows:
        return
    table = TableFormatter([c.capitalize() for c in DISPLAY_COLUMNS])
    for record in result.rows:
        p = project_record(record)
        table.add_row([p["year"], p["recipient"], p["amount_display"], p["agency"]])
    print()
    print(textwrap.indent(table.format(), "  "))
    if result.count > len(result.rows):
        print(f"\n  Showing first {len(result.rows)} of {format_count(result.count)}.")


def state_to_dict(state: RequestState) -> dict:
    """JSON-friendly view of a state for --json output."""
    data: dict = {"status": state.status, "query": getattr(state, "query", "")}
    if isinstance(state, Succeeded):
        data["count"] = state.result.count
        data["rows"] = [dict(r) for r in state.result.rows]
    elif state.status == "failed":
        data["error"] = state.message
    return data


def interactive_mode(controller: SearchController) -> None:
    """Interactive search REPL: each line entered runs one search."""
    print("=" * 65)
    print("  EARMARKS - Interactive Search")
    print("=" * 65)
    print()
    print("  Type a search and press Enter.  An empty line lists everything.")
    print("  quit / exit            Exit")
    print()

    while True:
        try:
            raw = input("search> ")
        except (EOFError, KeyboardInterrupt):
            print("\nGoodbye.")
            break

        if raw.strip().lower() in ("quit", "exit", "q"):
            print("Goodbye.")
            break

        state = asyncio.run(controller.search(raw.strip()))
        display_state(state)


def build_store(args: argparse.Namespace):
    if args.url:
        return PostgrestStore(
            args.url,
            api_key=args.key or "",
            timeout=args.timeout,
            retry_strategy=RetryStrategy(max_retries=args.retries),
        )
    return SQLiteStore(args.db)


def main(argv: list[str] | None = None) -> int:
    env = AppConfig.from_env()
    parser = argparse.ArgumentParser(
        description="Search earmark records",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=textwrap.dedent("""
            Examples:
              python search_earmarks.py "acme"
              python search_earmarks.py "highway" --page-size 25
              python search_earmarks.py "dot" --json
              python search_earmarks.py --interactive
        """),
    )
    parser.add_argument("query", nargs="?", default=None,
                        help="Search text (use quotes for multi-word)")
    parser.add_argument("--db", type=Path, default=env.db_path,
                        help="SQLite database path (default: APP_DB_PATH or earmarks.sqlite)")
    parser.add_argument("--url", default=env.store_url,
                        help="PostgREST/Supabase base URL (default: APP_STORE_URL)")
    parser.add_argument("--key", default=env.store_key,
                        help="API key for --url (default: APP_STORE_KEY)")
    parser.add_argument("--timeout", type=float, default=env.store_timeout,
                        help="Request timeout in seconds for --url")
    parser.add_argument("--retries", type=int, default=env.store_retries,
                        help="Transport retries for --url (default: 0)")
    parser.add_argument("--table", default=None,
                        help="Table to search (default: EARMARKS_TABLE or earmarks)")
    parser.add_argument("--page-size", type=int, default=None,
                        help="Max rows to show (default: EARMARKS_PAGE_SIZE or 10)")
    parser.add_argument("--json", action="store_true",
                        help="Print the result as JSON")
    parser.add_argument("--interactive", "-i", action="store_true",
                        help="Interactive search mode")
    parser.add_argument("--verbose", "-v", action="store_true",
                        help="Debug logging")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )

    try:
        config = SearchConfig.from_env()
        if args.table:
            config.table = args.table
        if args.page_size is not None:
            config.page_size = args.page_size
        config.validate()
    except ValueError as exc:
        parser.error(str(exc))

    store = build_store(args)
    controller = SearchController(store, config)
    try:
        if args.interactive:
            interactive_mode(controller)
            return 0
        if args.query is None:
            parser.print_help()
            return 0

        state = asyncio.run(controller.search(args.query))
        if args.json:
            print(json.dumps(state_to_dict(state), indent=2, default=str))
        else:
            display_state(state)
        return 1 if state.status == "failed" else 0
    finally:
        store.close()


if __name__ == "__main__":
    sys.exit(main())
