#!/usr/bin/env python3
"""
Jogger - application search and MIME handler lookup.
Entry point for querying the application index from a terminal.

Usage:
    python run.py                        # List applications by usage
    python run.py --query firefox        # Ranked fuzzy search
    python run.py --mime text/html       # Handlers for a MIME type
    python run.py --mime text/html --default
    python run.py --open notes.txt       # Handlers able to open files
"""
import sys
import argparse

from rich.console import Console
from rich.table import Table

from jogger.core.logger import init_logger, get_logger
from jogger.core.config import Config
from jogger.database import AppDatabase


def parse_args(argv=None):
    """Parse command line arguments"""
    parser = argparse.ArgumentParser(
        description="Jogger - application search and MIME handler lookup",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python run.py --query web           # Fuzzy search
  python run.py --mime image/png      # Every handler, best first
  python run.py --open a.txt b.md     # Handlers for a group of files
        """
    )

    parser.add_argument(
        "--query",
        type=str,
        default=None,
        help="Query text (omit to list every application)"
    )

    parser.add_argument(
        "--mime",
        type=str,
        default=None,
        help="Resolve handlers for this MIME type"
    )

    parser.add_argument(
        "--default",
        action="store_true",
        help="With --mime, print only the default handler"
    )

    parser.add_argument(
        "--open",
        nargs="+",
        default=None,
        metavar="PATH",
        help="Resolve handlers able to open all of these files"
    )

    parser.add_argument(
        "--launch",
        type=str,
        default=None,
        metavar="ID[/ACTION]",
        help="Launch an application (or one of its actions) and count the selection"
    )

    parser.add_argument(
        "--log-level",
        type=str,
        default=Config.LOG_LEVEL,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help=f"Logging level (default: {Config.LOG_LEVEL})"
    )

    parser.add_argument(
        "--quiet",
        action="store_true",
        default=Config.QUIET_MODE,
        help="Hide per-file scan messages"
    )

    return parser.parse_args(argv)


def _print_entries(console: Console, entries) -> None:
    table = Table(show_header=True, header_style="bold")
    table.add_column("Score", justify="right")
    table.add_column("Name")
    table.add_column("Description")
    table.add_column("Id", style="dim")
    for entry in entries:
        name = entry.name.to_rich()
        if entry.tag is not None:
            name.append("  ")
            name.append_text(entry.tag.to_rich())
        description = entry.description.to_rich() if entry.description else ""
        identity = entry.identity + (f"/{entry.action}" if entry.action else "")
        table.add_row(str(entry.score), name, description, identity)
    console.print(table)


def _print_handlers(console: Console, records) -> None:
    if not records:
        console.print("No handlers")
        return
    for i, record in enumerate(records):
        marker = "*" if i == 0 else " "
        console.print(f"{marker} {record.identity}  ({record.name})", markup=False, highlight=False)


def main(argv=None) -> int:
    """Main entry point"""
    args = parse_args(argv)

    init_logger(args.log_level, quiet_mode=args.quiet)
    logger = get_logger()
    console = Console()

    database = AppDatabase()

    if args.launch:
        identity, _, action = args.launch.partition("/")
        if not database.launch(identity, action or None):
            return 1
        database.record_selection(identity)
        return 0

    if args.open:
        _print_handlers(console, database.handlers_for_paths(args.open))
        return 0

    if args.mime:
        if args.default:
            record = database.resolve_default_handler(args.mime)
            _print_handlers(console, [record] if record is not None else [])
        else:
            _print_handlers(console, database.resolve_handlers(args.mime))
        return 0

    entries = database.query(args.query or "")
    if not entries:
        logger.info("No results")
        return 0
    _print_entries(console, entries)
    return 0


if __name__ == "__main__":
    sys.exit(main())
