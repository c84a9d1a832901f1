# main.py

"""Entry point for the pricewatch product price tracker CLI."""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from pricewatch.config.logging_config import setup_logging
from pricewatch.config.settings import TrackerPreferences

logger = logging.getLogger("pricewatch.main")


def _build_parser() -> argparse.ArgumentParser:
    """Build the argument parser for the CLI."""
    parser = argparse.ArgumentParser(
        prog="pricewatch",
        description=(
            "Passive product price tracker: record prices of the product "
            "pages you visit."
        ),
    )
    parser.add_argument(
        "--db",
        type=Path,
        default=None,
        help="Ledger database path (default: data/ledger.db).",
    )
    commands = parser.add_subparsers(dest="command", required=True)

    visit = commands.add_parser("visit", help="Visit a product page.")
    visit.add_argument("url", help="Address of the product page.")
    visit.add_argument(
        "--html",
        type=Path,
        default=None,
        dest="html_file",
        help="Read the page from a saved HTML file instead of fetching it.",
    )
    visit.add_argument(
        "--no-auto-track",
        action="store_false",
        dest="auto_track",
        default=None,
        help="Show the page's product data without tracking it.",
    )
    visit.add_argument(
        "--debug",
        action="store_true",
        default=None,
        dest="debug_mode",
        help="Extract even when the page is not recognised; store nothing.",
    )

    listing = commands.add_parser("list", help="List tracked products.")
    listing.add_argument(
        "-f",
        "--format",
        choices=["json", "table"],
        default="table",
        dest="output_format",
        help="Output format (default: table).",
    )

    history = commands.add_parser("history", help="Show a price history.")
    history.add_argument("product_id")

    alert = commands.add_parser("alert", help="Change alert settings.")
    alert.add_argument("product_id")
    toggle = alert.add_mutually_exclusive_group()
    toggle.add_argument(
        "--enable", action="store_true", default=None, dest="enabled",
    )
    toggle.add_argument(
        "--disable", action="store_false", default=None, dest="enabled",
    )
    alert.add_argument(
        "--threshold",
        type=float,
        default=None,
        help="Fractional change that would trigger (0 < t <= 1).",
    )
    alert.add_argument(
        "--direction",
        choices=["both", "increase", "decrease"],
        default=None,
    )

    delete = commands.add_parser("delete", help="Stop tracking a product.")
    delete.add_argument("product_id")

    export = commands.add_parser("export", help="Export all data as JSON.")
    export.add_argument(
        "-o", "--output", type=Path, default=None,
        help="Write to a file instead of stdout.",
    )

    restore = commands.add_parser(
        "import", help="Replace all data with an export file.",
    )
    restore.add_argument("source", type=Path)
    return parser


def _preferences(args: argparse.Namespace) -> TrackerPreferences:
    """Environment preferences, overridden by explicit visit flags."""
    prefs = TrackerPreferences.from_env()
    if args.auto_track is not None:
        prefs.auto_track = args.auto_track
    if args.debug_mode is not None:
        prefs.debug_mode = args.debug_mode
    return prefs


async def _dispatch(args: argparse.Namespace) -> int:
    from pricewatch.cli import runner

    channel, ledger = runner.open_channel(args.db)
    try:
        match args.command:
            case "visit":
                return await runner.run_visit(
                    channel, args.url, args.html_file, _preferences(args),
                )
            case "list":
                return await runner.run_list(channel, args.output_format)
            case "history":
                return await runner.run_history(channel, args.product_id)
            case "alert":
                return await runner.run_alert(
                    channel,
                    args.product_id,
                    args.enabled,
                    args.threshold,
                    args.direction,
                )
            case "delete":
                return await runner.run_delete(channel, args.product_id)
            case "export":
                return await runner.run_export(channel, args.output)
            case "import":
                return await runner.run_import(channel, args.source)
        return 2
    finally:
        ledger.close()


def main() -> None:
    """Parse arguments and run one command."""
    args = _build_parser().parse_args()
    verbose = getattr(args, "debug_mode", None)
    log_file = setup_logging(
        console_level=logging.INFO if verbose else logging.WARNING,
    )
    logger.info("pricewatch starting, log file: %s", log_file)

    try:
        exit_code = asyncio.run(_dispatch(args))
    except Exception:
        logger.critical("Fatal error in %s", args.command, exc_info=True)
        raise
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
