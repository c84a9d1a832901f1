# pricewatch/cli/runner.py

"""Command implementations: visits and ledger maintenance."""

import json
import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Any

from rich.console import Console
from rich.table import Table

from pricewatch.config.settings import TrackerPreferences
from pricewatch.detector.product_detector import ProductDetector
from pricewatch.pages.document import SoupDocument
from pricewatch.pages.fetcher import PageFetcher, load_html_file
from pricewatch.services.channel import LocalChannel, MessageChannel
from pricewatch.services.ledger_service import LedgerService
from pricewatch.storage.kv_store import SqliteKVStore
from pricewatch.storage.ledger import Ledger

logger = logging.getLogger("pricewatch.cli")

# Stderr console for status messages so stdout stays clean for JSON
_err = Console(stderr=True)


def open_channel(db_path: Path | None = None) -> tuple[LocalChannel, Ledger]:
    """Wire a ledger, its protocol service and a local channel."""
    ledger = Ledger(SqliteKVStore(db_path))
    return LocalChannel(LedgerService(ledger)), ledger


def _format_ts(timestamp_ms: int) -> str:
    return datetime.fromtimestamp(timestamp_ms / 1000).strftime(
        "%Y-%m-%d %H:%M"
    )


def _report_failure(response: dict[str, Any]) -> int:
    _err.print(f"[red]Error: {response.get('error', 'unknown error')}[/red]")
    return 1


async def run_visit(
    channel: MessageChannel,
    url: str,
    html_file: Path | None = None,
    preferences: TrackerPreferences | None = None,
) -> int:
    """Visit one page, letting the detector track it as a browser would."""
    document: SoupDocument | None
    if html_file is not None:
        document = load_html_file(html_file, url)
    else:
        _err.print(f"[dim]Fetching {url}...[/dim]")
        document = PageFetcher().fetch(url)
    if document is None:
        _err.print(f"[red]Could not load {url}[/red]")
        return 1

    detector = ProductDetector(document, channel, preferences)
    try:
        result = await detector.run()
    finally:
        document.teardown()

    draft = result.draft
    if draft is None:
        _err.print("[yellow]Not a trackable product page.[/yellow]")
        return 1

    # Debug mode extracts even when the page did not classify as a product
    table = Table(title="Product Page", show_lines=True, title_style="bold cyan")
    table.add_column("Field", style="bold")
    table.add_column("Value")
    table.add_row("ID", result.product_id or "")
    table.add_row("Product page", "yes" if result.is_product else "no")
    table.add_row("Title", draft.title or "[red]not detected[/red]")
    table.add_row(
        "Price",
        f"¥{draft.price:,}" if draft.price else "[red]not detected[/red]",
    )
    table.add_row("Availability", draft.availability.value)
    table.add_row("Seller", draft.seller or "—")
    table.add_row("Tracked", "yes" if result.tracked else "no")
    table.add_row("Price recorded today", "yes" if result.price_added else "no")
    Console().print(table)
    return 0 if result.is_product and draft.is_trackable else 1


async def run_list(channel: MessageChannel, output_format: str) -> int:
    """Print every tracked product."""
    response = await channel.send({"action": "GET_PRODUCTS"})
    if not response["success"]:
        return _report_failure(response)
    products: dict[str, dict[str, Any]] = response["data"]

    if output_format == "json":
        json.dump(products, sys.stdout, ensure_ascii=False, indent=2)
        sys.stdout.write("\n")
        return 0

    if not products:
        _err.print("[yellow]No tracked products.[/yellow]")
        return 0

    table = Table(
        title="Tracked Products", show_lines=True, title_style="bold cyan",
    )
    table.add_column("ID", style="dim")
    table.add_column("Title", max_width=50)
    table.add_column("Price", justify="right", style="green")
    table.add_column("Stock", justify="center")
    table.add_column("Seller", style="magenta")
    table.add_column("Updated", style="dim")
    for pid, p in sorted(
        products.items(), key=lambda item: item[1].get("title", ""),
    ):
        table.add_row(
            pid,
            str(p.get("title", ""))[:50],
            f"¥{p.get('price', 0):,}",
            str(p.get("availability", "unknown")),
            str(p.get("seller") or "—"),
            _format_ts(int(p.get("updatedAt") or 0)),
        )
    Console().print(table)
    return 0


async def run_history(channel: MessageChannel, product_id: str) -> int:
    """Print the daily price series and its summary for one product."""
    response = await channel.send(
        {"action": "GET_PRICE_HISTORY", "productId": product_id}
    )
    if not response["success"]:
        return _report_failure(response)
    points: list[dict[str, int]] = response["data"]
    if not points:
        _err.print(f"[yellow]No price history for {product_id}.[/yellow]")
        return 1

    table = Table(
        title=f"Price History: {product_id}", title_style="bold cyan",
    )
    table.add_column("Observed", style="dim")
    table.add_column("Price", justify="right", style="green")
    for point in points:
        table.add_row(_format_ts(point["timestamp"]), f"¥{point['price']:,}")
    Console().print(table)

    summary = await channel.send(
        {"action": "GET_PRICE_SUMMARY", "productId": product_id}
    )
    if summary["success"] and summary.get("data"):
        s = summary["data"]
        _err.print(
            f"[dim]min ¥{s['min']:,}  max ¥{s['max']:,}  "
            f"avg ¥{s['avg']:,}  latest ¥{s['latest']:,}  "
            f"({s['count']} points)[/dim]"
        )
    return 0


async def run_alert(
    channel: MessageChannel,
    product_id: str,
    enabled: bool | None,
    threshold: float | None,
    direction: str | None,
) -> int:
    """Change the stored alert settings of one product."""
    alerts: dict[str, Any] = {}
    if enabled is not None:
        alerts["enabled"] = enabled
    if threshold is not None:
        alerts["threshold"] = threshold
    if direction is not None:
        alerts["type"] = direction
    if not alerts:
        _err.print("[yellow]Nothing to change.[/yellow]")
        return 1

    response = await channel.send({
        "action": "UPDATE_PRODUCT",
        "productId": product_id,
        "updates": {"alerts": alerts},
    })
    if not response["success"]:
        return _report_failure(response)
    a = response["data"]["alerts"]
    _err.print(
        f"[green]✓ Alerts for {product_id}: enabled={a['enabled']} "
        f"threshold={a['threshold']} type={a['type']}[/green]"
    )
    return 0


async def run_delete(channel: MessageChannel, product_id: str) -> int:
    response = await channel.send(
        {"action": "DELETE_PRODUCT", "productId": product_id}
    )
    if not response["success"]:
        return _report_failure(response)
    _err.print(f"[green]✓ Stopped tracking {product_id}[/green]")
    return 0


async def run_export(channel: MessageChannel, output: Path | None) -> int:
    """Write the export envelope to *output* or stdout."""
    response = await channel.send({"action": "EXPORT_DATA"})
    if not response["success"]:
        return _report_failure(response)
    envelope = response["data"]
    if output is None:
        json.dump(envelope, sys.stdout, ensure_ascii=False, indent=2)
        sys.stdout.write("\n")
        return 0
    output.parent.mkdir(parents=True, exist_ok=True)
    with open(output, "w", encoding="utf-8") as f:
        json.dump(envelope, f, ensure_ascii=False, indent=2)
    _err.print(
        f"[green]✓ Exported {len(envelope['products'])} products "
        f"→ {output}[/green]"
    )
    return 0


async def run_import(channel: MessageChannel, source: Path) -> int:
    """Replace the ledger with the envelope stored in *source*."""
    try:
        with open(source, encoding="utf-8") as f:
            payload = f.read()
    except OSError as exc:
        logger.error("Failed to read %s: %s", source, exc)
        _err.print(f"[red]Cannot read {source}: {exc}[/red]")
        return 1

    response = await channel.send({"action": "IMPORT_DATA", "data": payload})
    if not response["success"]:
        return _report_failure(response)
    _err.print(f"[green]✓ Imported {response['count']} products[/green]")
    return 0
