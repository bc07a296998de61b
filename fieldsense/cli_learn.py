"""Learn CLI Commands - manage the continuous learning store.

Registered in cli.py:
    from .cli_learn import learn_app
    app.add_typer(learn_app, name="learn")

Commands:
    fieldsense learn list      - Show learned entries
    fieldsense learn count     - Number of learned entries
    fieldsense learn add       - Record a confirmed signal → type mapping
    fieldsense learn forget    - Remove the entry for a signal string
    fieldsense learn clear     - Remove all entries (or only rule-derived ones)
    fieldsense learn retrain   - Rebuild the store from a rules JSON export
"""

import asyncio
from datetime import datetime
from pathlib import Path
from typing import Optional
import logging

import typer
from rich.console import Console
from rich.table import Table
from rich import box

from .config import Config, get_config, set_config
from .errors import InputError
from .learning.learning_store import LearningStore
from .learning.storage import SQLiteKeyValueStore
from .rules import load_rules
from .types import FIELD_TYPES

console = Console()
logger = logging.getLogger(__name__)

learn_app = typer.Typer(
    help="Continuous learning - inspect and edit learned mappings",
    no_args_is_help=True,
)


def _get_store(data_dir: Optional[Path] = None) -> LearningStore:
    """Open the learning store in the configured data directory."""
    config = get_config()
    if data_dir:
        config = Config(data_dir=data_dir)
        set_config(config)

    return LearningStore(
        SQLiteKeyValueStore(config.db_path),
        key=config.learning.storage_key,
        max_entries=config.learning.max_entries,
    )


@learn_app.command("list")
def learn_list(
    limit: int = typer.Option(50, "--limit", "-n", help="Show at most N newest entries"),
    data_dir: Optional[Path] = typer.Option(None, "--data-dir", "-d", help="Data directory"),
):
    """Show learned entries, newest first."""
    store = _get_store(data_dir)
    entries = asyncio.run(store.get_learned_entries())

    if not entries:
        console.print("[yellow]No learned entries.[/yellow]")
        raise typer.Exit(0)

    table = Table(title=f"Learned Entries ({len(entries)})", box=box.SIMPLE)
    table.add_column("Signals", style="cyan")
    table.add_column("Type", style="green")
    table.add_column("Generator")
    table.add_column("Source")
    table.add_column("Learned at", style="dim")

    for entry in reversed(entries[-limit:]):
        table.add_row(
            entry.normalized_signals,
            entry.field_type,
            entry.generator_type or "-",
            entry.source,
            datetime.fromtimestamp(entry.timestamp).strftime("%Y-%m-%d %H:%M"),
        )

    console.print(table)


@learn_app.command("count")
def learn_count(
    data_dir: Optional[Path] = typer.Option(None, "--data-dir", "-d", help="Data directory"),
):
    """Show the number of learned entries."""
    store = _get_store(data_dir)
    count = asyncio.run(store.get_learned_count())
    console.print(f"{count} learned entries (max {store.max_entries})")


@learn_app.command("add")
def learn_add(
    signals: str = typer.Argument(..., help="Field signal text"),
    field_type: str = typer.Argument(..., help="Field type to map it to"),
    generator: Optional[str] = typer.Option(None, "--generator", "-g", help="Generator type"),
    data_dir: Optional[Path] = typer.Option(None, "--data-dir", "-d", help="Data directory"),
):
    """Record a confirmed signal → field type mapping."""
    if field_type not in FIELD_TYPES:
        console.print(f"[red]Unknown field type: {field_type}[/red]")
        raise typer.Exit(1)

    store = _get_store(data_dir)
    stored = asyncio.run(store.store_learned_entry(signals, field_type, generator_type=generator))

    if not stored:
        console.print("[red]Nothing stored (empty signals or storage failure)[/red]")
        raise typer.Exit(1)

    console.print(f"[green]✓ Learned '{signals}' → {field_type}[/green]")


@learn_app.command("forget")
def learn_forget(
    signals: str = typer.Argument(..., help="Field signal text"),
    data_dir: Optional[Path] = typer.Option(None, "--data-dir", "-d", help="Data directory"),
):
    """Remove the learned entry for a signal string."""
    store = _get_store(data_dir)
    removed = asyncio.run(store.remove_learned_entry_by_signals(signals))

    if removed:
        console.print(f"[green]✓ Removed entry for '{signals}'[/green]")
    else:
        console.print(f"[yellow]No entry for '{signals}'[/yellow]")


@learn_app.command("clear")
def learn_clear(
    rules_only: bool = typer.Option(False, "--rules-only", help="Only remove rule-derived entries"),
    confirm: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
    data_dir: Optional[Path] = typer.Option(None, "--data-dir", "-d", help="Data directory"),
):
    """Remove learned entries."""
    store = _get_store(data_dir)

    if rules_only:
        removed = asyncio.run(store.clear_rule_derived_entries())
        console.print(f"[green]✓ Removed {removed} rule-derived entries[/green]")
        return

    if not confirm:
        confirm = typer.confirm("Delete all learned entries?")

    if confirm:
        asyncio.run(store.clear_learned_entries())
        console.print("[green]✓ Learned entries cleared[/green]")
    else:
        console.print("[yellow]Cancelled[/yellow]")


@learn_app.command("retrain")
def learn_retrain(
    rules_path: Path = typer.Argument(..., help="Rules JSON export"),
    details: bool = typer.Option(False, "--details", help="Show per-rule outcome"),
    data_dir: Optional[Path] = typer.Option(None, "--data-dir", "-d", help="Data directory"),
):
    """Rebuild the learning store from a rule set.

    Clears every learned entry, then imports one rule-derived entry per rule.
    """
    try:
        rules = load_rules(rules_path)
    except InputError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)

    store = _get_store(data_dir)
    result = asyncio.run(store.retrain_learned_from_rules(rules))

    table = Table(show_header=False, box=box.SIMPLE)
    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right")
    table.add_row("Rules", str(result.total_rules))
    table.add_row("Imported", str(result.imported))
    table.add_row("Skipped", str(result.skipped))
    table.add_row("Duration", f"{result.duration_ms:.0f} ms")
    console.print(table)

    if details and result.details:
        detail_table = Table(box=box.SIMPLE)
        detail_table.add_column("Rule")
        detail_table.add_column("Type", style="green")
        detail_table.add_column("Signals", style="cyan")
        detail_table.add_column("Status")
        for d in result.details:
            status = "[green]imported[/green]" if d.status == "imported" else "[yellow]skipped[/yellow]"
            detail_table.add_row(d.rule_id, d.field_type, d.signals or "-", status)
        console.print(detail_table)
