"""fieldsense CLI - classify form fields from their text signals."""

from pathlib import Path
from typing import Optional
import asyncio
import logging

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from .config import get_config, set_config, Config
from .dataset import get_training_distribution, load_training_samples
from .errors import InputError
from .extract import extract_fields
from .learning.integration import FallbackArbiter, create_arbiter

# Continuous learning
from .cli_learn import learn_app


# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(message)s",
    handlers=[RichHandler(rich_tracebacks=True, show_path=False)]
)
logger = logging.getLogger("fieldsense")

app = typer.Typer(
    name="fieldsense",
    help="Form field classification from text signals",
    no_args_is_help=True,
)

# Register learn commands
app.add_typer(learn_app, name="learn")

console = Console()


def init_app(data_dir: Optional[Path] = None) -> Config:
    """Initialize application configuration."""
    config = get_config()

    if data_dir:
        config = Config(data_dir=data_dir)
        set_config(config)

    return config


def _confidence_style(confidence: float, threshold: float) -> str:
    if confidence >= threshold:
        return "green"
    if confidence > 0:
        return "yellow"
    return "red"


# =============================================================================
# CLASSIFY
# =============================================================================

@app.command()
def classify(
    text: str = typer.Argument(..., help="Field signal text (label, name, placeholder...)"),
    soft: bool = typer.Option(False, "--soft", help="Return nothing below the accept threshold"),
    ai: bool = typer.Option(False, "--ai", help="Fall back to the generative model when unsure"),
    data_dir: Optional[Path] = typer.Option(None, "--data-dir", "-d", help="Data directory"),
):
    """Classify a field from its signal text."""
    config = init_app(data_dir)
    arbiter = create_arbiter(config, with_model=ai)

    async def run():
        try:
            await arbiter.reload()
            if ai:
                return await arbiter.classify(text)
            if soft:
                return arbiter.classify_soft(text)
            return arbiter.classify_hard(text)
        finally:
            await arbiter.close()

    result = asyncio.run(run())

    if result is None:
        console.print(
            f"[yellow]No confident match (threshold {config.classifier.hard_accept_threshold})[/yellow]"
        )
        raise typer.Exit(0)

    if result.is_empty:
        console.print("[yellow]Empty signal text - nothing to classify[/yellow]")
        raise typer.Exit(0)

    style = _confidence_style(result.confidence, config.classifier.hard_accept_threshold)
    console.print(
        f"[bold]{result.field_type}[/bold]  "
        f"[{style}]{result.confidence:.3f}[/{style}]  "
        f"[dim]({result.source.value})[/dim]"
    )


@app.command()
def scores(
    text: str = typer.Argument(..., help="Field signal text"),
    top: int = typer.Option(10, "--top", "-n", help="Number of types to show"),
    data_dir: Optional[Path] = typer.Option(None, "--data-dir", "-d", help="Data directory"),
):
    """Show similarity against every field type, best first."""
    config = init_app(data_dir)
    arbiter: FallbackArbiter = create_arbiter(config, with_model=False)
    asyncio.run(arbiter.reload())

    ranked = arbiter.classifier.score(text)
    if not ranked:
        console.print("[yellow]Empty signal text - nothing to score[/yellow]")
        raise typer.Exit(0)

    threshold = config.classifier.hard_accept_threshold
    table = Table(title=f"Scores for '{text}'")
    table.add_column("#", justify="right", style="dim")
    table.add_column("Type", style="cyan")
    table.add_column("Similarity", justify="right")

    for i, (field_type, similarity) in enumerate(ranked[:top], 1):
        style = _confidence_style(similarity, threshold)
        table.add_row(str(i), field_type, f"[{style}]{similarity:.3f}[/{style}]")

    console.print(table)


@app.command("classify-html")
def classify_html(
    path: Path = typer.Argument(..., help="HTML file containing one or more forms"),
    ai: bool = typer.Option(False, "--ai", help="Fall back to the generative model when unsure"),
    data_dir: Optional[Path] = typer.Option(None, "--data-dir", "-d", help="Data directory"),
):
    """Classify every fillable field in an HTML file."""
    if not path.exists():
        console.print(f"[red]Error: File does not exist: {path}[/red]")
        raise typer.Exit(1)

    try:
        fields = extract_fields(path.read_text(encoding="utf-8"))
    except InputError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)

    if not fields:
        console.print("[yellow]No fillable fields found.[/yellow]")
        raise typer.Exit(0)

    config = init_app(data_dir)
    arbiter = create_arbiter(config, with_model=ai)

    async def run():
        try:
            await arbiter.reload()
            return [
                await arbiter.classify(f.as_mapping(), f.element_html, f.context_html)
                for f in fields
            ]
        finally:
            await arbiter.close()

    results = asyncio.run(run())
    threshold = config.classifier.hard_accept_threshold

    table = Table(title=f"Fields in {path.name}")
    table.add_column("Selector", style="dim")
    table.add_column("Label")
    table.add_column("Type", style="cyan")
    table.add_column("Conf", justify="right")
    table.add_column("Source")

    for field_signals, result in zip(fields, results):
        if result.is_empty:
            table.add_row(escape(field_signals.selector), escape(field_signals.label or "-"), "-", "-", "-")
            continue
        style = _confidence_style(result.confidence, threshold)
        table.add_row(
            escape(field_signals.selector),
            escape(field_signals.label or "-"),
            result.field_type,
            f"[{style}]{result.confidence:.2f}[/{style}]",
            result.source.value,
        )

    console.print(table)


# =============================================================================
# DATASET
# =============================================================================

dataset_app = typer.Typer(help="Inspect the bundled training dataset")
app.add_typer(dataset_app, name="dataset")


@dataset_app.command("stats")
def dataset_stats(
    by: str = typer.Option("category", "--by", help="Group by: type, category, difficulty"),
):
    """Show sample counts in the bundled dataset."""
    if by not in ("type", "category", "difficulty"):
        console.print(f"[red]Unknown grouping: {by}[/red]")
        raise typer.Exit(1)

    distribution = get_training_distribution(by)
    total = len(load_training_samples())

    table = Table(title=f"Training samples by {by}")
    table.add_column(by.capitalize(), style="cyan")
    table.add_column("Samples", justify="right")
    table.add_column("Share", justify="right", style="dim")

    for key, count in sorted(distribution.items(), key=lambda kv: (-kv[1], kv[0])):
        table.add_row(key, str(count), f"{count / total:.1%}")

    console.print(table)
    console.print(f"Total: {total} samples")


# =============================================================================
# CONFIG
# =============================================================================

@app.command("config-show")
def config_show():
    """Show current configuration."""
    config = get_config()

    console.print()
    console.print("[bold]Current Configuration[/bold]")
    console.print("─" * 40)
    console.print(f"  Data directory:  {config.data_dir}")
    console.print(f"  Database:        {config.db_path}")
    console.print(f"  Accept threshold: {config.classifier.hard_accept_threshold}")
    console.print(f"  Learned match:   {config.classifier.learned_match_threshold}")
    console.print(f"  N-gram size:     {config.classifier.ngram_size}")
    console.print(f"  Learned cap:     {config.learning.max_entries}")
    console.print(f"  Model provider:  {config.model.provider}")
    if config.model.provider == "ollama":
        console.print(f"  Ollama:          {config.model.ollama.model} @ {config.model.ollama.url}")
    console.print(f"  Model timeout:   {config.model.timeout}s (cool-down {config.model.cooldown}s)")
    console.print()


if __name__ == "__main__":
    app()
