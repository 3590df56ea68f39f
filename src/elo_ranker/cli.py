"""CLI for Elo Ranker."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import Annotated, TypeVar

import structlog
import typer
from pydantic import ValidationError
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from elo_ranker import __version__
from elo_ranker.core.config import RankerConfig, load_config
from elo_ranker.core.errors import ConfigurationError, RankerError
from elo_ranker.services.api import RankingService, build_service
from elo_ranker.services.storage import create_db_engine, init_db

T = TypeVar("T")

# Configure structlog
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.dev.ConsoleRenderer(),
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)

app = typer.Typer(
    name="elo-ranker",
    help="Elo Ranker - pairwise image voting with Elo ratings",
    add_completion=False,
)
console = Console()

ConfigOption = Annotated[
    Path | None,
    typer.Option("--config", "-c", help="Path to config YAML file"),
]
VerboseOption = Annotated[bool, typer.Option("--verbose", "-V", help="Verbose output")]


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"elo-ranker v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        bool | None,
        typer.Option("--version", "-v", callback=version_callback, is_eager=True),
    ] = None,
) -> None:
    """Elo Ranker CLI."""


def _configure_logging(verbose: bool) -> None:
    log_level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=log_level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True)],
    )


def _load(config_path: Path | None) -> RankerConfig:
    try:
        return load_config(config_path)
    except FileNotFoundError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from e
    except ValidationError as e:
        console.print(f"[red]Invalid configuration:[/red] {e}")
        raise typer.Exit(1) from e


def _run(
    config: RankerConfig,
    operation: Callable[[RankingService], Awaitable[T]],
) -> T:
    """Build the service, run one operation, and map domain errors to exit code 1."""

    async def _go() -> T:
        service = build_service(config)
        try:
            return await operation(service)
        finally:
            await service.close()

    try:
        return asyncio.run(_go())
    except RankerError as e:
        console.print(f"[red]{escape(f'[{e.kind}]')}[/red] {escape(e.message)}")
        raise typer.Exit(1) from e
    except ConfigurationError as e:
        console.print(f"[red]{e}")
        raise typer.Exit(1) from e


@app.command("init-db")
def init_db_command(config_path: ConfigOption = None, verbose: VerboseOption = False) -> None:
    """Create the items table if it doesn't exist."""
    _configure_logging(verbose)
    config = _load(config_path)
    engine = create_db_engine(config.database_url)
    try:
        init_db(engine)
    finally:
        engine.dispose()
    console.print(f"[green]Database ready:[/green] {config.database_url}")


@app.command("add-item")
def add_item(
    name: Annotated[str, typer.Argument(help="Display name for the item")],
    image_path: Annotated[Path, typer.Argument(help="Image file to upload")],
    config_path: ConfigOption = None,
    verbose: VerboseOption = False,
) -> None:
    """Upload an image and add it as a new item."""
    _configure_logging(verbose)
    config = _load(config_path)
    if not image_path.is_file():
        console.print(f"[red]Error:[/red] Image not found: {image_path}")
        raise typer.Exit(1)

    content = image_path.read_bytes()
    item = _run(config, lambda service: service.submit_new_item(name, content))
    console.print(f"[green]Added[/green] {item.name} ({item.id}) at {item.rating:.0f}")
    console.print(f"  Image: {item.image_url}")


@app.command()
def matchup(config_path: ConfigOption = None, verbose: VerboseOption = False) -> None:
    """Show two random items to compare."""
    _configure_logging(verbose)
    config = _load(config_path)
    first, second = _run(config, lambda service: service.get_matchup())
    for item in (first, second):
        console.print(f"[bold]{item.name}[/bold]  id={item.id}  rating={item.rating:.1f}")


@app.command()
def rankings(
    config_path: ConfigOption = None,
    limit: Annotated[int | None, typer.Option("--limit", "-n", help="Rows to show")] = None,
    verbose: VerboseOption = False,
) -> None:
    """Print the leaderboard."""
    _configure_logging(verbose)
    config = _load(config_path)
    entries = _run(config, lambda service: service.get_rankings())
    if limit is not None:
        entries = entries[:limit]

    table = Table(title="Leaderboard")
    table.add_column("Rank", justify="right")
    table.add_column("Name")
    table.add_column("Rating", justify="right")
    table.add_column("Matches", justify="right")
    table.add_column("Id", style="dim")
    for entry in entries:
        table.add_row(
            str(entry.rank),
            entry.name,
            f"{entry.rating:.1f}",
            str(entry.matches_played),
            entry.id,
        )
    console.print(table)


@app.command()
def vote(
    winner_id: Annotated[str, typer.Argument(help="Id of the winning item")],
    loser_id: Annotated[str, typer.Argument(help="Id of the losing item")],
    config_path: ConfigOption = None,
    verbose: VerboseOption = False,
) -> None:
    """Record a vote and print the new ratings."""
    _configure_logging(verbose)
    config = _load(config_path)
    result = _run(config, lambda service: service.submit_vote(winner_id, loser_id))
    console.print("[green]Vote recorded[/green]")
    console.print(
        f"  Winner: {result.new_winner_rating:.2f} ({result.winner_delta:+.2f})"
    )
    console.print(f"  Loser:  {result.new_loser_rating:.2f} ({result.loser_delta:+.2f})")


@app.command()
def validate(
    config_path: Annotated[Path, typer.Argument(help="Path to config YAML file")],
) -> None:
    """Validate a configuration file without running."""
    try:
        config = load_config(config_path)
        console.print("[green]Configuration is valid![/green]")
        console.print(f"  Database: {config.database_url}")
        console.print(f"  Initial rating: {config.rating.initial_rating}")
        console.print(f"  K-factor: {config.rating.k_factor}")
        console.print(f"  Upload backend: {config.uploads.backend}")
        console.print(f"  Vote attempts: {config.vote.max_attempts}")

    except FileNotFoundError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from e
    except ConfigurationError as e:
        console.print(f"[red]{e}")
        raise typer.Exit(1) from e
    except Exception as e:
        console.print(f"[red]Validation error:[/red] {e}")
        raise typer.Exit(1) from e


if __name__ == "__main__":
    app()
