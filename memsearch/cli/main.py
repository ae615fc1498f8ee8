"""Main CLI entry point and application setup."""

import asyncio
import logging
from collections.abc import Coroutine
from dataclasses import dataclass
from pathlib import Path
from typing import Any, TypeVar

import click
from click.exceptions import Exit
from rich.console import Console

from memsearch import __version__
from memsearch.cli.commands import analytics, data, search
from memsearch.config import Settings, load_config
from memsearch.search import SearchEngine, create_engine

T = TypeVar("T")


@dataclass
class Context:
    """CLI context that holds shared resources."""

    settings: Settings
    engine: SearchEngine
    console: Console
    debug: bool = False

    def run(self, coro: Coroutine[Any, Any, T]) -> T:
        """Run a coroutine, then wait for pending analytics writes."""

        async def runner() -> T:
            try:
                return await coro
            finally:
                await self.engine.drain()

        return asyncio.run(runner())


def setup_logging(
    verbose: bool = False,
    quiet: bool = False,
    debug: bool = False,
    default_level: str | None = None,
) -> None:
    """Configure logging based on CLI flags."""
    if quiet:
        level = logging.WARNING
    elif verbose or debug:
        level = logging.DEBUG
    elif default_level:
        level = logging.getLevelName(default_level)
        if not isinstance(level, int):
            level = logging.INFO
    else:
        level = logging.INFO

    logging.basicConfig(
        level=level,
        format="%(levelname)s: %(message)s"
        if not debug
        else "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def create_console(no_color: bool = False, width: int | None = None) -> Console:
    """Create Rich console with appropriate settings."""
    return Console(
        no_color=no_color,
        width=width or 120,
        highlight=not no_color,
        color_system=None if no_color else "auto",
    )


class MemsearchGroup(click.Group):
    """Custom group that reports errors through the console."""

    def invoke(self, ctx):
        try:
            return super().invoke(ctx)
        except KeyboardInterrupt:
            console = getattr(ctx.obj, "console", None) if ctx.obj else None
            if console:
                console.print("[yellow]Interrupted[/yellow]")
            ctx.exit(130)
        except (click.ClickException, click.Abort, Exit, SystemExit):
            raise
        except Exception as e:
            debug = getattr(ctx.obj, "debug", False) if ctx.obj else False
            if debug:
                raise
            console = getattr(ctx.obj, "console", None) if ctx.obj else None
            if console:
                console.print(f"[red]Error:[/red] {e}")
            else:
                click.echo(f"Error: {e}", err=True)
            ctx.exit(1)


@click.group(cls=MemsearchGroup)
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output")
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-error output")
@click.option("--no-color", is_flag=True, help="Disable colored output")
@click.option("--debug", is_flag=True, help="Enable debug mode with full tracebacks")
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=True, path_type=Path),
    help="Path to configuration file",
)
@click.option(
    "--db",
    type=click.Path(path_type=Path),
    help="Override the SQLite database location",
)
@click.version_option(
    version=__version__, prog_name="memsearch", message="memsearch version %(version)s"
)
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    quiet: bool,
    no_color: bool,
    debug: bool,
    config: Path | None,
    db: Path | None,
) -> None:
    """Memorial search.

    Search memorial pages with facets, natural-language filters and
    autocomplete, and inspect search analytics.
    """
    console = create_console(no_color=no_color)

    try:
        settings = load_config(config)
    except ValueError as e:
        if debug:
            raise
        console.print(f"[red]Error loading configuration:[/red] {e}")
        ctx.exit(1)

    setup_logging(verbose=verbose, quiet=quiet, debug=debug, default_level=settings.log_level)

    if db:
        settings.store.backend = "sqlite"
        settings.store.path = str(db)

    try:
        engine = create_engine(settings)
    except Exception as e:
        if debug:
            raise
        console.print(f"[red]Error initializing application:[/red] {e}")
        ctx.exit(1)

    ctx.obj = Context(settings=settings, engine=engine, console=console, debug=debug)
    ctx.call_on_close(lambda: asyncio.run(engine.store.close()))


# Register commands
cli.add_command(search.search)
cli.add_command(search.suggest)
cli.add_command(data.import_cmd, name="import")
cli.add_command(analytics.popular)
cli.add_command(analytics.stats)


def main():
    """Main entry point."""
    cli()


if __name__ == "__main__":
    main()
