"""Main CLI entry point and application setup."""

import logging
import sys
from dataclasses import dataclass
from pathlib import Path

import click
from click.exceptions import Exit
from rich.console import Console

from discovery import __version__
from discovery.cli.commands import search
from discovery.config import Settings, create_service, load_config, load_settings
from discovery.search import SearchError, SearchService


@dataclass
class Context:
    """CLI context that holds shared resources."""

    settings: Settings
    service: SearchService
    console: Console
    debug: bool = False


def setup_logging(
    verbose: bool = False, quiet: bool = False, debug: bool = False
) -> None:
    """Configure logging based on CLI flags."""
    if quiet:
        level = logging.WARNING
    elif verbose or debug:
        level = logging.DEBUG
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


class DiscoveryGroup(click.Group):
    """Custom group that reports search errors and handles KeyboardInterrupt."""

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
        except SearchError as e:
            debug = getattr(ctx.obj, "debug", False) if ctx.obj else False
            if debug:
                raise
            console = getattr(ctx.obj, "console", None) if ctx.obj else None
            if console:
                console.print(f"[red]Error:[/red] {e}")
            else:
                click.echo(f"Error: {e}", err=True)
            ctx.exit(1)


@click.group(cls=DiscoveryGroup)
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
@click.option("--solr-url", help="Override the Solr core URL")
@click.version_option(
    version=__version__, prog_name="discovery", message="discovery version %(version)s"
)
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    quiet: bool,
    no_color: bool,
    debug: bool,
    config: Path | None,
    solr_url: str | None,
) -> None:
    """Search a Solr manuscript index.

    Compiles search phrases into Solr queries, runs grouped searches and
    prints groups, facets and spell corrections.
    """
    setup_logging(verbose=verbose, quiet=quiet, debug=debug)
    console = create_console(no_color=no_color)

    try:
        config_data = load_config(config)
        if solr_url:
            config_data.setdefault("solr", {})["url"] = solr_url
        settings = load_settings(config_data)
        service = create_service(settings)
    except SearchError as e:
        if debug:
            raise
        console.print(f"[red]Error loading configuration:[/red] {e}")
        ctx.exit(1)

    ctx.obj = Context(settings=settings, service=service, console=console, debug=debug)
    ctx.call_on_close(service.close)


cli.add_command(search.search)
cli.add_command(search.params)
cli.add_command(search.fields)


def main() -> None:
    """Main entry point for the CLI application."""
    try:
        cli()
    except KeyboardInterrupt:
        sys.exit(130)


if __name__ == "__main__":
    main()
