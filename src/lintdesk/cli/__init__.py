"""CLI entry point — registers all subcommands."""

from pathlib import Path
from typing import Optional

import typer

from .. import __version__
from ..config import load_config
from ..exceptions import ConfigurationError
from ..logging_config import setup_logging
from ._common import console, fail

app = typer.Typer(
    name="lintdesk",
    help="lintdesk - incremental lint analysis with a durable violation store",
    add_completion=False,
    rich_markup_mode="rich",
    no_args_is_help=True,
)


def _show_version(value: bool) -> None:
    if value:
        console.print(f"[bold cyan]lintdesk[/bold cyan] version [green]{__version__}[/green]")
        raise typer.Exit(0)


@app.callback()
def _global_options(
    ctx: typer.Context,
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Only log errors"),
    data_dir: Optional[Path] = typer.Option(
        None,
        "--data-dir",
        help="Directory for the violation database and fingerprint cache",
        file_okay=False,
        dir_okay=True,
    ),
    settings_file: Optional[Path] = typer.Option(
        None,
        "--settings",
        help="Settings file (TOML)",
        exists=True,
        file_okay=True,
        dir_okay=False,
        readable=True,
    ),
    version: bool = typer.Option(
        False,
        "--version",
        help="Show version and exit",
        callback=_show_version,
        is_eager=True,
    ),
):
    """
    Run the lint tool over a workspace and keep its findings.

    [bold cyan]Examples:[/bold cyan]

      lintdesk analyze .

      lintdesk analyze . --changed-only

      lintdesk violations . --severity error
    """
    setup_logging(verbose=verbose, quiet=quiet)
    try:
        config = load_config(
            config_file=settings_file,
            data_dir=str(data_dir) if data_dir else None,
            verbose=verbose,
            quiet=quiet,
        )
    except ConfigurationError as e:
        raise fail(e)

    ctx.ensure_object(dict)
    ctx.obj["config"] = config


# Import subcommands to register them
from .analyze import analyze as _analyze  # noqa: F401, E402
from .rules import rules as _rules  # noqa: F401, E402
from .violations import (  # noqa: F401, E402
    reset as _reset,
    resolve as _resolve,
    suppress as _suppress,
    violations as _violations,
)


def main() -> None:
    app()
