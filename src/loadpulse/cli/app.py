"""Main Typer application, the entry point for the ``loadpulse`` CLI."""

from __future__ import annotations

import typer

from loadpulse import __version__
from loadpulse.cli.run import run_cmd

app = typer.Typer(
    name="loadpulse",
    help="Rate-limited HTTP load testing with virtual users.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

app.command("run", help="Run a load test against a URL.")(run_cmd)


def _version_callback(value: bool) -> None:
    """Print version and exit.

    Args:
        value: True if --version was passed.
    """
    if value:
        typer.echo(f"loadpulse {__version__}")
        raise typer.Exit


@app.callback()
def main(
    version: bool = typer.Option(
        False,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
) -> None:
    """LoadPulse: rate-limited HTTP load testing with virtual users."""
