"""Typer CLI for teleboot."""

from __future__ import annotations

from typing import Annotated

import typer

from teleboot.cli._helpers import console

app = typer.Typer(
    name="teleboot",
    help="Resolve telemetry settings and run a service with OpenTelemetry attached.",
    no_args_is_help=True,
)


def version_callback(value: bool) -> None:
    if value:
        from teleboot import __version__

        console.print(f"teleboot {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        bool | None,
        typer.Option("--version", callback=version_callback, is_eager=True),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", help="Enable debug logging"),
    ] = False,
) -> None:
    """teleboot: telemetry bootstrap for hosted services."""
    from teleboot._log import setup_logging

    setup_logging(verbose=verbose)


from teleboot.cli.run_cmd import run, validate  # noqa: E402

app.command()(validate)
app.command()(run)
