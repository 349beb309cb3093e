"""Shared CLI helpers: console, configuration loading and telemetry context."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import TYPE_CHECKING, Any

import typer
from rich.console import Console

if TYPE_CHECKING:
    from teleboot.exporters import ExporterFactory
    from teleboot.observability import TelemetryPipelines

console = Console()


def load_configuration_or_exit(
    config_dir: Path,
    environment: str | None,
    overrides: list[str] | None,
) -> dict[str, Any]:
    from teleboot.configuration import ConfigurationFileError, load_configuration

    try:
        return load_configuration(config_dir, environment=environment, overrides=overrides or ())
    except (ConfigurationFileError, ValueError) as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from None


@contextmanager
def telemetry_context(
    configuration: dict[str, Any],
    *,
    exporters: ExporterFactory | None = None,
) -> Iterator[TelemetryPipelines]:
    """Set up telemetry for the duration of the block and shut it down afterwards.

    Configuration errors are reported and turned into exit code 1.
    """
    from teleboot.errors import TelemetryConfigError
    from teleboot.observability import setup_telemetry

    try:
        pipelines = setup_telemetry(configuration, exporters=exporters)
    except (TelemetryConfigError, RuntimeError) as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from None

    try:
        yield pipelines
    finally:
        pipelines.shutdown()
