"""Validate and run commands."""

from __future__ import annotations

import threading
from pathlib import Path
from typing import Annotated

import typer
from rich.table import Table

from teleboot.cli._helpers import console, load_configuration_or_exit, telemetry_context

ConfigDirOption = Annotated[
    Path,
    typer.Option("--config-dir", "-c", help="Directory holding appsettings.yaml"),
]
EnvironmentOption = Annotated[
    str | None,
    typer.Option("--environment", "-e", help="Environment name (default: TELEBOOT_ENVIRONMENT)"),
]
SetOption = Annotated[
    list[str] | None,
    typer.Option("--set", help="Override a value: Section:Key=value (repeatable)"),
]


def validate(
    config_dir: ConfigDirOption = Path("."),
    environment: EnvironmentOption = None,
    overrides: SetOption = None,
) -> None:
    """Resolve telemetry settings and show the pipeline plan without starting anything."""
    from teleboot.errors import TelemetryConfigError
    from teleboot.observability import plan_pipelines
    from teleboot.settings import resolve_settings

    configuration = load_configuration_or_exit(config_dir, environment, overrides)
    try:
        settings = resolve_settings(configuration)
        plan = plan_pipelines(settings)
    except TelemetryConfigError as e:
        console.print(f"[red]Invalid:[/red] {e}")
        raise typer.Exit(1) from None

    identity = plan.identity
    table = Table(title=f"Telemetry: {identity.name}")
    table.add_column("Field", style="cyan")
    table.add_column("Value")

    table.add_row("Service Name", identity.name)
    table.add_row("Namespace", identity.namespace)
    table.add_row("Version", identity.version)
    table.add_row("Instance", identity.instance_id)
    table.add_row("Endpoint", settings.exporter_endpoint)
    table.add_row("Headers", "(set)" if settings.exporter_headers else "(none)")
    table.add_row("Compression", settings.exporter_compression or "(none)")
    table.add_row("Temporality", plan.metrics.exporter.temporality.value)
    table.add_row("Sampler", plan.traces.sampler.get_description())
    if plan.attributes:
        table.add_row("Attributes", "\n".join(f"{k}={v}" for k, v in plan.attributes.items()))
    else:
        table.add_row("Attributes", "(none)")
    table.add_row("Trace Instrumentation", ", ".join(plan.traces.instrumentations) or "(none)")
    table.add_row("Metric Instrumentation", ", ".join(plan.metrics.instrumentations) or "(none)")

    console.print(table)
    console.print("[green]Valid[/green]")


def run(
    config_dir: ConfigDirOption = Path("."),
    environment: EnvironmentOption = None,
    overrides: SetOption = None,
    console_export: Annotated[
        bool, typer.Option("--console", help="Print telemetry to stdout instead of OTLP")
    ] = False,
    interval: Annotated[
        float, typer.Option("--interval", help="Seconds between heartbeat cycles", min=0.0)
    ] = 10.0,
) -> None:
    """Start telemetry and run the heartbeat service until interrupted."""
    from teleboot._log import get_logger
    from teleboot._signal import install_shutdown_handler
    from teleboot.heartbeat import HeartbeatService

    exporters = None
    if console_export:
        from teleboot.exporters import ConsoleExporterFactory

        exporters = ConsoleExporterFactory()

    configuration = load_configuration_or_exit(config_dir, environment, overrides)
    with telemetry_context(configuration, exporters=exporters):
        logger = get_logger("host")
        logger.info("Application starting")

        heartbeat = HeartbeatService(interval_seconds=interval)
        stop_event = threading.Event()
        restore_signals = install_shutdown_handler(
            stop_event,
            on_first_signal=lambda: console.print("\n[dim]Shutting down...[/dim]"),
        )
        heartbeat.start()
        try:
            while not stop_event.wait(1.0):
                pass
        finally:
            heartbeat.stop()
            restore_signals()
        logger.info("Application stopped")
