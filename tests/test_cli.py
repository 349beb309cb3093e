"""Tests for the CLI."""

import textwrap
import threading
from unittest.mock import MagicMock, patch

import pytest
from typer.testing import CliRunner

from teleboot import __version__
from teleboot.cli.main import app

runner = CliRunner()

_VALID = textwrap.dedent("""\
    OpenTelemetry:
      OTEL_SERVICE_NAME: Acme.Orders.Worker
      OTEL_EXPORTER_OTLP_ENDPOINT: http://localhost:4317
      OTEL_RESOURCE_ATTRIBUTES: team=orders,region=eu
      OTEL_INSTRUMENT_HTTP_CLIENT: false
      OTEL_INSTRUMENT_INBOUND_REQUESTS: false
      OTEL_INSTRUMENT_RUNTIME: true
""")


@pytest.fixture
def config_dir(tmp_path, monkeypatch):
    monkeypatch.delenv("TELEBOOT_ENVIRONMENT", raising=False)
    (tmp_path / "appsettings.yaml").write_text(_VALID)
    return tmp_path


class TestVersion:
    def test_version(self):
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output


class TestValidate:
    def test_valid(self, config_dir):
        result = runner.invoke(app, ["validate", "--config-dir", str(config_dir)])
        assert result.exit_code == 0
        assert "Valid" in result.output
        assert "Acme.Orders.Worker" in result.output
        assert "Orders.Worker" in result.output
        assert "team=orders" in result.output
        assert "AlwaysOnSampler" in result.output
        assert "runtime" in result.output

    def test_override(self, config_dir):
        result = runner.invoke(
            app,
            [
                "validate",
                "--config-dir",
                str(config_dir),
                "--set",
                "OpenTelemetry:OTEL_SAMPLER:OTEL_SAMPLER_NAME=AlwaysOff",
            ],
        )
        assert result.exit_code == 0
        assert "AlwaysOffSampler" in result.output

    def test_environment_file(self, config_dir):
        (config_dir / "appsettings.Development.yaml").write_text(
            "OpenTelemetry:\n  OTEL_SERVICE_NAME: Acme.Orders.Dev\n"
        )
        result = runner.invoke(
            app, ["validate", "--config-dir", str(config_dir), "--environment", "Development"]
        )
        assert result.exit_code == 0
        assert "Acme.Orders.Dev" in result.output

    def test_missing_endpoint(self, config_dir):
        result = runner.invoke(
            app,
            [
                "validate",
                "--config-dir",
                str(config_dir),
                "--set",
                "OpenTelemetry:OTEL_EXPORTER_OTLP_ENDPOINT=",
            ],
        )
        assert result.exit_code == 1
        assert "Invalid" in result.output
        assert "OTEL_EXPORTER_OTLP_ENDPOINT" in result.output

    def test_unknown_sampler(self, config_dir):
        result = runner.invoke(
            app,
            [
                "validate",
                "--config-dir",
                str(config_dir),
                "--set",
                "OpenTelemetry:OTEL_SAMPLER:OTEL_SAMPLER_NAME=Bogus",
            ],
        )
        assert result.exit_code == 1
        assert "Bogus" in result.output

    def test_missing_config_file(self, tmp_path):
        result = runner.invoke(app, ["validate", "--config-dir", str(tmp_path)])
        assert result.exit_code == 1
        assert "Error" in result.output

    def test_bad_override(self, config_dir):
        result = runner.invoke(
            app, ["validate", "--config-dir", str(config_dir), "--set", "no-equals-sign"]
        )
        assert result.exit_code == 1
        assert "Section:Key=value" in result.output


def _stop_immediately(stop_event: threading.Event, **kwargs):
    stop_event.set()
    return lambda: None


class TestRun:
    def test_run_sets_up_and_shuts_down(self, config_dir):
        pipelines = MagicMock()
        with (
            patch("teleboot.observability.setup_telemetry", return_value=pipelines) as setup,
            patch("teleboot._signal.install_shutdown_handler", side_effect=_stop_immediately),
            patch("teleboot.heartbeat.HeartbeatService") as heartbeat_cls,
        ):
            result = runner.invoke(app, ["run", "--config-dir", str(config_dir), "--interval", "5"])
        assert result.exit_code == 0, result.output
        configuration = setup.call_args.args[0]
        assert configuration["OpenTelemetry"]["OTEL_SERVICE_NAME"] == "Acme.Orders.Worker"
        assert setup.call_args.kwargs["exporters"] is None
        heartbeat_cls.assert_called_once_with(interval_seconds=5.0)
        heartbeat_cls.return_value.start.assert_called_once()
        heartbeat_cls.return_value.stop.assert_called_once()
        pipelines.shutdown.assert_called_once()

    def test_run_console_exporters(self, config_dir):
        from teleboot.exporters import ConsoleExporterFactory

        with (
            patch("teleboot.observability.setup_telemetry") as setup,
            patch("teleboot._signal.install_shutdown_handler", side_effect=_stop_immediately),
            patch("teleboot.heartbeat.HeartbeatService"),
        ):
            result = runner.invoke(app, ["run", "--config-dir", str(config_dir), "--console"])
        assert result.exit_code == 0, result.output
        assert isinstance(setup.call_args.kwargs["exporters"], ConsoleExporterFactory)

    def test_run_config_error_exits(self, config_dir):
        with patch("teleboot.heartbeat.HeartbeatService") as heartbeat_cls:
            result = runner.invoke(
                app,
                [
                    "run",
                    "--config-dir",
                    str(config_dir),
                    "--set",
                    "OpenTelemetry:OTEL_SERVICE_NAME=",
                ],
            )
        assert result.exit_code == 1
        assert "service name" in result.output
        heartbeat_cls.assert_not_called()
