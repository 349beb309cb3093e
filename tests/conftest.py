"""Shared test fixtures and helpers."""

from __future__ import annotations

import logging
from typing import Any
from unittest.mock import MagicMock

import pytest
from opentelemetry.sdk.metrics.export import InMemoryMetricReader
from opentelemetry.sdk.trace.export import SimpleSpanProcessor
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter

from teleboot.exporters import ExporterTarget


def make_section(**overrides: Any) -> dict[str, Any]:
    """Build a minimal valid ``OpenTelemetry`` section with instrumentation switched off."""
    section: dict[str, Any] = {
        "OTEL_SERVICE_NAME": "Acme.Billing.Api",
        "OTEL_EXPORTER_OTLP_ENDPOINT": "http://collector:4317",
        "OTEL_INSTRUMENT_HTTP_CLIENT": False,
        "OTEL_INSTRUMENT_INBOUND_REQUESTS": False,
        "OTEL_INSTRUMENT_RUNTIME": False,
    }
    for key, value in overrides.items():
        if value is None:
            section.pop(key, None)
        else:
            section[key] = value
    return section


def make_configuration(**overrides: Any) -> dict[str, Any]:
    return {"OpenTelemetry": make_section(**overrides)}


class InMemoryExporterFactory:
    """Exporter factory keeping everything in process; records the targets it was given."""

    def __init__(self) -> None:
        self.span_exporter = InMemorySpanExporter()
        self.log_processor_mock = MagicMock(name="log_processor")
        self.reader = InMemoryMetricReader()
        self.targets: list[tuple[str, ExporterTarget]] = []

    def log_processor(self, target: ExporterTarget) -> Any:
        self.targets.append(("logs", target))
        return self.log_processor_mock

    def span_processor(self, target: ExporterTarget) -> Any:
        self.targets.append(("traces", target))
        return SimpleSpanProcessor(self.span_exporter)

    def metric_reader(self, target: ExporterTarget) -> Any:
        self.targets.append(("metrics", target))
        return self.reader


@pytest.fixture
def configuration():
    """Provide a minimal valid configuration tree."""
    return make_configuration()


@pytest.fixture
def exporters():
    """Provide an in-memory exporter factory."""
    return InMemoryExporterFactory()


@pytest.fixture()
def _caplog_teleboot(caplog):
    """Attach caplog handler to the ``teleboot`` logger so records are captured
    even though ``propagate=False``."""
    root = logging.getLogger("teleboot")
    root.addHandler(caplog.handler)
    yield
    root.removeHandler(caplog.handler)
