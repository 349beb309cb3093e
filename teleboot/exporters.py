"""Exporter sinks for the three signal pipelines.

The pipelines only decide *where* telemetry goes; batching, transport and
retries belong to the OpenTelemetry SDK processors and the OTLP exporter.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Protocol

from teleboot.schema import Compression, TemporalityPreference

_logger = logging.getLogger(__name__)

# Every pipeline exports over OTLP/gRPC; other protocols are not negotiated.
EXPORT_PROTOCOL = "grpc"


@dataclass(frozen=True)
class ExporterTarget:
    endpoint: str
    headers: str | None = None
    compression: Compression | None = None
    temporality: TemporalityPreference = TemporalityPreference.CUMULATIVE


class ExporterFactory(Protocol):
    """Builds the SDK processor (logs, traces) or reader (metrics) for a target."""

    def log_processor(self, target: ExporterTarget) -> Any: ...

    def span_processor(self, target: ExporterTarget) -> Any: ...

    def metric_reader(self, target: ExporterTarget) -> Any: ...


def parse_temporality(raw: str | None) -> TemporalityPreference:
    """Map the configured preference; unknown values fall back to cumulative."""
    if not raw:
        return TemporalityPreference.CUMULATIVE
    try:
        return TemporalityPreference(raw.strip().lower())
    except ValueError:
        _logger.warning(
            "Invalid metrics temporality preference %r, using cumulative",
            raw,
        )
        return TemporalityPreference.CUMULATIVE


def check_protocol(raw: str | None) -> None:
    if raw and raw.strip().lower() != EXPORT_PROTOCOL:
        _logger.warning(
            "Exporter protocol %r is not supported, exporting over %s",
            raw,
            EXPORT_PROTOCOL,
        )


def preferred_temporality(preference: TemporalityPreference) -> dict[type, Any]:
    """Instrument-type temporality map for the metric exporter."""
    from opentelemetry.sdk.metrics import (
        Counter,
        Histogram,
        ObservableCounter,
        ObservableGauge,
        ObservableUpDownCounter,
        UpDownCounter,
    )
    from opentelemetry.sdk.metrics.export import AggregationTemporality

    cumulative = AggregationTemporality.CUMULATIVE
    delta = AggregationTemporality.DELTA
    if preference is TemporalityPreference.DELTA:
        monotonic = delta
        non_monotonic = cumulative
    elif preference is TemporalityPreference.LOW_MEMORY:
        return {
            Counter: delta,
            Histogram: delta,
            ObservableCounter: cumulative,
            UpDownCounter: cumulative,
            ObservableUpDownCounter: cumulative,
            ObservableGauge: cumulative,
        }
    else:
        monotonic = cumulative
        non_monotonic = cumulative
    return {
        Counter: monotonic,
        Histogram: monotonic,
        ObservableCounter: monotonic,
        UpDownCounter: non_monotonic,
        ObservableUpDownCounter: non_monotonic,
        ObservableGauge: non_monotonic,
    }


def _grpc_compression(compression: Compression | None) -> Any:
    if compression is None:
        return None
    from grpc import Compression as GrpcCompression

    return {
        Compression.GZIP: GrpcCompression.Gzip,
        Compression.DEFLATE: GrpcCompression.Deflate,
        Compression.NONE: GrpcCompression.NoCompression,
    }[compression]


class OtlpExporterFactory:
    """OTLP/gRPC exporters behind batching processors."""

    def _options(self, target: ExporterTarget) -> dict[str, Any]:
        options: dict[str, Any] = {"endpoint": target.endpoint}
        if target.headers:
            options["headers"] = target.headers
        compression = _grpc_compression(target.compression)
        if compression is not None:
            options["compression"] = compression
        return options

    def log_processor(self, target: ExporterTarget) -> Any:
        from opentelemetry.exporter.otlp.proto.grpc._log_exporter import OTLPLogExporter
        from opentelemetry.sdk._logs.export import BatchLogRecordProcessor

        return BatchLogRecordProcessor(OTLPLogExporter(**self._options(target)))

    def span_processor(self, target: ExporterTarget) -> Any:
        from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
        from opentelemetry.sdk.trace.export import BatchSpanProcessor

        return BatchSpanProcessor(OTLPSpanExporter(**self._options(target)))

    def metric_reader(self, target: ExporterTarget) -> Any:
        from opentelemetry.exporter.otlp.proto.grpc.metric_exporter import OTLPMetricExporter
        from opentelemetry.sdk.metrics.export import PeriodicExportingMetricReader

        exporter = OTLPMetricExporter(
            preferred_temporality=preferred_temporality(target.temporality),
            **self._options(target),
        )
        return PeriodicExportingMetricReader(exporter)


class ConsoleExporterFactory:
    """Print every signal to stdout; used by ``teleboot run --console``."""

    def log_processor(self, target: ExporterTarget) -> Any:
        from opentelemetry.sdk._logs.export import ConsoleLogExporter, SimpleLogRecordProcessor

        return SimpleLogRecordProcessor(ConsoleLogExporter())

    def span_processor(self, target: ExporterTarget) -> Any:
        from opentelemetry.sdk.trace.export import ConsoleSpanExporter, SimpleSpanProcessor

        return SimpleSpanProcessor(ConsoleSpanExporter())

    def metric_reader(self, target: ExporterTarget) -> Any:
        from opentelemetry.sdk.metrics.export import (
            ConsoleMetricExporter,
            PeriodicExportingMetricReader,
        )

        exporter = ConsoleMetricExporter(
            preferred_temporality=preferred_temporality(target.temporality)
        )
        return PeriodicExportingMetricReader(exporter)
