"""OpenTelemetry pipeline assembly: plan, build, install and shutdown.

Assembly happens in three steps so that a failure never leaves a half-wired
process behind:

1. :func:`plan_pipelines` resolves everything that can fail on configuration
   (identity, attributes, sampler) into plain frozen dataclasses.
2. :func:`assemble_pipelines` builds the three SDK providers. If any step
   fails, providers built so far are shut down and the error propagates.
3. :meth:`TelemetryPipelines.install` instruments libraries, attaches log
   handlers and only then publishes the providers globally.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Any

from opentelemetry.sdk._logs import LoggerProvider, LoggingHandler
from opentelemetry.sdk.metrics import Histogram, MeterProvider
from opentelemetry.sdk.metrics.view import ExponentialBucketHistogramAggregation, View
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import SpanLimits, TracerProvider
from opentelemetry.sdk.trace.sampling import Sampler

from teleboot.exporters import (
    ExporterFactory,
    ExporterTarget,
    OtlpExporterFactory,
    check_protocol,
    parse_temporality,
)
from teleboot.instrumentation import (
    HTTP_CLIENT,
    INBOUND_REQUESTS,
    RUNTIME,
    apply_instrumentations,
    check_instrumentations,
    remove_instrumentations,
)
from teleboot.resource import (
    ServiceIdentity,
    build_resource,
    derive_identity,
    parse_resource_attributes,
)
from teleboot.sampling import select_sampler
from teleboot.schema import TelemetrySettings
from teleboot.settings import DEFAULT_SECTION, resolve_settings

_logger = logging.getLogger(__name__)

# Loggers that receive the OTel log handler. ``teleboot`` does not propagate.
DEFAULT_LOG_TARGETS: tuple[str, ...] = ("", "teleboot")


# ---------------------------------------------------------------------------
# Pipeline plans
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class LogPipelineConfig:
    resource: Resource
    exporter: ExporterTarget
    loggers: tuple[str, ...] = DEFAULT_LOG_TARGETS


@dataclass(frozen=True)
class TracePipelineConfig:
    resource: Resource
    exporter: ExporterTarget
    sampler: Sampler
    attribute_value_length_limit: int | None = None
    instrumentations: tuple[str, ...] = ()


@dataclass(frozen=True)
class MetricPipelineConfig:
    resource: Resource
    exporter: ExporterTarget
    views: tuple[View, ...] = ()
    instrumentations: tuple[str, ...] = ()


@dataclass(frozen=True)
class PipelinePlan:
    settings: TelemetrySettings
    identity: ServiceIdentity
    attributes: Mapping[str, str]
    resource: Resource
    logs: LogPipelineConfig
    traces: TracePipelineConfig
    metrics: MetricPipelineConfig


@dataclass
class MetricsHookContext:
    """Handed to the caller-supplied metrics hook before the MeterProvider is created.

    The hook may append views or extra metric readers; both lists are used
    as-is when the provider is built.
    """

    resource: Resource
    views: list[View] = field(default_factory=list)
    readers: list[Any] = field(default_factory=list)


MetricsHook = Callable[[MetricsHookContext], None]


def histogram_views() -> tuple[View, ...]:
    """Base-2 exponential bucketing for every histogram instrument."""
    return (
        View(
            instrument_type=Histogram,
            aggregation=ExponentialBucketHistogramAggregation(),
        ),
    )


def plan_pipelines(
    settings: TelemetrySettings,
    *,
    distribution: str | None = None,
    hostname: str | None = None,
) -> PipelinePlan:
    """Resolve identity, attributes and sampler into a plan for the three pipelines.

    Raises :class:`teleboot.errors.UnknownSampler` on a bad sampler name.
    Nothing is built or installed.
    """
    sampler = select_sampler(settings.sampler)
    check_protocol(settings.exporter_protocol)

    identity = derive_identity(settings, distribution=distribution, hostname=hostname)
    attributes = parse_resource_attributes(settings.resource_attributes)
    resource = build_resource(identity, attributes)

    target = ExporterTarget(
        endpoint=settings.exporter_endpoint,
        headers=settings.exporter_headers,
        compression=settings.exporter_compression,
        temporality=parse_temporality(settings.metrics_temporality_preference),
    )

    traced: list[str] = []
    metered: list[str] = []
    if settings.instrument_runtime:
        metered.append(RUNTIME)
    if settings.instrument_http_client:
        traced.append(HTTP_CLIENT)
        metered.append(HTTP_CLIENT)
    if settings.instrument_inbound_requests:
        traced.append(INBOUND_REQUESTS)
        metered.append(INBOUND_REQUESTS)

    return PipelinePlan(
        settings=settings,
        identity=identity,
        attributes=attributes,
        resource=resource,
        logs=LogPipelineConfig(resource=resource, exporter=target),
        traces=TracePipelineConfig(
            resource=resource,
            exporter=target,
            sampler=sampler,
            attribute_value_length_limit=settings.attribute_value_length_limit,
            instrumentations=tuple(traced),
        ),
        metrics=MetricPipelineConfig(
            resource=resource,
            exporter=target,
            views=histogram_views(),
            instrumentations=tuple(metered),
        ),
    )


# ---------------------------------------------------------------------------
# Built pipelines
# ---------------------------------------------------------------------------


class TelemetryPipelines:
    """The three providers of an assembled plan, alive for the process lifetime."""

    def __init__(
        self,
        plan: PipelinePlan,
        *,
        logger_provider: LoggerProvider,
        tracer_provider: TracerProvider,
        meter_provider: MeterProvider,
    ) -> None:
        self.plan = plan
        self.logger_provider = logger_provider
        self.tracer_provider = tracer_provider
        self.meter_provider = meter_provider
        self._handlers: list[tuple[logging.Logger, logging.Handler]] = []
        self._instrumentors: list[Any] = []
        self._installed = False
        self._shut_down = False

    @property
    def installed(self) -> bool:
        return self._installed

    def install(self) -> None:
        """Instrument libraries, attach log handlers and publish the providers globally.

        The global providers can only be set once per process, so they are
        published last: a failing instrumentation leaves no globals behind.
        """
        if self._installed:
            return

        from opentelemetry import metrics, trace
        from opentelemetry._logs import set_logger_provider

        self._instrumentors = apply_instrumentations(
            self.plan.traces.instrumentations,
            self.plan.metrics.instrumentations,
            tracer_provider=self.tracer_provider,
            meter_provider=self.meter_provider,
        )

        handler = LoggingHandler(level=logging.NOTSET, logger_provider=self.logger_provider)
        for name in self.plan.logs.loggers:
            target = logging.getLogger(name)
            target.addHandler(handler)
            self._handlers.append((target, handler))

        trace.set_tracer_provider(self.tracer_provider)
        metrics.set_meter_provider(self.meter_provider)
        set_logger_provider(self.logger_provider)
        self._installed = True
        _logger.debug(
            "Telemetry installed for %s (%s)",
            self.plan.identity.name,
            self.plan.logs.exporter.endpoint,
        )

    def force_flush(self, timeout_millis: int = 5000) -> None:
        for provider in (self.tracer_provider, self.meter_provider, self.logger_provider):
            try:
                provider.force_flush(timeout_millis=timeout_millis)
            except Exception:
                _logger.debug("force_flush failed for %r", provider, exc_info=True)

    def shutdown(self) -> None:
        """Detach handlers, uninstrument, flush and shut down all three providers.

        Each step is best effort; a failing provider does not prevent the
        others from shutting down. Safe to call more than once.
        """
        if self._shut_down:
            return
        self._shut_down = True

        for target, handler in self._handlers:
            target.removeHandler(handler)
        self._handlers.clear()

        remove_instrumentations(self._instrumentors)
        self._instrumentors.clear()

        self.force_flush()
        _shutdown_providers(self.tracer_provider, self.meter_provider, self.logger_provider)


def _shutdown_providers(*providers: Any) -> None:
    for provider in providers:
        try:
            provider.shutdown()
        except Exception:
            _logger.debug("shutdown failed for %r", provider, exc_info=True)


# ---------------------------------------------------------------------------
# Assembly
# ---------------------------------------------------------------------------


def _build_logs(config: LogPipelineConfig, exporters: ExporterFactory) -> LoggerProvider:
    provider = LoggerProvider(resource=config.resource)
    try:
        provider.add_log_record_processor(exporters.log_processor(config.exporter))
    except Exception:
        _shutdown_providers(provider)
        raise
    return provider


def _build_traces(config: TracePipelineConfig, exporters: ExporterFactory) -> TracerProvider:
    limits = None
    if config.attribute_value_length_limit is not None:
        limits = SpanLimits(max_attribute_length=config.attribute_value_length_limit)
    provider = TracerProvider(resource=config.resource, sampler=config.sampler, span_limits=limits)
    try:
        provider.add_span_processor(exporters.span_processor(config.exporter))
    except Exception:
        _shutdown_providers(provider)
        raise
    return provider


def _build_metrics(
    config: MetricPipelineConfig,
    exporters: ExporterFactory,
    hook: MetricsHook | None,
) -> MeterProvider:
    context = MetricsHookContext(resource=config.resource, views=list(config.views))
    if hook is not None:
        hook(context)
    readers = [exporters.metric_reader(config.exporter), *context.readers]
    return MeterProvider(
        metric_readers=readers,
        resource=config.resource,
        views=context.views,
    )


def assemble_pipelines(
    plan: PipelinePlan,
    *,
    exporters: ExporterFactory | None = None,
    metrics_hook: MetricsHook | None = None,
) -> TelemetryPipelines:
    """Build the log, trace and metric providers described by *plan*.

    Either all three providers are returned or, on any failure, those already
    built are shut down and the exception propagates. Nothing is installed
    globally; call :meth:`TelemetryPipelines.install` for that.
    """
    exporters = exporters or OtlpExporterFactory()
    check_instrumentations([*plan.traces.instrumentations, *plan.metrics.instrumentations])

    built: list[Any] = []
    try:
        logger_provider = _build_logs(plan.logs, exporters)
        built.append(logger_provider)
        tracer_provider = _build_traces(plan.traces, exporters)
        built.append(tracer_provider)
        meter_provider = _build_metrics(plan.metrics, exporters, metrics_hook)
    except Exception:
        _shutdown_providers(*built)
        raise

    return TelemetryPipelines(
        plan,
        logger_provider=logger_provider,
        tracer_provider=tracer_provider,
        meter_provider=meter_provider,
    )


def setup_telemetry(
    configuration: Mapping[str, Any],
    *,
    section: str = DEFAULT_SECTION,
    exporters: ExporterFactory | None = None,
    metrics_hook: MetricsHook | None = None,
    distribution: str | None = None,
    install: bool = True,
) -> TelemetryPipelines:
    """Resolve, plan, assemble and (by default) install telemetry in one step.

    Configuration errors (:class:`teleboot.errors.TelemetryConfigError`)
    propagate before anything is built.
    """
    settings = resolve_settings(configuration, section)
    plan = plan_pipelines(settings, distribution=distribution)
    pipelines = assemble_pipelines(plan, exporters=exporters, metrics_hook=metrics_hook)
    if install:
        try:
            pipelines.install()
        except Exception:
            pipelines.shutdown()
            raise
    _logger.info(
        "Telemetry configured for %s (namespace=%s, version=%s, instance=%s)",
        plan.identity.name,
        plan.identity.namespace,
        plan.identity.version,
        plan.identity.instance_id,
    )
    return pipelines
