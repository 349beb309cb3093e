"""Library instrumentations the pipelines can attach, treated as on/off switches."""

from __future__ import annotations

import importlib
import logging
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any

from teleboot._compat import require_instrumentation

_logger = logging.getLogger(__name__)

HTTP_CLIENT = "http_client"
INBOUND_REQUESTS = "inbound_requests"
RUNTIME = "runtime"


@dataclass(frozen=True)
class Instrumentation:
    name: str
    module: str
    instrumentor: str


INSTRUMENTATIONS: dict[str, Instrumentation] = {
    HTTP_CLIENT: Instrumentation(
        HTTP_CLIENT, "opentelemetry.instrumentation.httpx", "HTTPXClientInstrumentor"
    ),
    INBOUND_REQUESTS: Instrumentation(
        INBOUND_REQUESTS, "opentelemetry.instrumentation.fastapi", "FastAPIInstrumentor"
    ),
    RUNTIME: Instrumentation(
        RUNTIME, "opentelemetry.instrumentation.system_metrics", "SystemMetricsInstrumentor"
    ),
}


def _load_instrumentor(spec: Instrumentation) -> Any:
    module = importlib.import_module(spec.module)
    return getattr(module, spec.instrumentor)


def check_instrumentations(names: Iterable[str]) -> None:
    """Fail before any pipeline is built if a requested instrumentation is unavailable."""
    for name in dict.fromkeys(names):
        spec = INSTRUMENTATIONS.get(name)
        if spec is None:
            raise RuntimeError(f"Unknown instrumentation '{name}'")
        require_instrumentation(spec.module)


def apply_instrumentations(
    trace_names: Iterable[str],
    metric_names: Iterable[str],
    *,
    tracer_provider: Any,
    meter_provider: Any,
) -> list[Any]:
    """Instrument each library once, passing the providers of the pipelines that asked for it.

    Returns the instrumentor instances so they can be uninstrumented on shutdown.
    If one library fails to instrument, the ones already instrumented are
    undone before the error propagates.
    """
    traced = list(trace_names)
    metered = list(metric_names)
    applied: list[Any] = []
    try:
        for name in dict.fromkeys([*traced, *metered]):
            instrumentor = _load_instrumentor(INSTRUMENTATIONS[name])()
            kwargs: dict[str, Any] = {}
            if name in traced:
                kwargs["tracer_provider"] = tracer_provider
            if name in metered:
                kwargs["meter_provider"] = meter_provider
            instrumentor.instrument(**kwargs)
            _logger.debug("Instrumented %s (%s)", name, ", ".join(sorted(kwargs)))
            applied.append(instrumentor)
    except Exception:
        remove_instrumentations(applied)
        raise
    return applied


def remove_instrumentations(instrumentors: Iterable[Any]) -> None:
    """Uninstrument in reverse order; failures are logged and skipped."""
    for instrumentor in reversed(list(instrumentors)):
        try:
            instrumentor.uninstrument()
        except Exception:
            _logger.debug("uninstrument failed for %r", instrumentor, exc_info=True)
