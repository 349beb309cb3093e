"""Map the configured sampler name onto an OpenTelemetry sampling policy."""

from __future__ import annotations

from opentelemetry.sdk.trace.sampling import ALWAYS_OFF, ALWAYS_ON, Sampler, TraceIdRatioBased

from teleboot.errors import UnknownSampler
from teleboot.schema import SamplerConfig, SamplerName

_NAMES: dict[str, SamplerName] = {member.value.casefold(): member for member in SamplerName}


def select_sampler(config: SamplerConfig | None) -> Sampler:
    """Return the sampler for *config*.

    An absent section or empty name selects always-on. The ratio is only read
    for ``TraceIdRatioBased``. Unknown names raise :class:`UnknownSampler`.
    """
    if config is None or not config.name:
        return ALWAYS_ON

    name = _NAMES.get(config.name.strip().casefold())
    if name is None:
        raise UnknownSampler(config.name)
    if name is SamplerName.ALWAYS_OFF:
        return ALWAYS_OFF
    if name is SamplerName.TRACE_ID_RATIO_BASED:
        return TraceIdRatioBased(config.ratio)
    return ALWAYS_ON
