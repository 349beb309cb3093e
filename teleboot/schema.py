"""Typed telemetry settings."""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field, model_validator


class SamplerName(StrEnum):
    ALWAYS_ON = "AlwaysOn"
    ALWAYS_OFF = "AlwaysOff"
    TRACE_ID_RATIO_BASED = "TraceIdRatioBased"


class Compression(StrEnum):
    GZIP = "gzip"
    DEFLATE = "deflate"
    NONE = "none"


class TemporalityPreference(StrEnum):
    CUMULATIVE = "cumulative"
    DELTA = "delta"
    LOW_MEMORY = "lowmemory"


class SamplerConfig(BaseModel):
    """Sampler sub-section. ``name`` stays a plain string so that unknown
    values reach :func:`teleboot.sampling.select_sampler` and fail there."""

    model_config = ConfigDict(frozen=True)

    name: str | None = None
    ratio: float = 1.0

    @model_validator(mode="after")
    def _check_ratio(self) -> SamplerConfig:
        # Only the ratio-based strategy reads the ratio.
        ratio_based = SamplerName.TRACE_ID_RATIO_BASED.casefold()
        if (self.name or "").strip().casefold() == ratio_based and not 0.0 <= self.ratio <= 1.0:
            raise ValueError(f"ratio must be between 0 and 1, got {self.ratio}")
        return self


class TelemetrySettings(BaseModel):
    """Resolved ``OpenTelemetry`` configuration section."""

    model_config = ConfigDict(frozen=True)

    exporter_endpoint: str
    service_name: str
    exporter_headers: str | None = None
    resource_attributes: str | None = None
    attribute_value_length_limit: int | None = Field(default=None, ge=0)
    exporter_compression: Compression | None = None
    exporter_protocol: str | None = None
    metrics_temporality_preference: str | None = None
    sampler: SamplerConfig | None = None
    instrument_http_client: bool = False
    instrument_inbound_requests: bool = False
    instrument_runtime: bool = True
