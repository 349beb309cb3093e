"""Resolve the ``OpenTelemetry`` configuration section into :class:`TelemetrySettings`."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from pydantic import ValidationError

from teleboot.errors import ConfigurationMissing, InvalidConfiguration
from teleboot.schema import TelemetrySettings

DEFAULT_SECTION = "OpenTelemetry"

SERVICE_NAME_KEY = "OTEL_SERVICE_NAME"
ENDPOINT_KEY = "OTEL_EXPORTER_OTLP_ENDPOINT"
SAMPLER_KEY = "OTEL_SAMPLER"

# settings field -> configuration key
_FIELD_KEYS: dict[str, str] = {
    "exporter_endpoint": ENDPOINT_KEY,
    "exporter_headers": "OTEL_EXPORTER_OTLP_HEADERS",
    "service_name": SERVICE_NAME_KEY,
    "resource_attributes": "OTEL_RESOURCE_ATTRIBUTES",
    "attribute_value_length_limit": "OTEL_ATTRIBUTE_VALUE_LENGTH_LIMIT",
    "exporter_compression": "OTEL_EXPORTER_OTLP_COMPRESSION",
    "exporter_protocol": "OTEL_EXPORTER_OTLP_PROTOCOL",
    "metrics_temporality_preference": "OTEL_EXPORTER_OTLP_METRICS_TEMPORALITY_PREFERENCE",
    "instrument_http_client": "OTEL_INSTRUMENT_HTTP_CLIENT",
    "instrument_inbound_requests": "OTEL_INSTRUMENT_INBOUND_REQUESTS",
    "instrument_runtime": "OTEL_INSTRUMENT_RUNTIME",
}

_SAMPLER_FIELD_KEYS: dict[str, str] = {
    "name": "OTEL_SAMPLER_NAME",
    "ratio": "OTEL_SAMPLER_RATIO",
}


def lookup(section: Mapping[str, Any], key: str) -> Any:
    """Return ``section[key]`` matching *key* case-insensitively, or ``None``."""
    if key in section:
        return section[key]
    folded = key.casefold()
    for candidate, value in section.items():
        if isinstance(candidate, str) and candidate.casefold() == folded:
            return value
    return None


def _blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _extract(section: Mapping[str, Any], keys: Mapping[str, str]) -> dict[str, Any]:
    """Copy the non-blank values named in *keys* into a field-keyed dict."""
    data: dict[str, Any] = {}
    for field, key in keys.items():
        value = lookup(section, key)
        if _blank(value):
            continue
        data[field] = value.strip() if isinstance(value, str) else value
    return data


def resolve_settings(
    configuration: Mapping[str, Any],
    section: str = DEFAULT_SECTION,
) -> TelemetrySettings:
    """Map the *section* of *configuration* onto :class:`TelemetrySettings`.

    Raises :class:`ConfigurationMissing` when the section, the service name or
    the exporter endpoint is absent, and :class:`InvalidConfiguration` when a
    present value cannot be coerced to its field type.
    """
    raw = lookup(configuration, section)
    if not isinstance(raw, Mapping) or not raw:
        raise ConfigurationMissing(section, f"{section} configuration is missing")

    data = _extract(raw, _FIELD_KEYS)

    if "service_name" not in data:
        raise ConfigurationMissing(
            SERVICE_NAME_KEY, f"{section} service name ({SERVICE_NAME_KEY}) is not configured"
        )
    if "exporter_endpoint" not in data:
        raise ConfigurationMissing(
            ENDPOINT_KEY, f"{section} OTLP endpoint ({ENDPOINT_KEY}) is not configured"
        )

    compression = data.get("exporter_compression")
    if isinstance(compression, str):
        data["exporter_compression"] = compression.lower()

    sampler = lookup(raw, SAMPLER_KEY)
    if isinstance(sampler, Mapping):
        data["sampler"] = _extract(sampler, _SAMPLER_FIELD_KEYS)
    elif not _blank(sampler):
        raise InvalidConfiguration(f"{section}.{SAMPLER_KEY} must be a section, got {sampler!r}")

    try:
        return TelemetrySettings.model_validate(data)
    except ValidationError as e:
        raise InvalidConfiguration(f"Invalid {section} configuration:\n{e}") from e
