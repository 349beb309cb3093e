"""Service identity and resource attributes shared by every signal pipeline."""

from __future__ import annotations

import socket
from dataclasses import dataclass
from importlib.metadata import PackageNotFoundError, version

from opentelemetry.sdk.resources import (
    SERVICE_INSTANCE_ID,
    SERVICE_NAME,
    SERVICE_NAMESPACE,
    SERVICE_VERSION,
    Resource,
)

from teleboot.schema import TelemetrySettings

DEFAULT_DISTRIBUTION = "teleboot"
UNKNOWN_VERSION = "unknown"


@dataclass(frozen=True)
class ServiceIdentity:
    name: str
    namespace: str
    version: str
    instance_id: str

    def as_attributes(self) -> dict[str, str]:
        return {
            SERVICE_NAME: self.name,
            SERVICE_NAMESPACE: self.namespace,
            SERVICE_VERSION: self.version,
            SERVICE_INSTANCE_ID: self.instance_id,
        }


def parse_resource_attributes(raw: str | None) -> dict[str, str]:
    """Parse ``key=value,key=value`` into a dict.

    Segments without ``=`` or with a blank key are dropped. Values keep any
    further ``=`` characters. Later duplicates win.
    """
    attributes: dict[str, str] = {}
    if not raw:
        return attributes
    for segment in raw.split(","):
        if not segment:
            continue
        parts = segment.split("=", 1)
        if len(parts) != 2 or not parts[0].strip():
            continue
        attributes[parts[0]] = parts[1]
    return attributes


def derive_namespace(name: str) -> str:
    """``Company.Product.Service`` -> ``Product.Service``; undotted names map to themselves."""
    chunks = name.split(".")
    if len(chunks) < 2:
        return name
    return ".".join(chunks[1:])


def resolve_version(distribution: str | None = None) -> str:
    try:
        return version(distribution or DEFAULT_DISTRIBUTION)
    except PackageNotFoundError:
        return UNKNOWN_VERSION


def derive_identity(
    settings: TelemetrySettings,
    *,
    distribution: str | None = None,
    hostname: str | None = None,
) -> ServiceIdentity:
    """Compute the identity tuple every pipeline is tagged with.

    *distribution* names the installed package whose version is reported
    (defaults to ``teleboot``); *hostname* overrides the machine name.
    """
    name = settings.service_name
    return ServiceIdentity(
        name=name,
        namespace=derive_namespace(name),
        version=resolve_version(distribution),
        instance_id=hostname or socket.gethostname(),
    )


def build_resource(identity: ServiceIdentity, attributes: dict[str, str]) -> Resource:
    """Merge parsed attributes with the identity; identity keys take precedence."""
    merged: dict[str, str] = dict(attributes)
    merged.update(identity.as_attributes())
    return Resource.create(merged)
