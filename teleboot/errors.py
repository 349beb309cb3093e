"""Errors raised while resolving telemetry configuration."""

from __future__ import annotations


class TelemetryConfigError(Exception):
    """Base class for fatal telemetry configuration errors."""


class ConfigurationMissing(TelemetryConfigError):
    """Raised when a required section or field is absent or empty."""

    def __init__(self, key: str, message: str | None = None) -> None:
        self.key = key
        super().__init__(message or f"Telemetry configuration '{key}' is missing")


class UnknownSampler(TelemetryConfigError):
    """Raised when the configured sampler name is not recognized."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(
            f"Unknown sampler '{name}' (expected AlwaysOn, AlwaysOff or TraceIdRatioBased)"
        )


class InvalidConfiguration(TelemetryConfigError):
    """Raised when a present value fails type or range validation."""
