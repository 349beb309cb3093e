"""teleboot: telemetry settings resolution and OpenTelemetry pipeline wiring."""

__version__ = "0.3.0"
