from .telemetry import NullTelemetry, PrometheusTelemetry, RecordingTelemetry, TelemetryEvent, TelemetrySink

__all__ = ["NullTelemetry", "PrometheusTelemetry", "RecordingTelemetry", "TelemetryEvent", "TelemetrySink"]
