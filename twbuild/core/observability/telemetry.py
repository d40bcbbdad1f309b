from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List

from .metrics import inc_named, observe_patch, observe_stage

_log = logging.getLogger("twbuild.telemetry")


@dataclass
class TelemetryEvent:
    name: str
    fields: Dict[str, Any] = field(default_factory=dict)


class TelemetrySink(ABC):
    """Receives pipeline events. Sinks only observe; they never alter control flow."""

    @abstractmethod
    def emit(self, event: str, **fields: Any) -> None:
        ...


class NullTelemetry(TelemetrySink):
    def emit(self, event: str, **fields: Any) -> None:
        return None


class RecordingTelemetry(TelemetrySink):
    """Keeps events in memory; used by tests and for post-run inspection."""

    def __init__(self) -> None:
        self.events: List[TelemetryEvent] = []

    def emit(self, event: str, **fields: Any) -> None:
        self.events.append(TelemetryEvent(name=event, fields=dict(fields)))

    def names(self) -> List[str]:
        return [e.name for e in self.events]

    def of(self, name: str) -> List[TelemetryEvent]:
        return [e for e in self.events if e.name == name]


class PrometheusTelemetry(TelemetrySink):
    """Maps pipeline events onto the prometheus collectors in ``metrics``."""

    def emit(self, event: str, **fields: Any) -> None:
        if event == "stage.finished":
            observe_stage(
                str(fields.get("stage", "unknown")),
                str(fields.get("status", "unknown")),
                fields.get("duration_seconds"),
            )
        elif event == "patch.file":
            observe_patch(str(fields.get("target", "unknown")), str(fields.get("status", "unknown")))
        else:
            inc_named(event)
        _log.debug("telemetry %s %s", event, fields)
