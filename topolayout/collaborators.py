"""Advisory collaborators: telemetry sink and feature flags."""

from __future__ import annotations

import logging
from typing import FrozenSet, Iterable, List, Protocol

logger = logging.getLogger(__name__)

OVERLAP_EVENT = "layout.graph.overlap"


class TelemetrySink(Protocol):
    def track(self, event_name: str) -> None:
        ...


class FeatureFlags(Protocol):
    def is_enabled(self, name: str) -> bool:
        ...


class LoggingTelemetry:
    """Telemetry sink that only writes the events to the log."""

    def track(self, event_name: str) -> None:
        logger.info("Telemetry event: %s", event_name)


class RecordingTelemetry:
    """Telemetry sink that keeps emitted event names in memory."""

    def __init__(self) -> None:
        self.events: List[str] = []

    def track(self, event_name: str) -> None:
        self.events.append(event_name)


class StaticFeatureFlags:
    def __init__(self, enabled: Iterable[str] = ("layout-dance",)) -> None:
        self.enabled: FrozenSet[str] = frozenset(enabled)

    def is_enabled(self, name: str) -> bool:
        return name in self.enabled


def emit_event(sink: TelemetrySink, event_name: str) -> None:
    """Send ``event_name`` to ``sink``; failures are logged and dropped."""

    try:
        sink.track(event_name)
    except Exception:
        logger.exception("Telemetry sink failed to record '%s'", event_name)


def feature_is_enabled_any(flags: FeatureFlags, *names: str) -> bool:
    """Return ``True`` if any flag in ``names`` is on. A failing lookup reads as off."""

    for name in names:
        try:
            if flags.is_enabled(name):
                return True
        except Exception:
            logger.exception("Feature flag lookup failed for '%s'", name)
    return False


__all__ = [
    "FeatureFlags",
    "LoggingTelemetry",
    "OVERLAP_EVENT",
    "RecordingTelemetry",
    "StaticFeatureFlags",
    "TelemetrySink",
    "emit_event",
    "feature_is_enabled_any",
]
