"""In-process sink for failure events.

The recorder keeps a bounded buffer of recent events and per-type counts,
and fans each event out to registered hooks (e.g. a metrics exporter).

Usage:
    recorder = EventRecorder()
    recorder.add_event_hook(lambda event: print(event.to_dict()))
    recorder.record(job_failed("sync-integrations", "boom"))
"""

from collections import Counter, deque
from collections.abc import Callable
from typing import Any

import structlog

from ops_hub.events.types import EventType, OpsEvent

logger = structlog.get_logger(__name__)


class EventRecorder:
    """Collects failure events without ever raising."""

    def __init__(self, buffer_size: int = 100):
        self._buffer_size = buffer_size
        self._event_buffer: deque[OpsEvent] = deque(maxlen=buffer_size)
        self._counts: Counter[EventType] = Counter()
        self._event_hooks: list[Callable[[OpsEvent], None]] = []

        self._logger = logger.bind(component="event_recorder")

    @property
    def recent_events(self) -> list[OpsEvent]:
        """Get recently recorded events."""
        return list(self._event_buffer)

    def count(self, event_type: EventType) -> int:
        return self._counts[event_type]

    def add_event_hook(self, hook: Callable[[OpsEvent], None]) -> None:
        """Add a hook to be called synchronously for every event."""
        self._event_hooks.append(hook)

    def remove_event_hook(self, hook: Callable[[OpsEvent], None]) -> None:
        """Remove an event hook."""
        if hook in self._event_hooks:
            self._event_hooks.remove(hook)

    def record(self, event: OpsEvent) -> None:
        self._event_buffer.append(event)
        self._counts[event.event_type] += 1

        for hook in self._event_hooks:
            try:
                hook(event)
            except Exception as e:
                self._logger.error("event_hook_error", error=str(e))

    def get_status(self) -> dict[str, Any]:
        """Get recorder status information."""
        return {
            "buffer_size": len(self._event_buffer),
            "counts": {event_type.value: n for event_type, n in self._counts.items()},
        }
