"""In-memory event log sink."""

import time
from collections import deque
from collections.abc import AsyncIterable, Mapping
from typing import Any

from telemetry_alerts.core.models import EventRecord


class InMemoryEventLog:
    """EventLogPort implementation that keeps events in memory.

    With ``max_size`` set the events live in a fixed-size circular buffer and
    the oldest event is evicted when the buffer is full. Without it every
    event is kept.

    Args:
        max_size: Maximum number of events to keep, or None for unbounded.
    """

    def __init__(self, max_size: int | None = None) -> None:
        self._buffer: deque[EventRecord] = deque(maxlen=max_size)

    async def log_event(
        self,
        level: str,
        message: str,
        metadata: Mapping[str, Any] | None = None,
    ) -> None:
        """Record an event with the current timestamp."""
        self._buffer.append(
            EventRecord(
                timestamp=time.time(),
                level=level.lower(),
                message=message,
                metadata=dict(metadata or {}),
            )
        )

    async def read(
        self, since: float = 0, level: str | None = None
    ) -> AsyncIterable[EventRecord]:
        """Read events recorded after ``since``.

        Returns events with timestamp > since, ordered by timestamp ascending,
        optionally restricted to one level.
        """
        filtered = [
            r
            for r in self._buffer
            if r.timestamp > since and (level is None or r.level == level.lower())
        ]
        for record in sorted(filtered, key=lambda r: r.timestamp):
            yield record

    @property
    def records(self) -> list[EventRecord]:
        """Snapshot of every kept event, oldest first."""
        return list(self._buffer)

    def messages(self, level: str | None = None) -> list[str]:
        return [
            r.message for r in self._buffer if level is None or r.level == level
        ]

    def clear(self) -> None:
        self._buffer.clear()
