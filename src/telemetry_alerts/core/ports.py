"""Port interfaces for external collaborators.

These protocols define the contracts that adapters must implement.
The core services depend only on these interfaces, not concrete implementations.
"""

from collections.abc import Mapping, Sequence
from datetime import datetime
from typing import Any, Protocol, runtime_checkable

from telemetry_alerts.core.models import (
    EmailMessage,
    MetricDatum,
    MetricQuery,
    TopicMessage,
)


@runtime_checkable
class MetricsBackendPort(Protocol):
    """Port for the external metrics backend.

    Examples: InMemoryMetricsBackend, SQLiteMetricsBackend.
    """

    async def put_metric_data(
        self, namespace: str, data: Sequence[MetricDatum]
    ) -> None:
        """Write metric points under a namespace."""
        ...

    async def get_metric_data(
        self, queries: Sequence[MetricQuery], start: datetime, end: datetime
    ) -> dict[str, list[float]]:
        """Compute the requested statistics over [start, end].

        Returns:
            Mapping of query id to per-period values in chronological order.
            Queries without data may be omitted.
        """
        ...


@runtime_checkable
class ChatWebhookPort(Protocol):
    """Port for posting structured messages to a chat webhook."""

    async def post_message(self, url: str, payload: Mapping[str, Any]) -> None:
        """POST a JSON document to the webhook URL."""
        ...


@runtime_checkable
class EmailSenderPort(Protocol):
    """Port for sending plain-text emails."""

    async def send_email(self, message: EmailMessage) -> None: ...


@runtime_checkable
class TopicPublisherPort(Protocol):
    """Port for publishing to a pub/sub topic."""

    async def publish(self, message: TopicMessage) -> None: ...


@runtime_checkable
class EventLogPort(Protocol):
    """Port for the event log sink.

    Implementations are fire-and-forget: failures must never reach the caller.
    Examples: LoggingEventLog, InMemoryEventLog.
    """

    async def log_event(
        self,
        level: str,
        message: str,
        metadata: Mapping[str, Any] | None = None,
    ) -> None:
        """Record an event.

        Args:
            level: One of "info", "warn", "error".
            message: The event message.
            metadata: Additional structured fields.
        """
        ...
