"""Shared test fixtures for all test modules."""

from pathlib import Path

import httpx
import pytest

from telemetry_alerts.adapters.backends.in_memory import InMemoryMetricsBackend
from telemetry_alerts.adapters.channels.in_memory import (
    InMemoryChatWebhook,
    InMemoryEmailSender,
    InMemoryTopicPublisher,
)
from telemetry_alerts.adapters.event_store import InMemoryEventLog
from telemetry_alerts.core.collector import MetricCollector
from telemetry_alerts.core.dispatcher import AlertChannelSettings, AlertDispatcher
from telemetry_alerts.core.rules import MonitoringRuleEngine
from tests.helpers import NOW, WEBHOOK_URL


@pytest.fixture
def metrics_db_path(tmp_path: Path) -> str:
    """Provide a temporary database path for metrics backend tests."""
    return str(tmp_path / "metrics.db")


@pytest.fixture
def backend() -> InMemoryMetricsBackend:
    return InMemoryMetricsBackend()


@pytest.fixture
def event_log() -> InMemoryEventLog:
    return InMemoryEventLog()


@pytest.fixture
def email_sender() -> InMemoryEmailSender:
    return InMemoryEmailSender()


@pytest.fixture
def topic_publisher() -> InMemoryTopicPublisher:
    return InMemoryTopicPublisher()


@pytest.fixture
def chat_webhook() -> InMemoryChatWebhook:
    return InMemoryChatWebhook()


@pytest.fixture
def channel_settings() -> AlertChannelSettings:
    return AlertChannelSettings(
        email_source="alerts@example.com",
        topic_arn="arn:aws:sns:us-east-1:123456789012:alerts",
        webhook_url=WEBHOOK_URL,
    )


@pytest.fixture
def collector(
    backend: InMemoryMetricsBackend, event_log: InMemoryEventLog
) -> MetricCollector:
    """Collector with a long interval so only explicit flushes run."""
    return MetricCollector(backend, event_log, batch_interval=3600)


@pytest.fixture
def dispatcher(
    channel_settings: AlertChannelSettings,
    email_sender: InMemoryEmailSender,
    topic_publisher: InMemoryTopicPublisher,
    chat_webhook: InMemoryChatWebhook,
) -> AlertDispatcher:
    return AlertDispatcher(
        channel_settings, email_sender, topic_publisher, chat_webhook=chat_webhook
    )


@pytest.fixture
def engine(
    collector: MetricCollector,
    dispatcher: AlertDispatcher,
    event_log: InMemoryEventLog,
) -> MonitoringRuleEngine:
    """Rule engine whose clock is pinned to NOW."""
    return MonitoringRuleEngine(collector, dispatcher, event_log, clock=lambda: NOW)


# === ASGI Test Fixtures ===


@pytest.fixture
def asgi_test_client():
    """Factory fixture that creates an httpx.AsyncClient for ASGI testing.

    Usage:
        async def test_something(asgi_test_client):
            app = create_asgi_app(collector, engine)
            async with asgi_test_client(app) as client:
                response = await client.get("/rules")
    """

    def _get_client(app):
        """Return an AsyncClient context manager for the given app."""
        return httpx.AsyncClient(
            transport=httpx.ASGITransport(app=app), base_url="http://test"
        )

    return _get_client
