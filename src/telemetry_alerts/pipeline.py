"""Composition root wiring collector, dispatcher, engine, and scheduler."""

import logging
from collections.abc import Awaitable, Callable

from telemetry_alerts.adapters.backends import (
    InMemoryMetricsBackend,
    SQLiteMetricsBackend,
)
from telemetry_alerts.adapters.channels import (
    HttpxChatWebhook,
    InMemoryEmailSender,
    InMemoryTopicPublisher,
    SmtpEmailSender,
)
from telemetry_alerts.adapters.logging import LoggingEventLog
from telemetry_alerts.config import AlertingSettings
from telemetry_alerts.core.collector import (
    DEFAULT_BATCH_INTERVAL,
    DEFAULT_MAX_BATCH_SIZE,
    MetricCollector,
)
from telemetry_alerts.core.dispatcher import AlertChannelSettings, AlertDispatcher
from telemetry_alerts.core.models import MetricBatch, MonitoringRule, RuleDefinition
from telemetry_alerts.core.ports import (
    ChatWebhookPort,
    EmailSenderPort,
    EventLogPort,
    MetricsBackendPort,
    TopicPublisherPort,
)
from telemetry_alerts.core.rules import MonitoringRuleEngine
from telemetry_alerts.core.scheduler import ErrorHandler, Evaluator, Scheduler

logger = logging.getLogger(__name__)


class MonitoringSystem:
    """One collector, dispatcher, rule engine, and scheduler wired together.

    Attributes:
        collector: Buffers metrics and reads history from the backend.
        dispatcher: Fans alerts out to the channels.
        engine: Holds and evaluates the rules.
        scheduler: Drives periodic evaluation.
    """

    def __init__(
        self,
        backend: MetricsBackendPort,
        channel_settings: AlertChannelSettings,
        email_sender: EmailSenderPort,
        topic_publisher: TopicPublisherPort,
        event_log: EventLogPort | None = None,
        chat_webhook: ChatWebhookPort | None = None,
        batch_interval: float = DEFAULT_BATCH_INTERVAL,
        max_batch_size: int = DEFAULT_MAX_BATCH_SIZE,
        evaluation_interval: float = 60.0,
        evaluation_concurrency: int | None = None,
    ) -> None:
        self.event_log = event_log or LoggingEventLog()
        self.collector = MetricCollector(
            backend,
            self.event_log,
            batch_interval=batch_interval,
            max_batch_size=max_batch_size,
        )
        self.dispatcher = AlertDispatcher(
            channel_settings,
            email_sender,
            topic_publisher,
            chat_webhook=chat_webhook,
        )
        self.engine = MonitoringRuleEngine(
            self.collector,
            self.dispatcher,
            self.event_log,
            max_concurrency=evaluation_concurrency,
        )
        self.scheduler = Scheduler()
        self._evaluation_interval = evaluation_interval
        self._closers: list[Callable[[], Awaitable[None]]] = []

    @classmethod
    def from_settings(
        cls,
        settings: AlertingSettings,
        backend: MetricsBackendPort | None = None,
        event_log: EventLogPort | None = None,
        email_sender: EmailSenderPort | None = None,
        topic_publisher: TopicPublisherPort | None = None,
        chat_webhook: ChatWebhookPort | None = None,
    ) -> "MonitoringSystem":
        """Build a system with default adapters for anything not supplied.

        Defaults: SQLite backend when ``metrics_db_path`` is set (in-memory
        otherwise), httpx chat webhook when a webhook URL is set, SMTP email
        when ``smtp_host`` is set (in-memory otherwise), in-memory topic
        publisher. Adapters created here are closed by shutdown().
        """
        closers: list[Callable[[], Awaitable[None]]] = []

        if backend is None:
            if settings.metrics_db_path:
                sqlite_backend = SQLiteMetricsBackend(settings.metrics_db_path)
                closers.append(sqlite_backend.close)
                backend = sqlite_backend
            else:
                backend = InMemoryMetricsBackend()

        if chat_webhook is None and settings.alert_slack_webhook_url:
            httpx_webhook = HttpxChatWebhook(timeout=settings.webhook_timeout)
            closers.append(httpx_webhook.aclose)
            chat_webhook = httpx_webhook

        if email_sender is None:
            if settings.smtp_host:
                email_sender = SmtpEmailSender(
                    settings.smtp_host,
                    port=settings.smtp_port,
                    username=settings.smtp_username,
                    password=settings.smtp_password,
                    starttls=settings.smtp_starttls,
                )
            else:
                logger.info("SMTP_HOST not set, alert emails are kept in memory")
                email_sender = InMemoryEmailSender()

        system = cls(
            backend,
            settings.channel_settings(),
            email_sender,
            topic_publisher or InMemoryTopicPublisher(),
            event_log=event_log,
            chat_webhook=chat_webhook,
            batch_interval=settings.metric_batch_interval,
            max_batch_size=settings.metric_max_batch_size,
            evaluation_interval=settings.evaluation_interval,
            evaluation_concurrency=settings.evaluation_concurrency,
        )
        system._closers.extend(closers)
        return system

    async def publish_metrics(self, batch: MetricBatch) -> None:
        await self.collector.publish_metrics(batch)

    def add_rule(self, definition: RuleDefinition) -> MonitoringRule:
        return self.engine.add_rule(definition)

    def start_scheduler(
        self,
        interval: float | None = None,
        on_error: ErrorHandler | None = None,
        evaluator: Evaluator | None = None,
    ) -> None:
        """Start periodic evaluation.

        Args:
            interval: Seconds between evaluations. Defaults to the configured
                evaluation interval.
            on_error: Receives evaluation errors. Logged when absent.
            evaluator: Defaults to ``engine.evaluate_all_rules``.
        """
        self.scheduler.start(
            evaluator or self.engine.evaluate_all_rules,
            interval if interval is not None else self._evaluation_interval,
            on_error,
        )

    def stop_scheduler(self) -> None:
        self.scheduler.stop()

    async def shutdown(self) -> None:
        """Stop the scheduler, drain in-flight work, and flush remaining metrics.

        Adapters created by from_settings() are closed last, even when the
        final flush fails.
        """
        if self.scheduler.is_running():
            self.scheduler.stop()
        await self.scheduler.wait_idle()
        try:
            await self.collector.flush_all_metrics()
        finally:
            closers, self._closers = self._closers, []
            for close in closers:
                await close()
