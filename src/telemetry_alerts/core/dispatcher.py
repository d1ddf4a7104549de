"""Alert fan-out to notification channels."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field

from telemetry_alerts.core.encoding.alert_text import (
    alert_subject,
    build_chat_payload,
    format_alert_body,
)
from telemetry_alerts.core.models import (
    Alert,
    AlertSeverity,
    EmailMessage,
    TopicMessage,
)
from telemetry_alerts.core.ports import (
    ChatWebhookPort,
    EmailSenderPort,
    TopicPublisherPort,
)

logger = logging.getLogger(__name__)

WEBHOOK_CHANNEL = "webhook"
EMAIL_CHANNEL = "email"
TOPIC_CHANNEL = "topic"


@dataclass(frozen=True)
class AlertChannelSettings:
    """Destinations used by the dispatcher.

    Attributes:
        email_source: Sender address for alert emails.
        email_destinations: Recipients. Defaults to the sender when empty.
        topic_arn: Topic receiving CRITICAL alerts.
        webhook_url: Chat webhook URL. The webhook channel is skipped when None.
    """

    email_source: str
    topic_arn: str
    email_destinations: tuple[str, ...] = ()
    webhook_url: str | None = None


@dataclass
class DispatchResult:
    """Per-channel outcome of one ``send_alert`` call."""

    delivered: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)

    @property
    def attempted(self) -> list[str]:
        return self.delivered + self.failed


class AlertDispatcher:
    """Sends an alert to every applicable channel concurrently.

    Routing: the chat webhook receives every alert when a URL is configured,
    email receives every alert, and the topic receives CRITICAL alerts only.
    A failing channel is logged and never prevents or fails the others.
    """

    def __init__(
        self,
        settings: AlertChannelSettings,
        email_sender: EmailSenderPort,
        topic_publisher: TopicPublisherPort,
        chat_webhook: ChatWebhookPort | None = None,
    ) -> None:
        self._settings = settings
        self._email_sender = email_sender
        self._topic_publisher = topic_publisher
        self._chat_webhook = chat_webhook

    def _email_message(self, alert: Alert) -> EmailMessage:
        destinations = self._settings.email_destinations or (
            self._settings.email_source,
        )
        return EmailMessage(
            source=self._settings.email_source,
            destination_addresses=tuple(destinations),
            subject=alert_subject(alert),
            body_text=format_alert_body(alert),
        )

    def _topic_message(self, alert: Alert) -> TopicMessage:
        return TopicMessage(
            topic_arn=self._settings.topic_arn,
            subject=alert_subject(alert),
            message=format_alert_body(alert),
        )

    async def _deliver(
        self, channel: str, alert: Alert, send: Callable[[], Awaitable[None]]
    ) -> bool:
        try:
            await send()
        except Exception:
            logger.exception(
                "Failed to send %s alert",
                channel,
                extra={"alert_id": alert.id, "channel": channel},
            )
            return False
        return True

    async def send_alert(self, alert: Alert) -> DispatchResult:
        """Deliver an alert on every applicable channel.

        Args:
            alert: The alert to deliver.

        Returns:
            DispatchResult naming the channels that succeeded and failed.
        """
        sends: dict[str, Callable[[], Awaitable[None]]] = {}

        webhook = self._chat_webhook
        webhook_url = self._settings.webhook_url
        if webhook_url and webhook is not None:
            sends[WEBHOOK_CHANNEL] = lambda: webhook.post_message(
                webhook_url, build_chat_payload(alert)
            )

        sends[EMAIL_CHANNEL] = lambda: self._email_sender.send_email(
            self._email_message(alert)
        )

        if alert.severity is AlertSeverity.CRITICAL:
            sends[TOPIC_CHANNEL] = lambda: self._topic_publisher.publish(
                self._topic_message(alert)
            )

        outcomes = await asyncio.gather(
            *(self._deliver(channel, alert, send) for channel, send in sends.items())
        )

        result = DispatchResult()
        for channel, delivered in zip(sends, outcomes, strict=True):
            (result.delivered if delivered else result.failed).append(channel)
        return result
