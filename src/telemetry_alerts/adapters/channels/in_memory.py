"""In-memory channel adapters.

Record delivered messages instead of sending them. Suitable for testing and
for hosts that want to inspect alerts without external services.
"""

from collections.abc import Mapping
from typing import Any

from telemetry_alerts.core.models import EmailMessage, TopicMessage


class InMemoryChatWebhook:
    """ChatWebhookPort that keeps ``(url, payload)`` pairs."""

    def __init__(self) -> None:
        self.posts: list[tuple[str, dict[str, Any]]] = []

    async def post_message(self, url: str, payload: Mapping[str, Any]) -> None:
        self.posts.append((url, dict(payload)))


class InMemoryEmailSender:
    """EmailSenderPort that keeps every message."""

    def __init__(self) -> None:
        self.sent: list[EmailMessage] = []

    async def send_email(self, message: EmailMessage) -> None:
        self.sent.append(message)


class InMemoryTopicPublisher:
    """TopicPublisherPort that keeps every message."""

    def __init__(self) -> None:
        self.published: list[TopicMessage] = []

    async def publish(self, message: TopicMessage) -> None:
        self.published.append(message)
