"""Notification channel adapters."""

from telemetry_alerts.adapters.channels.in_memory import (
    InMemoryChatWebhook,
    InMemoryEmailSender,
    InMemoryTopicPublisher,
)
from telemetry_alerts.adapters.channels.smtp import SmtpEmailSender
from telemetry_alerts.adapters.channels.webhook import HttpxChatWebhook

__all__ = [
    "HttpxChatWebhook",
    "InMemoryChatWebhook",
    "InMemoryEmailSender",
    "InMemoryTopicPublisher",
    "SmtpEmailSender",
]
