"""Text and chat-payload rendering for alerts."""

import json
from datetime import datetime
from enum import Enum
from typing import Any

from telemetry_alerts.core.models import Alert, AlertSeverity

INFO_COLOR = "#17A2B8"
WARNING_COLOR = "#FFC107"
CRITICAL_COLOR = "#DC3545"

# ERROR has no entry and renders with the INFO color.
_SEVERITY_COLORS = {
    AlertSeverity.INFO: INFO_COLOR,
    AlertSeverity.WARNING: WARNING_COLOR,
    AlertSeverity.CRITICAL: CRITICAL_COLOR,
}


def json_default(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (set, frozenset, tuple)):
        return list(value)
    return str(value)


def json_value(value: Any) -> str:
    """JSON-encode a metadata value for display."""
    return json.dumps(value, default=json_default)


def severity_color(severity: AlertSeverity) -> str:
    """Return the attachment color for a severity."""
    return _SEVERITY_COLORS.get(severity, INFO_COLOR)


def alert_subject(alert: Alert) -> str:
    """Return the ``[SEVERITY] title`` subject line."""
    return f"[{alert.severity}] {alert.title}"


def format_alert_body(alert: Alert) -> str:
    """Render the plain-text body shared by the email and topic channels.

    Args:
        alert: The alert to render.

    Returns:
        Body with severity, ISO timestamp and message, followed by a
        metadata section when the alert carries metadata.
    """
    lines = [
        "",
        "Alert Details:",
        "-------------",
        f"Severity: {alert.severity}",
        f"Time: {alert.timestamp.isoformat()}",
        f"Message: {alert.message}",
        "",
    ]
    if alert.metadata:
        lines.extend(["", "Metadata:", "---------"])
        lines.extend(
            f"{key}: {json_value(value)}" for key, value in alert.metadata.items()
        )
        lines.append("")
    return "\n".join(lines)


def build_chat_payload(alert: Alert) -> dict[str, Any]:
    """Build the chat-webhook document for an alert.

    Returns:
        ``{"attachments": [{title, text, color, fields}]}`` with one field per
        metadata entry.
    """
    return {
        "attachments": [
            {
                "title": alert_subject(alert),
                "text": alert.message,
                "color": severity_color(alert.severity),
                "fields": [
                    {"title": key, "value": json_value(value), "short": True}
                    for key, value in alert.metadata.items()
                ],
            }
        ]
    }
