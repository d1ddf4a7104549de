"""NDJSON encoder for event records."""

import json
from collections.abc import Iterable

from telemetry_alerts.core.encoding.alert_text import json_default
from telemetry_alerts.core.models import EventRecord


def encode_events(records: Iterable[EventRecord]) -> str:
    """Encode event records to newline-delimited JSON.

    Args:
        records: An iterable of EventRecord objects.

    Returns:
        NDJSON string with one JSON object per line.
        Empty string if no records.
    """
    lines = []
    for record in records:
        obj = {
            "timestamp": record.timestamp,
            "level": record.level,
            "message": record.message,
            "metadata": record.metadata,
        }
        lines.append(json.dumps(obj, default=json_default))

    if not lines:
        return ""

    return "\n".join(lines) + "\n"
