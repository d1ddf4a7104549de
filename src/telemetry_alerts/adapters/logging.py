"""Event log sink backed by Python's standard logging module."""

import json
import logging
from collections.abc import Mapping
from typing import Any

from telemetry_alerts.core.encoding.alert_text import json_default

DEFAULT_EVENT_LOGGER = "telemetry_alerts.events"

# Event levels to stdlib logging levels
_LEVELS = {
    "info": logging.INFO,
    "warn": logging.WARNING,
    "error": logging.ERROR,
}


class LoggingEventLog:
    """EventLogPort implementation that writes to a stdlib logger.

    The metadata is appended to the message as JSON and also attached to the
    LogRecord as ``event_metadata`` for structured handlers. Unknown levels
    are logged at INFO.

    Example:
        ```python
        event_log = LoggingEventLog()
        collector = MetricCollector(backend, event_log)
        ```
    """

    def __init__(self, logger: logging.Logger | str = DEFAULT_EVENT_LOGGER) -> None:
        self._logger = (
            logger if isinstance(logger, logging.Logger) else logging.getLogger(logger)
        )

    async def log_event(
        self,
        level: str,
        message: str,
        metadata: Mapping[str, Any] | None = None,
    ) -> None:
        """Log an event. Never raises."""
        log_level = _LEVELS.get(level.lower(), logging.INFO)
        if not self._logger.isEnabledFor(log_level):
            return
        fields = dict(metadata or {})
        if fields:
            text = f"{message} {json.dumps(fields, default=json_default)}"
        else:
            text = message
        self._logger.log(log_level, text, extra={"event_metadata": fields})
