"""Telemetry alerting pipeline.

Collects metrics, evaluates threshold rules against recent history, and fans
alerts out to notification channels.
"""

from telemetry_alerts.adapters.event_store import InMemoryEventLog
from telemetry_alerts.adapters.logging import LoggingEventLog
from telemetry_alerts.config import AlertingSettings, configure_logging
from telemetry_alerts.core.collector import MetricCollector, metric_key
from telemetry_alerts.core.dispatcher import (
    AlertChannelSettings,
    AlertDispatcher,
    DispatchResult,
)
from telemetry_alerts.core.errors import (
    InvalidPayloadError,
    RuleEvaluationError,
    RuleNotFoundError,
    SchedulerAlreadyRunningError,
    SchedulerNotRunningError,
    SchedulerStateError,
    TelemetryAlertsError,
)
from telemetry_alerts.core.models import (
    Alert,
    AlertSeverity,
    Metric,
    MetricAggregation,
    MetricBatch,
    MetricUnit,
    MonitoringRule,
    MonitoringThreshold,
    RuleDefinition,
    ThresholdOperator,
)
from telemetry_alerts.core.presets import setup_default_monitoring
from telemetry_alerts.core.rules import MonitoringRuleEngine
from telemetry_alerts.core.scheduler import Scheduler
from telemetry_alerts.pipeline import MonitoringSystem

__all__ = [
    "Alert",
    "AlertChannelSettings",
    "AlertDispatcher",
    "AlertSeverity",
    "AlertingSettings",
    "DispatchResult",
    "InMemoryEventLog",
    "InvalidPayloadError",
    "LoggingEventLog",
    "Metric",
    "MetricAggregation",
    "MetricBatch",
    "MetricCollector",
    "MetricUnit",
    "MonitoringRule",
    "MonitoringRuleEngine",
    "MonitoringSystem",
    "MonitoringThreshold",
    "RuleDefinition",
    "RuleEvaluationError",
    "RuleNotFoundError",
    "Scheduler",
    "SchedulerAlreadyRunningError",
    "SchedulerNotRunningError",
    "SchedulerStateError",
    "TelemetryAlertsError",
    "ThresholdOperator",
    "configure_logging",
    "metric_key",
    "setup_default_monitoring",
]
