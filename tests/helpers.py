"""Builders and constants shared by unit, integration and feature tests."""

from datetime import UTC, datetime, timedelta
from typing import Any

from telemetry_alerts.core.models import (
    AlertSeverity,
    Metric,
    MetricBatch,
    MetricUnit,
    MonitoringThreshold,
    RuleDefinition,
    ThresholdOperator,
)

# Fixed "now" used by engines under test
NOW = datetime(2024, 1, 15, 12, 0, 0, tzinfo=UTC)

WEBHOOK_URL = "https://hooks.example.com/services/T000/B000"

NAMESPACE = "shop/test/api"


def metric(
    name: str = "response_time",
    value: float = 1.0,
    seconds_ago: float = 0,
    dimensions: dict[str, str] | None = None,
    unit: MetricUnit = MetricUnit.MILLISECONDS,
) -> Metric:
    return Metric(
        name=name,
        value=value,
        unit=unit,
        timestamp=NOW - timedelta(seconds=seconds_ago),
        dimensions=dimensions or {},
    )


def batch(*metrics: Metric, namespace: str = NAMESPACE) -> MetricBatch:
    return MetricBatch(namespace=namespace, metrics=metrics)


def threshold(
    operator: str, value: float, severity: AlertSeverity
) -> MonitoringThreshold:
    return MonitoringThreshold(ThresholdOperator(operator), value, severity)


def rule_definition(
    name: str = "API latency",
    metric_name: str = "response_time",
    period: int = 60,
    evaluation_periods: int = 3,
    thresholds: tuple[MonitoringThreshold, ...] | None = None,
    **kwargs,
) -> RuleDefinition:
    """A rule over NAMESPACE with WARNING > 100 and ERROR > 200 by default."""
    if thresholds is None:
        thresholds = (
            threshold("gt", 100, AlertSeverity.WARNING),
            threshold("gt", 200, AlertSeverity.ERROR),
        )
    kwargs.setdefault("namespace", NAMESPACE)
    return RuleDefinition(
        name=name,
        metric_name=metric_name,
        period=period,
        evaluation_periods=evaluation_periods,
        thresholds=thresholds,
        **kwargs,
    )


class RaisingEventLog:
    """Event log sink that is always down."""

    def __init__(self) -> None:
        self.attempts = 0

    async def log_event(
        self, level: str, message: str, metadata: dict[str, Any] | None = None
    ) -> None:
        self.attempts += 1
        raise OSError("log sink down")
