"""Default monitoring rules for a typical web application."""

from telemetry_alerts.core.models import (
    AlertSeverity,
    MonitoringRule,
    MonitoringThreshold,
    RuleDefinition,
    ThresholdOperator,
)
from telemetry_alerts.core.rules import MonitoringRuleEngine

DEFAULT_PERIOD = 300

# WARNING / ERROR / CRITICAL limits
_USAGE_LIMITS = (70.0, 85.0, 95.0)


def _above(
    warning: float, error: float, critical: float
) -> tuple[MonitoringThreshold, ...]:
    return (
        MonitoringThreshold(ThresholdOperator.GT, warning, AlertSeverity.WARNING),
        MonitoringThreshold(ThresholdOperator.GT, error, AlertSeverity.ERROR),
        MonitoringThreshold(ThresholdOperator.GT, critical, AlertSeverity.CRITICAL),
    )


def _namespace(app_name: str, environment: str, group: str) -> str:
    return f"{app_name}/{environment}/{group}"


def setup_api_latency_monitoring(
    engine: MonitoringRuleEngine, app_name: str, environment: str
) -> MonitoringRule:
    """Alert when API response time exceeds 1s / 2s / 5s."""
    return engine.add_rule(
        RuleDefinition(
            name="API Latency Monitor",
            description="Monitors API endpoint response times and alerts on high latency",
            namespace=_namespace(app_name, environment, "api"),
            metric_name="response_time",
            period=DEFAULT_PERIOD,
            evaluation_periods=2,
            thresholds=_above(1000, 2000, 5000),
        )
    )


def setup_error_rate_monitoring(
    engine: MonitoringRuleEngine, app_name: str, environment: str
) -> MonitoringRule:
    """Alert when the error rate exceeds 1% / 5% / 10%."""
    return engine.add_rule(
        RuleDefinition(
            name="Error Rate Monitor",
            description="Monitors application error rate and alerts on high error rates",
            namespace=_namespace(app_name, environment, "errors"),
            metric_name="error_rate",
            period=DEFAULT_PERIOD,
            evaluation_periods=2,
            thresholds=_above(1, 5, 10),
        )
    )


def _usage_rule(
    engine: MonitoringRuleEngine,
    app_name: str,
    environment: str,
    name: str,
    resource: str,
    metric_name: str,
) -> MonitoringRule:
    return engine.add_rule(
        RuleDefinition(
            name=name,
            description=f"Monitors {resource} usage and alerts on high usage",
            namespace=_namespace(app_name, environment, "system"),
            metric_name=metric_name,
            period=DEFAULT_PERIOD,
            evaluation_periods=3,
            thresholds=_above(*_USAGE_LIMITS),
        )
    )


def setup_memory_usage_monitoring(
    engine: MonitoringRuleEngine, app_name: str, environment: str
) -> MonitoringRule:
    return _usage_rule(
        engine,
        app_name,
        environment,
        name="Memory Usage Monitor",
        resource="application memory",
        metric_name="memory_usage_percent",
    )


def setup_cpu_usage_monitoring(
    engine: MonitoringRuleEngine, app_name: str, environment: str
) -> MonitoringRule:
    return _usage_rule(
        engine,
        app_name,
        environment,
        name="CPU Usage Monitor",
        resource="application CPU",
        metric_name="cpu_usage_percent",
    )


def setup_disk_usage_monitoring(
    engine: MonitoringRuleEngine, app_name: str, environment: str
) -> MonitoringRule:
    return _usage_rule(
        engine,
        app_name,
        environment,
        name="Disk Usage Monitor",
        resource="disk",
        metric_name="disk_usage_percent",
    )


def setup_default_monitoring(
    engine: MonitoringRuleEngine, app_name: str, environment: str
) -> list[MonitoringRule]:
    """Register every default rule.

    Args:
        engine: Engine receiving the rules.
        app_name: Application name, first namespace segment.
        environment: Deployment environment, second namespace segment.

    Returns:
        The stored rules in registration order.
    """
    return [
        setup(engine, app_name, environment)
        for setup in (
            setup_api_latency_monitoring,
            setup_error_rate_monitoring,
            setup_memory_usage_monitoring,
            setup_cpu_usage_monitoring,
            setup_disk_usage_monitoring,
        )
    ]
