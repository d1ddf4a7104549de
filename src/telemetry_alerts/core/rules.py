"""Threshold rule storage and evaluation."""

import asyncio
import logging
import uuid
from collections.abc import Callable, Iterable, Mapping
from dataclasses import fields, replace
from datetime import UTC, datetime, timedelta
from typing import Any

from telemetry_alerts.core.collector import MetricCollector
from telemetry_alerts.core.dispatcher import AlertDispatcher
from telemetry_alerts.core.errors import RuleEvaluationError, RuleNotFoundError
from telemetry_alerts.core.models import (
    Alert,
    MonitoringRule,
    MonitoringThreshold,
    RuleDefinition,
    is_number,
)
from telemetry_alerts.core.ports import EventLogPort

logger = logging.getLogger(__name__)

_RULE_FIELDS = frozenset(f.name for f in fields(MonitoringRule))


def _utcnow() -> datetime:
    return datetime.now(UTC)


def triggered_thresholds(
    value: float, thresholds: Iterable[MonitoringThreshold]
) -> list[MonitoringThreshold]:
    """Return every threshold crossed by ``value``, in rule order."""
    return [threshold for threshold in thresholds if threshold.matches(value)]


def most_severe(thresholds: Iterable[MonitoringThreshold]) -> MonitoringThreshold:
    """Pick the threshold with the highest severity rank.

    On equal rank the first one encountered wins.
    """
    chosen: MonitoringThreshold | None = None
    for threshold in thresholds:
        if chosen is None or threshold.severity.rank > chosen.severity.rank:
            chosen = threshold
    if chosen is None:
        raise ValueError("most_severe() requires at least one threshold")
    return chosen


def build_alert(
    rule: MonitoringRule,
    value: float,
    threshold: MonitoringThreshold,
    timestamp: datetime,
) -> Alert:
    """Create the alert for a rule whose latest value crossed ``threshold``."""
    return Alert(
        id=str(uuid.uuid4()),
        severity=threshold.severity,
        title=f"Monitoring Alert: {rule.name}",
        message=(
            f'Metric "{rule.metric_name}" has triggered a {threshold.severity} '
            f"alert.\nCurrent value: {value} {threshold.operator} {threshold.value}"
        ),
        timestamp=timestamp,
        metadata={
            "rule_id": rule.id,
            "rule_name": rule.name,
            "metric_name": rule.metric_name,
            "namespace": rule.namespace,
            "dimensions": dict(rule.dimensions),
            "current_value": value,
            "threshold": threshold.to_dict(),
        },
    )


class MonitoringRuleEngine:
    """Holds the in-memory rule set and evaluates it against metric history.

    Rules live for the lifetime of the engine only. Evaluation pulls recent
    per-period averages through the collector and hands alerts to the
    dispatcher.
    """

    def __init__(
        self,
        collector: MetricCollector,
        dispatcher: AlertDispatcher,
        event_log: EventLogPort,
        max_concurrency: int | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        """Initialize the engine.

        Args:
            collector: Source of metric history.
            dispatcher: Receives alerts for triggered rules.
            event_log: Event log sink.
            max_concurrency: Optional cap on simultaneous rule evaluations in
                evaluate_all_rules(). None evaluates every rule at once.
            clock: Returns the current timezone-aware time.
        """
        if max_concurrency is not None and max_concurrency < 1:
            raise ValueError("max_concurrency must be at least 1")
        self._collector = collector
        self._dispatcher = dispatcher
        self._event_log = event_log
        self._max_concurrency = max_concurrency
        self._clock = clock
        self._rules: dict[str, MonitoringRule] = {}

    async def _log_event(
        self, level: str, message: str, metadata: dict[str, Any]
    ) -> None:
        try:
            await self._event_log.log_event(level, message, metadata)
        except Exception:
            logger.warning("Event log sink failed for %r", message, exc_info=True)

    # --- Rule management ---

    def add_rule(self, definition: RuleDefinition) -> MonitoringRule:
        """Store a new rule under a freshly generated id and return it."""
        rule = MonitoringRule.from_definition(str(uuid.uuid4()), definition)
        self._rules[rule.id] = rule
        return rule

    def remove_rule(self, rule_id: str) -> None:
        """Delete a rule. Unknown ids are ignored."""
        self._rules.pop(rule_id, None)

    def update_rule(self, rule_id: str, **changes: Any) -> MonitoringRule:
        """Merge ``changes`` into an existing rule in place.

        Fields not named in ``changes`` keep their current values. A
        ``dimensions`` change of None clears the dimension set.

        Raises:
            RuleNotFoundError: No rule has this id.
            TypeError: A change names an unknown field, or ``dimensions`` is
                not a mapping.
            ValueError: A change targets ``id`` or leaves the rule invalid.
        """
        rule = self._rules.get(rule_id)
        if rule is None:
            raise RuleNotFoundError(rule_id)

        unknown = set(changes) - _RULE_FIELDS
        if unknown:
            raise TypeError(f"Unknown rule fields: {', '.join(sorted(unknown))}")
        if "id" in changes and changes["id"] != rule.id:
            raise ValueError("Rule ids cannot be changed")
        if "thresholds" in changes:
            changes["thresholds"] = tuple(changes["thresholds"])
        if "dimensions" in changes:
            dimensions = changes["dimensions"]
            if dimensions is not None and not isinstance(dimensions, Mapping):
                raise TypeError(
                    f"dimensions must be a mapping, got {type(dimensions).__name__}"
                )
            changes["dimensions"] = dict(dimensions or {})

        replace(rule, **changes).validate()
        for name, value in changes.items():
            setattr(rule, name, value)
        return rule

    def get_rule(self, rule_id: str) -> MonitoringRule | None:
        return self._rules.get(rule_id)

    def get_rules(self) -> list[MonitoringRule]:
        """Return a snapshot list of the current rules."""
        return list(self._rules.values())

    # --- Evaluation ---

    async def evaluate_rule(self, rule: MonitoringRule) -> Alert | None:
        """Evaluate one rule and dispatch an alert if a threshold is crossed.

        Args:
            rule: The rule to evaluate.

        Returns:
            The dispatched alert, or None when nothing triggered.

        Raises:
            Exception: Any failure while fetching metrics or dispatching is
                logged and re-raised.
        """
        if not rule.enabled:
            return None

        try:
            end = self._clock()
            start = end - timedelta(seconds=rule.window_seconds)

            metrics = await self._collector.get_metrics(
                rule.namespace,
                [rule.metric_name],
                start,
                end,
                rule.period,
                rule.dimensions,
            )

            values = metrics.get(rule.metric_name)
            if not values:
                await self._log_event(
                    "warn",
                    "No metric values found for rule evaluation",
                    {"rule_id": rule.id},
                )
                return None

            latest = values[-1]
            if not is_number(latest):
                await self._log_event(
                    "warn",
                    "Latest metric value is not a number",
                    {"rule_id": rule.id, "value": repr(latest)},
                )
                return None

            triggered = triggered_thresholds(latest, rule.thresholds)
            if not triggered:
                return None

            alert = build_alert(rule, latest, most_severe(triggered), self._clock())
            await self._dispatcher.send_alert(alert)
            await self._log_event(
                "info",
                "Monitoring rule triggered alert",
                {"rule_id": rule.id, "alert_id": alert.id},
            )
            return alert
        except Exception as e:
            await self._log_event(
                "error",
                "Failed to evaluate monitoring rule",
                {"error": str(e), "rule_id": rule.id},
            )
            raise

    async def evaluate_all_rules(self) -> None:
        """Evaluate every rule concurrently and report failures together.

        One failing rule never cancels the others. After all evaluations have
        settled, any failures are logged and raised as one error.

        Raises:
            RuleEvaluationError: At least one rule failed.
        """
        rules = self.get_rules()
        semaphore = (
            asyncio.Semaphore(self._max_concurrency)
            if self._max_concurrency is not None
            else None
        )

        async def run(rule: MonitoringRule) -> Alert | None:
            if semaphore is None:
                return await self.evaluate_rule(rule)
            async with semaphore:
                return await self.evaluate_rule(rule)

        results = await asyncio.gather(
            *(run(rule) for rule in rules), return_exceptions=True
        )
        errors = [r for r in results if isinstance(r, Exception)]
        # Non-Exception BaseExceptions (cancellation) are not rule failures.
        for result in results:
            if isinstance(result, BaseException) and not isinstance(result, Exception):
                raise result

        if errors:
            await self._log_event(
                "error",
                "Some rules failed during evaluation",
                {"errors": [str(e) for e in errors]},
            )
            raise RuleEvaluationError(errors)
