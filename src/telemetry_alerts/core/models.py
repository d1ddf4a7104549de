"""Core domain models for metrics, rules and alerts."""

import math
from dataclasses import dataclass, field, fields
from datetime import datetime
from enum import StrEnum
from typing import Any


class MetricUnit(StrEnum):
    """Standard units accepted by the metrics backend."""

    SECONDS = "Seconds"
    MICROSECONDS = "Microseconds"
    MILLISECONDS = "Milliseconds"
    BYTES = "Bytes"
    KILOBYTES = "Kilobytes"
    MEGABYTES = "Megabytes"
    GIGABYTES = "Gigabytes"
    BITS = "Bits"
    PERCENT = "Percent"
    COUNT = "Count"
    BYTES_PER_SECOND = "Bytes/Second"
    COUNT_PER_SECOND = "Count/Second"
    NONE = "None"


class AlertSeverity(StrEnum):
    """Alert severity, totally ordered INFO < WARNING < ERROR < CRITICAL."""

    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"

    @property
    def rank(self) -> int:
        """Position in the severity order (INFO=0 ... CRITICAL=3)."""
        return _SEVERITY_RANKS[self]


_SEVERITY_RANKS = {
    AlertSeverity.INFO: 0,
    AlertSeverity.WARNING: 1,
    AlertSeverity.ERROR: 2,
    AlertSeverity.CRITICAL: 3,
}


class ThresholdOperator(StrEnum):
    """Comparison applied between a metric value and a threshold."""

    GT = "gt"
    GTE = "gte"
    LT = "lt"
    LTE = "lte"
    EQ = "eq"


@dataclass(frozen=True)
class Metric:
    """A single metric measurement.

    Attributes:
        name: Metric name (e.g., response_time).
        value: The measured value.
        unit: Unit of the value.
        timestamp: Timezone-aware time of the measurement.
        dimensions: Key-value tags distinguishing metric instances.
    """

    name: str
    value: float
    unit: MetricUnit
    timestamp: datetime
    dimensions: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class MetricBatch:
    """Metrics published together under one namespace."""

    namespace: str
    metrics: tuple[Metric, ...] = ()

    def __post_init__(self) -> None:
        # Accept any sequence from callers but keep the batch immutable.
        object.__setattr__(self, "metrics", tuple(self.metrics))


@dataclass
class MetricAggregation:
    """Running statistics for one aggregation key.

    Attributes:
        sum: Sum of all recorded values.
        count: Number of recorded values.
        min: Smallest recorded value.
        max: Largest recorded value.
        timestamp: Most recent measurement time seen.
    """

    sum: float
    count: int
    min: float
    max: float
    timestamp: datetime

    @classmethod
    def first(cls, value: float, timestamp: datetime) -> "MetricAggregation":
        """Start an aggregation from its first observation."""
        return cls(sum=value, count=1, min=value, max=value, timestamp=timestamp)

    def record(self, value: float, timestamp: datetime) -> None:
        """Fold one more observation into the running statistics."""
        self.sum += value
        self.count += 1
        self.min = min(self.min, value)
        self.max = max(self.max, value)
        if timestamp > self.timestamp:
            self.timestamp = timestamp

    @property
    def average(self) -> float:
        return self.sum / self.count


@dataclass(frozen=True)
class MetricDatum:
    """A point written to the metrics backend."""

    name: str
    value: float
    unit: MetricUnit
    timestamp: datetime
    dimensions: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class MetricQuery:
    """One statistic requested from the metrics backend.

    Attributes:
        id: Caller-chosen identifier used to key the response.
        namespace: Namespace of the metric.
        metric_name: Name of the metric.
        period: Bucket width in seconds.
        statistic: Statistic to compute per bucket.
        dimensions: Exact dimension set to match.
    """

    id: str
    namespace: str
    metric_name: str
    period: int
    statistic: str = "Average"
    dimensions: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class MonitoringThreshold:
    """A threshold tested against a single metric value."""

    operator: ThresholdOperator
    value: float
    severity: AlertSeverity

    def matches(self, value: float) -> bool:
        """Return True when ``value`` crosses this threshold.

        ``eq`` is exact numeric equality with no tolerance.
        """
        match self.operator:
            case ThresholdOperator.GT:
                return value > self.value
            case ThresholdOperator.GTE:
                return value >= self.value
            case ThresholdOperator.LT:
                return value < self.value
            case ThresholdOperator.LTE:
                return value <= self.value
            case ThresholdOperator.EQ:
                return value == self.value
        return False

    def to_dict(self) -> dict[str, Any]:
        return {
            "operator": str(self.operator),
            "value": self.value,
            "severity": str(self.severity),
        }


def _validate_rule_fields(period: int, evaluation_periods: int) -> None:
    if period <= 0:
        raise ValueError(f"period must be positive, got {period}")
    if evaluation_periods < 1:
        raise ValueError(
            f"evaluation_periods must be at least 1, got {evaluation_periods}"
        )


@dataclass(frozen=True)
class RuleDefinition:
    """Everything needed to create a monitoring rule, minus its id.

    Attributes:
        name: Human readable rule name, embedded in alert titles.
        description: Free text description.
        namespace: Namespace of the watched metric.
        metric_name: Name of the watched metric.
        period: Statistic window in seconds.
        evaluation_periods: How many periods back to look (>= 1).
        thresholds: Ordered thresholds to test the latest value against.
        enabled: Disabled rules are skipped during evaluation.
        dimensions: Exact dimension set of the watched metric.
    """

    name: str
    namespace: str
    metric_name: str
    period: int
    evaluation_periods: int
    thresholds: tuple[MonitoringThreshold, ...]
    description: str = ""
    enabled: bool = True
    dimensions: dict[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "thresholds", tuple(self.thresholds))
        _validate_rule_fields(self.period, self.evaluation_periods)


@dataclass
class MonitoringRule:
    """A stored monitoring rule. Mutated in place by partial updates."""

    id: str
    name: str
    namespace: str
    metric_name: str
    period: int
    evaluation_periods: int
    thresholds: tuple[MonitoringThreshold, ...]
    description: str = ""
    enabled: bool = True
    dimensions: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_definition(
        cls, rule_id: str, definition: RuleDefinition
    ) -> "MonitoringRule":
        values = {f.name: getattr(definition, f.name) for f in fields(definition)}
        return cls(id=rule_id, **values)

    def validate(self) -> None:
        _validate_rule_fields(self.period, self.evaluation_periods)

    @property
    def window_seconds(self) -> int:
        """Length of the evaluation window in seconds."""
        return self.evaluation_periods * self.period


@dataclass(frozen=True)
class Alert:
    """A fully formed alert handed to the dispatcher.

    Attributes:
        id: Unique alert id.
        severity: Alert severity.
        title: Short title.
        message: Human readable body.
        timestamp: Creation time.
        metadata: Additional structured context.
    """

    id: str
    severity: AlertSeverity
    title: str
    message: str
    timestamp: datetime
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class EmailMessage:
    """A plain-text email handed to the email sender."""

    source: str
    destination_addresses: tuple[str, ...]
    subject: str
    body_text: str


@dataclass(frozen=True)
class TopicMessage:
    """A message handed to the topic publisher."""

    topic_arn: str
    subject: str
    message: str


@dataclass(frozen=True)
class EventRecord:
    """An event written to the event log sink.

    Attributes:
        timestamp: Unix timestamp in seconds.
        level: One of info, warn, error.
        message: The event message.
        metadata: Additional structured fields.
    """

    timestamp: float
    level: str
    message: str
    metadata: dict[str, Any] = field(default_factory=dict)


def is_number(value: object) -> bool:
    """Return True for real numbers (bools and NaN excluded)."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return not math.isnan(value)
