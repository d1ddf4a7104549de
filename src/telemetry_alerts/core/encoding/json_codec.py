"""JSON decoding of inbound metric batches and encoding of read models."""

from collections.abc import Mapping
from datetime import UTC, datetime
from typing import Any

from telemetry_alerts.core.errors import InvalidPayloadError
from telemetry_alerts.core.models import (
    Metric,
    MetricAggregation,
    MetricBatch,
    MetricUnit,
    MonitoringRule,
)


def _parse_timestamp(raw: Any, now: datetime) -> datetime:
    """Accept ISO-8601 strings, unix seconds, or nothing (defaults to now)."""
    if raw is None:
        return now
    if isinstance(raw, bool):
        raise InvalidPayloadError("timestamp must be an ISO string or a number")
    if isinstance(raw, (int, float)):
        return datetime.fromtimestamp(raw, UTC)
    if isinstance(raw, str):
        try:
            parsed = datetime.fromisoformat(raw)
        except ValueError as e:
            raise InvalidPayloadError(f"invalid timestamp: {raw!r}") from e
        return parsed if parsed.tzinfo else parsed.replace(tzinfo=UTC)
    raise InvalidPayloadError("timestamp must be an ISO string or a number")


def _parse_dimensions(raw: Any) -> dict[str, str]:
    if raw is None:
        return {}
    if not isinstance(raw, Mapping) or not all(
        isinstance(k, str) and isinstance(v, str) for k, v in raw.items()
    ):
        raise InvalidPayloadError("dimensions must map strings to strings")
    return dict(raw)


def _parse_metric(raw: Any, now: datetime) -> Metric:
    if not isinstance(raw, Mapping):
        raise InvalidPayloadError("each metric must be an object")
    name = raw.get("name")
    value = raw.get("value")
    if not isinstance(name, str) or not name:
        raise InvalidPayloadError("metric name must be a non-empty string")
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InvalidPayloadError(f"metric {name!r} value must be a number")
    try:
        unit = MetricUnit(raw.get("unit", MetricUnit.NONE))
    except ValueError as e:
        raise InvalidPayloadError(f"unknown unit: {raw.get('unit')!r}") from e
    return Metric(
        name=name,
        value=float(value),
        unit=unit,
        timestamp=_parse_timestamp(raw.get("timestamp"), now),
        dimensions=_parse_dimensions(raw.get("dimensions")),
    )


def decode_metric_batch(payload: Any, now: datetime | None = None) -> MetricBatch:
    """Decode a ``{"namespace": ..., "metrics": [...]}`` document.

    Args:
        payload: Parsed JSON document.
        now: Timestamp for metrics that carry none. Defaults to current UTC time.

    Returns:
        The decoded MetricBatch.

    Raises:
        InvalidPayloadError: The document does not describe a valid batch.
    """
    if not isinstance(payload, Mapping):
        raise InvalidPayloadError("payload must be a JSON object")
    namespace = payload.get("namespace")
    if not isinstance(namespace, str) or not namespace:
        raise InvalidPayloadError("namespace must be a non-empty string")
    metrics = payload.get("metrics")
    if not isinstance(metrics, list):
        raise InvalidPayloadError("metrics must be a list")
    now = now or datetime.now(UTC)
    return MetricBatch(
        namespace=namespace,
        metrics=tuple(_parse_metric(m, now) for m in metrics),
    )


def encode_aggregation(aggregation: MetricAggregation) -> dict[str, Any]:
    return {
        "sum": aggregation.sum,
        "count": aggregation.count,
        "min": aggregation.min,
        "max": aggregation.max,
        "average": aggregation.average,
        "timestamp": aggregation.timestamp.isoformat(),
    }


def encode_rule(rule: MonitoringRule) -> dict[str, Any]:
    """Encode a rule as a JSON-ready dict."""
    return {
        "id": rule.id,
        "name": rule.name,
        "description": rule.description,
        "namespace": rule.namespace,
        "metric_name": rule.metric_name,
        "dimensions": dict(rule.dimensions),
        "period": rule.period,
        "evaluation_periods": rule.evaluation_periods,
        "enabled": rule.enabled,
        "thresholds": [t.to_dict() for t in rule.thresholds],
    }
