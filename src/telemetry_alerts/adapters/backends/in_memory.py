"""In-memory metrics backend."""

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from datetime import datetime

from telemetry_alerts.core.models import MetricDatum, MetricQuery

SUPPORTED_STATISTICS = frozenset({"Average"})


@dataclass(frozen=True)
class StoredDatum:
    """A datum together with the namespace it was written under."""

    namespace: str
    datum: MetricDatum


def _matches(stored: StoredDatum, query: MetricQuery) -> bool:
    return (
        stored.namespace == query.namespace
        and stored.datum.name == query.metric_name
        and stored.datum.dimensions == query.dimensions
    )


def bucket_averages(
    points: Sequence[tuple[float, float]], start: float, period: int
) -> list[float]:
    """Average ``(timestamp, value)`` points in period-wide buckets.

    Buckets are aligned at ``start``. Empty buckets are skipped.

    Returns:
        One average per non-empty bucket, oldest first.
    """
    buckets: dict[int, list[float]] = {}
    for timestamp, value in points:
        buckets.setdefault(int((timestamp - start) // period), []).append(value)
    return [sum(values) / len(values) for _, values in sorted(buckets.items())]


class InMemoryMetricsBackend:
    """In-memory implementation of MetricsBackendPort.

    Stores every written datum in a list and computes per-period averages on
    read. Suitable for tests, local development and single-process hosts.
    Dimension matching is exact: a query without dimensions only sees data
    written without dimensions.
    """

    def __init__(self) -> None:
        self._data: list[StoredDatum] = []
        self.put_calls: list[tuple[str, list[MetricDatum]]] = []

    async def put_metric_data(
        self, namespace: str, data: Sequence[MetricDatum]
    ) -> None:
        """Write metric points under a namespace."""
        self.put_calls.append((namespace, list(data)))
        self._data.extend(StoredDatum(namespace, datum) for datum in data)

    async def get_metric_data(
        self, queries: Sequence[MetricQuery], start: datetime, end: datetime
    ) -> dict[str, list[float]]:
        """Return per-period averages for each query over [start, end]."""
        start_ts, end_ts = start.timestamp(), end.timestamp()
        result: dict[str, list[float]] = {}
        for query in queries:
            if query.statistic not in SUPPORTED_STATISTICS:
                raise ValueError(f"Unsupported statistic: {query.statistic}")
            points = [
                (stored.datum.timestamp.timestamp(), stored.datum.value)
                for stored in self._data
                if _matches(stored, query)
                and start_ts <= stored.datum.timestamp.timestamp() <= end_ts
            ]
            if points:
                result[query.id] = bucket_averages(points, start_ts, query.period)
        return result

    def datapoints(
        self, namespace: str | None = None, dimensions: Mapping[str, str] | None = None
    ) -> list[MetricDatum]:
        """Return stored points, optionally filtered (diagnostics/tests)."""
        return [
            stored.datum
            for stored in self._data
            if (namespace is None or stored.namespace == namespace)
            and (dimensions is None or stored.datum.dimensions == dict(dimensions))
        ]
