"""Metric collection: batching, aggregation and backend forwarding."""

import asyncio
import logging
from collections.abc import Mapping, Sequence
from dataclasses import replace
from datetime import datetime
from typing import Any

from telemetry_alerts.core.models import (
    MetricAggregation,
    MetricBatch,
    MetricDatum,
    MetricQuery,
)
from telemetry_alerts.core.ports import EventLogPort, MetricsBackendPort

logger = logging.getLogger(__name__)

DEFAULT_BATCH_INTERVAL = 60.0
DEFAULT_MAX_BATCH_SIZE = 20
DEFAULT_PERIOD = 300


def metric_key(
    namespace: str, name: str, dimensions: Mapping[str, str] | None = None
) -> str:
    """Build the aggregation key for a metric.

    Dimensions are sorted by key and joined as ``key=value`` pairs, so two
    logically identical dimension sets always produce the same key.

    Args:
        namespace: Metric namespace.
        name: Metric name.
        dimensions: Optional dimension tags.

    Returns:
        Key of the form ``namespace:name:k1=v1,k2=v2``.
    """
    dimension_string = ",".join(
        f"{key}={value}" for key, value in sorted((dimensions or {}).items())
    )
    return f"{namespace}:{name}:{dimension_string}"


class MetricCollector:
    """Buffers published metric batches and forwards them to a backend.

    Batches are queued and flushed either when ``batch_interval`` seconds have
    passed since the first unflushed publish, or immediately once the queue
    holds ``max_batch_size`` batches. Every flushed metric also updates an
    in-process aggregation cache keyed by :func:`metric_key`.

    The queue and cache are owned by the event loop the collector runs on and
    are not safe to share across threads.
    """

    def __init__(
        self,
        backend: MetricsBackendPort,
        event_log: EventLogPort,
        batch_interval: float = DEFAULT_BATCH_INTERVAL,
        max_batch_size: int = DEFAULT_MAX_BATCH_SIZE,
    ) -> None:
        """Initialize the collector.

        Args:
            backend: Metrics backend adapter.
            event_log: Event log sink for flush and query outcomes.
            batch_interval: Seconds to wait before a deferred flush.
            max_batch_size: Queue length (in batches) that forces a flush.
        """
        if max_batch_size < 1:
            raise ValueError("max_batch_size must be at least 1")
        self._backend = backend
        self._event_log = event_log
        self._batch_interval = batch_interval
        self._max_batch_size = max_batch_size
        self._queue: list[MetricBatch] = []
        self._timer: asyncio.Task[None] | None = None
        self._aggregations: dict[str, MetricAggregation] = {}

    @property
    def pending_batches(self) -> int:
        """Number of batches waiting for the next flush."""
        return len(self._queue)

    @property
    def flush_scheduled(self) -> bool:
        return self._timer is not None

    async def publish_metrics(self, batch: MetricBatch) -> None:
        """Queue a batch for the next flush.

        Arms the deferred flush timer if none is pending. When the queue
        reaches ``max_batch_size`` the timer is cancelled and the flush runs
        inline, so backend errors propagate to this caller.
        """
        self._queue.append(batch)

        if self._timer is None:
            self._timer = asyncio.create_task(self._flush_after_interval())

        if len(self._queue) >= self._max_batch_size:
            self._cancel_timer()
            await self.flush()

    async def _flush_after_interval(self) -> None:
        await asyncio.sleep(self._batch_interval)
        self._timer = None
        try:
            await self.flush()
        except Exception:
            # Already reported to the event log by flush().
            logger.debug("Deferred metric flush failed", exc_info=True)

    async def _log_event(
        self, level: str, message: str, metadata: dict[str, Any]
    ) -> None:
        try:
            await self._event_log.log_event(level, message, metadata)
        except Exception:
            logger.warning("Event log sink failed for %r", message, exc_info=True)

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _record_aggregation(
        self,
        namespace: str,
        name: str,
        dimensions: Mapping[str, str],
        value: float,
        timestamp: datetime,
    ) -> None:
        key = metric_key(namespace, name, dimensions)
        current = self._aggregations.get(key)
        if current is None:
            self._aggregations[key] = MetricAggregation.first(value, timestamp)
        else:
            current.record(value, timestamp)

    async def flush(self) -> None:
        """Drain the queue, update aggregations and write to the backend.

        Raises:
            Exception: Whatever the backend raised. The drained batches are
                not re-queued.
        """
        if not self._queue:
            return

        batches, self._queue = self._queue, []

        try:
            for offset in range(0, len(batches), self._max_batch_size):
                chunk = batches[offset : offset + self._max_batch_size]
                staged: dict[str, list[MetricDatum]] = {}
                for batch in chunk:
                    points = staged.setdefault(batch.namespace, [])
                    for metric in batch.metrics:
                        self._record_aggregation(
                            batch.namespace,
                            metric.name,
                            metric.dimensions,
                            metric.value,
                            metric.timestamp,
                        )
                        points.append(
                            MetricDatum(
                                name=metric.name,
                                value=metric.value,
                                unit=metric.unit,
                                timestamp=metric.timestamp,
                                dimensions=dict(metric.dimensions),
                            )
                        )
                for namespace, points in staged.items():
                    if points:
                        await self._backend.put_metric_data(namespace, points)
        except Exception as e:
            await self._log_event(
                "error",
                "Failed to process metrics batch",
                {"error": str(e), "batch_count": len(batches)},
            )
            raise

        await self._log_event(
            "info",
            "Metrics batch processed successfully",
            {
                "batch_count": len(batches),
                "metric_count": sum(len(b.metrics) for b in batches),
            },
        )

    async def flush_all_metrics(self) -> None:
        """Cancel any pending timer and flush immediately (shutdown path)."""
        self._cancel_timer()
        await self.flush()

    async def get_metrics(
        self,
        namespace: str,
        metric_names: Sequence[str],
        start: datetime,
        end: datetime,
        period: int = DEFAULT_PERIOD,
        dimensions: Mapping[str, str] | None = None,
    ) -> dict[str, list[float]]:
        """Fetch per-period averages for each metric name over [start, end].

        Args:
            namespace: Metric namespace.
            metric_names: Metrics to query, one Average query each.
            start: Window start.
            end: Window end.
            period: Bucket width in seconds.
            dimensions: Exact dimension set to match.

        Returns:
            Mapping of metric name to chronological sample values. Metrics the
            backend returned nothing for are absent.
        """
        queries = [
            MetricQuery(
                id=f"m{index}",
                namespace=namespace,
                metric_name=name,
                period=period,
                dimensions=dict(dimensions or {}),
            )
            for index, name in enumerate(metric_names)
        ]
        try:
            response = await self._backend.get_metric_data(queries, start, end)
        except Exception as e:
            await self._log_event(
                "error",
                "Failed to retrieve metrics",
                {
                    "error": str(e),
                    "namespace": namespace,
                    "metric_names": list(metric_names),
                    "start": start.isoformat(),
                    "end": end.isoformat(),
                    "period": period,
                    "dimensions": dict(dimensions or {}),
                },
            )
            raise

        result: dict[str, list[float]] = {}
        for query in queries:
            values = response.get(query.id)
            if values is not None:
                result[query.metric_name] = list(values)
        return result

    def get_metric_aggregation(
        self,
        namespace: str,
        name: str,
        dimensions: Mapping[str, str] | None = None,
    ) -> MetricAggregation | None:
        """Return a copy of the aggregation for a key, or None if never seen."""
        aggregation = self._aggregations.get(metric_key(namespace, name, dimensions))
        return replace(aggregation) if aggregation is not None else None

    def clear_metric_aggregations(self) -> None:
        """Drop every cached aggregation."""
        self._aggregations.clear()
