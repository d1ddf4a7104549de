"""SQLite metrics backend."""

import asyncio
import json
from collections.abc import AsyncIterator, Mapping, Sequence
from contextlib import asynccontextmanager
from datetime import datetime

import aiosqlite

from telemetry_alerts.adapters.backends.in_memory import SUPPORTED_STATISTICS
from telemetry_alerts.core.models import MetricDatum, MetricQuery

MEMORY_DB = ":memory:"

_DATAPOINTS_SCHEMA = """
CREATE TABLE IF NOT EXISTS datapoints (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    namespace TEXT NOT NULL,
    name TEXT NOT NULL,
    dimensions TEXT NOT NULL DEFAULT '{}',
    value REAL NOT NULL,
    unit TEXT NOT NULL,
    timestamp REAL NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_datapoints_series
    ON datapoints(namespace, name, dimensions, timestamp);
"""

_INSERT_DATAPOINT = """
INSERT INTO datapoints (namespace, name, dimensions, value, unit, timestamp)
VALUES (?, ?, ?, ?, ?, ?)
"""

# Bucket index is CAST((ts - start) / period AS INTEGER); ts >= start keeps it
# non-negative, so truncation equals floor.
_SELECT_BUCKET_AVERAGES = """
SELECT CAST((timestamp - ?) / ? AS INTEGER) AS bucket, AVG(value)
FROM datapoints
WHERE namespace = ? AND name = ? AND dimensions = ?
  AND timestamp >= ? AND timestamp <= ?
GROUP BY bucket
ORDER BY bucket ASC
"""

_COUNT_DATAPOINTS = """
SELECT COUNT(*) FROM datapoints
"""


def _encode_dimensions(dimensions: Mapping[str, str]) -> str:
    """Canonical JSON for a dimension set (key order independent)."""
    return json.dumps(dict(dimensions), sort_keys=True, separators=(",", ":"))


class SQLiteMetricsBackend:
    """SQLite implementation of MetricsBackendPort.

    Points live in a single ``datapoints`` table, one row per metric point,
    with the dimension set stored as canonical JSON so exact-match lookups are
    a plain equality. Averages are computed in SQL with the same bucket
    alignment as InMemoryMetricsBackend.

    A file database is opened per operation and runs in WAL mode. ``:memory:``
    holds one connection for the backend's lifetime, because the table would
    vanish with any connection that created it.
    """

    def __init__(self, db_path: str) -> None:
        self._db_path = db_path
        self._memory_conn: aiosqlite.Connection | None = None
        self._ready = False
        self._setup_lock = asyncio.Lock()

    @property
    def _in_memory(self) -> bool:
        return self._db_path == MEMORY_DB

    async def _create_table(self) -> None:
        if self._ready:
            return
        async with self._setup_lock:
            if self._ready:
                return
            if self._in_memory:
                self._memory_conn = await aiosqlite.connect(MEMORY_DB)
                await self._memory_conn.executescript(_DATAPOINTS_SCHEMA)
            else:
                async with aiosqlite.connect(self._db_path) as db:
                    await db.execute("PRAGMA journal_mode=WAL")
                    await db.executescript(_DATAPOINTS_SCHEMA)
            self._ready = True

    @asynccontextmanager
    async def _connect(self) -> AsyncIterator[aiosqlite.Connection]:
        await self._create_table()
        if self._memory_conn is not None:
            yield self._memory_conn
            return
        db = await aiosqlite.connect(self._db_path)
        try:
            yield db
        finally:
            await db.close()

    async def put_metric_data(
        self, namespace: str, data: Sequence[MetricDatum]
    ) -> None:
        """Write metric points under a namespace."""
        rows = [
            (
                namespace,
                datum.name,
                _encode_dimensions(datum.dimensions),
                datum.value,
                str(datum.unit),
                datum.timestamp.timestamp(),
            )
            for datum in data
        ]
        async with self._connect() as db:
            await db.executemany(_INSERT_DATAPOINT, rows)
            await db.commit()

    async def get_metric_data(
        self, queries: Sequence[MetricQuery], start: datetime, end: datetime
    ) -> dict[str, list[float]]:
        """Return per-period averages for each query over [start, end]."""
        start_ts, end_ts = start.timestamp(), end.timestamp()
        result: dict[str, list[float]] = {}
        async with self._connect() as db:
            for query in queries:
                if query.statistic not in SUPPORTED_STATISTICS:
                    raise ValueError(f"Unsupported statistic: {query.statistic}")
                params = (
                    start_ts,
                    query.period,
                    query.namespace,
                    query.metric_name,
                    _encode_dimensions(query.dimensions),
                    start_ts,
                    end_ts,
                )
                async with db.execute(_SELECT_BUCKET_AVERAGES, params) as cursor:
                    values = [row[1] async for row in cursor]
                if values:
                    result[query.id] = values
        return result

    async def count(self) -> int:
        """Return total number of stored points."""
        async with self._connect() as db:
            async with db.execute(_COUNT_DATAPOINTS) as cursor:
                row = await cursor.fetchone()
                return row[0] if row else 0

    async def close(self) -> None:
        """Release the ``:memory:`` connection. Its data goes with it."""
        if self._memory_conn is not None:
            await self._memory_conn.close()
            self._memory_conn = None
            self._ready = False
