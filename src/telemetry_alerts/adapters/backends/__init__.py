"""Metrics backend adapters implementing MetricsBackendPort."""

from telemetry_alerts.adapters.backends.in_memory import InMemoryMetricsBackend
from telemetry_alerts.adapters.backends.sqlite import SQLiteMetricsBackend

__all__ = [
    "InMemoryMetricsBackend",
    "SQLiteMetricsBackend",
]
