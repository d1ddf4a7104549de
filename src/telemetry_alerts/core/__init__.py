"""Core domain: models, ports and the alerting services."""
