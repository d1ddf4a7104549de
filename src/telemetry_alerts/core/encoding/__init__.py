"""Encoders for alerts, read models and event records."""
