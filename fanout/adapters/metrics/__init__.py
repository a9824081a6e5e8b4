"""Metrics adapters implementing MetricsSink."""
