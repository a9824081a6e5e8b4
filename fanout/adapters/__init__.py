"""External adapters for the webhook fan-out proxy.

This package contains all external dependencies (httpx, prometheus_client,
PyYAML, http.server) and provides implementations of the core port
interfaces.

Adapter Organization:

- forward/: Delivery of event copies to targets (httpx)
- metrics/: Request counters exported on /metrics (Prometheus)
- routes/: Route configuration loading (YAML)
- webhook/: HTTP listener for the configured routes
"""
