"""Tests for the Prometheus metrics adapter."""

from fanout.adapters.metrics.prometheus import PrometheusMetrics


class TestPrometheusMetrics:
    """Counter families and label sets exposed on /metrics."""

    def test_received_counter(self):
        metrics = PrometheusMetrics()
        metrics.request_received("/wh", 200)
        metrics.request_received("/wh", 200)
        metrics.request_received("/wh", 400)

        assert metrics.registry.get_sample_value(
            "webhook_requests_received_total", {"webhook": "/wh", "status": "200"}
        ) == 2.0
        assert metrics.registry.get_sample_value(
            "webhook_requests_received_total", {"webhook": "/wh", "status": "400"}
        ) == 1.0

    def test_forwarded_and_processed_counters(self):
        metrics = PrometheusMetrics()
        metrics.request_forwarded("/wh", "http://a/", 404)
        metrics.request_processed("/wh", "http://a/", False)
        metrics.request_processed("/wh", "http://b/", True)

        assert metrics.registry.get_sample_value(
            "webhook_requests_forwarded_total",
            {"webhook": "/wh", "target": "http://a/", "status": "404"},
        ) == 1.0
        assert metrics.registry.get_sample_value(
            "webhook_requests_processed_total",
            {"webhook": "/wh", "target": "http://a/", "success": "false"},
        ) == 1.0
        assert metrics.registry.get_sample_value(
            "webhook_requests_processed_total",
            {"webhook": "/wh", "target": "http://b/", "success": "true"},
        ) == 1.0

    def test_instances_do_not_share_state(self):
        first = PrometheusMetrics()
        second = PrometheusMetrics()
        first.request_received("/wh", 204)

        assert second.registry.get_sample_value(
            "webhook_requests_received_total", {"webhook": "/wh", "status": "204"}
        ) is None

    def test_render_exposition_format(self):
        metrics = PrometheusMetrics()
        metrics.request_received("/wh", 204)

        text = metrics.render().decode()

        assert "# TYPE webhook_requests_received counter" in text
        assert 'webhook_requests_received_total{webhook="/wh",status="204"} 1.0' in text
