from prometheus_client.parser import text_string_to_metric_families

from extensions.ext_metrics import ProxyMetrics


def samples(metrics, name):
    text = metrics.render()[0].decode()
    return [
        (sample.labels, sample.value)
        for family in text_string_to_metric_families(text)
        for sample in family.samples
        if sample.name == name
    ]


class TestProxyMetrics:
    def test_observe_and_render(self):
        metrics = ProxyMetrics(prefix="test", process_collector=False)
        metrics.observe("GET", "/{path:path}", 200, duration_ms=250.0, size=128)
        metrics.observe("GET", "/{path:path}", 200, duration_ms=50.0)

        labels = {"app": "biliproxy", "method": "GET", "route": "/{path:path}", "code": "200"}
        assert samples(metrics, "test_http_request_duration_ms_count") == [(labels, 2.0)]
        assert samples(metrics, "test_http_response_bytes_total") == [(labels, 128.0)]
        buckets = {s[0]["le"]: s[1] for s in samples(metrics, "test_http_request_duration_ms_bucket")}
        assert buckets["100.0"] == 1.0
        assert buckets["300.0"] == 2.0
        assert metrics.render()[1].startswith("text/plain")

    def test_app_label_is_configurable(self):
        metrics = ProxyMetrics(prefix="lbl", process_collector=False, app_label="edge-1")
        metrics.observe("GET", "/health", 200, duration_ms=1.0)

        [(labels, value)] = samples(metrics, "lbl_http_request_duration_ms_count")
        assert labels["app"] == "edge-1"
        assert value == 1.0

    def test_registries_are_isolated(self):
        first = ProxyMetrics(prefix="iso", process_collector=False)
        second = ProxyMetrics(prefix="iso", process_collector=False)
        first.observe("GET", "/health", 200, duration_ms=1.0)

        assert [s[0]["route"] for s in samples(first, "iso_http_request_duration_ms_count")] == ["/health"]
        assert samples(second, "iso_http_request_duration_ms_count") == []

    def test_custom_buckets(self):
        metrics = ProxyMetrics(prefix="bk", buckets=[10, 20], process_collector=False)
        metrics.observe("GET", "/health", 200, duration_ms=15.0)

        bounds = [s[0]["le"] for s in samples(metrics, "bk_http_request_duration_ms_bucket")]
        assert bounds == ["10.0", "20.0", "+Inf"]
