"""
Prometheus metrics for proxied traffic.

Each application owns its own ``CollectorRegistry`` so several app instances
(tests) never collide on series names.
"""

from fastapi import FastAPI
from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Histogram,
    ProcessCollector,
    generate_latest,
)

from configs import app_config

LABEL_NAMES = ["app", "method", "route", "code"]

# Label used for requests answered before routing (blocked, preflight)
UNMATCHED_ROUTE = "unmatched"


class ProxyMetrics:
    def __init__(
        self,
        prefix: str = "biliproxy",
        buckets: list[float] | None = None,
        process_collector: bool = True,
        app_label: str = "biliproxy",
    ):
        self.app_label = app_label
        self.registry = CollectorRegistry()
        self.request_duration_ms = Histogram(
            name=f"{prefix}_http_request_duration_ms",
            documentation="Duration of HTTP requests in milliseconds",
            labelnames=LABEL_NAMES,
            buckets=buckets or [100, 300, 500, 700, 1000, 3000, 5000, 7000, 10000],
            registry=self.registry,
        )
        self.response_bytes = Counter(
            name=f"{prefix}_http_response_bytes_total",
            documentation="Total number of bytes sent in responses",
            labelnames=LABEL_NAMES,
            registry=self.registry,
        )
        # process series come from the collector and carry no app label
        if process_collector:
            ProcessCollector(namespace=prefix, registry=self.registry)

    def observe(
        self,
        method: str,
        route: str,
        code: int,
        duration_ms: float,
        size: int | None = None,
    ) -> None:
        labels = {"app": self.app_label, "method": method, "route": route, "code": str(code)}
        self.request_duration_ms.labels(**labels).observe(duration_ms)
        if size is not None:
            self.response_bytes.labels(**labels).inc(size)

    def render(self) -> tuple[bytes, str]:
        return generate_latest(self.registry), CONTENT_TYPE_LATEST


def init_app(app: FastAPI):
    app.state.metrics = ProxyMetrics(
        prefix=app_config.METRICS_PREFIX,
        buckets=list(app_config.METRICS_DURATION_BUCKETS),
        process_collector=app_config.METRICS_PROCESS_COLLECTOR,
        app_label=app_config.METRICS_APP_LABEL,
    )
