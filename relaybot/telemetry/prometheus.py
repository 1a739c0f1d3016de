"""Prometheus metrics backend for relaybot observability.

Metrics are exposed at /metrics for scraping by a Prometheus server.

Usage:
    telemetry = PrometheusTelemetry(PrometheusConfig(port=9464))
    telemetry.start()
    agent = Agent(client, telemetry=telemetry)

    # Metrics available at http://localhost:9464/metrics
"""

from __future__ import annotations

import time
from contextlib import contextmanager
from dataclasses import dataclass

from loguru import logger
from prometheus_client import REGISTRY, CollectorRegistry, Counter, Gauge, Histogram, start_http_server


@dataclass
class PrometheusConfig:
    """Configuration for Prometheus telemetry backend."""

    enabled: bool = True
    port: int = 9464
    host: str = "127.0.0.1"  # localhost only by default
    namespace: str = "relaybot"


class PrometheusTelemetry:
    """Prometheus-backed telemetry with an optional /metrics endpoint.

    Standard agent metrics are registered up front so their label names are
    fixed; any other name becomes an ad-hoc metric on first use.
    """

    def __init__(
        self,
        config: PrometheusConfig | None = None,
        registry: CollectorRegistry | None = None,
    ) -> None:
        self._config = config or PrometheusConfig()
        self._registry = registry if registry is not None else REGISTRY
        self._metrics: dict[str, Counter | Gauge | Histogram] = {}
        self._started = False

        if not self._config.enabled:
            logger.info("Prometheus telemetry disabled")
            return

        self._register_standard_metrics()

    def _name(self, name: str) -> str:
        return f"{self._config.namespace}_{name}"

    def _register_standard_metrics(self) -> None:
        counters = {
            "messages_received": ("Messages pulled from the inbound stream", []),
            "messages_dropped": ("Messages skipped before dispatch", ["reason"]),
            "messages_dispatched": ("Messages that reached handler dispatch", []),
            "middleware_halt": ("Messages vetoed by middleware", []),
            "handler_errors": ("Handler failures", ["category"]),
            "message_errors": ("Messages that failed in the error boundary", []),
            "stream_restarts": ("Stream restarts performed by the supervisor", []),
        }
        for name, (description, labelnames) in counters.items():
            self._metrics[name] = Counter(
                self._name(name), description, labelnames=labelnames, registry=self._registry
            )

        self._metrics["message_duration_seconds"] = Histogram(
            self._name("message_duration_seconds"),
            "Time spent processing one message",
            buckets=[0.005, 0.01, 0.05, 0.1, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0],
            registry=self._registry,
        )
        self._metrics["agent_listening"] = Gauge(
            self._name("agent_listening"),
            "1 while the agent stream loop is running",
            registry=self._registry,
        )

    def start(self) -> None:
        """Start the Prometheus HTTP server."""
        if not self._config.enabled or self._started:
            return

        try:
            start_http_server(port=self._config.port, addr=self._config.host, registry=self._registry)
            self._started = True
            logger.info(
                f"Prometheus metrics server started on "
                f"http://{self._config.host}:{self._config.port}/metrics"
            )
        except Exception as e:
            logger.error(f"Failed to start Prometheus server: {e}")
            self._config.enabled = False

    def _metric(self, name: str, kind: type, labels: tuple[tuple[str, str], ...]):
        metric = self._metrics.get(name)
        if metric is None:
            labelnames = [k for k, _ in labels] if labels else []
            metric = kind(
                self._name(name),
                f"{kind.__name__}: {name}",
                labelnames=labelnames,
                registry=self._registry,
            )
            self._metrics[name] = metric
        if labels:
            return metric.labels(**dict(labels))
        return metric

    def incr(self, name: str, value: int = 1, labels: tuple[tuple[str, str], ...] = ()) -> None:
        if not self._config.enabled:
            return
        self._metric(name, Counter, labels).inc(value)

    def gauge(self, name: str, value: float, labels: tuple[tuple[str, str], ...] = ()) -> None:
        if not self._config.enabled:
            return
        self._metric(name, Gauge, labels).set(value)

    def histogram(
        self, name: str, value: float, labels: tuple[tuple[str, str], ...] = ()
    ) -> None:
        if not self._config.enabled:
            return
        self._metric(name, Histogram, labels).observe(value)

    def timing(
        self, name: str, value: float, labels: tuple[tuple[str, str], ...] = ()
    ) -> None:
        """Record timing in seconds (alias for histogram)."""
        self.histogram(name, value, labels)

    @contextmanager
    def timeit(self, name: str, labels: tuple[tuple[str, str], ...] = ()):
        """Context manager to time a block of code."""
        start = time.monotonic()
        yield
        self.timing(name, time.monotonic() - start, labels)
