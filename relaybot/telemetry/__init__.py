"""Telemetry backends for relaybot observability.

Provides both in-memory (for testing) and Prometheus (for production) backends.
"""

from relaybot.telemetry.base import TelemetryPort
from relaybot.telemetry.inmemory import InMemoryTelemetry
from relaybot.telemetry.prometheus import PrometheusConfig, PrometheusTelemetry

__all__ = [
    "TelemetryPort",
    "InMemoryTelemetry",
    "PrometheusConfig",
    "PrometheusTelemetry",
]
