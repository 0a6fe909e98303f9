"""Observability bootstrap: Grafana provisioning, Graphite metrics, health checks."""

from shipwright.observability.grafana import ConfigurationFailure, configure
from shipwright.observability.graphite import GraphiteReporter
from shipwright.observability.health import HealthStatus, check_health, wait_for_health

__all__ = [
    "ConfigurationFailure",
    "configure",
    "GraphiteReporter",
    "HealthStatus",
    "check_health",
    "wait_for_health",
]
