"""Graphite sink: pushes run metrics to carbon's plaintext port."""

from __future__ import annotations

from shipwright.models.notifications import Notification
from shipwright.observability.graphite import GraphiteReporter


def notification_metrics(notification: Notification) -> dict[str, float]:
    """Flatten a notification into ``metric path -> value`` pairs."""
    metrics: dict[str, float] = {
        "runs.succeeded": 1.0 if notification.succeeded else 0.0,
        "runs.failed": 0.0 if notification.succeeded else 1.0,
        "runs.build_number": float(notification.build_number),
    }
    if notification.duration_seconds is not None:
        metrics["runs.duration_seconds"] = notification.duration_seconds
    for stage in notification.stages:
        if stage.duration_seconds is not None:
            metrics[f"stages.{stage.stage_id}.duration_seconds"] = stage.duration_seconds
    return metrics


class GraphiteSink:
    """Sends per-run metrics under the reporter's prefix."""

    def __init__(self, reporter: GraphiteReporter) -> None:
        self._reporter = reporter

    @property
    def sink_name(self) -> str:
        return "graphite"

    def accept(self, notification: Notification) -> None:
        self._reporter.send(
            notification_metrics(notification),
            timestamp=int(notification.created_at.timestamp()),
        )
