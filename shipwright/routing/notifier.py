"""Delivery of the one notification each run produces.

A ``Notifier`` hands the notification to every sink it was built with.
One sink failing does not stop the others; only when no sink accepts it
is the delivery considered failed.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import TYPE_CHECKING

from shipwright.models.notifications import Notification

if TYPE_CHECKING:
    from shipwright.routing.sinks import BaseSink

logger = logging.getLogger(__name__)


class DeliveryError(RuntimeError):
    """No sink accepted the notification.  ``failures`` maps sink name to error."""

    def __init__(self, build_number: int, failures: dict[str, Exception]) -> None:
        detail = "; ".join(f"{name}: {exc}" for name, exc in failures.items())
        super().__init__(f"Notification for build {build_number} was not delivered ({detail})")
        self.build_number = build_number
        self.failures = failures


class Notifier:
    """Fixed set of notification sinks.

    Parameters
    ----------
    sinks:
        Sinks in delivery order.  Each must have a distinct ``sink_name``.
    """

    def __init__(self, sinks: Iterable[BaseSink] = ()) -> None:
        self.sinks: list[BaseSink] = list(sinks)
        names = [s.sink_name for s in self.sinks]
        if len(set(names)) != len(names):
            raise ValueError(f"Duplicate sink names: {names}")

    def deliver(self, notification: Notification) -> list[str]:
        """Hand *notification* to every sink.  Returns the names that accepted it.

        Raises
        ------
        DeliveryError
            If there were sinks and every one of them failed.
        """
        if not self.sinks:
            logger.warning("No notification sinks; build %d notification dropped", notification.build_number)
            return []

        delivered: list[str] = []
        failures: dict[str, Exception] = {}
        for sink in self.sinks:
            try:
                sink.accept(notification)
            except Exception as exc:  # noqa: BLE001
                logger.error("Sink %s failed for build %d: %s", sink.sink_name, notification.build_number, exc)
                failures[sink.sink_name] = exc
            else:
                delivered.append(sink.sink_name)

        if not delivered:
            raise DeliveryError(notification.build_number, failures)
        return delivered
