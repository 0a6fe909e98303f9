"""Sink protocol for run notifications.

All sinks implement the ``BaseSink`` protocol: a ``sink_name`` property
and an ``accept(notification)`` method.  The Notifier calls ``accept``
on every registered sink for every completed run.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from shipwright.models.notifications import Notification


@runtime_checkable
class BaseSink(Protocol):
    """Protocol that every notification sink must implement.

    Attributes
    ----------
    sink_name : str
        A unique human-readable identifier for this sink instance
        (e.g. ``"console"``, ``"local_file"``).
    """

    @property
    def sink_name(self) -> str:
        ...

    def accept(self, notification: Notification) -> None:
        """Deliver the notification.

        May raise; the Notifier logs the failure and continues to the
        next sink.
        """
        ...
