"""Carbon plaintext reporter.

Each metric is one line: ``<prefix>.<path> <value> <timestamp>\\n``,
sent over TCP to carbon's plaintext port (2003 by default).
"""

from __future__ import annotations

import logging
import re
import socket
import time
from collections.abc import Mapping

logger = logging.getLogger(__name__)

_UNSAFE = re.compile(r"[^A-Za-z0-9_\-.]")


def format_value(value: float) -> str:
    """Full-precision decimal; integral values without a fraction."""
    number = float(value)
    if number.is_integer():
        return str(int(number))
    return repr(number)


def format_metric(path: str, value: float, timestamp: int) -> str:
    return f"{_UNSAFE.sub('_', path)} {format_value(value)} {timestamp}\n"


class GraphiteReporter:
    """Sends metric batches to a carbon daemon.

    Parameters
    ----------
    host, port:
        Carbon plaintext listener.
    prefix:
        Dotted namespace prepended to every metric path.
    timeout:
        Socket connect/send timeout in seconds.
    """

    def __init__(self, host: str, port: int = 2003, prefix: str = "", timeout: float = 5.0) -> None:
        self.host = host
        self.port = port
        self.prefix = prefix.strip(".")
        self.timeout = timeout

    def render(self, metrics: Mapping[str, float], timestamp: int | None = None) -> str:
        ts = int(time.time()) if timestamp is None else timestamp
        lines = []
        for path, value in sorted(metrics.items()):
            full = f"{self.prefix}.{path}" if self.prefix else path
            lines.append(format_metric(full, value, ts))
        return "".join(lines)

    def send(self, metrics: Mapping[str, float], *, timestamp: int | None = None) -> None:
        """Send *metrics* in one connection.  Raises ``OSError`` on failure."""
        if not metrics:
            return
        payload = self.render(metrics, timestamp).encode("ascii")
        with socket.create_connection((self.host, self.port), timeout=self.timeout) as sock:
            sock.sendall(payload)
        logger.debug("Sent %d metrics to %s:%d", len(metrics), self.host, self.port)
