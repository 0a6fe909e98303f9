"""Application health checks against a Spring Boot actuator endpoint."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable

import httpx
from pydantic import BaseModel, ConfigDict

logger = logging.getLogger(__name__)


class HealthStatus(BaseModel):
    """Result of one health check."""

    model_config = ConfigDict(frozen=True)

    url: str
    healthy: bool
    status_code: int | None = None
    detail: str = ""


def check_health(
    url: str,
    *,
    timeout: float = 5.0,
    client: httpx.Client | None = None,
) -> HealthStatus:
    """Probe *url* once.

    Healthy iff the response is 2xx and its JSON body has
    ``"status": "UP"``.  Connection errors are reported as unhealthy,
    never raised.
    """
    owns_client = client is None
    http = client or httpx.Client(timeout=timeout)
    try:
        response = http.get(url, timeout=timeout)
    except httpx.HTTPError as exc:
        return HealthStatus(url=url, healthy=False, detail=str(exc) or type(exc).__name__)
    finally:
        if owns_client:
            http.close()

    if not response.is_success:
        return HealthStatus(
            url=url, healthy=False, status_code=response.status_code,
            detail=f"HTTP {response.status_code}",
        )
    try:
        body = response.json()
    except ValueError:
        return HealthStatus(
            url=url, healthy=False, status_code=response.status_code,
            detail="response is not JSON",
        )

    status = body.get("status") if isinstance(body, dict) else None
    return HealthStatus(
        url=url,
        healthy=status == "UP",
        status_code=response.status_code,
        detail=f"status={status}",
    )


def wait_for_health(
    url: str,
    *,
    timeout: float = 120.0,
    interval: float = 5.0,
    check: Callable[[str], HealthStatus] = check_health,
    sleep: Callable[[float], None] = time.sleep,
    clock: Callable[[], float] = time.monotonic,
) -> HealthStatus:
    """Poll *url* until healthy or *timeout* elapses.  Returns the last status."""
    deadline = clock() + timeout
    while True:
        status = check(url)
        if status.healthy:
            logger.info("%s is healthy", url)
            return status
        if clock() >= deadline:
            logger.warning("%s still unhealthy after %.0fs: %s", url, timeout, status.detail)
            return status
        logger.debug("%s not healthy yet (%s); retrying in %.0fs", url, status.detail, interval)
        sleep(interval)
