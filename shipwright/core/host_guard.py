"""Host precondition guard: refuses to provision an unsafe host.

Runs once before the provisioner touches any tool and fails hard
(raises ``PreconditionFailure``) if any precondition is violated.  All
violations are collected and reported together.
"""

from __future__ import annotations

import logging
import os
import shutil
from collections.abc import Callable

logger = logging.getLogger(__name__)

SUPPORTED_PACKAGE_MANAGERS: frozenset[str] = frozenset({"apt"})


class PreconditionFailure(RuntimeError):
    """Raised when the execution context is unsafe to provision.

    Must not be caught and ignored: the process should exit without
    touching the host.
    """


def _current_euid() -> int | None:
    geteuid = getattr(os, "geteuid", None)
    return geteuid() if geteuid is not None else None


def enforce_host_preconditions(
    package_manager: str = "apt",
    *,
    euid: int | None = None,
    which: Callable[[str], str | None] = shutil.which,
) -> None:
    """Validate that provisioning may proceed on this host.

    Constraints enforced
    --------------------
    1. Not running as root (effective uid 0).  Install steps escalate
       with ``sudo`` individually.
    2. The configured package manager is one we know how to drive, and
       its executable is on ``PATH``.

    Parameters
    ----------
    package_manager:
        Expected host package manager.
    euid:
        Effective user id; read from the process when omitted.
    which:
        Executable lookup, injectable for tests.

    Raises
    ------
    PreconditionFailure
        If any constraint is violated.
    """
    violations: list[str] = []

    uid = euid if euid is not None else _current_euid()
    if uid is None:
        violations.append("Cannot determine the effective user id on this platform.")
    elif uid == 0:
        violations.append(
            "Refusing to run as root. Run as a regular user with sudo rights."
        )

    if package_manager not in SUPPORTED_PACKAGE_MANAGERS:
        violations.append(
            f"Unsupported package manager {package_manager!r}; "
            f"supported: {', '.join(sorted(SUPPORTED_PACKAGE_MANAGERS))}."
        )
    elif which(package_manager) is None:
        violations.append(
            f"Package manager {package_manager!r} not found on PATH. "
            "This host is not Ubuntu/Debian."
        )

    if violations:
        msg = "Host precondition check failed.\n" + "\n".join(
            f"  - {v}" for v in violations
        )
        logger.critical(msg)
        raise PreconditionFailure(msg)

    logger.info("Host precondition check passed.")
