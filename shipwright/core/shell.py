"""Command execution: the single seam between shipwright and subprocesses.

Every external tool (git, mvn, docker, ansible-playbook, apt, systemctl)
is reached through a ``CommandRunner``.  Tests inject a scripted runner
instead of patching ``subprocess``.
"""

from __future__ import annotations

import logging
import shlex
import subprocess
import time
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Protocol, runtime_checkable

from pydantic import BaseModel, ConfigDict

logger = logging.getLogger(__name__)

# Conventional exit codes for "timed out" and "command not found".
TIMEOUT_RETURNCODE = 124
NOT_FOUND_RETURNCODE = 127


class CommandResult(BaseModel):
    """Outcome of one external command, decoupled from ``subprocess``."""

    model_config = ConfigDict(frozen=True)

    args: list[str]
    returncode: int
    stdout: str = ""
    stderr: str = ""
    duration_seconds: float = 0.0
    timed_out: bool = False

    @property
    def success(self) -> bool:
        return self.returncode == 0 and not self.timed_out

    @property
    def output(self) -> str:
        """Combined stdout and stderr, as a console would show them."""
        parts = [p for p in (self.stdout, self.stderr) if p]
        return "\n".join(p.rstrip("\n") for p in parts)

    @property
    def command_line(self) -> str:
        return shlex.join(self.args)


@runtime_checkable
class CommandRunner(Protocol):
    """Protocol for anything that can run an argv and capture its output."""

    def run(
        self,
        args: Sequence[str],
        *,
        cwd: Path | str | None = None,
        env: Mapping[str, str] | None = None,
        timeout: float | None = None,
    ) -> CommandResult:
        ...


class SubprocessRunner:
    """Default ``CommandRunner`` backed by ``subprocess.run``.

    Never raises for a failing command: non-zero exits, timeouts, and
    missing executables are all reported through ``CommandResult``.
    """

    def run(
        self,
        args: Sequence[str],
        *,
        cwd: Path | str | None = None,
        env: Mapping[str, str] | None = None,
        timeout: float | None = None,
    ) -> CommandResult:
        argv = [str(a) for a in args]
        logger.debug("exec: %s (cwd=%s)", shlex.join(argv), cwd or ".")
        start = time.monotonic()
        try:
            proc = subprocess.run(
                argv,
                cwd=str(cwd) if cwd is not None else None,
                env=dict(env) if env is not None else None,
                capture_output=True,
                text=True,
                timeout=timeout,
                check=False,
            )
        except subprocess.TimeoutExpired as exc:
            return CommandResult(
                args=argv,
                returncode=TIMEOUT_RETURNCODE,
                stdout=_decode(exc.stdout),
                stderr=_decode(exc.stderr) + f"\ntimed out after {timeout}s",
                duration_seconds=time.monotonic() - start,
                timed_out=True,
            )
        except FileNotFoundError as exc:
            return CommandResult(
                args=argv,
                returncode=NOT_FOUND_RETURNCODE,
                stderr=str(exc),
                duration_seconds=time.monotonic() - start,
            )

        result = CommandResult(
            args=argv,
            returncode=proc.returncode,
            stdout=proc.stdout,
            stderr=proc.stderr,
            duration_seconds=time.monotonic() - start,
        )
        if not result.success:
            logger.debug("exit %d: %s", result.returncode, result.command_line)
        return result


def _decode(stream: bytes | str | None) -> str:
    if stream is None:
        return ""
    if isinstance(stream, bytes):
        return stream.decode("utf-8", errors="replace")
    return stream
