"""Environment provisioner: idempotently ensures the host toolchain.

``ensure()`` is the unit of work: it always runs the presence check
first and only installs when the check reports the tool missing or at
the wrong version.  ``Provisioner.provision()`` walks the ordered catalog
and aborts on the first failure; a host with a partial toolchain is not
safe for the pipeline, and partially installed tools are left for manual
remediation.
"""

from __future__ import annotations

import getpass
import logging
import re

from shipwright.core.shell import CommandResult, CommandRunner, SubprocessRunner
from shipwright.models.tools import (
    DEFAULT_TOOL_CATALOG,
    ToolOutcome,
    ToolReport,
    ToolSpec,
)

logger = logging.getLogger(__name__)


class InstallFailure(RuntimeError):
    """Raised when an install step or its verification fails.

    ``completed`` lists the tools ensured before the failure.
    """

    def __init__(
        self,
        tool: str,
        message: str,
        output: str = "",
        completed: list[ToolReport] | None = None,
    ) -> None:
        super().__init__(f"{tool}: {message}")
        self.tool = tool
        self.output = output
        self.completed = list(completed or [])


class ToolMissingError(InstallFailure):
    """Raised when verification still cannot find the tool after install."""


# ---------------------------------------------------------------------------
# Capability checks
# ---------------------------------------------------------------------------


def detect_version(tool: ToolSpec, result: CommandResult) -> str | None:
    """Extract the installed version from a presence-check result."""
    if not tool.version_pattern:
        return None
    match = re.search(tool.version_pattern, result.output)
    return match.group(1) if match else None


def version_satisfies(required: str, detected: str | None) -> bool:
    """Prefix match on dotted components: ``"11"`` accepts ``"11.0.20"``."""
    if required == "*":
        return True
    if detected is None:
        return False
    required_parts = required.split(".")
    detected_parts = re.split(r"[.\-+_]", detected)
    return detected_parts[: len(required_parts)] == required_parts


def is_satisfied(tool: ToolSpec, runner: CommandRunner) -> tuple[bool, str | None]:
    """Run the presence check.  Returns ``(satisfied, detected_version)``."""
    result = runner.run(tool.check)
    if not result.success:
        return False, None

    detected = detect_version(tool, result)
    if not version_satisfies(tool.required_version, detected):
        logger.info(
            "%s present at version %s, %s required",
            tool.display_name, detected or "unknown", tool.required_version,
        )
        return False, detected

    if tool.service:
        service = runner.run(["systemctl", "is-active", "--quiet", tool.service])
        if not service.success:
            logger.info("%s installed but service %s is not active", tool.display_name, tool.service)
            return False, detected

    return True, detected


def _render(step: list[str], tool: ToolSpec, variables: dict[str, str]) -> list[str]:
    values = {"version": tool.required_version, **variables}
    return [part.format(**values) for part in step]


# ---------------------------------------------------------------------------
# ensure
# ---------------------------------------------------------------------------


def ensure(
    tool: ToolSpec,
    runner: CommandRunner,
    *,
    variables: dict[str, str] | None = None,
) -> ToolReport:
    """Make sure *tool* is present at its required version.

    Calling this twice in a row for the same tool is safe: the second
    call finds the tool satisfied and performs no install side effects.

    Raises
    ------
    InstallFailure
        If an install step exits non-zero.
    ToolMissingError
        If post-install verification does not find the tool.
    """
    variables = variables or {}
    logger.info("Checking %s...", tool.display_name)

    satisfied, detected = is_satisfied(tool, runner)
    if satisfied:
        logger.info("%s is already installed", tool.display_name)
        return ToolReport(
            name=tool.name,
            outcome=ToolOutcome.ALREADY_PRESENT,
            detected_version=detected,
        )

    logger.info("Installing %s %s...", tool.display_name, tool.required_version)
    for step in tool.install:
        argv = _render(step, tool, variables)
        result = runner.run(argv)
        if not result.success:
            logger.error(
                "Failed to install %s: %s exited %d",
                tool.display_name, result.command_line, result.returncode,
            )
            raise InstallFailure(
                tool.name,
                f"install step failed (exit {result.returncode}): {result.command_line}",
                output=result.output,
            )

    verify = runner.run(tool.verify or tool.check)
    if not verify.success:
        raise ToolMissingError(
            tool.name,
            "not found after installation",
            output=verify.output,
        )
    detected = detect_version(tool, verify)
    if not version_satisfies(tool.required_version, detected):
        raise ToolMissingError(
            tool.name,
            f"installed version {detected or 'unknown'} does not match "
            f"required {tool.required_version}",
            output=verify.output,
        )

    logger.info("%s installed successfully", tool.display_name)
    return ToolReport(
        name=tool.name,
        outcome=ToolOutcome.INSTALLED,
        detected_version=detected,
    )


# ---------------------------------------------------------------------------
# Provisioner
# ---------------------------------------------------------------------------


class Provisioner:
    """Ensures every tool in an ordered catalog, fail-fast.

    Parameters
    ----------
    catalog:
        Ordered tool specs.  Defaults to ``DEFAULT_TOOL_CATALOG``.
    runner:
        Command runner.  Defaults to ``SubprocessRunner``.
    user:
        Login name substituted for ``{user}`` in install steps.
    """

    def __init__(
        self,
        catalog: list[ToolSpec] | None = None,
        runner: CommandRunner | None = None,
        *,
        user: str | None = None,
    ) -> None:
        self.catalog = list(catalog if catalog is not None else DEFAULT_TOOL_CATALOG)
        self.runner = runner or SubprocessRunner()
        self._variables = {"user": user or getpass.getuser()}

    def tool(self, name: str) -> ToolSpec:
        for spec in self.catalog:
            if spec.name == name:
                return spec
        raise KeyError(f"Unknown tool {name!r}")

    def ensure(self, tool: ToolSpec) -> ToolReport:
        return ensure(tool, self.runner, variables=self._variables)

    def provision(self) -> list[ToolReport]:
        """Ensure every catalog tool in order.

        Raises
        ------
        InstallFailure
            On the first failing tool.  Later tools are never attempted;
            ``exc.completed`` holds the reports gathered so far.
        """
        reports: list[ToolReport] = []
        for spec in self.catalog:
            try:
                reports.append(self.ensure(spec))
            except InstallFailure as exc:
                exc.completed = list(reports)
                skipped = [s.name for s in self.catalog[len(reports) + 1:]]
                logger.error(
                    "Provisioning aborted at %s; not attempted: %s",
                    spec.name, ", ".join(skipped) or "none",
                )
                raise
        return reports

    def check(self) -> dict[str, tuple[bool, str | None]]:
        """Presence check for every tool, without installing anything."""
        return {spec.name: is_satisfied(spec, self.runner) for spec in self.catalog}

    def initial_admin_password(self, tool: ToolSpec) -> str | None:
        """Read a tool's first-boot credential, if it declares one."""
        if tool.credentials_file is None:
            return None
        result = self.runner.run(["sudo", "cat", str(tool.credentials_file)])
        if not result.success:
            logger.warning(
                "Could not read %s credentials from %s", tool.display_name, tool.credentials_file
            )
            return None
        return result.stdout.strip() or None
