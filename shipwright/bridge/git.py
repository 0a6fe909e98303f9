"""Git bridge: resolves a source reference into a working tree."""

from __future__ import annotations

import logging
from pathlib import Path

from shipwright.core.shell import CommandResult, CommandRunner

logger = logging.getLogger(__name__)


class GitClient:
    """Thin wrapper over the ``git`` CLI.

    Parameters
    ----------
    runner:
        Command runner used for every git invocation.
    """

    def __init__(self, runner: CommandRunner) -> None:
        self.runner = runner

    def checkout(
        self,
        repo_url: str,
        ref: str,
        dest: Path,
        *,
        timeout: float | None = None,
    ) -> CommandResult:
        """Clone (or fetch into) *dest* and force-checkout *ref*.

        Returns the first failing command's result, or the checkout's.
        """
        dest = Path(dest)
        if (dest / ".git").is_dir():
            fetch = self.runner.run(
                ["git", "-C", str(dest), "fetch", "--all", "--tags", "--prune"],
                timeout=timeout,
            )
            if not fetch.success:
                return fetch
        else:
            dest.parent.mkdir(parents=True, exist_ok=True)
            clone = self.runner.run(["git", "clone", repo_url, str(dest)], timeout=timeout)
            if not clone.success:
                return clone

        return self.runner.run(
            ["git", "-C", str(dest), "checkout", "--force", ref], timeout=timeout
        )

    def head_commit(self, dest: Path, *, timeout: float | None = None) -> str | None:
        result = self.runner.run(["git", "-C", str(dest), "rev-parse", "HEAD"], timeout=timeout)
        if not result.success:
            logger.warning("Could not resolve HEAD in %s", dest)
            return None
        return result.stdout.strip() or None
