"""Ansible bridge: declarative configuration runs against an inventory."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from pathlib import Path

from shipwright.core.shell import CommandResult, CommandRunner


class AnsibleRunner:
    """Runs ``ansible-playbook`` restricted to a tag subset."""

    def __init__(self, runner: CommandRunner, executable: str = "ansible-playbook") -> None:
        self.runner = runner
        self.executable = executable

    def apply(
        self,
        inventory_file: Path,
        playbook_file: Path,
        tags: Iterable[str],
        *,
        extra_vars: Mapping[str, str] | None = None,
        limit: str | None = None,
        cwd: Path | None = None,
        timeout: float | None = None,
    ) -> CommandResult:
        """Run the playbook.  Relative inventory and playbook paths resolve
        against *cwd*, the checked-out tree during a pipeline run.
        """
        argv = [self.executable, "-i", str(inventory_file), str(playbook_file)]
        tag_list = sorted(set(tags))
        if tag_list:
            argv += ["--tags", ",".join(tag_list)]
        if limit:
            argv += ["--limit", limit]
        for key, value in sorted((extra_vars or {}).items()):
            argv += ["-e", f"{key}={value}"]
        return self.runner.run(argv, cwd=cwd, timeout=timeout)
