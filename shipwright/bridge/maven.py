"""Maven bridge: compile, test, and package a Java source tree."""

from __future__ import annotations

from pathlib import Path

from shipwright.core.shell import CommandResult, CommandRunner


class MavenBuildTool:
    """Runs Maven goals in batch mode against a source tree.

    Each operation returns the ``CommandResult`` with captured console
    output; callers decide what a failure means.
    """

    def __init__(self, runner: CommandRunner, executable: str = "mvn") -> None:
        self.runner = runner
        self.executable = executable

    def _goal(self, source_dir: Path, *goals: str, timeout: float | None) -> CommandResult:
        return self.runner.run(
            [self.executable, "-B", *goals], cwd=source_dir, timeout=timeout
        )

    def compile(self, source_dir: Path, *, timeout: float | None = None) -> CommandResult:
        return self._goal(source_dir, "clean", "compile", timeout=timeout)

    def test(self, source_dir: Path, *, timeout: float | None = None) -> CommandResult:
        return self._goal(source_dir, "test", timeout=timeout)

    def package(
        self,
        source_dir: Path,
        *,
        skip_tests: bool,
        clean: bool = False,
        timeout: float | None = None,
    ) -> CommandResult:
        """Package the project.

        ``skip_tests`` is scoped to this call only.  The pipeline passes
        ``True`` because the Test stage has already gated the run.
        ``clean`` runs the ``clean`` phase first.
        """
        goals = ["clean", "package"] if clean else ["package"]
        if skip_tests:
            goals.append("-DskipTests")
        return self._goal(source_dir, *goals, timeout=timeout)
