"""Build, Test and Package stages, plus the composite build-and-package.

The three Maven sub-steps are ordered: compile, then the test suite,
then packaging.  A compile or test failure short-circuits packaging.
Packaging always runs with ``skip_tests=True`` because the Test stage
has already gated the run.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from shipwright.bridge.maven import MavenBuildTool
from shipwright.core.hasher import content_address
from shipwright.models.artifacts import Artifact
from shipwright.models.run import PipelineRun
from shipwright.stages.base import BaseStage, StageFailure, tail

logger = logging.getLogger(__name__)

# Secondary jars Maven plugins drop next to the real artifact.
_SECONDARY_SUFFIXES = ("-sources.jar", "-javadoc.jar", "-tests.jar")
_SECONDARY_PREFIXES = ("original-",)


def locate_artifact(source_dir: Path, pattern: str, *, stage_id: str = "package") -> Artifact:
    """Find the single packaged artifact matching *pattern* under *source_dir*.

    Raises
    ------
    StageFailure
        If no artifact, or more than one candidate, is found.
    """
    candidates = sorted(
        p for p in Path(source_dir).glob(pattern)
        if p.is_file()
        and not p.name.endswith(_SECONDARY_SUFFIXES)
        and not p.name.startswith(_SECONDARY_PREFIXES)
    )
    if not candidates:
        raise StageFailure(stage_id, f"no artifact matching {pattern!r} in {source_dir}")
    if len(candidates) > 1:
        names = ", ".join(p.name for p in candidates)
        raise StageFailure(stage_id, f"ambiguous artifact for {pattern!r}: {names}")

    path = candidates[0]
    return Artifact(
        name=path.name,
        path=path,
        content_address=content_address(path),
        size_bytes=path.stat().st_size,
    )


def build_and_package(
    tool: MavenBuildTool,
    source_dir: Path,
    artifact_glob: str,
    *,
    timeout: float | None = None,
) -> Artifact:
    """Compile, test, and package *source_dir* in one call.

    Each sub-step gets the full *timeout*.  Raises ``StageFailure``
    tagged with the sub-step that failed.
    """
    steps = (
        ("build", "compile", lambda: tool.compile(source_dir, timeout=timeout)),
        ("test", "test suite", lambda: tool.test(source_dir, timeout=timeout)),
        ("package", "package", lambda: tool.package(source_dir, skip_tests=True, timeout=timeout)),
    )
    for stage_id, what, invoke in steps:
        result = invoke()
        if not result.success:
            raise StageFailure(
                stage_id,
                f"{what} exited with code {result.returncode}",
                tail(result.output),
            )
    return locate_artifact(source_dir, artifact_glob)


def _source_dir(run_context: dict[str, Any]) -> Path:
    return run_context["workspace"].source_dir


class BuildStage(BaseStage):
    """``mvn clean compile``."""

    def __init__(self, tool: MavenBuildTool) -> None:
        self.tool = tool

    @property
    def stage_id(self) -> str:
        return "build"

    @property
    def display_name(self) -> str:
        return "Build"

    def execute(self, run_context: dict[str, Any]) -> dict[str, Any]:
        result = self.require(
            self.tool.compile(
                _source_dir(run_context), timeout=self.remaining_time(run_context)
            ),
            "compile",
        )
        return {"output": tail(result.output)}


class TestStage(BaseStage):
    """``mvn test``."""

    __test__ = False  # not a pytest class

    def __init__(self, tool: MavenBuildTool) -> None:
        self.tool = tool

    @property
    def stage_id(self) -> str:
        return "test"

    @property
    def display_name(self) -> str:
        return "Test"

    def execute(self, run_context: dict[str, Any]) -> dict[str, Any]:
        result = self.require(
            self.tool.test(
                _source_dir(run_context), timeout=self.remaining_time(run_context)
            ),
            "test suite",
        )
        return {"output": tail(result.output)}


class PackageStage(BaseStage):
    """``mvn package -DskipTests`` and locate the resulting artifact."""

    def __init__(self, tool: MavenBuildTool, artifact_glob: str = "target/*.jar") -> None:
        self.tool = tool
        self.artifact_glob = artifact_glob

    @property
    def stage_id(self) -> str:
        return "package"

    @property
    def display_name(self) -> str:
        return "Package"

    def execute(self, run_context: dict[str, Any]) -> dict[str, Any]:
        run: PipelineRun = run_context["run"]
        source_dir = _source_dir(run_context)
        result = self.require(
            self.tool.package(
                source_dir,
                skip_tests=True,
                timeout=self.remaining_time(run_context),
            ),
            "package",
        )
        artifact = locate_artifact(source_dir, self.artifact_glob, stage_id=self.stage_id)
        run_context["artifact"] = artifact
        run.artifact = artifact
        logger.info("Packaged %s (%d bytes, %s)", artifact.name, artifact.size_bytes, artifact.content_address)
        return {
            "artifact": artifact.name,
            "content_address": artifact.content_address,
            "output": tail(result.output),
        }
