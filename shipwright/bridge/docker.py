"""Docker bridge: builds versioned, immutable images."""

from __future__ import annotations

import logging
from pathlib import Path

from shipwright.core.shell import CommandRunner
from shipwright.models.artifacts import ImageRef

logger = logging.getLogger(__name__)


class ContainerEngineError(RuntimeError):
    """Raised when the engine is unreachable or an image build fails.

    ``output`` carries the engine's captured console output.
    """

    def __init__(self, message: str, output: str = "") -> None:
        super().__init__(message)
        self.output = output


class DockerEngine:
    """Wraps the ``docker`` CLI."""

    def __init__(self, runner: CommandRunner, executable: str = "docker") -> None:
        self.runner = runner
        self.executable = executable

    def ping(self, *, timeout: float | None = None) -> None:
        """Raise ``ContainerEngineError`` unless the daemon answers."""
        result = self.runner.run([self.executable, "info"], timeout=timeout)
        if not result.success:
            raise ContainerEngineError(
                "container engine is unreachable (docker info failed)", result.output
            )

    def build(
        self,
        image_name: str,
        tag: str,
        build_context: Path,
        *,
        timeout: float | None = None,
    ) -> ImageRef:
        image = ImageRef(name=image_name, tag=tag)
        result = self.runner.run(
            [self.executable, "build", "-t", image.reference, str(build_context)],
            timeout=timeout,
        )
        if not result.success:
            raise ContainerEngineError(
                f"docker build of {image.reference} failed (exit {result.returncode})",
                result.output,
            )
        logger.info("Built image %s", image.reference)
        return image

    def compose_up(self, project_dir: Path, *, timeout: float | None = None) -> None:
        """``docker compose up -d`` in *project_dir*."""
        result = self.runner.run(
            [self.executable, "compose", "up", "-d"], cwd=project_dir, timeout=timeout
        )
        if not result.success:
            raise ContainerEngineError(
                f"docker compose up failed (exit {result.returncode})", result.output
            )
