"""Image stage: wrap the packaged artifact in a build-numbered image."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from shipwright.bridge.docker import ContainerEngineError, DockerEngine
from shipwright.core.hasher import content_address
from shipwright.models.artifacts import Artifact, ImageRef
from shipwright.models.run import PipelineRun
from shipwright.stages.base import BaseStage, StageFailure, tail

logger = logging.getLogger(__name__)


def validate_artifact(artifact: Artifact, *, stage_id: str = "image") -> None:
    """Raise ``StageFailure`` if the artifact is missing, empty, or altered."""
    path = artifact.path
    if not path.is_file():
        raise StageFailure(stage_id, f"artifact {artifact.name} is missing at {path}")
    if path.stat().st_size == 0:
        raise StageFailure(stage_id, f"artifact {artifact.name} is empty")
    actual = content_address(path)
    if actual != artifact.content_address:
        raise StageFailure(
            stage_id,
            f"artifact {artifact.name} digest mismatch: "
            f"expected {artifact.content_address}, found {actual}",
        )


def build_image(
    engine: DockerEngine,
    artifact: Artifact,
    image_name: str,
    tag: str,
    build_context: Path,
    *,
    timeout: float | None = None,
    stage_id: str = "image",
) -> ImageRef:
    """Validate *artifact* and build ``image_name:tag`` from *build_context*.

    No fallback: an unreachable engine or a malformed artifact fails.
    """
    validate_artifact(artifact, stage_id=stage_id)
    try:
        engine.ping(timeout=timeout)
        return engine.build(image_name, tag, build_context, timeout=timeout)
    except ContainerEngineError as exc:
        raise StageFailure(stage_id, str(exc), tail(exc.output)) from exc


class ImageStage(BaseStage):
    """Builds ``<image_name>:<build_number>`` and discards the artifact.

    Parameters
    ----------
    engine:
        Docker bridge.
    image_name:
        Fixed image repository name.
    retain_artifacts:
        Keep the artifact file after a successful image build.
    """

    def __init__(self, engine: DockerEngine, image_name: str, *, retain_artifacts: bool = False) -> None:
        self.engine = engine
        self.image_name = image_name
        self.retain_artifacts = retain_artifacts

    @property
    def stage_id(self) -> str:
        return "image"

    @property
    def display_name(self) -> str:
        return "Docker Image"

    def execute(self, run_context: dict[str, Any]) -> dict[str, Any]:
        run: PipelineRun = run_context["run"]
        artifact: Artifact | None = run_context.get("artifact")
        if artifact is None:
            raise StageFailure(self.stage_id, "no packaged artifact in this run")

        image = build_image(
            self.engine,
            artifact,
            self.image_name,
            str(run.build_number),
            run_context["workspace"].source_dir,
            timeout=self.remaining_time(run_context),
            stage_id=self.stage_id,
        )
        run.image = image
        run_context["image"] = image

        # The artifact is consumed exactly once.
        run_context.pop("artifact", None)
        if not self.retain_artifacts:
            artifact.path.unlink(missing_ok=True)
            logger.debug("Discarded artifact %s", artifact.path)

        return {"image": image.reference}
