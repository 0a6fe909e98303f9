"""Deploy stage and operator-triggered rollback.

Deployment applies the Ansible playbook restricted to the ``deploy`` tag,
passing the image name and tag as extra variables.  A failed deployment
is never rolled back automatically; ``rollback()`` re-runs the same
deployment with the image of an earlier build that succeeded.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from pathlib import Path
from typing import Any

from shipwright.bridge.ansible import AnsibleRunner
from shipwright.core.run_ledger import RunLedger
from shipwright.core.workspace import Workspace
from shipwright.models.artifacts import ImageRef
from shipwright.models.deployment import InventoryTarget
from shipwright.models.run import PipelineRun, RunStatus
from shipwright.stages.base import BaseStage, StageFailure, tail

logger = logging.getLogger(__name__)

DEFAULT_DEPLOY_TAGS: tuple[str, ...] = ("deploy",)


class RollbackError(RuntimeError):
    """Raised when a rollback target is unknown or its run did not succeed."""


def deploy_image(
    ansible: AnsibleRunner,
    image: ImageRef,
    target: InventoryTarget,
    playbook_file: Path,
    *,
    tags: Sequence[str] = DEFAULT_DEPLOY_TAGS,
    cwd: Path | None = None,
    timeout: float | None = None,
    stage_id: str = "deploy",
) -> str:
    """Deploy *image* to *target*.  Returns the captured playbook output.

    *cwd* is where ``ansible-playbook`` runs; relative inventory and
    playbook paths are resolved from there.

    Raises
    ------
    StageFailure
        If the playbook times out or exits non-zero.
    """
    result = ansible.apply(
        target.inventory_file,
        playbook_file,
        tags,
        extra_vars={"image_name": image.name, "image_tag": image.tag},
        limit=target.limit,
        cwd=cwd,
        timeout=timeout,
    )
    if result.timed_out:
        raise StageFailure(stage_id, f"deployment of {image} timed out", tail(result.output))
    if not result.success:
        raise StageFailure(
            stage_id,
            f"deployment of {image} exited with code {result.returncode}",
            tail(result.output),
        )
    logger.info("Deployed %s to %s", image, target.inventory_file)
    return result.output


class DeployStage(BaseStage):
    """Applies the playbook's deploy tasks with this run's image."""

    def __init__(
        self,
        ansible: AnsibleRunner,
        target: InventoryTarget,
        playbook_file: Path,
        tags: Sequence[str] = DEFAULT_DEPLOY_TAGS,
    ) -> None:
        self.ansible = ansible
        self.target = target
        self.playbook_file = Path(playbook_file)
        self.tags = tuple(tags)

    @property
    def stage_id(self) -> str:
        return "deploy"

    @property
    def display_name(self) -> str:
        return "Deploy"

    def execute(self, run_context: dict[str, Any]) -> dict[str, Any]:
        run: PipelineRun = run_context["run"]
        workspace: Workspace = run_context["workspace"]
        if run.image is None:
            raise StageFailure(self.stage_id, "no image was built in this run")
        output = deploy_image(
            self.ansible,
            run.image,
            self.target,
            self.playbook_file,
            tags=self.tags,
            cwd=workspace.source_dir,
            timeout=self.remaining_time(run_context),
            stage_id=self.stage_id,
        )
        return {"image": run.image.reference, "output": tail(output)}


def previous_good_build(ledger: RunLedger) -> int:
    """Latest successful build strictly before the latest recorded one.

    This is the default rollback target: the good build preceding whatever
    was deployed (or attempted) last.

    Raises
    ------
    RollbackError
        If no such build exists.
    """
    latest = ledger.latest_build_number()
    summary = ledger.last_successful(before=latest)
    if summary is None:
        raise RollbackError(f"No successful build before build {latest} to roll back to")
    return summary.build_number


def rollback(
    ansible: AnsibleRunner,
    ledger: RunLedger,
    build_number: int,
    target: InventoryTarget,
    playbook_file: Path,
    *,
    image_name: str,
    tags: Sequence[str] = DEFAULT_DEPLOY_TAGS,
    timeout: float | None = None,
) -> ImageRef:
    """Redeploy the image of an earlier, successful build.

    Raises
    ------
    RollbackError
        If *build_number* is not in the ledger or its run did not succeed.
    StageFailure
        If the deployment itself fails.
    """
    summary = ledger.get_run(build_number)
    if summary is None:
        raise RollbackError(f"Build {build_number} is not in the run ledger")
    if summary.status != RunStatus.SUCCEEDED:
        raise RollbackError(
            f"Build {build_number} did not succeed (status: {summary.status.value}); "
            "only successful builds can be redeployed"
        )

    image = ImageRef.for_build(image_name, build_number)
    if summary.image_ref and summary.image_ref != image.reference:
        logger.warning(
            "Ledger recorded image %s for build %d; deploying %s",
            summary.image_ref, build_number, image.reference,
        )
    logger.info("Rolling back to %s", image)
    deploy_image(ansible, image, target, playbook_file, tags=tags, timeout=timeout)
    return image
