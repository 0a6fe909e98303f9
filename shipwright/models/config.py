"""Pipeline configuration model."""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field

from shipwright.models.deployment import InventoryTarget
from shipwright.models.stages import DEFAULT_STAGE_DEFINITIONS, StageDefinition


def default_stage_timeouts() -> dict[str, float]:
    return {
        "checkout": 300.0,
        "build": 900.0,
        "test": 1800.0,
        "package": 900.0,
        "image": 900.0,
        "deploy": 1200.0,
    }


class PipelineConfig(BaseModel):
    """Project-level configuration for one pipeline.

    Usually derived from ``shipwright.config.Settings`` via
    ``Settings.pipeline_config()``; tests construct it directly.
    """

    model_config = ConfigDict(frozen=True)

    project_name: str = "inventory-management-system"
    repo_url: str = ""
    image_name: str = "inventory-management-system"

    # State
    workspace_root: Path = Path(".shipwright/workspaces")
    diagnostics_path: Path = Path(".shipwright/diagnostics")
    ledger_db_path: Path = Path(".shipwright/ledger.db")
    notifications_path: Path = Path(".shipwright/notifications")

    # Build
    artifact_glob: str = "target/*.jar"
    retain_artifacts: bool = False

    # Deploy
    inventory_file: Path = Path("ansible/inventory.ini")
    inventory_limit: str | None = None
    playbook_file: Path = Path("ansible/playbook.yml")
    deploy_tags: tuple[str, ...] = ("deploy",)

    stage_timeouts: dict[str, float] = Field(default_factory=default_stage_timeouts)
    stage_plan: list[StageDefinition] = Field(
        default_factory=lambda: list(DEFAULT_STAGE_DEFINITIONS)
    )

    @property
    def inventory_target(self) -> InventoryTarget:
        return InventoryTarget(inventory_file=self.inventory_file, limit=self.inventory_limit)
