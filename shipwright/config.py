"""Runtime configuration: env-driven.

Centralized config using pydantic-settings.  Reads from a ``.env`` file
and ``SHIPWRIGHT_*`` environment variables.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from shipwright.models.config import PipelineConfig, default_stage_timeouts


class Settings(BaseSettings):
    """Runtime settings with environment variable overrides.

    Examples
    --------
    Override via environment::

        export SHIPWRIGHT_LOG_LEVEL=DEBUG
        export SHIPWRIGHT_REPO_URL=https://github.com/acme/inventory-management-system.git
        export SHIPWRIGHT_ENABLE_METRICS=true

    Or via .env file::

        SHIPWRIGHT_LEDGER_PATH=/var/lib/shipwright/ledger.db
        SHIPWRIGHT_INVENTORY_FILE=ansible/inventory.ini
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="SHIPWRIGHT_",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Runtime
    log_level: str = "INFO"

    # State paths
    ledger_path: Path = Path(".shipwright/ledger.db")
    workspace_root: Path = Path(".shipwright/workspaces")
    diagnostics_path: Path = Path(".shipwright/diagnostics")
    notifications_path: Path = Path(".shipwright/notifications")

    # Source and image
    project_name: str = "inventory-management-system"
    repo_url: str = ""
    image_name: str = "inventory-management-system"
    artifact_glob: str = "target/*.jar"
    retain_artifacts: bool = False

    # Deployment
    inventory_file: Path = Path("ansible/inventory.ini")
    inventory_limit: str | None = None
    playbook_file: Path = Path("ansible/playbook.yml")
    deploy_tags: list[str] = Field(default_factory=lambda: ["deploy"])
    stage_timeouts: dict[str, float] = Field(default_factory=default_stage_timeouts)

    # Host provisioning
    package_manager: str = "apt"

    # Observability
    enable_metrics: bool = False
    metrics_prefix: str = "inventory.pipeline"
    graphite_host: str = "localhost"
    graphite_port: int = 2003
    graphite_url: str = "http://localhost:8081"
    grafana_provisioning_dir: Path = Path("grafana/provisioning/datasources")

    # Service endpoints shown by ``shipwright up``
    compose_dir: Path = Path(".")
    app_url: str = "http://localhost:8080"
    app_health_path: str = "/actuator/health"
    grafana_url: str = "http://localhost:3000"
    jenkins_url: str = "http://localhost:8082"

    @property
    def app_health_url(self) -> str:
        return self.app_url.rstrip("/") + self.app_health_path

    def pipeline_config(self) -> PipelineConfig:
        """Freeze the pipeline-relevant settings into a ``PipelineConfig``."""
        return PipelineConfig(
            project_name=self.project_name,
            repo_url=self.repo_url,
            image_name=self.image_name,
            workspace_root=self.workspace_root,
            diagnostics_path=self.diagnostics_path,
            ledger_db_path=self.ledger_path,
            notifications_path=self.notifications_path,
            artifact_glob=self.artifact_glob,
            retain_artifacts=self.retain_artifacts,
            inventory_file=self.inventory_file,
            inventory_limit=self.inventory_limit,
            playbook_file=self.playbook_file,
            deploy_tags=tuple(self.deploy_tags),
            stage_timeouts=self.stage_timeouts,
        )


def load_settings() -> Settings:
    """Read settings from the environment and ``.env``."""
    return Settings()
