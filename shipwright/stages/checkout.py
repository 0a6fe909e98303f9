"""Checkout: resolve the source reference into the run's workspace."""

from __future__ import annotations

from typing import Any

from shipwright.bridge.git import GitClient
from shipwright.core.workspace import Workspace
from shipwright.models.run import PipelineRun
from shipwright.stages.base import BaseStage, tail


class CheckoutStage(BaseStage):
    """Clones the repository into ``<workspace>/source`` at ``source_ref``."""

    def __init__(self, git: GitClient, repo_url: str) -> None:
        self.git = git
        self.repo_url = repo_url

    @property
    def stage_id(self) -> str:
        return "checkout"

    @property
    def display_name(self) -> str:
        return "Checkout"

    def execute(self, run_context: dict[str, Any]) -> dict[str, Any]:
        run: PipelineRun = run_context["run"]
        workspace: Workspace = run_context["workspace"]
        workspace.prepare()

        result = self.require(
            self.git.checkout(
                self.repo_url,
                run.source_ref,
                workspace.source_dir,
                timeout=self.remaining_time(run_context),
            ),
            f"checkout of {run.source_ref}",
        )
        commit = self.git.head_commit(
            workspace.source_dir, timeout=self.remaining_time(run_context)
        )
        run.commit = commit
        return {
            "source_dir": str(workspace.source_dir),
            "commit": commit,
            "output": tail(result.output),
        }
