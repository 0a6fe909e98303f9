"""Pipeline orchestrator: the central coordinator for shipwright runs.

The Orchestrator wires the RunLedger, StageMachine, per-run Workspace and
Notifier into a single execution engine.  For one build number it
runs the stages in their fixed order, halts at the first failure, cleans
up exactly once, and sends exactly one notification.
"""

from __future__ import annotations

import logging
import sqlite3
from collections.abc import Callable
from datetime import datetime, timezone
from typing import Any

from shipwright.bridge.ansible import AnsibleRunner
from shipwright.core.run_ledger import RunLedger
from shipwright.core.shell import CommandRunner, SubprocessRunner
from shipwright.core.stage_machine import StageMachine
from shipwright.core.workspace import Workspace
from shipwright.models.artifacts import ImageRef
from shipwright.models.config import PipelineConfig
from shipwright.models.notifications import Notification
from shipwright.models.run import PipelineRun, RunStatus
from shipwright.models.stages import PipelinePhase, StageStatus
from shipwright.routing.notifier import DeliveryError, Notifier
from shipwright.routing.sinks.local_file import LocalFileSink
from shipwright.stages import build_default_stages
from shipwright.stages.base import BaseStage, StageFailure
from shipwright.stages.deploy import previous_good_build, rollback

logger = logging.getLogger(__name__)


class Orchestrator:
    """Central pipeline orchestrator.

    Parameters
    ----------
    config:
        Pipeline configuration.  Uses defaults if not provided.
    runner:
        Command runner shared by every stage.  Defaults to
        ``SubprocessRunner``.
    stages:
        Stage instances in execution order.  Defaults to
        ``build_default_stages(config, runner)``; ids must match
        ``config.stage_plan``.
    ledger:
        Run Ledger.  Defaults to one at ``config.ledger_db_path``.
    notifier:
        Notification delivery.  Defaults to a local JSON file sink under
        ``config.notifications_path``.
    workspace_factory:
        Builds the Workspace for a build number.
    """

    def __init__(
        self,
        config: PipelineConfig | None = None,
        *,
        runner: CommandRunner | None = None,
        stages: list[BaseStage] | None = None,
        ledger: RunLedger | None = None,
        notifier: Notifier | None = None,
        workspace_factory: Callable[[int], Workspace] | None = None,
    ) -> None:
        self.config = config or PipelineConfig()
        self.runner = runner or SubprocessRunner()
        self.ledger = ledger or RunLedger(self.config.ledger_db_path)
        self.stage_machine = StageMachine(self.ledger)
        self.stages = stages if stages is not None else build_default_stages(self.config, self.runner)

        planned = [d.stage_id for d in self.config.stage_plan]
        actual = [s.stage_id for s in self.stages]
        if planned != actual:
            raise ValueError(f"Stages {actual} do not match the stage plan {planned}")
        self._phases = {d.stage_id: d.phase for d in self.config.stage_plan}

        self.notifier = notifier or Notifier([LocalFileSink(self.config.notifications_path)])

        self._workspace_factory = workspace_factory or self._default_workspace

    def _default_workspace(self, build_number: int) -> Workspace:
        return Workspace(
            self.config.workspace_root, build_number, self.config.diagnostics_path
        )

    # ------------------------------------------------------------------
    # Run lifecycle
    # ------------------------------------------------------------------

    def run(self, source_ref: str, build_number: int) -> PipelineRun:
        """Execute the full pipeline for *source_ref* as build *build_number*.

        Returns the terminal ``PipelineRun``; a failed run is returned,
        not raised.

        Raises
        ------
        BuildNumberError
            If *build_number* is not greater than every recorded build.
            Nothing has been executed at that point.
        """
        run = PipelineRun.create(build_number, source_ref, self.config.stage_plan)
        run.started_at = datetime.now(timezone.utc)
        self.ledger.record_start(run)
        logger.info("Build #%d started for %s", build_number, source_ref)

        workspace = self._workspace_factory(build_number)
        run_context: dict[str, Any] = {
            "run": run,
            "workspace": workspace,
            "stage_timeouts": dict(self.config.stage_timeouts),
            "stage_results": {},
        }

        try:
            self._execute_stages(run, run_context)
        except Exception as exc:
            self._abort(run, run_context, workspace, exc)
            raise

        self._cleanup(run, run_context, workspace)
        self._notify(run)
        return run

    def _execute_stages(self, run: PipelineRun, run_context: dict[str, Any]) -> None:
        for stage in self.stages:
            self.stage_machine.advance_phase(run, self._phases[stage.stage_id])
            self.stage_machine.transition(run, stage.stage_id, StageStatus.RUNNING)
            try:
                result = stage.run_stage(run_context)
            except StageFailure as exc:
                self.stage_machine.transition(
                    run, stage.stage_id, StageStatus.FAILED,
                    output=exc.output, error=exc.reason,
                )
                logger.error("Build #%d halted at %s: %s", run.build_number, stage.stage_id, exc.reason)
                return
            self.stage_machine.transition(
                run, stage.stage_id, StageStatus.SUCCEEDED,
                output=str(result.get("output", "")),
            )

    def _cleanup(self, run: PipelineRun, run_context: dict[str, Any], workspace: Workspace) -> None:
        """Reset the workspace.  Runs exactly once per run.

        Cleanup errors are logged and recorded on the run; they never
        change the run's outcome.
        """
        self.stage_machine.advance_phase(run, PipelinePhase.CLEANING_UP)
        self._reset_workspace(run, run_context, workspace)

    def _reset_workspace(self, run: PipelineRun, run_context: dict[str, Any], workspace: Workspace) -> None:
        try:
            artifact = run_context.get("artifact")
            if run.status == RunStatus.FAILED and artifact is not None:
                workspace.preserve([artifact.path])
            workspace.reset()
        except OSError as exc:
            run.cleanup_error = str(exc)
            logger.error("Cleanup of build #%d failed: %s", run.build_number, exc)

    def _deliver(self, run: PipelineRun) -> Notification:
        run.finished_at = datetime.now(timezone.utc)
        notification = Notification.for_run(run)
        run.notification = notification.kind
        try:
            self.notifier.deliver(notification)
        except DeliveryError as exc:
            run.notification_error = str(exc)
            logger.error("Notification for build #%d was not delivered: %s", run.build_number, exc)
        return notification

    def _notify(self, run: PipelineRun) -> Notification:
        notification = self._deliver(run)
        self.stage_machine.advance_phase(run, PipelinePhase.NOTIFIED)
        self.ledger.record_finish(run)
        logger.info("Build #%d finished: %s", run.build_number, run.status.value)
        return notification

    def _abort(
        self,
        run: PipelineRun,
        run_context: dict[str, Any],
        workspace: Workspace,
        error: Exception,
    ) -> None:
        """Close out a run interrupted by an error outside any stage's control.

        The interrupted stage is marked FAILED directly, without the ledger,
        which may be what broke.  The workspace is still reset once and the
        failure notification still sent once; the caller re-raises *error*.
        """
        logger.error("Build #%d aborted: %s", run.build_number, error)
        unfinished = [
            s for s in run.stages if s.status in (StageStatus.RUNNING, StageStatus.PENDING)
        ]
        if unfinished:
            interrupted = unfinished[0]
            interrupted.status = StageStatus.FAILED
            interrupted.error = f"internal error: {error}"
            interrupted.finished_at = datetime.now(timezone.utc)
            for later in unfinished[1:]:
                later.status = StageStatus.SKIPPED

        self._reset_workspace(run, run_context, workspace)
        self._deliver(run)
        run.phase = PipelinePhase.NOTIFIED
        try:
            self.ledger.record_finish(run)
        except sqlite3.Error as exc:
            logger.error("Could not record the end of build #%d: %s", run.build_number, exc)

    # ------------------------------------------------------------------
    # Operator actions
    # ------------------------------------------------------------------

    def rollback(self, build_number: int | None = None, *, timeout: float | None = None) -> ImageRef:
        """Redeploy the image of an earlier successful build.

        Without *build_number*, targets the latest successful build before
        the most recent run.

        Raises ``RollbackError`` or ``StageFailure``; see
        ``shipwright.stages.deploy.rollback``.
        """
        if build_number is None:
            build_number = previous_good_build(self.ledger)
        return rollback(
            AnsibleRunner(self.runner),
            self.ledger,
            build_number,
            self.config.inventory_target,
            self.config.playbook_file,
            image_name=self.config.image_name,
            tags=self.config.deploy_tags,
            timeout=timeout if timeout is not None else self.config.stage_timeouts.get("deploy"),
        )
