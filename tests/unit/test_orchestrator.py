"""Tests for the Orchestrator: halting, cleanup, notification, build numbers."""

from __future__ import annotations

import json
import sqlite3
from pathlib import Path

import pytest
from conftest import ARTIFACT_NAME, CountingWorkspace, FakeRunner

from shipwright.core.orchestrator import Orchestrator
from shipwright.core.run_ledger import BuildNumberError, RunLedger
from shipwright.models.config import PipelineConfig
from shipwright.models.notifications import Notification
from shipwright.models.run import NotificationKind, RunStatus
from shipwright.models.stages import PipelinePhase, StageStatus
from shipwright.routing.notifier import Notifier
from shipwright.stages.deploy import RollbackError


class _CollectingSink:
    def __init__(self) -> None:
        self.received: list[Notification] = []

    @property
    def sink_name(self) -> str:
        return "collect"

    def accept(self, notification: Notification) -> None:
        self.received.append(notification)


class _BrokenSink:
    @property
    def sink_name(self) -> str:
        return "broken"

    def accept(self, notification: Notification) -> None:
        raise ConnectionError("smtp down")


@pytest.fixture
def sink() -> _CollectingSink:
    return _CollectingSink()


@pytest.fixture
def workspaces() -> list[CountingWorkspace]:
    return []


@pytest.fixture
def make_orchestrator(
    pipeline_config: PipelineConfig,
    ledger: RunLedger,
    sink: _CollectingSink,
    workspaces: list[CountingWorkspace],
):
    def _factory(runner: FakeRunner, config: PipelineConfig | None = None) -> Orchestrator:
        cfg = config or pipeline_config
        notifier = Notifier([sink])

        def _workspace(build_number: int) -> CountingWorkspace:
            workspace = CountingWorkspace(cfg.workspace_root, build_number, cfg.diagnostics_path)
            workspaces.append(workspace)
            return workspace

        return Orchestrator(
            cfg,
            runner=runner,
            ledger=ledger,
            notifier=notifier,
            workspace_factory=_workspace,
        )

    return _factory


class TestSuccessfulRun:
    def test_build_42_all_green(
        self, make_orchestrator, fake_runner: FakeRunner, sink: _CollectingSink, workspaces
    ):
        run = make_orchestrator(fake_runner).run("main", 42)

        assert run.status == RunStatus.SUCCEEDED
        assert run.image is not None
        assert run.image.tag == "42"
        assert run.phase == PipelinePhase.NOTIFIED
        assert run.notification == NotificationKind.SUCCESS

        build = fake_runner.commands("docker", "build")[0]
        assert "inventory-management-system:42" in build
        deploy = fake_runner.commands("ansible-playbook")[0]
        assert "image_tag=42" in deploy

        assert len(sink.received) == 1
        assert sink.received[0].kind == NotificationKind.SUCCESS
        assert sink.received[0].image_reference == "inventory-management-system:42"
        assert workspaces[0].resets == 1
        assert not workspaces[0].path.exists()

    def test_every_stage_succeeded_with_timestamps(self, make_orchestrator, fake_runner: FakeRunner):
        run = make_orchestrator(fake_runner).run("main", 1)
        for record in run.stages:
            assert record.status == StageStatus.SUCCEEDED
            assert record.started_at is not None
            assert record.finished_at is not None
        assert run.started_at is not None
        assert run.finished_at is not None

    def test_commands_get_stage_deadlines(self, make_orchestrator, fake_runner: FakeRunner):
        make_orchestrator(fake_runner).run("main", 1)
        deploy = next(c for c in fake_runner.calls if c.args[0] == "ansible-playbook")
        assert deploy.timeout is not None
        assert 0 < deploy.timeout <= 1200

    def test_deploy_runs_from_checked_out_tree(self, make_orchestrator, fake_runner: FakeRunner, pipeline_config):
        config = pipeline_config.model_copy(
            update={"inventory_file": Path("ansible/inventory.ini"), "playbook_file": Path("ansible/playbook.yml")}
        )
        make_orchestrator(fake_runner, config).run("main", 1)
        deploy = next(c for c in fake_runner.calls if c.args[0] == "ansible-playbook")
        assert deploy.cwd == config.workspace_root / "build-1" / "source"
        assert "ansible/inventory.ini" in deploy.args

    def test_ledger_records_run(self, make_orchestrator, fake_runner: FakeRunner, ledger: RunLedger):
        make_orchestrator(fake_runner).run("main", 3)
        summary = ledger.get_run(3)
        assert summary.status == RunStatus.SUCCEEDED
        assert summary.image_ref == "inventory-management-system:3"
        assert summary.notification == "success"
        phases = [r.transition for r in ledger.get_transitions(3) if r.subject == "phase"]
        assert phases[0] == "idle->checkout"
        assert phases[-2:] == ["deploy->cleaning_up", "cleaning_up->notified"]


class TestFailedRun:
    def test_test_failure_halts_pipeline(
        self, make_orchestrator, fake_runner: FakeRunner, sink: _CollectingSink, workspaces
    ):
        fake_runner.on("mvn", "-B", "test", returncode=1, stdout="Tests run: 5, Failures: 1")

        run = make_orchestrator(fake_runner).run("main", 7)

        assert run.status == RunStatus.FAILED
        assert run.stage("checkout").status == StageStatus.SUCCEEDED
        assert run.stage("build").status == StageStatus.SUCCEEDED
        assert run.stage("test").status == StageStatus.FAILED
        assert "Failures: 1" in run.stage("test").output
        for stage_id in ("package", "image", "deploy"):
            assert run.stage(stage_id).status == StageStatus.SKIPPED

        assert not fake_runner.called("mvn", "-B", "package")
        assert not fake_runner.called("docker")
        assert not fake_runner.called("ansible-playbook")

        assert workspaces[0].resets == 1
        assert len(sink.received) == 1
        assert sink.received[0].kind == NotificationKind.FAILURE
        assert sink.received[0].failed_stage == "test"
        assert run.phase == PipelinePhase.NOTIFIED

    def test_failure_at_each_stage_halts_later_stages(self, make_orchestrator, fake_runner: FakeRunner):
        fake_runner.on("git", "clone", returncode=128, stderr="fatal: repository not found")
        run = make_orchestrator(fake_runner).run("main", 1)
        assert run.failed_stage.stage_id == "checkout"
        assert not fake_runner.called("mvn")
        assert [s.status for s in run.stages[1:]] == [StageStatus.SKIPPED] * 5

    def test_image_failure_preserves_artifact_for_diagnosis(
        self, make_orchestrator, fake_runner: FakeRunner, pipeline_config: PipelineConfig
    ):
        fake_runner.on("docker", "build", returncode=1, stderr="no space left on device")
        run = make_orchestrator(fake_runner).run("main", 5)

        assert run.failed_stage.stage_id == "image"
        preserved = pipeline_config.diagnostics_path / "5" / ARTIFACT_NAME
        assert preserved.is_file()
        assert not fake_runner.called("ansible-playbook")

    def test_deploy_failure_not_rolled_back(self, make_orchestrator, fake_runner: FakeRunner):
        fake_runner.on("ansible-playbook", returncode=2, stdout="fatal: UNREACHABLE")
        run = make_orchestrator(fake_runner).run("main", 2)
        assert run.failed_stage.stage_id == "deploy"
        assert run.image.tag == "2"
        assert len(fake_runner.commands("ansible-playbook")) == 1

    def test_cleanup_error_does_not_change_outcome(
        self, make_orchestrator, fake_runner: FakeRunner, monkeypatch: pytest.MonkeyPatch
    ):
        def _broken_reset(self) -> None:
            raise PermissionError("workspace is read-only")

        monkeypatch.setattr(CountingWorkspace, "reset", _broken_reset)
        run = make_orchestrator(fake_runner).run("main", 1)
        assert run.status == RunStatus.SUCCEEDED
        assert "read-only" in run.cleanup_error
        assert run.phase == PipelinePhase.NOTIFIED


class _LockedLedger(RunLedger):
    """Ledger whose transition log fails once the test stage starts."""

    def record_transition(self, build_number, subject, transition, detail=""):
        if subject == "test":
            raise sqlite3.OperationalError("database is locked")
        super().record_transition(build_number, subject, transition, detail)


class TestAbortedRun:
    def test_ledger_error_still_cleans_up_and_notifies(
        self, pipeline_config: PipelineConfig, fake_runner: FakeRunner, sink: _CollectingSink
    ):
        ledger = _LockedLedger(pipeline_config.ledger_db_path)
        workspaces: list[CountingWorkspace] = []

        def _workspace(build_number: int) -> CountingWorkspace:
            workspace = CountingWorkspace(
                pipeline_config.workspace_root, build_number, pipeline_config.diagnostics_path
            )
            workspaces.append(workspace)
            return workspace

        orchestrator = Orchestrator(
            pipeline_config,
            runner=fake_runner,
            ledger=ledger,
            notifier=Notifier([sink]),
            workspace_factory=_workspace,
        )

        with pytest.raises(sqlite3.OperationalError, match="locked"):
            orchestrator.run("main", 3)

        assert workspaces[0].resets == 1
        assert len(sink.received) == 1
        assert sink.received[0].kind == NotificationKind.FAILURE
        assert sink.received[0].failed_stage == "test"
        assert not fake_runner.called("mvn", "-B", "test")

        summary = ledger.get_run(3)
        assert summary.status == RunStatus.FAILED
        assert summary.failed_stage == "test"


class TestBuildNumbers:
    def test_successive_runs_have_increasing_tags(self, make_orchestrator, fake_runner: FakeRunner):
        orchestrator = make_orchestrator(fake_runner)
        first = orchestrator.run("main", 10)
        second = orchestrator.run("main", 11)
        assert int(second.image.tag) > int(first.image.tag)

    def test_reused_build_number_rejected_before_anything_runs(
        self, make_orchestrator, fake_runner: FakeRunner, sink: _CollectingSink
    ):
        orchestrator = make_orchestrator(fake_runner)
        orchestrator.run("main", 10)
        calls_before = len(fake_runner.calls)

        with pytest.raises(BuildNumberError):
            orchestrator.run("main", 10)
        with pytest.raises(BuildNumberError):
            orchestrator.run("main", 9)

        assert len(fake_runner.calls) == calls_before
        assert len(sink.received) == 1


class TestNotificationDelivery:
    def test_all_sinks_failing_is_recorded(
        self, pipeline_config: PipelineConfig, ledger: RunLedger, fake_runner: FakeRunner
    ):
        notifier = Notifier([_BrokenSink()])
        orchestrator = Orchestrator(pipeline_config, runner=fake_runner, ledger=ledger, notifier=notifier)

        run = orchestrator.run("main", 1)

        assert run.status == RunStatus.SUCCEEDED
        assert "smtp down" in run.notification_error
        assert run.phase == PipelinePhase.NOTIFIED

    def test_default_notifier_writes_local_file(
        self, pipeline_config: PipelineConfig, ledger: RunLedger, fake_runner: FakeRunner
    ):
        Orchestrator(pipeline_config, runner=fake_runner, ledger=ledger).run("main", 4)
        path = pipeline_config.notifications_path / "build-4.json"
        data = json.loads(path.read_text())
        assert data["kind"] == "success"
        assert data["build_number"] == 4


class TestConstruction:
    def test_stage_plan_mismatch_rejected(self, pipeline_config: PipelineConfig, ledger: RunLedger):
        with pytest.raises(ValueError, match="stage plan"):
            Orchestrator(pipeline_config, runner=FakeRunner(), ledger=ledger, stages=[])


class TestRollback:
    def test_rollback_to_successful_build(self, make_orchestrator, fake_runner: FakeRunner):
        orchestrator = make_orchestrator(fake_runner)
        orchestrator.run("v1", 1)
        orchestrator.run("v2", 2)

        image = orchestrator.rollback(1)

        assert image.reference == "inventory-management-system:1"
        assert "image_tag=1" in fake_runner.commands("ansible-playbook")[-1]

    def test_rollback_to_failed_build_refused(self, make_orchestrator, fake_runner: FakeRunner):
        fake_runner.on("mvn", "-B", "test", returncode=1)
        orchestrator = make_orchestrator(fake_runner)
        orchestrator.run("main", 1)
        with pytest.raises(RollbackError):
            orchestrator.rollback(1)


def test_workspace_isolated_per_build(make_orchestrator, fake_runner: FakeRunner, workspaces):
    orchestrator = make_orchestrator(fake_runner)
    orchestrator.run("main", 1)
    orchestrator.run("main", 2)
    assert [w.path.name for w in workspaces] == ["build-1", "build-2"]
    assert all(isinstance(w.path, Path) for w in workspaces)
