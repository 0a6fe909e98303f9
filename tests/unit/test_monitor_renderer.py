"""Tests for the Rich terminal renderer."""

from __future__ import annotations

from datetime import datetime, timezone

from rich.console import Console

from shipwright.core.run_ledger import RunSummary, TransitionRecord
from shipwright.models.artifacts import ImageRef
from shipwright.models.run import PipelineRun, RunStatus
from shipwright.models.stages import StageStatus
from shipwright.models.tools import ToolOutcome, ToolReport
from shipwright.monitor.renderer import MonitorRenderer


def _text(renderable) -> str:
    console = Console(record=True, width=160)
    console.print(renderable)
    return console.export_text()


def _failed_run() -> PipelineRun:
    run = PipelineRun.create(7, "feature/stock-alerts")
    run.stage("checkout").status = StageStatus.SUCCEEDED
    run.stage("build").status = StageStatus.SUCCEEDED
    test = run.stage("test")
    test.status = StageStatus.FAILED
    test.error = "mvn test exited with code 1"
    for later in ("package", "image", "deploy"):
        run.stage(later).status = StageStatus.SKIPPED
    return run


def test_render_failed_run():
    text = _text(MonitorRenderer().render_run(_failed_run()))
    assert "Pipeline build #7" in text
    assert "FAILED" in text
    assert "SKIPPED" in text
    assert "mvn test exited with code 1" in text
    assert "feature/stock-alerts" in text


def test_render_successful_run_shows_image():
    run = PipelineRun.create(8, "main")
    for record in run.stages:
        record.status = StageStatus.SUCCEEDED
    run.image = ImageRef(name="inventory-management-system", tag="8")
    run.commit = "0123456789abcdef"
    text = _text(MonitorRenderer().render_run(run))
    assert "inventory-management-system:8" in text
    assert "0123456789ab" in text


def test_render_history():
    started = datetime(2026, 3, 1, 9, 30, tzinfo=timezone.utc)
    runs = [
        RunSummary(build_number=2, source_ref="main", status=RunStatus.FAILED,
                   started_at=started, failed_stage="image"),
        RunSummary(build_number=1, source_ref="main", status=RunStatus.SUCCEEDED,
                   started_at=started, image_ref="inventory-management-system:1"),
    ]
    text = _text(MonitorRenderer().render_history(runs))
    assert "Pipeline history" in text
    assert "inventory-management-system:1" in text
    assert "image" in text
    assert "2026-03-01 09:30:00" in text


def test_render_transitions():
    started = datetime(2026, 3, 1, 9, 30, tzinfo=timezone.utc)
    summary = RunSummary(build_number=3, source_ref="v1.2.0", status=RunStatus.SUCCEEDED,
                         started_at=started)
    transitions = [
        TransitionRecord(build_number=3, subject="checkout", transition="pending->running",
                         timestamp_utc=started),
    ]
    text = _text(MonitorRenderer().render_transitions(summary, transitions))
    assert "Build #3" in text
    assert "pending->running" in text


def test_render_tool_tables():
    renderer = MonitorRenderer()
    reports = [
        ToolReport(name="java", outcome=ToolOutcome.ALREADY_PRESENT, detected_version="11"),
        ToolReport(name="docker", outcome=ToolOutcome.INSTALLED),
    ]
    text = _text(renderer.render_tool_reports(reports))
    assert "already_present" in text
    assert "installed" in text

    check = _text(renderer.render_tool_check({"java": (True, "11"), "maven": (False, None)}))
    assert "yes" in check
    assert "no" in check
