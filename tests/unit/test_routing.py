"""Tests for the Notifier and the notification sinks."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
from rich.console import Console

from shipwright.models.notifications import Notification, StageTiming
from shipwright.models.run import NotificationKind
from shipwright.models.stages import StageStatus
from shipwright.observability.graphite import GraphiteReporter
from shipwright.routing.notifier import DeliveryError, Notifier
from shipwright.routing.sinks import BaseSink
from shipwright.routing.sinks.console import ConsoleSink
from shipwright.routing.sinks.graphite import GraphiteSink, notification_metrics
from shipwright.routing.sinks.local_file import LocalFileSink


def _notification(kind: NotificationKind = NotificationKind.SUCCESS) -> Notification:
    succeeded = kind == NotificationKind.SUCCESS
    return Notification(
        build_number=12,
        kind=kind,
        source_ref="main",
        message="Pipeline succeeded" if succeeded else "Pipeline failed at stage Test: boom",
        image_reference="app:12" if succeeded else None,
        failed_stage=None if succeeded else "test",
        output="" if succeeded else "Tests run: 3, Failures: 1",
        duration_seconds=61.5,
        stages=[
            StageTiming(stage_id="checkout", status=StageStatus.SUCCEEDED, duration_seconds=1.5),
            StageTiming(stage_id="deploy", status=StageStatus.SKIPPED),
        ],
    )


class _Recorder:
    def __init__(self, name: str = "recorder", fail: bool = False) -> None:
        self._name = name
        self.fail = fail
        self.received: list[Notification] = []

    @property
    def sink_name(self) -> str:
        return self._name

    def accept(self, notification: Notification) -> None:
        if self.fail:
            raise RuntimeError(f"{self._name} is down")
        self.received.append(notification)


class TestNotifier:
    def test_delivers_to_every_sink_in_order(self):
        a, b = _Recorder("a"), _Recorder("b")
        assert Notifier([a, b]).deliver(_notification()) == ["a", "b"]
        assert len(a.received) == len(b.received) == 1

    def test_duplicate_sink_names_rejected(self):
        with pytest.raises(ValueError, match="Duplicate sink names"):
            Notifier([_Recorder("file"), _Recorder("file")])

    def test_one_failing_sink_does_not_block_others(self):
        good = _Recorder("good")
        notifier = Notifier([_Recorder("bad", fail=True), good])
        assert notifier.deliver(_notification()) == ["good"]
        assert len(good.received) == 1

    def test_every_sink_failing_raises(self):
        notifier = Notifier([_Recorder("x", fail=True), _Recorder("y", fail=True)])
        with pytest.raises(DeliveryError, match="x is down") as excinfo:
            notifier.deliver(_notification())
        assert set(excinfo.value.failures) == {"x", "y"}
        assert excinfo.value.build_number == 12

    def test_no_sinks(self):
        assert Notifier().deliver(_notification()) == []

    def test_sinks_satisfy_protocol(self, tmp_path: Path):
        reporter = GraphiteReporter("localhost")
        for sink in (ConsoleSink(), LocalFileSink(tmp_path), GraphiteSink(reporter)):
            assert isinstance(sink, BaseSink)


class TestLocalFileSink:
    def test_writes_one_file_per_build(self, tmp_path: Path):
        sink = LocalFileSink(tmp_path / "notes")
        sink.accept(_notification())
        path = tmp_path / "notes" / "build-12.json"
        data = json.loads(path.read_text())
        assert data["kind"] == "success"
        assert data["image_reference"] == "app:12"

    def test_round_trip(self, tmp_path: Path):
        sink = LocalFileSink(tmp_path)
        note = _notification(NotificationKind.FAILURE)
        sink.accept(note)
        assert sink.read(12) == note
        assert sink.read(13) is None


class TestConsoleSink:
    def test_prints_message_and_output(self):
        console = Console(record=True, width=120)
        ConsoleSink(console).accept(_notification(NotificationKind.FAILURE))
        text = console.export_text()
        assert "Pipeline failed at stage Test" in text
        assert "Tests run: 3, Failures: 1" in text
        assert "#12" in text


class TestGraphiteSink:
    def test_metrics_from_notification(self):
        metrics = notification_metrics(_notification())
        assert metrics["runs.succeeded"] == 1.0
        assert metrics["runs.failed"] == 0.0
        assert metrics["runs.duration_seconds"] == 61.5
        assert metrics["stages.checkout.duration_seconds"] == 1.5
        assert "stages.deploy.duration_seconds" not in metrics

    def test_accept_sends_through_reporter(self):
        sent: list[dict[str, float]] = []

        class _Reporter(GraphiteReporter):
            def send(self, metrics, *, timestamp=None):
                sent.append(dict(metrics))

        GraphiteSink(_Reporter("localhost")).accept(_notification(NotificationKind.FAILURE))
        assert sent[0]["runs.failed"] == 1.0
