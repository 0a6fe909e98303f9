"""Shared test fixtures for shipwright."""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from pathlib import Path

import pytest

from shipwright.core.run_ledger import RunLedger
from shipwright.core.shell import CommandResult
from shipwright.core.stage_machine import StageMachine
from shipwright.core.workspace import Workspace
from shipwright.models.config import PipelineConfig

ARTIFACT_NAME = "inventory-management-system-0.0.1-SNAPSHOT.jar"
ARTIFACT_BYTES = b"PK\x03\x04 fake spring boot jar"
COMMIT_SHA = "0123456789abcdef0123456789abcdef01234567"


# ---------------------------------------------------------------------------
# FakeRunner: scripted CommandRunner
# ---------------------------------------------------------------------------


@dataclass
class RecordedCall:
    args: list[str]
    cwd: Path | None
    timeout: float | None


@dataclass
class _Rule:
    prefix: tuple[str, ...]
    contains: tuple[str, ...] = ()
    returncode: int = 0
    stdout: str = ""
    stderr: str = ""
    timed_out: bool = False
    effect: Callable[[list[str], Path | None], None] | None = None
    calls: int = field(default=0)

    def matches(self, argv: list[str]) -> bool:
        if tuple(argv[: len(self.prefix)]) != self.prefix:
            return False
        return all(token in argv for token in self.contains)


class FakeRunner:
    """CommandRunner that answers from rules keyed by argv prefix.

    The most recently added matching rule wins.  Unmatched commands
    succeed with empty output unless ``default_returncode`` says
    otherwise.  Every call is recorded.
    """

    def __init__(self, default_returncode: int = 0) -> None:
        self.default_returncode = default_returncode
        self.calls: list[RecordedCall] = []
        self._rules: list[_Rule] = []

    def on(
        self,
        *prefix: str,
        returncode: int = 0,
        stdout: str = "",
        stderr: str = "",
        timed_out: bool = False,
        effect: Callable[[list[str], Path | None], None] | None = None,
        contains: Sequence[str] = (),
    ) -> FakeRunner:
        self._rules.insert(
            0,
            _Rule(
                prefix,
                tuple(contains),
                returncode=returncode,
                stdout=stdout,
                stderr=stderr,
                timed_out=timed_out,
                effect=effect,
            ),
        )
        return self

    def run(
        self,
        args: Sequence[str],
        *,
        cwd: Path | str | None = None,
        env=None,
        timeout: float | None = None,
    ) -> CommandResult:
        argv = [str(a) for a in args]
        cwd_path = Path(cwd) if cwd is not None else None
        self.calls.append(RecordedCall(argv, cwd_path, timeout))
        for rule in self._rules:
            if rule.matches(argv):
                rule.calls += 1
                if rule.effect is not None:
                    rule.effect(argv, cwd_path)
                return CommandResult(
                    args=argv,
                    returncode=124 if rule.timed_out else rule.returncode,
                    stdout=rule.stdout,
                    stderr=rule.stderr,
                    timed_out=rule.timed_out,
                )
        return CommandResult(args=argv, returncode=self.default_returncode)

    def commands(self, *prefix: str) -> list[list[str]]:
        """Recorded argv lists starting with *prefix*."""
        return [c.args for c in self.calls if tuple(c.args[: len(prefix)]) == prefix]

    def called(self, *prefix: str) -> bool:
        return bool(self.commands(*prefix))


def write_artifact(argv: list[str], cwd: Path | None) -> None:
    """Effect for ``mvn package``: drop a jar into ``target/``."""
    assert cwd is not None
    target = cwd / "target"
    target.mkdir(parents=True, exist_ok=True)
    (target / ARTIFACT_NAME).write_bytes(ARTIFACT_BYTES)


class CountingWorkspace(Workspace):
    """Workspace that counts resets."""

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.resets = 0

    def reset(self) -> None:
        self.resets += 1
        super().reset()


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def tmp_dir(tmp_path: Path) -> Path:
    """Provide a temporary directory for test state."""
    return tmp_path


@pytest.fixture
def ledger(tmp_dir: Path) -> RunLedger:
    """Provide a fresh RunLedger backed by a temp SQLite database."""
    return RunLedger(tmp_dir / "ledger.db")


@pytest.fixture
def stage_machine(ledger: RunLedger) -> StageMachine:
    return StageMachine(ledger)


@pytest.fixture
def fake_runner() -> FakeRunner:
    """A runner where every tool succeeds and ``mvn package`` writes a jar."""
    runner = FakeRunner()
    runner.on("git", contains=["rev-parse"], stdout=COMMIT_SHA + "\n")
    runner.on("mvn", "-B", "package", stdout="BUILD SUCCESS", effect=write_artifact)
    return runner


@pytest.fixture
def pipeline_config(tmp_dir: Path) -> PipelineConfig:
    """PipelineConfig with every path under the temp directory."""
    return PipelineConfig(
        repo_url="https://example.com/acme/inventory-management-system.git",
        workspace_root=tmp_dir / "workspaces",
        diagnostics_path=tmp_dir / "diagnostics",
        ledger_db_path=tmp_dir / "ledger.db",
        notifications_path=tmp_dir / "notifications",
        inventory_file=tmp_dir / "inventory.ini",
        playbook_file=tmp_dir / "playbook.yml",
    )
