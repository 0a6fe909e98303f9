"""Stage and phase models: the pipeline's two state machines.

Each stage of a run carries a ``StageStatus``; the run as a whole moves
through ``PipelinePhase`` values.  Both transition tables are enforced
structurally by ``StageMachine``.
"""

from __future__ import annotations

from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict


class StageStatus(str, Enum):
    """Per-stage status within a single pipeline run."""

    PENDING = "pending"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    SKIPPED = "skipped"


# SUCCEEDED, FAILED and SKIPPED are terminal; the orchestrator never retries.
VALID_TRANSITIONS: dict[StageStatus, set[StageStatus]] = {
    StageStatus.PENDING: {StageStatus.RUNNING, StageStatus.SKIPPED},
    StageStatus.RUNNING: {StageStatus.SUCCEEDED, StageStatus.FAILED},
    StageStatus.SUCCEEDED: set(),
    StageStatus.FAILED: set(),
    StageStatus.SKIPPED: set(),
}


class PipelinePhase(str, Enum):
    """Run-level phases.  ``IDLE`` is initial, ``NOTIFIED`` is terminal."""

    IDLE = "idle"
    CHECKOUT = "checkout"
    BUILD = "build"
    TEST = "test"
    PACKAGE = "package"
    IMAGE = "image"
    DEPLOY = "deploy"
    CLEANING_UP = "cleaning_up"
    NOTIFIED = "notified"


STAGE_PHASES: list[PipelinePhase] = [
    PipelinePhase.CHECKOUT,
    PipelinePhase.BUILD,
    PipelinePhase.TEST,
    PipelinePhase.PACKAGE,
    PipelinePhase.IMAGE,
    PipelinePhase.DEPLOY,
]


def _build_phase_transitions() -> dict[PipelinePhase, set[PipelinePhase]]:
    transitions: dict[PipelinePhase, set[PipelinePhase]] = {
        PipelinePhase.IDLE: {STAGE_PHASES[0]},
    }
    for current, following in zip(STAGE_PHASES, STAGE_PHASES[1:]):
        # Linear edge plus the failure shortcut straight to cleanup.
        transitions[current] = {following, PipelinePhase.CLEANING_UP}
    transitions[STAGE_PHASES[-1]] = {PipelinePhase.CLEANING_UP}
    transitions[PipelinePhase.CLEANING_UP] = {PipelinePhase.NOTIFIED}
    transitions[PipelinePhase.NOTIFIED] = set()
    return transitions


PHASE_TRANSITIONS: dict[PipelinePhase, set[PipelinePhase]] = _build_phase_transitions()


class StageDefinition(BaseModel):
    """Immutable description of one pipeline stage.

    ``actions`` lists the external operations the stage performs, in
    order; it is informational and shown by the run monitor.
    """

    model_config = ConfigDict(frozen=True)

    stage_id: str
    display_name: str
    phase: PipelinePhase
    actions: tuple[str, ...] = ()
    failure_policy: Literal["halt"] = "halt"


DEFAULT_STAGE_DEFINITIONS: list[StageDefinition] = [
    StageDefinition(
        stage_id="checkout",
        display_name="Checkout",
        phase=PipelinePhase.CHECKOUT,
        actions=("git clone/fetch", "git checkout", "git rev-parse HEAD"),
    ),
    StageDefinition(
        stage_id="build",
        display_name="Build",
        phase=PipelinePhase.BUILD,
        actions=("mvn clean compile",),
    ),
    StageDefinition(
        stage_id="test",
        display_name="Test",
        phase=PipelinePhase.TEST,
        actions=("mvn test",),
    ),
    StageDefinition(
        stage_id="package",
        display_name="Package",
        phase=PipelinePhase.PACKAGE,
        actions=("mvn package -DskipTests", "locate artifact"),
    ),
    StageDefinition(
        stage_id="image",
        display_name="Docker Image",
        phase=PipelinePhase.IMAGE,
        actions=("docker info", "docker build"),
    ),
    StageDefinition(
        stage_id="deploy",
        display_name="Deploy",
        phase=PipelinePhase.DEPLOY,
        actions=("ansible-playbook --tags deploy",),
    ),
]
