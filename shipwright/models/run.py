"""PipelineRun: the mutable record of one pipeline invocation.

A run is created by the Orchestrator, mutated stage by stage through the
``StageMachine``, and becomes terminal once its notification is sent.
It is never reused: the build number is its identity.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from shipwright.models.artifacts import Artifact, ImageRef
from shipwright.models.stages import (
    DEFAULT_STAGE_DEFINITIONS,
    PipelinePhase,
    StageDefinition,
    StageStatus,
)


class RunStatus(str, Enum):
    """Overall run outcome.  There is no partial success."""

    PENDING = "pending"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class NotificationKind(str, Enum):
    SUCCESS = "success"
    FAILURE = "failure"


class StageRecord(BaseModel):
    """Status and diagnostics of one stage within a run."""

    model_config = ConfigDict(validate_assignment=True)

    stage_id: str
    display_name: str
    status: StageStatus = StageStatus.PENDING
    started_at: datetime | None = None
    finished_at: datetime | None = None
    output: str = ""
    error: str | None = None

    @property
    def duration_seconds(self) -> float | None:
        if self.started_at is None or self.finished_at is None:
            return None
        return (self.finished_at - self.started_at).total_seconds()


class PipelineRun(BaseModel):
    """One pipeline invocation, identified by its build number."""

    model_config = ConfigDict(validate_assignment=True)

    build_number: int = Field(ge=1)
    source_ref: str
    phase: PipelinePhase = PipelinePhase.IDLE
    stages: list[StageRecord] = []
    started_at: datetime | None = None
    finished_at: datetime | None = None
    commit: str | None = None
    artifact: Artifact | None = None
    image: ImageRef | None = None
    notification: NotificationKind | None = None
    cleanup_error: str | None = None
    notification_error: str | None = None

    @classmethod
    def create(
        cls,
        build_number: int,
        source_ref: str,
        definitions: list[StageDefinition] | None = None,
    ) -> PipelineRun:
        """Create a run with every stage ``PENDING``."""
        defs = definitions if definitions is not None else DEFAULT_STAGE_DEFINITIONS
        return cls(
            build_number=build_number,
            source_ref=source_ref,
            stages=[
                StageRecord(stage_id=d.stage_id, display_name=d.display_name)
                for d in defs
            ],
        )

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def stage(self, stage_id: str) -> StageRecord:
        for record in self.stages:
            if record.stage_id == stage_id:
                return record
        raise KeyError(f"Unknown stage {stage_id!r} in build {self.build_number}")

    def index_of(self, stage_id: str) -> int:
        for i, record in enumerate(self.stages):
            if record.stage_id == stage_id:
                return i
        raise KeyError(f"Unknown stage {stage_id!r} in build {self.build_number}")

    @property
    def current_stage(self) -> StageRecord | None:
        """The running stage, or the last one attempted."""
        attempted = [
            s for s in self.stages
            if s.status not in (StageStatus.PENDING, StageStatus.SKIPPED)
        ]
        return attempted[-1] if attempted else None

    @property
    def failed_stage(self) -> StageRecord | None:
        for record in self.stages:
            if record.status == StageStatus.FAILED:
                return record
        return None

    @property
    def status(self) -> RunStatus:
        statuses = [s.status for s in self.stages]
        if StageStatus.FAILED in statuses:
            return RunStatus.FAILED
        if statuses and all(s == StageStatus.SUCCEEDED for s in statuses):
            return RunStatus.SUCCEEDED
        if all(s == StageStatus.PENDING for s in statuses):
            return RunStatus.PENDING
        return RunStatus.RUNNING

    @property
    def is_terminal(self) -> bool:
        return self.phase == PipelinePhase.NOTIFIED

    @property
    def duration_seconds(self) -> float | None:
        if self.started_at is None or self.finished_at is None:
            return None
        return (self.finished_at - self.started_at).total_seconds()
