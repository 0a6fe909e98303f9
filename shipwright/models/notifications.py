"""Run-completion notification: exactly one per completed run."""

from __future__ import annotations

from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field

from shipwright.models.run import NotificationKind, PipelineRun
from shipwright.models.stages import StageStatus

SUCCESS_MESSAGE = "Pipeline succeeded"
FAILURE_MESSAGE = "Pipeline failed"


class StageTiming(BaseModel):
    model_config = ConfigDict(frozen=True)

    stage_id: str
    status: StageStatus
    duration_seconds: float | None = None


class Notification(BaseModel):
    """The single success-or-failure message sent when a run ends."""

    model_config = ConfigDict(frozen=True)

    build_number: int
    kind: NotificationKind
    source_ref: str
    message: str
    image_reference: str | None = None
    failed_stage: str | None = None
    output: str = ""
    duration_seconds: float | None = None
    stages: list[StageTiming] = []
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )

    @property
    def succeeded(self) -> bool:
        return self.kind == NotificationKind.SUCCESS

    @classmethod
    def for_run(cls, run: PipelineRun) -> Notification:
        """Build the notification for a run that has finished its stages."""
        failed = run.failed_stage
        stages = [
            StageTiming(
                stage_id=s.stage_id,
                status=s.status,
                duration_seconds=s.duration_seconds,
            )
            for s in run.stages
        ]
        if failed is None:
            return cls(
                build_number=run.build_number,
                kind=NotificationKind.SUCCESS,
                source_ref=run.source_ref,
                message=SUCCESS_MESSAGE,
                image_reference=run.image.reference if run.image else None,
                duration_seconds=run.duration_seconds,
                stages=stages,
            )
        return cls(
            build_number=run.build_number,
            kind=NotificationKind.FAILURE,
            source_ref=run.source_ref,
            message=f"{FAILURE_MESSAGE} at stage {failed.display_name}: {failed.error or 'unknown error'}",
            failed_stage=failed.stage_id,
            output=failed.output,
            duration_seconds=run.duration_seconds,
            stages=stages,
        )
