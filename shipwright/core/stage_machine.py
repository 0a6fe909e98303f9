"""Deterministic stage/phase state machine for a PipelineRun.

Enforces:
- Valid stage status transitions only (VALID_TRANSITIONS table)
- Ordering: a stage may only start once every earlier stage succeeded
- Cascade skipping of later stages when a stage fails
- Valid run phase transitions only (PHASE_TRANSITIONS table)
- Every transition recorded in the Run Ledger, when one is attached
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from shipwright.core.run_ledger import RunLedger
from shipwright.models.run import PipelineRun
from shipwright.models.stages import (
    PHASE_TRANSITIONS,
    VALID_TRANSITIONS,
    PipelinePhase,
    StageStatus,
)

logger = logging.getLogger(__name__)


class InvalidTransitionError(RuntimeError):
    """Raised when a requested state transition is not valid."""


class StageOrderError(RuntimeError):
    """Raised when a stage would start before an earlier stage succeeded."""


class StageMachine:
    """Applies validated transitions to a ``PipelineRun``.

    Parameters
    ----------
    ledger:
        Optional Run Ledger to record transitions into.
    """

    def __init__(self, ledger: RunLedger | None = None) -> None:
        self._ledger = ledger

    # ------------------------------------------------------------------
    # Stage transitions
    # ------------------------------------------------------------------

    def transition(
        self,
        run: PipelineRun,
        stage_id: str,
        target: StageStatus,
        *,
        output: str = "",
        error: str | None = None,
    ) -> None:
        """Move a stage to *target*.

        Validates:
        1. The transition is allowed by VALID_TRANSITIONS.
        2. If target is RUNNING, every earlier stage has SUCCEEDED.
        3. If target is FAILED, every later PENDING stage becomes SKIPPED.
        """
        record = run.stage(stage_id)
        current = record.status

        allowed = VALID_TRANSITIONS.get(current, set())
        if target not in allowed:
            raise InvalidTransitionError(
                f"Cannot transition {stage_id} from {current.value} to {target.value}. "
                f"Allowed: {sorted(s.value for s in allowed)}"
            )

        index = run.index_of(stage_id)
        if target == StageStatus.RUNNING:
            blocking = [
                f"{s.stage_id} is {s.status.value}"
                for s in run.stages[:index]
                if s.status != StageStatus.SUCCEEDED
            ]
            if blocking:
                raise StageOrderError(
                    f"Cannot start {stage_id}: earlier stages not succeeded. "
                    f"Blocked by: {'; '.join(blocking)}"
                )

        now = datetime.now(timezone.utc)
        if target == StageStatus.RUNNING:
            record.started_at = now
        elif target in (StageStatus.SUCCEEDED, StageStatus.FAILED):
            record.finished_at = now
        if output:
            record.output = output
        if error is not None:
            record.error = error
        record.status = target
        self._record(run.build_number, stage_id, current, target, error or "")

        if target == StageStatus.FAILED:
            for later in run.stages[index + 1:]:
                if later.status == StageStatus.PENDING:
                    later.status = StageStatus.SKIPPED
                    self._record(
                        run.build_number,
                        later.stage_id,
                        StageStatus.PENDING,
                        StageStatus.SKIPPED,
                        f"upstream {stage_id} failed",
                    )

    # ------------------------------------------------------------------
    # Phase transitions
    # ------------------------------------------------------------------

    def advance_phase(self, run: PipelineRun, target: PipelinePhase) -> None:
        """Move the run to *target* phase, enforcing PHASE_TRANSITIONS."""
        current = run.phase
        allowed = PHASE_TRANSITIONS.get(current, set())
        if target not in allowed:
            raise InvalidTransitionError(
                f"Cannot move build {run.build_number} from phase {current.value} "
                f"to {target.value}. Allowed: {sorted(p.value for p in allowed)}"
            )
        run.phase = target
        if self._ledger is not None:
            self._ledger.record_transition(
                run.build_number, "phase", f"{current.value}->{target.value}"
            )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _record(
        self,
        build_number: int,
        stage_id: str,
        current: StageStatus,
        target: StageStatus,
        detail: str,
    ) -> None:
        logger.debug("build %d: %s %s->%s", build_number, stage_id, current.value, target.value)
        if self._ledger is not None:
            self._ledger.record_transition(
                build_number, stage_id, f"{current.value}->{target.value}", detail
            )
