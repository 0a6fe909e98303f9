"""Abstract base stage with an enforced lifecycle.

Every concrete stage inherits from BaseStage and implements only
``execute()``.  The ``run_stage()`` wrapper is **not overridable**: it
announces the stage, arms the stage deadline, converts any error into a
``StageFailure`` carrying the stage id and captured output, and records
the result on the run context for downstream stages.
"""

from __future__ import annotations

import abc
import logging
import time
from typing import Any, final

from shipwright.core.shell import CommandResult

logger = logging.getLogger(__name__)

_OUTPUT_TAIL_CHARS = 4000


class StageFailure(RuntimeError):
    """A stage could not complete.

    Attributes
    ----------
    stage_id:
        The failing stage.
    reason:
        One-line description.
    output:
        Captured console output, enough to diagnose without re-running.
    """

    def __init__(self, stage_id: str, reason: str, output: str = "") -> None:
        super().__init__(f"Stage {stage_id} failed: {reason}")
        self.stage_id = stage_id
        self.reason = reason
        self.output = output


def tail(text: str, limit: int = _OUTPUT_TAIL_CHARS) -> str:
    """Last *limit* characters of *text*, which is where build tools put errors."""
    return text if len(text) <= limit else "..." + text[-limit:]


class BaseStage(abc.ABC):
    """Abstract base for all pipeline stages.

    Subclasses **must** implement ``stage_id``, ``display_name`` and
    ``execute(run_context)``.  Subclasses **must not** override
    ``run_stage()``.
    """

    @property
    @abc.abstractmethod
    def stage_id(self) -> str:
        """Unique stage identifier (e.g. ``'build'``)."""
        ...

    @property
    @abc.abstractmethod
    def display_name(self) -> str:
        ...

    @abc.abstractmethod
    def execute(self, run_context: dict[str, Any]) -> dict[str, Any]:
        """Execute the stage's core logic.

        Parameters
        ----------
        run_context:
            Mutable dict carrying run-wide state: ``run`` (the
            PipelineRun), ``workspace``, ``stage_timeouts``, prior stage
            results under ``stage_results``, and outputs such as
            ``artifact``.

        Returns
        -------
        dict:
            Structured result; an ``output`` key, when present, is kept
            on the stage record.
        """
        ...

    # ------------------------------------------------------------------
    # Lifecycle: NOT overridable
    # ------------------------------------------------------------------

    @final
    def run_stage(self, run_context: dict[str, Any]) -> dict[str, Any]:
        """Run the stage under its deadline.  **Do not override.**

        Raises
        ------
        StageFailure
            For any failure inside ``execute()``.
        """
        timeout = run_context.get("stage_timeouts", {}).get(self.stage_id)
        run_context["deadline"] = time.monotonic() + timeout if timeout else None
        logger.info("%s [%s] started", self.display_name, self.stage_id)
        start = time.monotonic()

        try:
            result = self.execute(run_context)
        except StageFailure as exc:
            logger.error("%s [%s] failed: %s", self.display_name, self.stage_id, exc.reason)
            raise
        except Exception as exc:
            logger.error("%s [%s] failed: %s", self.display_name, self.stage_id, exc)
            raise StageFailure(self.stage_id, str(exc)) from exc
        finally:
            run_context.pop("deadline", None)

        run_context.setdefault("stage_results", {})[self.stage_id] = result
        logger.info(
            "%s [%s] succeeded in %.1fs",
            self.display_name, self.stage_id, time.monotonic() - start,
        )
        return result

    # ------------------------------------------------------------------
    # Helpers for subclasses
    # ------------------------------------------------------------------

    def remaining_time(self, run_context: dict[str, Any]) -> float | None:
        """Seconds left before the stage deadline, or ``None`` if unbounded."""
        deadline = run_context.get("deadline")
        if deadline is None:
            return None
        remaining = deadline - time.monotonic()
        if remaining <= 0:
            raise StageFailure(self.stage_id, "stage deadline exceeded")
        return remaining

    def require(self, result: CommandResult, what: str) -> CommandResult:
        """Raise ``StageFailure`` unless *result* succeeded."""
        if result.timed_out:
            raise StageFailure(
                self.stage_id, f"{what} timed out", tail(result.output)
            )
        if not result.success:
            raise StageFailure(
                self.stage_id,
                f"{what} exited with code {result.returncode}",
                tail(result.output),
            )
        return result

    def __repr__(self) -> str:
        return f"<{type(self).__name__} stage_id={self.stage_id!r}>"
