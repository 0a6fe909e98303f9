"""Append-only Run Ledger backed by SQLite.

The ledger records every pipeline run and every stage/phase transition.
It is the source of truth for run history, for build-number uniqueness,
and for rollback: only a build whose run succeeded can be redeployed.

Design:
- Build numbers are strictly increasing; reuse is rejected.
- Transitions are append-only; there is no update or delete for them.
- WAL journal mode for concurrent readers.
"""

from __future__ import annotations

import sqlite3
from datetime import datetime, timezone
from pathlib import Path

from pydantic import BaseModel, ConfigDict

from shipwright.models.run import PipelineRun, RunStatus


# ---------------------------------------------------------------------------
# DDL
# ---------------------------------------------------------------------------

_CREATE_RUNS = """
CREATE TABLE IF NOT EXISTS pipeline_runs (
    build_number   INTEGER PRIMARY KEY,
    source_ref     TEXT NOT NULL,
    status         TEXT NOT NULL,
    started_at     TEXT NOT NULL,
    finished_at    TEXT,
    commit_sha     TEXT,
    image_ref      TEXT,
    failed_stage   TEXT,
    notification   TEXT
);
"""

_CREATE_TRANSITIONS = """
CREATE TABLE IF NOT EXISTS transitions (
    id             INTEGER PRIMARY KEY AUTOINCREMENT,
    build_number   INTEGER NOT NULL REFERENCES pipeline_runs(build_number),
    subject        TEXT NOT NULL,
    transition     TEXT NOT NULL,
    timestamp_utc  TEXT NOT NULL,
    detail         TEXT NOT NULL DEFAULT ''
);
"""

_CREATE_IDX_BUILD = """
CREATE INDEX IF NOT EXISTS idx_transitions_build ON transitions(build_number, id);
"""


class BuildNumberError(RuntimeError):
    """Raised when a build number is not greater than every recorded one."""


class RunSummary(BaseModel):
    """One row of run history."""

    model_config = ConfigDict(frozen=True)

    build_number: int
    source_ref: str
    status: RunStatus
    started_at: datetime
    finished_at: datetime | None = None
    commit: str | None = None
    image_ref: str | None = None
    failed_stage: str | None = None
    notification: str | None = None


class TransitionRecord(BaseModel):
    """One recorded stage or phase transition."""

    model_config = ConfigDict(frozen=True)

    build_number: int
    subject: str  # stage_id, or "phase" for run-level phase changes
    transition: str  # "from->to", e.g. "pending->running"
    timestamp_utc: datetime
    detail: str = ""


class RunLedger:
    """SQLite-backed history of pipeline runs.

    Parameters
    ----------
    db_path:
        Path to the SQLite database file.  Created if it does not exist.
    """

    def __init__(self, db_path: Path) -> None:
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_schema()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self._db_path), check_same_thread=False)
        conn.execute("PRAGMA journal_mode=WAL")
        conn.execute("PRAGMA foreign_keys=ON")
        return conn

    def _init_schema(self) -> None:
        with self._connect() as conn:
            conn.execute(_CREATE_RUNS)
            conn.execute(_CREATE_TRANSITIONS)
            conn.execute(_CREATE_IDX_BUILD)
            conn.commit()

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def record_start(self, run: PipelineRun) -> None:
        """Register a new run.

        Raises
        ------
        BuildNumberError
            If ``run.build_number`` is not strictly greater than every
            build number already recorded.
        """
        started = run.started_at or datetime.now(timezone.utc)
        with self._connect() as conn:
            # Take the write lock before reading MAX so concurrent starts serialize.
            conn.execute("BEGIN IMMEDIATE")
            row = conn.execute("SELECT MAX(build_number) FROM pipeline_runs").fetchone()
            latest = row[0] if row and row[0] is not None else 0
            if run.build_number <= latest:
                raise BuildNumberError(
                    f"Build number {run.build_number} must be greater than the "
                    f"latest recorded build {latest}; image tags are never reused."
                )
            try:
                conn.execute(
                    """
                    INSERT INTO pipeline_runs (build_number, source_ref, status, started_at)
                    VALUES (?, ?, ?, ?)
                    """,
                    (run.build_number, run.source_ref, RunStatus.RUNNING.value, started.isoformat()),
                )
            except sqlite3.IntegrityError as exc:
                raise BuildNumberError(
                    f"Build number {run.build_number} is already recorded"
                ) from exc
            conn.commit()

    def record_transition(
        self,
        build_number: int,
        subject: str,
        transition: str,
        detail: str = "",
    ) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO transitions (build_number, subject, transition, timestamp_utc, detail)
                VALUES (?, ?, ?, ?, ?)
                """,
                (
                    build_number,
                    subject,
                    transition,
                    datetime.now(timezone.utc).isoformat(),
                    detail,
                ),
            )
            conn.commit()

    def record_finish(self, run: PipelineRun) -> None:
        """Persist the terminal state of a run."""
        failed = run.failed_stage
        finished = run.finished_at or datetime.now(timezone.utc)
        with self._connect() as conn:
            conn.execute(
                """
                UPDATE pipeline_runs
                   SET status = ?, finished_at = ?, commit_sha = ?, image_ref = ?,
                       failed_stage = ?, notification = ?
                 WHERE build_number = ?
                """,
                (
                    run.status.value,
                    finished.isoformat(),
                    run.commit,
                    run.image.reference if run.image else None,
                    failed.stage_id if failed else None,
                    run.notification.value if run.notification else None,
                    run.build_number,
                ),
            )
            conn.commit()

    # ------------------------------------------------------------------
    # Queries (read-only)
    # ------------------------------------------------------------------

    def latest_build_number(self) -> int:
        with self._connect() as conn:
            row = conn.execute("SELECT MAX(build_number) FROM pipeline_runs").fetchone()
        return row[0] if row and row[0] is not None else 0

    def get_run(self, build_number: int) -> RunSummary | None:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM pipeline_runs WHERE build_number = ?", (build_number,)
            ).fetchone()
        return self._row_to_summary(row) if row else None

    def list_runs(self, limit: int = 20) -> list[RunSummary]:
        """Most recent runs first."""
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT * FROM pipeline_runs ORDER BY build_number DESC LIMIT ?",
                (limit,),
            ).fetchall()
        return [self._row_to_summary(row) for row in rows]

    def last_successful(self, before: int | None = None) -> RunSummary | None:
        """Latest succeeded run, optionally strictly before *before*."""
        query = "SELECT * FROM pipeline_runs WHERE status = ?"
        params: list[object] = [RunStatus.SUCCEEDED.value]
        if before is not None:
            query += " AND build_number < ?"
            params.append(before)
        query += " ORDER BY build_number DESC LIMIT 1"
        with self._connect() as conn:
            row = conn.execute(query, params).fetchone()
        return self._row_to_summary(row) if row else None

    def get_transitions(self, build_number: int) -> list[TransitionRecord]:
        with self._connect() as conn:
            rows = conn.execute(
                """
                SELECT build_number, subject, transition, timestamp_utc, detail
                  FROM transitions WHERE build_number = ? ORDER BY id ASC
                """,
                (build_number,),
            ).fetchall()
        return [
            TransitionRecord(
                build_number=r[0],
                subject=r[1],
                transition=r[2],
                timestamp_utc=datetime.fromisoformat(r[3]),
                detail=r[4],
            )
            for r in rows
        ]

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _row_to_summary(row: tuple) -> RunSummary:
        return RunSummary(
            build_number=row[0],
            source_ref=row[1],
            status=RunStatus(row[2]),
            started_at=datetime.fromisoformat(row[3]),
            finished_at=datetime.fromisoformat(row[4]) if row[4] else None,
            commit=row[5],
            image_ref=row[6],
            failed_stage=row[7],
            notification=row[8],
        )
