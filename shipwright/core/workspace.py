"""Per-run workspaces.

Each run owns ``<root>/build-<n>`` exclusively for its duration, so
concurrent runs on different build numbers never share files.  Resetting
the workspace is the Orchestrator's cleanup action.
"""

from __future__ import annotations

import logging
import shutil
from pathlib import Path

logger = logging.getLogger(__name__)


class Workspace:
    """Working directory for a single pipeline run.

    Parameters
    ----------
    root:
        Directory holding all run workspaces.
    build_number:
        The owning run.
    diagnostics_root:
        Where files preserved at reset time are copied to, under
        ``<diagnostics_root>/<build_number>/``.
    """

    def __init__(self, root: Path, build_number: int, diagnostics_root: Path | None = None) -> None:
        self.root = Path(root)
        self.build_number = build_number
        self.path = self.root / f"build-{build_number}"
        self.diagnostics_root = Path(diagnostics_root) if diagnostics_root else None

    @property
    def source_dir(self) -> Path:
        return self.path / "source"

    def prepare(self) -> Path:
        self.path.mkdir(parents=True, exist_ok=True)
        return self.path

    def preserve(self, files: list[Path]) -> list[Path]:
        """Copy *files* into the diagnostics directory.  Returns the copies."""
        if self.diagnostics_root is None:
            return []
        target_dir = self.diagnostics_root / str(self.build_number)
        copies: list[Path] = []
        for file in files:
            if not file.is_file():
                continue
            target_dir.mkdir(parents=True, exist_ok=True)
            target = target_dir / file.name
            shutil.copy2(file, target)
            copies.append(target)
            logger.info("Preserved %s for diagnosis at %s", file.name, target)
        return copies

    def reset(self) -> None:
        """Remove the workspace directory and everything in it."""
        if self.path.exists():
            shutil.rmtree(self.path)
            logger.info("Workspace %s removed", self.path)
