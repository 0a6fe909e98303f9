"""Local file sink: writes each run notification to a JSON file.

Layout: {base_path}/build-{build_number}.json
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

from shipwright.models.notifications import Notification

logger = logging.getLogger(__name__)


class LocalFileSink:
    """Writes notifications to local JSON files.

    Parameters
    ----------
    base_path:
        Directory for notification files.  Defaults to
        ``.shipwright/notifications``.
    """

    def __init__(self, base_path: Path | str | None = None) -> None:
        self._base = Path(base_path) if base_path else Path(".shipwright/notifications")

    @property
    def sink_name(self) -> str:
        return "local_file"

    def path_for(self, build_number: int) -> Path:
        return self._base / f"build-{build_number}.json"

    def accept(self, notification: Notification) -> None:
        self._base.mkdir(parents=True, exist_ok=True)
        target = self.path_for(notification.build_number)
        data = notification.model_dump(mode="json")
        target.write_text(json.dumps(data, indent=2, sort_keys=True) + "\n", encoding="utf-8")
        logger.debug("LocalFileSink: wrote build %d to %s", notification.build_number, target)

    def read(self, build_number: int) -> Notification | None:
        path = self.path_for(build_number)
        if not path.exists():
            return None
        return Notification.model_validate_json(path.read_text(encoding="utf-8"))
