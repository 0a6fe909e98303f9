"""Deployment target model."""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, ConfigDict


class InventoryTarget(BaseModel):
    """Declarative list of deployment hosts, supplied by the operator.

    ``inventory_file`` is an Ansible inventory; ``limit`` optionally
    restricts the run to a host or group pattern inside it.  The
    pipeline only reads it.
    """

    model_config = ConfigDict(frozen=True)

    inventory_file: Path
    limit: str | None = None
