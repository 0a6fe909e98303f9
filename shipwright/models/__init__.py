"""Shipwright data models: all Pydantic v2; value types are frozen."""

from shipwright.models.artifacts import Artifact, ImageRef
from shipwright.models.config import PipelineConfig
from shipwright.models.deployment import InventoryTarget
from shipwright.models.notifications import Notification
from shipwright.models.run import NotificationKind, PipelineRun, RunStatus, StageRecord
from shipwright.models.stages import (
    DEFAULT_STAGE_DEFINITIONS,
    PHASE_TRANSITIONS,
    VALID_TRANSITIONS,
    PipelinePhase,
    StageDefinition,
    StageStatus,
)
from shipwright.models.tools import DEFAULT_TOOL_CATALOG, ToolOutcome, ToolReport, ToolSpec

__all__ = [
    # stages
    "StageStatus",
    "PipelinePhase",
    "StageDefinition",
    "VALID_TRANSITIONS",
    "PHASE_TRANSITIONS",
    "DEFAULT_STAGE_DEFINITIONS",
    # run
    "PipelineRun",
    "StageRecord",
    "RunStatus",
    "NotificationKind",
    "Notification",
    # artifacts
    "Artifact",
    "ImageRef",
    "InventoryTarget",
    # tools
    "ToolSpec",
    "ToolReport",
    "ToolOutcome",
    "DEFAULT_TOOL_CATALOG",
    # config
    "PipelineConfig",
]
