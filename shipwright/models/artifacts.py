"""Build outputs: the packaged artifact and the container image reference."""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Artifact(BaseModel):
    """A packaged build output produced by the Package stage.

    The bytes live on disk at ``path``; ``content_address`` is the
    ``"sha256:<hex>"`` digest recorded at packaging time and re-checked
    by the Image stage before the artifact is consumed.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    path: Path
    content_address: str
    size_bytes: int = 0
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )


class ImageRef(BaseModel):
    """Identity of a built container image.

    The tag is always the decimal build number of the run that built it.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    tag: str

    @field_validator("tag")
    @classmethod
    def _tag_is_build_number(cls, value: str) -> str:
        if not value.isdigit() or int(value) < 1:
            raise ValueError(f"image tag must be a positive build number, got {value!r}")
        return value

    @classmethod
    def for_build(cls, name: str, build_number: int) -> ImageRef:
        return cls(name=name, tag=str(build_number))

    @property
    def build_number(self) -> int:
        return int(self.tag)

    @property
    def reference(self) -> str:
        """``name:tag`` as understood by the container engine."""
        return f"{self.name}:{self.tag}"

    def __str__(self) -> str:
        return self.reference
