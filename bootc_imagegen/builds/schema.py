"""Pydantic models for build requests.

A BuildRequest is an immutable snapshot of one disk image build. The
orchestrator never mutates a request; each status transition produces a
new snapshot which is what gets recorded into the build history.
"""

import uuid

from pydantic import BaseModel, ConfigDict, Field

from bootc_imagegen.types import BuildStatus


def _new_build_id() -> str:
    """Return a fresh build identifier."""
    return uuid.uuid4().hex


class BuildRequest(BaseModel):
    """Snapshot of a disk image build request.

    Required fields are typed as plain strings defaulting to empty so
    that missing values reach the validator, which reports them in a
    fixed order with field-specific messages.

    Attributes:
        id: Build identity, the key of the history record.
        name: Source container image name (e.g. quay.io/org/os).
        tag: Source container image tag.
        type: Disk image type (qcow2, ami, raw, iso).
        engine_id: Opaque identifier of the container engine.
        folder: Absolute output directory.
        arch: Target architecture.
        status: Build status, set only by the orchestrator.
        build_container_id: ID of the builder container once created.
        image_path: Resolved disk image path.
        error_message: Terminal error message for failed builds.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    id: str = Field(default_factory=_new_build_id)
    name: str = Field(default="", description="Source image name")
    tag: str = Field(default="", description="Source image tag")
    type: str = Field(default="", description="Disk image type")
    engine_id: str = Field(default="", description="Container engine identifier")
    folder: str = Field(default="", description="Output directory")
    arch: str = Field(default="", description="Target architecture")
    status: BuildStatus | None = Field(default=None)
    build_container_id: str | None = Field(default=None)
    image_path: str | None = Field(default=None)
    error_message: str | None = Field(default=None)

    @property
    def image_ref(self) -> str:
        """Return the source image reference (name:tag)."""
        return f"{self.name}:{self.tag}"

    def with_status(self, status: BuildStatus, **changes: object) -> "BuildRequest":
        """Return a new snapshot with the given status and field changes."""
        return self.model_copy(update={"status": status, **changes})

    def with_container_id(self, container_id: str) -> "BuildRequest":
        """Return a new snapshot bound to a builder container."""
        return self.model_copy(update={"build_container_id": container_id})


__all__ = ["BuildRequest"]
