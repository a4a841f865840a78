"""Build ORM models.

This module defines the BuildRecord model used as the durable build
history. Records are keyed by build identity and updated at every
status transition of a build.
"""

from datetime import datetime

from sqlalchemy import DateTime, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from bootc_imagegen.db import Base
from bootc_imagegen.types import BuildStatus


class BuildRecord(Base):
    """ORM model for disk image build records.

    Attributes:
        id: Build identity (primary key).
        name: Source container image name.
        tag: Source container image tag.
        type: Disk image type.
        engine_id: Container engine identifier.
        folder: Output directory.
        arch: Target architecture.
        status: Build status (creating, running, success, error).
        build_container_id: ID of the builder container, kept after cleanup.
        image_path: Resolved disk image path.
        log_path: Path to the build log file.
        error_message: Error message if the build failed.
        created_at: Timestamp when the record was created.
        updated_at: Timestamp of the last update.
    """

    __tablename__ = "build_records"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)

    # Request
    name: Mapped[str] = mapped_column(String(500), nullable=False)
    tag: Mapped[str] = mapped_column(String(200), nullable=False)
    type: Mapped[str] = mapped_column(String(20), nullable=False)
    engine_id: Mapped[str] = mapped_column(String(200), nullable=False)
    folder: Mapped[str] = mapped_column(String(500), nullable=False)
    arch: Mapped[str] = mapped_column(String(50), nullable=False)

    # Status
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=BuildStatus.CREATING.value, index=True
    )
    build_container_id: Mapped[str | None] = mapped_column(
        String(128), nullable=True, index=True
    )

    # Outputs
    image_path: Mapped[str | None] = mapped_column(String(500), nullable=True)
    log_path: Mapped[str | None] = mapped_column(String(500), nullable=True)
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, server_default=func.now()
    )
    updated_at: Mapped[datetime | None] = mapped_column(
        DateTime, nullable=True, onupdate=func.now()
    )

    def __repr__(self) -> str:
        """Return string representation of BuildRecord."""
        return (
            f"<BuildRecord(id='{self.id}', image='{self.name}:{self.tag}', "
            f"type='{self.type}', status='{self.status}')>"
        )


__all__ = ["BuildRecord"]
