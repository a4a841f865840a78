"""Durable build history.

The history maps a build identity to the latest BuildRequest snapshot of
that build. It is backed by the BuildRecord table; every write commits
in its own transaction so a status transition is durable before the
orchestrator moves on to the next container operation.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from sqlalchemy import select

from bootc_imagegen.builds.artifacts import resolve_log_path
from bootc_imagegen.builds.models import BuildRecord
from bootc_imagegen.builds.schema import BuildRequest
from bootc_imagegen.db import get_session
from bootc_imagegen.errors import BuildNotFoundError
from bootc_imagegen.types import BuildStatus

if TYPE_CHECKING:
    from sqlalchemy.orm import Session, sessionmaker

logger = logging.getLogger(__name__)


def record_to_request(record: BuildRecord) -> BuildRequest:
    """Convert a BuildRecord row into a BuildRequest snapshot."""
    return BuildRequest(
        id=record.id,
        name=record.name,
        tag=record.tag,
        type=record.type,
        engine_id=record.engine_id,
        folder=record.folder,
        arch=record.arch,
        status=BuildStatus(record.status) if record.status else None,
        build_container_id=record.build_container_id,
        image_path=record.image_path,
        error_message=record.error_message,
    )


def _apply_request(record: BuildRecord, request: BuildRequest) -> None:
    record.name = request.name
    record.tag = request.tag
    record.type = request.type
    record.engine_id = request.engine_id
    record.folder = request.folder
    record.arch = request.arch
    record.status = (request.status or BuildStatus.CREATING).value
    record.build_container_id = request.build_container_id
    record.image_path = request.image_path
    record.error_message = request.error_message
    record.log_path = str(resolve_log_path(request.folder)) if request.folder else None


class BuildHistory:
    """Build history backed by a SQLAlchemy session factory.

    Example:
        ```python
        history = BuildHistory(open_history_db())
        history.add_or_update_build_info(request)
        ```
    """

    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self._session_factory = session_factory

    def add_or_update_build_info(self, request: BuildRequest) -> None:
        """Insert or update the record for ``request.id``.

        Args:
            request: Snapshot to persist.
        """
        with get_session(self._session_factory) as session:
            record = session.get(BuildRecord, request.id)
            if record is None:
                record = BuildRecord(id=request.id)
                session.add(record)
            _apply_request(record, request)

        logger.debug(
            "Recorded build %s (%s) status=%s",
            request.id,
            request.image_ref,
            request.status.value if request.status else None,
        )

    def get_history(self) -> list[BuildRequest]:
        """Return all build snapshots, most recent first."""
        with get_session(self._session_factory) as session:
            stmt = select(BuildRecord).order_by(
                BuildRecord.created_at.desc(), BuildRecord.id
            )
            return [record_to_request(r) for r in session.execute(stmt).scalars()]

    def get_build_info(self, build_id: str) -> BuildRequest:
        """Return the snapshot of one build.

        Raises:
            BuildNotFoundError: If no record exists for ``build_id``.
        """
        with get_session(self._session_factory) as session:
            record = session.get(BuildRecord, build_id)
            if record is None:
                raise BuildNotFoundError(build_id)
            return record_to_request(record)

    def remove_build_info(self, build_id: str) -> None:
        """Delete the record of one build.

        Removing the record of a running build makes the orchestrator treat
        the build as cancelled once its container goes away.

        Raises:
            BuildNotFoundError: If no record exists for ``build_id``.
        """
        with get_session(self._session_factory) as session:
            record = session.get(BuildRecord, build_id)
            if record is None:
                raise BuildNotFoundError(build_id)
            session.delete(record)
        logger.info("Removed build %s from history", build_id)


__all__ = ["BuildHistory", "record_to_request"]
