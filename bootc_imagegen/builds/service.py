"""Build service module.

This module provides the high-level disk image build API:
- build_disk_image(): run one bootc-image-builder build end to end
- list_builds(), get_build(), delete_build(): build history operations

A build runs as a fixed sequence: validate the request, resolve the disk
image path, record the build, pull the builder image, replace any stale
builder container, start the builder, stream its logs, and wait for it to
exit. The builder container and its volumes are always removed afterwards,
whatever the outcome.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from functools import partial
from pathlib import Path
from typing import TYPE_CHECKING, Any

from docker.errors import DockerException

from bootc_imagegen.builds.artifacts import resolve_image_path, resolve_log_path
from bootc_imagegen.builds.naming import builder_container_name, get_unused_name
from bootc_imagegen.builds.notify import NO, YES, NullNotifier, NullTelemetry
from bootc_imagegen.builds.options import (
    ContainerLaunchSpec,
    create_builder_image_options,
)
from bootc_imagegen.builds.progress import (
    COMPLETE_INCREMENT,
    PULL_INCREMENT,
    REMOVE_PRIOR_INCREMENT,
    START_INCREMENT,
    WAIT_INCREMENT,
    NullProgress,
    progress_increment,
)
from bootc_imagegen.builds.validation import ROOTLESS_HINT, validate_build_request
from bootc_imagegen.config import get_settings
from bootc_imagegen.errors import (
    BootcImageError,
    BuildCancelledError,
    BuildError,
    OutputFolderError,
    PrivilegeError,
    RuntimeAdapterError,
)
from bootc_imagegen.types import BuildStatus

if TYPE_CHECKING:
    from bootc_imagegen.builds.history import BuildHistory
    from bootc_imagegen.builds.notify import Notifier, TelemetryLogger
    from bootc_imagegen.builds.progress import ProgressReporter
    from bootc_imagegen.builds.runner import ContainerRuntime
    from bootc_imagegen.builds.schema import BuildRequest
    from bootc_imagegen.config import Settings

logger = logging.getLogger(__name__)

TELEMETRY_EVENT = "buildDiskImage"
OVERWRITE_PROMPT = "File already exists, do you want to overwrite?"


@dataclass
class BuildOutcome:
    """Result of a disk image build that did not fail.

    Attributes:
        request: Final snapshot of the build request.
        image_path: Path of the disk image.
        log_path: Path of the build log (None if the build was skipped).
        cancelled: The build was removed from history while running.
        skipped: The user declined to overwrite an existing disk image.
    """

    request: BuildRequest
    image_path: Path
    log_path: Path | None = None
    cancelled: bool = False
    skipped: bool = False

    @property
    def success(self) -> bool:
        """Check if the build produced the disk image."""
        return self.request.status == BuildStatus.SUCCESS


def build_disk_image(
    request: BuildRequest,
    history: BuildHistory,
    runtime: ContainerRuntime,
    *,
    notifier: Notifier | None = None,
    progress: ProgressReporter | None = None,
    telemetry: TelemetryLogger | None = None,
    settings: Settings | None = None,
) -> BuildOutcome:
    """Build a disk image from a bootable container image.

    This is the main entry point for the build pipeline. It:
    1. Validates the request and checks the engine runs rootful
    2. Resolves the disk image path, asking before overwriting it
    3. Records the build as creating
    4. Composes the builder container options under an unused name
    5. Writes the build log header
    6. Pulls the builder image and removes a stale builder container
    7. Records the build as running, starts the builder, records its ID
    8. Streams builder logs into the log file and progress reporter
    9. Waits for the builder to exit with code 0
    10. Removes the builder container and its volumes
    11. Records the terminal status and notifies the user

    Args:
        request: Build request snapshot.
        history: Build history to record status transitions into.
        runtime: Container runtime running the builder.
        notifier: User notification surface.
        progress: Progress reporter.
        telemetry: Usage event logger.
        settings: Application settings.

    Returns:
        BuildOutcome. ``skipped`` is set if the user declined to overwrite,
        ``cancelled`` if the build was removed from history while running.

    Raises:
        ValidationError: A required request field is missing.
        PrivilegeError: The engine runs rootless.
        InvalidFormatError: The image type is not recognized.
        OutputFolderError: The output folder cannot be created.
        BuildError: The build failed; carries the build log path.
    """
    if settings is None:
        settings = get_settings()
    if notifier is None:
        notifier = NullNotifier()
    if progress is None:
        progress = NullProgress()
    if telemetry is None:
        telemetry = NullTelemetry()

    telemetry_data: dict[str, Any] = {}

    try:
        validate_build_request(request, runtime)
        image_path = resolve_image_path(request.folder, request.type)
    except BootcImageError as e:
        notifier.show_error(ROOTLESS_HINT if isinstance(e, PrivilegeError) else e.message)
        raise

    if image_path.exists() and notifier.show_warning(OVERWRITE_PROMPT, YES, NO) == NO:
        logger.info("Not overwriting existing disk image %s", image_path)
        return BuildOutcome(request=request, image_path=image_path, skipped=True)

    # The folder is bind mounted into the builder, so it must be absolute
    folder = Path(request.folder).absolute()
    request = request.model_copy(update={"folder": str(folder)})
    try:
        folder.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        folder_error = OutputFolderError(str(folder), e.strerror or str(e))
        notifier.show_error(folder_error.message)
        raise folder_error from e
    log_path = resolve_log_path(folder)

    # Recorded before any container operation so an interrupted build
    # leaves a discoverable record
    request = request.with_status(BuildStatus.CREATING, image_path=str(image_path))
    history.add_or_update_build_info(request)

    telemetry_data["build"] = request.model_dump(mode="json")
    telemetry.log_usage(TELEMETRY_EVENT, telemetry_data)

    container_name = get_unused_name(
        builder_container_name(request.name, settings.builder_container_suffix),
        runtime,
        request.engine_id,
    )
    spec = create_builder_image_options(
        container_name,
        request.image_ref,
        request.type,
        request.arch,
        request.folder,
        str(image_path),
        builder_image=settings.builder_image,
        storage_path=settings.container_storage_path,
    )
    write_build_log_header(log_path, request, spec)

    logger.info(
        "Building %s disk image of %s with container %s",
        request.type,
        request.image_ref,
        spec.name,
    )

    successful = False
    cancelled = False
    error: Exception | None = None
    error_message = ""

    try:
        progress.report(PULL_INCREMENT)
        if not spec.image:
            raise RuntimeAdapterError("No image to pull")
        runtime.pull_image(request.engine_id, spec.image)

        progress.report(REMOVE_PRIOR_INCREMENT)
        if not spec.name:
            raise RuntimeAdapterError("No container name to remove")
        runtime.remove_container_if_exists(request.engine_id, spec.name)

        progress.report(START_INCREMENT)
        request = request.with_status(BuildStatus.RUNNING)
        history.add_or_update_build_info(request)
        container_id = runtime.create_and_start_container(request.engine_id, spec)

        request = request.with_container_id(container_id)
        history.add_or_update_build_info(request)

        runtime.logs_container(
            request.engine_id,
            container_id,
            partial(_handle_log_chunk, log_path, progress),
        )

        progress.report(WAIT_INCREMENT)
        wait_for_builder(runtime, history, request)

        successful = True
        telemetry_data["success"] = True
    except BuildCancelledError as e:
        cancelled = True
        logger.warning(
            "Container %s for build %s:%s has errored out, but there is no "
            "container history. This is likely due to the container being "
            "removed intentionally during the build cycle. Ignoring: %s",
            e.container_id,
            request.name,
            request.arch,
            e.reason,
        )
    except Exception as e:
        error = e
        error_message = str(e) or type(e).__name__
        telemetry_data["error"] = error_message
        logger.error("Build %s failed: %s", request.id, error_message)
    finally:
        cleanup_builder(runtime, request.engine_id, spec.name)

    progress.report(COMPLETE_INCREMENT)
    telemetry.log_usage(TELEMETRY_EVENT, telemetry_data)

    if cancelled:
        return BuildOutcome(
            request=request, image_path=image_path, log_path=log_path, cancelled=True
        )

    if successful:
        request = request.with_status(BuildStatus.SUCCESS)
        _record_terminal_status(history, request)
        notifier.show_info(
            "Success! Your Bootable OS Container has been successfully "
            f"created to {image_path}"
        )
        return BuildOutcome(request=request, image_path=image_path, log_path=log_path)

    if not error_message.endswith("."):
        error_message += "."
    request = request.with_status(BuildStatus.ERROR, error_message=error_message)
    _record_terminal_status(history, request)
    notifier.show_error(
        f"There was an error building the image: {error_message} "
        f"Check logs at {log_path}"
    )
    raise BuildError(error_message, log_path=str(log_path)) from error


def write_build_log_header(
    log_path: Path, request: BuildRequest, spec: ContainerLaunchSpec
) -> None:
    """Replace the build log with a summary of the build.

    A failure to write the log is logged and otherwise ignored.
    """
    lines = [
        "Build Image Log --------",
        f"Image:  {request.name}",
        f"Type:   {request.type}",
        f"Folder: {request.folder}",
        "----------",
        json.dumps(spec.to_dict(), indent=2),
        "----------",
    ]
    try:
        log_path.unlink(missing_ok=True)
        log_path.write_text("\n".join(lines) + "\n")
    except OSError as e:
        logger.debug("Could not write bootc build log %s: %s", log_path, e)


def append_build_log(log_path: Path, data: str) -> None:
    """Append builder output to the build log, ignoring write failures."""
    try:
        with log_path.open("a") as log_file:
            log_file.write(data)
    except OSError as e:
        logger.debug("Could not write bootc build log %s: %s", log_path, e)


def _handle_log_chunk(
    log_path: Path, progress: ProgressReporter, _name: str, data: str
) -> None:
    if not data:
        return
    append_build_log(log_path, data)
    increment = progress_increment(data)
    if increment is not None:
        progress.report(increment)


def history_references_container(history: BuildHistory, container_id: str) -> bool:
    """Check whether any history record points at a builder container.

    If history cannot be read, the container is assumed to be referenced.
    """
    try:
        return any(
            info.build_container_id == container_id for info in history.get_history()
        )
    except Exception:
        logger.exception("Could not read build history")
        return True


def wait_for_builder(
    runtime: ContainerRuntime, history: BuildHistory, request: BuildRequest
) -> None:
    """Wait for the builder container of ``request`` to exit successfully.

    Raises:
        BuildCancelledError: The wait failed and no history record refers
            to the container anymore.
        RuntimeAdapterError: The wait failed for a build still in history.
    """
    container_id = request.build_container_id or ""
    try:
        runtime.wait_for_container_to_exit(request.engine_id, container_id)
    except (RuntimeAdapterError, DockerException) as e:
        if not history_references_container(history, container_id):
            raise BuildCancelledError(container_id, reason=str(e)) from e
        raise


def cleanup_builder(runtime: ContainerRuntime, engine_id: str, name: str) -> None:
    """Remove the builder container and its volumes.

    Failures are logged; they never replace the outcome of the build.
    """
    if not name:
        return
    try:
        runtime.remove_container_and_volumes(engine_id, name)
    except Exception:
        logger.exception("Failed to clean up builder container %s", name)


def _record_terminal_status(history: BuildHistory, request: BuildRequest) -> None:
    try:
        history.add_or_update_build_info(request)
    except Exception:
        logger.exception(
            "Error updating image build %s status to %s",
            request.image_ref,
            request.status.value if request.status else None,
        )


def list_builds(
    history: BuildHistory, status: BuildStatus | None = None
) -> list[BuildRequest]:
    """List builds in history, optionally filtered by status."""
    builds = history.get_history()
    if status is not None:
        builds = [b for b in builds if b.status == status]
    return builds


def get_build(history: BuildHistory, build_id: str) -> BuildRequest:
    """Get one build from history.

    Raises:
        BuildNotFoundError: If the build is not in history.
    """
    return history.get_build_info(build_id)


def delete_build(
    history: BuildHistory, runtime: ContainerRuntime, build_id: str
) -> BuildRequest:
    """Delete a build from history and remove its builder container.

    The record is removed first, so a build still running ends silently
    once its container is gone.

    Returns:
        The deleted build snapshot.

    Raises:
        BuildNotFoundError: If the build is not in history.
        RuntimeAdapterError: If the builder container cannot be removed.
    """
    build = history.get_build_info(build_id)
    history.remove_build_info(build_id)

    if build.build_container_id and build.status in (
        BuildStatus.CREATING,
        BuildStatus.RUNNING,
    ):
        runtime.remove_container_and_volumes(build.engine_id, build.build_container_id)
    return build


__all__ = [
    "OVERWRITE_PROMPT",
    "TELEMETRY_EVENT",
    "BuildOutcome",
    "append_build_log",
    "build_disk_image",
    "cleanup_builder",
    "delete_build",
    "get_build",
    "history_references_container",
    "list_builds",
    "wait_for_builder",
    "write_build_log_header",
]
