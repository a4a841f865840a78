"""Build request precondition checks."""

from __future__ import annotations

from typing import TYPE_CHECKING

from bootc_imagegen.errors import PrivilegeError, ValidationError

if TYPE_CHECKING:
    from bootc_imagegen.builds.runner import ContainerRuntime
    from bootc_imagegen.builds.schema import BuildRequest

# Checked in order; the first missing field is reported
REQUIRED_FIELDS: tuple[tuple[str, str], ...] = (
    ("name", "Bootc image name is required."),
    ("tag", "Bootc image tag is required."),
    ("type", "Bootc image type is required."),
    ("engine_id", "Bootc image engineId is required."),
    ("folder", "Bootc image folder is required."),
    ("arch", "Bootc image architecture is required."),
)

ROOTLESS_HINT = (
    "The podman machine is not set as rootful. Please recreate the podman "
    "machine with rootful privileges set and try again."
)


def check_required_fields(request: BuildRequest) -> None:
    """Ensure every required field of the request is set.

    Raises:
        ValidationError: For the first missing field.
    """
    for field_name, message in REQUIRED_FIELDS:
        if not getattr(request, field_name):
            raise ValidationError(message, field=field_name)


def check_rootful(request: BuildRequest, runtime: ContainerRuntime) -> None:
    """Ensure the target engine runs rootful.

    Raises:
        PrivilegeError: If the engine is rootless.
    """
    if not runtime.is_rootful(request.engine_id):
        raise PrivilegeError()


def validate_build_request(request: BuildRequest, runtime: ContainerRuntime) -> None:
    """Validate a build request before any container is touched.

    Raises:
        ValidationError: A required field is missing.
        PrivilegeError: The target engine is rootless.
    """
    check_required_fields(request)
    check_rootful(request, runtime)


__all__ = [
    "REQUIRED_FIELDS",
    "ROOTLESS_HINT",
    "check_required_fields",
    "check_rootful",
    "validate_build_request",
]
