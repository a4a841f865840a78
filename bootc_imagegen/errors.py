"""Error definitions for bootc_imagegen.

All errors carry a stable ``code`` attribute so frontends (CLI, scripts)
can branch on the failure category without parsing messages.
"""

# Error code constants
VALIDATION_ERROR = "validation"
PRECONDITION_ERROR = "precondition_error"
INVALID_FORMAT_ERROR = "invalid_format"
RUNTIME_ERROR = "runtime_error"
PULL_ERROR = "pull_error"
BUILD_ERROR = "build_failed"
BUILD_CANCELLED = "build_cancelled"
BUILD_NOT_FOUND = "build_not_found"


class BootcImageError(Exception):
    """Base error for bootc_imagegen operations."""

    def __init__(self, message: str, code: str = BUILD_ERROR) -> None:
        super().__init__(message)
        self.message = message
        self.code = code


class ValidationError(BootcImageError):
    """Raised when a required build request field is missing."""

    def __init__(self, message: str, field: str | None = None) -> None:
        super().__init__(message, code=VALIDATION_ERROR)
        self.field = field


class PrivilegeError(BootcImageError):
    """Raised when the target engine is not running rootful."""

    def __init__(
        self, message: str = "The podman machine is not set as rootful."
    ) -> None:
        super().__init__(message, code=PRECONDITION_ERROR)


class InvalidFormatError(BootcImageError):
    """Raised for an unrecognized disk image type."""

    def __init__(self, image_type: object = None) -> None:
        super().__init__("Invalid image format selected.", code=INVALID_FORMAT_ERROR)
        self.image_type = image_type


class RuntimeAdapterError(BootcImageError):
    """Raised when a container runtime call fails."""

    def __init__(self, message: str, code: str = RUNTIME_ERROR) -> None:
        super().__init__(message, code=code)


class PullError(RuntimeAdapterError):
    """Raised when the builder image cannot be pulled."""

    def __init__(self, image: str, reason: str | None = None) -> None:
        message = f"Failed to pull image {image}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message, code=PULL_ERROR)
        self.image = image


class OutputFolderError(BootcImageError):
    """Raised when the build output folder cannot be created."""

    def __init__(self, folder: str, reason: str) -> None:
        super().__init__(
            f"Cannot create output folder {folder}: {reason}",
            code=PRECONDITION_ERROR,
        )
        self.folder = folder


class BuildError(BootcImageError):
    """Raised when a build fails; always points at the build log."""

    def __init__(self, message: str, log_path: str | None = None) -> None:
        super().__init__(message, code=BUILD_ERROR)
        self.log_path = log_path


class BuildCancelledError(BootcImageError):
    """Raised internally when a build was removed from history mid-run.

    The orchestrator swallows this error; it never reaches callers.
    """

    def __init__(self, container_id: str, reason: str | None = None) -> None:
        super().__init__(
            f"Build container {container_id} was removed during the build",
            code=BUILD_CANCELLED,
        )
        self.container_id = container_id
        self.reason = reason


class BuildNotFoundError(BootcImageError):
    """Raised when a build is not found in history."""

    def __init__(self, build_id: str) -> None:
        super().__init__(f"Build not found: {build_id}", code=BUILD_NOT_FOUND)
        self.build_id = build_id


__all__ = [
    "BUILD_CANCELLED",
    "BUILD_ERROR",
    "BUILD_NOT_FOUND",
    "INVALID_FORMAT_ERROR",
    "PRECONDITION_ERROR",
    "PULL_ERROR",
    "RUNTIME_ERROR",
    "VALIDATION_ERROR",
    "BootcImageError",
    "BuildCancelledError",
    "BuildError",
    "BuildNotFoundError",
    "InvalidFormatError",
    "OutputFolderError",
    "PrivilegeError",
    "PullError",
    "RuntimeAdapterError",
    "ValidationError",
]
