"""Disk image and build log locations.

bootc-image-builder writes its output under the mounted /output/
directory using a fixed subpath per image type. This module maps an
image type to that subpath and resolves the host-side paths of the
disk image and the build log.
"""

from __future__ import annotations

from pathlib import Path

from bootc_imagegen.errors import InvalidFormatError
from bootc_imagegen.types import ImageType

# Subpath of the disk image relative to the output folder, per image type
IMAGE_SUBPATHS: dict[str, str] = {
    ImageType.QCOW2.value: "qcow2/disk.qcow2",
    ImageType.AMI.value: "image/disk.raw",
    ImageType.RAW.value: "image/disk.raw",
    ImageType.ISO.value: "bootiso/disk.iso",
}

LOG_FILENAME = "image-build.log"


def get_image_subpath(image_type: str) -> str:
    """Return the disk image path relative to the output folder.

    Args:
        image_type: Disk image type.

    Returns:
        Relative path of the disk image.

    Raises:
        InvalidFormatError: If the image type is not recognized.
    """
    key = image_type.value if isinstance(image_type, ImageType) else image_type
    try:
        return IMAGE_SUBPATHS[key]
    except (KeyError, TypeError):
        raise InvalidFormatError(image_type) from None


def resolve_image_path(folder: str | Path, image_type: str) -> Path:
    """Resolve the absolute disk image path for a build.

    Args:
        folder: Output folder of the build.
        image_type: Disk image type.

    Returns:
        Absolute path of the disk image.

    Raises:
        InvalidFormatError: If the image type is not recognized.
    """
    return Path(folder).absolute() / get_image_subpath(image_type)


def resolve_log_path(folder: str | Path) -> Path:
    """Return the build log path inside the output folder."""
    return Path(folder).absolute() / LOG_FILENAME


__all__ = [
    "IMAGE_SUBPATHS",
    "LOG_FILENAME",
    "get_image_subpath",
    "resolve_image_path",
    "resolve_log_path",
]
