"""Builder container options.

This module composes the launch configuration of the bootc-image-builder
container from a build request. It performs no I/O.

The builder runs privileged with SELinux confinement disabled, gets the
output folder mounted at /output/ and the host container storage mounted
at the same path so it can read the locally stored source image.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from bootc_imagegen.config import DEFAULT_BUILDER_IMAGE, DEFAULT_CONTAINER_STORAGE

OUTPUT_MOUNT = "/output/"
UNCONFINED_LABEL = "label=type:unconfined_t"

# Labels the builder container is tagged with
LABEL_BUILDER = "bootc.image.builder"
LABEL_IMAGE_LOCATION = "bootc.build.image.location"
LABEL_BUILD_TYPE = "bootc.build.type"


@dataclass(frozen=True)
class ContainerLaunchSpec:
    """Launch configuration of one builder container.

    Attributes:
        name: Unique container name.
        image: Builder image reference.
        command: Builder command line.
        labels: Container labels.
        binds: Bind mounts as host:container strings.
        security_opt: Security options.
        privileged: Run the container privileged.
        tty: Allocate a TTY so the builder emits progress output.
    """

    name: str
    image: str
    command: list[str]
    labels: dict[str, str] = field(default_factory=dict)
    binds: list[str] = field(default_factory=list)
    security_opt: list[str] = field(default_factory=list)
    privileged: bool = True
    tty: bool = True

    def to_create_kwargs(self) -> dict[str, Any]:
        """Return keyword arguments for ``client.containers.create``."""
        return {
            "image": self.image,
            "command": list(self.command),
            "name": self.name,
            "tty": self.tty,
            "privileged": self.privileged,
            "security_opt": list(self.security_opt),
            "volumes": list(self.binds),
            "labels": dict(self.labels),
        }

    def to_dict(self) -> dict[str, Any]:
        """Return the configuration in container engine API form."""
        return {
            "name": self.name,
            "Image": self.image,
            "Tty": self.tty,
            "HostConfig": {
                "Privileged": self.privileged,
                "SecurityOpt": list(self.security_opt),
                "Binds": list(self.binds),
            },
            "Labels": dict(self.labels),
            "Cmd": list(self.command),
        }


def create_builder_image_options(
    name: str,
    image: str,
    image_type: str,
    arch: str,
    folder: str,
    image_path: str,
    *,
    builder_image: str = DEFAULT_BUILDER_IMAGE,
    storage_path: str = DEFAULT_CONTAINER_STORAGE,
) -> ContainerLaunchSpec:
    """Compose the launch configuration of the builder container.

    Args:
        name: Unique builder container name.
        image: Source image reference to build from (name:tag).
        image_type: Disk image type.
        arch: Target architecture.
        folder: Host output folder.
        image_path: Resolved host path of the disk image.
        builder_image: bootc-image-builder image reference.
        storage_path: Host container storage path.

    Returns:
        ContainerLaunchSpec for the builder.
    """
    return ContainerLaunchSpec(
        name=name,
        image=builder_image,
        command=[
            image,
            "--type",
            image_type,
            "--target-arch",
            arch,
            "--output",
            OUTPUT_MOUNT,
            "--local",
        ],
        labels={
            LABEL_BUILDER: "true",
            LABEL_IMAGE_LOCATION: str(image_path),
            LABEL_BUILD_TYPE: image_type,
        },
        binds=[f"{folder}:{OUTPUT_MOUNT}", f"{storage_path}:{storage_path}"],
        security_opt=[UNCONFINED_LABEL],
        privileged=True,
        tty=True,
    )


__all__ = [
    "LABEL_BUILDER",
    "LABEL_BUILD_TYPE",
    "LABEL_IMAGE_LOCATION",
    "OUTPUT_MOUNT",
    "UNCONFINED_LABEL",
    "ContainerLaunchSpec",
    "create_builder_image_options",
]
