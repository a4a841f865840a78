"""Builder container naming."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from typing import TYPE_CHECKING, Any

from docker.errors import DockerException

from bootc_imagegen.config import DEFAULT_BUILDER_CONTAINER_SUFFIX
from bootc_imagegen.errors import RuntimeAdapterError

if TYPE_CHECKING:
    from bootc_imagegen.builds.runner import ContainerRuntime

logger = logging.getLogger(__name__)


def builder_container_name(
    image_name: str, suffix: str = DEFAULT_BUILDER_CONTAINER_SUFFIX
) -> str:
    """Derive the builder container name from a source image name.

    ``quay.io/org/fedora-bootc`` becomes ``fedora-bootc-bootc-image-builder``.
    """
    return image_name.split("/")[-1] + suffix


def normalize_container_names(containers: Iterable[Mapping[str, Any]]) -> set[str]:
    """Collect container names, dropping the leading '/' some engines add."""
    names: set[str] = set()
    for container in containers:
        for name in container.get("names") or []:
            names.add(name[1:] if name.startswith("/") else name)
    return names


def find_unused_name(name: str, existing: Iterable[str]) -> str:
    """Return ``name`` or the first free ``name-N`` (N >= 2)."""
    taken = set(existing)
    unused = name
    count = 2
    while unused in taken:
        unused = f"{name}-{count}"
        count += 1
    return unused


def get_unused_name(
    name: str,
    runtime: ContainerRuntime,
    engine_id: str | None = None,
) -> str:
    """Find a container name not in use on the engine.

    A failure to list containers is not fatal; the name is then assumed
    to be free.

    Args:
        name: Desired container name.
        runtime: Container runtime to list existing containers from.
        engine_id: Engine to list containers on (all engines if None).

    Returns:
        ``name`` or a numerically suffixed variant of it.
    """
    existing: set[str] = set()
    try:
        existing = normalize_container_names(runtime.list_containers(engine_id))
    except (RuntimeAdapterError, DockerException) as e:
        logger.warning("Could not get existing container names: %s", e)

    return find_unused_name(name, existing)


__all__ = [
    "builder_container_name",
    "find_unused_name",
    "get_unused_name",
    "normalize_container_names",
]
