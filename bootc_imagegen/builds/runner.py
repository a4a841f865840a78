"""Container runtime adapter for running the builder container.

This module handles:
- Selecting a container engine client by engine ID
- Pulling the builder image
- Creating, starting, and removing builder containers
- Streaming builder logs
- Waiting for the builder to exit successfully

DockerRuntime talks to the Docker Engine API, which Podman also serves
through its compatibility socket. Every SDK failure is re-raised as a
RuntimeAdapterError so the orchestrator deals with one error type.
"""

from __future__ import annotations

import codecs
import logging
from collections.abc import Callable, Iterable, Iterator, Mapping
from typing import TYPE_CHECKING, Any, Protocol

import docker
from docker.errors import DockerException, ImageNotFound, NotFound
from requests.exceptions import RequestException

from bootc_imagegen.errors import PullError, RuntimeAdapterError

if TYPE_CHECKING:
    from docker import DockerClient
    from docker.models.containers import Container

    from bootc_imagegen.builds.options import ContainerLaunchSpec

logger = logging.getLogger(__name__)

LogCallback = Callable[[str, str], None]

_CLIENT_ERRORS = (DockerException, RequestException)


class ContainerRuntime(Protocol):
    """Operations the build orchestrator needs from a container engine."""

    def is_rootful(self, engine_id: str) -> bool:
        """Return True if the engine runs containers as root."""
        ...

    def pull_image(self, engine_id: str, image: str) -> None:
        """Pull an image onto the engine."""
        ...

    def list_containers(self, engine_id: str | None = None) -> list[dict[str, Any]]:
        """List containers as dicts with a ``names`` list."""
        ...

    def remove_container_if_exists(self, engine_id: str, name: str) -> None:
        """Remove a container by name if it exists."""
        ...

    def create_and_start_container(
        self, engine_id: str, spec: ContainerLaunchSpec
    ) -> str:
        """Create and start a container, returning its ID."""
        ...

    def logs_container(
        self, engine_id: str, container_id: str, on_chunk: LogCallback
    ) -> None:
        """Stream container logs to ``on_chunk(name, data)`` until closed."""
        ...

    def wait_for_container_to_exit(self, engine_id: str, container_id: str) -> None:
        """Block until the container exits; raise unless the exit code is 0."""
        ...

    def remove_container_and_volumes(self, engine_id: str, name: str) -> None:
        """Remove a container and its anonymous volumes by name."""
        ...


def iter_log_lines(stream: Iterable[bytes | str]) -> Iterator[str]:
    """Reassemble a container log stream into complete lines.

    The engine delivers TTY output in arbitrary slices, down to single
    bytes. Bytes are decoded incrementally so multi-byte characters split
    across slices survive; each yielded line keeps its trailing newline.
    Output left after the last newline is yielded when the stream ends.
    """
    decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
    buffer = ""
    for chunk in stream:
        buffer += decoder.decode(chunk) if isinstance(chunk, bytes) else str(chunk)
        while (end := buffer.find("\n")) != -1:
            yield buffer[: end + 1]
            buffer = buffer[end + 1 :]
    buffer += decoder.decode(b"", final=True)
    if buffer:
        yield buffer


class DockerRuntime:
    """ContainerRuntime backed by the docker SDK.

    Example:
        ```python
        runtime = DockerRuntime(
            engine_hosts={"podman": "unix:///run/podman/podman.sock"},
            wait_timeout=3600,
        )
        runtime.pull_image("podman", "quay.io/centos-bootc/bootc-image-builder")
        ```
    """

    def __init__(
        self,
        engine_hosts: Mapping[str, str] | None = None,
        wait_timeout: int | None = None,
        client_factory: Callable[[str | None], DockerClient] | None = None,
    ) -> None:
        """Initialize the runtime.

        Args:
            engine_hosts: Map of engine ID to engine API URL. Unknown engine
                IDs use the client configured by the environment.
            wait_timeout: Timeout in seconds for waiting on container exit.
            client_factory: Optional factory creating a client for a base URL
                (None means from environment).
        """
        self.engine_hosts = dict(engine_hosts or {})
        self.wait_timeout = wait_timeout
        self._client_factory = client_factory or _default_client_factory
        self._clients: dict[str | None, DockerClient] = {}

    def _client(self, engine_id: str | None) -> DockerClient:
        base_url = self.engine_hosts.get(engine_id) if engine_id else None
        if base_url not in self._clients:
            try:
                self._clients[base_url] = self._client_factory(base_url)
            except _CLIENT_ERRORS as e:
                raise RuntimeAdapterError(
                    f"Cannot connect to container engine {engine_id or 'default'}: {e}"
                ) from e
        return self._clients[base_url]

    def _get_container(self, engine_id: str, id_or_name: str) -> Container:
        try:
            return self._client(engine_id).containers.get(id_or_name)
        except NotFound as e:
            raise RuntimeAdapterError(f"Container {id_or_name} not found") from e
        except _CLIENT_ERRORS as e:
            raise RuntimeAdapterError(
                f"Failed to inspect container {id_or_name}: {e}"
            ) from e

    def is_rootful(self, engine_id: str) -> bool:
        """Return True unless the engine reports a rootless security option."""
        try:
            info = self._client(engine_id).info()
        except _CLIENT_ERRORS as e:
            raise RuntimeAdapterError(
                f"Failed to query container engine {engine_id}: {e}"
            ) from e
        options = info.get("SecurityOptions") or []
        return not any("rootless" in str(option) for option in options)

    def pull_image(self, engine_id: str, image: str) -> None:
        """Pull an image onto the engine.

        Raises:
            PullError: If the image cannot be pulled.
        """
        logger.info("Pulling image %s", image)
        try:
            self._client(engine_id).images.pull(image)
        except ImageNotFound as e:
            raise PullError(image, "image not found") from e
        except _CLIENT_ERRORS as e:
            raise PullError(image, str(e)) from e

    def list_containers(self, engine_id: str | None = None) -> list[dict[str, Any]]:
        """List containers on one engine, or on every known engine."""
        engine_ids: list[str | None] = (
            [engine_id] if engine_id else [None, *self.engine_hosts]
        )
        containers: list[dict[str, Any]] = []
        for eid in engine_ids:
            try:
                listed = self._client(eid).containers.list(all=True, sparse=True)
            except _CLIENT_ERRORS as e:
                raise RuntimeAdapterError(f"Failed to list containers: {e}") from e
            for c in listed:
                names = c.attrs.get("Names") or ([c.name] if c.name else [])
                containers.append({"id": c.id, "names": list(names), "engine_id": eid})
        return containers

    def remove_container_if_exists(self, engine_id: str, name: str) -> None:
        """Remove a container by name if it exists."""
        try:
            container = self._client(engine_id).containers.get(name)
        except NotFound:
            logger.debug("No previous container named %s", name)
            return
        except _CLIENT_ERRORS as e:
            raise RuntimeAdapterError(f"Failed to inspect container {name}: {e}") from e

        logger.info("Removing previous container %s", name)
        try:
            container.remove(force=True)
        except NotFound:
            return
        except _CLIENT_ERRORS as e:
            raise RuntimeAdapterError(f"Failed to remove container {name}: {e}") from e

    def create_and_start_container(
        self, engine_id: str, spec: ContainerLaunchSpec
    ) -> str:
        """Create and start a container, returning its ID."""
        client = self._client(engine_id)
        try:
            container = client.containers.create(**spec.to_create_kwargs())
        except _CLIENT_ERRORS as e:
            raise RuntimeAdapterError(
                f"Failed to create container {spec.name}: {e}"
            ) from e

        try:
            container.start()
        except _CLIENT_ERRORS as e:
            raise RuntimeAdapterError(
                f"Failed to start container {spec.name}: {e}"
            ) from e

        logger.info("Started container %s (%s)", spec.name, container.id)
        return str(container.id)

    def logs_container(
        self, engine_id: str, container_id: str, on_chunk: LogCallback
    ) -> None:
        """Follow container logs line by line until the engine closes the stream."""
        container = self._get_container(engine_id, container_id)
        try:
            for line in iter_log_lines(container.logs(stream=True, follow=True)):
                on_chunk(container.name, line)
        except _CLIENT_ERRORS as e:
            raise RuntimeAdapterError(
                f"Log stream of container {container_id} failed: {e}"
            ) from e

    def wait_for_container_to_exit(self, engine_id: str, container_id: str) -> None:
        """Wait for the container to exit with exit code 0.

        Raises:
            RuntimeAdapterError: If the container is gone, the wait fails or
                times out, or the container exits with a non-zero code.
        """
        container = self._get_container(engine_id, container_id)
        try:
            result = container.wait(timeout=self.wait_timeout)
        except _CLIENT_ERRORS as e:
            raise RuntimeAdapterError(
                f"Failed waiting for container {container_id}: {e}"
            ) from e

        exit_code = result.get("StatusCode", -1)
        if exit_code != 0:
            error = (result.get("Error") or {}).get("Message")
            message = f"Container {container_id} exited with code {exit_code}"
            if error:
                message = f"{message}: {error}"
            raise RuntimeAdapterError(message)

    def remove_container_and_volumes(self, engine_id: str, name: str) -> None:
        """Remove a container with its anonymous volumes; absent is fine."""
        try:
            container = self._client(engine_id).containers.get(name)
            container.remove(v=True, force=True)
        except NotFound:
            logger.debug("Container %s already removed", name)
            return
        except _CLIENT_ERRORS as e:
            raise RuntimeAdapterError(f"Failed to remove container {name}: {e}") from e
        logger.info("Removed container %s and its volumes", name)


def _default_client_factory(base_url: str | None) -> DockerClient:
    if base_url is None:
        return docker.from_env()
    return docker.DockerClient(base_url=base_url)


__all__ = ["ContainerRuntime", "DockerRuntime", "LogCallback", "iter_log_lines"]
