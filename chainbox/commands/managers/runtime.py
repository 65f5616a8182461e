"""
Container runtime collaborator.

ContainerRuntime is the set of verbs the lifecycle code depends on; DockerRuntime
implements them on the Docker SDK. Docker errors are translated into chainbox
errors here so nothing above this module imports docker.
"""

import io
import logging
import posixpath
import shlex
import tarfile
import time
from abc import ABC, abstractmethod
from enum import Enum
from typing import Iterator, Optional, Union

import docker
from docker.types import Mount

from chainbox.commands.constants import (
    CONTAINER_DATA_ROOT,
    CONTAINER_STOP_TIMEOUT,
    DEFAULT_DATA_IMAGE,
    ERROR_CONTAINER_NOT_FOUND,
    KIND_CHAIN,
    KIND_DATA,
    LABEL_KIND,
    LABEL_MANAGED,
    LABEL_NAME,
    LABEL_NUMBER,
    LABEL_OWNER,
)
from chainbox.commands.errors import ContainerRuntimeError, NotFoundError
from chainbox.commands.managers.base import BaseManager
from chainbox.commands.naming import data_container_name

logger = logging.getLogger(__name__)

Command = Union[str, list[str], None]


class ContainerState(Enum):
    """Observed state of a resolved container."""

    UNKNOWN = "unknown"
    CREATED = "created"
    RUNNING = "running"

    @property
    def exists(self) -> bool:
        return self is not ContainerState.UNKNOWN


def container_labels(kind: str, name: str, container_number: int) -> dict[str, str]:
    """Labels every chainbox container carries."""
    return {
        LABEL_MANAGED: "true",
        LABEL_KIND: kind,
        LABEL_NAME: name,
        LABEL_NUMBER: str(container_number),
    }


def split_command(command: Command) -> Optional[list[str]]:
    if not command:
        return None
    if isinstance(command, str):
        return shlex.split(command)
    return list(command)


class ContainerRuntime(ABC):
    """The container verbs chain and service lifecycles are built from."""

    @abstractmethod
    def create(
        self,
        name: str,
        image: str,
        command: Command = None,
        mounts: Optional[list[str]] = None,
        env: Optional[dict[str, str]] = None,
        volumes_from: Optional[list[str]] = None,
        labels: Optional[dict[str, str]] = None,
    ) -> str:
        """Create (but do not start) a container and return its id.

        ``mounts`` lists container paths that get a fresh anonymous volume.
        """

    @abstractmethod
    def start(self, name: str) -> None: ...

    @abstractmethod
    def stop(self, name: str, timeout: int = CONTAINER_STOP_TIMEOUT) -> None: ...

    @abstractmethod
    def remove(self, name: str, volumes: bool = False) -> None: ...

    @abstractmethod
    def rename(self, name: str, new_name: str) -> None: ...

    @abstractmethod
    def exec(self, name: str, args: list[str]) -> bytes:
        """Run ``args`` inside the running container ``name``."""

    @abstractmethod
    def run_volumes_from(self, source: str, args: list[str]) -> bytes:
        """Run ``args`` in a throwaway container sharing ``source``'s volumes."""

    @abstractmethod
    def logs(
        self, name: str, follow: bool = False, tail: Union[str, int] = "all"
    ) -> Iterator[bytes]: ...

    @abstractmethod
    def query(self, prefix: str) -> dict[str, ContainerState]:
        """Return every existing container whose name starts with ``prefix``."""

    @abstractmethod
    def inspect(self, name: str) -> dict: ...

    @abstractmethod
    def copy_into(self, name: str, dest_dir: str, files: dict[str, bytes]) -> None:
        """Write ``files`` (relative path -> content) under ``dest_dir`` in ``name``."""

    @abstractmethod
    def pull(self, image: str) -> None: ...

    @abstractmethod
    def ensure_image(self, image: str) -> None: ...

    def state(self, name: str) -> ContainerState:
        return self.query(name).get(name, ContainerState.UNKNOWN)


def build_archive(dest_dir: str, files: dict[str, bytes]) -> bytes:
    """Tar ``files`` with paths rooted at ``/`` so parent directories are created."""
    root = dest_dir.strip("/")
    buffer = io.BytesIO()
    now = int(time.time())
    with tarfile.open(fileobj=buffer, mode="w") as tar:
        directories = set()
        for relative_path in files:
            parent = posixpath.dirname(posixpath.join(root, relative_path))
            while parent and parent not in directories:
                directories.add(parent)
                parent = posixpath.dirname(parent)
        for directory in sorted(directories):
            info = tarfile.TarInfo(directory)
            info.type = tarfile.DIRTYPE
            info.mode = 0o755
            info.mtime = now
            tar.addfile(info)
        for relative_path, content in files.items():
            info = tarfile.TarInfo(posixpath.join(root, relative_path))
            info.size = len(content)
            info.mode = 0o644
            info.mtime = now
            tar.addfile(info, io.BytesIO(content))
    return buffer.getvalue()


class DockerRuntime(BaseManager, ContainerRuntime):
    """ContainerRuntime backed by the local Docker daemon."""

    def __init__(
        self,
        client: Optional[docker.DockerClient] = None,
        data_image: str = DEFAULT_DATA_IMAGE,
    ):
        """Initialize the DockerRuntime.

        Args:
            client: Optional Docker client. If not provided, creates one from environment.
            data_image: Image used for data containers and throwaway readers.
        """
        super().__init__(client)
        self.data_image = data_image

    def _get(self, name: str):
        try:
            return self.client.containers.get(name)
        except docker.errors.NotFound as e:
            raise NotFoundError(
                ERROR_CONTAINER_NOT_FOUND.format(container=name), name=name
            ) from e
        except docker.errors.APIError as e:
            raise ContainerRuntimeError(
                f"Failed to look up container {name}: {e}", container=name
            ) from e

    def create(
        self,
        name: str,
        image: str,
        command: Command = None,
        mounts: Optional[list[str]] = None,
        env: Optional[dict[str, str]] = None,
        volumes_from: Optional[list[str]] = None,
        labels: Optional[dict[str, str]] = None,
    ) -> str:
        container_config = {
            "name": name,
            "image": image,
            "detach": True,
            "labels": dict(labels or {}),
        }
        argv = split_command(command)
        if argv:
            container_config["command"] = argv
        if env:
            container_config["environment"] = dict(env)
        if mounts:
            container_config["mounts"] = [
                Mount(target=target, source=None, type="volume") for target in mounts
            ]
        if volumes_from:
            container_config["volumes_from"] = list(volumes_from)

        logger.debug("Creating container %s from %s", name, image)
        try:
            container = self.client.containers.create(**container_config)
        except docker.errors.ImageNotFound as e:
            raise NotFoundError(f"Image {image} not found", name=image) from e
        except docker.errors.APIError as e:
            raise ContainerRuntimeError(
                f"Failed to create container {name}: {e}", container=name
            ) from e
        return container.id

    def start(self, name: str) -> None:
        container = self._get(name)
        try:
            container.start()
        except docker.errors.APIError as e:
            raise ContainerRuntimeError(
                f"Failed to start container {name}: {e}", container=name
            ) from e

    def stop(self, name: str, timeout: int = CONTAINER_STOP_TIMEOUT) -> None:
        container = self._get(name)
        try:
            container.stop(timeout=timeout)
        except docker.errors.APIError as e:
            raise ContainerRuntimeError(
                f"Failed to stop container {name}: {e}", container=name
            ) from e

    def remove(self, name: str, volumes: bool = False) -> None:
        container = self._get(name)
        try:
            container.remove(v=volumes)
        except docker.errors.APIError as e:
            raise ContainerRuntimeError(
                f"Failed to remove container {name}: {e}", container=name
            ) from e

    def rename(self, name: str, new_name: str) -> None:
        container = self._get(name)
        try:
            container.rename(new_name)
        except docker.errors.APIError as e:
            raise ContainerRuntimeError(
                f"Failed to rename container {name} to {new_name}: {e}", container=name
            ) from e

    def exec(self, name: str, args: list[str]) -> bytes:
        container = self._get(name)
        try:
            result = container.exec_run(list(args))
        except docker.errors.APIError as e:
            raise ContainerRuntimeError(
                f"Failed to exec in container {name}: {e}", container=name
            ) from e
        if result.exit_code:
            raise ContainerRuntimeError(
                f"Command {args} exited with {result.exit_code} in {name}",
                container=name,
                details={"output": result.output.decode("utf-8", errors="replace")},
            )
        return result.output

    def run_volumes_from(self, source: str, args: list[str]) -> bytes:
        self._get(source)
        try:
            return self.client.containers.run(
                self.data_image,
                command=list(args),
                volumes_from=[source],
                remove=True,
            )
        except docker.errors.ContainerError as e:
            raise ContainerRuntimeError(
                f"Command {args} failed against volumes of {source}: {e}",
                container=source,
            ) from e
        except docker.errors.APIError as e:
            raise ContainerRuntimeError(
                f"Failed to run against volumes of {source}: {e}", container=source
            ) from e

    def logs(
        self, name: str, follow: bool = False, tail: Union[str, int] = "all"
    ) -> Iterator[bytes]:
        container = self._get(name)
        try:
            return container.logs(stream=True, follow=follow, tail=tail)
        except docker.errors.APIError as e:
            raise ContainerRuntimeError(
                f"Failed to read logs of {name}: {e}", container=name
            ) from e

    def query(self, prefix: str) -> dict[str, ContainerState]:
        try:
            containers = self.client.containers.list(
                all=True,
                filters={"name": prefix, "label": f"{LABEL_MANAGED}=true"},
            )
        except docker.errors.APIError as e:
            raise ContainerRuntimeError(f"Failed to list containers: {e}") from e

        states = {}
        for container in containers:
            # the daemon's name filter is a substring match
            if not container.name.startswith(prefix):
                continue
            states[container.name] = (
                ContainerState.RUNNING
                if container.status == "running"
                else ContainerState.CREATED
            )
        return states

    def inspect(self, name: str) -> dict:
        return self._get(name).attrs

    def copy_into(self, name: str, dest_dir: str, files: dict[str, bytes]) -> None:
        container = self._get(name)
        archive = build_archive(dest_dir, files)
        try:
            ok = container.put_archive("/", archive)
        except docker.errors.APIError as e:
            raise ContainerRuntimeError(
                f"Failed to copy files into {name}: {e}", container=name
            ) from e
        if not ok:
            raise ContainerRuntimeError(
                f"Docker refused the archive copied into {name}", container=name
            )

    def pull(self, image: str) -> None:
        self.pull_image(image)


def create_data_container(
    runtime: ContainerRuntime,
    name: str,
    container_number: int,
    data_image: str = DEFAULT_DATA_IMAGE,
    owner: str = KIND_CHAIN,
) -> str:
    """Create the data container for chain or service ``name``; it is never started.

    ``owner`` is the kind of container the data belongs to. Chains and services
    of the same name resolve to the same data container name, so the label is
    what tells them apart.
    """
    labels = container_labels(KIND_DATA, name, container_number)
    labels[LABEL_OWNER] = owner
    return runtime.create(
        data_container_name(name, container_number),
        data_image,
        mounts=[CONTAINER_DATA_ROOT],
        labels=labels,
    )


def data_owner(runtime: ContainerRuntime, name: str) -> str:
    """Kind that owns data container ``name``; unlabelled data belongs to a chain."""
    labels = (runtime.inspect(name).get("Config") or {}).get("Labels") or {}
    return labels.get(LABEL_OWNER, KIND_CHAIN)
