"""Pytest configuration for chainbox tests.

Lifecycle tests run against FakeRuntime, an in-memory ContainerRuntime that
keeps container state and copied files in dictionaries.
"""

import io
from dataclasses import dataclass, field
from typing import Optional

import pytest
from rich.console import Console

from chainbox.commands.definitions import DefinitionStore
from chainbox.commands.errors import ContainerRuntimeError, NotFoundError
from chainbox.commands.managers.chain import ChainManager
from chainbox.commands.managers.dependency import DependencyResolver
from chainbox.commands.managers.runtime import ContainerRuntime, ContainerState
from chainbox.commands.managers.service import ServiceManager
from chainbox.commands.operation import OperationContext


@dataclass
class FakeContainer:
    name: str
    image: str
    command: object = None
    env: dict = field(default_factory=dict)
    labels: dict = field(default_factory=dict)
    mounts: list = field(default_factory=list)
    volumes_from: list = field(default_factory=list)
    running: bool = False
    files: dict = field(default_factory=dict)
    log_lines: list = field(default_factory=list)


class FakeRuntime(ContainerRuntime):
    """In-memory container runtime.

    ``fail`` maps (verb, container name) to an exception raised by that call.
    ``calls`` records every mutating call in order.
    """

    def __init__(self):
        self.containers: dict[str, FakeContainer] = {}
        self.images: set[str] = set()
        self.pulled: list[str] = []
        self.removed_volumes: list[str] = []
        self.calls: list[tuple] = []
        self.fail: dict[tuple[str, str], Exception] = {}
        self._ids = 0

    def _record(self, verb: str, name: str, *extra):
        self.calls.append((verb, name, *extra))
        error = self.fail.get((verb, name))
        if error is not None:
            raise error

    def _get(self, name: str) -> FakeContainer:
        if name not in self.containers:
            raise NotFoundError(f"Container {name} not found", name=name)
        return self.containers[name]

    def create(
        self,
        name,
        image,
        command=None,
        mounts=None,
        env=None,
        volumes_from=None,
        labels=None,
    ):
        self._record("create", name)
        if name in self.containers:
            raise ContainerRuntimeError(f"Conflict: {name} exists", container=name)
        for source in volumes_from or []:
            self._get(source)
        self.containers[name] = FakeContainer(
            name=name,
            image=image,
            command=command,
            env=dict(env or {}),
            labels=dict(labels or {}),
            mounts=list(mounts or []),
            volumes_from=list(volumes_from or []),
        )
        self._ids += 1
        return f"id{self._ids}"

    def start(self, name):
        self._record("start", name)
        self._get(name).running = True

    def stop(self, name, timeout=10):
        self._record("stop", name)
        self._get(name).running = False

    def remove(self, name, volumes=False):
        self._record("remove", name)
        container = self._get(name)
        if container.running:
            raise ContainerRuntimeError(f"{name} is running", container=name)
        del self.containers[name]
        if volumes:
            self.removed_volumes.append(name)

    def rename(self, name, new_name):
        self._record("rename", name, new_name)
        if new_name in self.containers:
            raise ContainerRuntimeError(f"Conflict: {new_name} exists", container=name)
        container = self.containers.pop(name)
        container.name = new_name
        self.containers[new_name] = container
        # volumes_from is bound to the container, not its name
        for other in self.containers.values():
            other.volumes_from = [
                new_name if source == name else source for source in other.volumes_from
            ]

    def exec(self, name, args):
        self._record("exec", name)
        container = self._get(name)
        if not container.running:
            raise ContainerRuntimeError(f"{name} is not running", container=name)
        return " ".join(args).encode()

    def _visible_files(self, container: FakeContainer) -> dict:
        files = dict(container.files)
        for source in container.volumes_from:
            files.update(self._get(source).files)
        return files

    def run_volumes_from(self, source, args):
        self._record("run", source)
        files = self._visible_files(self._get(source))
        if args and args[0] == "cat":
            path = args[1]
            if path not in files:
                raise ContainerRuntimeError(f"cat: {path}: No such file", container=source)
            return files[path]
        return b""

    def logs(self, name, follow=False, tail="all"):
        lines = list(self._get(name).log_lines)
        if tail != "all":
            lines = lines[-int(tail):] if tail else []
        return iter(lines)

    def query(self, prefix):
        return {
            name: ContainerState.RUNNING if c.running else ContainerState.CREATED
            for name, c in self.containers.items()
            if name.startswith(prefix)
        }

    def inspect(self, name):
        container = self._get(name)
        mounts = [
            {"Name": f"vol-{source}", "Destination": "/home/chainbox/.chainbox"}
            for source in container.volumes_from
        ]
        return {
            "Id": f"id-{name}",
            "Name": f"/{name}",
            "Created": "2026-01-01T00:00:00Z",
            "Config": {
                "Image": container.image,
                "Cmd": container.command,
                "Env": [f"{k}={v}" for k, v in container.env.items()],
                "Labels": dict(container.labels),
            },
            "State": {
                "Status": "running" if container.running else "created",
                "Running": container.running,
            },
            "Mounts": mounts,
        }

    def copy_into(self, name, dest_dir, files):
        self._record("copy", name)
        container = self._get(name)
        for relative_path, content in files.items():
            container.files[f"{dest_dir}/{relative_path}"] = content

    def pull(self, image):
        self._record("pull", image)
        self.pulled.append(image)
        self.images.add(image)

    def ensure_image(self, image):
        if image not in self.images:
            self.pull(image)

    def verbs(self, *verbs) -> list[tuple]:
        return [call for call in self.calls if call[0] in verbs]


@pytest.fixture
def runtime():
    return FakeRuntime()


@pytest.fixture
def store(tmp_path):
    return DefinitionStore(tmp_path / "home")


@pytest.fixture
def services(runtime, store):
    return ServiceManager(runtime, store)


@pytest.fixture
def manager(runtime, store, services):
    return ChainManager(runtime, store, DependencyResolver(services))


@pytest.fixture
def genesis_file(tmp_path):
    path = tmp_path / "genesis.json"
    path.write_text('{"chain_id": "devnet"}')
    return str(path)


@pytest.fixture
def make_ctx():
    """Build OperationContexts that write to an in-memory console."""

    def _make(name: str = "", console: Optional[Console] = None, **kwargs):
        if console is None:
            console = Console(file=io.StringIO(), force_terminal=False, width=200)
        return OperationContext(name=name, console=console, **kwargs)

    return _make


@pytest.fixture
def start_keys(services, make_ctx):
    """Start the built-in keys service."""

    def _start():
        services.start_service(make_ctx("keys"))

    return _start
