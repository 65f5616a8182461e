"""
ChainManager - lifecycle of chain containers.

Per (chain, container number) the observed states are:

    Unknown --new_chain--> Created --start_chain--> Running
    Running --kill_chain--> Created --rm_chain--> Unknown
    Running --kill_chain(rm)--> Unknown

rename_chain and inspect_chain keep the state they find. A chain with
auto_data has a data container that is created and removed together with the
primary container; update_chain recreates the primary in place and keeps the
data container.
"""

import json
import logging
import os
from pathlib import Path
from typing import Any, Optional, Union

from chainbox import __version__
from chainbox.commands.config_utils import Settings
from chainbox.commands.constants import (
    CONTAINER_CHAINS_DIR,
    CONTAINER_STOP_TIMEOUT,
    DEFAULT_DATA_IMAGE,
    ERROR_CHAIN_NOT_FOUND,
    ERROR_FILE_NOT_FOUND,
    GENESIS_FILE_NAME,
    KIND_CHAIN,
    TAIL_ALL,
)
from chainbox.commands.definitions import (
    ChainDefinition,
    DefinitionStore,
    ServiceDefinition,
    default_chain_definition,
)
from chainbox.commands.errors import (
    ChainboxError,
    ChainIOError,
    ConflictError,
    NotFoundError,
    ValidationError,
)
from chainbox.commands.graduate import graduate
from chainbox.commands.managers.dependency import DependencyResolver
from chainbox.commands.managers.runtime import (
    ContainerRuntime,
    ContainerState,
    DockerRuntime,
    container_labels,
    create_data_container,
    data_owner,
)
from chainbox.commands.managers.service import ServiceManager
from chainbox.commands.naming import (
    container_number_of,
    data_container_name_for,
    kind_prefix,
    resolve,
    short_name,
    validate_chain_name,
)
from chainbox.commands.operation import OperationContext

logger = logging.getLogger(__name__)

# Shortcuts accepted by inspect_chain, mapped to paths in the inspect document
INSPECT_SHORTCUTS = {
    "id": "Id",
    "image": "Config.Image",
    "status": "State.Status",
    "running": "State.Running",
    "created": "Created",
    "config": "Config",
    "env": "Config.Env",
    "labels": "Config.Labels",
}


def chain_directory(chain_name: str) -> str:
    """Directory inside the data volume that holds a chain's files."""
    return f"{CONTAINER_CHAINS_DIR}/{chain_name}"


def normalize_tail(tail: Union[str, int, None]) -> Union[str, int]:
    if tail is None or tail == "" or tail == TAIL_ALL:
        return TAIL_ALL
    if isinstance(tail, int) and not isinstance(tail, bool):
        return tail
    if isinstance(tail, str) and tail.isdigit():
        return int(tail)
    raise ValidationError(
        "tail must be a number of lines or 'all'", field="tail", value=tail
    )


def lookup_path(document: Any, path: str) -> Any:
    """Walk a dotted path through an inspect document, ignoring key case."""
    current = document
    for part in path.split("."):
        if isinstance(current, dict):
            matches = [k for k in current if k.lower() == part.lower()]
            if not matches:
                raise KeyError(path)
            current = current[matches[0]]
        elif isinstance(current, list) and part.isdigit() and int(part) < len(current):
            current = current[int(part)]
        else:
            raise KeyError(path)
    return current


def format_attribute(value: Any) -> str:
    if isinstance(value, (dict, list)):
        return json.dumps(value, sort_keys=True)
    if isinstance(value, bool):
        return str(value).lower()
    if value is None:
        return ""
    return str(value)


class ChainManager:
    """Creates, starts, stops, removes, renames, inspects and updates chains."""

    def __init__(
        self,
        runtime: ContainerRuntime,
        store: DefinitionStore,
        dependencies: DependencyResolver,
        version: str = __version__,
        data_image: str = DEFAULT_DATA_IMAGE,
        stop_timeout: int = CONTAINER_STOP_TIMEOUT,
    ):
        """Initialize the ChainManager.

        Args:
            runtime: The container runtime all container calls go through.
            store: Chain and service definitions.
            dependencies: Gate for chain dependencies.
            version: chainbox version, used for default and graduated images.
            data_image: Image used for data containers.
            stop_timeout: Seconds to wait for a container to stop.
        """
        self.runtime = runtime
        self.store = store
        self.dependencies = dependencies
        self.version = version
        self.data_image = data_image
        self.stop_timeout = stop_timeout

    @classmethod
    def from_settings(
        cls, settings: Settings, runtime: Optional[ContainerRuntime] = None
    ) -> "ChainManager":
        """Wire a manager, its store and its services from ``settings``."""
        if runtime is None:
            runtime = DockerRuntime(data_image=settings.data_image)
        store = DefinitionStore(settings.home)
        services = ServiceManager(
            runtime,
            store,
            data_image=settings.data_image,
            stop_timeout=settings.stop_timeout,
        )
        return cls(
            runtime,
            store,
            DependencyResolver(services),
            data_image=settings.data_image,
            stop_timeout=settings.stop_timeout,
        )

    @property
    def services(self) -> ServiceManager:
        return self.dependencies.services

    # Helpers

    def _load(self, ctx: OperationContext, refresh: bool = False) -> ChainDefinition:
        validate_chain_name(ctx.name)
        return self.store.load_chain_definition(
            ctx.name, refresh=refresh, container_number=ctx.container_number
        )

    def _require_existing(self, definition: ChainDefinition) -> ContainerState:
        state = self.runtime.state(definition.operations.container_name)
        if not state.exists:
            raise NotFoundError(
                ERROR_CHAIN_NOT_FOUND.format(chain=definition.operations.container_name),
                name=definition.name,
            )
        return state

    def _data_exists(self, definition: ChainDefinition) -> bool:
        data_name = definition.operations.data_container_name
        return bool(data_name) and self.runtime.state(data_name).exists

    def _create_primary(self, definition: ChainDefinition) -> str:
        ops = definition.operations
        return self.runtime.create(
            ops.container_name,
            definition.image,
            command=definition.command,
            volumes_from=[ops.data_container_name] if definition.auto_data else None,
            labels=container_labels(KIND_CHAIN, definition.name, ops.container_number),
        )

    def _remove_containers(self, definition: ChainDefinition, ctx: OperationContext) -> None:
        ops = definition.operations
        self.runtime.remove(ops.container_name)
        ctx.emit(f"[green]✓ Removed container {ops.container_name}[/green]")

        data_name = data_container_name_for(ops.container_name)
        if not (definition.auto_data or ctx.rmd):
            return
        if not self.runtime.state(data_name).exists:
            return
        if data_owner(self.runtime, data_name) != KIND_CHAIN:
            logger.warning(
                "Keeping data container %s: it belongs to service %s",
                data_name,
                definition.name,
            )
            return
        self.runtime.remove(data_name, volumes=True)
        ctx.emit(f"[green]✓ Removed data container {data_name}[/green]")

    def _check_data_owner(self, name: str, data_name: str) -> None:
        if data_owner(self.runtime, data_name) != KIND_CHAIN:
            raise ConflictError(
                f"Data container {data_name} belongs to service {name}; "
                "remove the service before creating a chain of that name",
                name=name,
            )

    def _collect_chain_files(self, genesis_file: str, path: str) -> dict[str, bytes]:
        """Read the files a new chain gets in its chain directory.

        ``path`` contributes every regular file below it; the genesis file is
        stored as genesis.json and wins over a file of that name in ``path``.
        """
        files: dict[str, bytes] = {}
        if path:
            root = Path(path).expanduser()
            if not root.is_dir():
                raise ChainIOError(ERROR_FILE_NOT_FOUND.format(path=path), path=path)
            for directory, _, filenames in os.walk(root):
                for filename in filenames:
                    source = Path(directory) / filename
                    relative = source.relative_to(root).as_posix()
                    try:
                        files[relative] = source.read_bytes()
                    except OSError as e:
                        raise ChainIOError(
                            f"Could not read {source}: {e}", path=str(source)
                        ) from e

        if genesis_file:
            source = Path(genesis_file).expanduser()
            try:
                files[GENESIS_FILE_NAME] = source.read_bytes()
            except OSError as e:
                raise ChainIOError(
                    f"Could not read genesis file {genesis_file}: {e}",
                    path=genesis_file,
                ) from e
        elif GENESIS_FILE_NAME not in files:
            raise ChainIOError(
                "A genesis file is required to create a chain", path=genesis_file
            )
        return files

    # Operations

    def new_chain(self, ctx: OperationContext) -> ChainDefinition:
        """Create a chain's containers and seed its data volume.

        The persisted definition is used when one exists, otherwise the
        default one is written. The chain ends in the Created state.

        Raises:
            ConflictError: If the chain's container already exists at this number,
                or a service of the same name owns the data container.
            ChainIOError: If the genesis file or directory cannot be read or copied.
        """
        name = validate_chain_name(ctx.name)
        container_name, data_name = resolve(name, ctx.container_number)
        if self.runtime.state(container_name).exists:
            raise ConflictError(
                f"Chain {name} already has a container {container_name}", name=name
            )

        if self.store.chain_exists(name):
            definition = self.store.load_chain_definition(
                name, refresh=True, container_number=ctx.container_number
            )
            if ctx.genesis_file:
                definition.genesis_file = ctx.genesis_file
        else:
            definition = default_chain_definition(
                name, ctx.genesis_file, self.version
            ).resolve(ctx.container_number)

        data_exists = definition.auto_data and self.runtime.state(data_name).exists
        if data_exists:
            self._check_data_owner(name, data_name)

        files = self._collect_chain_files(definition.genesis_file, ctx.path)
        self.store.save_chain_definition(definition)

        if not ctx.skip_pull:
            self.runtime.ensure_image(definition.image)

        data_created = False
        if definition.auto_data:
            if data_exists:
                logger.warning("Reusing existing data container %s", data_name)
            else:
                create_data_container(
                    self.runtime, name, ctx.container_number, self.data_image
                )
                data_created = True
                ctx.emit(f"[green]✓ Created data container {data_name}[/green]")

        try:
            self._create_primary(definition)
        except ChainboxError:
            if data_created:
                self.runtime.remove(data_name, volumes=True)
            raise
        ctx.emit(f"[green]✓ Created container {container_name}[/green]")

        target = data_name if definition.auto_data else container_name
        try:
            self.runtime.copy_into(target, chain_directory(name), files)
        except ChainboxError as e:
            self.runtime.remove(container_name)
            if data_created:
                self.runtime.remove(data_name, volumes=True)
            raise ChainIOError(
                f"Could not copy chain files into {target}: {e.message}",
                path=chain_directory(name),
            ) from e
        ctx.emit(
            f"[green]✓ Copied {len(files)} file(s) to {chain_directory(name)}[/green]"
        )
        return definition

    def start_chain(self, ctx: OperationContext) -> None:
        """Start a created chain.

        Raises:
            NotFoundError: If the chain's container (or its data container) is absent.
            DependencyError: If a dependency is not running; nothing is started.
        """
        definition = self._load(ctx)
        ops = definition.operations
        state = self._require_existing(definition)
        if state is ContainerState.RUNNING:
            ctx.emit(f"[cyan]Chain {definition.name} is already running[/cyan]")
            return

        if definition.auto_data and not self._data_exists(definition):
            raise NotFoundError(
                f"Data container {ops.data_container_name} for chain "
                f"{definition.name} does not exist",
                name=ops.data_container_name,
            )

        self.dependencies.ensure_running(definition.dependencies)
        self.runtime.start(ops.container_name)
        ctx.emit(f"[green]✓ Started chain {definition.name} ({ops.container_name})[/green]")

    def kill_chain(self, ctx: OperationContext) -> None:
        """Stop a chain; ``rm``/``rmd`` also remove its containers.

        Stopping an already stopped chain succeeds. With ``rm_deps`` the
        dependencies are stopped afterwards, in reverse declared order.
        """
        definition = self._load(ctx)
        ops = definition.operations
        state = self._require_existing(definition)
        if state is ContainerState.RUNNING:
            self.runtime.stop(ops.container_name, timeout=self.stop_timeout)
            ctx.emit(f"[green]✓ Stopped chain {definition.name}[/green]")
        else:
            ctx.emit(f"[cyan]Chain {definition.name} is not running[/cyan]")

        removing = ctx.rm or ctx.rmd
        if removing:
            self._remove_containers(definition, ctx)

        if ctx.rm_deps:
            self.dependencies.teardown(
                definition.dependencies,
                remove=removing,
                remove_data=removing,
                ctx=ctx,
            )

    def rm_chain(self, ctx: OperationContext) -> None:
        """Remove a stopped chain's containers.

        Raises:
            NotFoundError: If the chain's container is absent.
            ConflictError: If the chain is running.
        """
        definition = self._load(ctx)
        state = self._require_existing(definition)
        if state is ContainerState.RUNNING:
            raise ConflictError(
                f"Chain {definition.name} is running; stop it before removing it",
                name=definition.name,
            )
        self._remove_containers(definition, ctx)

        if ctx.rm_deps:
            self.dependencies.teardown(
                definition.dependencies, remove=True, remove_data=ctx.rmd, ctx=ctx
            )

    def rename_chain(self, ctx: OperationContext) -> ChainDefinition:
        """Rename a chain's containers in place and move its definition.

        Raises:
            NotFoundError: If the chain's container is absent.
            ConflictError: If the new name is taken, or other instances of the
                chain still use the shared definition.
        """
        old_name = validate_chain_name(ctx.name)
        new_name = validate_chain_name(ctx.new_name, field="new_name")
        if old_name == new_name:
            raise ValidationError(
                "The new name must differ from the current one",
                field="new_name",
                value=new_name,
            )

        definition = self._load(ctx)
        ops = definition.operations
        self._require_existing(definition)

        new_container, new_data = resolve(new_name, ops.container_number)
        taken = [
            n for n in (new_container, new_data) if self.runtime.state(n).exists
        ]
        if taken or self.store.chain_exists(new_name):
            raise ConflictError(
                f"Cannot rename {old_name} to {new_name}: name already in use",
                name=new_name,
            )

        siblings = [
            n
            for n in self.runtime.query(kind_prefix(KIND_CHAIN, f"{old_name}_"))
            if short_name(n) == old_name and container_number_of(n) != ops.container_number
        ]
        if siblings:
            raise ConflictError(
                f"Cannot rename {old_name}: other instances still use it "
                f"({', '.join(sorted(siblings))})",
                name=old_name,
            )

        old_data = data_container_name_for(ops.container_name)
        self.runtime.rename(ops.container_name, new_container)
        data_renamed = False
        try:
            if self.runtime.state(old_data).exists:
                self.runtime.rename(old_data, new_data)
                data_renamed = True
            renamed = self.store.rename_chain_definition(old_name, new_name)
        except ChainboxError:
            logger.warning("Rename of %s failed, restoring container names", old_name)
            if data_renamed:
                self.runtime.rename(new_data, old_data)
            self.runtime.rename(new_container, ops.container_name)
            raise
        ctx.emit(f"[green]✓ Renamed chain {old_name} to {new_name}[/green]")
        return renamed.resolve(ops.container_number)

    def inspect_chain(self, ctx: OperationContext) -> str:
        """Report attributes of a chain's container into ``ctx.result``.

        ``ctx.args`` names the attributes: ``name``, ``mounts``, a shortcut
        from INSPECT_SHORTCUTS, or a dotted path into the inspect document.
        With no args the whole document is returned as JSON.
        """
        definition = self._load(ctx)
        self._require_existing(definition)
        document = self.runtime.inspect(definition.operations.container_name)

        if not ctx.args:
            lines = [json.dumps(document, indent=2, sort_keys=True)]
        else:
            lines = [self._inspect_field(document, field) for field in ctx.args]

        ctx.set_result(lines)
        for line in lines:
            ctx.echo(line)
        return ctx.result

    def _inspect_field(self, document: dict, field: str) -> str:
        key = field.lower()
        if key == "name":
            return document.get("Name", "").lstrip("/")
        if key == "mounts":
            return "\n".join(
                f"{m.get('Name') or m.get('Source', '')}:{m.get('Destination', '')}"
                for m in document.get("Mounts") or []
            )
        try:
            return format_attribute(lookup_path(document, INSPECT_SHORTCUTS.get(key, field)))
        except KeyError as e:
            raise ValidationError(
                f"Unknown container attribute '{field}'", field="args", value=field
            ) from e

    def _list(self, ctx: OperationContext, running_only: bool) -> list[str]:
        states = self.runtime.query(kind_prefix(KIND_CHAIN, ctx.name or ""))
        names = sorted(
            {
                short_name(name)
                for name, state in states.items()
                if short_name(name)
                and (not running_only or state is ContainerState.RUNNING)
            }
        )
        ctx.set_result(names)
        for name in names:
            ctx.echo(name)
        return names

    def list_existing(self, ctx: OperationContext) -> list[str]:
        """Names of chains with a container, optionally filtered by ``ctx.name`` prefix."""
        return self._list(ctx, running_only=False)

    def list_running(self, ctx: OperationContext) -> list[str]:
        """Names of chains with a running container."""
        return self._list(ctx, running_only=True)

    def list_known(self, ctx: OperationContext) -> list[str]:
        """Names of persisted chain definitions."""
        names = self.store.list_known_chains()
        ctx.set_result(names)
        for name in names:
            ctx.echo(name)
        return names

    def logs_chain(self, ctx: OperationContext) -> None:
        """Write a chain's log output to the context's sink.

        With ``follow`` this blocks until the container stops or the process exits.
        """
        definition = self._load(ctx)
        self._require_existing(definition)
        tail = normalize_tail(ctx.tail)
        for chunk in self.runtime.logs(
            definition.operations.container_name, follow=ctx.follow, tail=tail
        ):
            ctx.write_raw(chunk)

    def update_chain(self, ctx: OperationContext) -> None:
        """Re-pull the chain's image and recreate its container in place.

        The container keeps its name and data container. A running chain is
        running again afterwards; its dependencies are checked before anything
        is stopped.

        Without auto_data the chain files live in the primary container, so
        the genesis file (and ``ctx.path``, when given) is copied into the new
        container again. Those files are read before anything is stopped.
        """
        definition = self._load(ctx, refresh=True)
        ops = definition.operations
        state = self._require_existing(definition)
        was_running = state is ContainerState.RUNNING

        if definition.auto_data and not self._data_exists(definition):
            raise NotFoundError(
                f"Data container {ops.data_container_name} for chain "
                f"{definition.name} does not exist",
                name=ops.data_container_name,
            )
        if was_running:
            self.dependencies.ensure_running(definition.dependencies)

        files = None
        if not definition.auto_data:
            files = self._collect_chain_files(definition.genesis_file, ctx.path)

        if not ctx.skip_pull:
            self.runtime.pull(definition.image)

        if was_running:
            self.runtime.stop(ops.container_name, timeout=self.stop_timeout)
        self.runtime.remove(ops.container_name)
        self._create_primary(definition)
        if files is not None:
            directory = chain_directory(definition.name)
            try:
                self.runtime.copy_into(ops.container_name, directory, files)
            except ChainboxError as e:
                raise ChainIOError(
                    f"Could not copy chain files into {ops.container_name}: {e.message}",
                    path=directory,
                ) from e
        if was_running:
            self.runtime.start(ops.container_name)
        ctx.emit(f"[green]✓ Updated chain {definition.name}[/green]")

    def graduate_chain(self, ctx: OperationContext) -> ServiceDefinition:
        """Persist the version-pinned service definition for a chain.

        No container is touched.
        """
        definition = self._load(ctx, refresh=True)
        service = graduate(definition, self.version)
        path = self.store.save_service_definition(service)
        ctx.emit(f"[green]✓ Graduated chain {definition.name} to service {path}[/green]")
        return service

    def exec_in_data(self, ctx: OperationContext) -> bytes:
        """Run ``ctx.args`` against the chain's data volume and write the output.

        Runs in a throwaway container, so the chain does not have to be running.
        """
        if not ctx.args:
            raise ValidationError("A command is required", field="args")
        definition = self._load(ctx)
        ops = definition.operations
        source = ops.data_container_name if definition.auto_data else ops.container_name
        if not self.runtime.state(source).exists:
            raise NotFoundError(
                ERROR_CHAIN_NOT_FOUND.format(chain=source), name=definition.name
            )
        output = self.runtime.run_volumes_from(source, list(ctx.args))
        ctx.write_raw(output)
        return output

    def exec_chain(self, ctx: OperationContext) -> bytes:
        """Run ``ctx.args`` inside the chain's running container.

        Raises:
            ConflictError: If the chain is not running.
        """
        if not ctx.args:
            raise ValidationError("A command is required", field="args")
        definition = self._load(ctx)
        state = self._require_existing(definition)
        if state is not ContainerState.RUNNING:
            raise ConflictError(
                f"Chain {definition.name} is not running", name=definition.name
            )
        output = self.runtime.exec(definition.operations.container_name, list(ctx.args))
        ctx.write_raw(output)
        return output

    def chain_state(self, ctx: OperationContext) -> ContainerState:
        validate_chain_name(ctx.name)
        container_name, _ = resolve(ctx.name, ctx.container_number)
        return self.runtime.state(container_name)
