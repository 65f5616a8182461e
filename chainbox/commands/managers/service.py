"""
ServiceManager - dependency service containers (the key-management service and
graduated chains).

This is the provisioning side of dependencies: the chain lifecycle never starts
a service on its own, callers do it here explicitly.
"""

import logging
from typing import Optional

from chainbox.commands.constants import (
    CONTAINER_STOP_TIMEOUT,
    DEFAULT_DATA_IMAGE,
    ERROR_DEPENDENCY_NOT_RUNNING,
    KIND_SERVICE,
)
from chainbox.commands.definitions import DefinitionStore, ServiceDefinition
from chainbox.commands.errors import ConflictError, DependencyError
from chainbox.commands.managers.runtime import (
    ContainerRuntime,
    ContainerState,
    container_labels,
    create_data_container,
    data_owner,
)
from chainbox.commands.naming import (
    data_container_name,
    kind_prefix,
    service_container_name,
    short_name,
)
from chainbox.commands.operation import OperationContext

logger = logging.getLogger(__name__)


class ServiceManager:
    """Starts, stops and lists service containers."""

    def __init__(
        self,
        runtime: ContainerRuntime,
        store: DefinitionStore,
        data_image: str = DEFAULT_DATA_IMAGE,
        stop_timeout: int = CONTAINER_STOP_TIMEOUT,
    ):
        self.runtime = runtime
        self.store = store
        self.data_image = data_image
        self.stop_timeout = stop_timeout

    def _targets(self, ctx: OperationContext) -> list[str]:
        return list(ctx.args) if ctx.args else [ctx.name]

    def service_state(self, service: str, container_number: int = 1) -> ContainerState:
        return self.runtime.state(service_container_name(service, container_number))

    def start_service(self, ctx: OperationContext) -> None:
        """Start every service named in ``ctx.args`` (or ``ctx.name``).

        Already running services are left alone. A service whose own
        dependencies are not running raises DependencyError before anything
        is created, and so does ConflictError when a chain of the same name
        owns the data container the service would mount.
        """
        for service in self._targets(ctx):
            definition = self.store.load_service_definition(
                service, container_number=ctx.container_number
            )
            self._start_one(ctx, definition)

    def _start_one(self, ctx: OperationContext, definition: ServiceDefinition) -> None:
        ops = definition.operations
        state = self.runtime.state(ops.container_name)
        if state is ContainerState.RUNNING:
            ctx.emit(f"[green]✓ Service {definition.name} is already running[/green]")
            return

        for dependency in definition.dependencies:
            if self.service_state(dependency) is not ContainerState.RUNNING:
                raise DependencyError(
                    ERROR_DEPENDENCY_NOT_RUNNING.format(dependency=dependency),
                    dependency=dependency,
                )

        if not state.exists:
            data_exists = (
                definition.auto_data
                and self.runtime.state(ops.data_container_name).exists
            )
            owner = data_owner(self.runtime, ops.data_container_name) if data_exists else ""
            if owner and owner != KIND_SERVICE:
                raise ConflictError(
                    f"Data container {ops.data_container_name} belongs to chain "
                    f"{definition.name}; remove the chain before starting the service",
                    name=definition.name,
                )
            if not ctx.skip_pull:
                self.runtime.ensure_image(definition.image)
            volumes_from = None
            if definition.auto_data:
                if not data_exists:
                    create_data_container(
                        self.runtime,
                        definition.name,
                        ops.container_number,
                        self.data_image,
                        owner=KIND_SERVICE,
                    )
                volumes_from = [ops.data_container_name]
            self.runtime.create(
                ops.container_name,
                definition.image,
                command=definition.command,
                env=definition.environment,
                volumes_from=volumes_from,
                labels=container_labels(
                    KIND_SERVICE, definition.name, ops.container_number
                ),
            )
            logger.info("Created service container %s", ops.container_name)

        self.runtime.start(ops.container_name)
        ctx.emit(f"[green]✓ Started service {definition.name}[/green]")

    def kill_service(self, ctx: OperationContext) -> None:
        """Stop every service named in ``ctx.args`` (or ``ctx.name``).

        ``rm`` removes the service container; ``rmd`` removes its data
        container as well. A service container is never removed without its
        data container. Services that do not exist are skipped.
        """
        for service in self._targets(ctx):
            self.stop_service(
                service,
                remove=ctx.rm or ctx.rmd,
                remove_data=ctx.rm or ctx.rmd,
                container_number=ctx.container_number,
                ctx=ctx,
            )

    def stop_service(
        self,
        service: str,
        remove: bool = False,
        remove_data: bool = False,
        container_number: int = 1,
        ctx: Optional[OperationContext] = None,
    ) -> None:
        name = service_container_name(service, container_number)
        state = self.runtime.state(name)
        if state is ContainerState.RUNNING:
            self.runtime.stop(name, timeout=self.stop_timeout)
            if ctx:
                ctx.emit(f"[green]✓ Stopped service {service}[/green]")
        elif not state.exists:
            logger.debug("Service container %s does not exist, nothing to stop", name)

        if remove and state.exists:
            self.runtime.remove(name)
            if ctx:
                ctx.emit(f"[green]✓ Removed service {service}[/green]")

        if remove_data and (remove or not state.exists):
            data_name = data_container_name(service, container_number)
            if not self.runtime.state(data_name).exists:
                return
            if data_owner(self.runtime, data_name) != KIND_SERVICE:
                logger.warning(
                    "Keeping data container %s: it belongs to chain %s", data_name, service
                )
            else:
                self.runtime.remove(data_name, volumes=True)
                if ctx:
                    ctx.emit(f"[green]✓ Removed data container for {service}[/green]")

    def list_running_services(self, ctx: OperationContext) -> list[str]:
        states = self.runtime.query(kind_prefix(KIND_SERVICE))
        names = sorted(
            {
                short_name(name)
                for name, state in states.items()
                if state is ContainerState.RUNNING and short_name(name)
            }
        )
        ctx.set_result(names)
        return names
