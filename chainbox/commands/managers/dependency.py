"""
DependencyResolver - gate chain starts on their dependency services and tear
those services down afterwards.
"""

import logging
from typing import Iterable, Optional

from chainbox.commands.constants import ERROR_DEPENDENCY_NOT_RUNNING
from chainbox.commands.definitions import unique_in_order
from chainbox.commands.errors import DependencyError
from chainbox.commands.managers.runtime import ContainerState
from chainbox.commands.managers.service import ServiceManager
from chainbox.commands.operation import OperationContext

logger = logging.getLogger(__name__)


class DependencyResolver:
    """Checks and tears down a chain's ordered dependency list.

    Dependencies are service names, always resolved at container number 1.
    """

    def __init__(self, services: ServiceManager):
        self.services = services

    def ensure_running(self, dependencies: Iterable[str]) -> None:
        """Raise DependencyError for the first dependency that is not running.

        Nothing is started here and the runtime is only queried.
        """
        for dependency in unique_in_order(dependencies):
            state = self.services.service_state(dependency)
            logger.debug("Dependency %s is %s", dependency, state.value)
            if state is not ContainerState.RUNNING:
                raise DependencyError(
                    ERROR_DEPENDENCY_NOT_RUNNING.format(dependency=dependency),
                    dependency=dependency,
                )

    def teardown(
        self,
        dependencies: Iterable[str],
        remove: bool = False,
        remove_data: bool = False,
        ctx: Optional[OperationContext] = None,
    ) -> list[str]:
        """Stop dependencies in reverse declared order; return the order used."""
        order = list(reversed(unique_in_order(dependencies)))
        for dependency in order:
            self.services.stop_service(
                dependency, remove=remove, remove_data=remove_data, ctx=ctx
            )
        return order
