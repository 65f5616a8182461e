"""
Managers module - Focused manager classes following Single Responsibility Principle.

- BaseManager: Common Docker client utilities
- DockerRuntime: ContainerRuntime on the Docker SDK
- ServiceManager: Dependency service containers
- DependencyResolver: Dependency gate and teardown for chains
- ChainManager: Chain container lifecycle
"""

from chainbox.commands.managers.base import BaseManager
from chainbox.commands.managers.chain import ChainManager
from chainbox.commands.managers.dependency import DependencyResolver
from chainbox.commands.managers.runtime import (
    ContainerRuntime,
    ContainerState,
    DockerRuntime,
)
from chainbox.commands.managers.service import ServiceManager

__all__ = [
    "BaseManager",
    "ContainerRuntime",
    "ContainerState",
    "DockerRuntime",
    "ServiceManager",
    "DependencyResolver",
    "ChainManager",
]
