"""
Commands module - All available CLI commands.
"""

from chainbox.commands.chains import chains
from chainbox.commands.errors import (
    ChainboxError,
    ChainIOError,
    ConfigurationError,
    ConflictError,
    ContainerRuntimeError,
    DependencyError,
    NotFoundError,
    ValidationError,
)
from chainbox.commands.services import services

__all__ = [
    # Commands
    "chains",
    "services",
    # Error classes
    "ChainboxError",
    "NotFoundError",
    "ConflictError",
    "DependencyError",
    "ChainIOError",
    "ContainerRuntimeError",
    "ValidationError",
    "ConfigurationError",
]
