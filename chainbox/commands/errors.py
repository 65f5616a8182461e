"""
Typed error classes for chainbox.

This module provides the error hierarchy raised by the chain lifecycle code:
- ChainboxError: Base exception for all chainbox errors
- NotFoundError: A referenced chain, service, container or definition is missing
- ConflictError: Name collisions and operations invalid for the current state
- DependencyError: A required dependency service is not running
- ChainIOError: Genesis copy and definition read/write failures
- ContainerRuntimeError: Failures surfaced by the container runtime
- ValidationError: Input validation errors
- ConfigurationError: Malformed settings or definition files
"""

from typing import Any, Optional


class ChainboxError(Exception):
    """Base exception class for all chainbox errors.

    Attributes:
        message: Human-readable error message
        code: Optional error code for programmatic handling
        details: Optional dictionary with additional error context
    """

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """Convert error to a dictionary for serialization."""
        result: dict[str, Any] = {
            "type": self.__class__.__name__,
            "message": self.message,
        }
        if self.code:
            result["code"] = self.code
        if self.details:
            result["details"] = self.details
        return result

    def __str__(self) -> str:
        if self.code:
            return f"[{self.code}] {self.message}"
        return self.message


class NotFoundError(ChainboxError):
    """Raised when a referenced chain, container or definition does not exist."""

    def __init__(
        self,
        message: str,
        name: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        self.name = name
        details = details or {}
        if name:
            details["name"] = name
        super().__init__(message, code="NOT_FOUND", details=details)


class ConflictError(ChainboxError):
    """Raised on name collisions or when an operation is invalid for the current state.

    Raised when:
    - A container already exists for the requested chain and number
    - A rename target is already bound to another chain
    - A running container would have to be removed
    """

    def __init__(
        self,
        message: str,
        name: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        self.name = name
        details = details or {}
        if name:
            details["name"] = name
        super().__init__(message, code="CONFLICT", details=details)


class DependencyError(ChainboxError):
    """Raised when a declared dependency is not running."""

    def __init__(
        self,
        message: str,
        dependency: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        self.dependency = dependency
        details = details or {}
        if dependency:
            details["dependency"] = dependency
        super().__init__(message, code="DEPENDENCY_NOT_RUNNING", details=details)


class ChainIOError(ChainboxError):
    """Raised when a genesis copy or a definition read/write fails."""

    def __init__(
        self,
        message: str,
        path: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        self.path = path
        details = details or {}
        if path:
            details["path"] = str(path)
        super().__init__(message, code="IO_FAILED", details=details)


class ContainerRuntimeError(ChainboxError):
    """Opaque failure surfaced by the container runtime.

    The original exception is kept as ``__cause__`` by raising with ``from``.
    """

    def __init__(
        self,
        message: str,
        container: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        self.container = container
        details = details or {}
        if container:
            details["container"] = container
        super().__init__(message, code="RUNTIME_FAILED", details=details)


class ValidationError(ChainboxError):
    """Input validation errors.

    Raised when:
    - A chain name contains characters the runtime rejects
    - A container number is not a positive integer
    - A required option is missing
    """

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        value: Optional[Any] = None,
        code: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        self.field = field
        self.value = value
        details = details or {}
        if field:
            details["field"] = field
        if value is not None:
            details["value"] = value
        super().__init__(message, code=code or "VALIDATION_FAILED", details=details)


class ConfigurationError(ChainboxError):
    """Configuration-related errors.

    Raised when:
    - The settings file is malformed
    - A definition file cannot be parsed
    """

    def __init__(
        self,
        message: str,
        config_file: Optional[str] = None,
        code: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        self.config_file = config_file
        details = details or {}
        if config_file:
            details["config_file"] = str(config_file)
        super().__init__(message, code=code or "CONFIGURATION_ERROR", details=details)


# Export all error classes for convenient importing
__all__ = [
    "ChainboxError",
    "NotFoundError",
    "ConflictError",
    "DependencyError",
    "ChainIOError",
    "ContainerRuntimeError",
    "ValidationError",
    "ConfigurationError",
]
