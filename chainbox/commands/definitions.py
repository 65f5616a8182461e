"""
Chain and service definitions and their on-disk store.

Definitions are TOML files under the chainbox home directory:

    <home>/chains/<name>.toml
    <home>/services/<name>.toml

with the format:

    name = "mychain"
    genesis_file = "/path/to/genesis.json"   # chains only

    [service]
    image = "chainbox/chaind:0.4"
    command = "chaind run"
    auto_data = true

    [dependencies]
    services = ["keys"]

Container names are never persisted; they are resolved on load from the
definition name and the requested container number.
"""

import copy
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional, Union

import toml

from chainbox import __version__
from chainbox.commands.constants import (
    CHAIN_IMAGE_NAME,
    CHAIN_START_COMMAND,
    CHAINS_DEFINITIONS_DIR,
    DEFAULT_CHAIN_DEPENDENCIES,
    DEFINITION_SUFFIX,
    ERROR_CHAIN_DEFINITION_NOT_FOUND,
    ERROR_SERVICE_DEFINITION_NOT_FOUND,
    IMAGE_REPOSITORY,
    KEYS_IMAGE_NAME,
    KEYS_SERVICE,
    KEYS_START_COMMAND,
    SERVICES_DEFINITIONS_DIR,
)
from chainbox.commands.errors import (
    ChainIOError,
    ConfigurationError,
    ConflictError,
    NotFoundError,
)
from chainbox.commands.naming import (
    chain_container_name,
    data_container_name,
    service_container_name,
    validate_chain_name,
    validate_container_number,
)

logger = logging.getLogger(__name__)


def version_tag(version: str) -> str:
    """Return the ``major.minor`` part of a version string."""
    return ".".join(version.split(".")[0:2])


def release_image(version: str = __version__, image_name: str = CHAIN_IMAGE_NAME) -> str:
    """Version-pinned release image, e.g. ``chainbox/chaind:0.4``."""
    return f"{IMAGE_REPOSITORY}/{image_name}:{version_tag(version)}"


def unique_in_order(names) -> list[str]:
    """Drop duplicates from ``names`` keeping the first occurrence of each."""
    seen = set()
    ordered = []
    for name in names or []:
        if name and name not in seen:
            seen.add(name)
            ordered.append(name)
    return ordered


@dataclass
class ChainOperations:
    """Resolved, never persisted, per-instance fields."""

    container_number: int = 1
    container_name: str = ""
    data_container_name: str = ""


@dataclass
class ChainDefinition:
    """The declared shape of a chain."""

    name: str
    image: str = ""
    command: str = ""
    genesis_file: str = ""
    auto_data: bool = True
    dependencies: list[str] = field(default_factory=list)
    operations: ChainOperations = field(default_factory=ChainOperations)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for TOML serialization."""
        return {
            "name": self.name,
            "genesis_file": self.genesis_file,
            "service": {
                "image": self.image,
                "command": self.command,
                "auto_data": self.auto_data,
            },
            "dependencies": {"services": list(self.dependencies)},
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ChainDefinition":
        """Create from dictionary."""
        service = data.get("service", {})
        deps = data.get("dependencies", {})
        return cls(
            name=data["name"],
            image=service.get("image", ""),
            command=service.get("command", ""),
            genesis_file=data.get("genesis_file", ""),
            auto_data=bool(service.get("auto_data", True)),
            dependencies=unique_in_order(deps.get("services", [])),
        )

    def resolve(self, container_number: Optional[int] = None) -> "ChainDefinition":
        """Fill ``operations`` with the container names for ``container_number``."""
        number = validate_container_number(container_number)
        self.operations.container_number = number
        self.operations.container_name = chain_container_name(self.name, number)
        self.operations.data_container_name = (
            data_container_name(self.name, number) if self.auto_data else ""
        )
        return self


@dataclass
class ServiceDefinition:
    """A pinned service: a dependency such as ``keys`` or a graduated chain."""

    name: str
    image: str = ""
    command: str = ""
    auto_data: bool = False
    dependencies: list[str] = field(default_factory=list)
    environment: dict[str, str] = field(default_factory=dict)
    operations: ChainOperations = field(default_factory=ChainOperations)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for TOML serialization."""
        return {
            "name": self.name,
            "service": {
                "image": self.image,
                "command": self.command,
                "auto_data": self.auto_data,
                "environment": dict(self.environment),
            },
            "dependencies": {"services": list(self.dependencies)},
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ServiceDefinition":
        """Create from dictionary."""
        service = data.get("service", {})
        deps = data.get("dependencies", {})
        return cls(
            name=data["name"],
            image=service.get("image", ""),
            command=service.get("command", ""),
            auto_data=bool(service.get("auto_data", False)),
            dependencies=unique_in_order(deps.get("services", [])),
            environment={
                str(k): str(v) for k, v in service.get("environment", {}).items()
            },
        )

    def resolve(self, container_number: Optional[int] = None) -> "ServiceDefinition":
        number = validate_container_number(container_number)
        self.operations.container_number = number
        self.operations.container_name = service_container_name(self.name, number)
        self.operations.data_container_name = (
            data_container_name(self.name, number) if self.auto_data else ""
        )
        return self


def default_chain_definition(
    name: str, genesis_file: str = "", version: str = __version__
) -> ChainDefinition:
    """Definition used by ``new_chain`` when nothing is persisted for ``name``."""
    return ChainDefinition(
        name=name,
        image=release_image(version),
        command=CHAIN_START_COMMAND,
        genesis_file=genesis_file,
        auto_data=True,
        dependencies=list(DEFAULT_CHAIN_DEPENDENCIES),
    )


def default_keys_definition(version: str = __version__) -> ServiceDefinition:
    return ServiceDefinition(
        name=KEYS_SERVICE,
        image=release_image(version, KEYS_IMAGE_NAME),
        command=KEYS_START_COMMAND,
        auto_data=True,
    )


class DefinitionStore:
    """Loads and persists chain and service definitions.

    ``refresh=False`` loads may be answered from an in-memory cache, but a
    cached definition is only returned while its file still exists.
    """

    def __init__(self, root: Union[str, Path], version: str = __version__):
        """Initialize the store.

        Args:
            root: The chainbox home directory.
            version: Version used for built-in service definitions.
        """
        self.root = Path(root)
        self.version = version
        self.chains_dir = self.root / CHAINS_DEFINITIONS_DIR
        self.services_dir = self.root / SERVICES_DEFINITIONS_DIR
        self._cache: dict[tuple[str, str], Union[ChainDefinition, ServiceDefinition]] = {}

    # Paths

    def chain_path(self, name: str) -> Path:
        return self.chains_dir / f"{name}{DEFINITION_SUFFIX}"

    def service_path(self, name: str) -> Path:
        return self.services_dir / f"{name}{DEFINITION_SUFFIX}"

    def chain_exists(self, name: str) -> bool:
        return self.chain_path(name).is_file()

    def service_exists(self, name: str) -> bool:
        return self.service_path(name).is_file()

    # Raw file access

    def _read(self, path: Path) -> dict[str, Any]:
        try:
            with open(path, encoding="utf-8") as f:
                data = toml.load(f)
        except toml.TomlDecodeError as e:
            raise ConfigurationError(
                f"Invalid definition file: {e}", config_file=str(path)
            ) from e
        except OSError as e:
            raise ChainIOError(f"Could not read definition: {e}", path=str(path)) from e
        if "name" not in data:
            data["name"] = path.stem
        return data

    def _write(self, path: Path, data: dict[str, Any]) -> None:
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            temp_path = path.with_suffix(".tmp")
            with open(temp_path, "w", encoding="utf-8") as f:
                toml.dump(data, f)
            os.replace(temp_path, path)
        except OSError as e:
            raise ChainIOError(
                f"Could not write definition: {e}", path=str(path)
            ) from e
        logger.debug("Wrote definition %s", path)

    # Chains

    def load_chain_definition(
        self, name: str, refresh: bool = False, container_number: Optional[int] = 1
    ) -> ChainDefinition:
        """Load a chain definition and resolve its container names.

        Raises:
            NotFoundError: If no definition file exists for ``name``.
        """
        validate_chain_name(name)
        number = validate_container_number(container_number)
        path = self.chain_path(name)
        if not path.is_file():
            self._cache.pop(("chain", name), None)
            raise NotFoundError(
                ERROR_CHAIN_DEFINITION_NOT_FOUND.format(chain=name), name=name
            )

        key = ("chain", name)
        if refresh or key not in self._cache:
            self._cache[key] = ChainDefinition.from_dict(self._read(path))
        definition = copy.deepcopy(self._cache[key])
        return definition.resolve(number)

    def save_chain_definition(self, definition: ChainDefinition) -> Path:
        validate_chain_name(definition.name)
        path = self.chain_path(definition.name)
        self._write(path, definition.to_dict())
        self._cache[("chain", definition.name)] = copy.deepcopy(definition)
        return path

    def remove_chain_definition(self, name: str) -> bool:
        self._cache.pop(("chain", name), None)
        path = self.chain_path(name)
        if not path.exists():
            return False
        try:
            path.unlink()
        except OSError as e:
            raise ChainIOError(f"Could not remove definition: {e}", path=str(path)) from e
        return True

    def rename_chain_definition(self, old_name: str, new_name: str) -> ChainDefinition:
        """Move a chain definition to ``new_name`` and rewrite its name field.

        Raises:
            NotFoundError: If ``old_name`` has no definition.
            ConflictError: If ``new_name`` already has one.
        """
        validate_chain_name(new_name, field="new_name")
        if self.chain_exists(new_name):
            raise ConflictError(
                f"A chain definition named {new_name} already exists", name=new_name
            )
        definition = self.load_chain_definition(old_name, refresh=True)
        definition.name = new_name
        self.save_chain_definition(definition)
        self.remove_chain_definition(old_name)
        return definition.resolve(definition.operations.container_number)

    def list_known_chains(self) -> list[str]:
        return self._list(self.chains_dir)

    # Services

    def load_service_definition(
        self, name: str, refresh: bool = False, container_number: Optional[int] = 1
    ) -> ServiceDefinition:
        """Load a service definition and resolve its container names.

        The built-in ``keys`` service is written to disk on first access.

        Raises:
            NotFoundError: If no definition file exists for ``name``.
        """
        validate_chain_name(name)
        number = validate_container_number(container_number)
        path = self.service_path(name)
        if not path.is_file():
            self._cache.pop(("service", name), None)
            if name != KEYS_SERVICE:
                raise NotFoundError(
                    ERROR_SERVICE_DEFINITION_NOT_FOUND.format(service=name), name=name
                )
            self.save_service_definition(default_keys_definition(self.version))

        key = ("service", name)
        if refresh or key not in self._cache:
            self._cache[key] = ServiceDefinition.from_dict(self._read(path))
        definition = copy.deepcopy(self._cache[key])
        return definition.resolve(number)

    def save_service_definition(self, definition: ServiceDefinition) -> Path:
        validate_chain_name(definition.name)
        path = self.service_path(definition.name)
        self._write(path, definition.to_dict())
        self._cache[("service", definition.name)] = copy.deepcopy(definition)
        return path

    def list_known_services(self) -> list[str]:
        return self._list(self.services_dir)

    @staticmethod
    def _list(directory: Path) -> list[str]:
        if not directory.is_dir():
            return []
        return sorted(
            p.stem for p in directory.iterdir() if p.is_file() and p.suffix == DEFINITION_SUFFIX
        )
