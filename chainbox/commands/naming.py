"""
Container naming for chains, their data containers and dependency services.

Resolved names have the shape ``chainbox_<kind>_<name>_<number>``. Chain names
may contain underscores, so parsing always strips exactly one leading prefix,
one kind segment and one trailing number.
"""

import re
from typing import Optional

from chainbox.commands.constants import (
    CONTAINER_KINDS,
    CONTAINER_PREFIX,
    DEFAULT_CONTAINER_NUMBER,
    KIND_CHAIN,
    KIND_DATA,
    KIND_SERVICE,
)
from chainbox.commands.errors import ValidationError

CHAIN_NAME_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_.-]*$")


def validate_chain_name(name: str, field: str = "name") -> str:
    """Validate a chain or service name and return it unchanged.

    Raises:
        ValidationError: If the name is empty or not usable in a container name.
    """
    if not isinstance(name, str) or not name:
        raise ValidationError("A chain name is required", field=field)
    if not CHAIN_NAME_PATTERN.match(name):
        raise ValidationError(
            f"Invalid name '{name}': use letters, digits, '_', '.' or '-', "
            "starting with a letter or digit",
            field=field,
            value=name,
        )
    return name


def validate_container_number(number: Optional[int]) -> int:
    """Return a positive container number; ``None`` means the default of 1.

    Raises:
        ValidationError: If the number is not a positive integer.
    """
    if number is None:
        return DEFAULT_CONTAINER_NUMBER
    if isinstance(number, bool) or not isinstance(number, int) or number < 1:
        raise ValidationError(
            "Container number must be a positive integer",
            field="container_number",
            value=number,
        )
    return number


def container_name(kind: str, name: str, container_number: Optional[int] = None) -> str:
    """Build the resolved container name for ``kind``/``name``/``number``."""
    if kind not in CONTAINER_KINDS:
        raise ValidationError(f"Unknown container kind '{kind}'", field="kind", value=kind)
    number = validate_container_number(container_number)
    return f"{CONTAINER_PREFIX}_{kind}_{name}_{number}"


def chain_container_name(chain_name: str, container_number: Optional[int] = None) -> str:
    return container_name(KIND_CHAIN, chain_name, container_number)


def data_container_name(chain_name: str, container_number: Optional[int] = None) -> str:
    return container_name(KIND_DATA, chain_name, container_number)


def service_container_name(
    service_name: str, container_number: Optional[int] = None
) -> str:
    return container_name(KIND_SERVICE, service_name, container_number)


def resolve(chain_name: str, container_number: Optional[int] = None) -> tuple[str, str]:
    """Return ``(container_name, data_container_name)`` for a chain."""
    return (
        chain_container_name(chain_name, container_number),
        data_container_name(chain_name, container_number),
    )


def _split(resolved_name: str) -> Optional[tuple[str, str, int]]:
    """Split a resolved name into (kind, name, number), or None if it is not ours."""
    parts = resolved_name.lstrip("/").split("_")
    if len(parts) < 4 or parts[0] != CONTAINER_PREFIX:
        return None
    kind = parts[1]
    if kind not in CONTAINER_KINDS or not parts[-1].isdigit():
        return None
    name = "_".join(parts[2:-1])
    if not name:
        return None
    return kind, name, int(parts[-1])


def data_container_name_for(resolved_name: str) -> str:
    """Derive the data container name from a resolved chain or service name."""
    parsed = _split(resolved_name)
    if parsed is None:
        raise ValidationError(
            f"'{resolved_name}' is not a chainbox container name",
            field="container_name",
            value=resolved_name,
        )
    _, name, number = parsed
    return container_name(KIND_DATA, name, number)


def short_name(resolved_name: str) -> str:
    """Display name of a resolved container: the chain or service name alone.

    Returns an empty string for names that were not produced by this module.
    """
    parsed = _split(resolved_name)
    if parsed is None:
        return ""
    return parsed[1]


def container_number_of(resolved_name: str) -> Optional[int]:
    parsed = _split(resolved_name)
    return parsed[2] if parsed else None


def kind_prefix(kind: str, name_prefix: str = "") -> str:
    """Name prefix matching every container of ``kind`` whose name starts with ``name_prefix``."""
    return f"{CONTAINER_PREFIX}_{kind}_{name_prefix}"


__all__ = [
    "KIND_CHAIN",
    "KIND_DATA",
    "KIND_SERVICE",
    "validate_chain_name",
    "validate_container_number",
    "container_name",
    "chain_container_name",
    "data_container_name",
    "service_container_name",
    "resolve",
    "data_container_name_for",
    "short_name",
    "container_number_of",
    "kind_prefix",
]
