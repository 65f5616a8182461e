"""
Graduation: turn a throwaway chain definition into a pinned service definition.
"""

from chainbox import __version__
from chainbox.commands.constants import CHAIN_START_COMMAND, KEYS_SERVICE
from chainbox.commands.definitions import (
    ChainDefinition,
    ServiceDefinition,
    release_image,
)


def graduate(definition: ChainDefinition, version: str = __version__) -> ServiceDefinition:
    """Return the service definition a chain graduates into.

    The image is pinned to the release for ``version``'s major.minor, the
    command is the fixed chain start command, the data container is always on
    and the only dependency is the key-management service. ``definition`` is
    not modified and no container is touched.
    """
    return ServiceDefinition(
        name=definition.name,
        image=release_image(version),
        command=CHAIN_START_COMMAND,
        auto_data=True,
        dependencies=[KEYS_SERVICE],
    ).resolve(definition.operations.container_number)
