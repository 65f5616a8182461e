"""
BaseManager - Common Docker client utilities and shared functionality.
"""

import logging
from typing import Optional

import docker

from chainbox.commands.errors import ContainerRuntimeError, NotFoundError

logger = logging.getLogger(__name__)


class BaseManager:
    """Base class with shared Docker client utilities."""

    def __init__(self, client: Optional[docker.DockerClient] = None):
        """Initialize with an optional Docker client.

        Args:
            client: Optional Docker client. If not provided, creates one from environment.

        Raises:
            ContainerRuntimeError: If no Docker daemon can be reached.
        """
        if client is not None:
            self.client = client
        else:
            try:
                self.client = docker.from_env()
            except docker.errors.DockerException as e:
                raise ContainerRuntimeError(
                    f"Failed to connect to Docker: {e}. "
                    "Make sure Docker is running and you have permission to access it."
                ) from e

    def pull_image(self, image: str) -> None:
        """Pull ``image`` from its registry even if a local copy exists."""
        logger.info("Pulling image %s", image)
        try:
            self.client.images.pull(image)
        except docker.errors.NotFound as e:
            raise NotFoundError(f"Image {image} not found in registry", name=image) from e
        except docker.errors.APIError as e:
            raise ContainerRuntimeError(f"Docker API error pulling {image}: {e}") from e
        logger.info("Pulled image %s", image)

    def ensure_image(self, image: str) -> None:
        """Ensure ``image`` is available locally, pulling it when missing."""
        try:
            self.client.images.get(image)
            logger.debug("Image %s already available locally", image)
            return
        except docker.errors.ImageNotFound:
            pass
        except docker.errors.APIError as e:
            raise ContainerRuntimeError(f"Error checking image {image}: {e}") from e

        self.pull_image(image)

