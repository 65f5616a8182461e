"""
Constants and configuration values used across the chainbox codebase.
"""

# Container naming
CONTAINER_PREFIX = "chainbox"
KIND_CHAIN = "chain"
KIND_DATA = "data"
KIND_SERVICE = "service"
CONTAINER_KINDS = (KIND_CHAIN, KIND_DATA, KIND_SERVICE)
DEFAULT_CONTAINER_NUMBER = 1

# Container labels
LABEL_MANAGED = "chainbox.managed"
LABEL_KIND = "chainbox.kind"
LABEL_NAME = "chainbox.name"
LABEL_NUMBER = "chainbox.number"
LABEL_OWNER = "chainbox.owner"

# Images and commands
IMAGE_REPOSITORY = "chainbox"
CHAIN_IMAGE_NAME = "chaind"
KEYS_IMAGE_NAME = "keys"
DEFAULT_DATA_IMAGE = "busybox:latest"
CHAIN_START_COMMAND = "chaind run"
KEYS_START_COMMAND = "keys server"

# Dependency services
KEYS_SERVICE = "keys"
DEFAULT_CHAIN_DEPENDENCIES = [KEYS_SERVICE]

# Paths inside containers
CONTAINER_HOME = "/home/chainbox"
CONTAINER_DATA_ROOT = f"{CONTAINER_HOME}/.chainbox"
CONTAINER_CHAINS_DIR = f"{CONTAINER_DATA_ROOT}/chains"
GENESIS_FILE_NAME = "genesis.json"

# Paths on the host, relative to the chainbox home directory
DEFAULT_HOME_DIR = "~/.chainbox"
CHAINS_DEFINITIONS_DIR = "chains"
SERVICES_DEFINITIONS_DIR = "services"
SETTINGS_FILE_NAME = "config.toml"
DEFINITION_SUFFIX = ".toml"

# Environment variables
ENV_CHAINBOX_HOME = "CHAINBOX_HOME"
ENV_CHAINBOX_LOG_LEVEL = "CHAINBOX_LOG_LEVEL"
ENV_CHAINBOX_STOP_TIMEOUT = "CHAINBOX_STOP_TIMEOUT"
ENV_CHAINBOX_DATA_IMAGE = "CHAINBOX_DATA_IMAGE"

# Process and container management timeouts
CONTAINER_STOP_TIMEOUT = 10  # seconds

# Logging
DEFAULT_LOG_LEVEL = "WARNING"

# Log tail value meaning "everything"
TAIL_ALL = "all"

# Error messages
ERROR_CHAIN_NOT_FOUND = "Chain {chain} does not exist"
ERROR_CHAIN_DEFINITION_NOT_FOUND = "No chain definition found for {chain}"
ERROR_SERVICE_DEFINITION_NOT_FOUND = "No service definition found for {service}"
ERROR_CONTAINER_NOT_FOUND = "Container {container} not found"
ERROR_DEPENDENCY_NOT_RUNNING = "Dependency {dependency} is not running"
ERROR_FILE_NOT_FOUND = "File not found: {path}"
