"""Constants used in the project."""

import os
from enum import Enum


class ExitCodes(Enum):
    """Exit codes for the program.

    Args:
        Enum (int): Exit codes for the program.
    """

    SUCCESS = 0
    FILE_ERROR = 1
    CONFIG_ERROR = 2


class BuildMode(Enum):
    """Build modes understood by the configuration layer.

    Args:
        Enum (string): Build modes accepted on the CLI and in config files.
    """

    DEVELOPMENT = "development"
    PRODUCTION = "production"
    ANALYZE = "analyze"


class AssetClass(Enum):
    """Kinds of emitted artifacts, each with its own filename template."""

    SCRIPT = "script"
    STYLE = "style"
    WASM = "wasm"
    HOT_UPDATE_CHUNK = "hot_update_chunk"
    HOT_UPDATE_MAIN = "hot_update_main"


class Constants:  # pylint: disable=too-few-public-methods
    """General constants used in the project.
    Data holder for configuration constants; not intended to provide behavior.
    """

    PACKAGE_JSON_FILE = "package.json"
    NODE_MODULES_DIR = "node_modules"
    DEFAULT_FRAMEWORK_PACKAGES = ("react", "react-dom")
    SUPPORTED_MODES = [
        BuildMode.DEVELOPMENT.value,
        BuildMode.PRODUCTION.value,
        BuildMode.ANALYZE.value,
    ]
    LOG_FORMAT = "[%(levelname)s] %(message)s"
    LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]

    # Environment
    ENV_NODE_ENV = "NODE_ENV"
    ENV_ANALYZE = "ANALYZE"
    ENV_NODE_PATH = "NODE_PATH"
    ENV_LOG_LEVEL = "CHUNKWISE_LOG_LEVEL"

    # Output naming
    HASH_FUNCTION = "xxhash64"
    SUPPORTED_HASH_FUNCTIONS = ["xxhash64", "xxh3_64", "xxh128"]
    HASH_DIGEST_LENGTH = 16
    LIBRARY_NAME = "_101"
    CROSS_ORIGIN_LOADING = "anonymous"

    # Chunking
    FRAMEWORK_CHUNK_NAME = "framework"
    FRAMEWORK_CHUNK_PRIORITY = 40
    RUNTIME_CHUNK_NAME = "webpack"
    DEFAULT_CHUNK_NAME = "main"

    # Persistent cache
    CACHE_DIR_PARTS = (NODE_MODULES_DIR, ".cache", "chunkwise")
    DEV_MAX_MEMORY_GENERATIONS = 5
    DEV_CACHE_COMPRESSION = "gzip"
    CACHE_FILE_SUFFIX = ".pack"
    CACHE_LOCK_STRIPES = 64

    # Dev server / tooling
    DEV_SERVER_PORT = 3000
    DEV_DEVTOOL = "eval-cheap-module-source-map"
    RESOLVE_EXTENSIONS = [".ts", ".tsx", ".jsx", ".mjs", ".cjs", ".js", ".json"]


def default_cache_directory(root_dir: str) -> str:
    """Return the persistent cache directory for a project root."""
    return os.path.join(root_dir, *Constants.CACHE_DIR_PARTS)
