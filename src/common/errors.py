"""Error taxonomy for chunkwise.

Only ``ConfigurationError`` is allowed to abort a run. Cache I/O problems are
raised by storage backends and always absorbed by the cache controller, and
package resolution failures are plain values (see ``registry.npm.descriptor``).
"""

from __future__ import annotations


class ChunkwiseError(Exception):
    """Base class for all chunkwise errors."""


class ConfigurationError(ChunkwiseError, ValueError):
    """Raised when build-mode input or a config file is malformed."""


class CacheIOError(ChunkwiseError, OSError):
    """Raised by a cache backend when an entry cannot be read or written."""

    def __init__(self, key: str, message: str):
        super().__init__(f"{key}: {message}")
        self.key = key
