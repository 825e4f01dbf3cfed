"""Persistent build cache with a bounded window of in-memory generations.

Entries are keyed by a fingerprint of the build inputs and stored through a
pluggable backend. A generation is one compilation: entries not used within
the last ``max_memory_generations`` generations are dropped from memory but
stay on disk. Backend failures never propagate; they degrade to a cache miss.
"""

from __future__ import annotations

import gzip
import json
import logging
import os
import tempfile
import threading
import zlib
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterator, List, Mapping, Optional, Protocol

import xxhash

from common.errors import CacheIOError, ConfigurationError
from common.logging_utils import extra_context, is_debug_enabled
from constants import BuildMode, Constants, default_cache_directory

logger = logging.getLogger(__name__)


def fingerprint(content: bytes, config: Mapping[str, Any]) -> str:
    """Key for a cache entry: hash of the input bytes plus canonical config.

    Every configuration value that changes the output bytes must be present
    in ``config``; otherwise incompatible builds would share entries.
    """
    canonical = json.dumps(config, sort_keys=True, separators=(",", ":"), default=str)
    hasher = xxhash.xxh128()
    hasher.update(canonical.encode("utf-8"))
    hasher.update(b"\0")
    hasher.update(content)
    return hasher.hexdigest()


@dataclass(frozen=True)
class CachePolicy:
    """Retention and compression policy handed to the cache controller."""

    directory: str
    name: str
    max_memory_generations: Optional[int] = None  # None means unbounded
    compression: Optional[str] = None

    def __post_init__(self) -> None:
        if self.max_memory_generations is not None and self.max_memory_generations < 1:
            raise ConfigurationError("cache.max_memory_generations must be >= 1")
        if self.compression not in (None, "gzip"):
            raise ConfigurationError(f"Unsupported cache compression '{self.compression}'")

    @classmethod
    def for_mode(cls, mode: BuildMode, root_dir: str, directory: Optional[str] = None) -> "CachePolicy":
        """Default policy for a build mode.

        Development keeps a small window of generations and gzips entries.
        One-shot production builds keep everything in memory, uncompressed.
        """
        directory = directory or default_cache_directory(root_dir)
        if mode == BuildMode.DEVELOPMENT:
            return cls(
                directory=directory,
                name=mode.value,
                max_memory_generations=Constants.DEV_MAX_MEMORY_GENERATIONS,
                compression=Constants.DEV_CACHE_COMPRESSION,
            )
        return cls(directory=directory, name=BuildMode.PRODUCTION.value)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": "filesystem",
            "cacheDirectory": self.directory,
            "name": self.name,
            "maxMemoryGenerations": self.max_memory_generations,
            "compression": self.compression or False,
        }


class CacheBackend(Protocol):
    """Durable storage for cache entries."""

    def read(self, key: str) -> Optional[bytes]: ...

    def write(self, key: str, data: bytes) -> None: ...

    def delete(self, key: str) -> None: ...

    def keys(self) -> Iterator[str]: ...


class MemoryBackend:
    """Dict-backed storage, used in tests and for throwaway builds."""

    def __init__(self) -> None:
        self._data: Dict[str, bytes] = {}

    def read(self, key: str) -> Optional[bytes]:
        return self._data.get(key)

    def write(self, key: str, data: bytes) -> None:
        self._data[key] = bytes(data)

    def delete(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self) -> Iterator[str]:
        return iter(list(self._data))


class FilesystemBackend:
    """One file per entry under ``directory``; writes are atomic renames."""

    def __init__(self, directory: str):
        self.directory = directory

    def _path(self, key: str) -> str:
        return os.path.join(self.directory, key + Constants.CACHE_FILE_SUFFIX)

    def read(self, key: str) -> Optional[bytes]:
        path = self._path(key)
        try:
            with open(path, "rb") as file:
                return file.read()
        except FileNotFoundError:
            return None
        except OSError as e:
            raise CacheIOError(key, f"read failed: {e}") from e

    def write(self, key: str, data: bytes) -> None:
        tmp_path = None
        try:
            os.makedirs(self.directory, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(dir=self.directory, prefix=".tmp-")
            with os.fdopen(fd, "wb") as file:
                file.write(data)
            os.replace(tmp_path, self._path(key))
            tmp_path = None
        except OSError as e:
            raise CacheIOError(key, f"write failed: {e}") from e
        finally:
            if tmp_path is not None and os.path.exists(tmp_path):
                os.unlink(tmp_path)

    def delete(self, key: str) -> None:
        try:
            os.unlink(self._path(key))
        except FileNotFoundError:
            pass
        except OSError as e:
            raise CacheIOError(key, f"delete failed: {e}") from e

    def keys(self) -> Iterator[str]:
        if not os.path.isdir(self.directory):
            return iter(())
        suffix = Constants.CACHE_FILE_SUFFIX
        try:
            names = os.listdir(self.directory)
        except OSError as e:
            raise CacheIOError(self.directory, f"listing failed: {e}") from e
        return iter(sorted(n[: -len(suffix)] for n in names if n.endswith(suffix)))


@dataclass
class _MemoryEntry:
    value: bytes
    last_used: int


class PersistentCache:
    """Cache controller combining a memory window with a durable backend.

    Writes to one key are serialized through a fixed pool of striped locks;
    keys on different stripes do not block each other beyond the short lock
    guarding the memory map.
    """

    def __init__(self, backend: CacheBackend, policy: CachePolicy):
        self._backend = backend
        self.policy = policy
        self._memory: Dict[str, _MemoryEntry] = {}
        self._memory_lock = threading.Lock()
        # Fixed pool: keys hash onto stripes so the lock count never grows.
        self._key_locks: List[threading.Lock] = [
            threading.Lock() for _ in range(Constants.CACHE_LOCK_STRIPES)
        ]
        self._generation = 0
        self._hits = 0
        self._misses = 0
        self._io_errors = 0

    @classmethod
    def on_disk(cls, policy: CachePolicy) -> "PersistentCache":
        """Cache stored under ``policy.directory/policy.name``."""
        return cls(FilesystemBackend(os.path.join(policy.directory, policy.name)), policy)

    @property
    def generation(self) -> int:
        return self._generation

    def _lock_for(self, key: str) -> threading.Lock:
        return self._key_locks[xxhash.xxh64_intdigest(key) % len(self._key_locks)]

    def _encode(self, value: bytes) -> bytes:
        if self.policy.compression == "gzip":
            # mtime=0 keeps the stored bytes reproducible.
            return gzip.compress(value, mtime=0)
        return value

    def _decode(self, key: str, data: bytes) -> bytes:
        if self.policy.compression == "gzip":
            try:
                return gzip.decompress(data)
            except (OSError, EOFError, zlib.error) as e:
                raise CacheIOError(key, f"corrupt entry: {e}") from e
        return data

    def get(self, key: str) -> Optional[bytes]:
        """Return the cached value for ``key`` or None on a miss."""
        with self._memory_lock:
            entry = self._memory.get(key)
            if entry is not None:
                entry.last_used = self._generation
                self._hits += 1
                return entry.value

        try:
            raw = self._backend.read(key)
            value = self._decode(key, raw) if raw is not None else None
        except CacheIOError as e:
            self._io_errors += 1
            logger.warning("Cache read failed, recomputing: %s", e)
            value = None

        with self._memory_lock:
            if value is None:
                self._misses += 1
                return None
            self._hits += 1
            self._memory[key] = _MemoryEntry(value, self._generation)
        return value

    def put(self, key: str, value: bytes) -> None:
        """Store ``value`` in memory and persist it through the backend."""
        with self._lock_for(key):
            with self._memory_lock:
                self._memory[key] = _MemoryEntry(bytes(value), self._generation)
            try:
                self._backend.write(key, self._encode(value))
            except CacheIOError as e:
                self._io_errors += 1
                logger.warning("Cache write skipped: %s", e)

    def get_or_compute(self, key: str, compute: Callable[[], bytes]) -> bytes:
        """Return the cached value or compute, store and return it."""
        value = self.get(key)
        if value is not None:
            return value
        with self._lock_for(key):
            # Another writer may have finished while we waited.
            with self._memory_lock:
                entry = self._memory.get(key)
                if entry is not None:
                    entry.last_used = self._generation
                    return entry.value
            value = compute()
            with self._memory_lock:
                self._memory[key] = _MemoryEntry(bytes(value), self._generation)
            try:
                self._backend.write(key, self._encode(value))
            except CacheIOError as e:
                self._io_errors += 1
                logger.warning("Cache write skipped: %s", e)
        return value

    def invalidate(self, key: str) -> None:
        """Drop ``key`` from memory and storage."""
        with self._lock_for(key):
            with self._memory_lock:
                self._memory.pop(key, None)
            try:
                self._backend.delete(key)
            except CacheIOError as e:
                self._io_errors += 1
                logger.warning("Cache delete failed: %s", e)

    def new_generation(self) -> List[str]:
        """Start a new compilation and retire stale in-memory entries.

        Returns:
            Keys evicted from memory (they remain in the backend).
        """
        with self._memory_lock:
            self._generation += 1
            limit = self.policy.max_memory_generations
            if limit is None:
                return []
            oldest_kept = self._generation - limit
            evicted = [k for k, e in self._memory.items() if e.last_used < oldest_kept]
            for key in evicted:
                del self._memory[key]
        if evicted and is_debug_enabled(logger):
            logger.debug(
                "Evicted stale cache generations",
                extra=extra_context(
                    event="cache_evict",
                    component="cache",
                    action="new_generation",
                    count=len(evicted),
                    generation=self._generation,
                ),
            )
        return evicted

    def memory_keys(self) -> List[str]:
        with self._memory_lock:
            return list(self._memory)

    def stored_count(self) -> Optional[int]:
        """Number of entries in the backend, or None when it cannot be listed."""
        try:
            return sum(1 for _ in self._backend.keys())
        except CacheIOError as e:
            self._io_errors += 1
            logger.warning("Cache listing failed: %s", e)
            return None

    def stats(self) -> Dict[str, Any]:
        """Get cache statistics."""
        stored = self.stored_count()
        with self._memory_lock:
            return {
                "generation": self._generation,
                "memory_entries": len(self._memory),
                "stored_entries": stored,
                "hits": self._hits,
                "misses": self._misses,
                "io_errors": self._io_errors,
                "max_memory_generations": self.policy.max_memory_generations,
                "compression": self.policy.compression,
            }
