"""Split-chunk rules: the framework cache group and the runtime chunk."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from constants import Constants

logger = logging.getLogger(__name__)

RUNTIME_CHUNK: Dict[str, str] = {"name": Constants.RUNTIME_CHUNK_NAME}


def _normalize(path: str) -> str:
    return os.path.normpath(os.path.abspath(path))


class FrameworkChunkPredicate:
    """Decide whether a module's resource lives inside the framework closure.

    Matching is on path boundaries: ``.../react-dom/index.js`` and
    ``.../react-dom`` match ``.../react-dom/`` while ``.../react-domx/x.js``
    does not. Instances are immutable and safe to share between threads.
    """

    def __init__(self, paths: Iterable[str]):
        self._roots: Tuple[str, ...] = tuple(_normalize(p) for p in paths)
        self._prefixes: Tuple[str, ...] = tuple(os.path.join(r, "") for r in self._roots)

    @property
    def paths(self) -> Tuple[str, ...]:
        """Closure directories, each with a trailing separator."""
        return self._prefixes

    def __call__(self, module_path: Optional[str]) -> bool:
        if not module_path:
            return False
        resource = _normalize(module_path)
        for root, prefix in zip(self._roots, self._prefixes):
            if resource == root or resource.startswith(prefix):
                return True
        return False

    def __repr__(self) -> str:
        return f"FrameworkChunkPredicate({len(self._roots)} paths)"


@dataclass(frozen=True)
class CacheGroup:
    """One split-chunk cache group."""

    name: str
    test: Callable[[Optional[str]], bool]
    priority: int = 0
    chunks: str = "all"
    enforce: bool = False

    def to_dict(self) -> Dict[str, Any]:
        """JSON-safe view; predicate tests are rendered as their paths."""
        test = self.test
        rendered: Any = list(test.paths) if isinstance(test, FrameworkChunkPredicate) else repr(test)
        return {
            "name": self.name,
            "chunks": self.chunks,
            "priority": self.priority,
            "enforce": self.enforce,
            "test": rendered,
        }


def framework_cache_group(paths: Iterable[str]) -> CacheGroup:
    """Build the ``framework`` cache group for a closure path list."""
    return CacheGroup(
        name=Constants.FRAMEWORK_CHUNK_NAME,
        test=FrameworkChunkPredicate(paths),
        priority=Constants.FRAMEWORK_CHUNK_PRIORITY,
        chunks="all",
        enforce=True,
    )


@dataclass(frozen=True)
class ModuleRecord:
    """A module as seen by the partitioning stage.

    ``resource`` is None for synthetic modules that have no file on disk.
    ``runtime`` marks the bundler's own loading bootstrap.
    """

    identifier: str
    resource: Optional[str] = None
    runtime: bool = False


@dataclass
class Partition:
    """Module identifiers per chunk name, in first-seen order."""

    chunks: Dict[str, List[str]] = field(default_factory=dict)

    def add(self, chunk: str, identifier: str) -> None:
        self.chunks.setdefault(chunk, []).append(identifier)

    def modules(self, chunk: str) -> List[str]:
        return list(self.chunks.get(chunk, []))


def partition_modules(
    modules: Iterable[ModuleRecord],
    cache_groups: Sequence[CacheGroup],
    runtime_chunk: Optional[Dict[str, str]] = None,
    default_chunk: str = Constants.DEFAULT_CHUNK_NAME,
) -> Partition:
    """Assign every module to exactly one chunk.

    Runtime bootstrap modules go to the runtime chunk when one is configured.
    Other modules go to the highest-priority cache group whose test accepts
    the module's resource, falling back to ``default_chunk``.
    """
    groups = sorted(cache_groups, key=lambda g: g.priority, reverse=True)
    partition = Partition()
    for module in modules:
        if module.runtime and runtime_chunk:
            partition.add(runtime_chunk["name"], module.identifier)
            continue
        target = default_chunk
        for group in groups:
            if group.test(module.resource):
                target = group.name
                break
        partition.add(target, module.identifier)
    logger.debug(
        "Partitioned modules into %d chunk(s): %s",
        len(partition.chunks),
        ", ".join(f"{name}={len(ids)}" for name, ids in partition.chunks.items()),
    )
    return partition
