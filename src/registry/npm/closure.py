"""Framework dependency closure.

Walks the declared ``dependencies`` of a seed list of framework packages and
collects the directory of every package reached, in first-visit order.
"""

from __future__ import annotations

import logging
import os
from typing import Iterable, List, Sequence, Set, Tuple

from common.logging_utils import Timer, extra_context, is_debug_enabled
from constants import BuildMode, Constants
from registry.npm.descriptor import NotFound, resolve_descriptor

logger = logging.getLogger(__name__)


class ClosureWalker:
    """Single-use walker owning the visited set of one closure computation.

    Packages are deduplicated by name: once a name has been visited (whether
    or not it resolved) no other installed copy of it is traversed.
    """

    def __init__(self, root_dir: str):
        self._root_dir = os.path.abspath(root_dir)
        self._visited: Set[str] = set()
        self._paths: List[str] = []
        self._skipped: List[NotFound] = []

    @property
    def visited(self) -> frozenset:
        """Package names processed so far."""
        return frozenset(self._visited)

    @property
    def skipped(self) -> Tuple[NotFound, ...]:
        """Resolution failures encountered, in visit order."""
        return tuple(self._skipped)

    def walk(self, seed_names: Iterable[str]) -> Tuple[str, ...]:
        """Depth-first pre-order walk from ``seed_names``.

        Returns:
            Directory paths (each ending with ``os.sep``) in insertion order.
        """
        # Stack of (package name, directory to resolve it from).
        stack: List[Tuple[str, str]] = [(name, self._root_dir) for name in reversed(list(seed_names))]
        while stack:
            name, resolve_from = stack.pop()
            if name in self._visited:
                continue
            self._visited.add(name)

            result = resolve_descriptor(name, [resolve_from])
            if isinstance(result, NotFound):
                self._skipped.append(result)
                logger.debug("Skipping %s: %s", name, result.reason)
                continue

            descriptor = result.descriptor
            if descriptor.directory in self._paths:
                continue
            self._paths.append(descriptor.directory)

            for dep_name in reversed(descriptor.dependencies):
                if dep_name not in self._visited:
                    stack.append((dep_name, descriptor.directory))

        return tuple(self._paths)


def compute_closure(
    seed_names: Sequence[str] = Constants.DEFAULT_FRAMEWORK_PACKAGES,
    root_dir: str = ".",
    mode: BuildMode = BuildMode.PRODUCTION,
) -> Tuple[str, ...]:
    """Compute the framework closure path list.

    Args:
        seed_names: Framework package names, in priority order.
        root_dir: Project root the seeds are resolved from.
        mode: Build mode; development builds skip the walk entirely.

    Returns:
        Ordered, duplicate-free tuple of package directories. Empty in
        development mode.
    """
    if mode == BuildMode.DEVELOPMENT:
        return ()

    walker = ClosureWalker(root_dir)
    with Timer() as t:
        paths = walker.walk(seed_names)

    if walker.skipped:
        logger.info(
            "Framework closure skipped %d unresolved package(s): %s",
            len(walker.skipped),
            ", ".join(s.name for s in walker.skipped),
        )
    if is_debug_enabled(logger):
        logger.debug(
            "Framework closure computed",
            extra=extra_context(
                event="closure",
                component="closure",
                action="walk",
                outcome="success",
                count=len(paths),
                visited=len(walker.visited),
                duration_ms=t.duration_ms(),
            ),
        )
    return paths
