"""package.json lookup for installed npm packages.

Resolution mirrors Node's lookup for ``require.resolve("<name>/package.json",
{paths: [...]})``: every base path contributes its own ``node_modules`` and
those of all of its ancestors, followed by the ``NODE_PATH`` entries. The
first descriptor found wins.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field
from typing import Dict, Iterable, Iterator, List, Tuple, Union

from common.logging_utils import extra_context, is_debug_enabled
from constants import Constants

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PackageDescriptor:
    """Read-only view of an installed package's package.json."""

    name: str
    directory: str  # realpath, always ends with os.sep
    descriptor_path: str
    dependency_ranges: Tuple[Tuple[str, str], ...] = field(default=())

    @property
    def dependencies(self) -> Tuple[str, ...]:
        """Declared runtime dependency names in declaration order."""
        return tuple(name for name, _ in self.dependency_ranges)


@dataclass(frozen=True)
class Resolved:
    """Successful resolution."""

    descriptor: PackageDescriptor


@dataclass(frozen=True)
class NotFound:
    """Failed resolution; callers treat it as "no dependencies"."""

    name: str
    reason: str


Resolution = Union[Resolved, NotFound]


def node_modules_paths(start: str) -> List[str]:
    """Return the node_modules lookup chain for ``start``, nearest first."""
    current = os.path.abspath(start)
    paths: List[str] = []
    while True:
        if os.path.basename(current) != Constants.NODE_MODULES_DIR:
            paths.append(os.path.join(current, Constants.NODE_MODULES_DIR))
        parent = os.path.dirname(current)
        if parent == current:
            break
        current = parent
    return paths


def _global_paths() -> List[str]:
    raw = os.environ.get(Constants.ENV_NODE_PATH, "")
    return [os.path.abspath(p) for p in raw.split(os.pathsep) if p]


def _candidate_dirs(search_from_paths: Iterable[str]) -> Iterator[str]:
    seen = set()
    for base in search_from_paths:
        for candidate in node_modules_paths(base):
            if candidate not in seen:
                seen.add(candidate)
                yield candidate
    for candidate in _global_paths():
        if candidate not in seen:
            seen.add(candidate)
            yield candidate


def _exports_package_json(exports: object) -> bool:
    """Whether an ``exports`` field lets ``<name>/package.json`` resolve."""
    if not isinstance(exports, dict):
        # String or array sugar only exposes the "." entry point.
        return False
    subpaths = [key for key in exports if isinstance(key, str) and key.startswith(".")]
    if not subpaths:
        # Conditions-only object, equivalent to {".": {...}}
        return False
    target = "./package.json"
    for key in subpaths:
        if key == target:
            return exports[key] is not None
        if "*" in key:
            prefix, _, suffix = key.partition("*")
            if target.startswith(prefix) and target.endswith(suffix) and len(target) >= len(prefix) + len(suffix):
                return exports[key] is not None
        elif key.endswith("/") and target.startswith(key):
            return exports[key] is not None
    return False


def _read_descriptor(package_name: str, descriptor_path: str) -> Resolution:
    try:
        with open(descriptor_path, "r", encoding="utf-8") as file:
            data = json.load(file)
    except (OSError, UnicodeDecodeError) as e:
        return NotFound(package_name, f"unreadable descriptor: {e}")
    except json.JSONDecodeError as e:
        return NotFound(package_name, f"invalid JSON: {e}")

    if not isinstance(data, dict):
        return NotFound(package_name, "descriptor is not a JSON object")
    # A null exports field is the same as no field at all.
    if data.get("exports") is not None and not _exports_package_json(data["exports"]):
        return NotFound(package_name, "package.json not exported")

    deps = data.get("dependencies") or {}
    if not isinstance(deps, dict):
        logger.debug("Ignoring non-object dependencies in %s", descriptor_path)
        deps = {}

    ranges: Dict[str, str] = {}
    for dep_name, dep_range in deps.items():
        ranges[str(dep_name)] = dep_range if isinstance(dep_range, str) else ""

    directory = os.path.join(os.path.dirname(os.path.realpath(descriptor_path)), "")
    return Resolved(
        PackageDescriptor(
            name=package_name,
            directory=directory,
            descriptor_path=descriptor_path,
            dependency_ranges=tuple(ranges.items()),
        )
    )


def resolve_descriptor(package_name: str, search_from_paths: Iterable[str]) -> Resolution:
    """Locate and parse the nearest package.json for ``package_name``.

    Args:
        package_name: Bare or scoped (``@scope/pkg``) package name.
        search_from_paths: Base directories, searched in order.

    Returns:
        ``Resolved`` with the descriptor, or ``NotFound`` with a reason.
        Never raises for missing or malformed packages.
    """
    if not package_name or package_name.startswith((".", "/")):
        return NotFound(package_name, "not a bare package name")

    parts = package_name.split("/")
    for candidate in _candidate_dirs(search_from_paths):
        descriptor_path = os.path.join(candidate, *parts, Constants.PACKAGE_JSON_FILE)
        if not os.path.isfile(descriptor_path):
            continue
        result = _read_descriptor(package_name, descriptor_path)
        if is_debug_enabled(logger):
            logger.debug(
                "Descriptor lookup",
                extra=extra_context(
                    event="resolve",
                    component="descriptor",
                    action="read",
                    target=package_name,
                    outcome="resolved" if isinstance(result, Resolved) else "failed",
                    path=descriptor_path,
                ),
            )
        return result

    return NotFound(package_name, "no package.json found on any search path")
