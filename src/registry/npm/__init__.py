"""npm package support.

This package reads installed npm packages from disk:
- descriptor.py: Node-style package.json lookup returning a resolution result
- closure.py: framework dependency closure over the declared dependencies
"""

from .descriptor import (  # noqa: F401
    NotFound,
    PackageDescriptor,
    Resolution,
    Resolved,
    node_modules_paths,
    resolve_descriptor,
)
from .closure import ClosureWalker, compute_closure  # noqa: F401

__all__ = [
    "NotFound",
    "PackageDescriptor",
    "Resolution",
    "Resolved",
    "node_modules_paths",
    "resolve_descriptor",
    "ClosureWalker",
    "compute_closure",
]
