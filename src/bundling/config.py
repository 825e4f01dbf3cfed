"""Assembly of the full build configuration for one invocation."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple

from bundling.cache import CachePolicy
from bundling.chunks import RUNTIME_CHUNK, CacheGroup, framework_cache_group
from bundling.naming import ArtifactNamer
from constants import BuildMode, Constants
from registry.npm.closure import compute_closure

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BuildOptions:
    """Validated inputs for one build.

    ``mode`` is DEVELOPMENT or PRODUCTION; analyze builds are production
    builds with ``analyze`` set. ``cache`` holds explicit overrides of the
    mode's default cache policy (keys present override, even when null).
    """

    mode: BuildMode = BuildMode.DEVELOPMENT
    analyze: bool = False
    root_dir: str = "."
    framework_packages: Tuple[str, ...] = Constants.DEFAULT_FRAMEWORK_PACKAGES
    hash_function: str = Constants.HASH_FUNCTION
    hash_digest_length: int = Constants.HASH_DIGEST_LENGTH
    cache: Mapping[str, Any] = field(default_factory=dict)

    @property
    def is_development(self) -> bool:
        return self.mode == BuildMode.DEVELOPMENT


@dataclass
class BuildConfiguration:
    """Everything downstream stages need from the configuration step."""

    options: BuildOptions
    framework_paths: Tuple[str, ...]
    cache_groups: List[CacheGroup]
    runtime_chunk: Dict[str, str]
    namer: ArtifactNamer
    cache_policy: CachePolicy
    plugins: List[str]
    devtool: Optional[str]
    dev_server: Dict[str, Any]

    def to_dict(self) -> Dict[str, Any]:
        """JSON-safe view of the configuration."""
        root = os.path.abspath(self.options.root_dir)
        output = {
            "library": Constants.LIBRARY_NAME,
            "path": os.path.join(root, "dist"),
            "asyncChunks": True,
            "crossOriginLoading": Constants.CROSS_ORIGIN_LOADING,
        }
        output.update(self.namer.output_settings())
        return {
            "mode": self.options.mode.value,
            "analyze": self.options.analyze,
            "output": output,
            "devtool": self.devtool or False,
            "devServer": self.dev_server,
            "plugins": list(self.plugins),
            "resolve": {"extensions": list(Constants.RESOLVE_EXTENSIONS), "cache": True},
            "optimization": {
                "splitChunks": {"cacheGroups": {g.name: g.to_dict() for g in self.cache_groups}},
                "runtimeChunk": dict(self.runtime_chunk),
            },
            "cache": self.cache_policy.to_dict(),
        }


def enabled_plugins(options: BuildOptions) -> List[str]:
    """Collaborator stages active for the build, in application order."""
    dev = options.is_development
    plugins: List[Tuple[str, bool]] = [
        ("progress-bar", not dev),
        ("react-refresh", dev),
        ("clean-output", True),
        ("css-extract", True),
        ("script-minify", not dev),
        ("css-minify", not dev),
        ("bundle-analyzer", options.analyze),
        ("html-shell", True),
    ]
    return [name for name, enabled in plugins if enabled]


def cache_policy_for(options: BuildOptions) -> CachePolicy:
    """Mode default cache policy with explicit overrides applied."""
    root = os.path.abspath(options.root_dir)
    overrides = options.cache
    directory = overrides.get("directory")
    if directory:
        directory = os.path.join(root, directory)
    base = CachePolicy.for_mode(options.mode, root, directory)
    max_generations = base.max_memory_generations
    if "max_memory_generations" in overrides:
        max_generations = overrides["max_memory_generations"]
    compression = base.compression
    if "compression" in overrides:
        # false and null both disable compression
        compression = overrides["compression"] or None
    return CachePolicy(
        directory=base.directory,
        name=base.name,
        max_memory_generations=max_generations,
        compression=compression,
    )


def build_configuration(
    options: BuildOptions,
    closure: Callable[[Sequence[str], str, BuildMode], Tuple[str, ...]] = compute_closure,
) -> BuildConfiguration:
    """Run the configuration-time work for one build.

    The framework closure is computed once here, before any module is
    compiled, and frozen into the framework cache group.
    """
    root = os.path.abspath(options.root_dir)
    framework_paths = closure(options.framework_packages, root, options.mode)
    logger.info(
        "Configured %s build with %d framework path(s).",
        options.mode.value,
        len(framework_paths),
    )

    dev = options.is_development
    return BuildConfiguration(
        options=options,
        framework_paths=framework_paths,
        cache_groups=[framework_cache_group(framework_paths)],
        runtime_chunk=dict(RUNTIME_CHUNK),
        namer=ArtifactNamer(options.mode, options.hash_function, options.hash_digest_length),
        cache_policy=cache_policy_for(options),
        plugins=enabled_plugins(options),
        devtool=Constants.DEV_DEVTOOL if dev else None,
        dev_server={"port": Constants.DEV_SERVER_PORT, "historyApiFallback": True},
    )
