"""Asset emission through external transform collaborators.

The script minifier, CSS minifier and HTML shell generator live outside this
project. They are consumed through the byte-in/byte-out and manifest-in
contracts below; the only logic here is deciding when they run, memoizing
their output in the persistent cache and naming the results.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping, Optional, Protocol, Tuple

from bundling.cache import PersistentCache, fingerprint
from bundling.naming import ArtifactNamer
from common.logging_utils import Timer, extra_context, is_debug_enabled
from constants import AssetClass, BuildMode

logger = logging.getLogger(__name__)


class AssetTransform(Protocol):
    """Transpile/minify stage: final module content in, final bytes out."""

    def __call__(self, content: bytes) -> bytes: ...


class HtmlShellGenerator(Protocol):
    """Builds the HTML shell from the manifest of emitted assets."""

    def __call__(self, manifest: Mapping[str, str]) -> str: ...


@dataclass(frozen=True)
class Asset:
    """A logical asset before naming."""

    name: str
    asset_class: AssetClass
    content: bytes


@dataclass
class EmittedBuild:
    """Result of one emission: logical name -> file name, plus file bytes."""

    manifest: Dict[str, str] = field(default_factory=dict)
    files: Dict[str, bytes] = field(default_factory=dict)
    build_hash: str = ""

    def content_of(self, logical_name: str) -> bytes:
        return self.files[self.manifest[logical_name]]


def _transform_id(transform: AssetTransform) -> str:
    return getattr(transform, "cache_key", None) or getattr(
        transform, "__qualname__", type(transform).__qualname__
    )


def emit_assets(
    assets: Iterable[Asset],
    namer: ArtifactNamer,
    transforms: Optional[Mapping[AssetClass, AssetTransform]] = None,
    cache: Optional[PersistentCache] = None,
) -> EmittedBuild:
    """Transform (production only), cache and name every asset.

    Transform output is memoized under a fingerprint of the input bytes and
    every setting that affects the output: mode, asset class, transform
    identity and hash settings.
    """
    transforms = transforms or {}
    minify = namer.mode != BuildMode.DEVELOPMENT
    build = EmittedBuild()
    ordered: List[Tuple[str, bytes]] = []

    with Timer() as t:
        for asset in assets:
            content = asset.content
            transform = transforms.get(asset.asset_class) if minify else None
            if transform is not None:
                if cache is not None:
                    key = fingerprint(
                        content,
                        {
                            "mode": namer.mode.value,
                            "asset_class": asset.asset_class.value,
                            "transform": _transform_id(transform),
                            "hash_function": namer.hash_function,
                            "digest_length": namer.digest_length,
                        },
                    )
                    content = cache.get_or_compute(key, lambda c=content, fn=transform: fn(c))
                else:
                    content = transform(content)

            if asset.asset_class == AssetClass.SCRIPT:
                filename = namer.script_filename(asset.name, content)
            elif asset.asset_class == AssetClass.STYLE:
                filename = namer.style_filename(asset.name, content)
            elif asset.asset_class == AssetClass.WASM:
                filename = namer.wasm_filename(content)
            else:
                raise ValueError(f"{asset.asset_class.value} assets are produced by hot updates, not emitted")

            build.manifest[asset.name] = filename
            build.files[filename] = content
            ordered.append((asset.name, content))

        build.build_hash = namer.build_hash(ordered)

    if is_debug_enabled(logger):
        logger.debug(
            "Assets emitted",
            extra=extra_context(
                event="emit",
                component="pipeline",
                action="emit_assets",
                outcome="success",
                count=len(build.manifest),
                duration_ms=t.duration_ms(),
            ),
        )
    return build


def hot_update_files(
    previous: EmittedBuild,
    current: EmittedBuild,
    namer: ArtifactNamer,
    runtime: str = "main",
) -> List[str]:
    """File names of the hot-update patch set between two builds.

    Patches are named after the previous build hash, which is what a running
    client knows; one chunk file per changed asset plus the main manifest.
    """
    if previous.build_hash == current.build_hash:
        return []
    changed = [
        name
        for name in current.manifest
        if name not in previous.manifest or previous.content_of(name) != current.content_of(name)
    ]
    files = [namer.hot_update_chunk_filename(name, previous.build_hash) for name in changed]
    files.append(namer.hot_update_main_filename(previous.build_hash, runtime))
    return files


def render_shell(build: EmittedBuild, generator: HtmlShellGenerator) -> str:
    """Hand the final manifest to the HTML shell generator."""
    return generator(dict(build.manifest))
