"""Deterministic output file naming.

Production builds name scripts and styles after a truncated xxhash digest of
their final bytes, so identical content always produces the identical file
name on every machine. Development builds keep logical names. Hot-update
files are keyed by the build hash instead of their content.
"""

from __future__ import annotations

import re
from typing import Any, Callable, Dict, Iterable, Optional, Tuple

import xxhash

from common.errors import ConfigurationError
from constants import AssetClass, BuildMode, Constants

_HASHERS: Dict[str, Callable[..., Any]] = {
    "xxhash64": xxhash.xxh64,
    "xxh3_64": xxhash.xxh3_64,
    "xxh128": xxhash.xxh128,
}

_PLACEHOLDER = re.compile(r"\[(\w+)(?::(\d+))?\]")
_KNOWN_PLACEHOLDERS = ("name", "id", "contenthash", "fullhash", "runtime")

DEVELOPMENT_TEMPLATES: Dict[AssetClass, str] = {
    AssetClass.SCRIPT: "[name].js",
    AssetClass.STYLE: "[name].css",
    AssetClass.WASM: "[contenthash].wasm",
    AssetClass.HOT_UPDATE_CHUNK: "[id].[fullhash].hot-update.js",
    AssetClass.HOT_UPDATE_MAIN: "[fullhash].[runtime].hot-update.json",
}

PRODUCTION_TEMPLATES: Dict[AssetClass, str] = {
    **DEVELOPMENT_TEMPLATES,
    AssetClass.SCRIPT: "[contenthash].js",
    AssetClass.STYLE: "[contenthash].css",
}


def templates_for(mode: BuildMode) -> Dict[AssetClass, str]:
    """Filename templates per asset class for ``mode``."""
    if mode == BuildMode.DEVELOPMENT:
        return dict(DEVELOPMENT_TEMPLATES)
    return dict(PRODUCTION_TEMPLATES)


class ArtifactNamer:
    """Render output filenames for one build."""

    def __init__(
        self,
        mode: BuildMode,
        hash_function: str = Constants.HASH_FUNCTION,
        digest_length: int = Constants.HASH_DIGEST_LENGTH,
    ):
        if hash_function not in _HASHERS:
            raise ConfigurationError(
                f"Unsupported hash function '{hash_function}'; expected one of: "
                + ", ".join(Constants.SUPPORTED_HASH_FUNCTIONS)
            )
        if digest_length < 1:
            raise ConfigurationError(f"Hash digest length must be positive, got {digest_length}")
        self.mode = mode
        self.hash_function = hash_function
        self.digest_length = digest_length
        self.templates = templates_for(mode)

    def content_hash(self, data: bytes) -> str:
        """Hex digest of ``data`` truncated to the configured length."""
        hasher = _HASHERS[self.hash_function]()
        hasher.update(data)
        return hasher.hexdigest()[: self.digest_length]

    def build_hash(self, assets: Iterable[Tuple[str, bytes]]) -> str:
        """Hash over the whole build, sensitive to asset names, content and order."""
        hasher = _HASHERS[self.hash_function]()
        for name, data in assets:
            hasher.update(name.encode("utf-8"))
            hasher.update(b"\0")
            hasher.update(self.content_hash(data).encode("ascii"))
            hasher.update(b"\0")
        return hasher.hexdigest()[: self.digest_length]

    def render(
        self,
        template: str,
        *,
        name: Optional[str] = None,
        chunk_id: Optional[str] = None,
        content: Optional[bytes] = None,
        fullhash: Optional[str] = None,
        runtime: Optional[str] = None,
    ) -> str:
        """Substitute placeholders in ``template``.

        ``[placeholder:N]`` truncates the substituted value to N characters.
        Unknown placeholders and placeholders without a value raise
        ``ConfigurationError``.
        """
        values: Dict[str, Optional[str]] = {
            "name": name,
            "id": chunk_id,
            "contenthash": self.content_hash(content) if content is not None else None,
            "fullhash": fullhash,
            "runtime": runtime,
        }

        def _substitute(match: "re.Match[str]") -> str:
            key, length = match.group(1), match.group(2)
            if key not in _KNOWN_PLACEHOLDERS:
                raise ConfigurationError(f"Unknown placeholder [{key}] in template '{template}'")
            value = values[key]
            if value is None:
                raise ConfigurationError(f"No value for [{key}] in template '{template}'")
            return value[: int(length)] if length else value

        return _PLACEHOLDER.sub(_substitute, template)

    def filename(self, asset_class: AssetClass, **values) -> str:
        """Render the template registered for ``asset_class``."""
        return self.render(self.templates[asset_class], **values)

    def script_filename(self, name: str, content: bytes) -> str:
        return self.filename(AssetClass.SCRIPT, name=name, content=content)

    def style_filename(self, name: str, content: bytes) -> str:
        return self.filename(AssetClass.STYLE, name=name, content=content)

    def wasm_filename(self, content: bytes) -> str:
        return self.filename(AssetClass.WASM, content=content)

    def hot_update_chunk_filename(self, chunk_id: str, build_hash: str) -> str:
        return self.filename(AssetClass.HOT_UPDATE_CHUNK, chunk_id=chunk_id, fullhash=build_hash)

    def hot_update_main_filename(self, build_hash: str, runtime: str) -> str:
        return self.filename(AssetClass.HOT_UPDATE_MAIN, fullhash=build_hash, runtime=runtime)

    def output_settings(self) -> Dict[str, object]:
        """JSON-safe output section of the build configuration."""
        return {
            "filename": self.templates[AssetClass.SCRIPT],
            "cssFilename": self.templates[AssetClass.STYLE],
            "webassemblyModuleFilename": self.templates[AssetClass.WASM],
            "hotUpdateChunkFilename": self.templates[AssetClass.HOT_UPDATE_CHUNK],
            "hotUpdateMainFilename": self.templates[AssetClass.HOT_UPDATE_MAIN],
            "hashFunction": self.hash_function,
            "hashDigestLength": self.digest_length,
        }
