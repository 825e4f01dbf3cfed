"""Configuration loading for chunkwise.

Builds ``BuildOptions`` from, in increasing precedence: built-in defaults,
an optional YAML/JSON config file, the environment (``NODE_ENV``,
``ANALYZE``) and CLI arguments. Malformed input raises ``ConfigurationError``
before any build work starts.
"""

from __future__ import annotations

import json
import logging
import os
from typing import Any, Dict, Mapping, Optional, Tuple

import yaml
from jsonschema import Draft7Validator

from bundling.config import BuildOptions
from common.errors import ConfigurationError
from constants import BuildMode, Constants

logger = logging.getLogger(__name__)

CONFIG_SCHEMA: Dict[str, Any] = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "type": "object",
    "additionalProperties": False,
    "properties": {
        "mode": {"type": "string", "enum": Constants.SUPPORTED_MODES},
        "root": {"type": "string", "minLength": 1},
        "framework_packages": {
            "type": "array",
            "items": {"type": "string", "minLength": 1},
        },
        "cache": {
            "type": "object",
            "additionalProperties": False,
            "properties": {
                "directory": {"type": "string", "minLength": 1},
                "max_memory_generations": {"type": ["integer", "null"], "minimum": 1},
                "compression": {"enum": ["gzip", False, None]},
            },
        },
        "output": {
            "type": "object",
            "additionalProperties": False,
            "properties": {
                "hash_function": {"type": "string", "enum": Constants.SUPPORTED_HASH_FUNCTIONS},
                "hash_digest_length": {"type": "integer", "minimum": 1, "maximum": 32},
            },
        },
    },
}


def validate_config(data: Mapping[str, Any]) -> None:
    """Validate a config mapping strictly and raise on the first error."""
    validator = Draft7Validator(CONFIG_SCHEMA)
    errs = sorted(validator.iter_errors(data), key=lambda e: [str(p) for p in e.path])
    if errs:
        first = errs[0]
        path = "/".join([str(p) for p in first.path])
        raise ConfigurationError(f"Invalid config at '{path}': {first.message}")


def load_config_file(config_path: Optional[str]) -> Dict[str, Any]:
    """Load and validate a YAML or JSON config file.

    Args:
        config_path: Path to a ``.yml``/``.yaml``/``.json`` file, or None.

    Returns:
        The validated config dict ({} when no path is given).
    """
    if not config_path:
        return {}
    if not os.path.isfile(config_path):
        raise ConfigurationError(f"Config file not found: {config_path}")

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            if config_path.lower().endswith(".json"):
                data = json.load(f)
            else:
                data = yaml.safe_load(f)
    except (OSError, json.JSONDecodeError, yaml.YAMLError) as e:
        raise ConfigurationError(f"Failed to load config {config_path}: {e}") from e

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"Config file {config_path} must contain a mapping")
    validate_config(data)
    logger.debug("Loaded config from %s", config_path)
    return data


def parse_mode(value: str) -> Tuple[BuildMode, bool]:
    """Map a mode string to ``(mode, analyze)``.

    ``analyze`` is a production build with the bundle analyzer enabled.
    """
    try:
        mode = BuildMode(str(value).strip().lower())
    except ValueError as e:
        raise ConfigurationError(
            f"Unknown build mode '{value}'; expected one of: " + ", ".join(Constants.SUPPORTED_MODES)
        ) from e
    if mode == BuildMode.ANALYZE:
        return BuildMode.PRODUCTION, True
    return mode, False


def mode_from_environment(environ: Mapping[str, str]) -> Tuple[Optional[BuildMode], bool]:
    """Read ``NODE_ENV`` and ``ANALYZE``.

    Any ``NODE_ENV`` other than ``production`` means development; an unset
    ``NODE_ENV`` leaves the mode undecided. ``ANALYZE`` is on when non-empty.
    """
    node_env = environ.get(Constants.ENV_NODE_ENV)
    mode: Optional[BuildMode] = None
    if node_env is not None:
        mode = BuildMode.PRODUCTION if node_env == BuildMode.PRODUCTION.value else BuildMode.DEVELOPMENT
    return mode, bool(environ.get(Constants.ENV_ANALYZE))


def resolve_options(args: Any = None, environ: Optional[Mapping[str, str]] = None) -> BuildOptions:
    """Merge defaults, config file, environment and CLI args into options."""
    environ = os.environ if environ is None else environ
    data = load_config_file(getattr(args, "CONFIG", None))

    mode = BuildMode.DEVELOPMENT
    analyze = False
    if "mode" in data:
        mode, analyze = parse_mode(data["mode"])

    env_mode, env_analyze = mode_from_environment(environ)
    if env_mode is not None:
        mode = env_mode
    analyze = analyze or env_analyze

    cli_mode = getattr(args, "MODE", None)
    if cli_mode:
        mode, cli_analyze = parse_mode(cli_mode)
        analyze = analyze or cli_analyze

    root_dir = getattr(args, "ROOT", None) or data.get("root") or "."
    packages = getattr(args, "FRAMEWORK", None) or data.get("framework_packages")
    framework_packages = tuple(packages) if packages else Constants.DEFAULT_FRAMEWORK_PACKAGES

    output = data.get("output", {})
    return BuildOptions(
        mode=mode,
        analyze=analyze,
        root_dir=root_dir,
        framework_packages=framework_packages,
        hash_function=output.get("hash_function", Constants.HASH_FUNCTION),
        hash_digest_length=output.get("hash_digest_length", Constants.HASH_DIGEST_LENGTH),
        cache=dict(data.get("cache", {})),
    )
