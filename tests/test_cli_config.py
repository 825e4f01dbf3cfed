"""Tests for configuration loading and precedence."""

import json
from argparse import Namespace

import pytest

from cli_config import load_config_file, mode_from_environment, parse_mode, resolve_options
from common.errors import ConfigurationError
from constants import BuildMode


def _args(**kwargs):
    base = {"CONFIG": None, "MODE": None, "ROOT": None, "FRAMEWORK": None}
    base.update(kwargs)
    return Namespace(**base)


class TestParseMode:
    """Test build-mode parsing."""

    def test_known_modes(self):
        """Known mode strings map to a mode and analyze flag."""
        assert parse_mode("development") == (BuildMode.DEVELOPMENT, False)
        assert parse_mode("Production") == (BuildMode.PRODUCTION, False)
        assert parse_mode("analyze") == (BuildMode.PRODUCTION, True)

    def test_unknown_mode_is_configuration_error(self):
        """An unknown mode string is a configuration error."""
        with pytest.raises(ConfigurationError, match="Unknown build mode"):
            parse_mode("staging")


class TestEnvironment:
    """Test NODE_ENV / ANALYZE handling."""

    def test_production(self):
        """NODE_ENV=production selects production."""
        assert mode_from_environment({"NODE_ENV": "production"}) == (BuildMode.PRODUCTION, False)

    def test_anything_else_is_development(self):
        """Any other NODE_ENV selects development."""
        assert mode_from_environment({"NODE_ENV": "test"}) == (BuildMode.DEVELOPMENT, False)

    def test_unset(self):
        """An unset NODE_ENV leaves the mode undecided."""
        assert mode_from_environment({}) == (None, False)

    def test_analyze_flag(self):
        """A non-empty ANALYZE turns the analyzer on."""
        assert mode_from_environment({"ANALYZE": "1"})[1] is True
        assert mode_from_environment({"ANALYZE": ""})[1] is False


class TestLoadConfigFile:
    """Test YAML/JSON loading with schema validation."""

    def test_yaml(self, tmp_path):
        """YAML config files are loaded."""
        path = tmp_path / "chunkwise.yml"
        path.write_text(
            "mode: production\n"
            "framework_packages: [preact]\n"
            "cache:\n"
            "  max_memory_generations: 3\n"
            "  compression: false\n"
        )
        data = load_config_file(str(path))
        assert data["mode"] == "production"
        assert data["cache"]["compression"] is False

    def test_json(self, tmp_path):
        """JSON config files are loaded."""
        path = tmp_path / "chunkwise.json"
        path.write_text(json.dumps({"output": {"hash_digest_length": 8}}))
        assert load_config_file(str(path)) == {"output": {"hash_digest_length": 8}}

    def test_empty_yaml(self, tmp_path):
        """An empty YAML file loads as an empty mapping."""
        path = tmp_path / "empty.yml"
        path.write_text("")
        assert load_config_file(str(path)) == {}

    def test_no_path(self):
        """No path means no config."""
        assert load_config_file(None) == {}

    def test_missing_file(self, tmp_path):
        """A missing file is a configuration error."""
        with pytest.raises(ConfigurationError, match="not found"):
            load_config_file(str(tmp_path / "nope.yml"))

    def test_invalid_yaml(self, tmp_path):
        """Unparseable YAML is a configuration error."""
        path = tmp_path / "bad.yml"
        path.write_text("mode: [unclosed\n")
        with pytest.raises(ConfigurationError, match="Failed to load"):
            load_config_file(str(path))

    def test_non_mapping(self, tmp_path):
        """A top-level list is a configuration error."""
        path = tmp_path / "list.yml"
        path.write_text("- a\n- b\n")
        with pytest.raises(ConfigurationError, match="mapping"):
            load_config_file(str(path))

    def test_schema_violation_reports_path(self, tmp_path):
        """Schema errors name the offending key path."""
        path = tmp_path / "bad.yml"
        path.write_text("cache:\n  compression: brotli\n")
        with pytest.raises(ConfigurationError, match="cache/compression"):
            load_config_file(str(path))

    def test_unknown_mode_in_file(self, tmp_path):
        """An unknown mode in the file is rejected by the schema."""
        path = tmp_path / "bad.yml"
        path.write_text("mode: staging\n")
        with pytest.raises(ConfigurationError, match="mode"):
            load_config_file(str(path))

    def test_unknown_key(self, tmp_path):
        """Unknown top-level keys are rejected."""
        path = tmp_path / "bad.yml"
        path.write_text("minify: true\n")
        with pytest.raises(ConfigurationError):
            load_config_file(str(path))


class TestResolveOptions:
    """Test precedence: defaults < file < environment < CLI."""

    def test_defaults(self):
        """Without inputs the built-in defaults apply."""
        options = resolve_options(_args(), environ={})
        assert options.mode == BuildMode.DEVELOPMENT
        assert options.analyze is False
        assert options.framework_packages == ("react", "react-dom")
        assert options.root_dir == "."
        assert options.hash_function == "xxhash64"
        assert options.hash_digest_length == 16

    def test_file_values(self, tmp_path):
        """Values from the config file are used."""
        path = tmp_path / "c.yml"
        path.write_text("mode: analyze\nroot: /srv/app\nframework_packages: [preact, preact-render]\n")
        options = resolve_options(_args(CONFIG=str(path)), environ={})
        assert options.mode == BuildMode.PRODUCTION
        assert options.analyze is True
        assert options.root_dir == "/srv/app"
        assert options.framework_packages == ("preact", "preact-render")

    def test_environment_overrides_file(self, tmp_path):
        """The environment overrides the config file mode."""
        path = tmp_path / "c.yml"
        path.write_text("mode: production\n")
        options = resolve_options(_args(CONFIG=str(path)), environ={"NODE_ENV": "development"})
        assert options.mode == BuildMode.DEVELOPMENT

    def test_cli_overrides_environment(self):
        """CLI arguments override the environment."""
        options = resolve_options(_args(MODE="production", FRAMEWORK=["vue"]), environ={"NODE_ENV": "development"})
        assert options.mode == BuildMode.PRODUCTION
        assert options.framework_packages == ("vue",)

    def test_env_analyze_combines_with_mode(self):
        """ANALYZE combines with the selected mode."""
        options = resolve_options(_args(), environ={"NODE_ENV": "production", "ANALYZE": "true"})
        assert options.mode == BuildMode.PRODUCTION
        assert options.analyze is True

    def test_cache_overrides_are_passed_through(self, tmp_path):
        """Cache settings from the file reach the options."""
        path = tmp_path / "c.yml"
        path.write_text("cache:\n  max_memory_generations: null\n")
        options = resolve_options(_args(CONFIG=str(path)), environ={})
        assert dict(options.cache) == {"max_memory_generations": None}

    def test_invalid_cli_mode(self):
        """An invalid CLI mode is a configuration error."""
        with pytest.raises(ConfigurationError):
            resolve_options(_args(MODE="staging"), environ={})
