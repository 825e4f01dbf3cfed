"""Tests for Node-style package.json lookup."""

import os

import pytest

from registry.npm.descriptor import (
    NotFound,
    Resolved,
    node_modules_paths,
    resolve_descriptor,
)
from npm_tree import as_dir, write_package


class TestNodeModulesPaths:
    """Test the node_modules lookup chain."""

    def test_chain_walks_to_filesystem_root(self, tmp_path):
        """The lookup chain reaches the filesystem root."""
        start = tmp_path / "a" / "b"
        paths = node_modules_paths(str(start))
        assert paths[0] == os.path.join(str(start), "node_modules")
        assert paths[1] == os.path.join(str(tmp_path / "a"), "node_modules")
        assert paths[-1] == os.path.join(os.path.abspath(os.sep), "node_modules")

    def test_node_modules_directories_are_not_doubled(self, tmp_path):
        """No node_modules/node_modules entries are produced."""
        start = tmp_path / "node_modules" / "react"
        paths = node_modules_paths(str(start))
        assert os.path.join(str(tmp_path / "node_modules"), "node_modules") not in paths
        assert paths[0] == os.path.join(str(start), "node_modules")
        assert paths[1] == os.path.join(str(tmp_path), "node_modules")


class TestResolveDescriptor:
    """Test resolve_descriptor."""

    def test_resolves_dependencies_in_declaration_order(self, project):
        """Dependencies keep their declaration order."""
        pkg_dir = write_package(project, "react-dom", ["scheduler", "loose-envify"])
        result = resolve_descriptor("react-dom", [str(project)])
        assert isinstance(result, Resolved)
        assert result.descriptor.name == "react-dom"
        assert result.descriptor.directory == as_dir(pkg_dir)
        assert result.descriptor.directory.endswith(os.sep)
        assert result.descriptor.dependencies == ("scheduler", "loose-envify")

    def test_package_without_dependencies(self, project):
        """A package without dependencies resolves with none."""
        write_package(project, "js-tokens")
        result = resolve_descriptor("js-tokens", [str(project)])
        assert isinstance(result, Resolved)
        assert result.descriptor.dependencies == ()

    def test_nested_install_is_nearest(self, project):
        """A nested install wins over the hoisted one."""
        parent_dir = write_package(project, "react-dom", ["scheduler"])
        write_package(project, "scheduler", [])
        nested = write_package(parent_dir, "scheduler", [])
        result = resolve_descriptor("scheduler", [parent_dir])
        assert isinstance(result, Resolved)
        assert result.descriptor.directory == as_dir(nested)

    def test_hoisted_install_found_from_nested_package(self, project):
        """Hoisted installs are found from a nested package."""
        parent_dir = write_package(project, "react-dom", ["scheduler"])
        hoisted = write_package(project, "scheduler", [])
        result = resolve_descriptor("scheduler", [parent_dir])
        assert isinstance(result, Resolved)
        assert result.descriptor.directory == as_dir(hoisted)

    def test_scoped_package(self, project):
        """Scoped package names resolve."""
        pkg_dir = write_package(project, "@babel/runtime", [])
        result = resolve_descriptor("@babel/runtime", [str(project)])
        assert isinstance(result, Resolved)
        assert result.descriptor.directory == as_dir(pkg_dir)

    def test_missing_package_is_not_found(self, project):
        """A missing package resolves to NotFound."""
        result = resolve_descriptor("does-not-exist", [str(project)])
        assert isinstance(result, NotFound)
        assert result.name == "does-not-exist"

    def test_malformed_json_is_not_found(self, project):
        """Invalid JSON resolves to NotFound."""
        write_package(project, "broken", raw="{not json")
        result = resolve_descriptor("broken", [str(project)])
        assert isinstance(result, NotFound)
        assert "invalid JSON" in result.reason

    def test_non_object_descriptor_is_not_found(self, project):
        """A non-object descriptor resolves to NotFound."""
        write_package(project, "listy", raw="[1, 2, 3]")
        assert isinstance(resolve_descriptor("listy", [str(project)]), NotFound)

    def test_non_object_dependencies_resolve_with_none(self, project):
        """A list-valued dependencies field resolves with no dependencies."""
        pkg_dir = write_package(project, "odd", extra={"dependencies": ["a", "b"]})
        result = resolve_descriptor("odd", [str(project)])
        assert isinstance(result, Resolved)
        assert result.descriptor.directory == as_dir(pkg_dir)
        assert result.descriptor.dependencies == ()

    def test_null_exports_is_treated_as_absent(self, project):
        """An exports field of null does not hide package.json."""
        write_package(project, "plain", ["dep"], extra={"exports": None})
        result = resolve_descriptor("plain", [str(project)])
        assert isinstance(result, Resolved)
        assert result.descriptor.dependencies == ("dep",)

    def test_relative_names_are_rejected(self, project):
        """Relative and empty names are rejected."""
        assert isinstance(resolve_descriptor("./local", [str(project)]), NotFound)
        assert isinstance(resolve_descriptor("", [str(project)]), NotFound)

    def test_node_path_is_searched_last(self, project, tmp_path, monkeypatch):
        """NODE_PATH entries are searched after node_modules."""
        global_root = tmp_path / "global"
        global_root.mkdir()
        pkg_dir = write_package(global_root, "scheduler", [])
        monkeypatch.setenv("NODE_PATH", str(global_root / "node_modules"))
        result = resolve_descriptor("scheduler", [str(project)])
        assert isinstance(result, Resolved)
        assert result.descriptor.directory == as_dir(pkg_dir)

    @pytest.mark.skipif(not hasattr(os, "symlink"), reason="symlinks unsupported")
    def test_symlinked_install_resolves_to_real_directory(self, project, tmp_path):
        """Symlinked installs resolve to the real directory."""
        store = tmp_path / "store"
        store.mkdir()
        real_dir = write_package(store, "react", [])
        (project / "node_modules").mkdir()
        os.symlink(real_dir, str(project / "node_modules" / "react"))
        result = resolve_descriptor("react", [str(project)])
        assert isinstance(result, Resolved)
        assert result.descriptor.directory == as_dir(real_dir)


class TestExportsField:
    """Packages with an exports map only resolve if package.json is exported."""

    def test_exported_package_json(self, project):
        """An exports map listing package.json resolves."""
        write_package(project, "react", [], extra={"exports": {".": "./index.js", "./package.json": "./package.json"}})
        assert isinstance(resolve_descriptor("react", [str(project)]), Resolved)

    def test_wildcard_subpath_exports_package_json(self, project):
        """A wildcard subpath export exposes package.json."""
        write_package(project, "wild", [], extra={"exports": {".": "./index.js", "./*": "./*"}})
        assert isinstance(resolve_descriptor("wild", [str(project)]), Resolved)

    def test_unexported_package_json_is_not_found(self, project):
        """An exports map without package.json resolves to NotFound."""
        write_package(project, "strict", [], extra={"exports": {".": "./index.js"}})
        result = resolve_descriptor("strict", [str(project)])
        assert isinstance(result, NotFound)
        assert result.reason == "package.json not exported"

    def test_string_exports_hide_package_json(self, project):
        """String exports hide package.json."""
        write_package(project, "sugar", [], extra={"exports": "./index.js"})
        assert isinstance(resolve_descriptor("sugar", [str(project)]), NotFound)

    def test_conditions_only_exports_hide_package_json(self, project):
        """Conditions-only exports hide package.json."""
        write_package(project, "cond", [], extra={"exports": {"import": "./a.mjs", "require": "./a.cjs"}})
        assert isinstance(resolve_descriptor("cond", [str(project)]), NotFound)
