"""Shared fixtures: on-disk node_modules trees."""

import pytest

from npm_tree import write_package


@pytest.fixture
def project(tmp_path, monkeypatch):
    """Empty project root; NODE_PATH is cleared so lookups stay inside tmp_path."""
    monkeypatch.delenv("NODE_PATH", raising=False)
    root = tmp_path / "app"
    root.mkdir()
    return root


@pytest.fixture
def react_tree(project):
    """A hoisted react/react-dom install like the one npm produces."""
    write_package(project, "react", ["loose-envify"])
    write_package(project, "react-dom", ["loose-envify", "scheduler"])
    write_package(project, "loose-envify", ["js-tokens"])
    write_package(project, "js-tokens", [])
    write_package(project, "scheduler", [])
    write_package(project, "react-domx", [])
    write_package(project, "lodash", [])
    return project
