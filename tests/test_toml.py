"""Tests for release_planner.toml."""

from __future__ import annotations

from pathlib import Path

import pytest
import tomlkit

from release_planner.errors import WorkspaceError
from release_planner.toml import (
    get_all_dependency_strings,
    get_project_name,
    get_project_version,
    get_tool_table,
    get_workspace_member_globs,
    load_pyproject,
)


class TestLoadPyproject:
    """Tests for load_pyproject()."""

    def test_load(self, tmp_pyproject: Path) -> None:
        """The file is parsed into a TOML document."""
        doc = load_pyproject(tmp_pyproject)
        assert get_project_name(doc, "") == "test-package"


class TestGetProjectName:
    """Tests for get_project_name()."""

    def test_returns_name(self, sample_toml_doc: tomlkit.TOMLDocument) -> None:
        """The [project] name is returned."""
        assert get_project_name(sample_toml_doc, "fallback") == "my-package"

    def test_normalizes_name(self) -> None:
        """Names are canonicalized."""
        doc = tomlkit.parse('[project]\nname = "My_Package"')
        assert get_project_name(doc, "fallback") == "my-package"

    def test_returns_fallback_when_no_project(self) -> None:
        """Without a [project] table the fallback is used."""
        doc = tomlkit.parse("")
        assert get_project_name(doc, "fallback") == "fallback"


class TestGetProjectVersion:
    """Tests for get_project_version()."""

    def test_returns_version(self, sample_toml_doc: tomlkit.TOMLDocument) -> None:
        """The [project] version is returned."""
        assert get_project_version(sample_toml_doc) == "2.0.0"

    def test_returns_default_when_missing(self) -> None:
        """A missing version reads as 0.0.0."""
        doc = tomlkit.parse("[project]")
        assert get_project_version(doc) == "0.0.0"


class TestGetAllDependencyStrings:
    """Tests for get_all_dependency_strings()."""

    def test_collects_all_sources(self, tmp_pyproject: Path) -> None:
        """Dependencies, optional extras and groups are all collected."""
        deps = get_all_dependency_strings(load_pyproject(tmp_pyproject))
        assert "requests>=2.0" in deps
        assert "another-internal>=0.5" in deps
        assert "group-internal>=0.1" in deps

    def test_skips_include_group_tables(self) -> None:
        """include-group entries are not dependency strings."""
        doc = tomlkit.parse(
            "[dependency-groups]\n"
            'dev = ["pytest", {include-group = "lint"}]\n'
            'lint = ["ruff"]\n'
        )
        assert get_all_dependency_strings(doc) == ["pytest", "ruff"]


class TestGetWorkspaceMemberGlobs:
    """Tests for get_workspace_member_globs()."""

    def test_returns_members(self, sample_toml_doc: tomlkit.TOMLDocument) -> None:
        """The member globs are returned in declaration order."""
        globs = get_workspace_member_globs(sample_toml_doc)
        assert globs == ["packages/*", "libs/*"]

    def test_raises_when_missing(self) -> None:
        """A root without workspace members raises WorkspaceError."""
        with pytest.raises(WorkspaceError, match=r"No \[tool.uv.workspace\] members"):
            get_workspace_member_globs(tomlkit.parse("[project]"))


class TestGetToolTable:
    """Tests for get_tool_table()."""

    def test_returns_plain_dict(self, sample_toml_doc: tomlkit.TOMLDocument) -> None:
        """The table is unwrapped into plain Python containers."""
        table = get_tool_table(sample_toml_doc, "release-planner")
        assert table == {"bump_strategy": "ripple", "exclude_types": ["chore"]}
        assert type(table["exclude_types"]) is list

    def test_missing_table(self) -> None:
        """A missing tool table reads as empty."""
        assert get_tool_table(tomlkit.parse(""), "release-planner") == {}
