"""Shared test fixtures."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest
import tomlkit

from release_planner.models import Author, Change, CommitType, RawCommit

RawFactory = Callable[..., RawCommit]


def make_raw(
    sha: str,
    message: str,
    files: list[str] | None = None,
    parents: list[str] | None = None,
    author: str = "Ada <ada@example.com>",
    timestamp: str = "2024-01-01T00:00:00Z",
) -> RawCommit:
    return RawCommit(
        sha=sha,
        author=author,
        message=message,
        timestamp=timestamp,
        files=files or [],
        parents=parents or [],
    )


def make_change(
    sha: str,
    type: CommitType = CommitType.FIX,
    packages: list[str] | None = None,
    **kwargs: Any,
) -> Change:
    return Change(
        sha=sha,
        type=type,
        subject=kwargs.pop("subject", f"change {sha}"),
        author=kwargs.pop("author", Author(name="Ada", email="ada@example.com")),
        packages=packages or [],
        **kwargs,
    )


@pytest.fixture
def raw() -> RawFactory:
    """Factory for RawCommit records."""
    return make_raw


@pytest.fixture
def change() -> Callable[..., Change]:
    """Factory for Change records."""
    return make_change


@pytest.fixture
def ripple_graph() -> dict[str, list[str]]:
    """api depends on core, app depends on api."""
    return {"core": [], "api": ["core"], "app": ["api"]}


@pytest.fixture
def tmp_pyproject(tmp_path: Path) -> Path:
    """Create a temporary pyproject.toml file."""
    content = """\
[project]
name = "test-package"
version = "1.0.0"
dependencies = [
    "requests>=2.0",
    "internal-dep>=1.0",
]

[project.optional-dependencies]
dev = ["pytest>=8.0", "another-internal>=0.5"]

[dependency-groups]
test = ["pytest>=8.0", "group-internal>=0.1"]
"""
    pyproject = tmp_path / "pyproject.toml"
    pyproject.write_text(content)
    return pyproject


@pytest.fixture
def sample_toml_doc() -> tomlkit.TOMLDocument:
    """Create a sample TOML document."""
    content = """\
[project]
name = "my-package"
version = "2.0.0"
dependencies = ["click>=8.0", "pydantic>=2.0"]

[tool.uv.workspace]
members = ["packages/*", "libs/*"]

[tool.release-planner]
bump_strategy = "ripple"
exclude_types = ["chore"]
"""
    return tomlkit.parse(content)


@pytest.fixture
def workspace(tmp_path: Path) -> Path:
    """A uv workspace with core <- api <- app under packages/."""

    def write(path: Path, content: str) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content)

    write(
        tmp_path / "pyproject.toml",
        """\
[tool.uv.workspace]
members = ["packages/*"]

[tool.release-planner]
bump_strategy = "ripple"
""",
    )
    write(
        tmp_path / "packages" / "core" / "pyproject.toml",
        '[project]\nname = "core"\nversion = "1.0.0"\ndependencies = ["pydantic>=2"]\n',
    )
    write(
        tmp_path / "packages" / "api" / "pyproject.toml",
        '[project]\nname = "api"\nversion = "2.1.0"\ndependencies = ["core>=1.0"]\n',
    )
    write(
        tmp_path / "packages" / "app" / "pyproject.toml",
        "[project]\n"
        'name = "app"\n'
        'version = "0.3.0"\n'
        'dependencies = ["API[extra]>=2"]\n',
    )
    return tmp_path
