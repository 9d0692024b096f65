"""Workspace discovery.

Builds the inputs the planner needs from a uv workspace: the package set
with versions and internal dependencies, the dependency graph, and the
directory map used to attribute changed files to packages.
"""

from __future__ import annotations

from pathlib import Path

from packaging.requirements import InvalidRequirement, Requirement
from packaging.utils import canonicalize_name

from .errors import WorkspaceError
from .models import PackageInfo
from .toml import (
    get_all_dependency_strings,
    get_project_name,
    get_project_version,
    get_workspace_member_globs,
    load_pyproject,
)


def dep_canonical_name(dep_str: str) -> str | None:
    """Extract the canonical package name from a PEP 508 dependency string.

    Examples:
        "requests>=2.0" → "requests"
        "My_Package[extra]~=1.0" → "my-package"

    Returns None for strings that are not valid requirements.
    """
    try:
        return canonicalize_name(Requirement(dep_str).name)
    except InvalidRequirement:
        return None


def member_dirs(root: Path, patterns: list[str]) -> list[Path]:
    """Directories matched by the member globs that hold a pyproject.toml.

    Each directory appears once, in glob order, even when several patterns
    match it.
    """
    found: dict[Path, None] = {}
    for pattern in patterns:
        for candidate in sorted(root.glob(pattern)):
            if (candidate / "pyproject.toml").is_file():
                found.setdefault(candidate.resolve(), None)
    return list(found)


def _internal_deps(dep_strings: list[str], names: set[str]) -> list[str]:
    # First occurrence wins; external and unparseable deps are dropped
    internal = (dep_canonical_name(d) for d in dep_strings)
    return list(dict.fromkeys(n for n in internal if n in names))


def discover_workspace(root: Path | None = None) -> dict[str, PackageInfo]:
    """Read every workspace member into a PackageInfo.

    Args:
        root: Directory holding the workspace pyproject.toml. Defaults to
            the current directory.

    Returns:
        Map of canonical package name to PackageInfo, with ``deps`` limited
        to other workspace members.

    Raises:
        WorkspaceError: If no members are declared, none exist on disk, or
            two members share a name.
    """
    root = (root or Path.cwd()).resolve()
    patterns = get_workspace_member_globs(load_pyproject(root / "pyproject.toml"))
    dirs = member_dirs(root, patterns)
    if not dirs:
        raise WorkspaceError(
            f"No packages found matching workspace members {patterns}"
        )

    docs = {}
    packages: dict[str, PackageInfo] = {}
    for directory in dirs:
        doc = load_pyproject(directory / "pyproject.toml")
        name = get_project_name(doc, directory.name)
        rel = directory.relative_to(root).as_posix()
        if name in packages:
            raise WorkspaceError(
                f"Package {name!r} is declared by both "
                f"{packages[name].path} and {rel}"
            )
        docs[name] = doc
        packages[name] = PackageInfo(path=rel, version=get_project_version(doc))

    names = set(packages)
    for name, info in packages.items():
        info.deps = _internal_deps(get_all_dependency_strings(docs[name]), names)
    return packages


def workspace_graph(packages: dict[str, PackageInfo]) -> dict[str, list[str]]:
    """Map each package to its direct internal dependencies."""
    return {name: list(info.deps) for name, info in packages.items()}


def package_paths(packages: dict[str, PackageInfo]) -> dict[str, str]:
    """Map each package to its directory, relative to the workspace root."""
    return {name: info.path for name, info in packages.items()}


def current_versions(packages: dict[str, PackageInfo]) -> dict[str, str]:
    """Map each package to its version as declared in pyproject.toml."""
    return {name: info.version for name, info in packages.items()}
