"""Dependency graph utilities.

The workspace graph maps each package name to the names of its direct
internal dependencies. Edges point from dependent to dependency, so bump
obligations travel along the reverse edges: when B depends on A and A is
released, B may have to be released too.

Workspaces can contain cycles (circular dev-dependencies are common), so every
traversal here keeps a visited set and no function fails on a cycle.
"""

from __future__ import annotations

import hashlib
import json
from collections import deque
from collections.abc import Iterable, Mapping

from .errors import GraphTraversalError
from .models import BumpStrategy, PackageImpact, VersionBump

Graph = Mapping[str, Iterable[str]]


def _normalized(graph: Graph) -> dict[str, list[str]]:
    return {name: sorted(set(deps)) for name, deps in sorted(graph.items())}


def compute_graph_hash(graph: Graph) -> str:
    """Fingerprint the graph structure.

    Key order and dependency order do not matter; any added, removed or
    rewired package changes the hash.
    """
    canonical = json.dumps(
        _normalized(graph), sort_keys=True, separators=(",", ":")
    )
    return hashlib.sha256(canonical.encode()).hexdigest()


def all_packages(graph: Graph) -> list[str]:
    """All package names in the graph, including ones only seen as deps."""
    names = set(graph)
    for deps in graph.values():
        names.update(deps)
    return sorted(names)


def reverse_dependencies(graph: Graph) -> dict[str, list[str]]:
    """Map each package to the packages that depend on it directly."""
    reverse: dict[str, list[str]] = {n: [] for n in all_packages(graph)}
    for name, deps in _normalized(graph).items():
        for dep in deps:
            if dep != name:
                reverse[dep].append(name)
    return {n: sorted(d) for n, d in reverse.items()}


def _distances_from(
    source: str, reverse: Mapping[str, list[str]]
) -> dict[str, int]:
    """BFS from ``source`` along reverse edges, excluding the source itself."""
    distances: dict[str, int] = {}
    visited = {source}
    queue = deque([(source, 0)])
    while queue:
        node, dist = queue.popleft()
        for dependent in reverse.get(node, []):
            if dependent in visited:
                continue
            visited.add(dependent)
            distances[dependent] = dist + 1
            queue.append((dependent, dist + 1))
    return distances


def compute_impact(
    directly_changed: Iterable[str],
    graph: Graph,
    strategy: BumpStrategy | str,
    severities: Mapping[str, VersionBump] | None = None,
) -> list[PackageImpact]:
    """Determine which packages must be considered for a release.

    Args:
        directly_changed: Packages with changes in range.
        graph: Package name to direct dependency names.
        strategy: "independent", "ripple" or "lockstep".
        severities: Bump each changed package will get on its own. Used to
            pick the upstream when a package is reached from several changed
            packages. Missing entries count as no bump.

    Returns:
        One PackageImpact per impacted package, sorted by name.

    Raises:
        GraphTraversalError: If the strategy is unknown.
    """
    try:
        strategy = BumpStrategy(strategy)
    except ValueError as e:
        raise GraphTraversalError(f"Unknown bump strategy: {strategy!r}") from e

    changed = sorted(set(directly_changed))
    severities = severities or {}

    def severity(name: str) -> int:
        return severities.get(name, VersionBump.NONE).severity

    if strategy is BumpStrategy.INDEPENDENT:
        return [PackageImpact(name=n, direct=True) for n in changed]

    if strategy is BumpStrategy.LOCKSTEP:
        leader = min(changed, key=lambda n: (-severity(n), n), default=None)
        names = sorted(set(all_packages(graph)) | set(changed))
        return [
            PackageImpact(name=n, direct=True)
            if n in changed
            else PackageImpact(name=n, direct=False, via_dependency=leader)
            for n in names
        ]

    # Ripple: collect every (upstream, distance) pair that reaches a package
    reverse = reverse_dependencies(graph)
    reached: dict[str, list[tuple[str, int]]] = {}
    for source in changed:
        for name, dist in _distances_from(source, reverse).items():
            reached.setdefault(name, []).append((source, dist))

    impacts: list[PackageImpact] = []
    for name in sorted(set(changed) | set(reached)):
        candidates = reached.get(name, [])
        via = None
        if candidates:
            via, _ = min(candidates, key=lambda c: (-severity(c[0]), c[1], c[0]))
        impacts.append(
            PackageImpact(name=name, direct=name in changed, via_dependency=via)
        )
    return impacts


def release_order(names: Iterable[str], graph: Graph) -> list[str]:
    """Order packages so dependencies come before dependents.

    Uses Kahn's algorithm restricted to ``names``, alphabetical among peers.
    Packages caught in a cycle cannot be ordered; they are appended
    alphabetically after everything else.

    Example:
        If A depends on B, and B depends on C:
        release_order([A, B, C]) -> [C, B, A]
    """
    selected = set(names)
    in_degree = {n: 0 for n in selected}
    reverse: dict[str, list[str]] = {n: [] for n in selected}

    for name in selected:
        for dep in set(graph.get(name, [])):
            # Only edges inside the selection count
            if dep in selected and dep != name:
                in_degree[name] += 1
                reverse[dep].append(name)

    queue = sorted(n for n, d in in_degree.items() if d == 0)
    order: list[str] = []

    while queue:
        node = queue.pop(0)
        order.append(node)
        for dependent in sorted(reverse[node]):
            in_degree[dependent] -= 1
            if in_degree[dependent] == 0:
                queue.append(dependent)

    order.extend(sorted(selected - set(order)))
    return order
