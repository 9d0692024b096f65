"""Bump resolution.

Turns classified changes into one release decision per package: the bump
level, the reason for it and the next version. Packages that end up with no
bump are not released.
"""

from __future__ import annotations

from collections.abc import Collection, Iterable, Mapping

from .errors import BumpResolutionError
from .graph import Graph, compute_impact, release_order
from .models import (
    BumpReason,
    BumpStrategy,
    Change,
    CommitType,
    PackageImpact,
    PackageRelease,
    VersionBump,
    max_bump,
)
from .versions import highest_version, next_version, parse_version

# Most significant first; the first match decides
_TYPE_BUMPS = (
    (CommitType.FEAT, VersionBump.MINOR, BumpReason.FEAT),
    (CommitType.FIX, VersionBump.PATCH, BumpReason.FIX),
    (CommitType.PERF, VersionBump.PATCH, BumpReason.PERF),
)

STABILITY_NOTE = "Breaking change capped at minor: package is experimental"


def group_changes_by_package(changes: Iterable[Change]) -> dict[str, list[Change]]:
    """Bucket changes under every package they touch, keeping input order."""
    grouped: dict[str, list[Change]] = {}
    for change in changes:
        for package in change.packages:
            grouped.setdefault(package, []).append(change)
    return grouped


def resolve_bump(changes: Iterable[Change]) -> tuple[VersionBump, BumpReason]:
    """Pick a package's own bump from its changes.

    Precedence is breaking > feat > fix > perf. Anything else (docs, chore,
    refactor...) does not release on its own, reported as MANUAL.
    """
    changes = list(changes)
    if any(c.is_breaking for c in changes):
        return VersionBump.MAJOR, BumpReason.BREAKING
    types = {c.type for c in changes}
    for commit_type, bump, reason in _TYPE_BUMPS:
        if commit_type in types:
            return bump, reason
    return VersionBump.NONE, BumpReason.MANUAL


def apply_stability_guard(
    bump: VersionBump,
    reason: BumpReason,
    *,
    experimental: bool,
    allow_major: bool,
) -> tuple[VersionBump, BumpReason, str | None]:
    """Cap a major bump at minor for experimental packages.

    Returns:
        (bump, reason, note). The note is None when nothing was changed.
    """
    if experimental and not allow_major and bump is VersionBump.MAJOR:
        return VersionBump.MINOR, BumpReason.STABILITY_GUARD, STABILITY_NOTE
    return bump, reason, None


def resolve_releases(
    changes: Iterable[Change],
    graph: Graph,
    versions: Mapping[str, str],
    strategy: BumpStrategy | str,
    *,
    experimental: Collection[str] = (),
    allow_major: bool = True,
    preid: str | None = None,
) -> list[PackageRelease]:
    """Resolve the release of every impacted package.

    Args:
        changes: Classified changes in range, oldest first.
        graph: Package name to direct dependency names.
        versions: Current version of each package. Unknown packages start
            from "0.0.0".
        strategy: How bumps propagate across the graph.
        experimental: Packages subject to the stability guard.
        allow_major: Whether experimental packages may take a major bump.
        preid: Pre-release identifier for the next versions.

    Returns:
        Releases in dependency order, packages with no bump left out.

    Raises:
        BumpResolutionError: If a package's version cannot be bumped.
        GraphTraversalError: If the strategy is unknown.
    """
    by_package = group_changes_by_package(changes)

    own: dict[str, tuple[VersionBump, BumpReason, str | None]] = {}
    for name, package_changes in by_package.items():
        bump, reason = resolve_bump(package_changes)
        own[name] = apply_stability_guard(
            bump, reason, experimental=name in experimental, allow_major=allow_major
        )

    severities = {name: decision[0] for name, decision in own.items()}
    impacts = compute_impact(by_package, graph, strategy, severities)
    lockstep = BumpStrategy(strategy) is BumpStrategy.LOCKSTEP

    leader = None
    if lockstep:
        leader = min(
            by_package, key=lambda n: (-severities[n].severity, n), default=None
        )

    releases: dict[str, PackageRelease] = {}
    for impact in impacts:
        upstream = leader if lockstep else impact.via_dependency
        release = _resolve_one(
            impact,
            upstream,
            own,
            severities,
            by_package.get(impact.name, []),
            experimental=impact.name in experimental,
            allow_major=allow_major,
        )
        if release.bump is not VersionBump.NONE:
            releases[impact.name] = release

    base = _lockstep_base([i.name for i in impacts], versions) if lockstep else None

    resolved: list[PackageRelease] = []
    for name in release_order(releases, graph):
        release = releases[name]
        prev = versions.get(name, "0.0.0")
        try:
            next_ = next_version(base or prev, release.bump, preid)
        except ValueError as e:
            raise BumpResolutionError(name, str(e)) from e
        resolved.append(release.model_copy(update={"prev": prev, "next": next_}))
    return resolved


def _lockstep_base(names: list[str], versions: Mapping[str, str]) -> str:
    """Highest current version across the lockstep group."""
    current = [versions.get(name, "0.0.0") for name in names]
    for name, version in zip(names, current):
        try:
            parse_version(version)
        except ValueError as e:
            raise BumpResolutionError(name, str(e)) from e
    return highest_version(current)


def _resolve_one(
    impact: PackageImpact,
    upstream: str | None,
    own: Mapping[str, tuple[VersionBump, BumpReason, str | None]],
    severities: Mapping[str, VersionBump],
    package_changes: list[Change],
    *,
    experimental: bool,
    allow_major: bool,
) -> PackageRelease:
    no_bump = (VersionBump.NONE, BumpReason.MANUAL, None)
    bump, reason, note = own.get(impact.name, no_bump)
    ripple_from = None

    if upstream and upstream != impact.name:
        upstream_bump = severities.get(upstream, VersionBump.NONE)
        if upstream_bump.severity > bump.severity:
            bump = max_bump(bump, upstream_bump)
            reason = BumpReason.RIPPLE
            ripple_from = [upstream]
            note = None

    # A ripple can carry a major into an experimental package
    bump, reason, guard_note = apply_stability_guard(
        bump, reason, experimental=experimental, allow_major=allow_major
    )

    return PackageRelease(
        name=impact.name,
        prev="",
        next="",
        bump=bump,
        reason=reason,
        ripple_from=ripple_from,
        breaking=[b for c in package_changes for b in c.breaking],
        changes=package_changes,
        note=guard_note or note,
    )
