"""Release planning pipeline: classify → link → resolve → assemble → render.

This module wires the planner stages together:
1. Classify raw commits into changes (through the cache when enabled)
2. Attach provider links to commits, PRs and issues
3. Resolve per-package bumps across the dependency graph
4. Assemble the release manifest
5. Render the changelog and write both to the output directory

Stages run strictly in order and the run either yields a complete manifest
or fails with the stage that broke. Engine errors (ReleasePlannerError)
propagate as they are; anything else is wrapped in PipelineStageError.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from contextlib import contextmanager
from pathlib import Path
from typing import Any

from .ancestry import Ancestry
from .cache import (
    cache_lock,
    is_cache_valid,
    load_cache,
    save_cache,
    save_graph_snapshot,
    update_cache,
)
from .classifier import classify, classify_each, options_fingerprint, refine
from .config import ClassifyOptions, ReleasePlannerConfig, load_config
from .errors import PipelineStageError, ReleasePlannerError
from .graph import Graph, compute_graph_hash
from .manifest import assemble_manifest, write_release
from .models import Change, GitRange, RawCommit, ReleaseManifest
from .providers import GitProvider, detect_provider, enhance_change_with_links
from .resolver import resolve_releases
from .shell import step
from .templates.render import render_manifest
from .templates.types import Platform
from .workspace import (
    current_versions,
    discover_workspace,
    package_paths,
    workspace_graph,
)

RawInput = RawCommit | Mapping[str, Any]


@contextmanager
def _stage(name: str, title: str) -> Iterator[None]:
    step(title)
    try:
        yield
    except ReleasePlannerError:
        raise
    except Exception as e:
        raise PipelineStageError(name, str(e) or type(e).__name__) from e


def classify_with_cache(
    raw_commits: Iterable[RawInput],
    range: GitRange,
    options: ClassifyOptions,
    *,
    cache_dir: Path,
    graph_hash: str,
    head: str | None = None,
    ancestry: Ancestry | None = None,
    package_paths: Mapping[str, str] | None = None,
) -> list[Change]:
    """Classify commits, reusing and refreshing the on-disk cache.

    The cache lock is held for the whole read-modify-write. A cache that
    fails validation, including one written under different redaction,
    truncation or package attribution settings, is dropped entirely and
    every commit is classified again.

    Raises:
        LockContentionError: If another process holds the cache lock.
    """
    options_hash = options_fingerprint(options, package_paths)
    with cache_lock(cache_dir):
        cache = None
        valid = is_cache_valid(
            cache_dir,
            range.from_,
            range.to,
            graph_hash,
            head,
            ancestry,
            current_options_hash=options_hash,
        )
        if valid:
            cache = load_cache(cache_dir)
        if cache is None:
            print("  Cache absent or invalid: classifying all commits")
        else:
            print(f"  Cache valid ({len(cache.commits)} commits)")

        per_commit = classify_each(
            raw_commits,
            options,
            package_paths=package_paths,
            cached=cache.commits if cache is not None else None,
        )

        updated = update_cache(cache, per_commit)
        updated.meta.graph_hash = graph_hash
        updated.meta.options_hash = options_hash
        if head:
            updated.meta.head = head
        save_cache(cache_dir, updated)
        save_graph_snapshot(cache_dir, graph_hash)

    return refine(per_commit, options)


def plan_release(
    range: GitRange,
    raw_commits: Iterable[RawInput],
    graph: Graph,
    versions: Mapping[str, str],
    config: ReleasePlannerConfig | None = None,
    *,
    cache_dir: Path | None = None,
    head: str | None = None,
    ancestry: Ancestry | None = None,
    package_paths: Mapping[str, str] | None = None,
    provider: GitProvider | None = None,
    timestamp: str | None = None,
) -> ReleaseManifest:
    """Plan a release for ``range``.

    Args:
        range: Commit range being released.
        raw_commits: Commits in range, oldest first.
        graph: Package name → direct internal dependency names.
        versions: Current version of each package.
        config: Planner configuration. Defaults apply when omitted.
        cache_dir: Cache directory. No cache is used when None or when the
            config disables caching.
        head: Current HEAD sha, checked against the cached HEAD.
        ancestry: Oracle for the HEAD reachability check.
        package_paths: Package name → directory, for file attribution.
        provider: Hosting provider for links. Derived from
            ``config.base_url`` when omitted.
        timestamp: Manifest timestamp. Defaults to now.

    Returns:
        The complete release manifest.
    """
    config = config or ReleasePlannerConfig()
    options = config.classify_options()
    raw_commits = list(raw_commits)

    with _stage("classify", f"Classifying {len(raw_commits)} commits"):
        if cache_dir is not None and config.cache:
            changes = classify_with_cache(
                raw_commits,
                range,
                options,
                cache_dir=cache_dir,
                graph_hash=compute_graph_hash(graph),
                head=head,
                ancestry=ancestry,
                package_paths=package_paths,
            )
        else:
            changes = classify(raw_commits, options, package_paths=package_paths)
        print(f"  {len(changes)} changes")

    if provider is None and config.base_url:
        provider = detect_provider(config.base_url)
    if provider is not None and provider.base_url:
        with _stage("links", f"Linking changes to {provider.type}"):
            changes = [enhance_change_with_links(c, provider) for c in changes]

    with _stage("resolve", f"Resolving bumps ({config.bump_strategy.value})"):
        releases = resolve_releases(
            changes,
            graph,
            versions,
            config.bump_strategy,
            experimental=config.experimental_packages,
            allow_major=config.stability_guards.experimental.allow_major,
            preid=config.prerelease,
        )
        for release in releases:
            via = ""
            if release.ripple_from:
                via = f" ← {', '.join(release.ripple_from)}"
            print(
                f"  {release.name}: {release.prev} → {release.next} "
                f"({release.reason.value}){via}"
            )
        if not releases:
            print("  Nothing to release")

    with _stage("assemble", "Assembling manifest"):
        return assemble_manifest(range, releases, timestamp)


async def generate_changelog(
    manifest: ReleaseManifest,
    config: ReleasePlannerConfig | None = None,
    platform: Platform | None = None,
    cwd: Path | None = None,
) -> str:
    """Render the changelog for every package in the manifest."""
    config = config or ReleasePlannerConfig()
    with _stage("render", f"Rendering changelog ({config.template})"):
        return await render_manifest(
            manifest,
            config.template,
            locale=config.locale,
            metadata=config.metadata or None,
            platform=platform,
            cwd=cwd,
        )


async def run_release(
    range: GitRange,
    raw_commits: Iterable[RawInput],
    root: Path | None = None,
    *,
    head: str | None = None,
    ancestry: Ancestry | None = None,
    platform: Platform | None = None,
    timestamp: str | None = None,
) -> ReleaseManifest:
    """Plan and document a release for the workspace at ``root``.

    Reads the config and workspace from ``root`` and writes CHANGELOG.md and
    release.plan.json to the configured output directory.
    """
    root = root or Path.cwd()
    config = load_config(root)

    with _stage("discover", "Discovering workspace packages"):
        packages = discover_workspace(root)
        for name, info in sorted(packages.items()):
            deps = f" → [{', '.join(info.deps)}]" if info.deps else ""
            print(f"  {name} {info.version} ({info.path}){deps}")

    manifest = plan_release(
        range,
        raw_commits,
        workspace_graph(packages),
        current_versions(packages),
        config,
        cache_dir=root / config.cache_dir,
        head=head,
        ancestry=ancestry,
        package_paths=package_paths(packages),
        timestamp=timestamp,
    )

    markdown = await generate_changelog(manifest, config, platform, cwd=root)

    with _stage("write", "Writing release plan"):
        manifest = write_release(root / config.output_dir, manifest, markdown or None)

    print(f"\n{'=' * 60}\nDone!\n{'=' * 60}")
    return manifest
