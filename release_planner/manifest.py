"""Release manifest assembly and persistence.

A manifest is built fresh on every run and never edited afterwards; helpers
that "add" something return a new instance.
"""

from __future__ import annotations

import hashlib
from collections import Counter
from collections.abc import Iterable, Mapping
from datetime import datetime, timezone
from pathlib import Path

from .models import GitRange, PackageRelease, ReleaseManifest, Workspace

MANIFEST_FILE = "release.plan.json"
CHANGELOG_FILE = "CHANGELOG.md"


def assemble_manifest(
    range: GitRange,
    releases: Iterable[PackageRelease],
    timestamp: str | None = None,
) -> ReleaseManifest:
    """Build the manifest for a set of resolved releases.

    Args:
        range: The commit range that was planned.
        releases: Per-package decisions, in release order.
        timestamp: ISO 8601 creation time. Defaults to now (UTC).

    The workspace summary counts every change of every package, so a commit
    touching two packages counts twice.
    """
    packages = [r.model_copy(deep=True) for r in releases]

    by_type: Counter[str] = Counter()
    breaking_count = 0
    for release in packages:
        breaking_count += len(release.breaking)
        by_type.update(c.type.value for c in release.changes)

    return ReleaseManifest(
        range=range.model_copy(),
        timestamp=timestamp or datetime.now(timezone.utc).isoformat(),
        packages=packages,
        workspace=Workspace(
            breaking_count=breaking_count,
            by_type=dict(sorted(by_type.items())),
        ),
    )


def sha256_hex(content: str | bytes) -> str:
    """Hex sha256 of ``content``; text is encoded as UTF-8 first."""
    if isinstance(content, str):
        content = content.encode()
    return hashlib.sha256(content).hexdigest()


def with_integrity(
    manifest: ReleaseManifest, artifacts: Mapping[str, str | bytes]
) -> ReleaseManifest:
    """Return a copy of ``manifest`` carrying sha256 digests of ``artifacts``.

    Args:
        manifest: Manifest to copy. It is not modified.
        artifacts: Artifact file name to its content.

    Returns:
        The copy, with integrity keys merged over any existing ones and
        sorted by name.
    """
    integrity = dict(manifest.integrity or {})
    integrity.update({name: sha256_hex(data) for name, data in artifacts.items()})
    return manifest.model_copy(update={"integrity": dict(sorted(integrity.items()))})


def manifest_to_json(manifest: ReleaseManifest) -> str:
    """Serialize to indented camelCase JSON, omitting unset optional fields."""
    return manifest.model_dump_json(by_alias=True, exclude_none=True, indent=2) + "\n"


def manifest_from_json(text: str | bytes) -> ReleaseManifest:
    """Parse a manifest written by manifest_to_json().

    Raises:
        pydantic.ValidationError: If the document does not match the schema.
    """
    return ReleaseManifest.model_validate_json(text)


def write_release(
    out_dir: Path, manifest: ReleaseManifest, markdown: str | None = None
) -> ReleaseManifest:
    """Write the changelog and the manifest into ``out_dir``.

    When a changelog is given its digest is recorded in the written manifest.

    Returns:
        The manifest as written.
    """
    out_dir.mkdir(parents=True, exist_ok=True)
    if markdown is not None:
        (out_dir / CHANGELOG_FILE).write_text(markdown)
        manifest = with_integrity(manifest, {CHANGELOG_FILE: markdown})
    (out_dir / MANIFEST_FILE).write_text(manifest_to_json(manifest))
    print(f"  Wrote {out_dir / MANIFEST_FILE}")
    return manifest
