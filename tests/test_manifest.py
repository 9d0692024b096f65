"""Tests for release_planner.manifest."""

from __future__ import annotations

import hashlib
import json
from collections.abc import Callable
from pathlib import Path

import pytest

from release_planner.manifest import (
    CHANGELOG_FILE,
    MANIFEST_FILE,
    assemble_manifest,
    manifest_from_json,
    manifest_to_json,
    sha256_hex,
    with_integrity,
    write_release,
)
from release_planner.models import (
    SCHEMA_VERSION,
    BreakingChange,
    BumpReason,
    Change,
    CommitType,
    GitRange,
    PackageRelease,
    VersionBump,
)

ChangeFactory = Callable[..., Change]
RANGE = GitRange(from_="v1.0.0", to="HEAD")
TIMESTAMP = "2024-05-01T12:00:00+00:00"


@pytest.fixture
def releases(change: ChangeFactory) -> list[PackageRelease]:
    """core gets a breaking major, api a patch; one fix touches both."""
    shared = change("3" * 40, CommitType.FIX, packages=["api", "core"])
    breaking = [BreakingChange(summary="drop py38")]
    return [
        PackageRelease(
            name="core",
            prev="1.0.0",
            next="2.0.0",
            bump=VersionBump.MAJOR,
            reason=BumpReason.BREAKING,
            breaking=breaking,
            changes=[
                change(
                    "1" * 40, CommitType.FEAT, packages=["core"], breaking=breaking
                ),
                shared,
            ],
        ),
        PackageRelease(
            name="api",
            prev="2.1.0",
            next="2.1.1",
            bump=VersionBump.PATCH,
            reason=BumpReason.FIX,
            changes=[shared],
        ),
    ]


class TestAssembleManifest:
    """Tests for assemble_manifest()."""

    def test_summary(self, releases: list[PackageRelease]) -> None:
        """Counts come from the per-package changes, keys sorted."""
        manifest = assemble_manifest(RANGE, releases, TIMESTAMP)
        assert manifest.schema_version == SCHEMA_VERSION
        assert manifest.timestamp == TIMESTAMP
        assert [p.name for p in manifest.packages] == ["core", "api"]
        assert manifest.workspace.breaking_count == 1
        # The shared fix is counted once per package
        assert manifest.workspace.by_type == {"feat": 1, "fix": 2}
        assert list(manifest.workspace.by_type) == sorted(
            manifest.workspace.by_type
        )

    def test_empty(self) -> None:
        """No releases gives an empty summary."""
        manifest = assemble_manifest(RANGE, [], TIMESTAMP)
        assert manifest.packages == []
        assert manifest.workspace.breaking_count == 0
        assert manifest.workspace.by_type == {}

    def test_default_timestamp(self) -> None:
        """Without a timestamp the current time is stamped."""
        assert assemble_manifest(RANGE, []).timestamp

    def test_deterministic(self, releases: list[PackageRelease]) -> None:
        """The same inputs serialize to the same bytes."""
        first = manifest_to_json(assemble_manifest(RANGE, releases, TIMESTAMP))
        second = manifest_to_json(assemble_manifest(RANGE, releases, TIMESTAMP))
        assert first == second


class TestIntegrity:
    """Tests for sha256_hex() and with_integrity()."""

    def test_sha256_hex(self) -> None:
        """Text is hashed as UTF-8."""
        assert sha256_hex("é") == hashlib.sha256("é".encode()).hexdigest()

    def test_returns_new_manifest(self, releases: list[PackageRelease]) -> None:
        """The input manifest is left without integrity."""
        manifest = assemble_manifest(RANGE, releases, TIMESTAMP)
        signed = with_integrity(manifest, {"CHANGELOG.md": "# notes"})
        assert manifest.integrity is None
        assert signed.integrity == {
            "CHANGELOG.md": hashlib.sha256(b"# notes").hexdigest()
        }


class TestJson:
    """Tests for manifest_to_json() and manifest_from_json()."""

    def test_camel_case_document(self, releases: list[PackageRelease]) -> None:
        """The document uses camelCase keys and omits empty integrity."""
        manifest = assemble_manifest(RANGE, releases, TIMESTAMP)
        data = json.loads(manifest_to_json(manifest))
        assert data["schemaVersion"] == "1.0"
        assert data["range"] == {"from": "v1.0.0", "to": "HEAD"}
        assert data["workspace"] == {
            "breakingCount": 1,
            "byType": {"feat": 1, "fix": 2},
        }
        assert data["packages"][0]["changes"][0]["filesChanged"] == []
        assert "integrity" not in data

    def test_round_trip(self, releases: list[PackageRelease]) -> None:
        """A serialized manifest loads back equal."""
        manifest = assemble_manifest(RANGE, releases, TIMESTAMP)
        assert manifest_from_json(manifest_to_json(manifest)) == manifest


class TestWriteRelease:
    """Tests for write_release()."""

    def test_writes_files(
        self, tmp_path: Path, releases: list[PackageRelease]
    ) -> None:
        """Both files are written and the changelog hash is recorded."""
        manifest = assemble_manifest(RANGE, releases, TIMESTAMP)
        written = write_release(tmp_path / "out", manifest, "# Changelog\n")

        assert (tmp_path / "out" / CHANGELOG_FILE).read_text() == "# Changelog\n"
        on_disk = manifest_from_json((tmp_path / "out" / MANIFEST_FILE).read_text())
        assert on_disk == written
        assert set(written.integrity) == {CHANGELOG_FILE}

    def test_without_changelog(self, tmp_path: Path) -> None:
        """Without a changelog only the manifest is written."""
        write_release(tmp_path, assemble_manifest(RANGE, [], TIMESTAMP))
        assert not (tmp_path / CHANGELOG_FILE).exists()
        assert (tmp_path / MANIFEST_FILE).exists()
