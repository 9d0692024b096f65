"""Data models for release-planner.

These Pydantic models represent the records that flow through the planning
pipeline: raw commits in, classified changes, cached state, per-package
release decisions and the release manifest out.

Models serialize with camelCase aliases so the persisted JSON (cache files and
manifests) keeps a stable, language-neutral shape. Python code uses the
snake_case attribute names.
"""

from __future__ import annotations

import re
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

SCHEMA_VERSION = "1.0"

_AUTHOR_RE = re.compile(r"^(?P<name>.+?)\s*<(?P<email>[^>]*)>$")


class _Record(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class _FrozenRecord(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, frozen=True
    )


class CommitType(str, Enum):
    """Conventional Commits type. Unknown types are classified as CHORE."""

    FEAT = "feat"
    FIX = "fix"
    PERF = "perf"
    REFACTOR = "refactor"
    DOCS = "docs"
    BUILD = "build"
    CI = "ci"
    TEST = "test"
    CHORE = "chore"
    REVERT = "revert"
    STYLE = "style"


class VersionBump(str, Enum):
    """Semantic-version increment level."""

    NONE = "none"
    PATCH = "patch"
    MINOR = "minor"
    MAJOR = "major"

    @property
    def severity(self) -> int:
        """Rank for comparisons, NONE lowest."""
        return _SEVERITY[self]


_SEVERITY = {
    VersionBump.NONE: 0,
    VersionBump.PATCH: 1,
    VersionBump.MINOR: 2,
    VersionBump.MAJOR: 3,
}


def max_bump(*bumps: VersionBump) -> VersionBump:
    """Return the most severe of the given bumps (NONE when empty)."""
    return max(bumps, key=lambda b: b.severity, default=VersionBump.NONE)


class BumpReason(str, Enum):
    """Why a package received its bump.

    STABILITY_GUARD marks a bump that a release policy lowered, e.g. an
    experimental package whose breaking change was capped at minor.
    """

    BREAKING = "breaking"
    FEAT = "feat"
    FIX = "fix"
    PERF = "perf"
    RIPPLE = "ripple"
    MANUAL = "manual"
    STABILITY_GUARD = "stability-guard"


class BumpStrategy(str, Enum):
    """How a change in one package propagates to the others.

    INDEPENDENT releases only changed packages. RIPPLE also releases every
    transitive dependent. LOCKSTEP releases the whole workspace at one shared
    version.
    """

    INDEPENDENT = "independent"
    RIPPLE = "ripple"
    LOCKSTEP = "lockstep"


class Author(_FrozenRecord):
    """Commit author or co-author."""

    name: str
    email: str = ""


class BreakingChange(_FrozenRecord):
    """A breaking change, from a ``!`` header or a BREAKING CHANGE footer."""

    summary: str
    notes: str | None = None


class Reference(_FrozenRecord):
    """A pointer from a commit to a PR, issue or another commit."""

    type: str
    id: str
    url: str | None = None


class ProviderLinks(_FrozenRecord):
    """Hosting-provider URLs for a commit and the PRs and issues it cites."""

    commit: str | None = None
    pr: list[str] = Field(default_factory=list)
    issues: list[str] = Field(default_factory=list)


class RawCommit(_FrozenRecord):
    """A commit as resolved by version-control tooling.

    Attributes:
        sha: Full commit hash.
        author: Commit author.
        message: Full commit message (subject, blank line, body).
        timestamp: Author date as an ISO 8601 string.
        files: Paths changed by the commit, relative to the repo root.
        parents: Parent hashes. More than one parent marks a merge.
    """

    sha: str = Field(min_length=1)
    author: Author
    message: str
    timestamp: str = ""
    files: list[str] = Field(default_factory=list)
    parents: list[str] = Field(default_factory=list)

    @field_validator("author", mode="before")
    @classmethod
    def _parse_author_string(cls, value: Any) -> Any:
        # Accept git's "Name <email>" form as well as a mapping
        if isinstance(value, str):
            match = _AUTHOR_RE.match(value.strip())
            if match:
                return {"name": match["name"], "email": match["email"]}
            return {"name": value.strip()}
        return value


class Change(_FrozenRecord):
    """One classified commit.

    ``revert_of`` and ``cherry_pick_of`` are sha lookups only. The referenced
    commit may be absent from any cache, which is not an error.
    """

    sha: str
    type: CommitType = CommitType.CHORE
    scope: str | None = None
    subject: str
    body: str | None = None
    breaking: list[BreakingChange] = Field(default_factory=list)
    refs: list[Reference] = Field(default_factory=list)
    author: Author
    co_authors: list[Author] = Field(default_factory=list)
    packages: list[str] = Field(default_factory=list)
    files_changed: list[str] = Field(default_factory=list)
    timestamp: str = ""
    is_merge: bool = False
    is_revert: bool = False
    revert_of: str | None = None
    cherry_pick_of: str | None = None
    parents: list[str] = Field(default_factory=list)
    provider_links: ProviderLinks | None = None

    @property
    def is_breaking(self) -> bool:
        return bool(self.breaking)


class CacheMeta(_Record):
    """Fingerprints the cached commits were classified against."""

    graph_hash: str = ""
    options_hash: str = ""
    head: str = Field(default="", alias="HEAD")


class LastTag(_Record):
    """A package's most recent release tag and the commit it points at."""

    tag: str
    sha: str


class ChangeCache(_Record):
    """Process-durable cache of classified commits.

    Attributes:
        meta: Graph and option fingerprints and the HEAD the cache was last
            validated against.
        commits: Map of sha to classified Change.
        last_tags: Map of package name to its last release tag.
    """

    meta: CacheMeta = Field(default_factory=CacheMeta)
    commits: dict[str, Change] = Field(default_factory=dict)
    last_tags: dict[str, LastTag] = Field(default_factory=dict)


class PackageImpact(_FrozenRecord):
    """A package pulled into release consideration.

    Attributes:
        name: Package name.
        direct: True when the package itself has changes in range.
        via_dependency: Changed upstream package whose release forces this
            one, if any.
    """

    name: str
    direct: bool
    via_dependency: str | None = None


class PackageRelease(_FrozenRecord):
    """Release decision for one package."""

    name: str
    prev: str
    next: str
    bump: VersionBump
    reason: BumpReason
    ripple_from: list[str] | None = None
    breaking: list[BreakingChange] = Field(default_factory=list)
    changes: list[Change] = Field(default_factory=list)
    note: str | None = None


class GitRange(_FrozenRecord):
    """Commit range ``from..to``; serialized with a ``from`` key."""

    from_: str = Field(alias="from")
    to: str = "HEAD"


class Workspace(_FrozenRecord):
    """Summary counts across every released package."""

    breaking_count: int = 0
    by_type: dict[str, int] = Field(default_factory=dict)


class ReleaseManifest(_FrozenRecord):
    """Immutable output record of one planning run."""

    schema_version: str = SCHEMA_VERSION
    range: GitRange
    timestamp: str
    packages: list[PackageRelease] = Field(default_factory=list)
    workspace: Workspace = Field(default_factory=Workspace)
    integrity: dict[str, str] | None = None


class PackageInfo(BaseModel):
    """Metadata for a single package in the workspace.

    Attributes:
        path: Relative path from workspace root to the package directory.
        version: Current version string from pyproject.toml.
        deps: Internal (workspace) dependency names. External deps are not
              tracked since only the workspace graph matters for ripple.
    """

    path: str
    version: str
    deps: list[str] = Field(default_factory=list)
