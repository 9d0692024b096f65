"""Commit ancestry oracles.

The cache is only reusable when the HEAD it was validated against is still
part of the history that leads to the requested range. These oracles answer
"is A an ancestor of (or equal to) B?".
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import Protocol

from .models import RawCommit
from .shell import git_succeeds


class Ancestry(Protocol):
    def is_ancestor(self, ancestor: str, descendant: str) -> bool: ...


class CommitAncestry:
    """In-memory ancestry over known parent links.

    Args:
        parents: Map of sha to parent shas.
        refs: Optional symbolic names (tags, "HEAD") resolved to shas.

    Shas may be abbreviated on either side; an unknown commit is never an
    ancestor of anything but itself.
    """

    def __init__(
        self,
        parents: Mapping[str, Iterable[str]],
        refs: Mapping[str, str] | None = None,
    ):
        self._parents = {sha: list(ps) for sha, ps in parents.items()}
        self._refs = dict(refs or {})

    @classmethod
    def from_commits(
        cls, commits: Iterable[RawCommit], refs: Mapping[str, str] | None = None
    ) -> CommitAncestry:
        return cls({c.sha: c.parents for c in commits}, refs)

    def resolve(self, ref: str) -> str:
        ref = self._refs.get(ref, ref)
        if ref in self._parents:
            return ref
        if len(ref) < 7:
            return ref
        matches = [sha for sha in self._parents if sha.startswith(ref)]
        return matches[0] if len(matches) == 1 else ref

    def is_ancestor(self, ancestor: str, descendant: str) -> bool:
        target = self.resolve(ancestor)
        start = self.resolve(descendant)
        if target == start:
            return True

        # BFS through parents; visited set keeps malformed (cyclic) input finite
        seen: set[str] = set()
        queue = [start]
        while queue:
            sha = queue.pop(0)
            if sha == target:
                return True
            if sha in seen:
                continue
            seen.add(sha)
            queue.extend(p for p in self._parents.get(sha, []) if p not in seen)
        return False


class GitAncestry:
    """Ancestry answered by ``git merge-base --is-ancestor`` in a checkout."""

    def __init__(self, repo: Path | None = None):
        self.repo = repo

    def is_ancestor(self, ancestor: str, descendant: str) -> bool:
        if ancestor == descendant:
            return True
        return git_succeeds(
            "merge-base", "--is-ancestor", ancestor, descendant, cwd=self.repo
        )
