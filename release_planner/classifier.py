"""Commit classification.

Turns raw commits into structured Change records following the Conventional
Commits grammar (``type(scope)!: subject``), then applies the batch-level
rules: author filtering, merge folding, revert cancellation and type filters.

Classification is a pure transform. A commit that cannot be parsed degrades
to a ``chore`` change instead of failing the batch.
"""

from __future__ import annotations

import hashlib
import json
import re
from collections.abc import Iterable, Mapping
from typing import Any

from pydantic import BaseModel, Field, ValidationError

from .config import ClassifyOptions
from .models import (
    Author,
    BreakingChange,
    Change,
    CommitType,
    RawCommit,
    Reference,
)
from .shell import warn

HEADER_RE = re.compile(
    r"^(?P<type>\w+)(?:\((?P<scope>[^)]+)\))?(?P<bang>!)?:\s*(?P<subject>.+)$"
)
BREAKING_FOOTER_RE = re.compile(r"^BREAKING[ -]CHANGE:\s*(?P<summary>.+)$")
FOOTER_RE = re.compile(r"^(?:[A-Za-z][A-Za-z-]*|BREAKING CHANGE):\s")
ISSUE_REF_RE = re.compile(
    r"\b(?P<verb>close[sd]?|fix(?:e[sd])?|resolve[sd]?|refs?)\b:?\s+#(?P<id>\d+)",
    re.IGNORECASE,
)
SUBJECT_PR_RE = re.compile(r"\(#(?P<id>\d+)\)\s*$")
MERGE_PR_RE = re.compile(r"^Merge pull request #(?P<id>\d+)")
MERGE_SUBJECT_RE = re.compile(
    r"^Merge (?:pull request|branch|remote-tracking branch)\b"
)
CO_AUTHOR_RE = re.compile(
    r"^Co-authored-by:\s*(?P<name>.+?)\s*<(?P<email>[^>]+)>\s*$",
    re.IGNORECASE | re.MULTILINE,
)
REVERT_OF_RE = re.compile(
    r"(?:This reverts commit|revert of)\s+(?P<sha>[0-9a-f]{7,40})", re.IGNORECASE
)
GIT_REVERT_SUBJECT_RE = re.compile(r'^Revert "(?P<inner>.+)"$')
CHERRY_PICK_RE = re.compile(
    r"\(cherry picked from commit (?P<sha>[0-9a-f]{7,40})\)", re.IGNORECASE
)
PACKAGES_DIR_RE = re.compile(r"^packages/(?P<name>[^/]+)/")

REDACTED = "[REDACTED]"

# Significance when picking the entry that represents a folded merge
_TYPE_RANK = {
    CommitType.FEAT: 0,
    CommitType.FIX: 1,
    CommitType.PERF: 2,
    CommitType.REFACTOR: 3,
    CommitType.REVERT: 4,
    CommitType.DOCS: 5,
}


class ParsedMessage(BaseModel):
    """Header and footer information extracted from a commit message."""

    type: CommitType
    scope: str | None = None
    subject: str
    body: str | None = None
    breaking: list[BreakingChange] = Field(default_factory=list)
    conventional: bool = False


def normalize_type(raw_type: str | None) -> CommitType:
    """Map a header type onto CommitType, falling back to chore."""
    try:
        return CommitType((raw_type or "chore").lower())
    except ValueError:
        return CommitType.CHORE


def parse_message(message: str) -> ParsedMessage:
    """Parse a commit message.

    A ``type: subject`` header with an unknown type is typed ``chore`` and
    keeps the text after the colon as its subject (``WIP: foo`` gives
    ``foo``). A header with no colon at all keeps the whole header as the
    subject and is typed ``chore``, except git's own ``Revert "..."``
    subjects which are typed ``revert``.
    """
    lines = message.strip("\n").splitlines()
    header = lines[0].strip() if lines else ""
    body = "\n".join(lines[1:]).strip()

    match = HEADER_RE.match(header)
    if match:
        commit_type = normalize_type(match["type"])
        scope = match["scope"]
        subject = match["subject"].strip()
    else:
        git_revert = GIT_REVERT_SUBJECT_RE.match(header)
        commit_type = CommitType.REVERT if git_revert else CommitType.CHORE
        scope = None
        subject = header

    breaking: list[BreakingChange] = []
    if match and match["bang"]:
        breaking.append(BreakingChange(summary=subject))
    breaking.extend(_breaking_footers(body))

    return ParsedMessage(
        type=commit_type,
        scope=scope,
        subject=subject,
        body=body or None,
        breaking=breaking,
        conventional=bool(match),
    )


def _breaking_footers(body: str) -> list[BreakingChange]:
    """Collect BREAKING CHANGE footers with their continuation lines as notes."""
    found: list[BreakingChange] = []
    lines = body.splitlines()
    i = 0
    while i < len(lines):
        match = BREAKING_FOOTER_RE.match(lines[i].strip())
        if not match:
            i += 1
            continue
        notes: list[str] = []
        i += 1
        while i < len(lines):
            line = lines[i].strip()
            if not line or FOOTER_RE.match(line):
                break
            notes.append(line)
            i += 1
        found.append(
            BreakingChange(
                summary=match["summary"].strip(), notes="\n".join(notes) or None
            )
        )
    return found


def extract_references(subject: str, body: str | None) -> list[Reference]:
    """Find issue and PR references.

    ``Closes/Fixes/Resolves #N`` point at issues, ``Refs #N``, a trailing
    ``(#N)`` in the subject and GitHub merge subjects point at PRs.
    """
    refs: list[Reference] = []
    seen: set[tuple[str, str]] = set()

    def add(ref_type: str, ref_id: str) -> None:
        if (ref_type, ref_id) not in seen:
            seen.add((ref_type, ref_id))
            refs.append(Reference(type=ref_type, id=ref_id))

    for pattern in (SUBJECT_PR_RE, MERGE_PR_RE):
        match = pattern.search(subject)
        if match:
            add("pr", match["id"])
    for match in ISSUE_REF_RE.finditer(body or ""):
        is_pr = match["verb"].lower().startswith("ref")
        add("pr" if is_pr else "issue", match["id"])
    return refs


def extract_co_authors(body: str | None) -> list[Author]:
    """Authors named in ``Co-authored-by:`` trailers, in order of appearance."""
    return [
        Author(name=m["name"].strip(), email=m["email"].strip())
        for m in CO_AUTHOR_RE.finditer(body or "")
    ]


def packages_for_files(
    files: Iterable[str], package_paths: Mapping[str, str] | None = None
) -> list[str]:
    """Attribute changed paths to workspace packages.

    With ``package_paths`` (name → directory) the longest matching directory
    wins. Without it, the ``packages/<name>/`` layout convention is used.
    """
    found: set[str] = set()
    prefixes = sorted(
        ((p.strip("/") + "/", name) for name, p in (package_paths or {}).items()),
        key=lambda item: len(item[0]),
        reverse=True,
    )
    for file in files:
        if package_paths is None:
            match = PACKAGES_DIR_RE.match(file)
            if match:
                found.add(match["name"])
            continue
        for prefix, name in prefixes:
            if file.startswith(prefix):
                found.add(name)
                break
    return sorted(found)


def classify_commit(
    raw: RawCommit,
    options: ClassifyOptions | None = None,
    package_paths: Mapping[str, str] | None = None,
) -> Change:
    """Classify a single raw commit."""
    options = options or ClassifyOptions()
    parsed = parse_message(raw.message)
    body = parsed.body

    subject = _redact(parsed.subject, options.redact_patterns)
    body = _redact(body, options.redact_patterns) if body else None
    limit = options.max_body_length
    if body and limit is not None and len(body) > limit:
        body = body[:limit].rstrip() + "…"

    packages = packages_for_files(raw.files, package_paths)
    if not packages and parsed.scope and parsed.scope in options.scope_map:
        packages = [options.scope_map[parsed.scope]]

    revert_match = REVERT_OF_RE.search(parsed.body or "")
    cherry_match = CHERRY_PICK_RE.search(parsed.body or "")
    is_merge = len(raw.parents) > 1 or bool(MERGE_SUBJECT_RE.match(parsed.subject))

    return Change(
        sha=raw.sha,
        type=parsed.type,
        scope=parsed.scope,
        subject=subject,
        body=body,
        breaking=parsed.breaking,
        refs=extract_references(parsed.subject, parsed.body),
        author=raw.author,
        co_authors=extract_co_authors(parsed.body),
        packages=packages,
        files_changed=sorted(set(raw.files)),
        timestamp=raw.timestamp,
        is_merge=is_merge,
        is_revert=parsed.type is CommitType.REVERT or revert_match is not None,
        revert_of=revert_match["sha"] if revert_match else None,
        cherry_pick_of=cherry_match["sha"] if cherry_match else None,
        parents=list(raw.parents),
    )


def options_fingerprint(
    options: ClassifyOptions, package_paths: Mapping[str, str] | None = None
) -> str:
    """Hash of every input that shapes a single commit's Change record.

    Cached records were produced under one fingerprint; a different one
    means they may carry stale redaction, truncation or package attribution.
    """
    payload = {
        "redactPatterns": options.redact_patterns,
        "maxBodyLength": options.max_body_length,
        "scopeMap": options.scope_map,
        "packagePaths": None if package_paths is None else dict(package_paths),
    }
    canonical = json.dumps(payload, sort_keys=True, separators=(",", ":"))
    return hashlib.sha256(canonical.encode()).hexdigest()


def classify(
    raw_commits: Iterable[RawCommit | Mapping[str, Any]],
    options: ClassifyOptions | None = None,
    *,
    package_paths: Mapping[str, str] | None = None,
    cached: Mapping[str, Change] | None = None,
) -> list[Change]:
    """Classify a batch of commits, oldest first.

    Args:
        raw_commits: RawCommit records or plain mappings of the same shape.
        options: Filtering and folding options.
        package_paths: Package name → directory, for file attribution.
        cached: Previously classified commits by sha; reused as-is.

    Returns:
        Changes in input order, after author filtering, merge folding,
        revert cancellation and type filtering.
    """
    options = options or ClassifyOptions()
    per_commit = classify_each(
        raw_commits, options, package_paths=package_paths, cached=cached
    )
    return refine(per_commit, options)


def classify_each(
    raw_commits: Iterable[RawCommit | Mapping[str, Any]],
    options: ClassifyOptions | None = None,
    *,
    package_paths: Mapping[str, str] | None = None,
    cached: Mapping[str, Change] | None = None,
) -> list[Change]:
    """Classify every commit on its own, with no folding or filtering.

    These per-commit records are what the cache stores. A commit that cannot
    be parsed is recorded as a chore; one without a sha is skipped.
    """
    options = options or ClassifyOptions()
    changes: list[Change] = []

    for index, item in enumerate(raw_commits):
        sha = _sha_of(item)
        if cached is not None and sha in cached:
            changes.append(cached[sha])
            continue
        try:
            raw = (
                item if isinstance(item, RawCommit) else RawCommit.model_validate(item)
            )
            changes.append(classify_commit(raw, options, package_paths))
        except (ValidationError, ValueError, TypeError, AttributeError) as e:
            degraded = _degraded_change(item, sha, package_paths)
            if degraded is None:
                warn(f"Skipping commit #{index}: no usable sha ({e})")
                continue
            warn(f"Commit {sha[:7]} could not be classified, recorded as chore: {e}")
            changes.append(degraded)
    return changes


def refine(
    changes: list[Change], options: ClassifyOptions | None = None
) -> list[Change]:
    """Apply the batch rules to per-commit changes.

    Order: ignored authors, merge folding, revert cancellation, type filters.
    """
    options = options or ClassifyOptions()
    changes = drop_ignored_authors(changes, options.ignore_authors)
    if options.collapse_merges:
        changes = collapse_merges(
            changes, prefer_merge_summary=options.prefer_merge_summary
        )
    if options.collapse_reverts:
        changes = collapse_reverts(changes)
    return filter_types(changes, options.include_types, options.exclude_types)


def drop_ignored_authors(changes: list[Change], patterns: list[str]) -> list[Change]:
    """Remove changes whose author name or email matches a glob pattern.

    Only ``*`` and ``?`` are wildcards, so ``*[bot]`` matches
    ``dependabot[bot]`` literally. Matching is case-insensitive.
    """
    if not patterns:
        return changes
    regexes = [_glob_regex(p) for p in patterns]
    return [
        c
        for c in changes
        if not any(r.match(c.author.name) or r.match(c.author.email) for r in regexes)
    ]


def collapse_merges(
    changes: list[Change], *, prefer_merge_summary: bool = True
) -> list[Change]:
    """Fold each merge commit's constituent commits into the merge entry.

    Constituents are the in-batch commits reachable from the merge's
    non-first parents but not from its first parent. Nested merges fold
    inside-out since the input is oldest first.
    """
    by_sha = {c.sha: c for c in changes}
    folded: dict[str, Change] = {}
    absorbed: set[str] = set()

    for change in changes:
        if not change.is_merge or len(change.parents) < 2:
            continue
        mainline = _reachable(change.parents[:1], by_sha)
        branch = _reachable(change.parents[1:], by_sha) - mainline
        constituents = [
            folded.get(c.sha, c)
            for c in changes
            if c.sha in branch and c.sha not in absorbed
        ]
        absorbed.update(c.sha for c in constituents)
        folded[change.sha] = _fold_merge(change, constituents, prefer_merge_summary)

    return [folded.get(c.sha, c) for c in changes if c.sha not in absorbed]


def collapse_reverts(changes: list[Change]) -> list[Change]:
    """Drop each revert together with the commit it reverts.

    Reverts are paired newest first, so revert-of-a-revert chains leave the
    original change in place. A revert whose target is not in the batch is
    kept.
    """
    dropped: set[int] = set()
    for i in range(len(changes) - 1, -1, -1):
        change = changes[i]
        if i in dropped or not change.revert_of:
            continue
        candidates = (
            j
            for j, other in enumerate(changes)
            if j != i and j not in dropped and _sha_matches(other.sha, change.revert_of)
        )
        target = next(candidates, None)
        if target is not None:
            dropped.update((i, target))
    return [c for i, c in enumerate(changes) if i not in dropped]


def filter_types(
    changes: list[Change],
    include_types: list[str] | None = None,
    exclude_types: list[str] | None = None,
) -> list[Change]:
    """Keep changes allowed by the include list and not in the exclude list."""
    return [
        c
        for c in changes
        if (include_types is None or c.type.value in include_types)
        and not (exclude_types and c.type.value in exclude_types)
    ]


def _fold_merge(
    merge: Change, constituents: list[Change], prefer_merge_summary: bool
) -> Change:
    if not constituents:
        return merge

    header: ParsedMessage | None = None
    if prefer_merge_summary:
        lines = (line.strip() for line in (merge.body or "").splitlines())
        summary = next((line for line in lines if line), "")
        for candidate in (summary, merge.subject):
            parsed = parse_message(candidate)
            if parsed.conventional:
                header = parsed
                break

    breaking: list[BreakingChange] = []
    if header is not None:
        commit_type, scope, subject = header.type, header.scope, header.subject
        breaking.extend(header.breaking)
    else:
        lead = min(
            constituents,
            key=lambda c: (
                not c.is_breaking,
                _TYPE_RANK.get(c.type, len(_TYPE_RANK)),
            ),
        )
        commit_type, scope, subject = lead.type, lead.scope, lead.subject

    for c in constituents:
        breaking.extend(b for b in c.breaking if b not in breaking)

    refs = list(merge.refs)
    co_authors = list(merge.co_authors)
    for c in constituents:
        refs.extend(r for r in c.refs if r not in refs)
        for author in (c.author, *c.co_authors):
            if author != merge.author and author not in co_authors:
                co_authors.append(author)

    return merge.model_copy(
        update={
            "type": commit_type,
            "scope": scope,
            "subject": subject,
            "breaking": breaking,
            "refs": refs,
            "co_authors": co_authors,
            "packages": sorted(
                set(merge.packages).union(*(c.packages for c in constituents))
            ),
            "files_changed": sorted(
                set(merge.files_changed).union(
                    *(c.files_changed for c in constituents)
                )
            ),
            "is_revert": commit_type is CommitType.REVERT,
        }
    )


def _reachable(starts: list[str], by_sha: Mapping[str, Change]) -> set[str]:
    """In-batch shas reachable from ``starts`` through parent links."""
    seen: set[str] = set()
    queue = [s for s in starts if s in by_sha]
    while queue:
        sha = queue.pop()
        if sha in seen:
            continue
        seen.add(sha)
        queue.extend(
            p for p in by_sha[sha].parents if p in by_sha and p not in seen
        )
    return seen


def _sha_matches(sha: str, ref: str) -> bool:
    if len(ref) < 7 or len(sha) < 7:
        return sha == ref
    return sha.startswith(ref) or ref.startswith(sha)


def _sha_of(item: Any) -> str | None:
    sha = item.sha if isinstance(item, RawCommit) else None
    if sha is None and isinstance(item, Mapping):
        sha = item.get("sha")
    return sha if isinstance(sha, str) and sha else None


def _degraded_change(
    item: Any, sha: str | None, package_paths: Mapping[str, str] | None = None
) -> Change | None:
    """Best-effort chore entry for a commit that failed classification."""
    if sha is None:
        return None
    fields = item if isinstance(item, Mapping) else {}
    message = fields.get("message")
    subject = ""
    if isinstance(message, str) and message.strip():
        subject = message.strip().splitlines()[0]
    author = fields.get("author")
    if isinstance(author, Mapping):
        author_name = str(author.get("name") or "unknown")
    elif isinstance(author, str) and author.strip():
        author_name = author.strip()
    else:
        author_name = "unknown"
    files = fields.get("files")
    if isinstance(files, list):
        files = sorted(f for f in files if isinstance(f, str))
    else:
        files = []
    return Change(
        sha=sha,
        type=CommitType.CHORE,
        subject=subject or "(unparseable commit)",
        author=Author(name=author_name),
        packages=packages_for_files(files, package_paths),
        files_changed=files,
        timestamp=str(fields.get("timestamp") or ""),
    )


def _redact(text: str, patterns: list[str]) -> str:
    for pattern in patterns:
        text = re.sub(pattern, REDACTED, text)
    return text


def _glob_regex(pattern: str) -> re.Pattern[str]:
    escaped = re.escape(pattern).replace(r"\*", ".*").replace(r"\?", ".")
    return re.compile(f"^{escaped}$", re.IGNORECASE)
