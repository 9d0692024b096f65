"""Persistent cache of classified commits.

Layout of a cache directory:

    cache.json    serialized ChangeCache (commits, last tags, meta)
    graph.json    {hash, timestamp} snapshot of the workspace graph
    .cache.lock   advisory lock, {pid, timestamp}

The cache is an optimization, never a source of truth: corrupted files read
as "no cache" and failed writes only print a warning. Writers must hold the
lock for any read-modify-write sequence. The lock never expires on its own;
a lock left by a crashed process has to be removed by hand.
"""

from __future__ import annotations

import json
import os
from collections.abc import Callable, Iterable, Iterator
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path

from pydantic import ValidationError

from .ancestry import Ancestry
from .errors import LockContentionError
from .models import Change, ChangeCache, LastTag
from .shell import warn

CACHE_FILE = "cache.json"
GRAPH_FILE = "graph.json"
LOCK_FILE = ".cache.lock"


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def load_cache(cache_dir: Path) -> ChangeCache | None:
    """Load the cache from disk.

    Returns:
        The cache, or None when the file is missing, unreadable, not JSON or
        does not match the schema. Any of those means "rebuild".
    """
    cache_path = cache_dir / CACHE_FILE
    if not cache_path.is_file():
        return None
    try:
        return ChangeCache.model_validate_json(cache_path.read_text())
    except (OSError, UnicodeDecodeError, ValidationError) as e:
        warn(f"Ignoring unreadable cache {cache_path}: {e}")
        return None


def save_cache(cache_dir: Path, cache: ChangeCache) -> None:
    """Write the cache to disk. Failures are reported and swallowed."""
    try:
        cache_dir.mkdir(parents=True, exist_ok=True)
        (cache_dir / CACHE_FILE).write_text(
            cache.model_dump_json(by_alias=True, indent=2, exclude_none=True)
        )
    except OSError as e:
        warn(f"Failed to save cache: {e}")


def update_cache(
    cache: ChangeCache | None, changes: Iterable[Change]
) -> ChangeCache:
    """Return a cache containing ``changes`` merged over ``cache``.

    The input cache is left untouched.
    """
    updated = cache.model_copy(deep=True) if cache is not None else ChangeCache()
    for change in changes:
        updated.commits[change.sha] = change
    return updated


def get_cached_change(cache: ChangeCache | None, sha: str) -> Change | None:
    """Look up a classified commit by full sha. A missing cache has none."""
    if cache is None:
        return None
    return cache.commits.get(sha)


def get_last_tag(cache: ChangeCache | None, package: str) -> LastTag | None:
    """Last release tag recorded for ``package``, if any."""
    if cache is None:
        return None
    return cache.last_tags.get(package)


def set_last_tag(
    cache: ChangeCache, package: str, tag: str, sha: str
) -> ChangeCache:
    """Return a copy of ``cache`` with ``package`` last released at ``tag``.

    Args:
        cache: Cache to copy. It is not modified.
        package: Package name.
        tag: Release tag name.
        sha: Commit the tag points at.
    """
    updated = cache.model_copy(deep=True)
    updated.last_tags[package] = LastTag(tag=tag, sha=sha)
    return updated


def update_head(cache_dir: Path, head: str) -> None:
    """Record the HEAD the on-disk cache was validated against."""
    cache = load_cache(cache_dir)
    if cache is not None:
        cache.meta.head = head
        save_cache(cache_dir, cache)


def update_last_tag(cache_dir: Path, package: str, tag: str, sha: str) -> None:
    """Record a package's last release tag, creating the cache if needed."""
    cache = load_cache(cache_dir) or ChangeCache()
    save_cache(cache_dir, set_last_tag(cache, package, tag, sha))


def save_graph_snapshot(cache_dir: Path, graph_hash: str) -> None:
    """Write graph.json and stamp the same hash into the cache meta."""
    try:
        cache_dir.mkdir(parents=True, exist_ok=True)
        (cache_dir / GRAPH_FILE).write_text(
            json.dumps({"hash": graph_hash, "timestamp": _now()}, indent=2)
        )
    except OSError as e:
        warn(f"Failed to save graph snapshot: {e}")
        return

    cache = load_cache(cache_dir)
    if cache is not None:
        cache.meta.graph_hash = graph_hash
        save_cache(cache_dir, cache)


def is_cache_valid(
    cache_dir: Path,
    from_ref: str,
    to_ref: str,
    current_graph_hash: str | None = None,
    current_head: str | None = None,
    ancestry: Ancestry | None = None,
    current_options_hash: str | None = None,
) -> bool:
    """Check whether the cached classification can serve ``from_ref..to_ref``.

    The cache is rejected when:
    - there is no readable cache;
    - ``current_graph_hash`` is given and differs from the stored hash;
    - ``current_options_hash`` is given and differs from the stored hash;
    - ``current_head`` is given and the stored HEAD is empty, is not an
      ancestor of the new HEAD (history was rewritten), or the new HEAD does
      not contain ``to_ref``.

    Without an ``ancestry`` oracle only an identical HEAD is accepted.
    """
    cache = load_cache(cache_dir)
    if cache is None:
        return False

    if current_graph_hash is not None and cache.meta.graph_hash != current_graph_hash:
        return False
    if (
        current_options_hash is not None
        and cache.meta.options_hash != current_options_hash
    ):
        return False

    if current_head is not None:
        cached_head = cache.meta.head
        if not cached_head:
            return False
        if ancestry is None:
            return cached_head == current_head
        if not ancestry.is_ancestor(cached_head, current_head):
            return False
        if not ancestry.is_ancestor(to_ref, current_head):
            return False

    return True


def acquire_lock(cache_dir: Path) -> Callable[[], None]:
    """Take the exclusive cache lock.

    Returns:
        A release function. Calling it more than once is harmless and it
        never raises.

    Raises:
        LockContentionError: If the lock file already exists. There is no
            waiting or retrying; callers that want to retry do so themselves.
    """
    cache_dir.mkdir(parents=True, exist_ok=True)
    lock_path = cache_dir / LOCK_FILE
    try:
        fd = os.open(lock_path, os.O_CREAT | os.O_EXCL | os.O_WRONLY)
    except FileExistsError as e:
        raise LockContentionError(str(lock_path), _read_holder(lock_path)) from e

    with os.fdopen(fd, "w") as fh:
        json.dump({"pid": os.getpid(), "timestamp": _now()}, fh)

    released = False

    def release() -> None:
        nonlocal released
        if released:
            return
        released = True
        try:
            lock_path.unlink(missing_ok=True)
        except OSError as e:
            warn(f"Failed to remove cache lock {lock_path}: {e}")

    return release


@contextmanager
def cache_lock(cache_dir: Path) -> Iterator[None]:
    """Hold the cache lock for the duration of a ``with`` block."""
    release = acquire_lock(cache_dir)
    try:
        yield
    finally:
        release()


def _read_holder(lock_path: Path) -> str:
    try:
        data = json.loads(lock_path.read_text())
        return f"pid {data['pid']} since {data['timestamp']}"
    except (OSError, ValueError, KeyError, TypeError):
        return ""
