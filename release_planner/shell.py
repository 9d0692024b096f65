"""Git and terminal output helpers.

Provides a thin subprocess wrapper for the few git queries the planner makes
(ancestry checks) plus the output helpers used to report pipeline phases and
recovered problems.
"""

from __future__ import annotations

import subprocess
import sys
from pathlib import Path


def git(*args: str, cwd: Path | None = None, check: bool = True) -> str:
    """Run a git command and return stdout.

    Args:
        *args: Arguments to pass to git (e.g., "rev-parse", "HEAD").
        cwd: Repository to run in. Defaults to the current directory.
        check: If True (default), raise on non-zero exit.

    Returns:
        Stripped stdout from the git command.
    """
    result = subprocess.run(
        ["git", *args], capture_output=True, text=True, check=check, cwd=cwd
    )
    return result.stdout.strip()


def git_succeeds(*args: str, cwd: Path | None = None) -> bool:
    """Run a git predicate command (e.g. merge-base --is-ancestor).

    Returns True on exit code 0, False otherwise, including when git itself
    is missing.
    """
    try:
        result = subprocess.run(["git", *args], capture_output=True, cwd=cwd)
    except OSError:
        return False
    return result.returncode == 0


def step(msg: str) -> None:
    """Print a visually distinct step header.

    Used to separate the stages of the planning pipeline in terminal output.
    """
    print(f"\n{'─' * 60}\n{msg}\n{'─' * 60}")


def warn(msg: str) -> None:
    """Report a recovered problem on stderr without stopping the run."""
    print(f"WARNING: {msg}", file=sys.stderr)
