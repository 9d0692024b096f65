"""Git hosting provider detection and link formatting.

GitHub and GitLab (including self-hosted GitLab) get links; any other host is
"generic" and produces none.
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, ConfigDict

from .models import Change, ProviderLinks
from .shell import git

REMOTE_URL_RE = re.compile(
    r"^(?:https?://(?:[^@/]+@)?(?P<host>[^/]+)|(?:ssh://)?git@(?P<ssh_host>[^:/]+)[:/])"
    r"(?:.*?/)?(?P<owner>[^/]+)/(?P<repo>[^/]+?)(?:\.git)?/?$"
)

ProviderType = Literal["github", "gitlab", "generic"]


class GitProvider(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: ProviderType = "generic"
    base_url: str | None = None


def infer_provider_type(url: str) -> ProviderType:
    """Guess the provider from a URL's host; unknown hosts are generic."""
    if "github.com" in url or "githubusercontent.com" in url:
        return "github"
    if "gitlab" in url:
        return "gitlab"
    return "generic"


def parse_remote_url(url: str) -> tuple[str, str, str] | None:
    """Split a remote URL into (host, owner, repo).

    Accepts https://host/owner/repo(.git) and git@host:owner/repo(.git).
    """
    match = REMOTE_URL_RE.match(url.strip())
    if not match:
        return None
    return match["host"] or match["ssh_host"], match["owner"], match["repo"]


def detect_provider(
    base_url: str | None = None, cwd: Path | None = None
) -> GitProvider:
    """Work out the hosting provider.

    An explicit ``base_url`` wins. Otherwise the ``origin`` remote of the
    repository at ``cwd`` is used; no remote (or no git) means generic.
    """
    if base_url:
        parsed = parse_remote_url(base_url)
        if parsed and not base_url.startswith("http"):
            host, owner, repo = parsed
            base_url = f"https://{host}/{owner}/{repo}"
        base_url = base_url.rstrip("/").removesuffix(".git")
        return GitProvider(type=infer_provider_type(base_url), base_url=base_url)

    try:
        remote = git("remote", "get-url", "origin", cwd=cwd, check=False)
    except OSError:
        return GitProvider()
    parsed = parse_remote_url(remote) if remote else None
    if not parsed:
        return GitProvider()

    host, owner, repo = parsed
    url = f"https://{host}/{owner}/{repo}"
    return GitProvider(type=infer_provider_type(url), base_url=url)


def _link(provider: GitProvider, github_path: str, gitlab_path: str) -> str | None:
    if not provider.base_url:
        return None
    if provider.type == "github":
        return f"{provider.base_url}/{github_path}"
    if provider.type == "gitlab":
        return f"{provider.base_url}/-/{gitlab_path}"
    return None


def format_commit_link(provider: GitProvider, sha: str) -> str | None:
    """Commit URL, or None for providers without a link format."""
    return _link(provider, f"commit/{sha}", f"commit/{sha}")


def format_pr_link(provider: GitProvider, number: str) -> str | None:
    """Pull request URL (merge request on GitLab), or None."""
    return _link(provider, f"pull/{number}", f"merge_requests/{number}")


def format_issue_link(provider: GitProvider, number: str) -> str | None:
    """Issue URL, or None."""
    return _link(provider, f"issues/{number}", f"issues/{number}")


def enhance_change_with_links(change: Change, provider: GitProvider) -> Change:
    """Return a copy of ``change`` with provider links and reference URLs."""
    pr_links: list[str] = []
    issue_links: list[str] = []
    refs = []
    for ref in change.refs:
        url = None
        if ref.type == "pr":
            url = format_pr_link(provider, ref.id)
            if url:
                pr_links.append(url)
        elif ref.type == "issue":
            url = format_issue_link(provider, ref.id)
            if url:
                issue_links.append(url)
        refs.append(ref.model_copy(update={"url": url}) if url else ref)

    links = ProviderLinks(
        commit=format_commit_link(provider, change.sha), pr=pr_links, issues=issue_links
    )
    return change.model_copy(update={"refs": refs, "provider_links": links})

