"""Compact changelog template: one line per feature, fix or perf change."""

from __future__ import annotations

from ..types import Platform, TemplateData

version = "1.0"
description = "Minimal one-line format for quick release notes"

_TYPES = ("feat", "fix", "perf")


def render(data: TemplateData, platform: Platform | None = None) -> str:
    lines = [f"## {data.package.name} {data.package.next}", ""]

    if data.breaking:
        lines.append("**BREAKING:**")
        lines += [f"- {br.summary}" for br in data.breaking]
        lines.append("")

    for commit_type in _TYPES:
        for change in data.changes.get(commit_type, []):
            prefix = f"{change.scope}: " if change.scope else ""
            lines.append(f"- {commit_type}: {prefix}{change.subject}")

    return "\n".join(lines).strip()
