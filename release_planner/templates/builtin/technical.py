"""Technical changelog template.

Developer-facing notes: every commit type, short shas linked to the
provider when links are known, authors and changed-file counts.
"""

from __future__ import annotations

from ...models import Change
from ..labels import ALL_SECTIONS, section_title
from ..types import Platform, TemplateData

version = "1.0"
description = "Developer-focused with commit SHAs, authors, and all commit types"


def render(data: TemplateData, platform: Platform | None = None) -> str:
    pkg = data.package
    lines = [
        f"## {pkg.name} {pkg.next}",
        "",
        f"`{pkg.prev}` → `{pkg.next}` ({pkg.bump.value})",
        "",
    ]

    if data.breaking:
        lines += [f"### {section_title('breaking', data.locale)}", ""]
        for br in data.breaking:
            lines.append(f"- {br.summary}")
            if br.notes:
                lines += ["", "  ```", f"  {br.notes}", "  ```", ""]
        lines.append("")

    for section in ALL_SECTIONS:
        changes = data.changes.get(section)
        if not changes:
            continue
        lines += [f"### {section_title(section, data.locale)}", ""]
        lines += [format_commit(c) for c in changes]
        lines.append("")

    return "\n".join(lines).strip()


def format_commit(change: Change) -> str:
    scope = f"**{change.scope}**: " if change.scope else ""
    link = "#"
    if change.provider_links and change.provider_links.commit:
        link = change.provider_links.commit
    sha = change.sha[:7]
    line = f"- {scope}{change.subject} ([{sha}]({link})) by "
    if change.files_changed:
        line += f" ({len(change.files_changed)} files)"
    return line
