"""Corporate changelog template.

Professional layout for release notes: emoji section headers, breaking
changes first, then features, performance, fixes, refactoring and docs.
"""

from __future__ import annotations

from ...models import Change
from ..labels import CORPORATE_SECTIONS, reason_label, section_title
from ..types import Platform, TemplateData

version = "1.0"
description = "Professional changelog with emoji and grouped sections"


def render(data: TemplateData, platform: Platform | None = None) -> str:
    pkg = data.package
    label = reason_label(pkg.reason.value, data.locale)
    lines = [
        f"## {pkg.name} {pkg.next}",
        "",
        f"**{pkg.prev} → {pkg.next}** ({label})",
        "",
    ]
    if pkg.ripple_from:
        lines += [f"_Depends on: {', '.join(pkg.ripple_from)}_", ""]

    lines += breaking_section(data)

    for section in CORPORATE_SECTIONS:
        changes = data.changes.get(section)
        if not changes:
            continue
        lines += [f"### {section_title(section, data.locale)}", ""]
        lines += [format_change(c) for c in changes]
        lines.append("")

    return "\n".join(lines).strip()


def breaking_section(data: TemplateData) -> list[str]:
    if not data.breaking:
        return []
    lines = [f"### {section_title('breaking', data.locale)}", ""]
    for br in data.breaking:
        lines.append(f"- **{br.summary}**")
        if br.notes:
            lines.append(f"  {br.notes}")
    lines.append("")
    return lines


def format_change(change: Change) -> str:
    scope = f"**{change.scope}**" if change.scope else "general"
    return f"- {scope}: {change.subject}"
