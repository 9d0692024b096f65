"""Corporate changelog with LLM-written descriptions.

Same sections as the corporate template, but each group of changes is handed
to ``platform.llm.complete()`` for a user-facing rewrite. When no LLM is
available, the call fails or it returns nothing, the group falls back to the
plain corporate list. Rendering never fails because of the LLM.
"""

from __future__ import annotations

import inspect

from ...models import Change
from ...shell import warn
from ..labels import CORPORATE_SECTIONS, reason_label, section_title
from ..types import Locale, Platform, TemplateData
from .corporate import breaking_section, format_change

version = "1.0"
description = "Corporate format with AI-enhanced descriptions"

GROUP_NAMES = {
    "feat": "features",
    "perf": "performance",
    "fix": "fixes",
    "refactor": "refactoring",
    "docs": "documentation",
}

PROMPT = """You are writing a professional changelog for a software release.

Group type: {group}
Language: {language}

Commits in this group:
{commits}

Task: Write a clear, user-focused description for each commit as a markdown list.
- Explain why each change matters to users, not just what changed
- Use clear, non-technical language when possible
- Keep each item to 1-2 sentences
- Start with scope in **bold** if present

Write ONLY the markdown list, no explanations or meta-commentary."""


async def render(data: TemplateData, platform: Platform | None = None) -> str:
    pkg = data.package
    label = reason_label(pkg.reason.value, data.locale)
    lines = [
        f"## {pkg.name} {pkg.next}",
        "",
        f"**{pkg.prev} → {pkg.next}** ({label})",
        "",
    ]
    lines += breaking_section(data)

    for section in CORPORATE_SECTIONS:
        changes = data.changes.get(section)
        if not changes:
            continue
        lines += [f"### {section_title(section, data.locale)}", ""]
        group = GROUP_NAMES[section]
        lines.append(await enhance_group(platform, changes, group, data.locale))
        lines.append("")

    return "\n".join(lines).strip()


def build_prompt(changes: list[Change], group: str, locale: Locale) -> str:
    commits = "\n".join(f"- {c.scope or 'general'}: {c.subject}" for c in changes)
    language = "Russian" if locale == "ru" else "English"
    return PROMPT.format(group=group, language=language, commits=commits)


def format_basic_group(changes: list[Change]) -> str:
    return "\n".join(format_change(c) for c in changes)


async def enhance_group(
    platform: Platform | None, changes: list[Change], group: str, locale: Locale
) -> str:
    """Rewrite one group of changes through the platform LLM.

    Falls back to the plain corporate bullet list when no LLM is available.
    A failed or empty completion also falls back, with a warning.
    """
    llm = getattr(platform, "llm", None)
    if llm is None:
        return format_basic_group(changes)

    try:
        result = llm.complete(build_prompt(changes, group, locale))
        if inspect.isawaitable(result):
            result = await result
    except Exception as e:
        warn(f"LLM enhancement failed for {group}, using basic format: {e}")
        return format_basic_group(changes)

    text = (result or "").strip() if isinstance(result, str) else ""
    if not text:
        warn(f"LLM returned no content for {group}, using basic format")
        return format_basic_group(changes)
    return text
