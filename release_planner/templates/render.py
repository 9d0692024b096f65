"""Rendering entry points.

Templates may render synchronously or return an awaitable; both are awaited
uniformly here.
"""

from __future__ import annotations

import inspect
from pathlib import Path
from typing import Any

from ..models import ReleaseManifest
from .loader import load_template
from .types import (
    Locale,
    Platform,
    Template,
    TemplateData,
    package_to_template_data,
)


async def _render_with(
    template: Template, data: TemplateData, platform: Platform | None
) -> str:
    result = template.render(data, platform)
    if inspect.isawaitable(result):
        result = await result
    return result


async def render(
    template_id: str,
    data: TemplateData,
    platform: Platform | None = None,
    cwd: Path | None = None,
) -> str:
    """Render one package with the named template.

    Raises:
        TemplateContractError: If the template fails validation.
    """
    return await _render_with(load_template(template_id, cwd), data, platform)


async def render_manifest(
    manifest: ReleaseManifest,
    template_id: str,
    *,
    locale: Locale = "en",
    metadata: dict[str, Any] | None = None,
    platform: Platform | None = None,
    cwd: Path | None = None,
) -> str:
    """Render every package of the manifest, separated by a blank line."""
    template = load_template(template_id, cwd)
    sections = []
    for release in manifest.packages:
        data = package_to_template_data(release, locale, metadata)
        sections.append(await _render_with(template, data, platform))
    return "\n\n".join(sections)
