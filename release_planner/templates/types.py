"""Data handed to changelog templates, and the template contract.

A template is a module (or any object) with:

    version = "1.0"

    def render(data: TemplateData, platform: Platform | None = None) -> str: ...

``render`` may also be ``async``; callers always go through
``release_planner.templates.render`` which awaits when needed.
"""

from __future__ import annotations

from collections.abc import Awaitable, Iterable
from typing import Any, Literal, Protocol

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from ..models import BreakingChange, BumpReason, Change, PackageRelease, VersionBump

TEMPLATE_VERSION = "1.0"

Locale = Literal["en", "ru"]

_FROZEN = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


class TemplatePackage(BaseModel):
    """The release decision fields a template may show."""

    model_config = _FROZEN

    name: str
    prev: str
    next: str
    bump: VersionBump
    reason: BumpReason
    ripple_from: list[str] | None = None


class TemplateData(BaseModel):
    """Everything a template needs to render one package.

    ``changes`` maps commit type to the package's changes of that type, in
    commit order. Types without changes are absent rather than empty.
    """

    model_config = _FROZEN

    package: TemplatePackage
    breaking: list[BreakingChange] = Field(default_factory=list)
    changes: dict[str, list[Change]] = Field(default_factory=dict)
    locale: Locale = "en"
    metadata: dict[str, Any] | None = None


class LLM(Protocol):
    def complete(self, prompt: str) -> Awaitable[str] | str: ...


class Platform(Protocol):
    """Optional services a template may use. ``llm`` may be None."""

    llm: LLM | None


class Template(Protocol):
    version: str

    def render(
        self, data: TemplateData, platform: Platform | None = None
    ) -> Awaitable[str] | str: ...


def group_changes_by_type(changes: Iterable[Change]) -> dict[str, list[Change]]:
    """Bucket changes by commit type.

    Buckets appear in order of first occurrence and keep commit order;
    types with no changes get no bucket.
    """
    grouped: dict[str, list[Change]] = {}
    for change in changes:
        grouped.setdefault(change.type.value, []).append(change)
    return grouped


def package_to_template_data(
    release: PackageRelease,
    locale: Locale = "en",
    metadata: dict[str, Any] | None = None,
) -> TemplateData:
    """Project a PackageRelease into the data passed to a template.

    Args:
        release: Release decision for one package.
        locale: Language for localized labels.
        metadata: Free-form values passed through to the template.

    Returns:
        Frozen TemplateData with changes grouped by type.
    """
    return TemplateData(
        package=TemplatePackage(
            name=release.name,
            prev=release.prev,
            next=release.next,
            bump=release.bump,
            reason=release.reason,
            ripple_from=release.ripple_from,
        ),
        breaking=list(release.breaking),
        changes=group_changes_by_type(release.changes),
        locale=locale,
        metadata=metadata,
    )
