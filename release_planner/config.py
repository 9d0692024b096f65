"""Configuration for release-planner.

Settings live in the [tool.release-planner] table of the workspace root
pyproject.toml:

    [tool.release-planner]
    bump_strategy = "ripple"
    exclude_types = ["chore"]
    ignore_authors = ["*[bot]"]
    experimental_packages = ["pkg-labs"]

    [tool.release-planner.stability_guards.experimental]
    allow_major = false

Everything has a default, so a missing file or table is a valid config.
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, Field, ValidationError, field_validator

from .errors import ConfigError
from .models import BumpStrategy
from .toml import get_tool_table, load_pyproject

TOOL_TABLE = "release-planner"


class ClassifyOptions(BaseModel):
    """Options controlling how raw commits become Change records."""

    ignore_authors: list[str] = Field(default_factory=list)
    include_types: list[str] | None = None
    exclude_types: list[str] | None = None
    collapse_merges: bool = True
    collapse_reverts: bool = True
    prefer_merge_summary: bool = True
    scope_map: dict[str, str] = Field(default_factory=dict)
    redact_patterns: list[str] = Field(default_factory=list)
    max_body_length: int | None = None

    @field_validator("redact_patterns")
    @classmethod
    def _patterns_compile(cls, patterns: list[str]) -> list[str]:
        for pattern in patterns:
            try:
                re.compile(pattern)
            except re.error as e:
                raise ValueError(f"invalid pattern {pattern!r}: {e}") from e
        return patterns


class ExperimentalGuard(BaseModel):
    allow_major: bool = True


class StabilityGuards(BaseModel):
    experimental: ExperimentalGuard = Field(default_factory=ExperimentalGuard)


class ReleasePlannerConfig(ClassifyOptions):
    """Root configuration model.

    Attributes:
        bump_strategy: How bumps propagate across the dependency graph.
        template: Built-in template name or path to a template file.
        locale: Language for changelog section titles.
        metadata: Free-form data handed to templates.
        cache: Whether classified commits are cached between runs.
        cache_dir: Cache directory, relative to the workspace root.
        output_dir: Where the manifest and changelog are written.
        experimental_packages: Packages subject to the experimental guard.
        prerelease: Pre-release identifier for next versions (e.g. "rc").
        base_url: Repository web URL used to build commit/PR/issue links.
    """

    bump_strategy: BumpStrategy = BumpStrategy.INDEPENDENT
    template: str = "corporate"
    locale: Literal["en", "ru"] = "en"
    metadata: dict[str, Any] = Field(default_factory=dict)
    cache: bool = True
    cache_dir: Path = Path(".release-cache")
    output_dir: Path = Path(".release")
    experimental_packages: list[str] = Field(default_factory=list)
    stability_guards: StabilityGuards = Field(default_factory=StabilityGuards)
    prerelease: str | None = None
    base_url: str | None = None

    def classify_options(self) -> ClassifyOptions:
        """Project the classifier-relevant subset of the config."""
        return ClassifyOptions.model_validate(
            self.model_dump(include=set(ClassifyOptions.model_fields))
        )


def load_config(root: Path | None = None) -> ReleasePlannerConfig:
    """Load configuration from <root>/pyproject.toml.

    Args:
        root: Workspace root directory. Defaults to the current directory.

    Returns:
        The validated configuration, or defaults when the file or the
        [tool.release-planner] table is missing.

    Raises:
        ConfigError: If the table exists but does not validate.
    """
    root = root or Path.cwd()
    pyproject = root / "pyproject.toml"
    if not pyproject.is_file():
        return ReleasePlannerConfig()

    table = get_tool_table(load_pyproject(pyproject), TOOL_TABLE)
    try:
        return ReleasePlannerConfig.model_validate(table)
    except ValidationError as e:
        errors = [
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}"
            for err in e.errors()
        ]
        raise ConfigError(str(pyproject), errors) from e
