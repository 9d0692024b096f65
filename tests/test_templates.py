"""Tests for release_planner.templates."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from pathlib import Path
from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import pytest

from release_planner.errors import TemplateContractError
from release_planner.models import (
    Author,
    BreakingChange,
    BumpReason,
    Change,
    CommitType,
    GitRange,
    PackageRelease,
    ProviderLinks,
    ReleaseManifest,
    VersionBump,
)
from release_planner.templates.loader import (
    BUILTIN_TEMPLATES,
    list_builtin_templates,
    load_template,
)
from release_planner.templates.render import render, render_manifest
from release_planner.templates.types import (
    TemplateData,
    group_changes_by_type,
    package_to_template_data,
)

ChangeFactory = Callable[..., Change]

CUSTOM_TEMPLATE = """\
version = "1.0"

def render(data, platform=None):
    return "custom " + data.package.name
"""


@pytest.fixture
def release(change: ChangeFactory) -> PackageRelease:
    """A breaking api release with feat, fix and chore changes."""
    links = ProviderLinks(commit="https://github.com/acme/mono/commit/ccc")
    return PackageRelease(
        name="api",
        prev="2.1.0",
        next="3.0.0",
        bump=VersionBump.MAJOR,
        reason=BumpReason.BREAKING,
        breaking=[
            BreakingChange(summary="drop v1 routes", notes="Use /v2 instead.")
        ],
        changes=[
            change("a" * 40, CommitType.FEAT, scope="search", subject="add search"),
            change(
                "b" * 40,
                CommitType.FIX,
                subject="fix crash",
                files_changed=["x.py", "y.py"],
            ),
            change(
                "c" * 40, CommitType.FEAT, subject="add export", provider_links=links
            ),
            change("d" * 40, CommitType.CHORE, subject="tidy"),
        ],
    )


@pytest.fixture
def data(release: PackageRelease) -> TemplateData:
    """English template data with one metadata entry."""
    return package_to_template_data(release, "en", {"team": "platform"})


def _llm_platform(llm: object) -> SimpleNamespace:
    return SimpleNamespace(llm=llm)


class TestTemplateData:
    """Tests for group_changes_by_type() and package_to_template_data()."""

    def test_grouping_preserves_order(self, release: PackageRelease) -> None:
        """Groups follow first appearance and keep change order."""
        grouped = group_changes_by_type(release.changes)
        assert list(grouped) == ["feat", "fix", "chore"]
        assert [c.subject for c in grouped["feat"]] == ["add search", "add export"]
        assert "perf" not in grouped

    def test_package_fields(self, data: TemplateData) -> None:
        """Package, locale and metadata are carried through."""
        assert data.package.name == "api"
        assert data.package.reason is BumpReason.BREAKING
        assert data.metadata == {"team": "platform"}
        assert data.locale == "en"


class TestLoader:
    """Tests for load_template() and list_builtin_templates()."""

    @pytest.mark.parametrize("name", BUILTIN_TEMPLATES)
    def test_builtins_load(self, name: str) -> None:
        """Every built-in template satisfies the contract."""
        template = load_template(name)
        assert template.version == "1.0"
        assert callable(template.render)

    def test_list_builtins(self) -> None:
        """Built-ins are listed in order with descriptions."""
        listed = list_builtin_templates()
        assert [t["name"] for t in listed] == list(BUILTIN_TEMPLATES)
        assert all(t["description"] for t in listed)

    def test_custom_file(self, tmp_path: Path, data: TemplateData) -> None:
        """A template file path is loaded relative to cwd."""
        (tmp_path / "mine.py").write_text(CUSTOM_TEMPLATE)
        assert asyncio.run(render("mine.py", data, cwd=tmp_path)) == "custom api"

    def test_wrong_version(self, tmp_path: Path) -> None:
        """A template with another contract version is rejected."""
        (tmp_path / "old.py").write_text(
            CUSTOM_TEMPLATE.replace('version = "1.0"', 'version = "0.9"')
        )
        with pytest.raises(TemplateContractError, match="invalid version") as exc_info:
            load_template("old.py", tmp_path)
        assert exc_info.value.template_id == "old.py"

    def test_missing_render(self, tmp_path: Path) -> None:
        """render must be callable."""
        (tmp_path / "norender.py").write_text(
            'version = "1.0"\nrender = "not callable"\n'
        )
        with pytest.raises(TemplateContractError, match="render"):
            load_template("norender.py", tmp_path)

    def test_missing_file(self, tmp_path: Path) -> None:
        """A missing template file is a contract error."""
        with pytest.raises(TemplateContractError, match="not found"):
            load_template("nope.py", tmp_path)

    def test_import_error(self, tmp_path: Path) -> None:
        """Errors raised while importing the template are wrapped."""
        (tmp_path / "broken.py").write_text("raise RuntimeError('bad template')\n")
        with pytest.raises(TemplateContractError, match="bad template"):
            load_template("broken.py", tmp_path)


class TestBuiltins:
    """Tests for the corporate, technical and compact templates."""

    def test_corporate(self, data: TemplateData) -> None:
        """Corporate shows breaking notes and user-facing groups only."""
        text = asyncio.run(render("corporate", data))
        assert text.startswith("## api 3.0.0")
        assert "**2.1.0 → 3.0.0** (major bump from breaking changes)" in text
        assert "### ⚠️ BREAKING CHANGES" in text
        assert "- **drop v1 routes**\n  Use /v2 instead." in text
        assert "- **search**: add search" in text
        assert "- general: add export" in text
        assert "### 🐛 Bug Fixes" in text
        assert "tidy" not in text
        assert text.index("New Features") < text.index("Bug Fixes")

    def test_corporate_russian(self, release: PackageRelease) -> None:
        """Headings follow the locale."""
        data = package_to_template_data(release, "ru")
        text = asyncio.run(render("corporate", data))
        assert "КРИТИЧЕСКИЕ ИЗМЕНЕНИЯ" in text
        assert "Новые возможности" in text

    def test_corporate_ripple(self) -> None:
        """A ripple release names the upstream package."""
        ripple = PackageRelease(
            name="app",
            prev="0.3.0",
            next="0.4.0",
            bump=VersionBump.MINOR,
            reason=BumpReason.RIPPLE,
            ripple_from=["api"],
        )
        text = asyncio.run(render("corporate", package_to_template_data(ripple)))
        assert "(dependency update)" in text
        assert "api" in text

    def test_technical(self, data: TemplateData) -> None:
        """Technical shows shas, authors, links and every group."""
        text = asyncio.run(render("technical", data))
        assert "`2.1.0` → `3.0.0` (major)" in text
        assert "([aaaaaaa](#)) by @Ada" in text
        assert "([ccccccc](https://github.com/acme/mono/commit/ccc))" in text
        assert "(2 files)" in text
        assert "### 🔧 Chores" in text
        assert "tidy" in text

    def test_compact(self, data: TemplateData) -> None:
        """Compact is one line per change."""
        text = asyncio.run(render("compact", data))
        assert text.splitlines() == [
            "## api 3.0.0",
            "",
            "**BREAKING:**",
            "- drop v1 routes",
            "",
            "- feat: search: add search",
            "- feat: add export",
            "- fix: fix crash",
        ]


class TestCorporateAi:
    """Tests for the corporate-ai template."""

    def test_without_llm_falls_back(self, data: TemplateData) -> None:
        """Without a platform LLM the corporate text is used."""
        text = asyncio.run(render("corporate-ai", data, platform=None))
        assert "- **search**: add search" in text

    def test_async_llm(self, data: TemplateData) -> None:
        """Each non-empty group is rewritten by one LLM call."""
        prompts: list[str] = []

        class FakeLLM:
            async def complete(self, prompt: str) -> str:
                prompts.append(prompt)
                return "- **search**: Find anything instantly"

        text = asyncio.run(
            render("corporate-ai", data, platform=_llm_platform(FakeLLM()))
        )
        assert "Find anything instantly" in text
        assert len(prompts) == 2  # feat and fix
        assert "Group type: features" in prompts[0]
        assert "Language: English" in prompts[0]

    @patch("release_planner.templates.builtin.corporate_ai.warn")
    def test_llm_failure_falls_back(
        self, mock_warn: MagicMock, data: TemplateData
    ) -> None:
        """A failing LLM call warns and keeps the plain group text."""
        llm = MagicMock()
        llm.complete.side_effect = RuntimeError("rate limited")
        text = asyncio.run(render("corporate-ai", data, platform=_llm_platform(llm)))
        assert "- **search**: add search" in text
        assert mock_warn.call_count == 2

    @patch("release_planner.templates.builtin.corporate_ai.warn")
    def test_empty_llm_output_falls_back(
        self, mock_warn: MagicMock, data: TemplateData
    ) -> None:
        """Blank LLM output is replaced by the plain group text."""
        llm = MagicMock()
        llm.complete.return_value = "   "
        text = asyncio.run(render("corporate-ai", data, platform=_llm_platform(llm)))
        assert "- general: fix crash" in text


class TestRenderManifest:
    """Tests for render_manifest()."""

    def test_joins_packages(self, release: PackageRelease) -> None:
        """Each package section is rendered and joined in order."""
        second = PackageRelease(
            name="core",
            prev="1.0.0",
            next="1.0.1",
            bump=VersionBump.PATCH,
            reason=BumpReason.FIX,
            changes=[
                Change(
                    sha="e" * 40,
                    type=CommitType.FIX,
                    subject="leak",
                    author=Author(name="Bo"),
                )
            ],
        )
        manifest = ReleaseManifest(
            range=GitRange(from_="v1", to="HEAD"),
            timestamp="t",
            packages=[release, second],
        )
        text = asyncio.run(render_manifest(manifest, "compact"))
        parts = text.split("\n\n## ")
        assert len(parts) == 2
        assert parts[1].startswith("core 1.0.1")
