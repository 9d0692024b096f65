"""Localized labels shared by the built-in templates."""

from __future__ import annotations

from .types import Locale

REASON_LABELS: dict[str, dict[str, str]] = {
    "breaking": {
        "en": "major bump from breaking changes",
        "ru": "major из-за breaking changes",
    },
    "feat": {
        "en": "minor: new features",
        "ru": "minor: новая функциональность",
    },
    "fix": {"en": "patch: bug fixes", "ru": "patch: исправления"},
    "perf": {
        "en": "patch: performance",
        "ru": "patch: производительность",
    },
    "ripple": {
        "en": "dependency update",
        "ru": "обновление зависимостей",
    },
    "manual": {"en": "manual", "ru": "ручное"},
    "stability-guard": {
        "en": "capped by stability guard",
        "ru": "ограничено политикой стабильности",
    },
}

SECTION_TITLES: dict[str, dict[str, str]] = {
    "breaking": {
        "en": "⚠️ BREAKING CHANGES",
        "ru": "⚠️ КРИТИЧЕСКИЕ ИЗМЕНЕНИЯ",
    },
    "feat": {
        "en": "✨ New Features",
        "ru": "✨ Новые возможности",
    },
    "perf": {
        "en": "⚡ Performance Improvements",
        "ru": "⚡ Производительность",
    },
    "fix": {"en": "🐛 Bug Fixes", "ru": "🐛 Исправления"},
    "refactor": {
        "en": "♻️ Code Refactoring",
        "ru": "♻️ Рефакторинг",
    },
    "docs": {"en": "📝 Documentation", "ru": "📝 Документация"},
    "test": {"en": "✅ Tests", "ru": "✅ Тесты"},
    "build": {"en": "🔨 Build System", "ru": "🔨 Сборка"},
    "ci": {"en": "👷 CI/CD", "ru": "👷 CI/CD"},
    "chore": {"en": "🔧 Chores", "ru": "🔧 Обслуживание"},
    "revert": {"en": "⏪ Reverts", "ru": "⏪ Откаты"},
    "style": {"en": "💄 Styles", "ru": "💄 Стили"},
}

# Sections shown by the corporate templates, most important first
CORPORATE_SECTIONS = ("feat", "perf", "fix", "refactor", "docs")

# Every commit type, in the order the technical template lists them
ALL_SECTIONS = (
    "feat",
    "fix",
    "perf",
    "refactor",
    "docs",
    "test",
    "build",
    "ci",
    "chore",
    "revert",
    "style",
)


def reason_label(reason: str, locale: Locale) -> str:
    """Human label for a bump reason, falling back to the raw reason."""
    return REASON_LABELS.get(reason, {}).get(locale, reason)


def section_title(section: str, locale: Locale) -> str:
    """Localized heading for a changelog section."""
    return SECTION_TITLES.get(section, {}).get(locale, section.upper())
