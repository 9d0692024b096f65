"""Template loading and contract validation.

Built-in templates are modules under ``release_planner.templates.builtin``.
Any other name is treated as a path to a Python file defining ``version``
and ``render``, relative to ``cwd`` unless absolute.
"""

from __future__ import annotations

import importlib
import importlib.util
from pathlib import Path
from typing import Any

from ..errors import TemplateContractError
from .types import TEMPLATE_VERSION, Template

BUILTIN_TEMPLATES = ("corporate", "corporate-ai", "technical", "compact")

BUILTIN_PACKAGE = "release_planner.templates.builtin"


def is_builtin_template(name: str) -> bool:
    return name in BUILTIN_TEMPLATES


def load_template(name: str, cwd: Path | None = None) -> Template:
    """Load and validate a template.

    Raises:
        TemplateContractError: If the template cannot be found or imported,
            declares a version other than "1.0", or has no callable render.
    """
    if is_builtin_template(name):
        module = importlib.import_module(f"{BUILTIN_PACKAGE}.{name.replace('-', '_')}")
    else:
        module = _load_file(name, cwd or Path.cwd())
    return validate_template(module, name)


def _load_file(name: str, cwd: Path) -> Any:
    path = Path(name)
    if not path.is_absolute():
        path = cwd / path
    if not path.is_file():
        raise TemplateContractError(name, f"template file not found: {path}")

    module_name = f"release_planner_template_{path.stem}"
    spec = importlib.util.spec_from_file_location(module_name, path)
    if spec is None or spec.loader is None:
        raise TemplateContractError(name, f"cannot import {path}")
    module = importlib.util.module_from_spec(spec)
    try:
        spec.loader.exec_module(module)
    except Exception as e:
        raise TemplateContractError(name, f"failed to import {path}: {e}") from e
    return module


def validate_template(module: Any, name: str) -> Template:
    """Check that ``module`` meets the template contract.

    Raises:
        TemplateContractError: If the version is not TEMPLATE_VERSION or
            render is missing or not callable.
    """
    version = getattr(module, "version", None)
    if version != TEMPLATE_VERSION:
        raise TemplateContractError(
            name, f'invalid version (expected "{TEMPLATE_VERSION}", got {version!r})'
        )
    if not callable(getattr(module, "render", None)):
        raise TemplateContractError(name, "must define a render() function")
    return module


def list_builtin_templates() -> list[dict[str, str]]:
    """Describe the built-in templates, in BUILTIN_TEMPLATES order."""
    return [
        {"name": name, "description": getattr(load_template(name), "description", "")}
        for name in BUILTIN_TEMPLATES
    ]
