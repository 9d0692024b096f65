"""Structured error catalog for release-planner.

Every error carries a code, a human message and a suggested fix. Only the
failures that must stop a run are modelled here; cache corruption, graph
invalidation and classification degradation are recovered where they occur.
"""

from __future__ import annotations

from typing import Any


class ReleasePlannerError(Exception):
    """Base error with structured code + suggestion."""

    def __init__(
        self, code: str, message: str, suggestion: str = "", detail: Any = None
    ):
        self.code = code
        self.message = message
        self.suggestion = suggestion
        self.detail = detail
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "error_code": self.code,
            "message": self.message,
        }
        if self.suggestion:
            d["suggestion"] = self.suggestion
        if self.detail:
            d["detail"] = self.detail
        return d


class ConfigError(ReleasePlannerError):
    def __init__(self, path: str, errors: list[str]):
        self.errors = errors
        super().__init__(
            code="CONFIG_INVALID",
            message=f"Invalid [tool.release-planner] in {path}: {'; '.join(errors)}",
            suggestion="Fix the listed keys or remove them to fall back to defaults.",
            detail=errors,
        )


class WorkspaceError(ReleasePlannerError):
    def __init__(self, message: str):
        super().__init__(
            code="WORKSPACE_INVALID",
            message=message,
            suggestion=(
                "Define members under [tool.uv.workspace], "
                'e.g. members = ["packages/*"].'
            ),
        )


class LockContentionError(ReleasePlannerError):
    def __init__(self, lock_path: str, holder: str = ""):
        self.lock_path = lock_path
        super().__init__(
            code="CACHE_LOCKED",
            message=f"Cache lock already held: {lock_path}"
            + (f" (holder: {holder})" if holder else ""),
            suggestion=(
                "Wait for the other process, or delete the lock file if it crashed."
            ),
            detail=holder or None,
        )


class TemplateContractError(ReleasePlannerError):
    def __init__(self, template_id: str, message: str):
        self.template_id = template_id
        super().__init__(
            code="TEMPLATE_CONTRACT_VIOLATION",
            message=f'Template "{template_id}": {message}',
            suggestion=(
                'Templates must define version = "1.0" '
                "and a callable render(data, platform=None)."
            ),
        )


class GraphTraversalError(ReleasePlannerError):
    def __init__(self, message: str):
        super().__init__(
            code="GRAPH_TRAVERSAL_FAILED",
            message=message,
            suggestion="Check the workspace graph and the configured bump_strategy.",
        )


class BumpResolutionError(ReleasePlannerError):
    def __init__(self, package: str, message: str):
        self.package = package
        super().__init__(
            code="BUMP_RESOLUTION_FAILED",
            message=f"Cannot resolve release for {package}: {message}",
            suggestion="Check the package's current version string.",
        )


class PipelineStageError(ReleasePlannerError):
    def __init__(self, stage: str, message: str):
        self.stage = stage
        super().__init__(
            code="STAGE_FAILED",
            message=f"Stage '{stage}' failed: {message}",
            suggestion="No manifest was produced. Fix the cause and re-run.",
        )
