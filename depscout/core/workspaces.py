"""Workspace detection for monorepos (package.json workspaces, pnpm-workspace.yaml)."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

import yaml

from depscout.models.schemas import Scope

logger = logging.getLogger(__name__)


def read_root_package_json(cwd: str | Path) -> dict[str, Any] | None:
    """Return the root package.json as a dict, or None if missing or invalid."""
    try:
        data = json.loads((Path(cwd) / "package.json").read_text(encoding="utf-8"))
    except (OSError, ValueError):
        return None
    return data if isinstance(data, dict) else None


def _read_pnpm_workspace(cwd: Path) -> dict[str, Any] | None:
    try:
        data = yaml.safe_load((cwd / "pnpm-workspace.yaml").read_text(encoding="utf-8"))
    except (OSError, ValueError, yaml.YAMLError):
        return None
    return data if isinstance(data, dict) else None


def _workspace_patterns(value: Any) -> list[str]:
    """Accept both ``["a/*"]`` and ``{"packages": ["a/*"]}`` forms."""
    if isinstance(value, dict):
        value = value.get("packages")
    if isinstance(value, list):
        return [entry for entry in value if isinstance(entry, str)]
    return []


def detect_workspace_patterns(cwd: str | Path, pkg: dict[str, Any] | None = None) -> list[str]:
    """Merge, de-duplicate and sort workspace globs from every supported source."""
    root = Path(cwd)
    package_json = pkg if pkg is not None else read_root_package_json(root)

    patterns: list[str] = []
    if package_json and package_json.get("workspaces"):
        patterns.extend(_workspace_patterns(package_json["workspaces"]))

    pnpm_workspace = _read_pnpm_workspace(root)
    if pnpm_workspace and pnpm_workspace.get("packages"):
        patterns.extend(_workspace_patterns(pnpm_workspace["packages"]))

    return sorted({p for p in patterns if p})


def has_workspace_config(cwd: str | Path, pkg: dict[str, Any] | None = None) -> bool:
    return bool(detect_workspace_patterns(cwd, pkg))


def resolve_scope_effective(scope_requested: Scope, workspaces_available: bool) -> Scope:
    """Fall back to ROOT when workspaces were requested but none are configured."""
    if workspaces_available or scope_requested == Scope.ROOT:
        return scope_requested
    return Scope.ROOT
