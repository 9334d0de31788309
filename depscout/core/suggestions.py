"""Upgrade suggestions from npm-check-updates, validated into a tagged union."""

from __future__ import annotations

import asyncio
import json
import logging
import re
import shlex
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import Any

from pydantic import TypeAdapter, ValidationError

from depscout.config import settings
from depscout.core.versions import is_valid_version
from depscout.models.errors import SuggestionError
from depscout.models.schemas import (
    DepFilter,
    NormalizedSuggestion,
    Scope,
    SuggestionResult,
    Target,
    WorkspaceSuggestions,
)

logger = logging.getLogger(__name__)

_SUGGESTION_RESULT = TypeAdapter(SuggestionResult)

_DEP_ARGS: dict[DepFilter, str] = {
    DepFilter.ALL: "prod,dev",
    DepFilter.DEPENDENCIES: "prod",
    DepFilter.DEV_DEPENDENCIES: "dev",
}

# Leading range operators in a suggested range: ^4.18.0, ~1.2.3, >=2.0.0, =v1.0.0
_RANGE_OPERATOR_RE = re.compile(r"^[\^~<>=\s]*")


class TargetVersionCollector:
    """Side channel for the concrete version each suggestion resolved to."""

    def __init__(self) -> None:
        self.target_versions: dict[str, str] = {}

    def record(self, package_name: str, version: str) -> None:
        self.target_versions[package_name] = version

    def record_from_range(self, package_name: str, suggested_range: str) -> None:
        """Record the exact version embedded in a range like ``^4.18.0``, if any."""
        version = _RANGE_OPERATOR_RE.sub("", suggested_range.strip())
        if version.startswith(("v", "V")):
            version = version[1:]
        if is_valid_version(version):
            self.record(package_name, version)

    def get(self, package_name: str) -> str | None:
        return self.target_versions.get(package_name)


# (cwd, scope, target, dep, collector) -> raw suggestion mapping
SuggestionSource = Callable[[Path, Scope, Target, DepFilter, TargetVersionCollector], Awaitable[Any]]


def build_ncu_args(scope: Scope, target: Target, dep: DepFilter) -> list[str]:
    """Translate report options into npm-check-updates CLI flags."""
    args = ["--jsonUpgraded", "--silent", "--target", target.value, "--dep", _DEP_ARGS[dep]]
    if scope == Scope.ALL:
        args += ["--workspaces", "--root"]
    elif scope == Scope.WORKSPACES:
        args += ["--workspaces", "--no-root"]
    return args


async def run_ncu(
    cwd: Path,
    scope: Scope,
    target: Target,
    dep: DepFilter,
    collector: TargetVersionCollector,
) -> Any:
    """Run npm-check-updates and return its parsed JSON output.

    The CLI has no per-package callback, so target versions are recorded from the
    exact versions embedded in the suggested ranges.
    """
    command = [*shlex.split(settings.ncu_command), *build_ncu_args(scope, target, dep)]
    logger.debug("Running %s in %s", " ".join(command), cwd)
    try:
        proc = await asyncio.create_subprocess_exec(
            *command,
            cwd=str(cwd),
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except OSError as exc:
        raise SuggestionError(f"Could not start npm-check-updates: {exc}") from exc

    stdout, stderr = await proc.communicate()
    if proc.returncode != 0:
        detail = stderr.decode("utf-8", errors="replace").strip()
        raise SuggestionError(f"npm-check-updates exited with code {proc.returncode}: {detail}")

    text = stdout.decode("utf-8", errors="replace").strip()
    if not text:
        return None
    try:
        raw = json.loads(text)
    except json.JSONDecodeError as exc:
        raise SuggestionError(f"npm-check-updates returned invalid JSON: {exc}") from exc

    parsed = parse_suggestions(raw)
    for item in normalize_suggestions(parsed):
        collector.record_from_range(item.package_name, item.suggested_range)
    return raw


def parse_suggestions(raw: Any) -> SuggestionResult | None:
    """Validate raw suggestion output into the flat or workspace variant.

    ``None`` means the source produced no result. A mapping is treated as the
    workspace shape when any top-level value is an object; otherwise every value
    must be a range string.
    """
    if raw is None:
        return None
    if not isinstance(raw, dict):
        raise SuggestionError("Invalid upgraded dependencies found")

    if any(isinstance(value, dict) for value in raw.values()):
        payload = {"kind": "workspaces", "workspaces": raw}
    else:
        payload = {"kind": "flat", "upgrades": raw}
    try:
        return _SUGGESTION_RESULT.validate_python(payload)
    except ValidationError as exc:
        raise SuggestionError(f"Invalid upgraded dependencies found: {exc.error_count()} invalid entries") from exc


def iter_suggestions(result: SuggestionResult | None) -> list[tuple[str, str, str]]:
    """Flatten a result into (package_file, package_name, suggested_range) triples."""
    if result is None:
        return []
    if isinstance(result, WorkspaceSuggestions):
        return [
            (package_file, package_name, suggested_range)
            for package_file, upgrades in result.workspaces.items()
            for package_name, suggested_range in upgrades.items()
        ]
    return [("package.json", package_name, suggested_range) for package_name, suggested_range in result.upgrades.items()]


def normalize_suggestions(result: SuggestionResult | None) -> list[NormalizedSuggestion]:
    return [
        NormalizedSuggestion(package_file=package_file, package_name=package_name, suggested_range=suggested_range)
        for package_file, package_name, suggested_range in iter_suggestions(result)
    ]
