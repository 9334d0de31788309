"""Candidate assembly: suggestions + package.json + installed versions."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from depscout.core.lockfiles.base import InstalledVersionLookup
from depscout.core.suggestions import TargetVersionCollector, iter_suggestions
from depscout.models.errors import ManifestError
from depscout.models.schemas import (
    DEPENDENCY_TYPE_ORDER,
    Candidate,
    DependencyType,
    SuggestionResult,
    VersionSpec,
)


async def build_candidates(
    cwd: str | Path,
    suggestions: SuggestionResult | None,
    lookup: InstalledVersionLookup,
    collector: TargetVersionCollector,
) -> list[Candidate]:
    """Build one sorted candidate per (package file, package name) suggestion.

    Raises ManifestError if a referenced package.json is missing or malformed.
    """
    root = Path(cwd)
    manifests: dict[str, dict[str, Any]] = {}
    candidates: list[Candidate] = []

    for package_file, package_name, suggested_range in iter_suggestions(suggestions):
        if package_file not in manifests:
            manifests[package_file] = await read_package_json(root / package_file)
        dependency_type, current_range = dependency_type_and_range(manifests[package_file], package_name)

        candidates.append(
            Candidate(
                package_file=package_file,
                dependency_type=dependency_type,
                package_name=package_name,
                current=VersionSpec(
                    range=current_range,
                    version=lookup(package_file, package_name, current_range),
                ),
                target=VersionSpec(range=suggested_range, version=collector.get(package_name)),
            )
        )

    sort_candidates(candidates)
    return candidates


def sort_candidates(candidates: list[Candidate]) -> None:
    """Sort in place by package file, dependency group order, then package name."""
    candidates.sort(
        key=lambda c: (c.package_file, DEPENDENCY_TYPE_ORDER.index(c.dependency_type), c.package_name)
    )


def dependency_type_and_range(package_json: dict[str, Any], package_name: str) -> tuple[DependencyType, str]:
    """Find which dependency map declares *package_name* and with what range."""
    for section, dependency_type in (
        ("dependencies", DependencyType.DEPENDENCIES),
        ("devDependencies", DependencyType.DEV_DEPENDENCIES),
    ):
        deps = package_json.get(section)
        if isinstance(deps, dict) and isinstance(deps.get(package_name), str):
            return dependency_type, deps[package_name]
    return DependencyType.UNKNOWN, ""


async def read_package_json(path: Path) -> dict[str, Any]:
    """Read and parse a package.json, which must be a JSON object."""
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        raise ManifestError(f"Invalid package.json at {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ManifestError(f"Invalid package.json at {path}")
    return data
