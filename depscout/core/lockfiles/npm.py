"""package-lock.json parsing."""

from __future__ import annotations

import json
import logging
from pathlib import Path

from depscout.core.lockfiles.base import InstalledVersionLookup, entry_version, null_lookup

logger = logging.getLogger(__name__)


async def create_npm_lookup(lockfile_path: str | Path) -> InstalledVersionLookup:
    """Build a lookup over a package-lock.json.

    npm hoists into a single de-duplicated tree, so the manifest path and the
    declared range are ignored. ``packages["node_modules/<name>"]`` (lockfile v2/v3)
    wins over the legacy ``dependencies[<name>]`` map.
    """
    try:
        data = json.loads(Path(lockfile_path).read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        logger.debug("Could not read npm lockfile %s: %s", lockfile_path, exc)
        return null_lookup

    if not isinstance(data, dict):
        return null_lookup

    packages = data.get("packages") if isinstance(data.get("packages"), dict) else None
    dependencies = data.get("dependencies") if isinstance(data.get("dependencies"), dict) else None

    def lookup(package_file: str, package_name: str, current_range: str) -> str | None:
        if packages is not None:
            version = entry_version(packages.get(f"node_modules/{package_name}"))
            if version is not None:
                return version
        if dependencies is not None:
            return entry_version(dependencies.get(package_name))
        return None

    return lookup
