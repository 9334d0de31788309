"""pnpm-lock.yaml parsing."""

from __future__ import annotations

import logging
import posixpath
from pathlib import Path
from typing import Any

import yaml

from depscout.core.lockfiles.base import InstalledVersionLookup, entry_version, normalize_installed_version, null_lookup

logger = logging.getLogger(__name__)

# Importer sections searched for a package, in priority order.
_IMPORTER_SECTIONS = ("dependencies", "devDependencies", "optionalDependencies", "peerDependencies")


async def create_pnpm_lookup(lockfile_path: str | Path) -> InstalledVersionLookup:
    """Build a lookup that resolves each manifest through its pnpm importer."""
    try:
        data = yaml.safe_load(Path(lockfile_path).read_text(encoding="utf-8"))
    except (OSError, ValueError, yaml.YAMLError) as exc:
        logger.debug("Could not read pnpm lockfile %s: %s", lockfile_path, exc)
        return null_lookup

    if not isinstance(data, dict) or not isinstance(data.get("importers"), dict):
        return null_lookup

    importers: dict[str, Any] = data["importers"]

    def lookup(package_file: str, package_name: str, current_range: str) -> str | None:
        importer = importers.get(package_file_to_importer_key(package_file))
        if not isinstance(importer, dict):
            return None
        return _importer_version(importer, package_name)

    return lookup


def package_file_to_importer_key(package_file: str) -> str:
    """Map a manifest path to its importer key: ``.`` for the root, else its directory."""
    if package_file == "package.json":
        return "."
    normalized = package_file.replace("\\", "/")
    directory = posixpath.dirname(posixpath.normpath(normalized))
    return directory or "."


def _importer_version(importer: dict[str, Any], package_name: str) -> str | None:
    for section in _IMPORTER_SECTIONS:
        deps = importer.get(section)
        if not isinstance(deps, dict):
            continue
        entry = deps.get(package_name)
        if isinstance(entry, str):
            return normalize_installed_version(entry)
        version = entry_version(entry)
        if version is not None:
            return version
    return None
