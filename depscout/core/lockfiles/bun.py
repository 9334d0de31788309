"""bun.lock parsing (JSONC-style text with trailing commas)."""

from __future__ import annotations

import json
import logging
import re
from pathlib import Path
from typing import Any

from depscout.core.lockfiles.base import InstalledVersionLookup, normalize_installed_version, null_lookup

logger = logging.getLogger(__name__)

_TRAILING_COMMA_RE = re.compile(r",\s*([}\]])")


async def create_bun_lookup(lockfile_path: str | Path) -> InstalledVersionLookup:
    """Build a lookup over bun's text lockfile.

    ``packages[name]`` is an array whose first element is ``<name>@<version>``.
    """
    try:
        data = parse_bun_lockfile(Path(lockfile_path).read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        logger.debug("Could not read bun lockfile %s: %s", lockfile_path, exc)
        return null_lookup

    if not isinstance(data, dict) or not isinstance(data.get("packages"), dict):
        return null_lookup

    packages: dict[str, Any] = data["packages"]

    def lookup(package_file: str, package_name: str, current_range: str) -> str | None:
        entry = packages.get(package_name)
        if not isinstance(entry, list) or not entry:
            return None
        return extract_bun_version(entry[0])

    return lookup


def parse_bun_lockfile(raw: str) -> Any:
    """Drop trailing commas, then parse as JSON. Raises ValueError on bad input."""
    return json.loads(_TRAILING_COMMA_RE.sub(r"\1", raw))


def extract_bun_version(entry: Any) -> str | None:
    """``lodash@4.17.21+sha`` -> ``4.17.21``; ``@scope/pkg@1.0.0`` -> ``1.0.0``."""
    if not isinstance(entry, str):
        return None
    at = entry.rfind("@")
    if at <= 0 or at == len(entry) - 1:
        return None
    version = entry[at + 1 :].split("+", 1)[0]
    return normalize_installed_version(version) or None
