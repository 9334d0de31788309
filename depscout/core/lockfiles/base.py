"""Shared lookup type and helpers for lockfile parsers."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

# (package_file, package_name, current_range) -> installed version or None
InstalledVersionLookup = Callable[[str, str, str], str | None]


def null_lookup(package_file: str, package_name: str, current_range: str) -> str | None:
    """Lookup used when no lockfile is available or it could not be parsed."""
    return None


def normalize_installed_version(value: str) -> str:
    """Strip a pnpm-style peer annotation: ``4.17.21(esbuild@0.18.0)`` -> ``4.17.21``."""
    paren = value.find("(")
    if paren == -1:
        return value
    return value[:paren].strip()


def entry_version(entry: Any) -> str | None:
    """Return the ``version`` string of a mapping entry, normalized, or None."""
    if not isinstance(entry, dict):
        return None
    version = entry.get("version")
    if not isinstance(version, str):
        return None
    return normalize_installed_version(version)
