"""Semantic-version parsing helpers shared by risk classification and evidence."""

from __future__ import annotations

from semver import Version


def parse_version(value: str | None) -> Version | None:
    """Parse an npm-style version string, tolerating a leading ``=`` or ``v``.

    Returns None for missing or invalid input instead of raising.
    """
    if not value:
        return None
    cleaned = value.strip().lstrip("=").strip()
    if len(cleaned) > 1 and cleaned[0] in ("v", "V"):
        cleaned = cleaned[1:]
    try:
        return Version.parse(cleaned)
    except (ValueError, TypeError):
        return None


def is_valid_version(value: str | None) -> bool:
    return parse_version(value) is not None


def is_prerelease(version: Version) -> bool:
    return bool(version.prerelease)


def sort_versions(values: list[str]) -> list[str]:
    """Return the valid entries of *values* in ascending semver order."""
    parsed = [(v, parse_version(v)) for v in values]
    valid = [(raw, ver) for raw, ver in parsed if ver is not None]
    valid.sort(key=lambda item: item[1])
    return [raw for raw, _ in valid]
