"""npm registry metadata queries and repository URL normalization."""

from __future__ import annotations

import logging
import re
from typing import Any
from urllib.parse import quote

import httpx

from depscout.core.versions import sort_versions
from depscout.models.schemas import RegistryPackage

logger = logging.getLogger(__name__)

_GIT_PLUS_RE = re.compile(r"^git\+")
_GIT_PROTOCOL_RE = re.compile(r"^git://")
_GIT_SSH_RE = re.compile(r"^ssh://git@github\.com/")
_GIT_AT_RE = re.compile(r"^git@github\.com:")
_GITHUB_REPO_RE = re.compile(r"github\.com/([^/]+/[^/#]+)(?:[/.#].*)?")
_GIT_SUFFIX_RE = re.compile(r"\.git$")
_CONTROL_CHAR_RE = re.compile(r"[\x00-\x1f\x7f]")

GITHUB_PREFIX = "https://github.com/"


async def query_npm(
    client: httpx.AsyncClient,
    name: str,
    registry_url: str,
    timeout: float,
) -> RegistryPackage | None:
    """Fetch registry metadata for *name*.

    Returns None on transport errors, non-2xx responses, invalid JSON, or a
    body that is not an object. Evidence for the package is then reduced, never
    failed.
    """
    url = f"{registry_url.rstrip('/')}/{quote(name, safe='')}"
    try:
        resp = await client.get(url, headers={"Accept": "application/json"}, timeout=timeout)
        if not resp.is_success:
            logger.warning("Registry returned %s for %s", resp.status_code, name)
            return None
        data = resp.json()
    except (httpx.HTTPError, httpx.InvalidURL, ValueError) as exc:
        logger.debug("Registry query failed for %s: %s", name, exc)
        return None

    if not isinstance(data, dict):
        return None

    return RegistryPackage(
        name=data["name"] if isinstance(data.get("name"), str) else name,
        versions=registry_version_keys(data),
        repository_url=normalize_repository_url(data.get("repository")),
    )


def registry_version_keys(data: dict[str, Any]) -> list[str]:
    """Return the valid semver keys of ``versions``, ascending."""
    versions = data.get("versions")
    if not isinstance(versions, dict):
        return []
    return sort_versions([key for key in versions if isinstance(key, str)])


def normalize_repository_url(repository: Any) -> str | None:
    """Reduce a registry ``repository`` field to ``https://github.com/<owner>/<repo>``.

    Accepts the string and ``{"url": ...}`` forms. Non-GitHub hosts return None,
    as do repository paths holding control characters.
    """
    raw: str | None = None
    if isinstance(repository, str):
        raw = repository
    elif isinstance(repository, dict) and isinstance(repository.get("url"), str):
        raw = repository["url"]
    if not raw:
        return None

    cleaned = raw.strip()
    if cleaned.startswith("github:"):
        cleaned = GITHUB_PREFIX + cleaned[len("github:") :]
    cleaned = _GIT_PLUS_RE.sub("", cleaned)
    cleaned = _GIT_PROTOCOL_RE.sub("https://", cleaned)
    cleaned = _GIT_SSH_RE.sub(GITHUB_PREFIX, cleaned)
    cleaned = _GIT_AT_RE.sub(GITHUB_PREFIX, cleaned)
    cleaned = _strip_url_fragment(cleaned)

    match = _GITHUB_REPO_RE.search(cleaned)
    if not match or _CONTROL_CHAR_RE.search(match.group(1)):
        return None
    return GITHUB_PREFIX + _GIT_SUFFIX_RE.sub("", match.group(1))


def raw_github_base_url(repository_url: str) -> str | None:
    """``https://github.com/o/r`` -> ``https://raw.githubusercontent.com/o/r/HEAD/``."""
    if not repository_url.startswith(GITHUB_PREFIX):
        return None
    repo_path = repository_url[len(GITHUB_PREFIX) :]
    if not repo_path.strip():
        return None
    return f"https://raw.githubusercontent.com/{repo_path}/HEAD/"


def _strip_url_fragment(url: str) -> str:
    """Remove any #fragment from a URL (e.g. 'github.com/org/repo#readme' -> 'github.com/org/repo')."""
    return url.split("#")[0]
