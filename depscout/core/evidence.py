"""Upgrade evidence: version windows and verified changelog/release/compare links.

Every network step is best-effort. A failed registry fetch or an unreachable
probe only removes the link it would have produced; it never fails the run.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from urllib.parse import quote

import httpx
from semver import Version

from depscout.config import settings
from depscout.core.registry import query_npm, raw_github_base_url
from depscout.core.versions import is_prerelease, is_valid_version, parse_version
from depscout.models.schemas import (
    CandidateEvidenceInput,
    CandidateEvidenceResult,
    Evidence,
    EvidenceLinks,
    RegistryPackage,
    VersionDelta,
    VersionWindow,
)

logger = logging.getLogger(__name__)

# Conventional changelog locations, probed in order against the raw-content base.
CHANGELOG_CANDIDATES: tuple[str, ...] = (
    "CHANGELOG.md",
    "CHANGELOG",
    "CHANGES.md",
    "HISTORY.md",
    "NEWS.md",
    "RELEASES.md",
    "docs/CHANGELOG.md",
    "docs/CHANGES.md",
    "docs/HISTORY.md",
    "docs/NEWS.md",
    "changelog.md",
    "docs/changelog.md",
)

# Characters encodeURIComponent leaves alone beyond quote()'s defaults.
_TAG_SAFE_CHARS = "!*'()"

_GITHUB_HOSTS = ("https://github.com/", "https://raw.githubusercontent.com/")


class EvidenceSession:
    """Per-run evidence state: one HTTP client and two request caches.

    The caches hold tasks rather than results so that concurrent candidates asking
    for the same package or URL share a single in-flight request. A session must
    not outlive the report run that created it.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        *,
        registry_url: str | None = None,
        timeout: float | None = None,
        max_concurrency: int | None = None,
        github_token: str | None = None,
    ) -> None:
        self._client = client
        self._registry_url = registry_url or settings.registry_url
        self._timeout = timeout if timeout is not None else settings.probe_timeout_seconds
        self._sem = asyncio.Semaphore(max_concurrency or settings.max_concurrent_evidence)
        self._github_token = settings.github_token if github_token is None else github_token
        self._registry_cache: dict[str, asyncio.Task[RegistryPackage | None]] = {}
        self._reachable_cache: dict[str, asyncio.Task[bool]] = {}

    async def collect(self, inputs: Sequence[CandidateEvidenceInput]) -> list[CandidateEvidenceResult]:
        """Resolve every input concurrently; results line up with *inputs* by index."""
        return list(await asyncio.gather(*[self._bounded(item) for item in inputs]))

    async def _bounded(self, item: CandidateEvidenceInput) -> CandidateEvidenceResult:
        async with self._sem:
            return await self.build_candidate_evidence(item)

    async def build_candidate_evidence(self, item: CandidateEvidenceInput) -> CandidateEvidenceResult:
        installed, target = item.installed_version, item.target_version
        npm_diff_link = build_npm_diff_link(item.package_name, installed, target)

        registry = await self.registry_package(item.package_name)
        if registry is None:
            return CandidateEvidenceResult(evidence=build_evidence(npm_diff_link=npm_diff_link))

        releases = changelog = compare = None
        if registry.repository_url:
            releases = await self.resolve_releases_url(registry.repository_url)
            changelog = await self.resolve_changelog_url(registry.repository_url)

        window = VersionWindow()
        if installed and target:
            window = build_version_window(registry.versions, installed, target)
            if registry.repository_url:
                compare = await self.resolve_compare_url(registry.repository_url, item.package_name, installed, target)

        return CandidateEvidenceResult(
            version_window=window,
            evidence=build_evidence(
                compare=compare,
                npm_diff_link=npm_diff_link,
                releases=releases,
                changelog=changelog,
            ),
        )

    # --- cached network access ---

    async def registry_package(self, name: str) -> RegistryPackage | None:
        task = self._registry_cache.get(name)
        if task is None:
            task = asyncio.ensure_future(query_npm(self._client, name, self._registry_url, self._timeout))
            self._registry_cache[name] = task
        return await task

    async def is_url_reachable(self, url: str) -> bool:
        task = self._reachable_cache.get(url)
        if task is None:
            task = asyncio.ensure_future(self._check_url(url))
            self._reachable_cache[url] = task
        return await task

    async def _check_url(self, url: str) -> bool:
        """HEAD *url* following redirects; 2xx/3xx is reachable, anything else is not."""
        headers: dict[str, str] = {}
        if self._github_token and url.startswith(_GITHUB_HOSTS):
            headers["Authorization"] = f"Bearer {self._github_token}"
        try:
            resp = await self._client.head(url, headers=headers, follow_redirects=True, timeout=self._timeout)
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            logger.debug("Probe failed for %s: %s", url, exc)
            return False
        return 200 <= resp.status_code < 400

    # --- link resolution ---

    async def resolve_releases_url(self, repository_url: str) -> str | None:
        if await self.is_url_reachable(f"{repository_url}/releases/latest"):
            return f"{repository_url}/releases"
        return None

    async def resolve_changelog_url(self, repository_url: str) -> str | None:
        raw_base = raw_github_base_url(repository_url)
        if raw_base is None:
            return None
        for candidate in CHANGELOG_CANDIDATES:
            url = f"{raw_base}{candidate}"
            if await self.is_url_reachable(url):
                return url
        return None

    async def resolve_compare_url(
        self,
        repository_url: str,
        package_name: str,
        installed_version: str,
        target_version: str,
    ) -> str | None:
        from_version = normalize_tag_version(installed_version)
        to_version = normalize_tag_version(target_version)
        if not (from_version and to_version):
            return None

        for from_tag, to_tag in build_compare_tag_pairs(package_name, from_version, to_version):
            url = build_compare_url(repository_url, from_tag, to_tag)
            if await self.is_url_reachable(url):
                return url
        return None


async def collect_candidate_evidence(
    inputs: Sequence[CandidateEvidenceInput],
    client: httpx.AsyncClient | None = None,
) -> list[CandidateEvidenceResult]:
    """Collect evidence for a batch with a fresh session.

    When *client* is None a client is created for this call and closed afterwards.
    """
    if client is not None:
        return await EvidenceSession(client).collect(inputs)

    async with httpx.AsyncClient(
        timeout=settings.probe_timeout_seconds,
        headers={"User-Agent": settings.user_agent},
    ) as owned:
        return await EvidenceSession(owned).collect(inputs)


# --- pure helpers ---


def build_npm_diff_link(package_name: str, installed: str | None, target: str | None) -> str | None:
    if not (installed and target):
        return None
    return f"npm diff --diff {package_name}@{installed} --diff {package_name}@{target}"


def build_evidence(
    *,
    compare: str | None = None,
    npm_diff_link: str | None = None,
    releases: str | None = None,
    changelog: str | None = None,
) -> Evidence | None:
    """Wrap whichever links exist; None when there are none at all."""
    if not (compare or npm_diff_link or releases or changelog):
        return None
    return Evidence(
        links=EvidenceLinks(
            compare=compare or None,
            npm_diff_link=npm_diff_link or None,
            releases=releases or None,
            changelog=changelog or None,
        )
    )


def build_version_window(versions: Sequence[str], installed: str, target: str) -> VersionWindow:
    """Count published versions in [installed, target] by bump kind relative to installed.

    *versions* must already be sorted ascending. Returns an empty window when
    either bound is invalid or installed > target.
    """
    base = parse_version(installed)
    upper = parse_version(target)
    if base is None or upper is None or base > upper:
        return VersionWindow()

    window = [v for v in (parse_version(raw) for raw in versions) if v is not None and base <= v <= upper]
    return VersionWindow(delta=count_version_delta(window, base))


def count_version_delta(versions: Sequence[Version], base: Version) -> VersionDelta:
    delta = VersionDelta()
    for version in versions:
        if version == base:
            continue
        if is_prerelease(version):
            delta.prerelease += 1
        elif version.major > base.major:
            delta.major += 1
        elif version.major == base.major and version.minor > base.minor:
            delta.minor += 1
        elif version.major == base.major and version.minor == base.minor and version.patch > base.patch:
            delta.patch += 1
    return delta


def normalize_tag_version(version: str) -> str | None:
    """Trim, and drop a leading ``v`` when the rest is a valid version."""
    normalized = version.strip()
    if not normalized:
        return None
    if normalized.startswith("v") and is_valid_version(normalized[1:]):
        return normalized[1:]
    return normalized


def unscoped_package_name(package_name: str) -> str:
    """``@scope/pkg`` -> ``pkg``; unscoped names are returned unchanged."""
    if not package_name.startswith("@") or "/" not in package_name:
        return package_name
    return package_name.split("/", 1)[1]


def build_compare_tag_pairs(package_name: str, from_version: str, to_version: str) -> list[tuple[str, str]]:
    """Tag naming conventions to try, most common first."""
    pairs = [
        (f"v{from_version}", f"v{to_version}"),
        (from_version, to_version),
        (f"{package_name}@{from_version}", f"{package_name}@{to_version}"),
    ]
    unscoped = unscoped_package_name(package_name)
    if unscoped != package_name:
        pairs.append((f"{unscoped}@{from_version}", f"{unscoped}@{to_version}"))
    return pairs


def build_compare_url(repository_url: str, from_tag: str, to_tag: str) -> str:
    return f"{repository_url}/compare/{encode_git_tag(from_tag)}...{encode_git_tag(to_tag)}"


def encode_git_tag(tag: str) -> str:
    return quote(tag, safe=_TAG_SAFE_CHARS)
