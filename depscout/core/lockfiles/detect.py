"""Lockfile detection and dispatch to the matching parser."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from pathlib import Path

from depscout.core.lockfiles.base import InstalledVersionLookup, null_lookup
from depscout.core.lockfiles.bun import create_bun_lookup
from depscout.core.lockfiles.npm import create_npm_lookup
from depscout.core.lockfiles.pnpm import create_pnpm_lookup
from depscout.core.lockfiles.yarn import create_yarn_lookup
from depscout.models.schemas import LockfileType

logger = logging.getLogger(__name__)

# Probe order; the first lockfile that exists wins.
LOCKFILE_CANDIDATES: tuple[tuple[LockfileType, str], ...] = (
    (LockfileType.PNPM, "pnpm-lock.yaml"),
    (LockfileType.NPM, "package-lock.json"),
    (LockfileType.YARN, "yarn.lock"),
    (LockfileType.BUN, "bun.lock"),
    (LockfileType.BUN, "bun.lockb"),
)

_FACTORIES: dict[LockfileType, Callable[[Path], Awaitable[InstalledVersionLookup]]] = {
    LockfileType.PNPM: create_pnpm_lookup,
    LockfileType.NPM: create_npm_lookup,
    LockfileType.YARN: create_yarn_lookup,
    LockfileType.BUN: create_bun_lookup,
}


def find_lockfile(cwd: str | Path) -> tuple[LockfileType, Path] | None:
    """Return the first lockfile present in *cwd*, or None."""
    root = Path(cwd)
    for lockfile_type, filename in LOCKFILE_CANDIDATES:
        path = root / filename
        if path.is_file():
            return lockfile_type, path
    return None


async def create_installed_version_lookup(cwd: str | Path) -> InstalledVersionLookup:
    """Detect the project's lockfile and build its installed-version lookup."""
    found = find_lockfile(cwd)
    if found is None:
        logger.debug("No lockfile found in %s; installed versions will be unknown", cwd)
        return null_lookup

    lockfile_type, path = found
    logger.debug("Using %s lockfile %s", lockfile_type.value, path)
    return await _FACTORIES[lockfile_type](path)
