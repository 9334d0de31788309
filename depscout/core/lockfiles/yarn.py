"""yarn.lock parsing for both the classic (v1) and Berry (v2+) formats.

Both formats key entries by descriptor lists such as
``"lodash@^4.17.0", "lodash@^4.17.21"`` (classic) or
``"lodash@npm:^4.17.0, lodash@npm:^4.17.21"`` (Berry). The parsers reduce either
form to an index of package name -> [(descriptor, version)], and the lookup finds
the descriptor whose range matches the range declared in package.json.
"""

from __future__ import annotations

import logging
import re
from enum import Enum
from pathlib import Path

import yaml

from depscout.core.lockfiles.base import InstalledVersionLookup, entry_version, normalize_installed_version, null_lookup

logger = logging.getLogger(__name__)

# package name -> [(descriptor, version)]
DescriptorIndex = dict[str, list[tuple[str, str]]]

_CLASSIC_VERSION_RE = re.compile(r"""^version\s+["'](.+)["']""")

_BERRY_MARKER = "__metadata:"


class _ClassicState(Enum):
    SEEKING_KEY = "seeking-key-line"
    IN_BLOCK = "in-block"


async def create_yarn_lookup(lockfile_path: str | Path) -> InstalledVersionLookup:
    """Build a lookup over a yarn.lock, detecting Berry by its ``__metadata:`` block."""
    try:
        raw = Path(lockfile_path).read_text(encoding="utf-8")
    except (OSError, ValueError) as exc:
        logger.debug("Could not read yarn lockfile %s: %s", lockfile_path, exc)
        return null_lookup

    index: DescriptorIndex | None = None
    if _BERRY_MARKER in raw:
        index = build_berry_index(raw)
    if index is None:
        index = build_classic_index(raw)

    return _lookup_from_index(index)


def _lookup_from_index(index: DescriptorIndex) -> InstalledVersionLookup:
    def lookup(package_file: str, package_name: str, current_range: str) -> str | None:
        if current_range == "":
            return None
        for descriptor, version in index.get(package_name, []):
            if matches_descriptor(descriptor, package_name, current_range):
                return version
        return None

    return lookup


def build_berry_index(raw: str) -> DescriptorIndex | None:
    """Index a Berry lockfile, or return None if it is not valid YAML mapping."""
    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as exc:
        logger.debug("Berry lockfile is not valid YAML, falling back to classic parsing: %s", exc)
        return None
    if not isinstance(data, dict):
        return None

    index: DescriptorIndex = {}
    for descriptor_list, entry in data.items():
        if descriptor_list == "__metadata" or not isinstance(descriptor_list, str):
            continue
        version = entry_version(entry)
        if version is None:
            continue
        for descriptor in split_descriptor_list(descriptor_list):
            _add_descriptor(index, descriptor, version)
    return index


def build_classic_index(raw: str) -> DescriptorIndex:
    """Index a classic lockfile with a two-state line scanner.

    A flush-left line ending in ``:`` opens a block for its descriptors; the first
    indented ``version "x"`` line in that block assigns ``x`` to all of them.
    """
    index: DescriptorIndex = {}
    state = _ClassicState.SEEKING_KEY
    descriptors: list[str] = []

    for line in raw.splitlines():
        stripped = line.strip()
        if not stripped or stripped.startswith("#"):
            continue

        if line[0] not in (" ", "\t"):
            descriptors = split_key_line(line)
            state = _ClassicState.IN_BLOCK if descriptors else _ClassicState.SEEKING_KEY
            continue

        if state is not _ClassicState.IN_BLOCK:
            continue

        match = _CLASSIC_VERSION_RE.match(stripped)
        if not match:
            continue
        version = normalize_installed_version(match.group(1))
        for descriptor in descriptors:
            _add_descriptor(index, descriptor, version)
        state = _ClassicState.SEEKING_KEY

    return index


def split_key_line(line: str) -> list[str]:
    """Split a classic block header like ``"a@^1", a@~1.2:`` into descriptors."""
    stripped = line.strip()
    if not stripped.endswith(":"):
        return []
    content = stripped[:-1].strip()
    if not content:
        return []
    return split_descriptor_list(content)


def split_descriptor_list(content: str) -> list[str]:
    """Split on commas outside quotes and strip the surrounding quotes."""
    descriptors: list[str] = []
    current: list[str] = []
    quote = ""

    for char in content:
        if char in ('"', "'") and (not quote or char == quote):
            quote = "" if quote else char
            current.append(char)
            continue
        if char == "," and not quote:
            _flush_descriptor(current, descriptors)
            current = []
            continue
        current.append(char)

    _flush_descriptor(current, descriptors)
    return descriptors


def _flush_descriptor(chars: list[str], out: list[str]) -> None:
    value = "".join(chars).strip()
    if value:
        out.append(_strip_quotes(value))


def _strip_quotes(value: str) -> str:
    if len(value) >= 2 and value[0] == value[-1] and value[0] in ('"', "'"):
        return value[1:-1]
    return value


def descriptor_package_name(descriptor: str) -> str | None:
    """Return the text before the last ``@``; None for bare or scope-only names."""
    at = descriptor.rfind("@")
    if at <= 0:
        return None
    return descriptor[:at]


def matches_descriptor(descriptor: str, package_name: str, current_range: str) -> bool:
    """True if the descriptor's range equals *current_range* or ends with ``:<range>``."""
    if current_range == "":
        return False
    prefix = f"{package_name}@"
    if not descriptor.startswith(prefix):
        return False
    declared = descriptor[len(prefix) :]
    return declared == current_range or declared.endswith(f":{current_range}")


def _add_descriptor(index: DescriptorIndex, descriptor: str, version: str) -> None:
    name = descriptor_package_name(descriptor)
    if name is None:
        return
    index.setdefault(name, []).append((descriptor, version))
