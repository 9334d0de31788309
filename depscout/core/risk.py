"""Semantic-version risk classification and filtering of candidates."""

from __future__ import annotations

from collections.abc import Sequence
from typing import TypeVar

from depscout.core.versions import is_prerelease, parse_version
from depscout.models.schemas import Candidate, RiskFilter, RiskGroup

C = TypeVar("C", bound=Candidate)

# Risk groups each filter lets through; ALL is handled separately.
_FILTER_GROUPS: dict[RiskFilter, frozenset[RiskGroup]] = {
    RiskFilter.MAJOR_ONLY: frozenset({RiskGroup.MAJOR}),
    RiskFilter.NON_MAJOR: frozenset({RiskGroup.MINOR, RiskGroup.PATCH, RiskGroup.NONE}),
    RiskFilter.PRERELEASE_ONLY: frozenset({RiskGroup.PRERELEASE}),
    RiskFilter.UNKNOWN_ONLY: frozenset({RiskGroup.UNKNOWN}),
}


def classify_risk_group(current_version: str | None, target_version: str | None) -> RiskGroup:
    """Classify the bump from *current_version* to *target_version*.

    Missing or unparseable versions, and downgrades, are UNKNOWN. A prerelease
    target is PRERELEASE regardless of which numeric component moved.
    """
    current = parse_version(current_version)
    target = parse_version(target_version)
    if current is None or target is None:
        return RiskGroup.UNKNOWN

    if current == target:
        return RiskGroup.NONE
    if current > target:
        return RiskGroup.UNKNOWN

    if is_prerelease(target):
        return RiskGroup.PRERELEASE
    if target.major > current.major:
        return RiskGroup.MAJOR
    if target.minor > current.minor:
        return RiskGroup.MINOR
    if target.patch > current.patch:
        return RiskGroup.PATCH
    return RiskGroup.NONE


def matches_risk_filter(risk: RiskFilter, group: RiskGroup) -> bool:
    if risk == RiskFilter.ALL:
        return True
    return group in _FILTER_GROUPS[risk]


def apply_risk_filter(candidates: Sequence[C], risk: RiskFilter) -> list[C]:
    """Return the candidates passing *risk*, in their original order."""
    if risk == RiskFilter.ALL:
        return list(candidates)
    return [
        c for c in candidates if matches_risk_filter(risk, classify_risk_group(c.current.version, c.target.version))
    ]
