"""Tests for depscout.core.risk."""

from depscout.core.risk import apply_risk_filter, classify_risk_group, matches_risk_filter
from depscout.models.schemas import Candidate, DependencyType, RiskFilter, RiskGroup, VersionSpec


def _candidate(name: str, current: str | None, target: str | None) -> Candidate:
    return Candidate(
        package_file="package.json",
        dependency_type=DependencyType.DEPENDENCIES,
        package_name=name,
        current=VersionSpec(range="^0.0.0", version=current),
        target=VersionSpec(range="^0.0.0", version=target),
    )


class TestClassifyRiskGroup:
    def test_major(self) -> None:
        assert classify_risk_group("1.2.3", "2.0.0") == RiskGroup.MAJOR

    def test_minor(self) -> None:
        assert classify_risk_group("1.2.3", "1.3.0") == RiskGroup.MINOR

    def test_patch(self) -> None:
        assert classify_risk_group("1.2.3", "1.2.4") == RiskGroup.PATCH

    def test_prerelease_target_wins_over_major(self) -> None:
        assert classify_risk_group("1.2.3", "2.0.0-beta.1") == RiskGroup.PRERELEASE

    def test_equal_is_none(self) -> None:
        assert classify_risk_group("1.2.3", "1.2.3") == RiskGroup.NONE

    def test_downgrade_is_unknown(self) -> None:
        assert classify_risk_group("2.0.0", "1.9.9") == RiskGroup.UNKNOWN

    def test_missing_versions_are_unknown(self) -> None:
        assert classify_risk_group(None, "1.0.0") == RiskGroup.UNKNOWN
        assert classify_risk_group("1.0.0", None) == RiskGroup.UNKNOWN

    def test_invalid_versions_are_unknown(self) -> None:
        assert classify_risk_group("latest", "1.0.0") == RiskGroup.UNKNOWN
        assert classify_risk_group("1.0", "1.1") == RiskGroup.UNKNOWN

    def test_v_prefix_tolerated(self) -> None:
        assert classify_risk_group("v1.0.0", "v1.1.0") == RiskGroup.MINOR


class TestMatchesRiskFilter:
    def test_non_major_includes_none(self) -> None:
        assert matches_risk_filter(RiskFilter.NON_MAJOR, RiskGroup.NONE)
        assert matches_risk_filter(RiskFilter.NON_MAJOR, RiskGroup.PATCH)
        assert not matches_risk_filter(RiskFilter.NON_MAJOR, RiskGroup.PRERELEASE)
        assert not matches_risk_filter(RiskFilter.NON_MAJOR, RiskGroup.UNKNOWN)

    def test_all_matches_everything(self) -> None:
        assert all(matches_risk_filter(RiskFilter.ALL, group) for group in RiskGroup)


class TestApplyRiskFilter:
    def test_preserves_order(self) -> None:
        candidates = [
            _candidate("c", "1.0.0", "2.0.0"),
            _candidate("a", "1.0.0", "1.0.1"),
            _candidate("b", "3.0.0", "4.0.0"),
        ]
        result = apply_risk_filter(candidates, RiskFilter.MAJOR_ONLY)
        assert [c.package_name for c in result] == ["c", "b"]

    def test_all_returns_copy(self) -> None:
        candidates = [_candidate("a", None, None)]
        result = apply_risk_filter(candidates, RiskFilter.ALL)
        assert result == candidates
        assert result is not candidates

    def test_unknown_only(self) -> None:
        candidates = [_candidate("a", None, "1.0.0"), _candidate("b", "1.0.0", "1.1.0")]
        assert [c.package_name for c in apply_risk_filter(candidates, RiskFilter.UNKNOWN_ONLY)] == ["a"]

    def test_prerelease_only(self) -> None:
        candidates = [_candidate("a", "1.0.0", "1.1.0-rc.0"), _candidate("b", "1.0.0", "1.1.0")]
        assert [c.package_name for c in apply_risk_filter(candidates, RiskFilter.PRERELEASE_ONLY)] == ["a"]
