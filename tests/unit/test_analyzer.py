"""End-to-end tests for the next-updates pipeline."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import httpx
import pytest

from depscout.core.analyzer import analyze
from depscout.core.suggestions import TargetVersionCollector
from depscout.models.errors import ManifestError, SuggestionError
from depscout.models.schemas import DependencyType, DepFilter, RiskFilter, Scope, Target


class StaticSuggestions:
    """Suggestion source returning a fixed mapping and recording what it was asked for."""

    def __init__(self, raw: Any, targets: dict[str, str] | None = None) -> None:
        self.raw = raw
        self.targets = targets or {}
        self.calls: list[tuple[Path, Scope, Target, DepFilter]] = []

    async def __call__(
        self, cwd: Path, scope: Scope, target: Target, dep: DepFilter, collector: TargetVersionCollector
    ) -> Any:
        self.calls.append((cwd, scope, target, dep))
        for name, version in self.targets.items():
            collector.record(name, version)
        return self.raw


def _offline_client() -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(lambda request: httpx.Response(404)))


def _write_npm_lockfile(project: Path, versions: dict[str, str]) -> None:
    packages = {f"node_modules/{name}": {"version": version} for name, version in versions.items()}
    (project / "package-lock.json").write_text(json.dumps({"lockfileVersion": 3, "packages": packages}))


class TestAnalyze:
    async def test_builds_report(self, sample_project_path: Path) -> None:
        _write_npm_lockfile(sample_project_path, {"lodash": "4.17.21"})
        source = StaticSuggestions({"lodash": "^4.18.0", "vitest": "^2.0.0"}, {"lodash": "4.18.0"})

        async with _offline_client() as client:
            report = await analyze(sample_project_path, suggestion_source=source, client=client)

        assert report.options.scope_requested == Scope.ALL
        assert report.options.scope_effective == Scope.ROOT
        lodash = report.packages["package.json"][DependencyType.DEPENDENCIES]["lodash"]
        assert lodash.current.range == "^4.17.0"
        assert lodash.current.version == "4.17.21"
        assert lodash.target.version == "4.18.0"
        assert lodash.evidence is not None
        assert lodash.evidence.links.npm_diff_link == "npm diff --diff lodash@4.17.21 --diff lodash@4.18.0"
        vitest = report.packages["package.json"][DependencyType.DEV_DEPENDENCIES]["vitest"]
        assert vitest.current.version is None
        assert vitest.evidence is None

    async def test_passes_effective_scope_to_source(self, sample_project_path: Path) -> None:
        source = StaticSuggestions({})
        async with _offline_client() as client:
            await analyze(
                sample_project_path,
                Scope.WORKSPACES,
                Target.MINOR,
                DepFilter.DEV_DEPENDENCIES,
                suggestion_source=source,
                client=client,
            )
        assert source.calls == [(sample_project_path, Scope.ROOT, Target.MINOR, DepFilter.DEV_DEPENDENCIES)]

    async def test_workspace_scope_kept(self, workspace_project_path: Path) -> None:
        source = StaticSuggestions(
            {"package.json": {"lodash": "^4.18.0"}, "packages/a/package.json": {"vitest": "^1.0.0"}},
            {"lodash": "4.18.0", "vitest": "1.0.0"},
        )
        async with _offline_client() as client:
            report = await analyze(workspace_project_path, suggestion_source=source, client=client)

        assert report.options.scope_effective == Scope.ALL
        assert source.calls[0][1] == Scope.ALL
        assert set(report.packages) == {"package.json", "packages/a/package.json"}
        assert "vitest" in report.packages["packages/a/package.json"][DependencyType.DEV_DEPENDENCIES]

    async def test_risk_filter_applied(self, sample_project_path: Path) -> None:
        _write_npm_lockfile(sample_project_path, {"lodash": "4.17.21", "vitest": "1.6.0"})
        source = StaticSuggestions(
            {"lodash": "^4.18.0", "vitest": "^2.0.0"},
            {"lodash": "4.18.0", "vitest": "2.0.0"},
        )
        async with _offline_client() as client:
            report = await analyze(
                sample_project_path, risk_filter=RiskFilter.MAJOR_ONLY, suggestion_source=source, client=client
            )

        assert report.options.risk == RiskFilter.MAJOR_ONLY
        assert list(report.packages["package.json"]) == [DependencyType.DEV_DEPENDENCIES]

    async def test_no_result_gives_empty_report(self, sample_project_path: Path) -> None:
        async with _offline_client() as client:
            report = await analyze(sample_project_path, suggestion_source=StaticSuggestions(None), client=client)
        assert report.packages == {}

    async def test_missing_root_manifest_raises(self, tmp_path: Path) -> None:
        with pytest.raises(ManifestError):
            await analyze(tmp_path, suggestion_source=StaticSuggestions({}))

    async def test_invalid_suggestions_raise(self, sample_project_path: Path) -> None:
        with pytest.raises(SuggestionError):
            await analyze(sample_project_path, suggestion_source=StaticSuggestions(["lodash"]))

    async def test_debug_dumps(self, sample_project_path: Path, tmp_path: Path) -> None:
        dump_dir = tmp_path / "dumps"
        source = StaticSuggestions({"lodash": "^4.18.0"}, {"lodash": "4.18.0"})
        async with _offline_client() as client:
            await analyze(sample_project_path, debug_dump_dir=dump_dir, suggestion_source=source, client=client)

        assert sorted(p.name for p in dump_dir.iterdir()) == [
            "00-ncu-raw.json",
            "01-ncu-normalized.json",
            "02-candidates-with-current.json",
            "03-candidates-with-evidence.json",
        ]
        assert json.loads((dump_dir / "00-ncu-raw.json").read_text()) == {"lodash": "^4.18.0"}
        normalized = json.loads((dump_dir / "01-ncu-normalized.json").read_text())
        assert normalized == [{"packageFile": "package.json", "packageName": "lodash", "suggestedRange": "^4.18.0"}]
        with_current = json.loads((dump_dir / "02-candidates-with-current.json").read_text())
        assert with_current["package.json"]["dependencies"]["lodash"]["target"]["version"] == "4.18.0"
