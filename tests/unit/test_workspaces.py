"""Tests for depscout.core.workspaces."""

import json
from pathlib import Path

from depscout.core.workspaces import (
    detect_workspace_patterns,
    has_workspace_config,
    read_root_package_json,
    resolve_scope_effective,
)
from depscout.models.schemas import Scope


class TestReadRootPackageJson:
    def test_reads_object(self, sample_project_path: Path) -> None:
        pkg = read_root_package_json(sample_project_path)
        assert pkg is not None
        assert pkg["name"] == "sample"

    def test_missing_file(self, tmp_path: Path) -> None:
        assert read_root_package_json(tmp_path) is None

    def test_invalid_json(self, tmp_path: Path) -> None:
        (tmp_path / "package.json").write_text("{")
        assert read_root_package_json(tmp_path) is None

    def test_non_object(self, tmp_path: Path) -> None:
        (tmp_path / "package.json").write_text('"hello"')
        assert read_root_package_json(tmp_path) is None


class TestDetectWorkspacePatterns:
    def test_array_form(self, workspace_project_path: Path) -> None:
        assert detect_workspace_patterns(workspace_project_path) == ["packages/*"]

    def test_object_form(self, tmp_path: Path) -> None:
        (tmp_path / "package.json").write_text(json.dumps({"workspaces": {"packages": ["apps/*", "libs/*"]}}))
        assert detect_workspace_patterns(tmp_path) == ["apps/*", "libs/*"]

    def test_pnpm_workspace_merged_and_deduplicated(self, workspace_project_path: Path) -> None:
        (workspace_project_path / "pnpm-workspace.yaml").write_text("packages:\n  - 'packages/*'\n  - 'tools/*'\n")
        assert detect_workspace_patterns(workspace_project_path) == ["packages/*", "tools/*"]

    def test_explicit_package_json_is_used(self, tmp_path: Path) -> None:
        assert detect_workspace_patterns(tmp_path, {"workspaces": ["b/*", "a/*", ""]}) == ["a/*", "b/*"]

    def test_no_workspaces(self, sample_project_path: Path) -> None:
        assert detect_workspace_patterns(sample_project_path) == []
        assert has_workspace_config(sample_project_path) is False

    def test_invalid_pnpm_workspace_ignored(self, sample_project_path: Path) -> None:
        (sample_project_path / "pnpm-workspace.yaml").write_text("packages: [\n")
        assert has_workspace_config(sample_project_path) is False


class TestResolveScopeEffective:
    def test_workspaces_available_keeps_scope(self) -> None:
        assert resolve_scope_effective(Scope.ALL, True) == Scope.ALL
        assert resolve_scope_effective(Scope.WORKSPACES, True) == Scope.WORKSPACES

    def test_falls_back_to_root(self) -> None:
        assert resolve_scope_effective(Scope.ALL, False) == Scope.ROOT
        assert resolve_scope_effective(Scope.WORKSPACES, False) == Scope.ROOT

    def test_root_is_always_root(self) -> None:
        assert resolve_scope_effective(Scope.ROOT, False) == Scope.ROOT
        assert resolve_scope_effective(Scope.ROOT, True) == Scope.ROOT
