"""Tests for the CLI interface."""

import json
from unittest.mock import AsyncMock, patch

from typer.testing import CliRunner

from depscout.interfaces.cli import app
from depscout.models.errors import ManifestError
from depscout.models.schemas import (
    DependencyType,
    DepFilter,
    PackageDetails,
    Report,
    ReportOptions,
    RiskFilter,
    Scope,
    Target,
    VersionSpec,
)

runner = CliRunner()


def _make_report(with_package: bool = True) -> Report:
    packages = {}
    if with_package:
        packages = {
            "package.json": {
                DependencyType.DEPENDENCIES: {
                    "lodash": PackageDetails(
                        current=VersionSpec(range="^4.17.0", version="4.17.21"),
                        target=VersionSpec(range="^4.18.0", version="4.18.0"),
                    )
                }
            }
        }
    return Report(
        generated_at="2026-01-01T00:00:00+00:00",
        options=ReportOptions(
            scope_requested=Scope.ALL,
            scope_effective=Scope.ROOT,
            target=Target.LATEST,
            dep=DepFilter.ALL,
            risk=RiskFilter.ALL,
        ),
        packages=packages,
    )


class TestNextUpdatesCommand:
    def test_prints_markdown_by_default(self, tmp_path) -> None:
        with patch(
            "depscout.interfaces.cli.run_analysis",
            new_callable=AsyncMock,
            return_value=_make_report(),
        ) as mock_analyze:
            result = runner.invoke(app, ["next-updates", str(tmp_path)])

        assert result.exit_code == 0
        mock_analyze.assert_called_once_with(
            str(tmp_path), Scope.ALL, Target.LATEST, DepFilter.ALL, RiskFilter.ALL, debug_dump_dir=None
        )
        assert "# next-updates" in result.output
        assert "`lodash`" in result.output

    def test_options_forwarded(self, tmp_path) -> None:
        with patch(
            "depscout.interfaces.cli.run_analysis",
            new_callable=AsyncMock,
            return_value=_make_report(),
        ) as mock_analyze:
            result = runner.invoke(
                app,
                [
                    "next-updates",
                    str(tmp_path),
                    "--scope",
                    "workspaces",
                    "--target",
                    "minor",
                    "--dep",
                    "devDependencies",
                    "--risk",
                    "non-major",
                    "--debug-dir",
                    "dumps",
                ],
            )

        assert result.exit_code == 0
        mock_analyze.assert_called_once_with(
            str(tmp_path),
            Scope.WORKSPACES,
            Target.MINOR,
            DepFilter.DEV_DEPENDENCIES,
            RiskFilter.NON_MAJOR,
            debug_dump_dir="dumps",
        )

    def test_json_format_writes_report_file(self, tmp_path) -> None:
        with patch(
            "depscout.interfaces.cli.run_analysis",
            new_callable=AsyncMock,
            return_value=_make_report(),
        ):
            result = runner.invoke(app, ["next-updates", str(tmp_path), "--format", "json"])

        assert result.exit_code == 0
        out_file = tmp_path / "next-updates-report.json"
        assert out_file.exists()
        data = json.loads(out_file.read_text())
        assert data["options"]["scopeEffective"] == "root"
        assert data["packages"]["package.json"]["dependencies"]["lodash"]["target"]["version"] == "4.18.0"

    def test_json_format_with_output_name(self, tmp_path) -> None:
        with patch(
            "depscout.interfaces.cli.run_analysis",
            new_callable=AsyncMock,
            return_value=_make_report(),
        ):
            result = runner.invoke(app, ["next-updates", str(tmp_path), "-f", "json", "-o", "custom.json"])

        assert result.exit_code == 0
        assert (tmp_path / "custom.json").exists()
        assert not (tmp_path / "next-updates-report.json").exists()

    def test_markdown_output_file(self, tmp_path) -> None:
        with patch(
            "depscout.interfaces.cli.run_analysis",
            new_callable=AsyncMock,
            return_value=_make_report(),
        ):
            result = runner.invoke(app, ["next-updates", str(tmp_path), "--output", "updates.md"])

        assert result.exit_code == 0
        assert (tmp_path / "updates.md").read_text().startswith("# next-updates\n")

    def test_table_format(self, tmp_path) -> None:
        with patch(
            "depscout.interfaces.cli.run_analysis",
            new_callable=AsyncMock,
            return_value=_make_report(with_package=False),
        ):
            result = runner.invoke(app, ["next-updates", str(tmp_path), "--format", "table"])

        assert result.exit_code == 0
        assert "No updates found." in result.output

    def test_nonexistent_path_fails(self) -> None:
        result = runner.invoke(app, ["next-updates", "/nonexistent/path/that/does/not/exist"])
        assert result.exit_code == 1
        assert "does not exist" in result.output

    def test_analysis_error_exits_nonzero(self, tmp_path) -> None:
        with patch(
            "depscout.interfaces.cli.run_analysis",
            new_callable=AsyncMock,
            side_effect=ManifestError("Invalid package.json"),
        ):
            result = runner.invoke(app, ["next-updates", str(tmp_path)])

        assert result.exit_code == 1
        assert "Invalid package.json" in result.output

    def test_invalid_option_value_rejected(self, tmp_path) -> None:
        result = runner.invoke(app, ["next-updates", str(tmp_path), "--risk", "scary"])
        assert result.exit_code != 0


class TestGuideCommand:
    def test_prints_guide_for_workspace_repo(self, workspace_project_path) -> None:
        result = runner.invoke(app, ["guide", str(workspace_project_path)])

        assert result.exit_code == 0
        assert result.output.startswith("# next-updates agent guide\n")
        assert "- Repo: monorepo" in result.output
        assert "- Workspaces: packages/*" in result.output
        assert "- Repo size: large" in result.output

    def test_output_file(self, sample_project_path) -> None:
        (sample_project_path / "yarn.lock").write_text("")
        result = runner.invoke(app, ["guide", str(sample_project_path), "--output", "AGENT_GUIDE.md"])

        assert result.exit_code == 0
        text = (sample_project_path / "AGENT_GUIDE.md").read_text()
        assert "- Package manager: yarn" in text
        assert "Recommended: root tools (sample-project/package.json)" in text

    def test_missing_directory_fails(self, tmp_path) -> None:
        result = runner.invoke(app, ["guide", str(tmp_path / "nope")])
        assert result.exit_code == 1


class TestInitCommand:
    def test_creates_env_file(self, tmp_path, monkeypatch) -> None:
        monkeypatch.chdir(tmp_path)
        result = runner.invoke(app, ["init"])
        assert result.exit_code == 0
        content = (tmp_path / ".env").read_text()
        assert "DEPSCOUT_REGISTRY_URL" in content
        assert "DEPSCOUT_GITHUB_TOKEN" in content

    def test_does_not_overwrite(self, tmp_path, monkeypatch) -> None:
        monkeypatch.chdir(tmp_path)
        (tmp_path / ".env").write_text("EXISTING=1\n")
        result = runner.invoke(app, ["init"])
        assert result.exit_code == 0
        assert "already exists" in result.output
        assert (tmp_path / ".env").read_text() == "EXISTING=1\n"


class TestServeCommand:
    def test_runs_mcp_server(self) -> None:
        with patch("depscout.interfaces.mcp_server.mcp") as mock_mcp:
            result = runner.invoke(app, ["serve"])
        assert result.exit_code == 0
        mock_mcp.run.assert_called_once_with()
