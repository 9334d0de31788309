"""Tests for depscout.config: Settings with DEPSCOUT_ env prefix."""

import pytest

from depscout.config import Settings


class TestSettingsDefaults:
    def test_default_registry_url(self) -> None:
        s = Settings(_env_file=None)
        assert s.registry_url == "https://registry.npmjs.org"

    def test_default_probe_timeout(self) -> None:
        s = Settings(_env_file=None)
        assert s.probe_timeout_seconds == 5.0

    def test_default_concurrency(self) -> None:
        s = Settings(_env_file=None)
        assert s.max_concurrent_evidence == 20

    def test_default_ncu_command(self) -> None:
        s = Settings(_env_file=None)
        assert s.ncu_command == "npx --yes npm-check-updates"

    def test_default_report_file_name(self) -> None:
        s = Settings(_env_file=None)
        assert s.report_file_name == "next-updates-report.json"


class TestSettingsEnvOverride:
    def test_env_prefix_override(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("DEPSCOUT_REGISTRY_URL", "https://npm.internal.example")
        monkeypatch.setenv("DEPSCOUT_PROBE_TIMEOUT_SECONDS", "2.5")
        monkeypatch.setenv("DEPSCOUT_GITHUB_TOKEN", "ghp_test")
        s = Settings(_env_file=None)
        assert s.registry_url == "https://npm.internal.example"
        assert s.probe_timeout_seconds == 2.5
        assert s.github_token == "ghp_test"

    def test_unprefixed_env_ignored(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("REGISTRY_URL", "https://wrong.example")
        s = Settings(_env_file=None)
        assert s.registry_url == "https://registry.npmjs.org"

    def test_env_file(self, tmp_path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("DEPSCOUT_MAX_CONCURRENT_EVIDENCE", raising=False)
        env_file = tmp_path / ".env"
        env_file.write_text("DEPSCOUT_MAX_CONCURRENT_EVIDENCE=3\n")
        s = Settings(_env_file=str(env_file))
        assert s.max_concurrent_evidence == 3
