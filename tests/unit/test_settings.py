"""
Unit tests for settings loading and validation.
"""

import subprocess
from pathlib import Path

import pytest

from resale_dashboard.config import (
    ReportingSettings,
    Settings,
    check_sops_installed,
    clear_settings_cache,
    env_overrides,
    get_settings,
    load_config,
    read_config_file,
)
from resale_dashboard.config import sops_loader
from resale_dashboard.config.constants import DEFAULT_DB_PATH
from resale_dashboard.config.sops_loader import ENV_KEYS
from resale_dashboard.storage.sqlite_backend import SQLiteBackend


@pytest.fixture(autouse=True)
def fresh_settings():
    clear_settings_cache()
    yield
    clear_settings_cache()


class TestReportingSettings:
    def test_defaults(self):
        settings = ReportingSettings()

        assert settings.platform_fee_rate == 0.10
        assert settings.slow_moving_days == 60
        assert settings.slow_moving_limit == 10
        assert settings.top_n_limit == 5
        assert settings.validate() == []

    def test_validate_rejects_bad_values(self):
        settings = ReportingSettings(
            platform_fee_rate=1.5, slow_moving_days=-1, slow_moving_limit=0, top_n_limit=0
        )

        assert len(settings.validate()) == 4

    def test_round_trip_through_dict(self):
        settings = ReportingSettings(platform_fee_rate=0.08, top_n_limit=3)

        assert ReportingSettings.from_dict(settings.to_dict()) == settings

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("REPORTING_PLATFORM_FEE_RATE", "0.05")
        monkeypatch.setenv("REPORTING_SLOW_MOVING_DAYS", "not-a-number")

        settings = ReportingSettings.from_env()

        assert settings.platform_fee_rate == 0.05
        assert settings.slow_moving_days == 60


class TestSettings:
    def test_remote_requires_credentials(self):
        errors = Settings(storage_backend="remote").validate()

        assert any("remote.url" in e for e in errors)
        assert any("remote.api_key" in e for e in errors)

    def test_unknown_backend(self):
        assert Settings(storage_backend="bigquery").validate()

    def test_from_dict(self):
        settings = Settings.from_dict(
            {
                "storage": {"backend": "remote"},
                "remote": {"url": "https://db.example.co", "api_key": "key"},
                "reporting": {"slow_moving_days": 90},
            }
        )

        assert settings.storage_backend == "remote"
        assert settings.remote_url == "https://db.example.co"
        assert settings.reporting.slow_moving_days == 90
        assert settings.validate() == []

    def test_default_database_path(self, tmp_path, monkeypatch):
        """Settings and the SQLite backend should share one default path."""
        monkeypatch.chdir(tmp_path)

        assert Settings().sqlite_db_path == DEFAULT_DB_PATH
        assert Settings.from_dict({}).sqlite_db_path == DEFAULT_DB_PATH
        assert SQLiteBackend().db_path == Path(DEFAULT_DB_PATH)

    def test_to_dict_matches_config_shape(self):
        settings = Settings(storage_backend="remote", remote_url="https://db.example.co")

        assert Settings.from_dict(settings.to_dict()) == settings

    def test_get_settings_falls_back_to_env(self, monkeypatch, tmp_path):
        monkeypatch.setenv("STORAGE_BACKEND", "sqlite")
        monkeypatch.setenv("SQLITE_DB_PATH", str(tmp_path / "env.db"))

        settings = get_settings(str(tmp_path / "missing.enc.yaml"))

        assert settings.sqlite_db_path == str(tmp_path / "env.db")


class TestConfigLoading:
    """Tests for YAML config files and environment overrides."""

    @pytest.fixture(autouse=True)
    def clean_env(self, monkeypatch):
        for var, _ in ENV_KEYS.values():
            monkeypatch.delenv(var, raising=False)

    @pytest.fixture
    def config_file(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text(
            "storage:\n"
            "  backend: remote\n"
            "remote:\n"
            "  url: https://db.example.co\n"
            "  api_key: from-file\n"
            "reporting:\n"
            "  slow_moving_days: 90\n"
        )
        return path

    def test_plain_yaml_file(self, config_file):
        config = load_config(config_file)

        assert config["remote"]["api_key"] == "from-file"
        assert config["reporting"]["slow_moving_days"] == 90

    def test_env_overrides_file(self, config_file, monkeypatch):
        monkeypatch.setenv("REMOTE_API_KEY", "from-env")
        monkeypatch.setenv("REPORTING_TOP_N_LIMIT", "3")

        config = load_config(config_file)

        assert config["remote"] == {"url": "https://db.example.co", "api_key": "from-env"}
        assert config["reporting"] == {"slow_moving_days": 90, "top_n_limit": 3}

    def test_unparseable_env_value_is_ignored(self, monkeypatch):
        monkeypatch.setenv("REPORTING_SLOW_MOVING_DAYS", "soon")
        monkeypatch.setenv("REMOTE_URL", "https://db.example.co")

        assert env_overrides() == {"remote": {"url": "https://db.example.co"}}

    def test_missing_file_uses_env_only(self, tmp_path, monkeypatch):
        monkeypatch.setenv("STORAGE_BACKEND", "remote")

        config = load_config(tmp_path / "missing.yaml")

        assert config == {"storage": {"backend": "remote"}}

    def test_top_level_must_be_mapping(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("- just\n- a list\n")

        with pytest.raises(RuntimeError, match="mapping"):
            read_config_file(path)

    def test_encrypted_file_is_decrypted(self, tmp_path, monkeypatch):
        path = tmp_path / "config.enc.yaml"
        path.write_text("remote:\n  api_key: ENC[AES256_GCM,data:xyz]\nsops:\n  version: 3.8.1\n")
        calls = []

        def fake_run(args, **kwargs):
            calls.append(args)
            return subprocess.CompletedProcess(args, 0, stdout="remote:\n  api_key: plain\n")

        monkeypatch.setattr(sops_loader.subprocess, "run", fake_run)

        config = read_config_file(path)

        assert calls == [["sops", "-d", str(path)]]
        assert config == {"remote": {"api_key": "plain"}}

    def test_encrypted_file_without_sops_falls_back(self, tmp_path, monkeypatch):
        path = tmp_path / "config.enc.yaml"
        path.write_text("remote:\n  api_key: ENC[AES256_GCM,data:xyz]\nsops:\n  version: 3.8.1\n")
        monkeypatch.setenv("REMOTE_URL", "https://db.example.co")

        def missing_binary(args, **kwargs):
            raise FileNotFoundError("sops")

        monkeypatch.setattr(sops_loader.subprocess, "run", missing_binary)

        assert load_config(path) == {"remote": {"url": "https://db.example.co"}}
        assert not check_sops_installed()
