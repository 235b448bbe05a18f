"""Tests for sitemap_audit.settings and sitemap_audit.cli_config."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import MagicMock

from sitemap_audit.cli_config import load_config
from sitemap_audit.settings import DEFAULT_BASE_URL, DEFAULT_USER_AGENT, load_settings


class TestLoadSettings:
    def test_defaults(self):
        settings = load_settings({})
        assert settings.base_url == DEFAULT_BASE_URL
        assert settings.user_agent == DEFAULT_USER_AGENT
        assert settings.input_csv == "goodparty_sitemap_urls.csv"
        assert settings.groupings_csv == "election_groupings.csv"
        assert settings.output_dir == "csv_output"
        assert settings.concurrency == 10
        assert settings.timeout == 10.0
        assert settings.fetch_timeout == 30.0

    def test_overrides(self):
        settings = load_settings(
            {
                "SITEMAP_AUDIT_BASE_URL": "https://staging.example.com",
                "SITEMAP_AUDIT_CONCURRENCY": "4",
                "SITEMAP_AUDIT_TIMEOUT": "2.5",
                "SITEMAP_AUDIT_OUTPUT_DIR": "reports",
            }
        )
        assert settings.base_url == "https://staging.example.com"
        assert settings.concurrency == 4
        assert settings.timeout == 2.5
        assert settings.output_dir == "reports"

    def test_invalid_numbers_fall_back(self, caplog):
        settings = load_settings(
            {"SITEMAP_AUDIT_CONCURRENCY": "many", "SITEMAP_AUDIT_FETCH_TIMEOUT": "slow"}
        )
        assert settings.concurrency == 10
        assert settings.fetch_timeout == 30.0
        assert "SITEMAP_AUDIT_CONCURRENCY" in caplog.text

    def test_reads_process_environment(self, monkeypatch):
        monkeypatch.setenv("SITEMAP_AUDIT_USER_AGENT", "probe/1.0")
        assert load_settings().user_agent == "probe/1.0"


class TestLoadConfig:
    def test_prefers_local_env(self, tmp_path):
        (tmp_path / ".env").write_text("SITEMAP_AUDIT_CONCURRENCY=3\n")
        load_env = MagicMock()
        copy_file = MagicMock()

        load_config(
            config_dir=tmp_path / "cfg",
            config_env_file=tmp_path / "cfg" / ".env",
            cwd=tmp_path,
            load_env=load_env,
            copy_file=copy_file,
        )

        load_env.assert_called_once_with(tmp_path / ".env")
        copy_file.assert_not_called()

    def test_falls_back_to_user_config(self, tmp_path):
        config_dir = tmp_path / "cfg"
        config_dir.mkdir()
        config_file = config_dir / ".env"
        config_file.write_text("SITEMAP_AUDIT_TIMEOUT=5\n")
        load_env = MagicMock()

        load_config(
            config_dir=config_dir,
            config_env_file=config_file,
            cwd=tmp_path / "elsewhere",
            load_env=load_env,
            copy_file=MagicMock(),
        )

        load_env.assert_called_once_with(config_file)

    def test_seeds_user_config_from_example(self, tmp_path):
        config_dir = tmp_path / "cfg"
        config_file = config_dir / ".env"
        load_env = MagicMock()
        copy_file = MagicMock()

        load_config(
            config_dir=config_dir,
            config_env_file=config_file,
            cwd=tmp_path,
            load_env=load_env,
            copy_file=copy_file,
        )

        example = Path(__file__).resolve().parent.parent / ".env.example"
        copy_file.assert_called_once()
        assert copy_file.call_args[0][0].resolve() == example
        assert copy_file.call_args[0][1] == config_file
        load_env.assert_called_once_with(config_file)
        assert config_dir.is_dir()

    def test_copy_failure_is_not_fatal(self, tmp_path):
        load_env = MagicMock()

        load_config(
            config_dir=tmp_path / "cfg",
            config_env_file=tmp_path / "cfg" / ".env",
            cwd=tmp_path,
            load_env=load_env,
            copy_file=MagicMock(side_effect=OSError("read-only")),
        )

        load_env.assert_not_called()
