"""
Tests for configuration loading and the CLI startup checks.
"""

import pytest
from pathlib import Path

from pydantic import ValidationError

from finance_pro import __version__
from finance_pro.cli import EXIT_CONFIGURATION_ERROR, main
from finance_pro.config import (
    AppSettings,
    ConfigurationError,
    GeminiSettings,
    require_settings,
    validate_all_settings,
)


class TestSettings:
    """Tests for pydantic-settings classes."""

    def test_gemini_defaults(self, clean_env, monkeypatch):
        monkeypatch.setenv("GEMINI_API_KEY", "test-key")

        settings = GeminiSettings()

        assert settings.api_key == "test-key"
        assert settings.temperature == 0.2
        assert settings.history_limit == 15

    def test_settings_are_frozen(self, clean_env):
        settings = GeminiSettings(api_key="test-key")
        with pytest.raises(ValidationError):
            settings.temperature = 0.9

    def test_temperature_bounds(self, clean_env):
        with pytest.raises(ValidationError):
            GeminiSettings(api_key="test-key", temperature=1.5)

    def test_history_limit_above_fifteen_is_rejected(self, clean_env, monkeypatch):
        monkeypatch.setenv("GEMINI_HISTORY_LIMIT", "40")
        with pytest.raises(ValidationError):
            GeminiSettings(api_key="test-key")

    def test_app_paths_use_namespace(self, clean_env, monkeypatch, tmp_path):
        monkeypatch.setenv("DATA_DIR", str(tmp_path / "data"))

        settings = AppSettings()

        assert settings.transactions_path == tmp_path / "data" / "finance_pro_txs.json"
        assert settings.chat_history_path == tmp_path / "data" / "finance_pro_chat.json"

    def test_app_defaults(self, clean_env):
        settings = AppSettings()
        assert settings.data_dir == Path(".data")
        assert settings.max_concurrent_turns == 8


class TestRequireSettings:
    """Startup diagnostics name the missing variables."""

    def test_all_missing_variables_are_listed(self, clean_env):
        with pytest.raises(ConfigurationError) as excinfo:
            require_settings("gemini", "telegram")

        assert excinfo.value.missing == ["GEMINI_API_KEY", "TELEGRAM_TOKEN"]
        assert "GEMINI_API_KEY" in str(excinfo.value)

    def test_only_missing_one_is_listed(self, clean_env, monkeypatch):
        monkeypatch.setenv("GEMINI_API_KEY", "test-key")

        with pytest.raises(ConfigurationError) as excinfo:
            require_settings("gemini", "telegram")

        assert excinfo.value.missing == ["TELEGRAM_TOKEN"]

    def test_loaded_settings_are_returned(self, clean_env, monkeypatch):
        monkeypatch.setenv("GEMINI_API_KEY", "test-key")
        monkeypatch.setenv("TELEGRAM_TOKEN", "123:abc")

        loaded = require_settings("gemini", "telegram")

        assert loaded["gemini"].api_key == "test-key"
        assert loaded["telegram"].token == "123:abc"

    def test_validate_all_settings(self, clean_env, monkeypatch):
        monkeypatch.setenv("GEMINI_API_KEY", "test-key")

        status = validate_all_settings()

        assert status["gemini"] is True
        assert status["telegram"] is False
        assert "TELEGRAM_TOKEN" in status["telegram_error"]
        assert status["app"] is True


class TestCli:
    """Tests for the finance-pro command."""

    def test_version(self, capsys):
        assert main(["--version"]) == 0
        assert capsys.readouterr().out.strip() == __version__

    def test_telegram_without_credentials_is_fatal(self, clean_env, capsys):
        assert main(["telegram"]) == EXIT_CONFIGURATION_ERROR

        err = capsys.readouterr().err
        assert "GEMINI_API_KEY" in err
        assert "TELEGRAM_TOKEN" in err

    def test_check_reports_missing_gemini(self, clean_env, capsys):
        assert main(["check"]) == 1
        out = capsys.readouterr().out
        assert "gemini" in out
        assert "missing" in out

    def test_check_ok_with_gemini(self, clean_env, monkeypatch, capsys):
        monkeypatch.setenv("GEMINI_API_KEY", "test-key")
        assert main(["check"]) == 0
