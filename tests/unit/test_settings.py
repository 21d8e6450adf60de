"""Tests for engine settings."""

import pytest
from flow_config import ConfigurationError, EngineSettings, LogFormat, load_settings_from_env
from pydantic import ValidationError


class TestEngineSettings:
    """Tests for EngineSettings model."""

    def test_defaults(self):
        """Test default settings values."""
        settings = EngineSettings()

        assert settings.session_timeout_seconds == 1800
        assert settings.sweep_interval_seconds == 60.0
        assert settings.session_retention_seconds == 3600
        assert settings.action_timeout_seconds == 5.0
        assert settings.max_prompt_length == 182
        assert settings.action_webhook_url is None
        assert settings.log_level == "INFO"
        assert settings.log_format == LogFormat.CONSOLE

    def test_log_level_is_normalised(self):
        """Test that log level names are upper-cased."""
        assert EngineSettings(log_level="debug").log_level == "DEBUG"

    def test_unknown_log_level_fails(self):
        """Test that unknown log levels are rejected."""
        with pytest.raises(ValidationError) as exc_info:
            EngineSettings(log_level="chatty")

        assert "not supported" in str(exc_info.value)

    def test_timeout_must_be_positive(self):
        """Test that a zero session timeout is rejected."""
        with pytest.raises(ValidationError):
            EngineSettings(session_timeout_seconds=0)


class TestLoadSettingsFromEnv:
    """Tests for load_settings_from_env function."""

    def test_reads_ussd_variables(self, monkeypatch):
        """Test that USSD_* variables are mapped onto settings."""
        monkeypatch.setenv("USSD_SESSION_TIMEOUT_SECONDS", "120")
        monkeypatch.setenv("USSD_ACTION_TIMEOUT_SECONDS", "1.5")
        monkeypatch.setenv("USSD_ACTION_WEBHOOK_URL", "https://hooks.example.com/ussd")
        monkeypatch.setenv("USSD_LOG_FORMAT", "json")
        monkeypatch.setenv("SESSION_TIMEOUT_SECONDS", "5")

        settings = load_settings_from_env()

        assert settings.session_timeout_seconds == 120
        assert settings.action_timeout_seconds == 1.5
        assert settings.action_webhook_url == "https://hooks.example.com/ussd"
        assert settings.log_format == LogFormat.JSON

    def test_empty_values_use_defaults(self, monkeypatch):
        """Test that empty variables fall back to defaults."""
        monkeypatch.setenv("USSD_SESSION_TIMEOUT_SECONDS", "")

        assert load_settings_from_env().session_timeout_seconds == 1800

    def test_invalid_value_raises_configuration_error(self, monkeypatch):
        """Test that invalid values are reported as configuration errors."""
        monkeypatch.setenv("USSD_SESSION_TIMEOUT_SECONDS", "soon")

        with pytest.raises(ConfigurationError) as exc_info:
            load_settings_from_env()

        assert "Invalid engine settings" in str(exc_info.value)

    def test_keyword_arguments_override_environment(self, monkeypatch):
        """Test that explicit values win over the environment."""
        monkeypatch.setenv("USSD_MAX_PROMPT_LENGTH", "160")

        assert EngineSettings().max_prompt_length == 160
        assert EngineSettings(max_prompt_length=140).max_prompt_length == 140

    def test_reads_dotenv_file(self, monkeypatch, tmp_path):
        """Test that a .env file in the working directory is read."""
        (tmp_path / ".env").write_text("USSD_SWEEP_INTERVAL_SECONDS=15\nHOST=0.0.0.0\n")
        monkeypatch.chdir(tmp_path)

        assert load_settings_from_env().sweep_interval_seconds == 15.0
