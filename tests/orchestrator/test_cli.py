"""
Tests for the CLI entry point and settings.
"""

import sys

import pytest

from core.exceptions import ConfigurationError
from orchestrator.cli import load_settings, main
from orchestrator.models import ComposeSettings


# ============================================================
# FIXTURES
# ============================================================

SETTINGS_VARIABLES = (
    "SLS_COMPOSE_LOG_LEVEL",
    "SLS_COMPOSE_LOG_FORMAT",
    "SLS_TELEMETRY_URL",
    "SLS_TELEMETRY_DISABLED",
    "SLS_TRACKING_DISABLED",
    "SLS_TELEMETRY_TIMEOUT",
    "SLS_COMPOSE_TELEMETRY_DIR",
    "SLS_COMPOSE_MAX_RESOLUTION_PASSES",
    "SLS_COMPOSE_FRAMEWORK",
)


@pytest.fixture
def clean_env(monkeypatch, tmp_path):
    """Empty settings environment, working directory without .env."""
    for name in SETTINGS_VARIABLES:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("SLS_COMPOSE_TELEMETRY_DIR", str(tmp_path / "telemetry"))
    # The CLI leaves its excepthook installed for errors escaping the loop
    monkeypatch.setattr(sys, "excepthook", sys.excepthook)
    return tmp_path


# ============================================================
# SETTINGS TESTS
# ============================================================

class TestSettings:
    """Tests for ComposeSettings."""

    def test_defaults(self, clean_env):
        settings = ComposeSettings.from_env()

        assert settings.log_level == "INFO"
        assert settings.telemetry_url is None
        assert not settings.telemetry_disabled
        assert settings.max_resolution_passes == 100
        assert settings.framework_executable == "serverless"
        assert settings.validate() == []

    def test_from_env(self, clean_env, monkeypatch):
        monkeypatch.setenv("SLS_TELEMETRY_URL", "https://telemetry.example.com")
        monkeypatch.setenv("SLS_TRACKING_DISABLED", "true")
        monkeypatch.setenv("SLS_COMPOSE_MAX_RESOLUTION_PASSES", "10")

        settings = ComposeSettings.from_env()

        assert settings.telemetry_url == "https://telemetry.example.com"
        assert settings.telemetry_disabled
        assert settings.max_resolution_passes == 10

    def test_validate(self):
        settings = ComposeSettings(log_format="xml", max_resolution_passes=0)

        assert len(settings.validate()) == 2

    def test_dotenv_loaded(self, clean_env, monkeypatch):
        (clean_env / ".env").write_text("SLS_COMPOSE_FRAMEWORK=sls-local\n", encoding="utf-8")
        monkeypatch.delenv("SLS_COMPOSE_FRAMEWORK", raising=False)

        try:
            assert load_settings().framework_executable == "sls-local"
        finally:
            monkeypatch.delenv("SLS_COMPOSE_FRAMEWORK", raising=False)

    def test_malformed_setting(self, clean_env, monkeypatch):
        monkeypatch.setenv("SLS_COMPOSE_MAX_RESOLUTION_PASSES", "many")

        with pytest.raises(ConfigurationError):
            load_settings()

    def test_invalid_setting(self, clean_env, monkeypatch):
        monkeypatch.setenv("SLS_COMPOSE_MAX_RESOLUTION_PASSES", "0")

        with pytest.raises(ConfigurationError) as exc_info:
            load_settings()

        assert "max_resolution_passes" in exc_info.value.message


# ============================================================
# MAIN TESTS
# ============================================================

class TestMain:
    """Tests for the entry point."""

    def test_help(self, clean_env, capsys):
        assert main(["help"]) == 0
        assert "Usage" in capsys.readouterr().out

    def test_missing_configuration(self, clean_env):
        assert main(["deploy"]) == 1

    def test_invalid_settings(self, clean_env, monkeypatch, capsys):
        monkeypatch.setenv("SLS_COMPOSE_LOG_FORMAT", "xml")

        assert main(["deploy"]) == 1
        assert "Error: Invalid settings" in capsys.readouterr().err
