"""Tests for settings."""

import pytest
from pydantic import ValidationError

from vitals.config import Settings, get_settings


class TestSettings:
    """Test settings defaults and validation."""

    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("VITALS_DEFAULT_UNIT_SYSTEM", raising=False)

        settings = Settings(_env_file=None)

        assert settings.default_unit_system == "metric"
        assert settings.enforce_authorization is False
        assert settings.tzinfo is None

    def test_environment_variables(self, monkeypatch):
        monkeypatch.setenv("VITALS_DEFAULT_UNIT_SYSTEM", "imperial")
        monkeypatch.setenv("VITALS_ENFORCE_AUTHORIZATION", "true")

        settings = Settings(_env_file=None)

        assert settings.default_unit_system == "imperial"
        assert settings.enforce_authorization is True

    def test_valid_timezone(self):
        settings = Settings(_env_file=None, timezone="Europe/Berlin")

        assert settings.tzinfo.key == "Europe/Berlin"

    def test_unknown_timezone_rejected(self):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, timezone="Mars/Olympus_Mons")

    def test_unknown_unit_system_rejected(self):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, default_unit_system="nautical")

    def test_debug_only_in_development(self):
        assert Settings(_env_file=None, environment="development").debug
        assert not Settings(_env_file=None, environment="production").debug

    def test_get_settings_is_cached(self):
        assert get_settings() is get_settings()
