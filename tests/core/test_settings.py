"""Tests for RecurSettings."""

import pydantic
import pytest

from recur.core.settings import RecurSettings, get_settings


class TestRecurSettings:
    def test_defaults(self, monkeypatch):
        for var in ("RECUR_LOG_LEVEL", "RECUR_MAX_WORKERS", "RECUR_JSON_LOGS"):
            monkeypatch.delenv(var, raising=False)

        settings = RecurSettings(_env_file=None)

        assert settings.log_level == "INFO"
        assert settings.json_logs is None
        assert settings.service_name == "recur"
        assert settings.max_workers == 8
        assert settings.shutdown_timeout_seconds == 5.0

    def test_env_overrides(self, monkeypatch):
        monkeypatch.setenv("RECUR_LOG_LEVEL", "debug")
        monkeypatch.setenv("RECUR_MAX_WORKERS", "2")
        monkeypatch.setenv("RECUR_JSON_LOGS", "true")

        settings = RecurSettings(_env_file=None)

        assert settings.log_level == "DEBUG"
        assert settings.max_workers == 2
        assert settings.json_logs is True

    def test_invalid_log_level(self):
        with pytest.raises(pydantic.ValidationError):
            RecurSettings(log_level="LOUD", _env_file=None)

    @pytest.mark.parametrize("workers", [0, -1])
    def test_invalid_max_workers(self, workers):
        with pytest.raises(pydantic.ValidationError):
            RecurSettings(max_workers=workers, _env_file=None)

    def test_negative_shutdown_timeout(self):
        with pytest.raises(pydantic.ValidationError):
            RecurSettings(shutdown_timeout_seconds=-1, _env_file=None)

    def test_get_settings_is_cached(self):
        assert get_settings() is get_settings()
