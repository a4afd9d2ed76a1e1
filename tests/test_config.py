"""Settings from WAGUI_* environment variables."""

import pytest
from pydantic import ValidationError

from wagui.config import Settings, get_settings


def test_defaults(monkeypatch):
    for name in ("WAGUI_PORT", "WAGUI_LINT_COMMAND", "WAGUI_CORS_ORIGINS"):
        monkeypatch.delenv(name, raising=False)
    settings = Settings(_env_file=None)
    assert settings.port == 3099
    assert settings.lint_command == "pnpm lint"
    assert settings.test_command == "pnpm test"
    assert settings.sse_backlog_limit == 50
    assert settings.transcript_poll_interval_seconds == 0.5
    assert settings.cors_origins_list == ["*"]
    assert settings.transcripts_root.endswith("projects")


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("WAGUI_PORT", "4000")
    monkeypatch.setenv("WAGUI_LOG_LEVEL", "debug")
    monkeypatch.setenv("WAGUI_CORS_ORIGINS", "http://localhost:5173, http://127.0.0.1:5173")
    settings = Settings(_env_file=None)
    assert settings.port == 4000
    assert settings.log_level == "DEBUG"
    assert settings.cors_origins_list == ["http://localhost:5173", "http://127.0.0.1:5173"]


def test_get_settings_is_cached(monkeypatch):
    get_settings.cache_clear()
    try:
        assert get_settings() is get_settings()
    finally:
        get_settings.cache_clear()


@pytest.mark.parametrize("field, value", [("log_level", "LOUD"), ("command_timeout_seconds", 0)])
def test_invalid_values(field, value):
    with pytest.raises(ValidationError):
        Settings(_env_file=None, **{field: value})
