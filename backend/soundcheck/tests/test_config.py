import pytest

from soundcheck.config import Settings, load_settings


def test_defaults_when_environment_is_empty(monkeypatch):
    for name in ("DATABASE_URL", "OPENAI_API_KEY", "GEOCODE_ENABLED", "SCRAPER_DETAIL_DELAY"):
        monkeypatch.delenv(name, raising=False)
    settings = load_settings()
    assert settings.database_url is None
    assert settings.detail_delay == 1.5
    assert settings.geocode_enabled is False
    assert settings.geocode_user_agent == "SoundCheck-Scraper/1.0"


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("DATABASE_URL", "sqlite:///x.db")
    monkeypatch.setenv("GEOCODE_ENABLED", "yes")
    monkeypatch.setenv("SCRAPER_MAX_CONSECUTIVE_FAILURES", "2")
    settings = load_settings()
    assert settings.require_database() == "sqlite:///x.db"
    assert settings.geocode_enabled is True
    assert settings.max_consecutive_failures == 2


def test_required_values_raise():
    with pytest.raises(RuntimeError, match="DATABASE_URL"):
        Settings().require_database()
    with pytest.raises(RuntimeError, match="OPENAI_API_KEY"):
        Settings().require_llm()


def test_allowed_origins_are_split_on_commas(monkeypatch):
    monkeypatch.setenv("API_ALLOWED_ORIGINS", "https://soundcheck.tw, http://localhost:8081,")
    assert load_settings().api_allowed_origins == ("https://soundcheck.tw", "http://localhost:8081")
