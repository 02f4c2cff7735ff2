"""Configuration Tests."""

from relay_config.settings import Settings


def test_settings_load_defaults(monkeypatch):
    """Test settings load with defaults."""
    monkeypatch.delenv("TOOLRELAY_API_ENDPOINT", raising=False)
    settings = Settings(_env_file=None)

    assert settings.API_ENDPOINT == "https://api.inferable.ai"
    assert settings.POLL_LIMIT == 10
    assert settings.MAX_CONSECUTIVE_POLL_FAILURES == 50
    assert settings.RUN_POLL_MAX_WAIT_SECONDS == 60.0
    assert settings.RUN_POLL_INTERVAL_SECONDS == 0.5


def test_settings_read_prefixed_env(monkeypatch):
    monkeypatch.setenv("TOOLRELAY_API_SECRET", "sk_from_env")
    monkeypatch.setenv("TOOLRELAY_POLL_LIMIT", "25")

    settings = Settings(_env_file=None)

    assert settings.API_SECRET == "sk_from_env"
    assert settings.POLL_LIMIT == 25
