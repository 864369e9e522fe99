"""Shared pytest configuration for the Parallax suite."""

import os

import pytest

# Settings refuse to load without these; real values in the environment win
_REQUIRED_ENV = {
    "ANTHROPIC_API_KEY": "test-anthropic-key",
    "SUPABASE_URL": "https://test.supabase.co",
    "SUPABASE_KEY": "test-supabase-key",
}


@pytest.fixture(autouse=True, scope="session")
def _settings_env():
    """Provide dummy credentials for the whole session.

    Uses a session-level MonkeyPatch so every variable is restored on exit,
    and clears the cached settings on both sides of the run.
    """
    from parallax.config import get_settings

    with pytest.MonkeyPatch.context() as mp:
        for key, value in _REQUIRED_ENV.items():
            if key not in os.environ:
                mp.setenv(key, value)
        get_settings.cache_clear()
        yield
    get_settings.cache_clear()
