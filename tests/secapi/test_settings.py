"""Tests for secapi/config/settings.py."""

import pytest

from secapi.config.constants import DEFAULT_BASE_URL
from secapi.config.settings import ClientSettings, get_settings, load_settings
from secapi.core.errors import ConfigurationError

API_KEY = "test_api_key_12345"


class TestDefaults:
    def test_defaults(self):
        settings = load_settings(api_key=API_KEY, _env_file=None)
        assert settings.base_url == DEFAULT_BASE_URL
        assert settings.request_timeout == 30
        assert settings.retry_max_attempts == 5
        assert settings.retry_initial_delay == 1.0
        assert settings.retry_max_delay == 60.0
        assert settings.retry_backoff_factor == 2
        assert settings.rate_limit_threshold == 0.1
        assert settings.queue_default_wait == 60.0
        assert settings.queue_wait_warning_threshold == 300.0


class TestEnvironment:
    def test_reads_prefixed_env(self, monkeypatch):
        monkeypatch.setenv("SECAPI_API_KEY", API_KEY)
        monkeypatch.setenv("SECAPI_RETRY_MAX_ATTEMPTS", "2")
        settings = ClientSettings(_env_file=None)
        assert settings.api_key == API_KEY
        assert settings.retry_max_attempts == 2

    def test_override_beats_env(self, monkeypatch):
        monkeypatch.setenv("SECAPI_API_KEY", API_KEY)
        settings = load_settings(api_key="another_key_67890", _env_file=None)
        assert settings.api_key == "another_key_67890"

    def test_get_settings_cached(self, monkeypatch):
        monkeypatch.setenv("SECAPI_API_KEY", API_KEY)
        assert get_settings() is get_settings()


class TestValidation:
    """Invalid values raise ConfigurationError."""

    def test_missing_api_key(self):
        with pytest.raises(ConfigurationError, match="api_key is required"):
            load_settings(_env_file=None)

    def test_placeholder_api_key(self):
        with pytest.raises(ConfigurationError, match="placeholder"):
            load_settings(api_key="your_api_key_here", _env_file=None)

    def test_short_api_key(self):
        with pytest.raises(ConfigurationError, match="too short"):
            load_settings(api_key="short", _env_file=None)

    def test_max_delay_below_initial(self):
        with pytest.raises(ConfigurationError, match="retry_max_delay"):
            load_settings(api_key=API_KEY, retry_initial_delay=10, retry_max_delay=5, _env_file=None)

    @pytest.mark.parametrize(
        "field,value",
        [
            ("request_timeout", 0),
            ("retry_max_attempts", 0),
            ("retry_backoff_factor", 1.5),
            ("rate_limit_threshold", 1.5),
            ("rate_limit_threshold", -0.1),
            ("queue_default_wait", 0),
        ],
    )
    def test_out_of_range(self, field, value):
        with pytest.raises(ConfigurationError, match=field):
            load_settings(api_key=API_KEY, _env_file=None, **{field: value})

    def test_error_is_permanent(self):
        with pytest.raises(ConfigurationError) as exc_info:
            load_settings(_env_file=None)
        assert exc_info.value.is_retryable is False


class TestMaskedKey:
    def test_masks_all_but_last_four(self):
        settings = load_settings(api_key=API_KEY, _env_file=None)
        assert settings.masked_api_key() == "*" * (len(API_KEY) - 4) + "2345"
