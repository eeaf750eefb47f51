"""Tests for configuration management module.

Tests cover:
- Settings defaults
- Environment variable overrides
- Field validators (log_level, log_format, ports, timeouts)
- Settings caching (lru_cache)
"""

from __future__ import annotations

import os

import pytest
from pydantic import ValidationError

from latency_common.config import Settings, get_settings

pytestmark = pytest.mark.unit


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def clean_env(monkeypatch, tmp_path):
    """Provide a clean environment without config-related vars."""
    for var in ["LOG_LEVEL", "LOG_FORMAT", "NATS_URL", "METRICS_PORT", "REQUEST_TIMEOUT"]:
        monkeypatch.delenv(var, raising=False)
        monkeypatch.delenv(var.lower(), raising=False)
    # keep a developer's .env out of the way
    monkeypatch.chdir(tmp_path)
    yield


@pytest.fixture
def clear_settings_cache():
    """Clear the settings cache before and after each test."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


# =============================================================================
# Test Default Values
# =============================================================================


class TestSettingsDefaults:
    """Test Settings has correct default values."""

    def test_log_level_default(self, clean_env):
        assert Settings().log_level == "INFO"

    def test_log_format_default(self, clean_env):
        assert Settings().log_format == "console"

    def test_nats_url_default(self, clean_env):
        """Test nats_url points at the local demo server."""
        assert Settings().nats_url == "nats://127.0.0.1:4222"

    def test_metrics_port_default(self, clean_env):
        assert Settings().metrics_port == 8675

    def test_request_timeout_default(self, clean_env):
        assert Settings().request_timeout == 10.0


# =============================================================================
# Test Environment Variable Overrides
# =============================================================================


class TestEnvironmentOverrides:
    """Test Settings can be overridden via environment variables."""

    def test_nats_url_override(self, clean_env):
        os.environ["NATS_URL"] = "nats://a:4222,nats://b:4222"
        try:
            assert Settings().nats_url == "nats://a:4222,nats://b:4222"
        finally:
            del os.environ["NATS_URL"]

    def test_metrics_port_override(self, clean_env, monkeypatch):
        monkeypatch.setenv("METRICS_PORT", "9100")

        assert Settings().metrics_port == 9100

    def test_request_timeout_override(self, clean_env, monkeypatch):
        monkeypatch.setenv("REQUEST_TIMEOUT", "2.5")

        assert Settings().request_timeout == 2.5

    def test_log_level_override(self, clean_env, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "DEBUG")

        assert Settings().log_level == "DEBUG"

    def test_case_insensitive_env_vars(self, clean_env, monkeypatch):
        """Test environment variables are case insensitive."""
        monkeypatch.setenv("log_format", "json")

        assert Settings().log_format == "json"


# =============================================================================
# Test Field Validators
# =============================================================================


class TestLogLevelValidator:
    """Test log_level validator."""

    @pytest.mark.parametrize("level", ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"])
    def test_valid_levels(self, clean_env, level):
        assert Settings(log_level=level).log_level == level

    def test_log_level_lowercase_converted(self, clean_env):
        assert Settings(log_level="debug").log_level == "DEBUG"

    def test_log_level_invalid_raises(self, clean_env):
        with pytest.raises(ValidationError) as exc_info:
            Settings(log_level="INVALID")

        errors = exc_info.value.errors()
        assert any("log_level" in str(e) for e in errors)

    def test_log_level_invalid_via_env(self, clean_env, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "TRACE")

        with pytest.raises(ValidationError):
            Settings()


class TestLogFormatValidator:
    """Test log_format validator."""

    def test_log_format_uppercase_converted(self, clean_env):
        assert Settings(log_format="JSON").log_format == "json"

    def test_log_format_invalid_raises(self, clean_env):
        with pytest.raises(ValidationError) as exc_info:
            Settings(log_format="xml")

        errors = exc_info.value.errors()
        assert any("log_format" in str(e) for e in errors)


class TestNumericValidators:
    """Test port and timeout bounds."""

    def test_port_out_of_range(self, clean_env):
        with pytest.raises(ValidationError):
            Settings(metrics_port=70000)

    def test_timeout_must_be_positive(self, clean_env):
        with pytest.raises(ValidationError):
            Settings(request_timeout=0)


# =============================================================================
# Test Settings Caching
# =============================================================================


class TestGetSettings:
    """Test get_settings function and caching."""

    def test_get_settings_returns_settings(self, clean_env, clear_settings_cache):
        assert isinstance(get_settings(), Settings)

    def test_get_settings_cached(self, clean_env, clear_settings_cache):
        assert get_settings() is get_settings()

    def test_cache_clear_reloads_settings(self, clean_env, clear_settings_cache, monkeypatch):
        """Test clearing cache causes reload."""
        settings1 = get_settings()

        monkeypatch.setenv("LOG_LEVEL", "DEBUG")

        # Should still return cached instance
        assert get_settings() is settings1

        get_settings.cache_clear()

        settings3 = get_settings()
        assert settings3 is not settings1
        assert settings3.log_level == "DEBUG"
