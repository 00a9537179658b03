"""Unit tests for application settings."""

import pytest
from pydantic import ValidationError

from config.settings import Settings


class TestSettings:
    """Tests for environment-driven configuration."""

    def test_defaults(self, monkeypatch):
        """Unset variables fall back to defaults."""
        monkeypatch.delenv("MORPHO_SIM_LOG_LEVEL", raising=False)
        settings = Settings(_env_file=None)

        assert settings.log_level == "WARNING"
        assert settings.apy_search_tolerance == 1e-8
        assert settings.apy_search_max_iterations == 100
        assert settings.apy_zero_threshold == 1e-10

    def test_environment_override(self, monkeypatch):
        """MORPHO_SIM_ variables override defaults."""
        monkeypatch.setenv("MORPHO_SIM_LOG_LEVEL", "debug")
        monkeypatch.setenv("MORPHO_SIM_APY_SEARCH_MAX_ITERATIONS", "50")
        settings = Settings(_env_file=None)

        assert settings.log_level == "DEBUG"
        assert settings.apy_search_max_iterations == 50

    def test_invalid_log_level(self):
        """Unknown log levels are rejected."""
        with pytest.raises(ValidationError):
            Settings(_env_file=None, log_level="verbose")

    def test_invalid_iterations(self):
        """The iteration budget must be positive."""
        with pytest.raises(ValidationError):
            Settings(_env_file=None, apy_search_max_iterations=0)
