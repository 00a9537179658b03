"""Pydantic settings for morpho-sim configuration."""

import logging
from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

LOG_LEVELS = ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG", "NOTSET")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="MORPHO_SIM_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Logging
    log_level: str = Field(default="WARNING", description="Root log level for applications")

    # APY search
    apy_search_tolerance: float = Field(default=1e-8, gt=0.0, lt=1.0, description="Bisection APY tolerance")
    apy_search_max_iterations: int = Field(default=100, ge=1, le=1000, description="Bisection iteration limit")
    apy_zero_threshold: float = Field(
        default=1e-10,
        ge=0.0,
        lt=1.0,
        description="APY targets below this magnitude need no deposit",
    )

    @field_validator("log_level", mode="before")
    @classmethod
    def parse_log_level(cls, v):
        """Normalise and validate the log level name."""
        if isinstance(v, str):
            v = v.strip().upper()
            if v not in LOG_LEVELS:
                raise ValueError(f"Unknown log level: {v}")
        return v


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


def configure_logging(settings: Settings) -> None:
    """Configure root logging for applications embedding the engine."""
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
