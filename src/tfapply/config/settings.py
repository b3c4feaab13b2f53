"""
Application settings using Pydantic.

Provides environment-based configuration loading with TFAPPLY_ prefix.
"""

from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="TFAPPLY_",
    )

    # Terraform binary lookup (used when no version is requested)
    terraform_binary: str = "terraform"

    # Release downloads
    releases_url: str = "https://releases.hashicorp.com"
    cache_dir: Path = Path.home() / ".cache" / "tfapply"
    http_timeout: int = 60

    # Operation behaviour
    plan_file_name: str = ".plan.json"
    env_var_prefix: str = "TF_VAR_"
    drain_timeout: float = 5.0

    # State file used by the CLI lifecycle layer
    state_file: Path = Path("tfapply.state.json")

    # Logging
    log_level: str = "INFO"
    log_format: str = "json"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
