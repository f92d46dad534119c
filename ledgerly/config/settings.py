"""
Configuration Management for Ledgerly

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
The GitHub repository that holds the ledger, and the local place where the
access token is remembered, are the only external dependencies.
"""

from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class GitHubSettings(BaseSettings):
    """GitHub repository that stores the ledger files."""

    model_config = SettingsConfigDict(
        env_prefix="LEDGERLY_GITHUB_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    owner: str = Field(
        ...,
        description="Repository owner (user or organisation)"
    )
    repo: str = Field(
        ...,
        description="Repository name"
    )
    branch: str = Field(
        default="main",
        description="Branch the ledger files live on"
    )
    base_path: str = Field(
        default="data",
        description="Folder inside the repository holding the ledger"
    )
    api_url: str = Field(
        default="https://api.github.com",
        description="GitHub REST API root"
    )
    token: Optional[str] = Field(
        default=None,
        description="Personal access token (used when none is stored locally)"
    )
    timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        le=300,
        description="HTTP timeout for every API call"
    )

    @field_validator('base_path')
    @classmethod
    def strip_slashes(cls, v: str) -> str:
        """Paths are joined with '/', so leading/trailing slashes are dropped."""
        return v.strip().strip("/")

    @field_validator('api_url')
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")


class AppSettings(BaseSettings):
    """
    Main application settings.

    Loads configuration from environment variables and .env file.
    """

    model_config = SettingsConfigDict(
        env_prefix="LEDGERLY_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Credential storage
    credential_store_path: str = Field(
        default="~/.ledgerly/credentials.json",
        description="Local key-value file where the access token is kept"
    )
    token_storage_key: str = Field(
        default="ledgerly_github_token",
        description="Key the token is stored under"
    )

    # Reporting
    rolling_window_months: int = Field(
        default=3,
        ge=1,
        le=24,
        description="Months averaged by the rolling statistics"
    )
    burn_rate_days: int = Field(
        default=30,
        ge=1,
        le=31,
        description="Days per month used for the daily burn rate"
    )
    currency_symbol: str = Field(
        default="₹",
        description="Currency symbol used in commit messages"
    )

    @property
    def credential_store_file(self) -> Path:
        """Credential store path with the user directory expanded."""
        return Path(self.credential_store_path).expanduser()


class Settings(BaseSettings):
    """
    Root settings container.

    Aggregates all sub-settings for easy access.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Sub-settings are loaded lazily to allow partial configuration

    @property
    def github(self) -> GitHubSettings:
        return GitHubSettings()

    @property
    def app(self) -> AppSettings:
        return AppSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Uses LRU cache to ensure settings are only loaded once.
    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()


def validate_all_settings() -> dict[str, bool]:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid}.
    Useful for startup checks.
    """
    results = {}

    settings = get_settings()

    try:
        _ = settings.github
        results["github"] = True
    except Exception as e:
        results["github"] = False
        results["github_error"] = str(e)

    try:
        _ = settings.app
        results["app"] = True
    except Exception as e:
        results["app"] = False
        results["app_error"] = str(e)

    return results
