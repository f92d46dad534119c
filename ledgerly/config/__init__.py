"""Configuration package."""

from ledgerly.config.settings import (
    AppSettings,
    GitHubSettings,
    Settings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "AppSettings",
    "GitHubSettings",
    "Settings",
    "get_settings",
    "validate_all_settings",
]
