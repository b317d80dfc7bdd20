"""Configuration package."""

from homesplit.config.settings import (
    AppSettings,
    GoogleSheetsSettings,
    HouseholdSettings,
    Settings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "AppSettings",
    "GoogleSheetsSettings",
    "HouseholdSettings",
    "Settings",
    "get_settings",
    "validate_all_settings",
]
