"""
Configuration Management for HomeSplit

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here, including the
household roster. Nothing else in the package keeps a hard-coded list of
members, so the balance engine can be exercised with any synthetic roster.
"""

from decimal import Decimal
from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from homesplit.models.roster import Member, Roster


class HouseholdSettings(BaseSettings):
    """Who lives in the household."""

    model_config = SettingsConfigDict(
        env_prefix="HOUSEHOLD_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    member_ids: str = Field(
        default="sachin,sunny,adarsh",
        description="Comma-separated list of member identifiers"
    )
    member_names: Optional[str] = Field(
        default=None,
        description="Comma-separated display names, in the same order as member_ids"
    )
    member_avatars: str = Field(
        default="👨‍💻,👨‍🎨,👨‍🚀",
        description="Comma-separated avatars, in the same order as member_ids"
    )
    currency_symbol: str = Field(
        default="₹",
        max_length=3,
        description="Symbol used when formatting amounts"
    )

    @field_validator('member_ids')
    @classmethod
    def validate_member_ids(cls, v: str) -> str:
        """The roster can never be empty."""
        if not [part for part in v.split(",") if part.strip()]:
            raise ValueError("HOUSEHOLD_MEMBER_IDS must name at least one member")
        return v

    @property
    def member_ids_list(self) -> list[str]:
        return [part.strip() for part in self.member_ids.split(",") if part.strip()]

    def build_roster(self) -> Roster:
        """Build the roster from configuration."""
        ids = self.member_ids_list
        names = (
            [part.strip() for part in self.member_names.split(",")]
            if self.member_names
            else []
        )
        avatars = [part.strip() for part in self.member_avatars.split(",")]

        members = []
        for index, user_id in enumerate(ids):
            name = names[index] if index < len(names) and names[index] else user_id.title()
            avatar = avatars[index] if index < len(avatars) and avatars[index] else None
            members.append(Member(id=user_id, name=name, avatar=avatar))
        return Roster(members=members)


class GoogleSheetsSettings(BaseSettings):
    """Google Sheets storage configuration."""

    model_config = SettingsConfigDict(
        env_prefix="GOOGLE_SHEETS_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    credentials_path: str = Field(
        ...,
        description="Path to Google service account credentials JSON"
    )
    spreadsheet_id: str = Field(
        ...,
        description="ID of the Google Sheets spreadsheet to use"
    )

    # Sheet names within the spreadsheet
    expenses_sheet_name: str = Field(
        default="Expenses",
        description="Name of the sheet for expenses"
    )
    shopping_sheet_name: str = Field(
        default="Shopping",
        description="Name of the sheet for shopping list items"
    )
    audit_sheet_name: str = Field(
        default="AuditLog",
        description="Name of the sheet for audit logs"
    )

    @field_validator('credentials_path')
    @classmethod
    def validate_credentials_path(cls, v: str) -> str:
        """Warn if credentials file doesn't exist (but don't fail - might be mounted later)."""
        if not Path(v).exists():
            import warnings
            warnings.warn(
                f"Google credentials file not found at {v}. "
                "Make sure it exists before running the application."
            )
        return v


class AppSettings(BaseSettings):
    """
    Main application settings.

    Loads configuration from environment variables and .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Environment
    app_environment: str = Field(
        default="development",
        description="Application environment"
    )
    debug_mode: bool = Field(
        default=False,
        description="Enable debug mode"
    )

    # Validation thresholds
    custom_split_tolerance: Decimal = Field(
        default=Decimal("0.01"),
        gt=0,
        description="How far custom splits may drift from the expense total"
    )
    max_expense_amount: Decimal = Field(
        default=Decimal("1000000"),
        gt=0,
        description="Maximum reasonable expense amount (for sanity checking)"
    )
    future_date_tolerance_days: int = Field(
        default=1,
        ge=0,
        description="How many days in the future an expense date can be"
    )

    # Recomputation
    recompute_debounce_seconds: float = Field(
        default=0.5,
        ge=0.0,
        le=10.0,
        description="How long to wait for a burst of changes to settle before recomputing"
    )


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

    # Sub-settings are loaded lazily so the app can run without Google Sheets

    @property
    def household(self) -> HouseholdSettings:
        return HouseholdSettings()

    @property
    def google_sheets(self) -> GoogleSheetsSettings:
        return GoogleSheetsSettings()

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

    sections = {
        "household": lambda: settings.household,
        "google_sheets": lambda: settings.google_sheets,
        "app": lambda: settings.app,
    }

    for name, load in sections.items():
        try:
            load()
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
