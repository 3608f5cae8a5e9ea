"""
Configuration Management for beanbot

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
Every external dependency (Telegram, the ledger repository, git) has its
own settings group with its own environment prefix.
"""

import os
from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class TelegramSettings(BaseSettings):
    """Telegram bot configuration."""

    model_config = SettingsConfigDict(
        env_prefix="TELEGRAM_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    token: str = Field(
        ...,
        description="Bot API token issued by @BotFather"
    )
    secret: str = Field(
        ...,
        min_length=1,
        description="Shared secret expected by /auth"
    )
    state_file: Path = Field(
        default=Path("state.json"),
        description="JSON file holding authorized chats"
    )
    proxy_url: Optional[str] = Field(
        default=None,
        description="Proxy for Bot API requests (falls back to HTTPS_PROXY)"
    )
    max_message_age_seconds: int = Field(
        default=180,
        ge=0,
        description="Text messages older than this are ignored (0 disables)"
    )
    max_auth_failures: int = Field(
        default=5,
        ge=1,
        description="Wrong /auth attempts allowed per chat before lockout"
    )

    @property
    def effective_proxy_url(self) -> Optional[str]:
        """Configured proxy, or the HTTPS_PROXY environment variable."""
        return (
            self.proxy_url
            or os.environ.get("HTTPS_PROXY")
            or os.environ.get("https_proxy")
        )


class BeancountSettings(BaseSettings):
    """Ledger repository layout."""

    model_config = SettingsConfigDict(
        env_prefix="BEANCOUNT_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    root: Path = Field(
        ...,
        description="Root of the git repository holding the ledger"
    )
    default_currency: str = Field(
        ...,
        description="Currency used when an amount does not name one"
    )
    accounts_file: str = Field(
        default="accounts.bean",
        description="File (relative to root) with the open directives"
    )
    transactions_dir: str = Field(
        default="txs",
        description="Directory (relative to root) for monthly files"
    )

    @field_validator('default_currency')
    @classmethod
    def validate_currency(cls, v: str) -> str:
        """Beancount commodities are upper case."""
        v = v.strip()
        if not v or v != v.upper():
            raise ValueError(f"Invalid default currency: {v!r}")
        return v


class HookSettings(BaseSettings):
    """
    Pre-commit hook configuration.

    Read inside the ledger repository by the hook. Nothing here is required.
    """

    model_config = SettingsConfigDict(
        env_prefix="BEANCOUNT_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    ledger_file: Optional[str] = Field(
        default=None,
        description="Ledger entry point checked by bean-check (unset: check staged files)"
    )
    accounts_file: str = Field(
        default="accounts.bean",
        description="File with the open directives, included in every check"
    )


class GitSettings(BaseSettings):
    """Version control configuration."""

    model_config = SettingsConfigDict(
        env_prefix="GIT_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    executable: str = Field(
        default="git",
        description="git binary to invoke"
    )
    commit_message: str = Field(
        default="Add a transaction",
        description="Subject line of generated commits"
    )
    push_attempts: int = Field(
        default=3,
        ge=1,
        le=10,
        description="How many times a push is attempted"
    )
    timeout_seconds: float = Field(
        default=60.0,
        gt=0,
        description="Timeout for a single git invocation"
    )


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

    log_level: str = Field(
        default="INFO",
        description="Standard library logging level"
    )
    audit_log_path: Optional[Path] = Field(
        default=None,
        description="JSON-lines file for audit events (disabled if unset)"
    )

    @field_validator('log_level')
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        v = v.upper()
        if v not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {v}")
        return v


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

    @property
    def telegram(self) -> TelegramSettings:
        return TelegramSettings()

    @property
    def beancount(self) -> BeancountSettings:
        return BeancountSettings()

    @property
    def git(self) -> GitSettings:
        return GitSettings()

    @property
    def app(self) -> AppSettings:
        return AppSettings()


SETTINGS_GROUPS = ("telegram", "beancount", "git", "app")


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()


def validate_all_settings() -> dict[str, bool]:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid}, with a
    `{setting_name}_error` entry for each failure.
    """
    results = {}
    settings = get_settings()

    for name in SETTINGS_GROUPS:
        try:
            getattr(settings, name)
            results[name] = True
        except ValidationError as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
