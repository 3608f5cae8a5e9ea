"""Configuration package."""

from beanbot.config.settings import (
    AppSettings,
    BeancountSettings,
    GitSettings,
    HookSettings,
    Settings,
    TelegramSettings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "AppSettings",
    "BeancountSettings",
    "GitSettings",
    "HookSettings",
    "Settings",
    "TelegramSettings",
    "get_settings",
    "validate_all_settings",
]
