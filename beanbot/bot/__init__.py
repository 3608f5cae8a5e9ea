"""Telegram bot package."""

from beanbot.bot.application import build_application, main
from beanbot.bot.handlers import BotHandlers

__all__ = ["BotHandlers", "build_application", "main"]
