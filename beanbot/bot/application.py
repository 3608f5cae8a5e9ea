"""
Bot application wiring.

Builds the python-telegram-bot Application from settings and runs it with
long polling.
"""

from typing import Optional

import structlog
from telegram import Update
from telegram.ext import Application, ApplicationBuilder

from beanbot.audit import configure_logging
from beanbot.bot.handlers import BotHandlers
from beanbot.config import get_settings, validate_all_settings
from beanbot.config.settings import SETTINGS_GROUPS, Settings
from beanbot.orchestrator import create_app_components


logger = structlog.get_logger(__name__)


def build_application(settings: Optional[Settings] = None) -> Application:
    """Create the Telegram application with all handlers registered."""
    settings = settings or get_settings()
    telegram = settings.telegram

    builder = ApplicationBuilder().token(telegram.token)
    proxy_url = telegram.effective_proxy_url
    if proxy_url:
        builder = builder.proxy(proxy_url).get_updates_proxy(proxy_url)
    application = builder.build()

    (
        authorization_flow,
        accounts_flow,
        transaction_flow,
        audit_logger,
    ) = create_app_components(settings)
    BotHandlers(
        authorization_flow=authorization_flow,
        accounts_flow=accounts_flow,
        transaction_flow=transaction_flow,
        max_message_age_seconds=telegram.max_message_age_seconds,
        audit_logger=audit_logger,
    ).register(application)
    return application


def main() -> None:
    """
    Entry point of the `beanbot` console script.

    Validates every settings group first and exits with status 1 when
    one of them is incomplete.
    """
    settings = get_settings()
    status = validate_all_settings()
    configure_logging(settings.app.log_level if status["app"] else "INFO")

    failed = [name for name in SETTINGS_GROUPS if not status[name]]
    for name in failed:
        logger.error("settings_invalid", group=name, error=status[f"{name}_error"])
    if failed:
        raise SystemExit(1)

    application = build_application(settings)
    logger.info("bot_starting", ledger_root=str(settings.beancount.root))
    application.run_polling(allowed_updates=Update.ALL_TYPES)
