"""
Telegram Command Dispatcher

Routes updates to the flows and turns their results into replies:

    /auth <secret>        authorize this chat
    /accounts [terms...]  list open accounts (authorized chats only)
    <transaction>         parse and propose a transaction (authorized only)
    Commit / Cancel       inline buttons under a proposal

Unauthorized chats can only use /auth; every other command or message is
answered with NOT_AUTHORIZED.
"""

from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

import structlog
from telegram import InlineKeyboardButton, InlineKeyboardMarkup, Message, Update
from telegram.constants import MessageLimit
from telegram.error import TelegramError
from telegram.ext import (
    Application,
    CallbackQueryHandler,
    CommandHandler,
    ContextTypes,
    MessageHandler,
    filters,
)

from beanbot.audit import AuditLogger, create_correlation_id
from beanbot.commands import CommandError
from beanbot.models.auth import AuthResult
from beanbot.models.transaction import CommitStatus
from beanbot.orchestrator import AccountsFlow, AuthorizationFlow, TransactionFlow
from beanbot.services.ledger import LedgerError
from beanbot.services.vcs import VersionControlError


logger = structlog.get_logger(__name__)


COMMIT_DATA = "commit"
CANCEL_DATA = "cancel"

CONFIRM_KEYBOARD = InlineKeyboardMarkup([[
    InlineKeyboardButton("Commit", callback_data=COMMIT_DATA),
    InlineKeyboardButton("Cancel", callback_data=CANCEL_DATA),
]])

NOT_AUTHORIZED = "Not authorized. Use /auth <secret> first."
UNKNOWN_COMMAND = "Unknown command. Send /help for usage."

AUTH_REPLIES = {
    AuthResult.GRANTED: "Authorized!",
    AuthResult.ALREADY_AUTHORIZED: "Already authorized.",
    AuthResult.REJECTED: "Authorization failed.",
    AuthResult.LOCKED_OUT: "Too many failed attempts.",
}

HELP_TEXT = (
    "/auth <secret> - authorize this chat\n"
    "/accounts [terms...] - list open accounts\n"
    "\n"
    "Record a transaction by sending:\n"
    "[YYYY-MM-DD] [>Payee] [#tag ...] Amount SpendAccount ExpenseAccount [Narration]\n"
    "e.g. >ACME #trip '12.50 USD' cash food lunch"
)


def command_argument(text: Optional[str]) -> str:
    """Everything after the command word, e.g. the secret in `/auth s3cr3t`."""
    if not text:
        return ""
    parts = text.split(maxsplit=1)
    return parts[1].strip() if len(parts) > 1 else ""


def split_message(text: str, limit: int = MessageLimit.MAX_TEXT_LENGTH) -> list[str]:
    """Split text on line boundaries into chunks Telegram accepts."""
    chunks: list[str] = []
    current = ""
    for line in text.split("\n"):
        while len(line) > limit:
            if current:
                chunks.append(current)
                current = ""
            chunks.append(line[:limit])
            line = line[limit:]
        candidate = f"{current}\n{line}" if current else line
        if len(candidate) > limit:
            chunks.append(current)
            current = line
        else:
            current = candidate
    if current:
        chunks.append(current)
    return chunks


class BotHandlers:
    """
    Telegram handlers bound to the application flows.

    Each handler creates a correlation id so all audit events caused by one
    update can be traced together.
    """

    def __init__(
        self,
        authorization_flow: AuthorizationFlow,
        accounts_flow: AccountsFlow,
        transaction_flow: TransactionFlow,
        max_message_age_seconds: int = 180,
        clock: Optional[Callable[[], datetime]] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._auth = authorization_flow
        self._accounts = accounts_flow
        self._transactions = transaction_flow
        self._max_age = timedelta(seconds=max_message_age_seconds)
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._audit_logger = audit_logger

    def register(self, application: Application) -> None:
        """Attach all handlers to a python-telegram-bot application."""
        application.add_handler(CommandHandler("auth", self.auth))
        application.add_handler(CommandHandler("accounts", self.accounts))
        application.add_handler(CommandHandler(["start", "help"], self.help))
        application.add_handler(MessageHandler(filters.COMMAND, self.unknown_command))
        application.add_handler(CallbackQueryHandler(
            self.confirm,
            pattern=f"^({COMMIT_DATA}|{CANCEL_DATA})$",
        ))
        application.add_handler(MessageHandler(
            filters.TEXT & ~filters.COMMAND,
            self.transaction,
        ))
        application.add_error_handler(self.on_error)

    def _is_stale(self, message: Message) -> bool:
        if self._max_age.total_seconds() <= 0 or message.date is None:
            return False
        return self._clock() - message.date > self._max_age

    async def help(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        message = update.effective_message
        if message is None or await self._reject_unauthorized(update, "/help"):
            return
        await message.reply_text(HELP_TEXT)

    async def unknown_command(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        """Handler for commands no other handler claimed."""
        message = update.effective_message
        if message is None or message.text is None:
            return
        if await self._reject_unauthorized(update, message.text.split(maxsplit=1)[0]):
            return
        await message.reply_text(UNKNOWN_COMMAND)

    async def auth(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        """Handler for /auth <secret>."""
        message = update.effective_message
        chat = update.effective_chat
        if message is None or chat is None:
            return
        user = update.effective_user

        result = await self._auth.authenticate(
            chat_id=chat.id,
            secret=command_argument(message.text),
            user_id=user.id if user else None,
            username=user.username if user else None,
            correlation_id=create_correlation_id(),
        )
        await chat.send_message(AUTH_REPLIES[result])

        # The secret should not stay in the chat history.
        try:
            await message.delete()
        except TelegramError as e:
            logger.warning("auth_message_delete_failed", chat_id=chat.id, error=str(e))

    async def _reject_unauthorized(self, update: Update, action: str) -> bool:
        """Reply and return True if the chat of `update` is not authorized."""
        chat = update.effective_chat
        if chat is not None and await self._auth.is_authorized(chat.id):
            return False
        if chat is not None:
            await self._auth.record_unauthorized(chat.id, action, create_correlation_id())
        if update.callback_query is not None:
            await update.callback_query.answer(NOT_AUTHORIZED, show_alert=True)
        elif update.effective_message is not None:
            await update.effective_message.reply_text(NOT_AUTHORIZED)
        return True

    async def accounts(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        """Handler for /accounts [terms...]."""
        message = update.effective_message
        if message is None or await self._reject_unauthorized(update, "/accounts"):
            return

        try:
            accounts = await self._accounts.list_accounts(
                chat_id=update.effective_chat.id,
                query=command_argument(message.text),
                correlation_id=create_correlation_id(),
            )
        except (VersionControlError, LedgerError) as e:
            await message.reply_text(f"Listing accounts failed: {e}")
            return

        if not accounts:
            await message.reply_text("No matched account")
            return
        for chunk in split_message("\n".join(accounts)):
            await message.reply_text(chunk)

    async def transaction(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        """Handler for plain text: parse and propose a transaction."""
        message = update.effective_message
        if message is None or message.text is None:
            return
        if self._is_stale(message):
            logger.info("stale_message_ignored", message_id=message.message_id)
            return
        if await self._reject_unauthorized(update, "transaction"):
            return

        chat_id = update.effective_chat.id
        correlation_id = create_correlation_id()
        try:
            transaction = await self._transactions.parse(chat_id, message.text, correlation_id)
        except (CommandError, LedgerError) as e:
            await message.reply_text(str(e))
            return

        proposal = await message.reply_text(
            transaction.to_beancount(),
            reply_markup=CONFIRM_KEYBOARD,
        )
        await self._transactions.propose(
            chat_id=chat_id,
            message_id=proposal.message_id,
            transaction=transaction,
            original_command=message.text,
            correlation_id=correlation_id,
        )

    async def confirm(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        """Handler for the Commit / Cancel buttons."""
        query = update.callback_query
        if query is None or await self._reject_unauthorized(update, f"callback:{query.data}"):
            return
        await query.answer()

        message = query.message
        if message is None:
            return
        chat_id = message.chat.id
        correlation_id = create_correlation_id()

        pending = self._transactions.get_pending(chat_id, message.message_id)
        text = (
            pending.transaction.to_beancount()
            if pending
            else getattr(message, "text", None) or ""
        )

        if query.data == CANCEL_DATA:
            await self._transactions.cancel(chat_id, message.message_id, correlation_id)
            await query.edit_message_text(f"{text}\n\n❌ Cancelled")
            return

        result = await self._transactions.commit(chat_id, message.message_id, correlation_id)
        if result.status == CommitStatus.COMMITTED:
            await query.edit_message_text(f"{text}\n\n✅ Committed")
        elif result.status == CommitStatus.EXPIRED:
            await query.edit_message_text(f"{text}\n\n⌛ {result.message}")
        elif result.status == CommitStatus.PUSH_FAILED:
            await query.edit_message_text(f"{text}\n\n⚠️ {result.message}")
        else:
            # Nothing was recorded; keep the buttons so the user can retry.
            # Telegram refuses an edit that changes nothing, so repeated
            # failures are numbered.
            attempt = f" (attempt {result.attempt})" if result.attempt > 1 else ""
            await query.edit_message_text(
                f"{text}\n\n❗ {result.message}{attempt}",
                reply_markup=CONFIRM_KEYBOARD,
            )

    async def on_error(self, update: object, context: ContextTypes.DEFAULT_TYPE) -> None:
        """Log and audit unexpected handler errors, then tell the user something failed."""
        logger.error(
            "handler_failed",
            error=str(context.error),
            exc_info=context.error,
        )
        is_update = isinstance(update, Update)
        if self._audit_logger:
            chat = update.effective_chat if is_update else None
            await self._audit_logger.log_error(
                error_type=type(context.error).__name__,
                error_message=str(context.error),
                details={"chat_id": chat.id if chat else None},
                correlation_id=create_correlation_id(),
            )
        if is_update and update.effective_message is not None:
            try:
                await update.effective_message.reply_text(f"Error: {context.error}")
            except TelegramError as e:
                logger.error("error_reply_failed", error=str(e))
