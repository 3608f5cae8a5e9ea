"""
Main Orchestrator for beanbot

This module ties together all the components and defines the
end-to-end flows for:
1. Authorization (/auth secret → gate → persisted record)
2. Account lookup (/accounts terms → sync → filtered account list)
3. Transactions (message → parse → proposal → confirm → sync → append
   → commit → push)

DESIGN DECISION: The orchestrator enforces the boundaries:
- Nothing is written without an explicit Commit from the user
- Writes and git operations for one repository never interleave
- Every step is audited

FAILURE POLICY for a confirmed transaction:
- sync fails   → nothing written, proposal stays open for a retry
- append fails → nothing committed, proposal stays open for a retry
- commit fails → append rolled back and unstaged, proposal stays open
- push fails   → local commit kept (the next push publishes it), the user
                 is told it is not on the remote yet
"""

import asyncio
from pathlib import Path
from typing import Optional
from uuid import UUID

import structlog

from beanbot.audit import AuditLogger, create_correlation_id
from beanbot.commands import TransactionCommandParser, search_accounts
from beanbot.config import get_settings
from beanbot.config.settings import Settings
from beanbot.models.audit import AuditEventType
from beanbot.models.auth import AuthResult
from beanbot.models.transaction import (
    CommitResult,
    CommitStatus,
    PendingTransaction,
    Transaction,
)
from beanbot.services.auth import AuthorizationGate, JsonFileAuthorizationStore
from beanbot.services.ledger import (
    AppendReceipt,
    FileLedgerStore,
    LedgerError,
    LedgerStoreInterface,
)
from beanbot.services.storage import JsonLinesAuditStorage
from beanbot.services.vcs import (
    GitRepository,
    VersionControlError,
    VersionControlInterface,
)


logger = structlog.get_logger(__name__)


class AuthorizationFlow:
    """Runs /auth attempts through the gate and audits the outcome."""

    def __init__(
        self,
        gate: AuthorizationGate,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._gate = gate
        self._audit_logger = audit_logger

    async def is_authorized(self, chat_id: int) -> bool:
        return await self._gate.is_authorized(chat_id)

    async def authenticate(
        self,
        chat_id: int,
        secret: str,
        user_id: Optional[int] = None,
        username: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AuthResult:
        """
        Authenticate a chat with the shared secret.

        Returns:
            The gate's verdict (see AuthResult)
        """
        correlation_id = correlation_id or create_correlation_id()

        result = await self._gate.authenticate(
            chat_id=chat_id,
            secret=secret,
            user_id=user_id,
            username=username,
        )

        if self._audit_logger:
            if result == AuthResult.GRANTED:
                await self._audit_logger.log_auth_granted(
                    chat_id=chat_id,
                    user_id=user_id,
                    username=username,
                    correlation_id=correlation_id,
                )
            elif result == AuthResult.REJECTED:
                await self._audit_logger.log_auth_rejected(
                    chat_id=chat_id,
                    user_id=user_id,
                    failures=self._gate.failures(chat_id),
                    correlation_id=correlation_id,
                )
            elif result == AuthResult.LOCKED_OUT:
                await self._audit_logger.log_auth_locked_out(
                    chat_id=chat_id,
                    user_id=user_id,
                    correlation_id=correlation_id,
                )

        return result

    async def record_unauthorized(
        self,
        chat_id: int,
        action: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Audit a rejected command from a chat that never authorized."""
        if self._audit_logger:
            await self._audit_logger.log_unauthorized_access(
                chat_id=chat_id,
                action=action,
                correlation_id=correlation_id,
            )


class AccountsFlow:
    """Lists open accounts, refreshed from the remote first."""

    def __init__(
        self,
        ledger: LedgerStoreInterface,
        vcs: VersionControlInterface,
        lock: asyncio.Lock,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._ledger = ledger
        self._vcs = vcs
        self._lock = lock
        self._audit_logger = audit_logger

    async def list_accounts(
        self,
        chat_id: int,
        query: str = "",
        correlation_id: Optional[UUID] = None,
    ) -> list[str]:
        """
        Return the open accounts containing every term of `query`.

        Raises:
            SyncError: If the repository cannot be updated
            AccountsFileError: If the accounts file cannot be read
        """
        correlation_id = correlation_id or create_correlation_id()

        async with self._lock:
            await self._vcs.sync()
            accounts = await self._ledger.get_accounts()

        matched = search_accounts(accounts, query)

        if self._audit_logger:
            await self._audit_logger.log_accounts_listed(
                chat_id=chat_id,
                query=query,
                result_count=len(matched),
                correlation_id=correlation_id,
            )
        return matched


class TransactionFlow:
    """
    Orchestrates the transaction flow.

    Flow:
    1. Parse → Message text to Transaction (against open accounts)
    2. Propose → Keep it pending under the proposal message id
    3. Confirm → User presses Commit (or Cancel)
    4. Record → sync, append, commit, push under the repository lock

    Recording (step 4) only ever happens after step 3.
    """

    def __init__(
        self,
        ledger: LedgerStoreInterface,
        vcs: VersionControlInterface,
        parser: TransactionCommandParser,
        lock: Optional[asyncio.Lock] = None,
        audit_logger: Optional[AuditLogger] = None,
        commit_message: str = "Add a transaction",
    ):
        self._ledger = ledger
        self._vcs = vcs
        self._parser = parser
        self._lock = lock or asyncio.Lock()
        self._audit_logger = audit_logger
        self._commit_message = commit_message
        self._pending: dict[tuple[int, int], PendingTransaction] = {}

    @property
    def lock(self) -> asyncio.Lock:
        return self._lock

    async def parse(
        self,
        chat_id: int,
        text: str,
        correlation_id: Optional[UUID] = None,
    ) -> Transaction:
        """
        Parse a chat message into a transaction.

        Raises:
            CommandError: If the message is not a valid transaction command
            AccountsFileError: If the accounts file cannot be read
        """
        accounts = await self._ledger.get_accounts()
        try:
            return self._parser.parse(text, accounts)
        except ValueError as e:
            if self._audit_logger:
                await self._audit_logger.log_transaction_parse_failed(
                    chat_id=chat_id,
                    command=text,
                    error_message=str(e),
                    correlation_id=correlation_id,
                )
            raise

    async def propose(
        self,
        chat_id: int,
        message_id: int,
        transaction: Transaction,
        original_command: str,
        correlation_id: Optional[UUID] = None,
    ) -> PendingTransaction:
        """Remember a transaction shown to the user under `message_id`."""
        pending = PendingTransaction(
            chat_id=chat_id,
            message_id=message_id,
            transaction=transaction,
            original_command=original_command,
        )
        self._pending[(chat_id, message_id)] = pending

        if self._audit_logger:
            await self._audit_logger.log_transaction_proposed(
                chat_id=chat_id,
                entry=transaction.to_beancount(),
                correlation_id=correlation_id,
            )
        return pending

    def get_pending(self, chat_id: int, message_id: int) -> Optional[PendingTransaction]:
        return self._pending.get((chat_id, message_id))

    async def cancel(
        self,
        chat_id: int,
        message_id: int,
        correlation_id: Optional[UUID] = None,
    ) -> bool:
        """
        Drop a pending transaction.

        Returns:
            False if nothing was pending under `message_id`
        """
        pending = self._pending.pop((chat_id, message_id), None)
        if pending is None:
            return False

        if self._audit_logger:
            await self._audit_logger.log_transaction_cancelled(
                chat_id=chat_id,
                correlation_id=correlation_id,
            )
        return True

    async def commit(
        self,
        chat_id: int,
        message_id: int,
        correlation_id: Optional[UUID] = None,
    ) -> CommitResult:
        """
        Record the transaction pending under `message_id`.

        If nothing ended up in the repository, the proposal is kept so the
        user can press Commit again.
        """
        key = (chat_id, message_id)
        pending = self._pending.pop(key, None)
        if pending is None:
            return CommitResult(
                status=CommitStatus.EXPIRED,
                message="This transaction is no longer pending.",
            )

        attempt = pending.attempts + 1
        result = await self.record(
            pending.transaction,
            chat_id=chat_id,
            original_command=pending.original_command,
            correlation_id=correlation_id,
        )
        if result.status in (
            CommitStatus.SYNC_FAILED,
            CommitStatus.WRITE_FAILED,
            CommitStatus.COMMIT_FAILED,
        ):
            pending.attempts = attempt
            self._pending.setdefault(key, pending)
        return result.model_copy(update={"attempt": attempt})

    async def record(
        self,
        transaction: Transaction,
        chat_id: int,
        original_command: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> CommitResult:
        """
        Append a transaction to its monthly file, commit it and push.

        Returns:
            CommitResult describing how far the transaction got
        """
        correlation_id = correlation_id or create_correlation_id()

        async with self._lock:
            try:
                await self._vcs.sync()
            except VersionControlError as e:
                await self._audit_failure(AuditEventType.SYNC_FAILED, chat_id, e, None, correlation_id)
                return CommitResult(
                    status=CommitStatus.SYNC_FAILED,
                    message=f"Check repo failed: {e}",
                )

            try:
                receipt = await self._ledger.append_transaction(transaction)
            except LedgerError as e:
                await self._audit_failure(AuditEventType.WRITE_FAILED, chat_id, e, None, correlation_id)
                return CommitResult(
                    status=CommitStatus.WRITE_FAILED,
                    message=f"Append to file failed: {e}",
                )

            try:
                await self._vcs.commit(self._commit_message, [receipt.path], details=original_command)
            except VersionControlError as e:
                rollback_error = await self._rollback(receipt)
                await self._audit_failure(
                    AuditEventType.COMMIT_FAILED, chat_id, e, receipt.path, correlation_id
                )
                message = f"Commit file failed: {e}"
                if rollback_error:
                    message += f"\nRollback failed too: {rollback_error}"
                return CommitResult(
                    status=CommitStatus.COMMIT_FAILED,
                    message=message,
                    ledger_path=receipt.path,
                )

            try:
                await self._vcs.push()
            except VersionControlError as e:
                await self._audit_failure(
                    AuditEventType.PUSH_FAILED, chat_id, e, receipt.path, correlation_id
                )
                return CommitResult(
                    status=CommitStatus.PUSH_FAILED,
                    message=f"Committed locally but push failed: {e}",
                    ledger_path=receipt.path,
                )

        if self._audit_logger:
            await self._audit_logger.log_transaction_committed(
                chat_id=chat_id,
                ledger_path=str(receipt.path),
                entry=transaction.to_beancount(),
                correlation_id=correlation_id,
            )
        return CommitResult(
            status=CommitStatus.COMMITTED,
            message="Committed",
            ledger_path=receipt.path,
        )

    async def _rollback(self, receipt: AppendReceipt) -> Optional[str]:
        """Undo an append git refused. Returns an error message on failure."""
        errors = []
        try:
            await self._ledger.rollback(receipt)
        except LedgerError as e:
            errors.append(str(e))
        try:
            await self._vcs.unstage([receipt.path])
        except VersionControlError as e:
            errors.append(str(e))

        if errors:
            logger.error("rollback_failed", path=str(receipt.path), errors=errors)
            return "; ".join(errors)
        return None

    async def _audit_failure(
        self,
        event_type: AuditEventType,
        chat_id: int,
        error: Exception,
        ledger_path: Optional[Path],
        correlation_id: Optional[UUID],
    ) -> None:
        if self._audit_logger:
            await self._audit_logger.log_persistence_failed(
                event_type=event_type,
                chat_id=chat_id,
                error_message=str(error),
                ledger_path=str(ledger_path) if ledger_path else None,
                correlation_id=correlation_id,
            )


def create_app_components(
    settings: Optional[Settings] = None,
) -> tuple[AuthorizationFlow, AccountsFlow, TransactionFlow, AuditLogger]:
    """
    Factory function to create all application components.

    Returns:
        (authorization_flow, accounts_flow, transaction_flow, audit_logger)
    """
    settings = settings or get_settings()
    telegram = settings.telegram
    beancount = settings.beancount
    git = settings.git
    app = settings.app

    audit_storage = JsonLinesAuditStorage(app.audit_log_path) if app.audit_log_path else None
    audit_logger = AuditLogger(audit_storage)

    gate = AuthorizationGate(
        store=JsonFileAuthorizationStore(telegram.state_file),
        secret=telegram.secret,
        max_failures=telegram.max_auth_failures,
    )
    ledger = FileLedgerStore(beancount)
    vcs = GitRepository(root=beancount.root, settings=git)
    parser = TransactionCommandParser(default_currency=beancount.default_currency)

    transaction_flow = TransactionFlow(
        ledger=ledger,
        vcs=vcs,
        parser=parser,
        audit_logger=audit_logger,
        commit_message=git.commit_message,
    )
    accounts_flow = AccountsFlow(
        ledger=ledger,
        vcs=vcs,
        lock=transaction_flow.lock,
        audit_logger=audit_logger,
    )
    authorization_flow = AuthorizationFlow(gate=gate, audit_logger=audit_logger)

    return authorization_flow, accounts_flow, transaction_flow, audit_logger
