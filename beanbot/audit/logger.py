"""
Audit Logger

DESIGN DECISION: Every significant action of the bot is logged.
This provides:
1. Traceability of who authorized and what was recorded
2. Debugging capability when git or the file system misbehaves
3. A history that complements the ledger's git log

The audit logger:
- Is async so it fits the handler flow
- Never crashes the bot if persisting an event fails
- Supports correlation IDs to trace everything done for one update
"""

import logging
from typing import Optional
from uuid import UUID, uuid4

import structlog

from beanbot.models.audit import AuditEvent, AuditEventBuilder, AuditEventType
from beanbot.services.storage import AuditStorageInterface


def configure_logging(level: str = "INFO") -> None:
    """
    Configure stdlib logging and structlog for the process.

    Call once at startup, before any logger is used.
    """
    logging.basicConfig(format="%(message)s", level=getattr(logging, level.upper()))
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer(ensure_ascii=False)
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. An audit storage backend, if one is configured
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = structlog.get_logger("beanbot.audit")

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()

        if event.severity.value in ("error", "critical"):
            self._logger.error("audit_event", **log_dict)
        elif event.severity.value == "warning":
            self._logger.warning("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return await self._storage.append_event(event)
            except Exception as e:
                # Log failure but don't raise
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    async def log_auth_granted(
        self,
        chat_id: int,
        user_id: Optional[int],
        username: Optional[str],
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a successful /auth."""
        await self.log(AuditEventBuilder.auth_granted(
            chat_id=chat_id,
            user_id=user_id,
            username=username,
            correlation_id=correlation_id,
        ))

    async def log_auth_rejected(
        self,
        chat_id: int,
        user_id: Optional[int],
        failures: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a wrong secret."""
        await self.log(AuditEventBuilder.auth_rejected(
            chat_id=chat_id,
            user_id=user_id,
            failures=failures,
            correlation_id=correlation_id,
        ))

    async def log_auth_locked_out(
        self,
        chat_id: int,
        user_id: Optional[int],
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.auth_locked_out(
            chat_id=chat_id,
            user_id=user_id,
            correlation_id=correlation_id,
        ))

    async def log_unauthorized_access(
        self,
        chat_id: int,
        action: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.unauthorized_access(
            chat_id=chat_id,
            action=action,
            correlation_id=correlation_id,
        ))

    async def log_transaction_proposed(
        self,
        chat_id: int,
        entry: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.transaction_proposed(
            chat_id=chat_id,
            entry=entry,
            correlation_id=correlation_id,
        ))

    async def log_transaction_parse_failed(
        self,
        chat_id: int,
        command: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.transaction_parse_failed(
            chat_id=chat_id,
            command=command,
            error_message=error_message,
            correlation_id=correlation_id,
        ))

    async def log_transaction_committed(
        self,
        chat_id: int,
        ledger_path: str,
        entry: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a transaction that reached the remote."""
        await self.log(AuditEventBuilder.transaction_committed(
            chat_id=chat_id,
            ledger_path=ledger_path,
            entry=entry,
            correlation_id=correlation_id,
        ))

    async def log_transaction_cancelled(
        self,
        chat_id: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.transaction_cancelled(
            chat_id=chat_id,
            correlation_id=correlation_id,
        ))

    async def log_persistence_failed(
        self,
        event_type: AuditEventType,
        chat_id: int,
        error_message: str,
        ledger_path: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a sync, write, commit or push failure."""
        await self.log(AuditEventBuilder.persistence_failed(
            event_type=event_type,
            chat_id=chat_id,
            error_message=error_message,
            ledger_path=ledger_path,
            correlation_id=correlation_id,
        ))

    async def log_accounts_listed(
        self,
        chat_id: int,
        query: str,
        result_count: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.accounts_listed(
            chat_id=chat_id,
            query=query,
            result_count=result_count,
            correlation_id=correlation_id,
        ))

    async def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an error."""
        await self.log(AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        ))


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of handling a Telegram update.
    """
    return uuid4()
