"""
Audit Models for beanbot

Every significant action the bot takes is logged for audit purposes:
who authorized, what was proposed, what was written and whether git
accepted it. Together with the git history this lets a ledger owner
reconstruct how every entry got there.

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

import json
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Authorization
    AUTH_GRANTED = "auth_granted"
    AUTH_REJECTED = "auth_rejected"
    AUTH_LOCKED_OUT = "auth_locked_out"
    UNAUTHORIZED_ACCESS = "unauthorized_access"

    # Transaction lifecycle
    TRANSACTION_PROPOSED = "transaction_proposed"
    TRANSACTION_PARSE_FAILED = "transaction_parse_failed"
    TRANSACTION_COMMITTED = "transaction_committed"
    TRANSACTION_CANCELLED = "transaction_cancelled"

    # Persistence
    SYNC_FAILED = "sync_failed"
    WRITE_FAILED = "write_failed"
    COMMIT_FAILED = "commit_failed"
    PUSH_FAILED = "push_failed"

    # Queries
    ACCOUNTS_LISTED = "accounts_listed"

    # System events
    SYSTEM_ERROR = "system_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    Every significant action creates one of these.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Who triggered it
    chat_id: Optional[int] = Field(
        default=None,
        description="Telegram chat the event relates to"
    )

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., one Telegram update)"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )
    error_message: Optional[str] = None

    is_user_action: bool = Field(
        default=False,
        description="Was this triggered by a user action?"
    )

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "chat_id": self.chat_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }

    def to_json_line(self) -> str:
        """Serialize as a single JSON line for the audit file."""
        return json.dumps(self.to_log_dict(), ensure_ascii=False, default=str)


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.auth_granted(chat_id, user_id, correlation_id)
        event = AuditEventBuilder.transaction_committed(chat_id, path, correlation_id)
    """

    @staticmethod
    def auth_granted(
        chat_id: int,
        user_id: Optional[int],
        username: Optional[str],
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.AUTH_GRANTED,
            chat_id=chat_id,
            correlation_id=correlation_id,
            description=f"Chat {chat_id} authorized by user {user_id} (@{username or '<noname>'})",
            details={
                "user_id": user_id,
                "username": username,
            },
            is_user_action=True,
        )

    @staticmethod
    def auth_rejected(
        chat_id: int,
        user_id: Optional[int],
        failures: int,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.AUTH_REJECTED,
            severity=AuditSeverity.WARNING,
            chat_id=chat_id,
            correlation_id=correlation_id,
            description=f"Wrong secret presented by chat {chat_id}",
            details={
                "user_id": user_id,
                "failures": failures,
            },
            is_user_action=True,
        )

    @staticmethod
    def auth_locked_out(
        chat_id: int,
        user_id: Optional[int],
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.AUTH_LOCKED_OUT,
            severity=AuditSeverity.WARNING,
            chat_id=chat_id,
            correlation_id=correlation_id,
            description=f"Chat {chat_id} is locked out of /auth",
            details={"user_id": user_id},
            is_user_action=True,
        )

    @staticmethod
    def unauthorized_access(
        chat_id: int,
        action: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.UNAUTHORIZED_ACCESS,
            severity=AuditSeverity.WARNING,
            chat_id=chat_id,
            correlation_id=correlation_id,
            description=f"Unauthorized chat {chat_id} attempted {action}",
            details={"action": action},
            is_user_action=True,
        )

    @staticmethod
    def transaction_proposed(
        chat_id: int,
        entry: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_PROPOSED,
            chat_id=chat_id,
            correlation_id=correlation_id,
            description="Transaction proposed for confirmation",
            details={"entry": entry},
            is_user_action=True,
        )

    @staticmethod
    def transaction_parse_failed(
        chat_id: int,
        command: str,
        error_message: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_PARSE_FAILED,
            severity=AuditSeverity.WARNING,
            chat_id=chat_id,
            correlation_id=correlation_id,
            description="Could not parse transaction command",
            details={"command": command},
            error_message=error_message,
            is_user_action=True,
        )

    @staticmethod
    def transaction_committed(
        chat_id: int,
        ledger_path: str,
        entry: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_COMMITTED,
            chat_id=chat_id,
            correlation_id=correlation_id,
            description=f"Transaction committed to {ledger_path}",
            details={
                "ledger_path": ledger_path,
                "entry": entry,
            },
        )

    @staticmethod
    def transaction_cancelled(
        chat_id: int,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_CANCELLED,
            chat_id=chat_id,
            correlation_id=correlation_id,
            description="User cancelled proposed transaction",
            is_user_action=True,
        )

    @staticmethod
    def persistence_failed(
        event_type: AuditEventType,
        chat_id: int,
        error_message: str,
        ledger_path: Optional[str] = None,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        """Build one of the SYNC/WRITE/COMMIT/PUSH_FAILED events."""
        return AuditEvent(
            event_type=event_type,
            severity=AuditSeverity.ERROR,
            chat_id=chat_id,
            correlation_id=correlation_id,
            description=f"Recording transaction failed: {event_type.value}",
            details={"ledger_path": ledger_path},
            error_message=error_message,
        )

    @staticmethod
    def accounts_listed(
        chat_id: int,
        query: str,
        result_count: int,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ACCOUNTS_LISTED,
            chat_id=chat_id,
            correlation_id=correlation_id,
            description=f"Accounts listed: {result_count} matched",
            details={
                "query": query,
                "result_count": result_count,
            },
            is_user_action=True,
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
            correlation_id=correlation_id,
        )
