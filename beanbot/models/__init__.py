"""
Data Models Package

This package contains all Pydantic models used by beanbot.
Everything the bot writes, persists or audits conforms to these schemas.
"""

from beanbot.models.transaction import (
    Amount,
    CommitResult,
    CommitStatus,
    PendingTransaction,
    Posting,
    Transaction,
    escape_string,
    monthly_ledger_path,
)
from beanbot.models.auth import (
    AuthorizationRecord,
    AuthorizationState,
    AuthResult,
)
from beanbot.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Ledger models
    "Amount",
    "CommitResult",
    "CommitStatus",
    "PendingTransaction",
    "Posting",
    "Transaction",
    "escape_string",
    "monthly_ledger_path",
    # Authorization models
    "AuthorizationRecord",
    "AuthorizationState",
    "AuthResult",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
