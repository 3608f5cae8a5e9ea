"""Services package."""

from beanbot.services.auth import (
    AuthorizationGate,
    AuthorizationStoreInterface,
    AuthStoreError,
    JsonFileAuthorizationStore,
)
from beanbot.services.ledger import (
    AccountsFileError,
    AppendReceipt,
    FileLedgerStore,
    LedgerError,
    LedgerStoreInterface,
    LedgerWriteError,
)
from beanbot.services.storage import (
    AuditStorageInterface,
    JsonLinesAuditStorage,
    StorageError,
)
from beanbot.services.vcs import (
    CommitError,
    GitRepository,
    PushError,
    SyncError,
    VersionControlError,
    VersionControlInterface,
)

__all__ = [
    # Authorization
    "AuthStoreError",
    "AuthorizationGate",
    "AuthorizationStoreInterface",
    "JsonFileAuthorizationStore",
    # Ledger
    "AccountsFileError",
    "AppendReceipt",
    "FileLedgerStore",
    "LedgerError",
    "LedgerStoreInterface",
    "LedgerWriteError",
    # Audit storage
    "AuditStorageInterface",
    "JsonLinesAuditStorage",
    "StorageError",
    # Version control
    "CommitError",
    "GitRepository",
    "PushError",
    "SyncError",
    "VersionControlError",
    "VersionControlInterface",
]
