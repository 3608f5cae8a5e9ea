"""
Ledger Services Package

Provides the abstract ledger interface and the file-system implementation.
"""

from beanbot.services.ledger.interface import (
    AccountsFileError,
    AppendReceipt,
    LedgerError,
    LedgerStoreInterface,
    LedgerWriteError,
)
from beanbot.services.ledger.file_store import FileLedgerStore, parse_accounts

__all__ = [
    # Interface
    "AppendReceipt",
    "LedgerStoreInterface",
    # Exceptions
    "AccountsFileError",
    "LedgerError",
    "LedgerWriteError",
    # File implementation
    "FileLedgerStore",
    "parse_accounts",
]
