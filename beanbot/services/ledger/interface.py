"""
Abstract Ledger Store Interface

DESIGN DECISION: The flows talk to the ledger through this interface only.
This allows us to:
1. Point the bot at a different ledger layout without touching the flows
2. Use in-memory doubles for testing
3. Keep file-system details out of the Telegram handlers

The interface is intentionally small: read the open accounts, append an
entry, and undo an append git refused to commit.
"""

from abc import ABC, abstractmethod
from datetime import date
from pathlib import Path

from pydantic import BaseModel

from beanbot.models.transaction import Transaction


class AppendReceipt(BaseModel):
    """
    Where an entry was written and what the file looked like before.

    Enough information to roll the append back.
    """

    path: Path
    previous_size: int
    created: bool


class LedgerStoreInterface(ABC):
    """
    Abstract interface for ledger storage operations.
    """

    @abstractmethod
    async def get_accounts(self) -> list[str]:
        """
        List the currently open accounts.

        Returns:
            Account names in declaration order

        Raises:
            AccountsFileError: If the accounts file cannot be read
        """
        pass

    @abstractmethod
    async def append_entry(self, text: str, entry_date: date) -> AppendReceipt:
        """
        Append beancount text to the monthly file for `entry_date`.

        Creates the file and any missing directories.

        Raises:
            LedgerWriteError: If the file cannot be written
        """
        pass

    async def append_transaction(self, transaction: Transaction) -> AppendReceipt:
        """Append a rendered transaction to the file matching its date."""
        return await self.append_entry(transaction.to_beancount(), transaction.entry_date)

    @abstractmethod
    async def rollback(self, receipt: AppendReceipt) -> None:
        """
        Undo an append.

        Raises:
            LedgerWriteError: If the file cannot be restored
        """
        pass


class LedgerError(Exception):
    """Base exception for ledger operations."""
    pass


class LedgerWriteError(LedgerError):
    """Writing to a ledger file failed."""
    pass


class AccountsFileError(LedgerError):
    """The accounts file is missing or unreadable."""
    pass
