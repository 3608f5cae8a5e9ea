"""
File-System Ledger Store

Ledger layout inside the repository root:

    accounts.bean          open/close directives, maintained by hand
    txs/2024/03.bean       one file per month, appended to by the bot

TRADEOFFS:
- Existing ledger files are never parsed beyond accounts.bean
- Appends are not atomic across processes; the flows serialize them
  within this process and the bot is meant to be the only writer
"""

from datetime import date
from pathlib import Path
from typing import Optional

import structlog

from beanbot.config import get_settings
from beanbot.config.settings import BeancountSettings
from beanbot.models.transaction import monthly_ledger_path
from beanbot.services.ledger.interface import (
    AccountsFileError,
    AppendReceipt,
    LedgerStoreInterface,
    LedgerWriteError,
)


logger = structlog.get_logger(__name__)


def parse_accounts(lines) -> list[str]:
    """
    Extract open accounts from beancount directive lines.

    Only `DATE open ACCOUNT ...` and `DATE close ACCOUNT` are considered;
    comments and short lines are skipped. Closing an account removes it.
    """
    accounts: list[str] = []
    for line in lines:
        fields = line.split()
        if len(fields) < 3 or fields[0].startswith(";"):
            continue
        directive, account = fields[1], fields[2]
        if directive == "open":
            if account not in accounts:
                accounts.append(account)
        elif directive == "close":
            if account in accounts:
                accounts.remove(account)
    return accounts


class FileLedgerStore(LedgerStoreInterface):
    """Ledger store backed by plain files under the repository root."""

    def __init__(self, settings: Optional[BeancountSettings] = None):
        self._settings = settings or get_settings().beancount
        self._root = Path(self._settings.root)

    @property
    def root(self) -> Path:
        return self._root

    def path_for(self, entry_date: date) -> Path:
        """Absolute path of the monthly file for `entry_date`."""
        return self._root / monthly_ledger_path(entry_date, self._settings.transactions_dir)

    async def get_accounts(self) -> list[str]:
        accounts_path = self._root / self._settings.accounts_file
        try:
            with accounts_path.open(encoding="utf-8") as f:
                accounts = parse_accounts(f)
        except OSError as e:
            raise AccountsFileError(f"Cannot read {accounts_path}: {e}") from e

        logger.debug("accounts_loaded", path=str(accounts_path), count=len(accounts))
        return accounts

    async def append_entry(self, text: str, entry_date: date) -> AppendReceipt:
        path = self.path_for(entry_date)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            created = not path.exists()
            previous_size = 0 if created else path.stat().st_size
            with path.open("a", encoding="utf-8") as f:
                if previous_size > 0:
                    f.write("\n")
                f.write(text.rstrip("\n"))
                f.write("\n")
        except OSError as e:
            raise LedgerWriteError(f"Append to {path} failed: {e}") from e

        logger.info(
            "ledger_entry_appended",
            path=str(path),
            created=created,
            previous_size=previous_size,
        )
        return AppendReceipt(path=path, previous_size=previous_size, created=created)

    async def rollback(self, receipt: AppendReceipt) -> None:
        try:
            if receipt.created:
                receipt.path.unlink(missing_ok=True)
            else:
                with receipt.path.open("r+b") as f:
                    f.truncate(receipt.previous_size)
        except OSError as e:
            raise LedgerWriteError(f"Rollback of {receipt.path} failed: {e}") from e

        logger.warning("ledger_append_rolled_back", path=str(receipt.path))
