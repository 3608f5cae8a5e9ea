"""Shared fixtures: a ledger directory and an in-memory git double."""

from datetime import date
from pathlib import Path
from typing import Optional, Sequence

import pytest

from beanbot.commands import TransactionCommandParser
from beanbot.config.settings import BeancountSettings
from beanbot.orchestrator import TransactionFlow
from beanbot.services.ledger import FileLedgerStore
from beanbot.services.vcs import (
    CommitError,
    PushError,
    SyncError,
    VersionControlInterface,
)


ACCOUNTS_BEAN = """\
; accounts of the household
2020-01-01 open Assets:Cash:USD USD
2020-01-01 open Assets:Bank:Checking USD
2020-01-01 open Liabilities:CreditCard:Visa USD
2020-01-01 open Expenses:Food:Groceries
2020-01-01 open Expenses:Food:Restaurant
2020-01-01 open Expenses:Transport:Bus
2020-01-01 open Expenses:Home:Rent
2020-01-01 open Assets:Bank:Old USD
2021-06-30 close Assets:Bank:Old
"""


class FakeVersionControl(VersionControlInterface):
    """Records git calls and fails the steps it is told to fail."""

    def __init__(self):
        self.calls: list[tuple] = []
        self.fail_sync = False
        self.fail_commit = False
        self.fail_push = False

    async def sync(self) -> None:
        self.calls.append(("sync",))
        if self.fail_sync:
            raise SyncError("git pull --rebase failed", stderr="fatal: unable to access remote")

    async def commit(
        self,
        message: str,
        paths: Sequence[Path],
        details: Optional[str] = None,
    ) -> None:
        self.calls.append(("commit", message, list(paths), details))
        if self.fail_commit:
            raise CommitError("git commit failed", stderr="pre-commit: bean-check found errors")

    async def push(self) -> None:
        self.calls.append(("push",))
        if self.fail_push:
            raise PushError("git push failed", stderr="fatal: Could not read from remote repository.")

    async def unstage(self, paths: Sequence[Path]) -> None:
        self.calls.append(("unstage", list(paths)))

    def call_names(self) -> list[str]:
        return [call[0] for call in self.calls]


@pytest.fixture
def ledger_root(tmp_path: Path) -> Path:
    root = tmp_path / "ledger"
    root.mkdir()
    (root / "accounts.bean").write_text(ACCOUNTS_BEAN, encoding="utf-8")
    return root


@pytest.fixture
def beancount_settings(ledger_root: Path) -> BeancountSettings:
    return BeancountSettings(root=ledger_root, default_currency="USD")


@pytest.fixture
def ledger(beancount_settings: BeancountSettings) -> FileLedgerStore:
    return FileLedgerStore(beancount_settings)


@pytest.fixture
def fake_vcs() -> FakeVersionControl:
    return FakeVersionControl()


@pytest.fixture
def parser() -> TransactionCommandParser:
    return TransactionCommandParser(default_currency="USD", today=lambda: date(2024, 3, 15))


@pytest.fixture
def transaction_flow(ledger, fake_vcs, parser) -> TransactionFlow:
    return TransactionFlow(ledger=ledger, vcs=fake_vcs, parser=parser)
