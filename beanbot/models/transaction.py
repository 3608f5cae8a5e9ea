"""
Ledger Data Models for beanbot

These models describe what the bot writes into the ledger and what it
reports back after trying to. They are designed to:
1. Render exactly the beancount syntax appended to monthly files
2. Keep the target file a pure function of the transaction date
   (see monthly_ledger_path)
3. Be serializable for logging and auditing

DESIGN DECISION: We use Pydantic v2 models and render beancount text
ourselves. The bot never parses existing ledger files beyond the
account list, so no beancount runtime is needed here.
"""

import re
from datetime import date, datetime, timezone
from decimal import Decimal, InvalidOperation
from enum import Enum
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


AMOUNT_PATTERN = re.compile(r"^([0-9.]+)\s*([A-Z][A-Z0-9'._-]{0,22}[A-Z0-9])?$")


def escape_string(s: str) -> str:
    """Escape a value for use inside a beancount double-quoted string."""
    return s.replace("\\", "\\\\").replace('"', '\\"')


def monthly_ledger_path(entry_date: date, transactions_dir: str = "txs") -> Path:
    """Relative path of the monthly file an entry dated `entry_date` belongs to."""
    return Path(transactions_dir) / f"{entry_date.year}" / f"{entry_date.month:02}.bean"


# =============================================================================
# ENTRY MODELS
# =============================================================================

class Amount(BaseModel):
    """A number with its commodity, e.g. `10.50 USD`."""
    model_config = ConfigDict(frozen=True)

    number: Decimal
    currency: str = Field(..., min_length=1, max_length=24)

    @classmethod
    def from_text(cls, text: str, default_currency: str) -> Optional["Amount"]:
        """
        Parse `10`, `10.5 USD` or `10.5USD`.

        Returns None when the text is not an amount.
        """
        match = AMOUNT_PATTERN.match(text)
        if match is None:
            return None
        try:
            number = Decimal(match.group(1))
        except InvalidOperation:
            return None
        return cls(number=number, currency=match.group(2) or default_currency)

    def __neg__(self) -> "Amount":
        return Amount(number=-self.number, currency=self.currency)

    def __str__(self) -> str:
        return f"{self.number} {self.currency}"


class Posting(BaseModel):
    """A single leg of a transaction."""
    model_config = ConfigDict(frozen=True)

    account: str = Field(..., min_length=1)
    amount: Amount

    def __str__(self) -> str:
        return f"{self.account} {self.amount}"


class Transaction(BaseModel):
    """
    A complete beancount transaction.

    Rendered as:

        2024-03-15 * "Payee" "Narration" #tag
            Expenses:Food 10 USD
            Assets:Cash -10 USD
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    entry_date: date
    payee: Optional[str] = None
    narration: str = ""
    tags: list[str] = Field(default_factory=list)
    postings: list[Posting] = Field(..., min_length=2)

    @field_validator('tags')
    @classmethod
    def validate_tags(cls, v: list[str]) -> list[str]:
        """Tags keep their leading '#' and cannot contain whitespace."""
        for tag in v:
            if not tag.startswith("#") or len(tag) < 2 or any(c.isspace() for c in tag):
                raise ValueError(f"Invalid tag: {tag!r}")
        return v

    def to_beancount(self) -> str:
        """Render the transaction as beancount text (no trailing newline)."""
        header = [f"{self.entry_date.isoformat()} *"]
        if self.payee is not None:
            header.append(f'"{escape_string(self.payee)}"')
        header.append(f'"{escape_string(self.narration)}"')
        header.extend(self.tags)

        lines = [" ".join(header)]
        lines.extend(f"    {posting}" for posting in self.postings)
        return "\n".join(lines)

    def __str__(self) -> str:
        return self.to_beancount()


# =============================================================================
# WORKFLOW MODELS
# =============================================================================

class PendingTransaction(BaseModel):
    """
    A parsed transaction shown to the user with Commit/Cancel buttons.

    Nothing is written until the user presses Commit.
    """

    chat_id: int
    message_id: int
    transaction: Transaction
    original_command: str
    proposed_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )
    attempts: int = Field(default=0, ge=0, description="Failed Commit presses so far")


class CommitStatus(str, Enum):
    """Outcome of trying to record a transaction."""
    COMMITTED = "committed"
    SYNC_FAILED = "sync_failed"       # pull --rebase failed, nothing written
    WRITE_FAILED = "write_failed"     # file append failed, nothing committed
    COMMIT_FAILED = "commit_failed"   # git refused, append rolled back
    PUSH_FAILED = "push_failed"       # committed locally, not on the remote
    EXPIRED = "expired"               # proposal no longer pending


class CommitResult(BaseModel):
    """Result of TransactionFlow.commit, reported back to the user."""

    status: CommitStatus
    message: str
    ledger_path: Optional[Path] = None
    attempt: int = Field(default=1, ge=1, description="Which Commit press produced this")

    @property
    def success(self) -> bool:
        return self.status == CommitStatus.COMMITTED
