"""
Transaction Command Parser

Turns a chat message into a Transaction. The grammar is:

    [YYYY-MM-DD] [>Payee] [#tag ...] Amount SpendAccount ExpenseAccount [Narration ...]

Example:

    >ACME #trip '10 USD' cash "food out" lunch with team

The expense account receives the amount and the spend account gives it up,
so every parsed transaction balances by construction.
"""

import re
from datetime import date
from typing import Callable, Optional

from beanbot.commands.accounts import filter_account, is_expense_account
from beanbot.commands.errors import AccountMatchError, TransactionParseError
from beanbot.commands.splitter import command_split
from beanbot.models.transaction import Amount, Posting, Transaction


DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")


class TransactionCommandParser:
    """
    Parses transaction commands against a list of open accounts.

    The parser is stateless apart from its configuration, so a single
    instance can serve every chat.
    """

    def __init__(
        self,
        default_currency: str,
        today: Optional[Callable[[], date]] = None,
    ):
        """
        Args:
            default_currency: Currency used when an amount omits one
            today: Clock used for undated commands (local date by default)
        """
        self._default_currency = default_currency
        self._today = today or date.today

    def parse(self, text: str, accounts: list[str]) -> Transaction:
        """
        Parse a raw message into a transaction.

        Raises:
            CommandSyntaxError: If the message cannot be split
            TransactionParseError: If the arguments are incomplete or invalid
        """
        return self.parse_args(command_split(text), accounts)

    def parse_args(self, args: list[str], accounts: list[str]) -> Transaction:
        """Parse already-split arguments into a transaction."""
        pos = 0

        entry_date = self._today()
        if pos < len(args) and DATE_PATTERN.match(args[pos]):
            try:
                entry_date = date.fromisoformat(args[pos])
            except ValueError as e:
                raise TransactionParseError(f"Invalid date {args[pos]}") from e
            pos += 1

        payee = None
        if pos < len(args) and args[pos].startswith(">"):
            payee = args[pos][1:]
            pos += 1

        tags = []
        while pos < len(args) and args[pos].startswith("#"):
            tags.append(args[pos])
            pos += 1

        remaining = args[pos:]
        for index, name in enumerate(("amount", "account", "expense account")):
            if len(remaining) <= index:
                raise TransactionParseError(f"Not enough arguments: {name}")
        amount_text, spend_term, expense_term = remaining[:3]
        narration = " ".join(remaining[3:])

        amount = Amount.from_text(amount_text, self._default_currency)
        if amount is None:
            raise TransactionParseError(f"Invalid amount {amount_text}")

        try:
            spend_account = filter_account(
                accounts, spend_term, lambda account: not is_expense_account(account)
            )
        except AccountMatchError as e:
            raise TransactionParseError(f"Invalid spend account: {e}") from e
        try:
            expense_account = filter_account(accounts, expense_term, is_expense_account)
        except AccountMatchError as e:
            raise TransactionParseError(f"Invalid expense account: {e}") from e

        try:
            return Transaction(
                entry_date=entry_date,
                payee=payee,
                narration=narration,
                tags=tags,
                postings=[
                    Posting(account=expense_account, amount=amount),
                    Posting(account=spend_account, amount=-amount),
                ],
            )
        except ValueError as e:
            raise TransactionParseError(str(e)) from e
