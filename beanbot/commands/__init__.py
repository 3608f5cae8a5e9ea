"""Command parsing package."""

from beanbot.commands.accounts import (
    account_matches,
    filter_account,
    last_component,
    search_accounts,
)
from beanbot.commands.errors import (
    AccountMatchError,
    CommandError,
    CommandSyntaxError,
    TransactionParseError,
)
from beanbot.commands.parser import TransactionCommandParser
from beanbot.commands.splitter import command_split

__all__ = [
    "AccountMatchError",
    "CommandError",
    "CommandSyntaxError",
    "TransactionCommandParser",
    "TransactionParseError",
    "account_matches",
    "command_split",
    "filter_account",
    "last_component",
    "search_accounts",
]
