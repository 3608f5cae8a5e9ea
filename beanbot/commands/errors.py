"""Exceptions raised while interpreting user commands."""


class CommandError(ValueError):
    """Base exception for anything the user typed that we cannot use."""
    pass


class CommandSyntaxError(CommandError):
    """The message could not be split into arguments (quotes, newlines)."""
    pass


class AccountMatchError(CommandError):
    """An account search term matched zero or several accounts."""
    pass


class TransactionParseError(CommandError):
    """The arguments do not describe a valid transaction."""
    pass
