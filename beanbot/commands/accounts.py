"""
Fuzzy account search.

Users type short fragments ("food", "med insur") instead of full account
names. A fragment resolves to an account only when the match is unique,
either on the full name or, failing that, on the last component.
"""

from typing import Callable, Iterable, Optional

from beanbot.commands.errors import AccountMatchError


def last_component(account: str) -> str:
    """Return the last component of a colon-separated account name."""
    return account.rsplit(":", 1)[-1]


def account_matches(account: str, term: str) -> bool:
    """
    Check whether `account` matches the lowercased search `term`.

    If the term contains whitespace, every subterm has to appear in the
    account.
    """
    lower_account = account.lower()
    return all(subterm in lower_account for subterm in term.split())


def filter_account(
    accounts: Iterable[str],
    term: str,
    predicate: Optional[Callable[[str], bool]] = None,
) -> str:
    """
    Resolve `term` to exactly one account.

    Args:
        accounts: Candidate account names
        term: Search term as typed by the user
        predicate: Extra condition an account must satisfy

    Returns:
        The single matching account

    Raises:
        AccountMatchError: If nothing or more than one account matches
    """
    term = term.lower()
    matched = [
        account for account in accounts
        if account_matches(account, term) and (predicate is None or predicate(account))
    ]

    if not matched:
        raise AccountMatchError("No matched account")
    if len(matched) == 1:
        return matched[0]

    last_matched = [
        account for account in matched
        if account_matches(last_component(account), term)
    ]
    if not last_matched:
        raise AccountMatchError(f"More than one matched account: {matched}")
    if len(last_matched) == 1:
        return last_matched[0]
    raise AccountMatchError(
        f"More than one last-component matched account: {last_matched}"
    )


def search_accounts(accounts: Iterable[str], query: str) -> list[str]:
    """Return every account containing all whitespace-separated terms of `query`."""
    return [account for account in accounts if account_matches(account, query.lower())]


def is_expense_account(account: str) -> bool:
    return account.startswith("Expenses:")
