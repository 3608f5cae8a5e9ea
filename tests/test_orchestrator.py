"""
Tests for the authorization, accounts and transaction flows

The git side is the in-memory double from conftest; the ledger is a real
directory under tmp_path.
"""

import asyncio

import pytest

from beanbot.commands import CommandError
from beanbot.models.auth import AuthResult
from beanbot.models.transaction import CommitStatus
from beanbot.orchestrator import AccountsFlow, AuthorizationFlow
from beanbot.services.auth import AuthorizationGate, JsonFileAuthorizationStore
from beanbot.services.vcs import SyncError


CHAT_ID = 1001
MESSAGE_ID = 55
COMMAND = "12.50 cash groc lunch"
EXPECTED_ENTRY = (
    '2024-03-15 * "lunch"\n'
    "    Expenses:Food:Groceries 12.50 USD\n"
    "    Assets:Cash:USD -12.50 USD\n"
)


def propose(flow, text=COMMAND, message_id=MESSAGE_ID):
    async def run():
        txn = await flow.parse(CHAT_ID, text)
        return await flow.propose(CHAT_ID, message_id, txn, original_command=text)
    return asyncio.run(run())


def month_file(ledger_root):
    return ledger_root / "txs" / "2024" / "03.bean"


class TestAuthorizationFlow:
    def test_auth_then_transaction_scenario(self, tmp_path, transaction_flow, fake_vcs, ledger_root):
        """A chat authorizes, then records one transaction whose push fails."""
        gate = AuthorizationGate(JsonFileAuthorizationStore(tmp_path / "state.json"), "s3cr3t")
        auth = AuthorizationFlow(gate)

        assert asyncio.run(auth.is_authorized(CHAT_ID)) is False
        assert asyncio.run(auth.authenticate(CHAT_ID, "s3cr3t", user_id=7)) == AuthResult.GRANTED
        assert asyncio.run(auth.is_authorized(CHAT_ID)) is True

        fake_vcs.fail_push = True
        propose(transaction_flow)
        result = asyncio.run(transaction_flow.commit(CHAT_ID, MESSAGE_ID))

        assert result.status == CommitStatus.PUSH_FAILED
        assert result.message.startswith("Committed locally but push failed: ")
        assert month_file(ledger_root).read_text(encoding="utf-8") == EXPECTED_ENTRY
        assert fake_vcs.call_names() == ["sync", "commit", "push"]
        # The commit exists locally, so the proposal is not offered again.
        assert transaction_flow.get_pending(CHAT_ID, MESSAGE_ID) is None

    def test_rejected_attempts_lock_out(self, tmp_path):
        gate = AuthorizationGate(
            JsonFileAuthorizationStore(tmp_path / "state.json"), "s3cr3t", max_failures=2
        )
        auth = AuthorizationFlow(gate)
        assert asyncio.run(auth.authenticate(CHAT_ID, "a")) == AuthResult.REJECTED
        assert asyncio.run(auth.authenticate(CHAT_ID, "b")) == AuthResult.REJECTED
        assert asyncio.run(auth.authenticate(CHAT_ID, "s3cr3t")) == AuthResult.LOCKED_OUT


class TestAccountsFlow:
    def test_lists_after_sync(self, ledger, fake_vcs):
        flow = AccountsFlow(ledger, fake_vcs, asyncio.Lock())
        assert asyncio.run(flow.list_accounts(CHAT_ID, "food")) == [
            "Expenses:Food:Groceries",
            "Expenses:Food:Restaurant",
        ]
        assert fake_vcs.call_names() == ["sync"]

    def test_empty_query_lists_all_open(self, ledger, fake_vcs):
        flow = AccountsFlow(ledger, fake_vcs, asyncio.Lock())
        accounts = asyncio.run(flow.list_accounts(CHAT_ID))
        assert len(accounts) == 7
        assert "Assets:Bank:Old" not in accounts

    def test_sync_failure_propagates(self, ledger, fake_vcs):
        fake_vcs.fail_sync = True
        flow = AccountsFlow(ledger, fake_vcs, asyncio.Lock())
        with pytest.raises(SyncError):
            asyncio.run(flow.list_accounts(CHAT_ID, "food"))


class TestTransactionFlow:
    def test_commit_records_and_pushes(self, transaction_flow, fake_vcs, ledger_root):
        propose(transaction_flow)
        result = asyncio.run(transaction_flow.commit(CHAT_ID, MESSAGE_ID))

        assert result.status == CommitStatus.COMMITTED
        assert result.success
        assert result.ledger_path == month_file(ledger_root)
        assert month_file(ledger_root).read_text(encoding="utf-8") == EXPECTED_ENTRY

        name, message, paths, details = fake_vcs.calls[1]
        assert name == "commit"
        assert message == "Add a transaction"
        assert paths == [month_file(ledger_root)]
        assert details == COMMAND

    def test_nothing_written_before_commit(self, transaction_flow, fake_vcs, ledger_root):
        propose(transaction_flow)
        assert not month_file(ledger_root).exists()
        assert fake_vcs.calls == []

    def test_parse_error_is_raised(self, transaction_flow):
        with pytest.raises(CommandError, match="Invalid amount lots"):
            asyncio.run(transaction_flow.parse(CHAT_ID, "lots cash groc"))

    def test_two_commits_append_in_order(self, transaction_flow, ledger_root):
        propose(transaction_flow, "1 cash groc first", message_id=1)
        propose(transaction_flow, "2 cash bus second", message_id=2)
        asyncio.run(transaction_flow.commit(CHAT_ID, 1))
        asyncio.run(transaction_flow.commit(CHAT_ID, 2))

        content = month_file(ledger_root).read_text(encoding="utf-8")
        assert content.index('"first"') < content.index('"second"')
        assert '"first"\n    Expenses:Food:Groceries 1 USD\n    Assets:Cash:USD -1 USD\n\n' in content

    def test_sync_failure_writes_nothing(self, transaction_flow, fake_vcs, ledger_root):
        fake_vcs.fail_sync = True
        propose(transaction_flow)
        result = asyncio.run(transaction_flow.commit(CHAT_ID, MESSAGE_ID))

        assert result.status == CommitStatus.SYNC_FAILED
        assert result.message.startswith("Check repo failed: git pull --rebase failed")
        assert not month_file(ledger_root).exists()
        assert fake_vcs.call_names() == ["sync"]
        assert transaction_flow.get_pending(CHAT_ID, MESSAGE_ID) is not None

    def test_commit_failure_rolls_back(self, transaction_flow, fake_vcs, ledger_root):
        fake_vcs.fail_commit = True
        propose(transaction_flow)
        result = asyncio.run(transaction_flow.commit(CHAT_ID, MESSAGE_ID))

        assert result.status == CommitStatus.COMMIT_FAILED
        assert "bean-check found errors" in result.message
        assert not month_file(ledger_root).exists()
        assert fake_vcs.call_names() == ["sync", "commit", "unstage"]
        assert transaction_flow.get_pending(CHAT_ID, MESSAGE_ID) is not None

    def test_commit_failure_keeps_earlier_entries(self, transaction_flow, fake_vcs, ledger_root):
        propose(transaction_flow, "1 cash groc first", message_id=1)
        asyncio.run(transaction_flow.commit(CHAT_ID, 1))
        before = month_file(ledger_root).read_text(encoding="utf-8")

        fake_vcs.fail_commit = True
        propose(transaction_flow, "2 cash bus second", message_id=2)
        asyncio.run(transaction_flow.commit(CHAT_ID, 2))

        assert month_file(ledger_root).read_text(encoding="utf-8") == before

    def test_retry_after_failure(self, transaction_flow, fake_vcs, ledger_root):
        fake_vcs.fail_sync = True
        propose(transaction_flow)
        asyncio.run(transaction_flow.commit(CHAT_ID, MESSAGE_ID))

        fake_vcs.fail_sync = False
        result = asyncio.run(transaction_flow.commit(CHAT_ID, MESSAGE_ID))
        assert result.status == CommitStatus.COMMITTED
        assert month_file(ledger_root).read_text(encoding="utf-8") == EXPECTED_ENTRY

    def test_failed_presses_are_counted(self, transaction_flow, fake_vcs):
        fake_vcs.fail_sync = True
        propose(transaction_flow)
        first = asyncio.run(transaction_flow.commit(CHAT_ID, MESSAGE_ID))
        second = asyncio.run(transaction_flow.commit(CHAT_ID, MESSAGE_ID))

        assert (first.status, first.attempt) == (CommitStatus.SYNC_FAILED, 1)
        assert (second.status, second.attempt) == (CommitStatus.SYNC_FAILED, 2)
        assert transaction_flow.get_pending(CHAT_ID, MESSAGE_ID).attempts == 2

    def test_second_press_is_expired(self, transaction_flow):
        propose(transaction_flow)
        asyncio.run(transaction_flow.commit(CHAT_ID, MESSAGE_ID))
        result = asyncio.run(transaction_flow.commit(CHAT_ID, MESSAGE_ID))
        assert result.status == CommitStatus.EXPIRED

    def test_cancel(self, transaction_flow, fake_vcs, ledger_root):
        propose(transaction_flow)
        assert asyncio.run(transaction_flow.cancel(CHAT_ID, MESSAGE_ID)) is True
        assert asyncio.run(transaction_flow.cancel(CHAT_ID, MESSAGE_ID)) is False
        assert asyncio.run(transaction_flow.commit(CHAT_ID, MESSAGE_ID)).status == CommitStatus.EXPIRED
        assert fake_vcs.calls == []
        assert not month_file(ledger_root).exists()

    def test_proposals_are_per_chat(self, transaction_flow):
        propose(transaction_flow)
        result = asyncio.run(transaction_flow.commit(CHAT_ID + 1, MESSAGE_ID))
        assert result.status == CommitStatus.EXPIRED
        assert transaction_flow.get_pending(CHAT_ID, MESSAGE_ID) is not None
