"""Tests for the authorization gate and its JSON store."""

import asyncio
import json

import pytest

from beanbot.models.auth import AuthResult
from beanbot.services.auth import (
    AuthorizationGate,
    AuthStoreError,
    JsonFileAuthorizationStore,
)


@pytest.fixture
def state_file(tmp_path):
    return tmp_path / "state.json"


@pytest.fixture
def gate(state_file):
    return AuthorizationGate(
        store=JsonFileAuthorizationStore(state_file),
        secret="s3cr3t",
        max_failures=3,
    )


class TestAuthorizationGate:
    def test_unknown_chat_is_not_authorized(self, gate):
        assert asyncio.run(gate.is_authorized(100)) is False

    def test_correct_secret_grants(self, gate, state_file):
        result = asyncio.run(gate.authenticate(100, "s3cr3t", user_id=7, username="alice"))
        assert result == AuthResult.GRANTED
        assert asyncio.run(gate.is_authorized(100)) is True

        saved = json.loads(state_file.read_text(encoding="utf-8"))
        assert saved["records"]["100"]["user_id"] == 7
        assert saved["records"]["100"]["username"] == "alice"

    def test_authorization_is_per_chat(self, gate):
        asyncio.run(gate.authenticate(100, "s3cr3t"))
        assert asyncio.run(gate.is_authorized(200)) is False

    def test_second_auth_reports_already_authorized(self, gate):
        asyncio.run(gate.authenticate(100, "s3cr3t"))
        assert asyncio.run(gate.authenticate(100, "anything")) == AuthResult.ALREADY_AUTHORIZED

    def test_wrong_secret_rejected_without_state_change(self, gate, state_file):
        assert asyncio.run(gate.authenticate(100, "guess")) == AuthResult.REJECTED
        assert asyncio.run(gate.authenticate(100, "")) == AuthResult.REJECTED
        assert asyncio.run(gate.is_authorized(100)) is False
        assert not state_file.exists()
        assert gate.failures(100) == 2

    def test_lockout_after_max_failures(self, gate):
        for _ in range(3):
            assert asyncio.run(gate.authenticate(100, "guess")) == AuthResult.REJECTED
        assert asyncio.run(gate.authenticate(100, "s3cr3t")) == AuthResult.LOCKED_OUT
        assert asyncio.run(gate.is_authorized(100)) is False
        # Other chats are unaffected.
        assert asyncio.run(gate.authenticate(200, "s3cr3t")) == AuthResult.GRANTED

    def test_success_resets_failure_count(self, gate):
        asyncio.run(gate.authenticate(100, "guess"))
        asyncio.run(gate.authenticate(100, "s3cr3t"))
        assert gate.failures(100) == 0

    def test_empty_secret_not_allowed(self, state_file):
        with pytest.raises(ValueError):
            AuthorizationGate(JsonFileAuthorizationStore(state_file), secret="")


class TestJsonFileAuthorizationStore:
    def test_authorization_survives_restart(self, gate, state_file):
        asyncio.run(gate.authenticate(100, "s3cr3t", user_id=7))

        restarted = AuthorizationGate(JsonFileAuthorizationStore(state_file), secret="s3cr3t")
        assert asyncio.run(restarted.is_authorized(100)) is True
        record = asyncio.run(JsonFileAuthorizationStore(state_file).get(100))
        assert record.user_id == 7

    def test_corrupt_state_file(self, state_file):
        state_file.write_text("{not json", encoding="utf-8")
        store = JsonFileAuthorizationStore(state_file)
        with pytest.raises(AuthStoreError):
            asyncio.run(store.get(1))
