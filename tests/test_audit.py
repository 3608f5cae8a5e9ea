"""Tests for the audit logger and its JSON-lines storage."""

import asyncio
from uuid import uuid4

from beanbot.audit import AuditLogger
from beanbot.models.audit import AuditEventBuilder, AuditEventType
from beanbot.services.storage import AuditStorageInterface, JsonLinesAuditStorage


class BrokenStorage(AuditStorageInterface):
    async def append_event(self, event):
        raise OSError("disk full")

    async def get_events_by_correlation_id(self, correlation_id):
        return []

    async def get_recent_events(self, limit=100):
        return []


def test_events_are_appended_and_read_back(tmp_path):
    storage = JsonLinesAuditStorage(tmp_path / "audit" / "audit.jsonl")
    correlation_id = uuid4()
    audit_logger = AuditLogger(storage)

    async def scenario():
        await audit_logger.log_auth_granted(1, 2, "alice", correlation_id=correlation_id)
        await audit_logger.log_transaction_cancelled(1, correlation_id=uuid4())
        await audit_logger.log_persistence_failed(
            AuditEventType.PUSH_FAILED, 1, "git push failed", "txs/2024/03.bean",
            correlation_id=correlation_id,
        )
        return (
            await storage.get_events_by_correlation_id(correlation_id),
            await storage.get_recent_events(limit=2),
        )

    related, recent = asyncio.run(scenario())
    assert [e.event_type for e in related] == [
        AuditEventType.AUTH_GRANTED,
        AuditEventType.PUSH_FAILED,
    ]
    assert len(recent) == 2
    assert recent[0].timestamp >= recent[1].timestamp


def test_unreadable_lines_are_skipped(tmp_path):
    path = tmp_path / "audit.jsonl"
    storage = JsonLinesAuditStorage(path)
    asyncio.run(storage.append_event(AuditEventBuilder.transaction_cancelled(chat_id=1)))
    with path.open("a", encoding="utf-8") as f:
        f.write("garbage\n")

    assert len(asyncio.run(storage.get_recent_events())) == 1


def test_storage_failure_does_not_raise():
    audit_logger = AuditLogger(BrokenStorage())
    event = AuditEventBuilder.system_error("boom", "something broke")
    assert asyncio.run(audit_logger.log(event)) is False


def test_local_only_logger_succeeds():
    event = AuditEventBuilder.accounts_listed(chat_id=1, query="", result_count=3)
    assert asyncio.run(AuditLogger().log(event)) is True
