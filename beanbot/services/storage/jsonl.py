"""
JSON-Lines Audit Storage

One audit event per line, appended to a local file next to the bot.
The ledger repository itself is never used for audit data.

TRADEOFFS:
- Reads scan the whole file (fine for a personal bot's volume)
- Lines that fail to parse are skipped on read, never rewritten
"""

from pathlib import Path
from uuid import UUID

import structlog
from pydantic import ValidationError

from beanbot.models.audit import AuditEvent
from beanbot.services.storage.interface import AuditStorageInterface, StorageError


logger = structlog.get_logger(__name__)


class JsonLinesAuditStorage(AuditStorageInterface):
    """Audit storage backed by an append-only JSON-lines file."""

    def __init__(self, path: Path):
        self._path = Path(path)

    async def append_event(self, event: AuditEvent) -> bool:
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            with self._path.open("a", encoding="utf-8") as f:
                f.write(event.to_json_line())
                f.write("\n")
        except OSError as e:
            raise StorageError(f"Cannot append to audit log {self._path}: {e}") from e
        return True

    def _read_events(self) -> list[AuditEvent]:
        if not self._path.exists():
            return []
        events = []
        try:
            with self._path.open(encoding="utf-8") as f:
                for line_number, line in enumerate(f, start=1):
                    if not line.strip():
                        continue
                    try:
                        events.append(AuditEvent.model_validate_json(line))
                    except ValidationError:
                        logger.warning(
                            "audit_line_unreadable",
                            path=str(self._path),
                            line=line_number,
                        )
        except OSError as e:
            raise StorageError(f"Cannot read audit log {self._path}: {e}") from e
        return events

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        events = [e for e in self._read_events() if e.correlation_id == correlation_id]
        return sorted(events, key=lambda e: e.timestamp)

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        events = sorted(self._read_events(), key=lambda e: e.timestamp, reverse=True)
        return events[:limit]
