"""
JSON File Authorization Store

The whole state is a single small JSON document:

    {"records": {"123456": {"chat_id": 123456, "user_id": 42, ...}}}

It is loaded once and rewritten (via a temporary file and rename) on
every new authorization.
"""

import os
from pathlib import Path
from typing import Optional

import structlog
from pydantic import ValidationError

from beanbot.models.auth import AuthorizationRecord, AuthorizationState
from beanbot.services.auth.interface import AuthorizationStoreInterface, AuthStoreError


logger = structlog.get_logger(__name__)


class JsonFileAuthorizationStore(AuthorizationStoreInterface):
    """Authorization store persisted to a JSON file."""

    def __init__(self, path: Path):
        self._path = Path(path)
        self._state: Optional[AuthorizationState] = None

    def _load(self) -> AuthorizationState:
        if self._state is None:
            if self._path.exists():
                try:
                    self._state = AuthorizationState.model_validate_json(
                        self._path.read_text(encoding="utf-8")
                    )
                except (OSError, ValidationError) as e:
                    raise AuthStoreError(f"Cannot load state file {self._path}: {e}") from e
            else:
                self._state = AuthorizationState()
            logger.info(
                "authorization_state_loaded",
                path=str(self._path),
                chats=len(self._state.records),
            )
        return self._state

    def _save(self, state: AuthorizationState) -> None:
        tmp_path = self._path.with_name(self._path.name + ".tmp")
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(state.model_dump_json(indent=2), encoding="utf-8")
            os.replace(tmp_path, self._path)
        except OSError as e:
            raise AuthStoreError(f"Cannot write state file {self._path}: {e}") from e

    async def get(self, chat_id: int) -> Optional[AuthorizationRecord]:
        return self._load().records.get(chat_id)

    async def add(self, record: AuthorizationRecord) -> None:
        state = self._load()
        updated = state.model_copy(
            update={"records": {**state.records, record.chat_id: record}}
        )
        self._save(updated)
        self._state = updated
