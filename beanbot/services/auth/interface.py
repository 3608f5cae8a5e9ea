"""
Abstract Authorization Store Interface

Authorization records are keyed by chat id. Records are only ever added;
there is no expiry or revocation through the bot.
"""

from abc import ABC, abstractmethod
from typing import Optional

from beanbot.models.auth import AuthorizationRecord


class AuthorizationStoreInterface(ABC):
    """Persistence for authorized chats."""

    @abstractmethod
    async def get(self, chat_id: int) -> Optional[AuthorizationRecord]:
        """Return the record for `chat_id`, or None if not authorized."""
        pass

    @abstractmethod
    async def add(self, record: AuthorizationRecord) -> None:
        """
        Persist a new authorization.

        Raises:
            AuthStoreError: If the record cannot be persisted
        """
        pass

    async def is_authorized(self, chat_id: int) -> bool:
        return await self.get(chat_id) is not None


class AuthStoreError(Exception):
    """Base exception for authorization persistence."""
    pass
