"""
Authorization Gate

Checks the shared secret and records which chats presented it.

Failed attempts are counted per chat for the lifetime of the process.
Once a chat reaches the limit, /auth stops checking the secret for that
chat until the bot restarts.
"""

import hmac
from typing import Optional

import structlog

from beanbot.models.auth import AuthorizationRecord, AuthResult
from beanbot.services.auth.interface import AuthorizationStoreInterface


logger = structlog.get_logger(__name__)


class AuthorizationGate:
    """Grants access to chats that present the shared secret."""

    def __init__(
        self,
        store: AuthorizationStoreInterface,
        secret: str,
        max_failures: int = 5,
    ):
        if not secret:
            raise ValueError("The shared secret must not be empty")
        self._store = store
        self._secret = secret
        self._max_failures = max_failures
        self._failures: dict[int, int] = {}

    def failures(self, chat_id: int) -> int:
        """Number of wrong secrets presented by `chat_id` so far."""
        return self._failures.get(chat_id, 0)

    async def is_authorized(self, chat_id: int) -> bool:
        return await self._store.is_authorized(chat_id)

    async def authenticate(
        self,
        chat_id: int,
        secret: str,
        user_id: Optional[int] = None,
        username: Optional[str] = None,
    ) -> AuthResult:
        """
        Check `secret` for `chat_id`.

        Returns:
            GRANTED on a first successful attempt, ALREADY_AUTHORIZED if the
            chat was authorized before, REJECTED on a wrong secret and
            LOCKED_OUT once the chat has used up its attempts.

        Raises:
            AuthStoreError: If a granted authorization cannot be persisted
        """
        if await self._store.is_authorized(chat_id):
            return AuthResult.ALREADY_AUTHORIZED

        if self.failures(chat_id) >= self._max_failures:
            logger.warning("auth_locked_out", chat_id=chat_id, user_id=user_id)
            return AuthResult.LOCKED_OUT

        if not hmac.compare_digest(secret.encode("utf-8"), self._secret.encode("utf-8")):
            self._failures[chat_id] = self.failures(chat_id) + 1
            logger.warning(
                "auth_rejected",
                chat_id=chat_id,
                user_id=user_id,
                failures=self._failures[chat_id],
            )
            return AuthResult.REJECTED

        await self._store.add(
            AuthorizationRecord(chat_id=chat_id, user_id=user_id, username=username)
        )
        self._failures.pop(chat_id, None)
        logger.info(
            "auth_granted",
            chat_id=chat_id,
            user_id=user_id,
            username=username or "<noname>",
        )
        return AuthResult.GRANTED
