"""
Abstract Version Control Interface

DESIGN DECISION: Flows never shell out to git directly. They call this
interface, which lets tests substitute a double that simulates sync,
commit or push failures without a real repository.
"""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional, Sequence


class VersionControlInterface(ABC):
    """Abstract interface for the ledger repository."""

    @abstractmethod
    async def sync(self) -> None:
        """
        Bring the working copy up to date with its remote.

        Raises:
            SyncError: If the update fails
        """
        pass

    @abstractmethod
    async def commit(
        self,
        message: str,
        paths: Sequence[Path],
        details: Optional[str] = None,
    ) -> None:
        """
        Stage `paths` and commit them.

        Args:
            message: Commit subject
            paths: Files to stage
            details: Optional commit body (e.g. the original chat command)

        Raises:
            CommitError: If staging or committing fails
        """
        pass

    @abstractmethod
    async def push(self) -> None:
        """
        Push committed changes to the tracked remote.

        Raises:
            PushError: If the push fails
        """
        pass

    @abstractmethod
    async def unstage(self, paths: Sequence[Path]) -> None:
        """Remove `paths` from the index (used when rolling back)."""
        pass

    async def commit_and_push(
        self,
        message: str,
        paths: Sequence[Path],
        details: Optional[str] = None,
    ) -> None:
        """Commit `paths` and push. Raises CommitError or PushError."""
        await self.commit(message, paths, details)
        await self.push()


class VersionControlError(Exception):
    """Base exception for version control operations."""

    def __init__(self, message: str, stderr: str = ""):
        super().__init__(message)
        self.stderr = stderr

    def __str__(self) -> str:
        base = super().__str__()
        if self.stderr:
            return f"{base}: {self.stderr.strip()}"
        return base


class SyncError(VersionControlError):
    """pull --rebase failed."""
    pass


class CommitError(VersionControlError):
    """git add or git commit failed."""
    pass


class PushError(VersionControlError):
    """git push failed."""
    pass
