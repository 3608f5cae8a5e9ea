"""Version control services package."""

from beanbot.services.vcs.interface import (
    CommitError,
    PushError,
    SyncError,
    VersionControlError,
    VersionControlInterface,
)
from beanbot.services.vcs.git_service import GitRepository

__all__ = [
    "CommitError",
    "GitRepository",
    "PushError",
    "SyncError",
    "VersionControlError",
    "VersionControlInterface",
]
