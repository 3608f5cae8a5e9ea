"""
Git Version Control Implementation

Runs the `git` executable against the ledger repository.

PRECONDITIONS (configured outside the bot):
- a commit identity (user.name / user.email)
- a remote with the current branch tracked, so plain `pull` and `push` work

Only pushes are retried: a failed pull or commit means the repository needs
a human, while a failed push is usually a transient network problem.
"""

import asyncio
from pathlib import Path
from typing import Optional, Sequence

import structlog
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)
from tenacity.wait import wait_base

from beanbot.config import get_settings
from beanbot.config.settings import GitSettings
from beanbot.services.vcs.interface import (
    CommitError,
    PushError,
    SyncError,
    VersionControlError,
    VersionControlInterface,
)


logger = structlog.get_logger(__name__)


class GitRepository(VersionControlInterface):
    """
    Git-backed implementation of the version control interface.

    Every call is a separate `git -C <root> ...` subprocess with a timeout.
    """

    def __init__(
        self,
        root: Optional[Path] = None,
        settings: Optional[GitSettings] = None,
        push_wait: Optional[wait_base] = None,
    ):
        """
        Args:
            root: Repository root (defaults to the configured ledger root)
            settings: Git settings (defaults to the environment)
            push_wait: tenacity wait strategy between push attempts
        """
        self._settings = settings or get_settings().git
        self._root = Path(root) if root is not None else get_settings().beancount.root
        self._push_wait = push_wait or wait_exponential(multiplier=1, min=2, max=10)

    @property
    def root(self) -> Path:
        return self._root

    async def _run(
        self,
        *args: str,
        error_cls: type[VersionControlError] = VersionControlError,
    ) -> str:
        """
        Run one git command and return its stdout.

        Raises:
            error_cls: On a non-zero exit status, a timeout, or a missing binary
        """
        command = [self._settings.executable, "-C", str(self._root), *args]
        logger.debug("git_command", args=list(args))

        try:
            process = await asyncio.create_subprocess_exec(
                *command,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise error_cls(f"execution of git {args[0]} failed: {e}") from e

        try:
            stdout, stderr = await asyncio.wait_for(
                process.communicate(),
                timeout=self._settings.timeout_seconds,
            )
        except asyncio.TimeoutError as e:
            process.kill()
            await process.wait()
            raise error_cls(
                f"git {args[0]} timed out after {self._settings.timeout_seconds}s"
            ) from e

        if process.returncode != 0:
            stderr_text = stderr.decode("utf-8", errors="replace")
            logger.warning(
                "git_command_failed",
                args=list(args),
                returncode=process.returncode,
                stderr=stderr_text.strip(),
            )
            raise error_cls(f"git {args[0]} failed", stderr=stderr_text)

        return stdout.decode("utf-8", errors="replace")

    async def sync(self) -> None:
        await self._run("pull", "--rebase", error_cls=SyncError)
        logger.info("git_synced", root=str(self._root))

    async def commit(
        self,
        message: str,
        paths: Sequence[Path],
        details: Optional[str] = None,
    ) -> None:
        await self._run("add", "--", *(str(p) for p in paths), error_cls=CommitError)

        args = ["commit", "-m", message]
        if details:
            args += ["-m", details]
        await self._run(*args, error_cls=CommitError)
        logger.info("git_committed", paths=[str(p) for p in paths])

    async def push(self) -> None:
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self._settings.push_attempts),
            wait=self._push_wait,
            retry=retry_if_exception_type(PushError),
            reraise=True,
        )
        async for attempt in retrying:
            with attempt:
                await self._run("push", error_cls=PushError)
        logger.info("git_pushed", root=str(self._root))

    async def unstage(self, paths: Sequence[Path]) -> None:
        await self._run("reset", "-q", "--", *(str(p) for p in paths), error_cls=CommitError)
