"""
Git pre-commit hook: validate the ledger with bean-check.

Install into the ledger repository with:

    ln -s "$(which beanbot-pre-commit)" .git/hooks/pre-commit

or copy `hooks/pre-commit` from this project. A commit is refused when
bean-check reports any error; the bot then rolls its append back.

What gets checked:
- `--ledger FILE` or BEANCOUNT_LEDGER_FILE, if set: that entry point
- otherwise the staged .bean files together with accounts.bean, through a
  temporary file that includes them (git runs the hook from the top of the
  work tree, so paths are relative to the ledger root)

Exit status: 0 clean, 1 ledger errors, 2 bean-check or git unavailable.
"""

import argparse
import os
import subprocess
import sys
import tempfile
from pathlib import Path
from typing import Optional, Sequence

from beanbot.config.settings import HookSettings


class BeanCheckUnavailable(Exception):
    """bean-check (or git) is not installed or did not finish."""
    pass


def run_bean_check(ledger_path: Path, timeout: float = 60) -> tuple[bool, list[str]]:
    """Run bean-check on the ledger file.

    Returns:
        Tuple of (success, list of error messages)

    Raises:
        BeanCheckUnavailable: If bean-check is missing or times out
    """
    try:
        result = subprocess.run(
            ["bean-check", str(ledger_path)],
            capture_output=True,
            text=True,
            timeout=timeout,
        )
    except FileNotFoundError as e:
        raise BeanCheckUnavailable("bean-check not found. Is beancount installed?") from e
    except subprocess.TimeoutExpired as e:
        raise BeanCheckUnavailable("bean-check timed out") from e

    if result.returncode == 0:
        return True, []

    output = result.stderr.strip() or result.stdout.strip()
    errors = [line.strip() for line in output.split("\n") if line.strip()]
    return False, errors


def staged_ledger_files(timeout: float = 60) -> list[str]:
    """
    List the .bean files added, copied, modified or renamed in the index.

    Raises:
        BeanCheckUnavailable: If git cannot list the index
    """
    try:
        result = subprocess.run(
            ["git", "diff", "--cached", "--name-only", "--diff-filter=ACMR"],
            capture_output=True,
            text=True,
            timeout=timeout,
        )
    except (FileNotFoundError, subprocess.TimeoutExpired) as e:
        raise BeanCheckUnavailable(f"cannot list staged files: {e}") from e
    if result.returncode != 0:
        raise BeanCheckUnavailable(f"cannot list staged files: {result.stderr.strip()}")

    return [name for name in result.stdout.splitlines() if name.endswith(".bean")]


def include_document(paths: Sequence[str]) -> str:
    """Beancount text that includes every file of `paths`."""
    return "".join(f'include "{path}"\n' for path in paths)


def check_staged(accounts_file: str, timeout: float) -> tuple[bool, list[str]]:
    """Check the staged ledger files together with the accounts file."""
    paths = [accounts_file] if Path(accounts_file).exists() else []
    paths += [name for name in staged_ledger_files(timeout) if name != accounts_file]
    if not paths:
        return True, []

    # Includes resolve relative to the including file, so it lives in the root.
    fd, entry_name = tempfile.mkstemp(prefix=".beanbot-check-", suffix=".bean", dir=".")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(include_document(paths))
        return run_bean_check(Path(entry_name), timeout=timeout)
    finally:
        os.unlink(entry_name)


def main(argv: Optional[Sequence[str]] = None) -> int:
    settings = HookSettings()
    parser = argparse.ArgumentParser(
        prog="beanbot-pre-commit",
        description="Refuse the commit if bean-check reports errors.",
    )
    parser.add_argument(
        "--ledger",
        default=settings.ledger_file,
        help="Ledger entry point, relative to the repository root "
             "(default: BEANCOUNT_LEDGER_FILE, else the staged files)",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=60,
        help="Seconds to wait for bean-check",
    )
    args = parser.parse_args(argv)

    try:
        if args.ledger:
            ledger_path = Path(args.ledger)
            if not ledger_path.exists():
                print(f"pre-commit: ledger file {ledger_path} not found", file=sys.stderr)
                return 1
            target = str(ledger_path)
            ok, errors = run_bean_check(ledger_path, timeout=args.timeout)
        else:
            target = "the staged files"
            ok, errors = check_staged(settings.accounts_file, args.timeout)
    except BeanCheckUnavailable as e:
        print(f"pre-commit: {e}", file=sys.stderr)
        return 2

    if not ok:
        print(f"pre-commit: bean-check found errors in {target}:", file=sys.stderr)
        for error in errors:
            print(f"  {error}", file=sys.stderr)
        return 1
    return 0


def entrypoint() -> None:
    sys.exit(main())


if __name__ == "__main__":
    entrypoint()
