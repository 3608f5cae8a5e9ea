"""Git hooks for the ledger repository."""

from beanbot.hooks.pre_commit import BeanCheckUnavailable, run_bean_check

__all__ = ["BeanCheckUnavailable", "run_bean_check"]
