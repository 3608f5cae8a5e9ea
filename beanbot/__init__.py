"""
beanbot - Source Package

A Telegram bot that records beancount transactions in a git-tracked ledger.

DESIGN PRINCIPLES:
1. Parse → show → human confirms → write → commit → push
2. One shared secret, one record per authorized chat
3. Fail visibly: the user always learns how far a transaction got
4. Every step is auditable
"""

__version__ = "1.0.0"
