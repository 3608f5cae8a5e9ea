"""Authorization services package."""

from beanbot.services.auth.interface import AuthorizationStoreInterface, AuthStoreError
from beanbot.services.auth.json_store import JsonFileAuthorizationStore
from beanbot.services.auth.gate import AuthorizationGate

__all__ = [
    "AuthStoreError",
    "AuthorizationGate",
    "AuthorizationStoreInterface",
    "JsonFileAuthorizationStore",
]
