"""
Storage Services Package

Audit event storage. Currently implements a JSON-lines file backend.
"""

from beanbot.services.storage.interface import AuditStorageInterface, StorageError
from beanbot.services.storage.jsonl import JsonLinesAuditStorage

__all__ = [
    "AuditStorageInterface",
    "JsonLinesAuditStorage",
    "StorageError",
]
