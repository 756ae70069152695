"""Store adapter contract and backends."""

from endpoints.store.base import (
    ReadQuery,
    Record,
    RelationAttachment,
    RelationInfo,
    ResourceData,
    Store,
    StoreAdapter,
)
from endpoints.store.memory import MemoryAdapter, MemoryStore

__all__ = [
    "MemoryAdapter",
    "MemoryStore",
    "ReadQuery",
    "Record",
    "RelationAttachment",
    "RelationInfo",
    "ResourceData",
    "Store",
    "StoreAdapter",
]
