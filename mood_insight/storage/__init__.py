"""Key-value persistence for metrics and analysis settings"""

from .kv_store import InMemoryKeyValueStore, JsonFileKeyValueStore, KeyValueStore

__all__ = ["InMemoryKeyValueStore", "JsonFileKeyValueStore", "KeyValueStore"]
