"""Keyed store with per-key change notification."""

from kiri.kv.backend import KVBackend, KvEntry
from kiri.kv.client import KVClient
from kiri.kv.keys import KeyPart, KvKey, normalize_key, serialize_key
from kiri.kv.memory import MemoryKV
from kiri.kv.store import KVKeyStore, KVStore

__all__ = [
    "KVBackend",
    "KVClient",
    "KVKeyStore",
    "KVStore",
    "KeyPart",
    "KvEntry",
    "KvKey",
    "MemoryKV",
    "normalize_key",
    "serialize_key",
]
