"""In-process keyed store.

Implements the ``KVBackend`` contract on a plain dict. Versionstamps are
a monotonic counter; every watcher gets its own ``asyncio.Queue`` and a
snapshot is pushed into it at the moment a watched key changes, so no
intermediate value is lost to coalescing.

Single event loop only: all mutation happens between awaits, so no
locks are needed.
"""

import asyncio
import copy
from collections.abc import AsyncIterator, Sequence
from dataclasses import dataclass, field
from typing import Any

from kiri.errors import StoreError
from kiri.kv.backend import KvEntry
from kiri.kv.keys import KeyPart, KvKey, normalize_key, serialize_key


# Identity-hashed: each watcher is a distinct set member.
@dataclass(slots=True, eq=False)
class _Watcher:
    keys: tuple[KvKey, ...]
    key_ids: frozenset[str]
    queue: asyncio.Queue[list[KvEntry] | None] = field(default_factory=asyncio.Queue)


class MemoryKV:
    """Dict-backed ``KVBackend``.

    Values are deep-copied on the way in and out, so mutating a value you
    read never changes the stored one behind the watchers' backs.

    Usage::

        kv = MemoryKV()
        await kv.set(("counter",), 0)
        await kv.sum(("counter",), 1)
        async for snapshot in kv.watch([("counter",)]):
            ...
    """

    __slots__ = ("_closed", "_entries", "_version", "_watchers")

    def __init__(self) -> None:
        self._entries: dict[str, KvEntry] = {}
        self._watchers: set[_Watcher] = set()
        self._version = 0
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def watcher_count(self) -> int:
        return len(self._watchers)

    # -- Reads --

    async def get(self, key: Sequence[KeyPart]) -> KvEntry:
        self._check_open()
        return self._read(normalize_key(key))

    def _read(self, key: KvKey) -> KvEntry:
        entry = self._entries.get(serialize_key(key))
        if entry is None:
            return KvEntry(key)
        return KvEntry(entry.key, copy.deepcopy(entry.value), entry.versionstamp)

    # -- Writes --

    async def set(self, key: Sequence[KeyPart], value: Any) -> str:
        self._check_open()
        return self._write(normalize_key(key), copy.deepcopy(value))

    async def delete(self, key: Sequence[KeyPart]) -> None:
        self._check_open()
        parts = normalize_key(key)
        key_id = serialize_key(parts)
        if self._entries.pop(key_id, None) is not None:
            self._publish(key_id)

    async def sum(self, key: Sequence[KeyPart], amount: int) -> int:
        """Atomically add *amount* to an integer value. Absent keys count as 0."""
        self._check_open()
        parts = normalize_key(key)
        current = self._read(parts).value
        if current is None:
            current = 0
        if isinstance(current, bool) or not isinstance(current, int):
            msg = f"Cannot sum into non-integer value at {parts!r}: {current!r}"
            raise TypeError(msg)
        total = current + amount
        self._write(parts, total)
        return total

    def _write(self, key: KvKey, value: Any) -> str:
        self._version += 1
        versionstamp = f"{self._version:020x}"
        key_id = serialize_key(key)
        self._entries[key_id] = KvEntry(key, value, versionstamp)
        self._publish(key_id)
        return versionstamp

    # -- Watch --

    async def watch(self, keys: Sequence[Sequence[KeyPart]]) -> AsyncIterator[list[KvEntry]]:
        """Yield a snapshot of *keys* now, then again after every change to any of them.

        Ends when the store is closed. Breaking out of the loop (or
        cancelling the consuming task) unregisters the watcher.
        """
        self._check_open()
        parts = tuple(normalize_key(k) for k in keys)
        watcher = _Watcher(parts, frozenset(serialize_key(k) for k in parts))
        self._watchers.add(watcher)
        try:
            yield self._snapshot(watcher)
            while True:
                snapshot = await watcher.queue.get()
                if snapshot is None:
                    return
                yield snapshot
        finally:
            self._watchers.discard(watcher)

    def _snapshot(self, watcher: _Watcher) -> list[KvEntry]:
        return [self._read(key) for key in watcher.keys]

    def _publish(self, key_id: str) -> None:
        for watcher in list(self._watchers):
            if key_id in watcher.key_ids:
                watcher.queue.put_nowait(self._snapshot(watcher))

    # -- Lifecycle --

    async def close(self) -> None:
        """Close the store. Active watch iterators finish; further calls raise."""
        if self._closed:
            return
        self._closed = True
        for watcher in list(self._watchers):
            watcher.queue.put_nowait(None)

    def _check_open(self) -> None:
        if self._closed:
            raise StoreError("MemoryKV is closed")
