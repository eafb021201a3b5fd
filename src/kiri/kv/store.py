"""Per-key change notification over a keyed store.

``KVKeyStore`` caches one key's value and fans changes out to listeners.
It holds at most one backend watch, started by ``initialize()`` and
released when the last listener unsubscribes. ``KVStore`` is the
registry that hands out one ``KVKeyStore`` per distinct key.

Listener contract:

- ``subscribe`` calls the listener once, synchronously, with the cached
  value (``None`` before the first load).
- Afterwards the listener is called exactly once per observed change.
  Snapshots whose versionstamp matches the cache are dropped.
- A listener that raises during notification is logged and skipped;
  the rest still run.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import AsyncIterator, Callable, Sequence
from typing import Any, Generic, TypeAlias, TypeVar

from kiri.kv.backend import KvEntry
from kiri.kv.client import KVClient
from kiri.kv.keys import KeyPart, KvKey, normalize_key, serialize_key

logger = logging.getLogger("kiri.kv")

T = TypeVar("T")

Listener: TypeAlias = Callable[[T | None], object]
Unsubscribe: TypeAlias = Callable[[], None]

_MISSING = object()


class KVKeyStore(Generic[T]):
    """Cached value plus listener set for one key.

    Usage::

        store = registry.get_store(("counter",))
        unsubscribe = store.subscribe(print)   # prints None (not loaded yet)
        await store.initialize()               # loads, prints the value
        ...
        unsubscribe()                          # last one out stops the watch
    """

    __slots__ = (
        "_client",
        "_initialized",
        "_key",
        "_key_id",
        "_listeners",
        "_value",
        "_versionstamp",
        "_watch_task",
    )

    def __init__(self, key: Sequence[KeyPart], client: KVClient) -> None:
        self._key: KvKey = normalize_key(key)
        self._key_id = serialize_key(self._key)
        self._client = client
        # dict for insertion-ordered set semantics
        self._listeners: dict[Listener[T], None] = {}
        self._value: T | None = None
        self._versionstamp: str | None = None
        self._watch_task: asyncio.Task[None] | None = None
        self._initialized = False

    @property
    def key(self) -> KvKey:
        return self._key

    @property
    def key_id(self) -> str:
        return self._key_id

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    def get_value(self) -> T | None:
        """The cached value. Never touches the backend."""
        return self._value

    # -- Loading --

    async def initialize(self) -> None:
        """Load the current value and start watching for changes.

        A no-op when already initialized. If the loaded value differs
        from the cache, current listeners are notified.
        """
        if self._initialized:
            return
        kv = self._client.connection
        entry = await kv.get(self._key)
        # A concurrent initialize() may have finished while we awaited.
        if self._initialized:
            return
        self._initialized = True
        self._watch_task = asyncio.create_task(
            self._watch(kv.watch([self._key])),
            name=f"kv-watch:{self._key_id}",
        )
        self._apply(entry)

    async def _watch(self, stream: AsyncIterator[list[KvEntry]]) -> None:
        try:
            async for entries in stream:
                for entry in entries:
                    if serialize_key(entry.key) == self._key_id:
                        self._apply(entry)
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("KV watch for %s failed", self._key_id)
        finally:
            aclose = getattr(stream, "aclose", None)
            if aclose is not None:
                with contextlib.suppress(Exception):
                    await aclose()
            # Only reset if no newer watch has replaced this one.
            if self._watch_task is asyncio.current_task():
                self._watch_task = None
                self._initialized = False

    def _apply(self, entry: KvEntry) -> None:
        if entry.versionstamp == self._versionstamp:
            return
        self._value = entry.value
        self._versionstamp = entry.versionstamp
        self._notify()

    def _notify(self) -> None:
        value = self._value
        for listener in list(self._listeners):
            try:
                listener(value)
            except Exception:
                logger.exception("KV listener for %s raised", self._key_id)

    # -- Subscription --

    def subscribe(self, listener: Listener[T]) -> Unsubscribe:
        """Register *listener* and call it with the cached value right away.

        If that first call raises, the listener is removed and the
        exception propagates. The returned function is idempotent.
        """
        self._listeners[listener] = None
        try:
            listener(self._value)
        except Exception:
            self._listeners.pop(listener, None)
            raise

        def unsubscribe() -> None:
            if self._listeners.pop(listener, _MISSING) is _MISSING:
                return
            if not self._listeners:
                self.cleanup()

        return unsubscribe

    async def updates(self) -> AsyncIterator[T | None]:
        """Yield the current value, then each new value as it changes.

        Initializes the store first. Leaving the loop unsubscribes.
        """
        await self.initialize()
        queue: asyncio.Queue[T | None] = asyncio.Queue()
        unsubscribe = self.subscribe(queue.put_nowait)
        try:
            while True:
                yield await queue.get()
        finally:
            unsubscribe()

    def cleanup(self) -> None:
        """Stop the watch. The store can be initialized again later."""
        task, self._watch_task = self._watch_task, None
        self._initialized = False
        if task is not None and not task.done():
            task.cancel()

    def __repr__(self) -> str:
        return (
            f"KVKeyStore({self._key!r}, listeners={len(self._listeners)}, "
            f"initialized={self._initialized})"
        )


class KVStore:
    """Registry of per-key stores over one ``KVClient``.

    ``get_store`` returns the same ``KVKeyStore`` for keys with equal
    serialized forms.

    Usage::

        kv_store = KVStore(KVClient())
        await kv_store.open()
        counter = kv_store.get_store(("counter",))
    """

    __slots__ = ("_client", "_stores")

    def __init__(self, client: KVClient | None = None) -> None:
        self._client = client if client is not None else KVClient()
        self._stores: dict[str, KVKeyStore[Any]] = {}

    @property
    def client(self) -> KVClient:
        return self._client

    def get_store(self, key: Sequence[KeyPart]) -> KVKeyStore[Any]:
        key_id = serialize_key(key)
        store = self._stores.get(key_id)
        if store is None:
            store = KVKeyStore(key, self._client)
            self._stores[key_id] = store
        return store

    async def open(self) -> None:
        await self._client.open()

    async def close(self) -> None:
        """Stop every watch, forget every store, close the client."""
        tasks = [s._watch_task for s in self._stores.values() if s._watch_task is not None]
        for store in self._stores.values():
            store.cleanup()
        self._stores.clear()
        for task in tasks:
            with contextlib.suppress(asyncio.CancelledError):
                await task
        await self._client.close()

    def __len__(self) -> int:
        return len(self._stores)

    def __contains__(self, key: object) -> bool:
        if not isinstance(key, (tuple, list)):
            return False
        return serialize_key(key) in self._stores

    async def __aenter__(self) -> KVStore:
        await self.open()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()
