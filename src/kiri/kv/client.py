"""Explicit handle to one keyed-store connection.

Nothing opens implicitly: call ``open()`` (or use ``async with``) before
the first read, and ``close()`` when done.
"""

from __future__ import annotations

import inspect
import logging
from collections.abc import Awaitable, Callable, Sequence
from typing import Any, TypeAlias

from kiri.errors import StoreError
from kiri.kv.backend import KVBackend
from kiri.kv.keys import KeyPart
from kiri.kv.memory import MemoryKV

logger = logging.getLogger("kiri.kv")

Opener: TypeAlias = Callable[[], KVBackend | Awaitable[KVBackend]]


class KVClient:
    """Owns the lifecycle of a single ``KVBackend``.

    Usage::

        client = KVClient()             # MemoryKV by default
        await client.open()
        await client.set_value(("counter",), 0)
        await client.close()
    """

    __slots__ = ("_backend", "_opener")

    def __init__(self, opener: Opener = MemoryKV) -> None:
        self._opener = opener
        self._backend: KVBackend | None = None

    @property
    def is_open(self) -> bool:
        return self._backend is not None

    @property
    def connection(self) -> KVBackend:
        """The open backend. Raises ``StoreError`` if not open."""
        if self._backend is None:
            raise StoreError("KVClient is not open; call open() first")
        return self._backend

    async def open(self) -> KVBackend:
        """Open the connection. A second call returns the same backend."""
        if self._backend is None:
            backend = self._opener()
            if inspect.isawaitable(backend):
                backend = await backend
            self._backend = backend
            logger.debug("KV connection opened")
        return self._backend

    async def close(self) -> None:
        backend, self._backend = self._backend, None
        if backend is not None:
            await backend.close()
            logger.debug("KV connection closed")

    async def get_value(self, key: Sequence[KeyPart]) -> Any:
        """Current value under *key*, or ``None`` if absent."""
        entry = await self.connection.get(key)
        return entry.value

    async def set_value(self, key: Sequence[KeyPart], value: Any) -> None:
        await self.connection.set(key, value)

    async def __aenter__(self) -> KVClient:
        await self.open()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()
