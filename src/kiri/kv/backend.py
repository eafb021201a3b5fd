"""The keyed-store contract the notification layer is written against.

Any backend exposing these operations can sit behind ``KVClient``. Change
delivery through ``watch`` is at-least-once: consumers must tolerate a
snapshot they have already seen (compare versionstamps).
"""

from collections.abc import AsyncIterator, Sequence
from dataclasses import dataclass
from typing import Any, Protocol

from kiri.kv.keys import KeyPart, KvKey


@dataclass(frozen=True, slots=True)
class KvEntry:
    """One key's value at one point in time.

    An absent key has ``value=None`` and ``versionstamp=None``.
    """

    key: KvKey
    value: Any = None
    versionstamp: str | None = None

    @property
    def exists(self) -> bool:
        return self.versionstamp is not None


class KVBackend(Protocol):
    """Protocol for keyed stores.

    ``watch`` yields one snapshot (a list with one entry per watched key,
    in the order given) immediately, then one per change to any of them.
    """

    async def get(self, key: Sequence[KeyPart]) -> KvEntry: ...

    async def set(self, key: Sequence[KeyPart], value: Any) -> str: ...

    async def delete(self, key: Sequence[KeyPart]) -> None: ...

    async def sum(self, key: Sequence[KeyPart], amount: int) -> int: ...

    def watch(self, keys: Sequence[Sequence[KeyPart]]) -> AsyncIterator[list[KvEntry]]: ...

    async def close(self) -> None: ...
