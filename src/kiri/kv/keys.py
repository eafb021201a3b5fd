"""Multi-part keys for the keyed store.

A key is an ordered tuple of primitive parts, e.g. ``("counter",)`` or
``("users", 42, "profile")``. Two keys are the same key iff their
canonical serialized forms are equal; the registry and the watch filter
both compare serialized forms, never the tuples themselves.
"""

import json as json_module
from collections.abc import Sequence
from typing import TypeAlias

KeyPart: TypeAlias = str | int | float | bool | bytes
KvKey: TypeAlias = tuple[KeyPart, ...]


def normalize_key(key: Sequence[KeyPart]) -> KvKey:
    """Return *key* as a tuple, rejecting empty keys and non-primitive parts."""
    if isinstance(key, (str, bytes)):
        msg = f"A key is a sequence of parts, not a bare {type(key).__name__}: {key!r}"
        raise TypeError(msg)
    parts = tuple(key)
    if not parts:
        raise ValueError("A key needs at least one part")
    for part in parts:
        if not isinstance(part, (str, int, float, bool, bytes)):
            msg = f"Unsupported key part {part!r} ({type(part).__name__})"
            raise TypeError(msg)
    return parts


def _encode_part(part: KeyPart) -> object:
    # Tag the types JSON would otherwise conflate.
    if isinstance(part, bytes):
        return {"bytes": part.hex()}
    if isinstance(part, bool):
        return part
    if isinstance(part, float):
        return {"float": repr(part)}
    return part


def serialize_key(key: Sequence[KeyPart]) -> str:
    """Canonical string form of *key*.

    ``serialize_key(("counter",)) == '["counter"]'``. Bytes and floats are
    tagged so that ``(1,)``, ``(1.0,)`` and ``(b"1",)`` stay distinct.
    """
    parts = normalize_key(key)
    return json_module.dumps([_encode_part(p) for p in parts], separators=(",", ":"))
