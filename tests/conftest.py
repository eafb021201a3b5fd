"""Shared fixtures."""

from collections.abc import AsyncIterator

import pytest

from kiri.context import Context
from kiri.http.request import Request
from kiri.http.response import Response
from kiri.kv import KVClient, KVStore, MemoryKV


def make_ctx(path: str = "/", method: str = "GET", headers: dict[str, str] | None = None) -> Context:
    return Context(Request.build(method, path, headers=headers))


async def not_found() -> Response:
    return Response.text("Not found", status=404)


async def ok() -> Response:
    return Response.text("ok")


@pytest.fixture
async def kv_store() -> AsyncIterator[KVStore]:
    store = KVStore(KVClient(MemoryKV))
    await store.open()
    yield store
    await store.close()
