"""Tests for kiri.demo — the counter API, SSE feed, and static fallback."""

from datetime import datetime
from pathlib import Path

import pytest

from kiri.config import AppConfig
from kiri.demo import COUNTER_KEY, create_app
from kiri.kv import KVClient, KVStore
from kiri.testing import TestClient


@pytest.fixture
def dist(tmp_path: Path) -> Path:
    (tmp_path / "index.html").write_text("<h1>counter</h1>")
    return tmp_path


@pytest.fixture
def config(dist: Path) -> AppConfig:
    return AppConfig(static_dir=dist, sse_tick_interval=0.01)


@pytest.fixture
def kv_store() -> KVStore:
    return KVStore(KVClient())


class TestCounterAPI:
    async def test_absent_counter_reads_zero(self, config: AppConfig, kv_store: KVStore) -> None:
        async with TestClient(create_app(config, kv_store)) as client:
            response = await client.get("/api/counter")
        assert response.status == 200
        assert response.json_body() == {"counter": 0}

    async def test_increment(self, config: AppConfig, kv_store: KVStore) -> None:
        async with TestClient(create_app(config, kv_store)) as client:
            first = await client.post("/api/counter", json={"increment": 5})
            second = await client.post("/api/counter")
            current = await client.get("/api/counter")
        assert first.json_body() == {"counter": 5}
        assert second.json_body() == {"counter": 6}
        assert current.json_body() == {"counter": 6}

    async def test_non_integer_increment(self, config: AppConfig, kv_store: KVStore) -> None:
        async with TestClient(create_app(config, kv_store)) as client:
            response = await client.post("/api/counter", json={"increment": "lots"})
        assert response.status == 400
        assert response.json_body() == {"error": "increment must be an integer"}

    async def test_malformed_body(self, config: AppConfig, kv_store: KVStore) -> None:
        async with TestClient(create_app(config, kv_store)) as client:
            response = await client.post(
                "/api/counter", body=b"{oops", headers={"content-type": "application/json"}
            )
        assert response.status == 400

    async def test_store_failure(self, config: AppConfig, kv_store: KVStore) -> None:
        async with TestClient(create_app(config, kv_store)) as client:
            assert kv_store.client.is_open
            await kv_store.client.close()
            read = await client.get("/api/counter")
            write = await client.post("/api/counter", json={"increment": 1})
        assert read.status == 500
        assert read.json_body() == {"error": "Failed to get counter"}
        assert write.status == 500
        assert write.json_body() == {"error": "Failed to update counter"}

    async def test_empty_injected_store_is_used(self, config: AppConfig, kv_store: KVStore) -> None:
        assert len(kv_store) == 0
        async with TestClient(create_app(config, kv_store)) as client:
            assert kv_store.client.is_open
            await client.post("/api/counter", json={"increment": 3})
            assert await kv_store.client.get_value(COUNTER_KEY) == 3
        assert not kv_store.client.is_open

    async def test_health(self, config: AppConfig, kv_store: KVStore) -> None:
        async with TestClient(create_app(config, kv_store)) as client:
            response = await client.get("/api/health")
        body = response.json_body()
        assert body["status"] == "ok"
        assert datetime.fromisoformat(body["timestamp"]).tzinfo is not None

    async def test_unknown_api_route(self, config: AppConfig, kv_store: KVStore) -> None:
        async with TestClient(create_app(config, kv_store)) as client:
            response = await client.get("/api/nope")
        assert response.status == 404
        assert response.text_body == "Not found"

    async def test_cors_headers(self, config: AppConfig, kv_store: KVStore) -> None:
        async with TestClient(create_app(config, kv_store)) as client:
            preflight = await client.options("/api/counter")
            response = await client.get("/api/counter")
        assert preflight.status == 200
        assert preflight.header("access-control-max-age") == "86400"
        assert response.header("access-control-allow-origin") == "*"


class TestAuth:
    async def test_api_requires_token(self, dist: Path, kv_store: KVStore) -> None:
        config = AppConfig(static_dir=dist, auth_secret="secret123")
        async with TestClient(create_app(config, kv_store)) as client:
            denied = await client.get("/api/counter")
            allowed = await client.get(
                "/api/counter", headers={"Authorization": "Bearer secret123"}
            )
            page = await client.get("/")
        assert denied.status == 401
        assert allowed.status == 200
        assert page.status == 200

    async def test_no_secret_leaves_api_open(self, config: AppConfig, kv_store: KVStore) -> None:
        async with TestClient(create_app(config, kv_store)) as client:
            response = await client.get("/api/counter")
        assert response.status == 200


class TestStatic:
    async def test_index(self, config: AppConfig, kv_store: KVStore) -> None:
        async with TestClient(create_app(config, kv_store)) as client:
            response = await client.get("/")
        assert response.status == 200
        assert response.text_body == "<h1>counter</h1>"

    async def test_missing_asset(self, config: AppConfig, kv_store: KVStore) -> None:
        async with TestClient(create_app(config, kv_store)) as client:
            response = await client.get("/assets/missing.js")
        assert response.status == 404


class TestCounterStream:
    async def test_streams_current_value_and_ticks(self, config: AppConfig, kv_store: KVStore) -> None:
        async with TestClient(create_app(config, kv_store)) as client:
            result = await client.stream("/api/sse", max_events=3)
        assert result.status == 200
        assert result.headers["content-type"] == "text/event-stream"
        assert result.headers["cache-control"] == "no-cache"
        assert result.json_data() == [{"counter": 0}, {"counter": 1}, {"counter": 2}]

    async def test_cors_headers_sent_once(self, config: AppConfig, kv_store: KVStore) -> None:
        async with TestClient(create_app(config, kv_store)) as client:
            result = await client.stream("/api/sse", max_events=1)
        assert result.header_values("access-control-allow-headers") == ["Content-Type, Authorization"]
        assert result.header_values("access-control-allow-origin") == ["*"]

    async def test_starts_from_existing_value(self, config: AppConfig, kv_store: KVStore) -> None:
        async with TestClient(create_app(config, kv_store)) as client:
            await kv_store.client.set_value(COUNTER_KEY, 41)
            result = await client.stream("/api/sse", max_events=2)
        assert result.json_data() == [{"counter": 41}, {"counter": 42}]

    async def test_disconnect_releases_subscription(self, config: AppConfig, kv_store: KVStore) -> None:
        async with TestClient(create_app(config, kv_store)) as client:
            await client.stream("/api/sse", max_events=1)
            store = kv_store.get_store(COUNTER_KEY)
            assert store.listener_count == 0
            assert not store.is_initialized
