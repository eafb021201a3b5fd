"""The demo server.

One middleware pipeline serves both the JSON API under ``/api`` and the
built front end::

    compose([
        error_handler_middleware,
        logging_middleware,
        CORSMiddleware(...),
        when(auth enabled and API route, auth),
        if_else(API route, with_timing(router.routes()), StaticFiles(...)),
    ])
"""

import asyncio
import contextlib
import logging
from datetime import UTC, datetime
from typing import Any

from kiri.app import App
from kiri.config import AppConfig
from kiri.context import Context
from kiri.errors import HTTPError
from kiri.http.response import AnyResponse, Response
from kiri.kv import KVBackend, KVClient, KVStore
from kiri.middleware import (
    CORSConfig,
    CORSMiddleware,
    StaticFiles,
    compose,
    create_auth_middleware,
    error_handler_middleware,
    if_else,
    logging_middleware,
    when,
    with_timing,
)
from kiri.realtime import event_stream
from kiri.routing import Router

logger = logging.getLogger("kiri.demo")

COUNTER_KEY = ("counter",)
API_PREFIX = "/api"


def is_api_route(ctx: Context) -> bool:
    return ctx.path.startswith(API_PREFIX)


async def _tick(kv: KVBackend, interval: float) -> None:
    """Bump the counter every *interval* seconds until cancelled."""
    while True:
        await asyncio.sleep(interval)
        try:
            await kv.sum(COUNTER_KEY, 1)
        except Exception:
            # Skipped, not retried; the next tick tries again.
            logger.exception("Failed to increment counter")


def _parse_increment(payload: Any) -> int:
    if payload is None:
        return 1
    if not isinstance(payload, dict):
        raise HTTPError(400, "Expected a JSON object")
    increment = payload.get("increment", 1)
    if isinstance(increment, bool) or not isinstance(increment, int):
        raise HTTPError(400, "increment must be an integer")
    return increment


def build_router(config: AppConfig, kv_store: KVStore) -> Router:
    """The ``/api`` routes. Handlers close over *kv_store*."""
    router = Router()

    async def get_counter(ctx: Context) -> AnyResponse:
        try:
            value = await kv_store.client.get_value(COUNTER_KEY)
        except Exception:
            logger.exception("Failed to get counter")
            return Response.json({"error": "Failed to get counter"}, status=500)
        return Response.json({"counter": value or 0})

    async def update_counter(ctx: Context) -> AnyResponse:
        raw = await ctx.request.body()
        try:
            payload = await ctx.request.json() if raw.strip() else None
        except ValueError:
            raise HTTPError(400, "Invalid JSON body") from None
        increment = _parse_increment(payload)
        try:
            value = await kv_store.client.connection.sum(COUNTER_KEY, increment)
        except Exception:
            logger.exception("Failed to update counter")
            return Response.json({"error": "Failed to update counter"}, status=500)
        return Response.json({"counter": value})

    def health(ctx: Context) -> dict[str, str]:
        return {"status": "ok", "timestamp": datetime.now(UTC).isoformat()}

    async def counter_events(ctx: Context) -> AnyResponse:
        kv = kv_store.client.connection
        if (await kv.get(COUNTER_KEY)).value is None:
            await kv.set(COUNTER_KEY, 0)

        ticker = asyncio.create_task(
            _tick(kv, config.sse_tick_interval), name="kiri-demo-ticker"
        )
        store = kv_store.get_store(COUNTER_KEY)

        async def counts():
            async with contextlib.aclosing(store.updates()) as updates:
                async for value in updates:
                    yield {"counter": value or 0}

        def stop() -> None:
            ticker.cancel()
            logger.debug("SSE client disconnected")

        return event_stream(counts(), on_close=stop)

    router.get(f"{API_PREFIX}/counter", get_counter)
    router.post(f"{API_PREFIX}/counter", update_counter)
    router.get(f"{API_PREFIX}/health", health)
    router.get(f"{API_PREFIX}/sse", counter_events)
    return router


def create_app(config: AppConfig | None = None, kv_store: KVStore | None = None) -> App:
    """Assemble the demo app.

    The ``KVStore`` is opened by the app's startup hook and closed by its
    shutdown hook. An empty ``config.auth_secret`` leaves the API open.
    """
    config = config or AppConfig()
    if kv_store is None:
        kv_store = KVStore(KVClient())
    router = build_router(config, kv_store)

    cors = CORSMiddleware(
        CORSConfig(
            allow_origins=config.cors_allow_origins,
            allow_methods=config.cors_allow_methods,
            allow_headers=config.cors_allow_headers,
            max_age=config.cors_max_age,
        )
    )
    auth = create_auth_middleware(config.auth_secret)
    auth_enabled = bool(config.auth_secret)

    app = App(config)
    app.use(
        compose(
            [
                error_handler_middleware,
                logging_middleware,
                cors,
                when(lambda ctx: auth_enabled and is_api_route(ctx), auth),
                if_else(
                    is_api_route,
                    with_timing(router.routes()),
                    StaticFiles(config.static_dir),
                ),
            ]
        )
    )
    app.on_startup(kv_store.open)
    app.on_shutdown(kv_store.close)
    return app
