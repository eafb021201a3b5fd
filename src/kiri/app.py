"""Kiri application class.

Mutable during setup (middleware registration, lifecycle hooks).
Frozen at runtime when ``listen()`` or ``__call__()`` is first invoked.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any, overload

from kiri._internal.asgi import Receive, Scope, Send
from kiri._internal.invoke import invoke
from kiri.config import AppConfig
from kiri.context import Context
from kiri.http.request import Request
from kiri.http.response import AnyResponse, Response
from kiri.middleware.chain import ROOT, Chain, Stage, normalize_prefix
from kiri.middleware.protocol import Middleware
from kiri.server.handler import handle_http

logger = logging.getLogger("kiri.server")


async def _not_found() -> AnyResponse:
    return Response.text("Not found", status=404)


class App:
    """The kiri application.

    Owns an ordered list of (path prefix, middleware) entries. Every
    request gets a fresh ``Context`` and runs through the entries in
    registration order; the first middleware to return a response without
    calling ``next()`` ends the chain. Falling off the end yields 404.

    Usage::

        app = App(AppConfig(port=8000))
        app.use(logging_middleware)
        app.use("/api", router.routes())
        app.listen()
    """

    __slots__ = (
        "_chain",
        "_frozen",
        "_shutdown_hooks",
        "_stages",
        "_startup_hooks",
        "config",
    )

    def __init__(self, config: AppConfig | None = None) -> None:
        self.config: AppConfig = config or AppConfig()
        self._stages: list[Stage] = []
        self._startup_hooks: list[Callable[..., Any]] = []
        self._shutdown_hooks: list[Callable[..., Any]] = []
        self._frozen: bool = False

        # Compiled by _ensure_frozen()
        self._chain: Chain = Chain()

    # -- Middleware --

    @overload
    def use(self, prefix_or_middleware: Middleware) -> App: ...

    @overload
    def use(self, prefix_or_middleware: str, middleware: Middleware) -> App: ...

    def use(
        self,
        prefix_or_middleware: str | Middleware,
        middleware: Middleware | None = None,
    ) -> App:
        """Append a middleware, optionally mounted under a path prefix.

        The middleware sees every request either way. With a prefix, paths
        starting with it reach the middleware with ``ctx.path`` narrowed to
        the remainder; other paths reach it unchanged::

            app.use(cors_middleware)
            app.use("/api", router.routes())

        Returns the app for chaining.
        """
        self._check_not_frozen()
        if isinstance(prefix_or_middleware, str):
            if middleware is None:
                msg = f"use({prefix_or_middleware!r}) needs a middleware"
                raise TypeError(msg)
            stage = Stage(normalize_prefix(prefix_or_middleware), middleware)
        else:
            stage = Stage(ROOT, prefix_or_middleware)
        self._stages.append(stage)
        return self

    @property
    def stages(self) -> tuple[Stage, ...]:
        return tuple(self._stages)

    # -- Lifecycle hooks --

    def on_startup(self, func: Callable[..., Any]) -> Callable[..., Any]:
        """Register an async or sync startup hook via decorator.

        Hooks run in registration order during ASGI lifespan startup,
        before the server begins accepting HTTP requests.
        """
        self._check_not_frozen()
        self._startup_hooks.append(func)
        return func

    def on_shutdown(self, func: Callable[..., Any]) -> Callable[..., Any]:
        """Register an async or sync shutdown hook via decorator."""
        self._check_not_frozen()
        self._shutdown_hooks.append(func)
        return func

    async def startup(self) -> None:
        self._ensure_frozen()
        for hook in self._startup_hooks:
            await invoke(hook)

    async def shutdown(self) -> None:
        for hook in self._shutdown_hooks:
            await invoke(hook)

    # -- Request pipeline --

    async def handle_request(self, request: Request) -> AnyResponse:
        """Run *request* through the middleware chain.

        Exceptions are not caught here; install
        ``error_handler_middleware`` first to turn them into responses.
        """
        self._ensure_frozen()
        ctx = Context(request)
        return await self._chain.run(ctx, 0, _not_found)

    # -- Server --

    def listen(self, host: str | None = None, port: int | None = None) -> None:
        """Bind a network listener and serve requests until interrupted."""
        from kiri.server.dev import run_server

        self._ensure_frozen()
        _host = host or self.config.host
        _port = port or self.config.port
        logger.info("Server running on http://%s:%d", _host, _port)
        run_server(
            self,
            _host,
            _port,
            reload=self.config.debug,
            log_level=self.config.log_level,
        )

    # -- ASGI interface --

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        """ASGI 3.0 entry point."""
        if scope["type"] == "lifespan":
            await self._handle_lifespan(receive, send)
            return

        if scope["type"] != "http":
            return

        await handle_http(scope, receive, send, handler=self.handle_request)

    async def _handle_lifespan(self, receive: Receive, send: Send) -> None:
        """Run the ASGI lifespan protocol."""
        while True:
            message = await receive()
            msg_type = message["type"]

            if msg_type == "lifespan.startup":
                try:
                    await self.startup()
                except Exception as exc:
                    logger.exception("Startup failed")
                    await send({"type": "lifespan.startup.failed", "message": str(exc)})
                    return
                await send({"type": "lifespan.startup.complete"})

            elif msg_type == "lifespan.shutdown":
                try:
                    await self.shutdown()
                except Exception as exc:
                    logger.exception("Shutdown failed")
                    await send({"type": "lifespan.shutdown.failed", "message": str(exc)})
                    return
                await send({"type": "lifespan.shutdown.complete"})
                return

    # -- Internal --

    def _ensure_frozen(self) -> None:
        if not self._frozen:
            self._chain = Chain(tuple(self._stages))
            self._frozen = True

    def _check_not_frozen(self) -> None:
        if self._frozen:
            msg = (
                "Cannot modify the app after it has started serving requests. "
                "Register middleware and hooks before calling app.listen()."
            )
            raise RuntimeError(msg)
