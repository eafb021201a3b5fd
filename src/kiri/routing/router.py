"""Exact-match router.

Routes are keyed by ``"<METHOD>:<path>"`` in a flat dict. There are no
path parameters and no wildcards, so a lookup is a single dict access.
The router plugs into the app as one middleware via ``routes()``.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import Any, TypeAlias

from kiri._internal.invoke import invoke
from kiri.context import Context
from kiri.http.response import AnyResponse
from kiri.middleware.protocol import Middleware, Next
from kiri.server.negotiation import negotiate

# Sync or async; the return value goes through negotiate()
RouteHandler: TypeAlias = Callable[[Context], Any | Awaitable[Any]]


def route_key(method: str, path: str) -> str:
    return f"{method.upper()}:{path}"


class Router:
    """Maps (method, exact path) pairs to handlers.

    Paths are matched against ``ctx.path``, i.e. after any mount prefix
    has been stripped. Mount a router under ``/api`` and register
    ``/counter`` to answer ``/api/counter``.

    Usage::

        router = Router()
        router.get("/counter", get_counter).post("/counter", bump_counter)
        app.use("/api", router.routes())
    """

    __slots__ = ("_handlers",)

    def __init__(self) -> None:
        self._handlers: dict[str, RouteHandler] = {}

    def add(self, method: str, path: str, handler: RouteHandler) -> Router:
        """Register *handler*. A second registration for the same pair replaces the first."""
        self._handlers[route_key(method, path)] = handler
        return self

    def get(self, path: str, handler: RouteHandler) -> Router:
        return self.add("GET", path, handler)

    def post(self, path: str, handler: RouteHandler) -> Router:
        return self.add("POST", path, handler)

    def put(self, path: str, handler: RouteHandler) -> Router:
        return self.add("PUT", path, handler)

    def delete(self, path: str, handler: RouteHandler) -> Router:
        return self.add("DELETE", path, handler)

    def lookup(self, method: str, path: str) -> RouteHandler | None:
        return self._handlers.get(route_key(method, path))

    @property
    def keys(self) -> list[str]:
        """Registered route keys, in registration order."""
        return list(self._handlers)

    def __len__(self) -> int:
        return len(self._handlers)

    def routes(self) -> Middleware:
        """Return a middleware that dispatches to the registered handlers.

        A hit invokes the handler and returns its response; a miss defers
        to ``next()``.
        """

        async def dispatch(ctx: Context, next: Next) -> AnyResponse:
            handler = self.lookup(ctx.request.method, ctx.path)
            if handler is None:
                return await next()
            result = await invoke(handler, ctx)
            return negotiate(result, ctx)

        return dispatch
