"""Kiri — composable async middleware with live key-value updates.

An ordered middleware chain with path-prefix mounting, a handful of
combinators for building middleware out of middleware, and a keyed
store that pushes each change to its subscribers.

Basic usage::

    from kiri import App, Router

    router = Router().get("/api/hello", lambda ctx: {"hello": "world"})

    app = App()
    app.use(router.routes())
    app.listen()
"""

__version__ = "0.1.0"
__all__ = [
    "AnyResponse",
    "App",
    "AppConfig",
    "ConfigurationError",
    "Context",
    "HTTPError",
    "KVClient",
    "KVKeyStore",
    "KVStore",
    "KiriError",
    "MemoryKV",
    "Middleware",
    "MiddlewareTimeout",
    "Next",
    "NotFound",
    "Request",
    "Response",
    "Router",
    "SSEEvent",
    "StreamingResponse",
]


def __getattr__(name: str) -> object:
    """Lazy imports for public API.

    Keeps ``import kiri`` fast while providing a clean top-level API.
    """
    if name == "App":
        from kiri.app import App

        return App

    if name == "AppConfig":
        from kiri.config import AppConfig

        return AppConfig

    if name == "Context":
        from kiri.context import Context

        return Context

    if name == "Request":
        from kiri.http.request import Request

        return Request

    if name in ("AnyResponse", "Response", "StreamingResponse"):
        from kiri.http import response

        return getattr(response, name)

    if name in ("Middleware", "Next"):
        from kiri.middleware import protocol

        return getattr(protocol, name)

    if name == "Router":
        from kiri.routing import Router

        return Router

    if name == "SSEEvent":
        from kiri.realtime.events import SSEEvent

        return SSEEvent

    if name in ("KVClient", "KVKeyStore", "KVStore", "MemoryKV"):
        from kiri import kv

        return getattr(kv, name)

    if name in (
        "ConfigurationError",
        "HTTPError",
        "KiriError",
        "MiddlewareTimeout",
        "NotFound",
    ):
        from kiri import errors

        return getattr(errors, name)

    msg = f"module 'kiri' has no attribute {name!r}"
    raise AttributeError(msg)
