"""Built-in middleware: request logging, CORS, and error handling."""

import logging
import time
from dataclasses import dataclass

from kiri.context import Context
from kiri.errors import HTTPError
from kiri.http.response import AnyResponse, Response
from kiri.middleware.protocol import Next

logger = logging.getLogger("kiri.middleware")


# -- Logging --


async def logging_middleware(ctx: Context, next: Next) -> AnyResponse:
    """Log each request line, then its status and duration."""
    start = time.perf_counter()
    method, url = ctx.request.method, ctx.request.url
    logger.info("--> %s %s", method, url)

    response = await next()

    elapsed_ms = (time.perf_counter() - start) * 1000
    logger.info("<-- %d %s %s - %.0fms", response.status, method, url, elapsed_ms)
    return response


# -- CORS --


@dataclass(frozen=True, slots=True)
class CORSConfig:
    """CORS middleware configuration.

    Defaults are permissive (any origin), matching a public demo API.
    Lock it down for anything else::

        CORSConfig(allow_origins=("https://example.com",))
    """

    allow_origins: tuple[str, ...] = ("*",)
    allow_methods: tuple[str, ...] = ("GET", "POST", "PUT", "DELETE", "OPTIONS")
    allow_headers: tuple[str, ...] = ("Content-Type", "Authorization")
    max_age: int = 86400  # 24 hours


class CORSMiddleware:
    """Cross-Origin Resource Sharing.

    - ``OPTIONS`` requests short-circuit with a 200 preflight response.
    - Every other response gets the allow-origin, allow-methods and
      allow-headers headers added on the way out.

    Usage::

        app.use(CORSMiddleware(CORSConfig(allow_origins=("https://example.com",))))
    """

    __slots__ = ("config",)

    def __init__(self, config: CORSConfig | None = None) -> None:
        self.config = config or CORSConfig()

    def _allow_origin(self, origin: str | None) -> str | None:
        if "*" in self.config.allow_origins:
            return "*"
        if origin is not None and origin in self.config.allow_origins:
            return origin
        return None

    def _add_cors_headers(self, response: AnyResponse, origin: str | None) -> AnyResponse:
        cfg = self.config
        allowed = self._allow_origin(origin)
        if allowed is None:
            return response

        # Replace, never append: a handler may have set its own CORS values.
        response = response.with_headers_set(
            {
                "Access-Control-Allow-Origin": allowed,
                "Access-Control-Allow-Methods": ", ".join(cfg.allow_methods),
                "Access-Control-Allow-Headers": ", ".join(cfg.allow_headers),
            }
        )
        if allowed != "*":
            response = response.with_header("Vary", "Origin")
        return response

    async def __call__(self, ctx: Context, next: Next) -> AnyResponse:
        origin = ctx.request.headers.get("origin")

        if ctx.request.method == "OPTIONS":
            preflight = self._add_cors_headers(Response.empty(200), origin)
            return preflight.with_headers_set({"Access-Control-Max-Age": str(self.config.max_age)})

        response = await next()
        return self._add_cors_headers(response, origin)


cors_middleware = CORSMiddleware()
"""Ready-made CORS middleware with the default, permissive config."""


# -- Errors --


async def error_handler_middleware(ctx: Context, next: Next) -> AnyResponse:
    """Convert exceptions raised further down the chain into JSON responses.

    Install it first so it wraps everything else. ``HTTPError`` keeps its
    status; anything else becomes a 500 carrying the exception message.
    """
    try:
        return await next()
    except HTTPError as exc:
        logger.debug("%d %s %s: %s", exc.status, ctx.request.method, ctx.request.path, exc.detail)
        ctx.json({"error": exc.detail or f"Error {exc.status}"}, status=exc.status)
        ctx.response.headers.update(dict(exc.headers))
        return ctx.to_response()
    except Exception as exc:
        logger.exception("500 %s %s", ctx.request.method, ctx.request.path)
        ctx.json(
            {"error": "Internal Server Error", "message": str(exc) or type(exc).__name__},
            status=500,
        )
        return ctx.to_response()
