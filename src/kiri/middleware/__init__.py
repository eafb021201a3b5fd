"""Middleware — Protocol-based, no inheritance required.

A middleware is any callable matching:
    async def mw(ctx: Context, next: Next) -> AnyResponse

Built-in middleware:
    CORSMiddleware / cors_middleware -- Cross-Origin Resource Sharing
    StaticFiles / static_files_middleware -- Serve the built front end
    create_auth_middleware -- Shared-secret bearer token check
    error_handler_middleware -- Exceptions to JSON error responses
    logging_middleware -- Request/response log lines

Combinators:
    compose, when, skip, if_else, once, with_timing, with_retry, with_timeout
"""

from kiri.middleware.auth import create_auth_middleware
from kiri.middleware.builtin import (
    CORSConfig,
    CORSMiddleware,
    cors_middleware,
    error_handler_middleware,
    logging_middleware,
)
from kiri.middleware.chain import Chain, Stage
from kiri.middleware.combinators import (
    compose,
    if_else,
    once,
    skip,
    when,
    with_retry,
    with_timeout,
    with_timing,
)
from kiri.middleware.protocol import Middleware, Next, Predicate
from kiri.middleware.static import StaticFiles, static_files_middleware

__all__ = [
    "CORSConfig",
    "CORSMiddleware",
    "Chain",
    "Middleware",
    "Next",
    "Predicate",
    "Stage",
    "StaticFiles",
    "compose",
    "cors_middleware",
    "create_auth_middleware",
    "error_handler_middleware",
    "if_else",
    "logging_middleware",
    "once",
    "skip",
    "static_files_middleware",
    "when",
    "with_retry",
    "with_timeout",
    "with_timing",
]
