"""Functional middleware helpers.

Higher-order functions that build one middleware out of others::

    app.use(compose([
        error_handler_middleware,
        logging_middleware,
        when(is_api_route, create_auth_middleware("s3cr3t")),
        if_else(is_api_route, with_timing(router.routes()), static),
    ]))

Every helper returns a plain ``async (ctx, next)`` function, so the
results compose with each other and with class-based middleware.
"""

import asyncio
import itertools
import logging
import time
from collections.abc import Iterable

from kiri.context import Context
from kiri.errors import MiddlewareTimeout
from kiri.http.response import AnyResponse
from kiri.middleware.chain import Chain
from kiri.middleware.protocol import Middleware, Next, Predicate

logger = logging.getLogger("kiri.middleware")

# Invocations abandoned by with_timeout. Held so the event loop doesn't
# garbage-collect a task that is still running.
_orphaned: set[asyncio.Task[AnyResponse]] = set()

_once_ids = itertools.count(1)


def compose(middlewares: Iterable[Middleware]) -> Middleware:
    """Run *middlewares* in order as a single middleware.

    When the last one calls ``next()``, control passes to the composed
    middleware's own ``next``. Post-``next()`` code unwinds in reverse
    order, exactly as if the middleware had been registered one by one.
    """
    chain = Chain.of(middlewares)

    async def composed(ctx: Context, next: Next) -> AnyResponse:
        return await chain.run(ctx, 0, next)

    return composed


def when(predicate: Predicate, middleware: Middleware) -> Middleware:
    """Run *middleware* only if ``predicate(ctx)`` is true; otherwise continue."""

    async def conditional(ctx: Context, next: Next) -> AnyResponse:
        if predicate(ctx):
            return await middleware(ctx, next)
        return await next()

    return conditional


def skip(predicate: Predicate, middleware: Middleware) -> Middleware:
    """Bypass *middleware* when ``predicate(ctx)`` is true. The inverse of ``when``."""

    async def skipping(ctx: Context, next: Next) -> AnyResponse:
        if predicate(ctx):
            return await next()
        return await middleware(ctx, next)

    return skipping


def if_else(
    predicate: Predicate,
    if_true: Middleware,
    if_false: Middleware,
) -> Middleware:
    """Run exactly one of two middleware. Both receive the same ``next``."""

    async def branch(ctx: Context, next: Next) -> AnyResponse:
        if predicate(ctx):
            return await if_true(ctx, next)
        return await if_false(ctx, next)

    return branch


def with_timing(middleware: Middleware) -> Middleware:
    """Log how long *middleware* (and everything it awaited) took."""

    async def timed(ctx: Context, next: Next) -> AnyResponse:
        start = time.perf_counter()
        try:
            return await middleware(ctx, next)
        finally:
            elapsed_ms = (time.perf_counter() - start) * 1000
            logger.info(
                "%s %s took %.1fms", ctx.request.method, ctx.request.url, elapsed_ms
            )

    return timed


def with_retry(middleware: Middleware, max_retries: int = 3) -> Middleware:
    """Re-invoke *middleware* when it raises, up to *max_retries* attempts in total.

    Every exception is treated as retryable and the attempts run back to
    back. If all attempts fail, the last exception is re-raised. Only wrap
    middleware that is safe to run more than once for the same request.
    """
    if max_retries < 1:
        msg = f"max_retries must be at least 1, got {max_retries}"
        raise ValueError(msg)

    async def retrying(ctx: Context, next: Next) -> AnyResponse:
        for attempt in range(1, max_retries):
            try:
                return await middleware(ctx, next)
            except Exception as exc:
                logger.warning("Retry %d/%d failed: %s", attempt, max_retries, exc)
        # Final attempt: its exception propagates unchanged.
        return await middleware(ctx, next)

    return retrying


def with_timeout(middleware: Middleware, timeout_ms: float) -> Middleware:
    """Fail with ``MiddlewareTimeout`` if *middleware* takes longer than *timeout_ms*.

    The wrapped invocation is raced against a timer. When the timer wins,
    the invocation is **not** cancelled: it keeps running in the
    background and its eventual result or exception is discarded.
    Side effects it performs after the timeout still happen.
    """
    timeout = timeout_ms / 1000

    async def timed_out(ctx: Context, next: Next) -> AnyResponse:
        task = asyncio.ensure_future(middleware(ctx, next))
        done, _ = await asyncio.wait({task}, timeout=timeout)
        if task in done:
            return task.result()

        _orphaned.add(task)
        task.add_done_callback(_discard_orphan)
        raise MiddlewareTimeout(timeout_ms)

    return timed_out


def _discard_orphan(task: asyncio.Task[AnyResponse]) -> None:
    _orphaned.discard(task)
    if not task.cancelled() and task.exception() is not None:
        logger.debug("Abandoned middleware failed after timeout: %r", task.exception())


def once(middleware: Middleware) -> Middleware:
    """Run *middleware* at most once per request.

    The first call marks a flag on the ``Context``; later calls within
    the same request go straight to ``next``.
    """
    flag = f"once:{next(_once_ids)}"

    async def guarded(ctx: Context, next: Next) -> AnyResponse:
        if ctx.is_marked(flag):
            return await next()
        ctx.mark(flag)
        return await middleware(ctx, next)

    return guarded
