"""Middleware protocol and Next type alias.

A middleware is any callable matching::

    async def my_mw(ctx: Context, next: Next) -> AnyResponse: ...

No base class required. The framework checks the shape, not the lineage.

``next`` takes no arguments: the request travels on the ``Context``.
Calling it runs the rest of the chain and returns its response, so code
after ``await next()`` sees the downstream result.
"""

from collections.abc import Awaitable, Callable
from typing import Protocol, TypeAlias

from kiri.context import Context
from kiri.http.response import AnyResponse

# The rest of the chain
Next: TypeAlias = Callable[[], Awaitable[AnyResponse]]

# Synchronous test used by when / skip / if_else
Predicate: TypeAlias = Callable[[Context], bool]


class Middleware(Protocol):
    """Protocol for kiri middleware.

    Accepts both functions and callable objects::

        # Function middleware
        async def timing(ctx: Context, next: Next) -> AnyResponse:
            start = time.monotonic()
            response = await next()
            elapsed = time.monotonic() - start
            return response.with_header("X-Time", f"{elapsed:.3f}")

        # Class middleware
        class RateLimiter:
            async def __call__(self, ctx: Context, next: Next) -> AnyResponse:
                ...
    """

    async def __call__(self, ctx: Context, next: Next) -> AnyResponse: ...
