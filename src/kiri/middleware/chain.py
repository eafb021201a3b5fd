"""Middleware chain executor.

A ``Chain`` is an immutable, ordered tuple of ``Stage`` entries. Running
it is an explicit state machine: ``run(ctx, index, fallback)`` invokes
stage ``index`` with a ``next`` continuation bound to ``index + 1``. No
continuation closes over a mutable cursor, so calling ``next()`` from
stage *i* always means "run stages *i+1..n*", no matter who calls it.

Both ``App`` (fallback: 404) and ``compose`` (fallback: the outer
``next``) execute their middleware through this class.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from functools import partial

from kiri.context import Context
from kiri.errors import ConfigurationError
from kiri.http.response import AnyResponse
from kiri.middleware.protocol import Middleware, Next

ROOT = "/"


def normalize_prefix(prefix: str) -> str:
    """Validate a mount prefix and strip its trailing slash.

    ``"/"`` stays ``"/"``; ``"/api/"`` becomes ``"/api"``.
    """
    if not prefix.startswith("/"):
        msg = f"Middleware prefix must start with '/', got {prefix!r}"
        raise ConfigurationError(msg)
    stripped = prefix.rstrip("/")
    return stripped or ROOT


@dataclass(frozen=True, slots=True)
class Stage:
    """One registered (prefix, middleware) pair. Immutable once built."""

    prefix: str
    middleware: Middleware

    def remainder(self, path: str) -> str | None:
        """The path left after this stage's prefix, or ``None`` if it doesn't match."""
        if self.prefix == ROOT:
            return path
        if not path.startswith(self.prefix):
            return None
        return path[len(self.prefix) :] or ROOT


@dataclass(frozen=True, slots=True)
class Chain:
    """An ordered, immutable middleware pipeline.

    Usage::

        chain = Chain.of([errors, logging, router.routes()])
        response = await chain.run(ctx, 0, not_found)
    """

    stages: tuple[Stage, ...] = ()

    @classmethod
    def of(cls, middlewares: Iterable[Middleware], prefix: str = ROOT) -> Chain:
        """Build a chain where every middleware shares one prefix."""
        return cls(tuple(Stage(prefix, mw) for mw in middlewares))

    def __len__(self) -> int:
        return len(self.stages)

    async def run(self, ctx: Context, index: int, fallback: Next) -> AnyResponse:
        """Run the chain from stage *index*.

        Every stage is invoked. A prefixed stage whose prefix matches
        ``ctx.original_path`` sees ``ctx.path`` narrowed to the remainder
        for the duration of its call; any other stage sees ``ctx.path``
        unchanged. Exceptions propagate to whoever awaited this stage.
        """
        while index < len(self.stages):
            stage = self.stages[index]
            remainder = stage.remainder(ctx.original_path)
            next_stage: Next = partial(self.run, ctx, index + 1, fallback)

            if stage.prefix == ROOT or remainder is None:
                return await stage.middleware(ctx, next_stage)

            outer_path = ctx.path
            ctx.set_path(remainder)
            try:
                return await stage.middleware(ctx, next_stage)
            finally:
                ctx.set_path(outer_path)

        return await fallback()
