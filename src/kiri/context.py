"""Per-request context threaded through the middleware chain.

A ``Context`` is created by ``App.handle_request`` for every request,
mutated by any middleware in that request's chain, and discarded once
the chain produced a response. It is never shared between requests, so
no locking is needed.

Usage in a handler::

    async def counter(ctx: Context) -> Response:
        ctx.json({"counter": 3})
        return ctx.to_response()
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from kiri.http.request import Request
from kiri.http.response import JSONBody, RawBody, Response, ResponseBody


@dataclass(slots=True)
class ResponseDraft:
    """The response under construction.

    ``body`` is ``None`` until a middleware or handler sets it. The body
    kind (raw vs. JSON) is chosen by whoever sets it, never inferred.
    """

    body: ResponseBody | None = None
    status: int | None = None
    headers: dict[str, str] = field(default_factory=dict)


@dataclass(slots=True)
class Context:
    """Mutable per-request bag.

    Attributes:
        request: The immutable incoming request.
        response: Draft response that ``to_response()`` turns into a
            ``Response``.
        state: Open-ended per-request data shared between middleware.
        path: Request path after the currently matched mount prefix.
        original_path: The full request path. Never changes.
        flags: Explicit per-request boolean markers (see ``once``).
    """

    request: Request
    response: ResponseDraft = field(default_factory=ResponseDraft)
    state: dict[str, Any] = field(default_factory=dict)
    path: str = ""
    original_path: str = field(default="", init=False)
    flags: dict[str, bool] = field(default_factory=dict)

    def __post_init__(self) -> None:
        self.original_path = self.request.path
        if not self.path:
            self.path = self.original_path

    # -- Prefix routing --

    def set_path(self, path: str) -> None:
        self.path = path

    # -- Flags --

    def mark(self, flag: str) -> None:
        self.flags[flag] = True

    def is_marked(self, flag: str) -> bool:
        return self.flags.get(flag, False)

    # -- Response helpers --

    def json(self, value: Any, *, status: int | None = None) -> None:
        """Set a JSON body on the draft response."""
        self.response.body = JSONBody(value)
        if status is not None:
            self.response.status = status

    def text(
        self,
        text: str,
        *,
        status: int | None = None,
        content_type: str = "text/plain; charset=utf-8",
    ) -> None:
        """Set a plain-text body on the draft response."""
        self.response.body = RawBody(text.encode("utf-8"), content_type)
        if status is not None:
            self.response.status = status

    def to_response(self) -> Response:
        """Convert the draft into a ``Response``.

        Status defaults to 200 and an unset body becomes an empty one.
        """
        draft = self.response
        return Response(
            body=draft.body if draft.body is not None else RawBody(b""),
            status=draft.status if draft.status is not None else 200,
            headers=tuple(draft.headers.items()),
        )
