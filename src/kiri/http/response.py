"""HTTP responses with a chainable ``.with_*()`` transformation API.

The body is a tagged union decided when the response is built:

- ``RawBody`` — bytes plus an explicit content type
- ``JSONBody`` — a structured value, serialized as JSON when sent

Nothing downstream inspects the runtime type of a body to guess how to
encode it. Each ``.with_*()`` call returns a new response.
"""

from __future__ import annotations

import json as json_module
from collections.abc import AsyncIterator, Awaitable, Callable, Mapping
from dataclasses import dataclass, field, replace
from typing import Any, TypeAlias

JSON_CONTENT_TYPE = "application/json"
TEXT_CONTENT_TYPE = "text/plain; charset=utf-8"


@dataclass(frozen=True, slots=True)
class RawBody:
    """Bytes that are sent as-is with the given content type."""

    data: bytes = b""
    content_type: str = TEXT_CONTENT_TYPE

    def encode(self) -> bytes:
        return self.data


@dataclass(frozen=True, slots=True)
class JSONBody:
    """A structured value serialized with ``json.dumps`` at send time."""

    value: Any
    content_type: str = JSON_CONTENT_TYPE

    def encode(self) -> bytes:
        return json_module.dumps(self.value, default=str).encode("utf-8")


ResponseBody: TypeAlias = RawBody | JSONBody


def _set_headers(
    existing: tuple[tuple[str, str], ...], headers: Mapping[str, str]
) -> tuple[tuple[str, str], ...]:
    replaced = {name.lower() for name in headers}
    kept = tuple((name, value) for name, value in existing if name.lower() not in replaced)
    return (*kept, *headers.items())


@dataclass(frozen=True, slots=True)
class Response:
    """An HTTP response built through immutable transformations.

    Prefer the constructors over building bodies by hand::

        Response.json({"counter": 3})
        Response.text("Unauthorized", status=401)
        Response.empty(204)
    """

    body: ResponseBody = field(default_factory=RawBody)
    status: int = 200
    headers: tuple[tuple[str, str], ...] = ()

    # -- Constructors --

    @classmethod
    def text(cls, text: str, *, status: int = 200, content_type: str = TEXT_CONTENT_TYPE) -> Response:
        return cls(RawBody(text.encode("utf-8"), content_type), status)

    @classmethod
    def raw(cls, data: bytes, content_type: str, *, status: int = 200) -> Response:
        return cls(RawBody(data, content_type), status)

    @classmethod
    def json(cls, value: Any, *, status: int = 200) -> Response:
        return cls(JSONBody(value), status)

    @classmethod
    def empty(cls, status: int = 204) -> Response:
        return cls(RawBody(b""), status)

    # -- Chainable transformations --

    def with_status(self, status: int) -> Response:
        """Return a new Response with a different status code."""
        return replace(self, status=status)

    def with_header(self, name: str, value: str) -> Response:
        """Return a new Response with an additional header."""
        return replace(self, headers=(*self.headers, (name, value)))

    def with_headers(self, headers: Mapping[str, str]) -> Response:
        """Return a new Response with additional headers."""
        return replace(self, headers=(*self.headers, *headers.items()))

    def with_headers_set(self, headers: Mapping[str, str]) -> Response:
        """Return a new Response where *headers* replace any existing values (case-insensitive)."""
        return replace(self, headers=_set_headers(self.headers, headers))

    # -- Accessors --

    @property
    def content_type(self) -> str:
        return self.body.content_type

    @property
    def body_bytes(self) -> bytes:
        return self.body.encode()

    @property
    def text_body(self) -> str:
        return self.body_bytes.decode("utf-8")

    def json_body(self) -> Any:
        """Decode the body as JSON, whatever tag it was built with."""
        if isinstance(self.body, JSONBody):
            return self.body.value
        return json_module.loads(self.body.data)

    def header(self, name: str) -> str | None:
        """Return the last value set for *name* (case-insensitive)."""
        wanted = name.lower()
        for key, value in reversed(self.headers):
            if key.lower() == wanted:
                return value
        return None


@dataclass(frozen=True, slots=True)
class StreamingResponse:
    """A response whose body is produced progressively.

    Headers are sent immediately, then each chunk as it is yielded. Used
    for Server-Sent Events. ``on_close`` runs once the stream finishes or
    the client disconnects, whichever comes first.

    Supports the same ``.with_*()`` API as ``Response`` so middleware can
    add headers without knowing the body is streamed.
    """

    chunks: AsyncIterator[str | bytes]
    status: int = 200
    content_type: str = "text/event-stream"
    headers: tuple[tuple[str, str], ...] = ()
    on_close: Callable[[], Awaitable[None] | None] | None = None

    def with_status(self, status: int) -> StreamingResponse:
        return replace(self, status=status)

    def with_header(self, name: str, value: str) -> StreamingResponse:
        return replace(self, headers=(*self.headers, (name, value)))

    def with_headers(self, headers: Mapping[str, str]) -> StreamingResponse:
        return replace(self, headers=(*self.headers, *headers.items()))

    def with_headers_set(self, headers: Mapping[str, str]) -> StreamingResponse:
        return replace(self, headers=_set_headers(self.headers, headers))

    def header(self, name: str) -> str | None:
        wanted = name.lower()
        for key, value in reversed(self.headers):
            if key.lower() == wanted:
                return value
        return None


# Any response the middleware pipeline can produce
AnyResponse: TypeAlias = Response | StreamingResponse
