"""Server-Sent Events.

``SSEEvent`` formats the wire protocol; ``event_stream`` turns an async
generator into a ``text/event-stream`` response.
"""

import json as json_module
from collections.abc import AsyncIterator, Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from kiri.http.response import StreamingResponse

SSE_HEADERS: dict[str, str] = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "Access-Control-Allow-Headers": "Cache-Control",
}


@dataclass(frozen=True, slots=True)
class SSEEvent:
    """A single Server-Sent Event."""

    data: str
    event: str | None = None
    id: str | None = None
    retry: int | None = None

    def encode(self) -> str:
        """Serialize to SSE wire format."""
        lines: list[str] = []
        if self.event:
            lines.append(f"event: {self.event}")
        if self.id:
            lines.append(f"id: {self.id}")
        if self.retry is not None:
            lines.append(f"retry: {self.retry}")
        lines.extend(f"data: {line}" for line in self.data.split("\n"))
        lines.append("")  # Trailing newline to terminate the event
        return "\n".join(lines) + "\n"


def json_event(value: Any, *, event: str | None = None) -> SSEEvent:
    """An event whose data is *value* as compact JSON.

    ``json_event({"counter": 3}).encode()`` is ``'data: {"counter":3}\\n\\n'``.
    """
    return SSEEvent(data=json_module.dumps(value, separators=(",", ":")), event=event)


def _format(value: Any) -> str:
    match value:
        case SSEEvent():
            return value.encode()
        case str():
            return SSEEvent(data=value).encode()
        case dict() | list():
            return json_event(value).encode()
        case _:
            return SSEEvent(data=str(value)).encode()


def event_stream(
    generator: AsyncIterator[Any],
    *,
    on_close: Callable[[], Awaitable[None] | None] | None = None,
) -> StreamingResponse:
    """Stream the values yielded by *generator* as Server-Sent Events.

    - ``SSEEvent``: sent as-is
    - ``str``: sent as data
    - ``dict`` / ``list``: compact JSON as data

    Usage::

        async def ticks():
            async for value in store.updates():
                yield {"counter": value}

        return event_stream(ticks(), on_close=stop_ticker)
    """

    async def encoded() -> AsyncIterator[str]:
        try:
            async for value in generator:
                yield _format(value)
        finally:
            aclose = getattr(generator, "aclose", None)
            if aclose is not None:
                await aclose()

    return StreamingResponse(
        chunks=encoded(),
        content_type="text/event-stream",
        headers=tuple(SSE_HEADERS.items()),
        on_close=on_close,
    )
