"""ASGI response sending — translates kiri responses to ASGI messages.

Handles both single-body responses and streamed ones. Streams run
alongside a disconnect monitor so a client going away stops the
producer and runs the response's ``on_close`` hook.
"""

import asyncio
import contextlib
import logging

from kiri._internal.asgi import Receive, Send
from kiri._internal.invoke import invoke
from kiri.http.response import Response, StreamingResponse

logger = logging.getLogger("kiri.server")


def _body_allowed(status: int) -> bool:
    """Whether an HTTP status code permits a response body."""
    # RFC: 1xx, 204, and 304 responses do not include a message body.
    return not (100 <= status < 200 or status in {204, 304})


def _raw_headers(content_type: str, headers: tuple[tuple[str, str], ...]) -> list[tuple[bytes, bytes]]:
    raw = [(b"content-type", content_type.encode("latin-1"))]
    for name, value in headers:
        if name.lower() == "content-type":
            continue
        raw.append((name.lower().encode("latin-1"), value.encode("latin-1")))
    return raw


async def send_response(response: Response, send: Send) -> None:
    """Translate a ``Response`` into ASGI send() calls."""
    body = response.body_bytes if _body_allowed(response.status) else b""
    raw_headers = _raw_headers(response.content_type, response.headers)
    raw_headers.append((b"content-length", str(len(body)).encode("latin-1")))

    await send(
        {
            "type": "http.response.start",
            "status": response.status,
            "headers": raw_headers,
        }
    )
    await send({"type": "http.response.body", "body": body})


async def send_streaming_response(
    response: StreamingResponse,
    send: Send,
    receive: Receive,
) -> None:
    """Send a streamed response until it ends or the client disconnects.

    1. Sends ``http.response.start`` immediately.
    2. Runs two tasks concurrently:
       - **producer**: forwards every chunk as a ``more_body`` message
       - **monitor**: waits for ``http.disconnect`` from the client
    3. Whichever finishes first cancels the other, then ``on_close``
       runs and the body is closed.
    """
    await send(
        {
            "type": "http.response.start",
            "status": response.status,
            "headers": _raw_headers(response.content_type, response.headers),
        }
    )

    async def produce() -> None:
        try:
            async for chunk in response.chunks:
                if not chunk:
                    continue
                data = chunk.encode("utf-8") if isinstance(chunk, str) else chunk
                await send({"type": "http.response.body", "body": data, "more_body": True})
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("Error while streaming response")

    async def monitor_disconnect() -> None:
        while True:
            message = await receive()
            if message.get("type") == "http.disconnect":
                return

    producer = asyncio.create_task(produce())
    monitor = asyncio.create_task(monitor_disconnect())

    try:
        _done, pending = await asyncio.wait(
            {producer, monitor},
            return_when=asyncio.FIRST_COMPLETED,
        )
        for task in pending:
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task
    finally:
        aclose = getattr(response.chunks, "aclose", None)
        if aclose is not None:
            with contextlib.suppress(Exception):
                await aclose()
        if response.on_close is not None:
            try:
                await invoke(response.on_close)
            except Exception:
                logger.exception("Error in stream close hook")
        with contextlib.suppress(Exception):
            await send({"type": "http.response.body", "body": b"", "more_body": False})
