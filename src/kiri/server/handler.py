"""ASGI handler — translates ASGI scope/messages to kiri types.

The only component that touches raw HTTP scopes directly. Converts the
scope to a typed ``Request``, hands it to the app's middleware chain,
and sends whatever comes back through ASGI ``send()``.
"""

import logging
from collections.abc import Awaitable, Callable
from typing import TypeAlias

from kiri._internal.asgi import Receive, Scope, Send
from kiri.http.request import Request
from kiri.http.response import AnyResponse, Response, StreamingResponse
from kiri.server.sender import send_response, send_streaming_response

logger = logging.getLogger("kiri.server")

RequestHandler: TypeAlias = Callable[[Request], Awaitable[AnyResponse]]


async def handle_http(
    scope: Scope,
    receive: Receive,
    send: Send,
    *,
    handler: RequestHandler,
) -> None:
    """Process a single HTTP request through *handler*.

    This is the top-level handler: an exception that escaped every
    middleware is logged here and answered with a bare 500.
    """
    request = Request.from_asgi(scope, receive)

    try:
        response = await handler(request)
    except Exception:
        logger.exception("Unhandled error: %s %s", request.method, request.path)
        response = Response.text("Internal Server Error", status=500)

    if isinstance(response, StreamingResponse):
        await send_streaming_response(response, send, receive)
    else:
        await send_response(response, send)
