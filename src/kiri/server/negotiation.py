"""Content negotiation — maps handler return values to responses.

isinstance-based dispatch, no magic, fully predictable. The body tag
(raw vs. JSON) is fixed here, once, from the value's declared kind.
"""

from typing import Any

from kiri.context import Context
from kiri.http.response import AnyResponse, Response, StreamingResponse


def negotiate(value: Any, ctx: Context) -> AnyResponse:
    """Convert a route handler's return value to a response.

    Dispatch order:

    1. ``Response`` / ``StreamingResponse`` -> pass through
    2. ``Context`` or ``None``             -> ``ctx.to_response()``
    3. ``str``                             -> 200, text/plain
    4. ``bytes``                           -> 200, application/octet-stream
    5. ``dict`` / ``list``                 -> 200, application/json
    6. ``(value, int)``                    -> negotiate value, override status
    """
    match value:
        case Response() | StreamingResponse():
            return value
        case Context() | None:
            return ctx.to_response()
        case str():
            return Response.text(value)
        case bytes():
            return Response.raw(value, "application/octet-stream")
        case dict() | list():
            return Response.json(value)
        case (inner, int() as status):
            return negotiate(inner, ctx).with_status(status)
        case _:
            msg = (
                f"Cannot convert {type(value).__name__} to a response. "
                "Return a Response, a dict/list, a str, bytes, or None."
            )
            raise TypeError(msg)
