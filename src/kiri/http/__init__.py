"""HTTP primitives: request, headers, and the response body union."""

from kiri.http.headers import Headers
from kiri.http.request import Request
from kiri.http.response import (
    AnyResponse,
    JSONBody,
    RawBody,
    Response,
    ResponseBody,
    StreamingResponse,
)

__all__ = [
    "AnyResponse",
    "Headers",
    "JSONBody",
    "RawBody",
    "Request",
    "Response",
    "ResponseBody",
    "StreamingResponse",
]
