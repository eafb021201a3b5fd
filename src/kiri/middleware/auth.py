"""Shared-secret bearer authentication.

One secret for the whole app; there is no per-user identity. Requests
must carry ``Authorization: Bearer <secret>`` exactly.
"""

import logging

from kiri.context import Context
from kiri.errors import Unauthorized
from kiri.http.response import AnyResponse, Response
from kiri.middleware.protocol import Middleware, Next

logger = logging.getLogger("kiri.middleware")


def create_auth_middleware(secret: str) -> Middleware:
    """Build a middleware that rejects requests without the right bearer token.

    Rejected requests get ``401 Unauthorized`` and ``next`` is never
    called. The header is compared as a plain string.

    Usage::

        app.use(when(is_api_route, create_auth_middleware(config.auth_secret)))
    """
    expected = f"Bearer {secret}"

    async def authenticate(ctx: Context, next: Next) -> AnyResponse:
        token = ctx.request.headers.get("authorization")
        if not token or token != expected:
            logger.debug("401 %s %s", ctx.request.method, ctx.request.path)
            error = Unauthorized()
            return Response.text(error.detail, status=error.status).with_headers(
                dict(error.headers)
            )
        return await next()

    return authenticate
