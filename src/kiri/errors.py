"""Kiri exception hierarchy.

Shared across App, Router, middleware, and the KV layer so every module
raises and catches the same types.
"""

from dataclasses import dataclass


class KiriError(Exception):
    """Base for all kiri-specific errors."""


class ConfigurationError(KiriError):
    """Raised when app configuration is invalid.

    Typically raised while registering middleware or parsing the
    environment at startup.
    """


@dataclass(frozen=True, slots=True)
class HTTPError(KiriError):
    """An error that maps directly to an HTTP status code.

    Handlers and middleware may raise these; ``error_handler_middleware``
    converts them to a response with the matching status.
    """

    status: int
    detail: str = ""
    headers: tuple[tuple[str, str], ...] = ()

    def __str__(self) -> str:
        if self.detail:
            return f"{self.status}: {self.detail}"
        return str(self.status)


class NotFound(HTTPError):  # noqa: N818 (conventional name in web frameworks)
    """404 — nothing in the chain produced a response."""

    def __init__(self, detail: str = "Not found") -> None:
        super().__init__(status=404, detail=detail)


class Unauthorized(HTTPError):  # noqa: N818 (conventional name in web frameworks)
    """401 — missing or wrong bearer token."""

    def __init__(self, detail: str = "Unauthorized") -> None:
        super().__init__(
            status=401,
            detail=detail,
            headers=(("WWW-Authenticate", "Bearer"),),
        )


class MiddlewareTimeout(KiriError, TimeoutError):  # noqa: N818
    """Raised by ``with_timeout`` when the wrapped middleware is too slow.

    The wrapped invocation is not cancelled; see ``with_timeout``.
    """

    def __init__(self, timeout_ms: float) -> None:
        self.timeout_ms = timeout_ms
        super().__init__(f"Timeout after {timeout_ms:g}ms")


class StoreError(KiriError):
    """Raised when the KV layer is used before ``open()`` or after ``close()``."""
