"""Static file serving for the built front end.

Serves ``/``, anything under ``/assets``, and paths ending in one of the
known asset extensions from a directory. Everything else falls through
to the next middleware, so API routes can live beside the assets.
"""

import logging
from pathlib import Path

import anyio

from kiri.context import Context
from kiri.http.response import AnyResponse, Response
from kiri.middleware.protocol import Next

logger = logging.getLogger("kiri.middleware")

# Content type by extension. Unknown extensions are served as HTML.
CONTENT_TYPES: dict[str, str] = {
    ".js": "application/javascript",
    ".css": "text/css",
    ".svg": "image/svg+xml",
    ".ico": "image/x-icon",
    ".html": "text/html",
}
DEFAULT_CONTENT_TYPE = "text/html"

ASSETS_PREFIX = "/assets"


def content_type_for(path: str) -> str:
    """Content type derived purely from the file extension."""
    return CONTENT_TYPES.get(Path(path).suffix.lower(), DEFAULT_CONTENT_TYPE)


def is_static_path(path: str) -> bool:
    """Whether *path* is one the static middleware handles."""
    return (
        path == "/"
        or path.startswith(ASSETS_PREFIX)
        or any(path.endswith(ext) for ext in CONTENT_TYPES)
    )


class StaticFiles:
    """Middleware that serves static files from a directory.

    ``/`` maps to ``/index.html``. A missing file is a ``404 Not found``
    rather than a fall-through: once a path looks like an asset, it is
    this middleware's to answer.

    Security: resolves the final path and refuses anything outside the
    configured directory.

    Usage::

        app.use(StaticFiles("./dist"))
    """

    __slots__ = ("_directory",)

    def __init__(self, directory: str | Path = "./dist") -> None:
        self._directory = Path(directory).resolve()
        if self._directory.is_dir():
            logger.info("Serving static files from %s", self._directory)
        else:
            logger.warning(
                "Static directory %s does not exist. Files will not be served.",
                self._directory,
            )

    @property
    def directory(self) -> Path:
        return self._directory

    async def __call__(self, ctx: Context, next: Next) -> AnyResponse:
        path = ctx.path
        if not is_static_path(path):
            return await next()

        relative = "index.html" if path == "/" else path.lstrip("/")
        file_path = (self._directory / relative).resolve()

        if not file_path.is_relative_to(self._directory):
            logger.warning("Refusing path outside static directory: %s", path)
            return Response.text("Not found", status=404)

        try:
            body = await anyio.Path(file_path).read_bytes()
        except OSError:
            logger.info("Static file not found: %s", file_path)
            return Response.text("Not found", status=404)

        return Response.raw(body, content_type_for(file_path.name))


def static_files_middleware(directory: str | Path = "./dist") -> StaticFiles:
    """Factory form of ``StaticFiles`` for use inside ``compose([...])``."""
    return StaticFiles(directory)
