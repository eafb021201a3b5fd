"""Network listener for ``App.listen()``.

Hands the live App object to a pounce ASGI server. Pounce ships in the
``server`` extra (``pip install kiri[server]``).
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from kiri.errors import ConfigurationError

if TYPE_CHECKING:
    from kiri.app import App


def run_server(
    app: App,
    host: str,
    port: int,
    *,
    reload: bool = False,
    log_level: str = "info",
) -> None:
    """Serve *app* on ``host:port`` until interrupted.

    Blocks the calling thread. The app's lifespan hooks (opening and
    closing the KV store in the demo) run inside the server's event loop.
    """
    try:
        from pounce.config import ServerConfig
        from pounce.server import Server
    except ImportError as exc:
        msg = "app.listen() needs the pounce server: pip install 'kiri[server]'"
        raise ConfigurationError(msg) from exc

    config = ServerConfig(
        host=host,
        port=port,
        workers=1,
        reload=reload,
        log_level=log_level,
    )
    Server(config, app).run()
