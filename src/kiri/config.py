"""Application configuration.

AppConfig is a frozen dataclass. Build it directly, or from ``KIRI_*``
environment variables with ``AppConfig.from_env()``.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

from kiri.errors import ConfigurationError

# Set by the hosted runtime on every deployment.
DEPLOYMENT_ENV = "DEPLOYMENT_ID"

_TRUTHY = frozenset({"1", "true", "yes", "on"})


@dataclass(frozen=True, slots=True)
class AppConfig:
    """Application configuration. Immutable after creation.

    All fields have sensible defaults. Override what you need::

        config = AppConfig(port=3000, auth_secret="s3cr3t")
    """

    # Server
    host: str = "127.0.0.1"
    port: int = 8000
    debug: bool = False
    log_level: str = "info"

    # Static files (built front end)
    static_dir: str | Path = "dist"

    # Auth: an empty secret disables the bearer check on /api routes
    auth_secret: str = ""

    # CORS
    cors_allow_origins: tuple[str, ...] = ("*",)
    cors_allow_methods: tuple[str, ...] = ("GET", "POST", "PUT", "DELETE", "OPTIONS")
    cors_allow_headers: tuple[str, ...] = ("Content-Type", "Authorization")
    cors_max_age: int = 86400  # 24 hours

    # SSE demo driver
    sse_tick_interval: float = 2.0

    @classmethod
    def from_env(
        cls,
        environ: Mapping[str, str] | None = None,
        **overrides: object,
    ) -> AppConfig:
        """Build a config from ``KIRI_*`` environment variables.

        When running on the hosted runtime (``DEPLOYMENT_ID`` set) the built
        front end sits next to the server, otherwise one directory up::

            config = AppConfig.from_env(port=9000)

        Keyword overrides win over the environment; ``None`` overrides are
        ignored so CLI flags can be passed straight through.
        """
        env = os.environ if environ is None else environ
        values: dict[str, object] = {}

        if "KIRI_HOST" in env:
            values["host"] = env["KIRI_HOST"]
        if "KIRI_PORT" in env:
            values["port"] = _parse_number(env["KIRI_PORT"], "KIRI_PORT", int)
        if "KIRI_DEBUG" in env:
            values["debug"] = env["KIRI_DEBUG"].strip().lower() in _TRUTHY
        if "KIRI_LOG_LEVEL" in env:
            values["log_level"] = env["KIRI_LOG_LEVEL"]
        if "KIRI_AUTH_SECRET" in env:
            values["auth_secret"] = env["KIRI_AUTH_SECRET"]
        if "KIRI_SSE_INTERVAL" in env:
            values["sse_tick_interval"] = _parse_number(
                env["KIRI_SSE_INTERVAL"], "KIRI_SSE_INTERVAL", float
            )

        if "KIRI_STATIC_DIR" in env:
            values["static_dir"] = env["KIRI_STATIC_DIR"]
        else:
            values["static_dir"] = "./dist" if env.get(DEPLOYMENT_ENV) else "../dist"

        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)  # type: ignore[arg-type]


def _parse_number(raw: str, name: str, kind: type[int] | type[float]) -> int | float:
    try:
        return kind(raw)
    except ValueError:
        msg = f"{name} must be a number, got {raw!r}"
        raise ConfigurationError(msg) from None
