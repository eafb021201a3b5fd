"""``kiri serve`` — build the demo app from the environment and run it."""

import argparse
import logging
import sys

from kiri.config import AppConfig
from kiri.errors import ConfigurationError


def load_config(args: argparse.Namespace) -> AppConfig:
    """``KIRI_*`` environment first, CLI flags on top."""
    return AppConfig.from_env(
        host=args.host,
        port=args.port,
        static_dir=args.static_dir,
        auth_secret=args.auth_secret,
        debug=args.debug,
    )


def serve(args: argparse.Namespace) -> None:
    try:
        config = load_config(args)
    except ConfigurationError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        raise SystemExit(1) from exc

    level = logging.DEBUG if config.debug else getattr(logging, config.log_level.upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    from kiri.demo import create_app
    from kiri.kv import KVClient, KVStore, MemoryKV

    app = create_app(config, KVStore(KVClient(MemoryKV)))
    app.listen()
