"""Counter demo: a KV-backed counter API plus a live SSE feed of its value."""

from kiri.demo.app import COUNTER_KEY, create_app

__all__ = ["COUNTER_KEY", "create_app"]
