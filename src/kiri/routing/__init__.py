"""Routing — flat exact-match table exposed as a middleware."""

from kiri.routing.router import RouteHandler, Router

__all__ = ["RouteHandler", "Router"]
