"""Routing: declarative routers and single-parameter path patterns.

Routes are declared on a ``Router`` or directly on the ``App`` and
composed into per-route handler chains when the app freezes.
"""

from wren.routing.route import Method, Route, RoutePattern
from wren.routing.router import Router

__all__ = ["Method", "Route", "RoutePattern", "Router"]
