"""Routing — ordered layer lists, path matching, and the dispatcher.

Layers are matched sequentially in registration order; the first
eligible match wins. Routers are append-only and may be extended while
requests are in flight.
"""

from wren.routing.dispatch import Frame, Next, Outcome, Signal, dispatch
from wren.routing.layer import Layer, Role
from wren.routing.pattern import PathMatch, PathPattern
from wren.routing.route import Route
from wren.routing.router import LayerInfo, Router

__all__ = [
    "Frame",
    "Layer",
    "LayerInfo",
    "Next",
    "Outcome",
    "PathMatch",
    "PathPattern",
    "Role",
    "Route",
    "Router",
    "Signal",
    "dispatch",
]
