"""Middleware — Protocol-based, no inheritance required.

A middleware is any callable matching:
    def mw(ctx: Context, next: Next) -> None

Built-in middleware:
    CORSMiddleware -- Cross-Origin Resource Sharing
    JSONBody -- Decode JSON request bodies into ctx.state["body"]
    TimeoutMiddleware -- Abort exchanges that outlive a deadline
"""

from wren.middleware.body import JSONBody
from wren.middleware.cors import CORSConfig, CORSMiddleware
from wren.middleware.protocol import ErrorMiddleware, Middleware
from wren.middleware.timeout import TimeoutMiddleware

__all__ = [
    "CORSConfig",
    "CORSMiddleware",
    "ErrorMiddleware",
    "JSONBody",
    "Middleware",
    "TimeoutMiddleware",
]
