"""Middleware protocols.

A middleware is any callable matching::

    def my_mw(ctx: Context, next: Next) -> None: ...

and an error middleware any callable matching::

    def my_error_mw(error: Exception, ctx: Context, next: Next) -> None: ...

Either may be ``async``. No base class required. Role is chosen at
registration (``use`` vs ``use_error``), never inferred from the shape.
"""

from typing import Any, Protocol

from wren.context import Context
from wren.routing.dispatch import Next


class Middleware(Protocol):
    """Protocol for normal-role layers.

    Accepts both functions and callable objects::

        # Function middleware
        async def timing(ctx: Context, next: Next) -> None:
            ctx.state["started"] = time.monotonic()
            next()

        # Class middleware
        class RequireToken:
            def __call__(self, ctx: Context, next: Next) -> None:
                ...
    """

    def __call__(self, ctx: Context, next: Next) -> Any: ...


class ErrorMiddleware(Protocol):
    """Protocol for error-role layers."""

    def __call__(self, error: Exception, ctx: Context, next: Next) -> Any: ...
