"""Built-in middleware: request timeout.

The dispatcher has no intrinsic timeout; a handler that never calls
``next`` or ends the exchange leaves the request open forever. This
layer races the rest of the chain against a timer and force-terminates
the exchange when the timer wins.
"""

import logging

import anyio

from wren.context import Context
from wren.routing.dispatch import Next

logger = logging.getLogger("wren.server")


class TimeoutMiddleware:
    """Abort the exchange if it has not ended within *seconds*.

    On expiry the response is ``status`` (503 by default) with a plain
    text body, and the handler active at that moment is cancelled.
    The watchdog runs as deferred work, so it is cancelled as soon as
    the response is sent.

    Usage::

        app.use(TimeoutMiddleware(5.0))
        app.use("/reports", TimeoutMiddleware(30.0, status=504))
    """

    __slots__ = ("seconds", "status")

    def __init__(self, seconds: float, *, status: int = 503) -> None:
        if seconds <= 0:
            msg = f"TimeoutMiddleware seconds must be positive, got {seconds!r}."
            raise ValueError(msg)
        self.seconds = seconds
        self.status = status

    async def _watchdog(self, ctx: Context) -> None:
        await anyio.sleep(self.seconds)
        if not ctx.ended:
            logger.warning(
                "%s %s timed out after %.2fs",
                ctx.method,
                ctx.full_path,
                self.seconds,
            )
            ctx.abort(self.status)

    def __call__(self, ctx: Context, next: Next) -> None:
        ctx.defer(self._watchdog, ctx)
        next()
