"""Terminal handler — answers not-found and unrecovered errors.

Reached when the dispatcher exhausts every router without the exchange
ending. The error is either the one no error-role layer consumed or
the ``NotFound`` the dispatcher synthesizes.
"""

import logging
import traceback

from wren.context import Context
from wren.errors import HTTPError
from wren.http.response import reason_phrase

logger = logging.getLogger("wren.server")


def status_for(exc: Exception) -> int:
    """HTTP status for *exc*: its own status if it carries a 4xx/5xx one, else 500."""
    if isinstance(exc, HTTPError):
        return exc.status
    status = getattr(exc, "status", None)
    if isinstance(status, int) and 400 <= status < 600:
        return status
    return 500


async def finalize(ctx: Context, exc: Exception) -> None:
    """Write the default error response for *exc*.

    ``HTTPError`` details and headers are sent as-is. Anything else is
    logged with its traceback and answered with 500; the traceback is
    included in the body only in debug mode.
    """
    status = status_for(exc)

    if ctx.ended:
        logger.error(
            "%s %s failed after the response was sent",
            ctx.method,
            ctx.full_path,
            exc_info=exc,
        )
        return

    if isinstance(exc, HTTPError):
        logger.debug("%d %s %s — %s", status, ctx.method, ctx.full_path, exc.detail)
        for name, value in exc.headers:
            ctx.set_header(name, value)
        body = exc.detail or f"Error {status}"
    else:
        logger.error("%d %s %s", status, ctx.method, ctx.full_path, exc_info=exc)
        if ctx.debug:
            body = "".join(traceback.format_exception(exc))
        else:
            body = f"{reason_phrase(status)}: {exc}" if str(exc) else reason_phrase(status)

    ctx.send(body, status=status, content_type="text/plain; charset=utf-8")
