"""Built-in middleware: JSON request bodies."""

import json as json_module

from wren.context import Context
from wren.errors import HTTPError
from wren.routing.dispatch import Next


class JSONBody:
    """Read and decode a JSON body into ``ctx.state["body"]``.

    Only acts on requests whose ``Content-Type`` is JSON; everything
    else passes through with no ``"body"`` key set. Diverts with
    ``PayloadTooLarge`` when the body exceeds *limit* (falling back to
    the app's ``max_content_length``) and with ``HTTPError(400)`` when
    it is not valid JSON.

    Usage::

        app.use(JSONBody(limit=1_000_000))

        @app.post("/widgets")
        def create(ctx, next):
            ctx.json(ctx.state["body"], status=201)
    """

    __slots__ = ("limit",)

    def __init__(self, limit: int | None = None) -> None:
        self.limit = limit

    async def __call__(self, ctx: Context, next: Next) -> None:
        content_type = (ctx.headers.get("content-type") or "").split(";")[0].strip().lower()
        if content_type != "application/json" and not content_type.endswith("+json"):
            next()
            return

        limit = self.limit if self.limit is not None else ctx.max_content_length
        raw = await ctx.request.body(limit=limit)
        if not raw:
            ctx.state["body"] = None
            next()
            return
        try:
            ctx.state["body"] = json_module.loads(raw)
        except ValueError as exc:
            next(HTTPError(400, f"Invalid JSON body: {exc}"))
            return
        next()
