"""Request context — per-request dispatch state and response writer.

One ``Context`` is created when a request arrives and is owned by that
request's dispatch until the exchange ends. Handlers read the request
through it (``method``, ``path``, ``params``, ``query``, ``headers``)
and write the response through it (``send``, ``json``, ``redirect``,
``end``).

Also provides ``context_var`` / ``get_context()`` so helpers deep in a
call stack can reach the in-flight context without threading it
through every signature.
"""

from __future__ import annotations

import json as json_module
import logging
from collections.abc import Callable
from contextvars import ContextVar
from typing import TYPE_CHECKING, Any

from wren._internal.invoke import invoke
from wren.errors import ResponseAlreadySent, WrenError
from wren.http.headers import Headers, MutableHeaders
from wren.http.query import QueryParams
from wren.http.request import Request
from wren.http.response import Response, reason_phrase
from wren.routing.params import convert_param

if TYPE_CHECKING:
    import anyio
    from anyio.abc import TaskGroup

    from wren.routing.dispatch import Frame, Next

logger = logging.getLogger("wren.server")


class Context:
    """Mutable state for one in-flight request.

    Dispatch bookkeeping:
        ``layer_stack`` holds one ``Frame`` per nesting level (the
        resumption point in each router or route), ``pending_error`` is
        set while an error diverts the scan, ``ended`` flips once the
        response is complete.

    ``params`` is replaced before every handler call with the
    parameters accumulated along the current stack (inner routers
    override outer ones on name collision). ``state`` is a free-form
    namespace for middleware to pass data downstream.
    """

    __slots__ = (
        "_body",
        "_on_end",
        "_param_cache",
        "_scope",
        "_task_group",
        "_turn",
        "content_type",
        "debug",
        "ended",
        "layer_stack",
        "max_content_length",
        "params",
        "pending_error",
        "request",
        "response_headers",
        "state",
        "status",
    )

    def __init__(
        self,
        request: Request,
        *,
        task_group: TaskGroup | None = None,
        debug: bool = False,
        max_content_length: int | None = None,
        on_end: Callable[[], None] | None = None,
    ) -> None:
        self.request = request
        self.debug = debug
        self.max_content_length = max_content_length
        self.params: dict[str, str] = {}
        self.state: dict[str, Any] = {}
        self.layer_stack: list[Frame] = []
        self.pending_error: Exception | None = None
        self.ended = False

        # Response being written
        self.status = 200
        self.content_type = "text/html; charset=utf-8"
        self.response_headers = MutableHeaders()
        self._body = b""

        self._task_group = task_group
        # Called once when the exchange ends (the transport sends from there)
        self._on_end = on_end
        # The active handler's continuation and cancel scope (set by dispatch)
        self._turn: Next | None = None
        self._scope: anyio.CancelScope | None = None
        # (id(router), param name) -> value already processed by param hooks
        self._param_cache: dict[tuple[int, str], str] = {}

    # -- Request side --

    @property
    def method(self) -> str:
        return self.request.method

    @property
    def full_path(self) -> str:
        """The request path as delivered by the transport."""
        return self.request.path

    @property
    def path(self) -> str:
        """The path still to be matched at the current nesting level."""
        if self.layer_stack:
            return self.layer_stack[-1].remaining
        return self.request.path

    @property
    def base_path(self) -> str:
        """The mount prefixes consumed so far."""
        if self.layer_stack:
            return self.layer_stack[-1].base_path
        return ""

    @property
    def headers(self) -> Headers:
        return self.request.headers

    @property
    def query(self) -> QueryParams:
        return self.request.query

    def param(self, name: str, param_type: str = "str") -> str | int | float:
        """Path parameter *name* converted with a route converter (``int``, ``float``...).

        Raises ``KeyError`` if the parameter is not bound and ``ValueError``
        if it does not convert.
        """
        return convert_param(self.params[name], param_type)

    async def body(self) -> bytes:
        """Read the request body, enforcing ``max_content_length``.

        Raises ``PayloadTooLarge`` when the body exceeds the limit.
        """
        return await self.request.body(limit=self.max_content_length)

    # -- Response side --

    def _check_open(self) -> None:
        if self.ended:
            msg = f"Response for {self.method} {self.full_path} has already been sent."
            raise ResponseAlreadySent(msg)

    def set_status(self, status: int) -> Context:
        self._check_open()
        self.status = status
        return self

    def set_header(self, name: str, value: str) -> Context:
        """Set a response header, replacing earlier values."""
        self._check_open()
        self.response_headers.set(name, value)
        return self

    def append_header(self, name: str, value: str) -> Context:
        self._check_open()
        self.response_headers.append(name, value)
        return self

    def send(
        self,
        body: str | bytes = b"",
        *,
        status: int | None = None,
        content_type: str | None = None,
    ) -> None:
        """Write the body and end the exchange."""
        self._check_open()
        if status is not None:
            self.status = status
        if content_type is not None:
            self.content_type = content_type
        self._body = body.encode("utf-8") if isinstance(body, str) else body
        self.end()

    def json(self, data: Any, *, status: int | None = None) -> None:
        """Serialize *data* as JSON and end the exchange."""
        self.send(
            json_module.dumps(data),
            status=status,
            content_type="application/json; charset=utf-8",
        )

    def redirect(self, url: str, status: int = 302) -> None:
        self.set_header("Location", url)
        self.send(b"", status=status)

    def write(self, response: Response) -> None:
        """Copy an immutable ``Response`` into this context and end the exchange."""
        self._check_open()
        for name, value in response.headers:
            self.response_headers.append(name, value)
        self.send(response.body_bytes, status=response.status, content_type=response.content_type)

    def respond(self, value: Any) -> None:
        """Negotiate a handler return value into the response and end it."""
        from wren.server.negotiation import negotiate

        self.write(negotiate(value))

    def end(self) -> None:
        """Mark the exchange complete. Idempotent."""
        if self.ended:
            return
        self.ended = True
        if self._turn is not None:
            self._turn.terminate()
        if self._on_end is not None:
            self._on_end()

    def abort(self, status: int = 503, detail: str = "") -> None:
        """Force-terminate: answer *status* and cancel the active handler.

        Used by watchdogs such as ``TimeoutMiddleware``. Does nothing if
        the exchange already ended.
        """
        if self.ended:
            return
        self.send(
            detail or reason_phrase(status),
            status=status,
            content_type="text/plain; charset=utf-8",
        )
        if self._scope is not None:
            self._scope.cancel()

    def to_response(self) -> Response:
        """Snapshot of the written response for the transport."""
        return Response(
            body=self._body,
            status=self.status,
            content_type=self.content_type,
            headers=self.response_headers.items(),
        )

    # -- Deferred work --

    def defer(self, func: Callable[..., Any], *args: Any) -> None:
        """Run *func* in the background for the lifetime of this exchange.

        Exceptions raised by deferred work are logged, never routed:
        the dispatcher only observes errors raised during a handler's
        own call. Deferred work that fails must call ``next(error)``
        itself. Anything still running when the response is sent is
        cancelled.
        """
        if self._task_group is None:
            msg = "defer() requires a context created by the ASGI handler or TestClient."
            raise WrenError(msg)
        self._task_group.start_soon(self._run_deferred, func, args)

    async def _run_deferred(self, func: Callable[..., Any], args: tuple[Any, ...]) -> None:
        try:
            await invoke(func, *args)
        except Exception:
            logger.exception(
                "Deferred task %s failed during %s %s",
                getattr(func, "__name__", func),
                self.method,
                self.full_path,
            )

    def __repr__(self) -> str:
        state = "ended" if self.ended else "open"
        return f"<Context {self.method} {self.full_path} {state}>"


# -- Context var --

context_var: ContextVar[Context] = ContextVar("wren_context")
"""The in-flight request context. Set by the ASGI handler before dispatch."""


def get_context() -> Context:
    """Return the current request context.

    Raises ``LookupError`` if called outside a request.
    """
    return context_var.get()
