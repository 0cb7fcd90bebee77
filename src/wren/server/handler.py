"""ASGI handler — translates ASGI scope/messages to wren types.

The only component that touches raw ASGI directly for HTTP. Builds the
immutable Request and the per-request Context, runs the dispatcher,
and sends the written response back through ASGI send() the moment
the exchange ends. An exchange that never ends stays open until the
client disconnects.

Lifetime:
    Sending the response ends the exchange: anything still running
    for it (the rest of the handler that ended it, deferred work) is
    cancelled. A client disconnect cancels the same way, with no
    response sent.
"""

import logging
from typing import Any

import anyio

from wren._internal.asgi import Receive, Scope, Send
from wren.config import AppConfig
from wren.context import Context, context_var
from wren.http.request import Request
from wren.routing.router import Router
from wren.server.sender import send_response

logger = logging.getLogger("wren.server")

_DISCONNECT: dict[str, Any] = {"type": "http.disconnect"}


class _Inbox:
    """One ASGI ``receive`` shared by body reads and the disconnect watcher.

    Only one of them calls the transport at a time. Once the body is
    complete, further reads wait for the disconnect the watcher sees.
    """

    __slots__ = ("_lock", "_receive", "_stash", "body_done", "disconnected")

    def __init__(self, receive: Receive) -> None:
        self._receive = receive
        self._lock = anyio.Lock()
        self._stash: list[Any] = []
        self.body_done = anyio.Event()
        self.disconnected = anyio.Event()

    def _note(self, message: Any) -> Any:
        if message.get("type") == "http.disconnect":
            self.disconnected.set()
            self.body_done.set()
        elif not message.get("more_body", False):
            self.body_done.set()
        return message

    async def receive(self) -> Any:
        async with self._lock:
            if self._stash:
                return self._stash.pop(0)
            if not self.body_done.is_set():
                return self._note(await self._receive())
        await self.disconnected.wait()
        return _DISCONNECT

    async def watch(self, *, expect_body: bool) -> None:
        """Return once the client has disconnected.

        A declared body is left to the handler; watching starts after
        it has been read. Without one, the (empty) request message is
        taken here and replayed to any later body read.
        """
        if not expect_body:
            async with self._lock:
                if not self._stash and not self.body_done.is_set():
                    message = self._note(await self._receive())
                    if message.get("type") == "http.request":
                        self._stash.append(message)
        # An undeclared body that turns out to stream is still left to the handler
        await self.body_done.wait()
        while not self.disconnected.is_set():
            self._note(await self._receive())


def _expects_body(request: Request) -> bool:
    if "transfer-encoding" in request.headers:
        return True
    return bool(request.content_length)


async def _dispatch(router: Router, ctx: Context, done: anyio.Event) -> None:
    token = context_var.set(ctx)
    try:
        await router.dispatch(ctx)
    except Exception:
        # Only reached when the terminal handler itself fails
        logger.exception("500 %s %s (dispatch failed)", ctx.method, ctx.full_path)
        if not ctx.ended:
            ctx.send(
                "Internal Server Error",
                status=500,
                content_type="text/plain; charset=utf-8",
            )
    finally:
        context_var.reset(token)
        done.set()


async def _watch_disconnect(inbox: _Inbox, request: Request, scope: anyio.CancelScope) -> None:
    await inbox.watch(expect_body=_expects_body(request))
    logger.debug("%s %s: client disconnected", request.method, request.path)
    scope.cancel()


async def handle_request(
    scope: Scope,
    receive: Receive,
    send: Send,
    *,
    router: Router,
    config: AppConfig,
) -> None:
    """Process a single HTTP request through the router."""
    if scope["type"] != "http":
        return

    inbox = _Inbox(receive)
    request = Request.from_asgi(scope, inbox.receive)
    # Set when the exchange ends or dispatch returns, whichever comes first
    settled = anyio.Event()

    async with anyio.create_task_group() as task_group:
        ctx = Context(
            request,
            task_group=task_group,
            debug=config.debug,
            max_content_length=config.max_content_length,
            on_end=settled.set,
        )
        task_group.start_soon(_dispatch, router, ctx, settled)
        task_group.start_soon(_watch_disconnect, inbox, request, task_group.cancel_scope)

        await settled.wait()
        if ctx.ended:
            await send_response(ctx.to_response(), send, method=request.method)
        task_group.cancel_scope.cancel()
