"""Dispatcher — the per-request control-flow state machine.

States::

    MATCHING -> HANDLER_ACTIVE -> CONTINUE     (back to MATCHING)
                               -> DIVERT_ERROR (MATCHING, error layers only)
                               -> TERMINATE

The scan walks ``ctx.layer_stack`` — one ``Frame`` (container + resume
index) per nesting level. Entering a mounted router or a route pushes a
frame; exhausting one pops back to the parent's saved index. An error
never unwinds the stack by exception: it sets ``ctx.pending_error`` and
the same forward scan continues outward, skipping everything except
error-role layers, until one is entered or the stack runs out.

Handler contract:
    Normal handlers are called ``handler(ctx, next)``, error handlers
    ``handler(error, ctx, next)``. ``next()`` continues, ``next(error)``
    diverts, ``ctx.send(...)``/``ctx.end()`` (or returning a value)
    terminates. A handler that returns without doing any of these
    leaves the request waiting for a later ``next``/``end`` from work
    it scheduled; there is no implicit timeout.

Error capture:
    An exception raised while the dispatcher awaits the handler's own
    call is converted into ``next(exc)``. That includes an ``async``
    handler raising after an ``await`` in its own body: awaiting inside
    the handler coroutine keeps the turn active and is not suspension.
    A handler suspends only by returning without resolving its turn.
    Work it deferred with ``ctx.defer`` then runs outside the call; its
    exceptions are logged but never routed, so it must call
    ``next(error)`` itself.

Registration during flight:
    Frames index into each container's live layer list and re-read its
    length at every step, so layers appended behind an in-flight scan's
    position are seen by that scan.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, TypeAlias

import anyio

from wren._internal.invoke import invoke
from wren.errors import NotFound, WrenError
from wren.routing.layer import Layer, Role
from wren.routing.pattern import PathMatch, remaining_path
from wren.routing.route import Route
from wren.routing.router import Router

if TYPE_CHECKING:
    from wren.context import Context

logger = logging.getLogger("wren.dispatch")

# Terminal handler for not-found and unrecovered errors
FinalHandler: TypeAlias = "Callable[[Context, Exception], Awaitable[None]]"


class Signal(Enum):
    CONTINUE = "continue"
    ERROR = "error"
    TERMINATE = "terminate"
    SKIP_ROUTE = "skip_route"
    SKIP_ROUTER = "skip_router"


@dataclass(frozen=True, slots=True)
class Outcome:
    """What a handler's turn resolved to."""

    signal: Signal
    error: Exception | None = None


CONTINUE = Outcome(Signal.CONTINUE)
TERMINATE = Outcome(Signal.TERMINATE)


class Next:
    """The continuation handed to a handler. One-shot.

    ``next()`` continues, ``next(error)`` diverts to error handlers,
    ``next.route()`` skips the rest of the current route,
    ``next.router()`` leaves the current router. Calling it again after
    the turn has resolved is ignored with a warning.
    """

    __slots__ = ("_ctx", "_event", "outcome")

    def __init__(self, ctx: Context) -> None:
        self._ctx = ctx
        self._event = anyio.Event()
        self.outcome: Outcome | None = None

    def __call__(self, error: Any = None) -> None:
        if error is None:
            self._settle(CONTINUE)
            return
        if not isinstance(error, Exception):
            error = WrenError(str(error))
        self._settle(Outcome(Signal.ERROR, error))

    def route(self) -> None:
        self._settle(Outcome(Signal.SKIP_ROUTE))

    def router(self) -> None:
        self._settle(Outcome(Signal.SKIP_ROUTER))

    def terminate(self) -> None:
        """Resolve the turn because the exchange ended."""
        if self.outcome is None:
            self.outcome = TERMINATE
        self._event.set()

    @property
    def settled(self) -> bool:
        return self.outcome is not None

    def _settle(self, outcome: Outcome) -> None:
        if self.outcome is not None:
            logger.warning(
                "Continuation for %s %s resolved twice; ignoring %s",
                self._ctx.method,
                self._ctx.full_path,
                outcome.signal.value,
            )
            return
        self.outcome = outcome
        self._event.set()

    async def wait(self) -> Outcome:
        """Suspend until the turn resolves. Never times out."""
        await self._event.wait()
        assert self.outcome is not None
        return self.outcome


@dataclass(slots=True)
class Frame:
    """Resumption point for one nesting level of the scan."""

    container: Router | Route
    remaining: str
    base_path: str = ""
    params: dict[str, str] = field(default_factory=dict)
    index: int = 0


async def dispatch(router: Router, ctx: Context, *, final: FinalHandler | None = None) -> None:
    """Run *ctx* through *router* until the exchange terminates.

    Falls through to *final* with ``NotFound`` when nothing ends the
    exchange, or with the pending error when no error layer took it.
    """
    if final is None:
        from wren.server.errors import finalize

        final = finalize

    ctx.layer_stack.append(Frame(router, remaining=ctx.full_path))
    allowed: set[str] = set()

    while ctx.layer_stack and not ctx.ended:
        frame = ctx.layer_stack[-1]
        found = _scan(frame, ctx, allowed)
        if found is None:
            ctx.layer_stack.pop()
            continue

        layer, match = found
        params = {**frame.params, **match.params}

        if match.params and isinstance(frame.container, Router):
            outcome = await _run_param_hooks(frame.container, match.params, params, ctx)
            if outcome.signal is not Signal.CONTINUE:
                _apply(outcome, ctx)
                continue

        if layer.target is not None:
            ctx.layer_stack.append(_enter(frame, layer, match, params))
            continue

        ctx.params = params
        outcome = await _call_layer(layer, ctx)
        _apply(outcome, ctx)

    if ctx.ended:
        return

    error = ctx.pending_error
    if error is None:
        if ctx.method == "OPTIONS" and allowed:
            methods = ", ".join(sorted(allowed))
            ctx.set_header("Allow", methods)
            ctx.send(methods, content_type="text/plain; charset=utf-8")
            return
        error = NotFound(f"Cannot {ctx.method} {ctx.full_path}")
    await final(ctx, error)


def _scan(frame: Frame, ctx: Context, allowed: set[str]) -> tuple[Layer, PathMatch] | None:
    """Advance *frame* to the next eligible, matching layer."""
    erroring = ctx.pending_error is not None
    method = ctx.method
    container = frame.container
    explicit_head = isinstance(container, Route) and "HEAD" in container.methods
    layers = container.layers

    while frame.index < len(layers):
        layer = layers[frame.index]
        frame.index += 1

        if (layer.role is Role.ERROR) is not erroring:
            continue

        if explicit_head and method == "HEAD":
            method_ok = layer.methods is None or "HEAD" in layer.methods
        else:
            method_ok = layer.handles_method(method)
        if not method_ok:
            if method == "OPTIONS" and isinstance(layer.target, Route) and layer.match(frame.remaining):
                allowed.update(layer.target.allowed_methods())
            continue

        match = layer.match(frame.remaining)
        if match is not None:
            return layer, match
    return None


def _enter(frame: Frame, layer: Layer, match: PathMatch, params: dict[str, str]) -> Frame:
    """Build the frame for a mounted router or a route."""
    assert layer.target is not None
    if layer.pattern.end:
        # Routes match the whole path; nothing is consumed
        return Frame(layer.target, remaining=frame.remaining, base_path=frame.base_path, params=params)
    consumed = match.matched.rstrip("/")
    return Frame(
        layer.target,
        remaining=remaining_path(frame.remaining, consumed),
        base_path=frame.base_path + consumed,
        params=params,
    )


def _apply(outcome: Outcome, ctx: Context) -> None:
    match outcome.signal:
        case Signal.ERROR:
            logger.debug(
                "%s %s diverted to error handlers: %r",
                ctx.method,
                ctx.full_path,
                outcome.error,
            )
            ctx.pending_error = outcome.error
        case Signal.SKIP_ROUTE:
            if ctx.layer_stack and isinstance(ctx.layer_stack[-1].container, Route):
                ctx.layer_stack.pop()
        case Signal.SKIP_ROUTER:
            while ctx.layer_stack:
                frame = ctx.layer_stack.pop()
                if isinstance(frame.container, Router):
                    break
        case _:
            pass


async def _call_layer(layer: Layer, ctx: Context) -> Outcome:
    handler = layer.handler
    assert handler is not None
    if layer.role is Role.ERROR:
        error = ctx.pending_error
        ctx.pending_error = None
        return await _run(ctx, lambda nxt: handler(error, ctx, nxt), layer.name)
    return await _run(ctx, lambda nxt: handler(ctx, nxt), layer.name)


async def _run_param_hooks(
    router: Router,
    captured: dict[str, str],
    params: dict[str, str],
    ctx: Context,
) -> Outcome:
    """Run ``router.param`` hooks for newly seen parameter values."""
    ctx.params = params
    for name, value in captured.items():
        callbacks = router.param_callbacks(name)
        if not callbacks:
            continue
        key = (id(router), name)
        if ctx._param_cache.get(key) == value:
            continue
        for callback in callbacks:
            outcome = await _run(
                ctx,
                lambda nxt, cb=callback, v=value: cb(ctx, nxt, v),
                getattr(callback, "__name__", repr(callback)),
            )
            if outcome.signal is not Signal.CONTINUE:
                return outcome
        ctx._param_cache[key] = value
    return CONTINUE


async def _run(ctx: Context, call: Callable[[Next], Any], name: str) -> Outcome:
    """One HANDLER_ACTIVE turn: invoke, then wait for the turn to resolve."""
    turn = Next(ctx)
    ctx._turn = turn
    try:
        with anyio.CancelScope() as scope:
            ctx._scope = scope
            try:
                result = await invoke(call, turn)
                if result is not None and not turn.settled:
                    ctx.respond(result)
            except Exception as exc:
                if turn.settled:
                    logger.warning(
                        "Handler %s raised after its turn resolved (%s %s)",
                        name,
                        ctx.method,
                        ctx.full_path,
                        exc_info=exc,
                    )
                else:
                    turn(exc)
            if not turn.settled:
                await turn.wait()
    finally:
        ctx._turn = None
        ctx._scope = None

    if scope.cancelled_caught:
        return TERMINATE
    return turn.outcome or TERMINATE
