"""Router — an ordered, append-only sequence of layers.

Matching is sequential in registration order, not best-match: an early
broad pattern shadows a later specific one. That is what lets
middleware (method-agnostic prefix layers) and terminal routes
interleave freely in a single list.

Routers nest: ``mount()`` (or ``use()`` with a Router) appends a
prefix-mode layer whose target is the sub-router. The sub-router is
referenced, not copied, so layers appended to it later are seen.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Iterator, Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from wren._internal.types import Handler, ParamCallback
from wren.errors import ConfigurationError
from wren.routing.layer import Layer, Role
from wren.routing.pattern import PathPattern, PatternSource
from wren.routing.route import Route

if TYPE_CHECKING:
    from wren.context import Context
    from wren.routing.dispatch import FinalHandler


@dataclass(frozen=True, slots=True)
class LayerInfo:
    """One row of the flattened layer table (see ``Router.walk``)."""

    methods: str
    path: str
    role: Role
    handler: str
    prefix: bool = False


def _join(prefix: str, path: str) -> str:
    if path == "/":
        return prefix or "/"
    return prefix.rstrip("/") + path


class Router:
    """An ordered, mutable collection of layers and sub-routers.

    Usage::

        api = Router()
        api.use(require_token)
        api.get("/widgets", list_widgets)

        root = Router()
        root.use(log_request)
        root.mount("/api", api)

    Options:
        case_sensitive: ``/Users`` and ``/users`` differ (default True).
        strict: ``/a`` and ``/a/`` differ (default False).
    """

    __slots__ = ("_layers", "_params", "case_sensitive", "name", "strict")

    def __init__(
        self,
        *,
        case_sensitive: bool = True,
        strict: bool = False,
        name: str | None = None,
    ) -> None:
        self.case_sensitive = case_sensitive
        self.strict = strict
        self.name = name
        self._layers: list[Layer] = []
        self._params: dict[str, list[ParamCallback]] = {}

    @property
    def layers(self) -> Sequence[Layer]:
        """The live layer list. Dispatch reads it in place (see ``dispatch``)."""
        return self._layers

    def handles_method(self, method: str) -> bool:  # noqa: ARG002
        """A mounted router admits every method; its own layers filter."""
        return True

    # -- Registration --

    def _pattern(self, path: PatternSource, *, end: bool) -> PathPattern:
        return PathPattern(
            path,
            end=end,
            strict=self.strict,
            case_sensitive=self.case_sensitive,
        )

    def register(
        self,
        methods: Iterable[str] | None,
        path: PatternSource,
        handler: Handler,
        *,
        role: Role = Role.NORMAL,
        end: bool = True,
    ) -> Layer:
        """Append one handler layer and return it.

        No deduplication: registering the same handler twice makes it
        run twice per matching request.

        Raises ``ConfigurationError`` for an empty pattern or a
        non-callable handler.
        """
        if not callable(handler):
            msg = f"Handler for {path!r} must be callable, got {handler!r}."
            raise ConfigurationError(msg)
        layer = Layer(
            pattern=self._pattern(path, end=end),
            handler=handler,
            role=role,
            methods=None if methods is None else frozenset(m.upper() for m in methods),
        )
        self._layers.append(layer)
        return layer

    def mount(self, path: PatternSource, router: Router) -> Layer:
        """Mount *router* under the *path* prefix.

        Inside the sub-router the prefix is stripped from the path and
        any parameters bound by the prefix remain visible.
        """
        if router is self:
            msg = "A router cannot be mounted inside itself."
            raise ConfigurationError(msg)
        layer = Layer(pattern=self._pattern(path, end=False), target=router)
        self._layers.append(layer)
        return layer

    def use(self, *args: Any) -> Router:
        """Append middleware: method-agnostic, prefix-matched, normal-role.

        The first argument may be a path prefix (default ``"/"``).
        Router arguments are mounted instead::

            router.use(log_request)
            router.use("/admin", require_admin, admin_router)
        """
        path, handlers = self._split_path(args, "use")
        for handler in handlers:
            if isinstance(handler, Router):
                self.mount(path, handler)
            else:
                self.register(None, path, handler, end=False)
        return self

    def use_error(self, *args: Any) -> Router:
        """Append error-role middleware; called as ``handler(error, ctx, next)``."""
        path, handlers = self._split_path(args, "use_error")
        for handler in handlers:
            self.register(None, path, handler, role=Role.ERROR, end=False)
        return self

    def _split_path(self, args: tuple[Any, ...], caller: str) -> tuple[PatternSource, tuple[Any, ...]]:
        if args and isinstance(args[0], (str, re.Pattern)):
            path, handlers = args[0], args[1:]
        else:
            path, handlers = "/", args
        if not handlers:
            msg = f"{caller}() requires at least one handler."
            raise ConfigurationError(msg)
        return path, handlers

    def route(self, path: PatternSource) -> Route:
        """Create a Route for *path*, append it, and return it for chaining."""
        route = Route(path)
        self._layers.append(Layer(pattern=self._pattern(path, end=True), target=route))
        return route

    def add(self, methods: Iterable[str] | None, path: PatternSource, *handlers: Handler) -> Any:
        """Register *handlers* on a new Route for *path*.

        With handlers, returns the Route. Without, returns a decorator::

            router.add(["GET"], "/", index)

            @router.add(["GET", "POST"], "/form")
            def form(ctx, next): ...
        """
        if handlers:
            return self.route(path).add(methods, *handlers)

        def decorator(func: Handler) -> Handler:
            self.route(path).add(methods, func)
            return func

        return decorator

    def get(self, path: PatternSource, *handlers: Handler) -> Any:
        return self.add(("GET",), path, *handlers)

    def post(self, path: PatternSource, *handlers: Handler) -> Any:
        return self.add(("POST",), path, *handlers)

    def put(self, path: PatternSource, *handlers: Handler) -> Any:
        return self.add(("PUT",), path, *handlers)

    def patch(self, path: PatternSource, *handlers: Handler) -> Any:
        return self.add(("PATCH",), path, *handlers)

    def delete(self, path: PatternSource, *handlers: Handler) -> Any:
        return self.add(("DELETE",), path, *handlers)

    def head(self, path: PatternSource, *handlers: Handler) -> Any:
        return self.add(("HEAD",), path, *handlers)

    def options(self, path: PatternSource, *handlers: Handler) -> Any:
        return self.add(("OPTIONS",), path, *handlers)

    def all(self, path: PatternSource, *handlers: Handler) -> Any:
        return self.add(None, path, *handlers)

    def param(self, name: str, callback: ParamCallback) -> Router:
        """Register a hook run before handlers of layers that bind *name*.

        Called as ``callback(ctx, next, value)`` once per request per
        value, before the first matching layer in this router that
        captures *name*. It continues with ``next()`` or diverts with
        ``next(error)``.
        """
        if not callable(callback):
            msg = f"param() callback for {name!r} must be callable."
            raise ConfigurationError(msg)
        self._params.setdefault(name, []).append(callback)
        return self

    def param_callbacks(self, name: str) -> Sequence[ParamCallback]:
        return self._params.get(name, ())

    # -- Dispatch --

    async def dispatch(self, ctx: Context, *, final: FinalHandler | None = None) -> None:
        """Run *ctx* through this router until the exchange terminates.

        *final* answers not-found and unrecovered errors; it defaults to
        the built-in terminal handler.
        """
        from wren.routing.dispatch import dispatch

        await dispatch(self, ctx, final=final)

    # -- Introspection --

    def walk(self, prefix: str = "") -> Iterator[LayerInfo]:
        """Yield every handler layer, depth-first, with its full path."""
        for layer in self._layers:
            path = _join(prefix, str(layer.pattern))
            target = layer.target
            if isinstance(target, Router):
                yield from target.walk(path)
            elif isinstance(target, Route):
                for inner in target.layers:
                    yield LayerInfo(
                        methods=_methods_label(inner.methods),
                        path=path,
                        role=inner.role,
                        handler=inner.name,
                    )
            else:
                yield LayerInfo(
                    methods=_methods_label(layer.methods),
                    path=path,
                    role=layer.role,
                    handler=layer.name,
                    prefix=not layer.pattern.end,
                )

    def __len__(self) -> int:
        return len(self._layers)

    def __repr__(self) -> str:
        label = f" {self.name}" if self.name else ""
        return f"<Router{label} ({len(self._layers)} layers)>"


def _methods_label(methods: frozenset[str] | None) -> str:
    return "*" if methods is None else ",".join(sorted(methods))

