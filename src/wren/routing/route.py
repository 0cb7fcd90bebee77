"""Route — method multiplexing for one exact path.

A Route is a small container of layers that all share the route's path
and differ only by method filter. Registering a second handler for the
same method appends to the chain; handlers run in registration order
exactly like sibling layers in a router.
"""

from __future__ import annotations

from collections.abc import Iterable

from wren._internal.types import Handler
from wren.errors import ConfigurationError
from wren.routing.layer import Layer, Role
from wren.routing.pattern import ANY_PATH, PatternSource


class Route:
    """Handlers for one path, keyed by HTTP method.

    Usage::

        router.route("/users/:id").get(show_user).put(check_owner, update_user)
    """

    __slots__ = ("_all", "layers", "methods", "path")

    def __init__(self, path: PatternSource) -> None:
        self.path = path
        self.layers: list[Layer] = []
        self.methods: set[str] = set()
        self._all = False

    def handles_method(self, method: str) -> bool:
        """Whether any normal handler accepts *method* (HEAD falls back to GET)."""
        if self._all or method in self.methods:
            return True
        return method == "HEAD" and "GET" in self.methods

    def allowed_methods(self) -> list[str]:
        """Methods this route answers, as listed in an ``Allow`` header."""
        allowed = set(self.methods)
        if "GET" in allowed:
            allowed.add("HEAD")
        return sorted(allowed)

    def add(
        self,
        methods: Iterable[str] | None,
        *handlers: Handler,
        role: Role = Role.NORMAL,
    ) -> Route:
        """Append one layer per handler; ``methods=None`` accepts any method."""
        if not handlers:
            msg = f"Route {self.path!r} requires at least one handler."
            raise ConfigurationError(msg)
        normalized = None if methods is None else frozenset(m.upper() for m in methods)
        for handler in handlers:
            if not callable(handler):
                msg = f"Route handler for {self.path!r} must be callable, got {handler!r}."
                raise ConfigurationError(msg)
            self.layers.append(
                Layer(pattern=ANY_PATH, handler=handler, role=role, methods=normalized)
            )
        if role is Role.NORMAL:
            if normalized is None:
                self._all = True
            else:
                self.methods.update(normalized)
        return self

    def get(self, *handlers: Handler) -> Route:
        return self.add(("GET",), *handlers)

    def post(self, *handlers: Handler) -> Route:
        return self.add(("POST",), *handlers)

    def put(self, *handlers: Handler) -> Route:
        return self.add(("PUT",), *handlers)

    def patch(self, *handlers: Handler) -> Route:
        return self.add(("PATCH",), *handlers)

    def delete(self, *handlers: Handler) -> Route:
        return self.add(("DELETE",), *handlers)

    def head(self, *handlers: Handler) -> Route:
        return self.add(("HEAD",), *handlers)

    def options(self, *handlers: Handler) -> Route:
        return self.add(("OPTIONS",), *handlers)

    def all(self, *handlers: Handler) -> Route:
        return self.add(None, *handlers)

    def error(self, *handlers: Handler) -> Route:
        """Error-role handlers, reached only by errors raised inside this route."""
        return self.add(None, *handlers, role=Role.ERROR)

    def __repr__(self) -> str:
        methods = "*" if self._all else ",".join(sorted(self.methods))
        return f"<Route {methods} {str(self.path)!r} ({len(self.layers)} handlers)>"
