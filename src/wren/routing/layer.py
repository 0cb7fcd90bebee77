"""Layer — the atomic dispatch unit.

A layer pairs a method filter and a compiled path pattern with either a
handler or a nested container (a mounted Router or a Route). Layers are
frozen once created; routers only ever append them.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

from wren._internal.types import Handler
from wren.routing.pattern import PathMatch, PathPattern

if TYPE_CHECKING:
    from wren.routing.route import Route
    from wren.routing.router import Router


class Role(Enum):
    """Which dispatch state a layer is eligible in.

    NORMAL layers run while no error is pending; ERROR layers run only
    while one is.
    """

    NORMAL = "normal"
    ERROR = "error"


@dataclass(frozen=True, slots=True)
class Layer:
    """One matchable unit in a router's sequence.

    Exactly one of ``handler`` and ``target`` is set. ``methods`` of
    ``None`` means every method. A ``Route`` target decides method
    eligibility itself, so routes that gain handlers later are seen;
    a mounted Router admits every method.
    """

    pattern: PathPattern
    handler: Handler | None = None
    target: Router | Route | None = None
    role: Role = Role.NORMAL
    methods: frozenset[str] | None = None

    def handles_method(self, method: str) -> bool:
        """Whether this layer's method filter admits *method*."""
        if self.target is not None:
            return self.target.handles_method(method)
        if self.methods is None:
            return True
        if method in self.methods:
            return True
        return method == "HEAD" and "GET" in self.methods

    def match(self, path: str) -> PathMatch | None:
        """Match *path* against this layer's pattern."""
        return self.pattern.match(path)

    @property
    def name(self) -> str:
        """Display name for introspection (handler or container name)."""
        obj = self.handler if self.handler is not None else self.target
        return getattr(obj, "__name__", None) or getattr(obj, "name", None) or type(obj).__name__
