"""Tests for wren.routing.router — layer registration and introspection."""

import re

import pytest

from wren.errors import ConfigurationError
from wren.routing.layer import Role
from wren.routing.route import Route
from wren.routing.router import Router


def _mw(ctx, next) -> None:
    next()


def _on_error(error, ctx, next) -> None:
    next(error)


def _show(ctx, next) -> None:
    ctx.send("ok")


class TestRegister:
    def test_returns_appended_layer(self) -> None:
        router = Router()
        layer = router.register(["get"], "/x", _show)
        assert router.layers[-1] is layer
        assert layer.methods == frozenset({"GET"})
        assert layer.pattern.end is True

    def test_rejects_non_callable(self) -> None:
        with pytest.raises(ConfigurationError, match="must be callable"):
            Router().register(None, "/x", 42)

    def test_no_deduplication(self) -> None:
        router = Router()
        router.use(_mw)
        router.use(_mw)
        assert len(router) == 2

    def test_router_options_reach_patterns(self) -> None:
        router = Router(case_sensitive=False, strict=True)
        layer = router.register(None, "/Docs", _show)
        assert layer.pattern.match("/docs") is not None
        assert layer.pattern.match("/docs/") is None


class TestUse:
    def test_defaults_to_root_prefix(self) -> None:
        router = Router()
        router.use(_mw)
        layer = router.layers[0]
        assert layer.pattern.end is False
        assert layer.methods is None
        assert layer.role is Role.NORMAL
        assert layer.match("/any/path") is not None

    def test_with_path(self) -> None:
        router = Router()
        router.use("/admin", _mw)
        assert router.layers[0].match("/admin/users") is not None
        assert router.layers[0].match("/public") is None

    def test_with_regex_path(self) -> None:
        router = Router()
        router.use(re.compile(r"/v\d+"), _mw)
        assert router.layers[0].match("/v1/items") is not None

    def test_several_handlers_in_order(self) -> None:
        router = Router()
        router.use(_mw, _show)
        assert [layer.handler for layer in router.layers] == [_mw, _show]

    def test_router_argument_is_mounted(self) -> None:
        sub = Router()
        router = Router()
        router.use("/api", sub)
        assert router.layers[0].target is sub

    def test_requires_handler(self) -> None:
        with pytest.raises(ConfigurationError, match="at least one handler"):
            Router().use("/x")

    def test_use_error_registers_error_role(self) -> None:
        router = Router()
        router.use_error(_on_error)
        assert router.layers[0].role is Role.ERROR
        assert router.layers[0].pattern.end is False


class TestMount:
    def test_prefix_layer_targets_router(self) -> None:
        sub = Router()
        router = Router()
        layer = router.mount("/api", sub)
        assert layer.target is sub
        assert layer.pattern.end is False
        assert layer.handles_method("DELETE") is True

    def test_cannot_mount_self(self) -> None:
        router = Router()
        with pytest.raises(ConfigurationError, match="inside itself"):
            router.mount("/loop", router)

    def test_sub_router_is_referenced_not_copied(self) -> None:
        sub = Router()
        router = Router()
        router.mount("/api", sub)
        sub.get("/late", _show)
        assert router.layers[0].target.layers[0].target.layers[0].handler is _show


class TestRoutes:
    def test_route_returns_route(self) -> None:
        router = Router()
        route = router.route("/users/:id")
        assert isinstance(route, Route)
        assert router.layers[0].target is route
        assert router.layers[0].pattern.end is True

    def test_verb_returns_route(self) -> None:
        router = Router()
        route = router.get("/x", _show)
        assert isinstance(route, Route)
        assert route.methods == {"GET"}

    def test_verb_decorator(self) -> None:
        router = Router()

        @router.post("/items")
        def create(ctx, next):
            ctx.send("made", status=201)

        route = router.layers[0].target
        assert route.layers[0].handler is create
        assert route.methods == {"POST"}

    def test_route_layer_method_filter_follows_route(self) -> None:
        router = Router()
        route = router.route("/x")
        layer = router.layers[0]
        assert layer.handles_method("GET") is False
        route.get(_show)
        assert layer.handles_method("GET") is True


class TestParam:
    def test_registers_callbacks_in_order(self) -> None:
        router = Router()

        def first(ctx, next, value):
            next()

        def second(ctx, next, value):
            next()

        router.param("id", first).param("id", second)
        assert list(router.param_callbacks("id")) == [first, second]
        assert list(router.param_callbacks("other")) == []

    def test_rejects_non_callable(self) -> None:
        with pytest.raises(ConfigurationError):
            Router().param("id", "nope")


class TestWalk:
    def test_flattens_nested_layers(self) -> None:
        api = Router()
        api.get("/widgets", _show)
        router = Router()
        router.use(_mw)
        router.mount("/api", api)
        router.use_error(_on_error)

        rows = [(info.methods, info.path, info.role, info.handler) for info in router.walk()]
        assert rows == [
            ("*", "/", Role.NORMAL, "_mw"),
            ("GET", "/api/widgets", Role.NORMAL, "_show"),
            ("*", "/", Role.ERROR, "_on_error"),
        ]

    def test_prefix_flag(self) -> None:
        router = Router()
        router.use("/admin", _mw)
        router.get("/x", _show)
        infos = list(router.walk())
        assert infos[0].prefix is True
        assert infos[1].prefix is False

    def test_repr(self) -> None:
        router = Router(name="api")
        router.use(_mw)
        assert repr(router) == "<Router api (1 layers)>"
