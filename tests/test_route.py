"""Tests for wren.routing.route — per-path method multiplexing."""

import pytest

from wren.errors import ConfigurationError
from wren.routing.layer import Role
from wren.routing.route import Route


def _handler(ctx, next) -> None:
    next()


def _other(ctx, next) -> None:
    next()


class TestRouteMethods:
    def test_handles_registered_method(self) -> None:
        route = Route("/x").get(_handler)
        assert route.handles_method("GET") is True
        assert route.handles_method("POST") is False

    def test_head_falls_back_to_get(self) -> None:
        route = Route("/x").get(_handler)
        assert route.handles_method("HEAD") is True

    def test_all_handles_everything(self) -> None:
        route = Route("/x").all(_handler)
        assert route.handles_method("DELETE") is True
        assert route.handles_method("PATCH") is True

    def test_allowed_methods_includes_head_for_get(self) -> None:
        route = Route("/x").get(_handler).post(_handler)
        assert route.allowed_methods() == ["GET", "HEAD", "POST"]

    def test_error_handlers_do_not_add_methods(self) -> None:
        route = Route("/x").error(_handler)
        assert route.handles_method("GET") is False
        assert route.layers[0].role is Role.ERROR


class TestRouteChains:
    def test_second_handler_for_same_method_appends(self) -> None:
        route = Route("/x").get(_handler).get(_other)
        assert [layer.handler for layer in route.layers] == [_handler, _other]

    def test_multiple_handlers_in_one_call(self) -> None:
        route = Route("/x").put(_handler, _other)
        assert len(route.layers) == 2
        assert all(layer.methods == frozenset({"PUT"}) for layer in route.layers)

    def test_methods_are_upper_cased(self) -> None:
        route = Route("/x").add(["get", "post"], _handler)
        assert route.methods == {"GET", "POST"}

    def test_requires_a_handler(self) -> None:
        with pytest.raises(ConfigurationError, match="at least one handler"):
            Route("/x").get()

    def test_rejects_non_callable(self) -> None:
        with pytest.raises(ConfigurationError, match="must be callable"):
            Route("/x").get("not a handler")

    def test_repr(self) -> None:
        assert repr(Route("/x").get(_handler)) == "<Route GET '/x' (1 handlers)>"
