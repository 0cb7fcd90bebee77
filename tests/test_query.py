"""Tests for wren.http.query — immutable QueryParams."""

import pytest

from wren.http.query import QueryParams


class TestQueryParams:
    def test_getitem_returns_first_value(self) -> None:
        q = QueryParams(b"x=first&x=second&page=2")
        assert q["x"] == "first"
        assert q["page"] == "2"

    def test_missing_key_raises(self) -> None:
        with pytest.raises(KeyError):
            QueryParams(b"q=hello")["missing"]

    def test_accepts_str(self) -> None:
        q = QueryParams("sort=name")
        assert q["sort"] == "name"
        assert q.raw == b"sort=name"

    def test_mapping_protocol(self) -> None:
        q = QueryParams(b"a=1&b=2")
        assert set(q) == {"a", "b"}
        assert len(q) == 2
        assert "a" in q

    def test_get_list(self) -> None:
        q = QueryParams(b"tag=python&tag=asgi")
        assert q.get_list("tag") == ["python", "asgi"]
        assert q.get_list("missing") == []

    def test_get_int(self) -> None:
        q = QueryParams(b"page=3&size=abc")
        assert q.get_int("page") == 3
        assert q.get_int("size") is None
        assert q.get_int("missing", 10) == 10

    def test_blank_value_preserved(self) -> None:
        assert QueryParams(b"flag=")["flag"] == ""

    def test_repr(self) -> None:
        assert "hello" in repr(QueryParams(b"q=hello"))
