"""Tests for wren.http.request — frozen Request with async body access."""

import json

import pytest

from wren.errors import PayloadTooLarge
from wren.http.request import Request

pytestmark = pytest.mark.anyio


def _make_scope(**overrides: object) -> dict[str, object]:
    """Build a minimal valid ASGI HTTP scope."""
    base: dict[str, object] = {
        "type": "http",
        "asgi": {"version": "3.0"},
        "http_version": "1.1",
        "method": "GET",
        "path": "/",
        "raw_path": b"/",
        "query_string": b"",
        "root_path": "",
        "headers": [],
        "server": ("localhost", 8000),
        "client": ("127.0.0.1", 54321),
    }
    base.update(overrides)
    return base


def _make_receive(*bodies: bytes):
    """Create an ASGI receive callable that yields bodies."""
    messages = []
    for i, body in enumerate(bodies):
        is_last = i == len(bodies) - 1
        messages.append({"type": "http.request", "body": body, "more_body": not is_last})
    if not messages:
        messages.append({"type": "http.request", "body": b"", "more_body": False})
    it = iter(messages)

    async def receive():
        return next(it, {"type": "http.disconnect"})

    return receive


class TestRequestFromASGI:
    def test_basic_fields(self) -> None:
        req = Request.from_asgi(_make_scope(method="post", path="/users"), _make_receive())

        assert req.method == "POST"
        assert req.path == "/users"
        assert req.http_version == "1.1"
        assert req.server == ("localhost", 8000)
        assert req.client == ("127.0.0.1", 54321)

    def test_empty_path_is_root(self) -> None:
        req = Request.from_asgi(_make_scope(path=""), _make_receive())
        assert req.path == "/"

    def test_headers_parsed(self) -> None:
        scope = _make_scope(headers=[(b"content-type", b"application/json"), (b"accept", b"*/*")])
        req = Request.from_asgi(scope, _make_receive())

        assert req.headers["content-type"] == "application/json"
        assert req.headers["Accept"] == "*/*"

    def test_query_params_parsed(self) -> None:
        req = Request.from_asgi(_make_scope(query_string=b"q=hello&page=2"), _make_receive())

        assert req.query["q"] == "hello"
        assert req.query["page"] == "2"

    def test_missing_server_and_client(self) -> None:
        scope = _make_scope()
        del scope["server"]
        del scope["client"]
        req = Request.from_asgi(scope, _make_receive())

        assert req.server is None
        assert req.client is None


class TestRequestProperties:
    def test_content_length(self) -> None:
        req = Request.from_asgi(_make_scope(headers=[(b"content-length", b"42")]), _make_receive())
        assert req.content_length == 42

    def test_content_length_invalid(self) -> None:
        req = Request.from_asgi(_make_scope(headers=[(b"content-length", b"abc")]), _make_receive())
        assert req.content_length is None

    def test_url_with_query(self) -> None:
        req = Request.from_asgi(_make_scope(path="/search", query_string=b"q=hello"), _make_receive())
        assert req.url == "/search?q=hello"

    def test_url_without_query(self) -> None:
        req = Request.from_asgi(_make_scope(path="/users"), _make_receive())
        assert req.url == "/users"


class TestRequestBody:
    async def test_body_chunked(self) -> None:
        req = Request.from_asgi(_make_scope(), _make_receive(b"hello ", b"world"))
        assert await req.body() == b"hello world"

    async def test_body_cached(self) -> None:
        req = Request.from_asgi(_make_scope(), _make_receive(b"once"))
        assert await req.body() == b"once"
        assert await req.body() == b"once"

    async def test_text_and_json(self) -> None:
        data = json.dumps({"key": "value"}).encode()
        req = Request.from_asgi(_make_scope(), _make_receive(data))

        assert await req.json() == {"key": "value"}
        assert await req.text() == data.decode()

    async def test_stream(self) -> None:
        req = Request.from_asgi(_make_scope(), _make_receive(b"chunk1", b"chunk2"))
        chunks = [chunk async for chunk in req.stream()]
        assert chunks == [b"chunk1", b"chunk2"]

    async def test_declared_length_over_limit(self) -> None:
        scope = _make_scope(headers=[(b"content-length", b"100")])
        req = Request.from_asgi(scope, _make_receive(b"x" * 100))
        with pytest.raises(PayloadTooLarge):
            await req.body(limit=10)

    async def test_streamed_size_over_limit(self) -> None:
        req = Request.from_asgi(_make_scope(), _make_receive(b"12345", b"67890"))
        with pytest.raises(PayloadTooLarge):
            await req.body(limit=8)

    async def test_within_limit(self) -> None:
        req = Request.from_asgi(_make_scope(), _make_receive(b"1234"))
        assert await req.body(limit=4) == b"1234"


class TestRequestFrozen:
    def test_cannot_mutate(self) -> None:
        req = Request.from_asgi(_make_scope(), _make_receive())
        with pytest.raises(AttributeError):
            req.method = "POST"  # type: ignore[misc]
