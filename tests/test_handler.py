"""Tests for wren.server.handler — response timing and connection lifetime."""

from typing import Any

import anyio
import pytest

from wren.app import App
from wren.testing import TestClient

pytestmark = pytest.mark.anyio


def _scope(method: str = "GET", path: str = "/", headers: list[tuple[bytes, bytes]] | None = None) -> dict[str, Any]:
    return {
        "type": "http",
        "asgi": {"version": "3.0"},
        "http_version": "1.1",
        "method": method,
        "path": path,
        "query_string": b"",
        "headers": headers or [],
    }


class _Client:
    """Raw ASGI peer: sends *bodies*, then disconnects when told to."""

    def __init__(self, *bodies: bytes) -> None:
        self.messages: list[dict[str, Any]] = [
            {"type": "http.request", "body": body, "more_body": i < len(bodies) - 1}
            for i, body in enumerate(bodies or (b"",))
        ]
        self.gone = anyio.Event()
        self.sent: list[dict[str, Any]] = []

    async def receive(self) -> dict[str, Any]:
        if self.messages:
            return self.messages.pop(0)
        await self.gone.wait()
        return {"type": "http.disconnect"}

    async def send(self, message: dict[str, Any]) -> None:
        self.sent.append(message)


class TestResponseTiming:
    async def test_response_sent_before_handler_returns(self) -> None:
        app = App()
        started: list[bool] = []
        client = _Client()

        async def handler(ctx, next):
            ctx.send("done")
            await anyio.sleep(10)

        app.get("/", handler)

        async def watch_start() -> None:
            while not client.sent:
                await anyio.sleep(0.01)
            started.append(True)

        with anyio.fail_after(2):
            async with anyio.create_task_group() as tg:
                tg.start_soon(watch_start)
                await app(_scope(), client.receive, client.send)

        assert started == [True]
        assert client.sent[0]["type"] == "http.response.start"
        assert client.sent[1]["body"] == b"done"

    async def test_send_then_hang_still_delivers(self) -> None:
        app = App()

        async def handler(ctx, next):
            ctx.send("delivered", status=202)
            await anyio.Event().wait()

        app.get("/", handler)

        async with TestClient(app) as client:
            with anyio.fail_after(2):
                response = await client.get("/")

        assert response.status == 202
        assert response.text == "delivered"

    async def test_handler_tail_cancelled_after_send(self) -> None:
        app = App()
        tail: list[str] = []

        async def handler(ctx, next):
            ctx.send("ok")
            await anyio.sleep(10)
            tail.append("ran")

        app.get("/", handler)

        async with TestClient(app) as client:
            with anyio.fail_after(2):
                await client.get("/")

        assert tail == []


class TestDisconnect:
    async def test_disconnect_releases_hung_exchange(self) -> None:
        app = App()
        app.get("/hang", lambda ctx, next: None)
        client = _Client()
        client.gone.set()

        with anyio.fail_after(2):
            await app(_scope(path="/hang"), client.receive, client.send)

        assert client.sent == []

    async def test_disconnect_cancels_deferred_work(self) -> None:
        app = App()
        finished: list[bool] = []

        async def background() -> None:
            await anyio.sleep(10)
            finished.append(True)

        def handler(ctx, next):
            ctx.defer(background)

        app.get("/", handler)
        client = _Client()

        async def hang_up() -> None:
            await anyio.sleep(0.05)
            client.gone.set()

        with anyio.fail_after(2):
            async with anyio.create_task_group() as tg:
                tg.start_soon(hang_up)
                await app(_scope(), client.receive, client.send)

        assert finished == []
        assert client.sent == []

    async def test_body_read_not_disturbed_by_watcher(self) -> None:
        app = App()
        seen: list[bytes] = []

        async def handler(ctx, next):
            seen.append(await ctx.body())

        app.post("/upload", handler)
        client = _Client(b"hello ", b"world")
        headers = [(b"content-length", b"11")]

        async def hang_up() -> None:
            while not seen:
                await anyio.sleep(0.01)
            client.gone.set()

        with anyio.fail_after(2):
            async with anyio.create_task_group() as tg:
                tg.start_soon(hang_up)
                await app(_scope("POST", "/upload", headers), client.receive, client.send)

        assert seen == [b"hello world"]

    async def test_bodiless_request_body_is_empty(self) -> None:
        app = App()

        async def handler(ctx, next):
            ctx.send(f"got {len(await ctx.body())} bytes")

        app.get("/", handler)
        client = _Client()

        with anyio.fail_after(2):
            await app(_scope(), client.receive, client.send)

        assert client.sent[1]["body"] == b"got 0 bytes"
