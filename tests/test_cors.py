"""Tests for the CORS middleware."""

import pytest

from wren.app import App
from wren.middleware.cors import CORSConfig, CORSMiddleware
from wren.testing import TestClient

pytestmark = pytest.mark.anyio


def _make_cors_app(config: CORSConfig | None = None) -> App:
    app = App()
    app.use(CORSMiddleware(config))
    app.get("/api/data", lambda ctx, next: {"message": "hello"})
    app.post("/api/data", lambda ctx, next: ("created", 201))
    return app


class TestCORSNonCorsRequests:
    async def test_no_origin_header(self) -> None:
        app = _make_cors_app(CORSConfig(allow_origins=("*",)))
        async with TestClient(app) as client:
            response = await client.get("/api/data")
        assert response.status == 200
        assert response.header("access-control-allow-origin") is None

    async def test_disallowed_origin_passes_through(self) -> None:
        app = _make_cors_app(CORSConfig(allow_origins=("https://example.com",)))
        async with TestClient(app) as client:
            response = await client.get("/api/data", headers={"Origin": "https://evil.test"})
        assert response.status == 200
        assert response.header("access-control-allow-origin") is None


class TestCORSActualRequests:
    async def test_allowed_origin_gets_headers(self) -> None:
        app = _make_cors_app(CORSConfig(allow_origins=("https://example.com",)))
        async with TestClient(app) as client:
            response = await client.get("/api/data", headers={"Origin": "https://example.com"})
        assert response.status == 200
        assert ("access-control-allow-origin", "https://example.com") in response.headers
        assert ("vary", "Origin") in response.headers

    async def test_wildcard_without_credentials(self) -> None:
        app = _make_cors_app(CORSConfig(allow_origins=("*",)))
        async with TestClient(app) as client:
            response = await client.post("/api/data", headers={"Origin": "https://a.test"})
        assert response.status == 201
        assert response.header("access-control-allow-origin") == "*"

    async def test_credentials_echo_origin(self) -> None:
        app = _make_cors_app(CORSConfig(allow_origins=("*",), allow_credentials=True))
        async with TestClient(app) as client:
            response = await client.get("/api/data", headers={"Origin": "https://a.test"})
        assert response.header("access-control-allow-origin") == "https://a.test"
        assert response.header("access-control-allow-credentials") == "true"

    async def test_expose_headers(self) -> None:
        app = _make_cors_app(
            CORSConfig(allow_origins=("*",), expose_headers=("X-Total", "X-Page"))
        )
        async with TestClient(app) as client:
            response = await client.get("/api/data", headers={"Origin": "https://a.test"})
        assert response.header("access-control-expose-headers") == "X-Total, X-Page"


class TestCORSPreflight:
    async def test_preflight_ends_with_204(self) -> None:
        app = _make_cors_app(
            CORSConfig(
                allow_origins=("https://example.com",),
                allow_methods=("GET", "POST"),
                allow_headers=("Content-Type",),
                max_age=60,
            )
        )
        async with TestClient(app) as client:
            response = await client.options(
                "/api/data",
                headers={
                    "Origin": "https://example.com",
                    "Access-Control-Request-Method": "POST",
                },
            )
        assert response.status == 204
        assert response.body == b""
        assert response.header("access-control-allow-methods") == "GET, POST"
        assert response.header("access-control-allow-headers") == "Content-Type"
        assert response.header("access-control-max-age") == "60"

    async def test_options_without_origin_uses_automatic_allow(self) -> None:
        app = _make_cors_app(CORSConfig(allow_origins=("*",)))
        async with TestClient(app) as client:
            response = await client.options("/api/data")
        assert response.status == 200
        assert response.header("allow") == "GET, HEAD, POST"
