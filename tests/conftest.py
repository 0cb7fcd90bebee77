"""Shared fixtures for the wren test suite."""

import pytest

from wren.context import Context
from wren.http.headers import Headers
from wren.http.request import Request


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


def make_ctx(method: str = "GET", path: str = "/", headers: dict[str, str] | None = None, **kwargs) -> Context:
    """Build a Context for a bodiless request, bypassing ASGI."""
    raw = [(k.lower().encode("latin-1"), v.encode("latin-1")) for k, v in (headers or {}).items()]
    return Context(Request(method=method, path=path, headers=Headers(raw)), **kwargs)
