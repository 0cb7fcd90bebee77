"""Wren exception hierarchy.

Shared across the path matcher, Router, dispatcher, and middleware so
every module raises and catches the same types.
"""

from dataclasses import dataclass


class WrenError(Exception):
    """Base for all wren-specific errors."""


class ConfigurationError(WrenError):
    """Raised when a route pattern or app configuration is invalid.

    Surfaces at registration time, never during dispatch.
    """


class ResponseAlreadySent(WrenError):  # noqa: N818
    """Raised when a handler writes to a context whose exchange has ended."""


@dataclass(frozen=True, slots=True)
class HTTPError(WrenError):
    """An error that maps directly to an HTTP status code.

    Raised by handlers or middleware, or passed to ``next(error)``.
    When no error-role layer consumes it, the terminal handler answers
    with ``status`` instead of a generic 500.
    """

    status: int
    detail: str = ""
    headers: tuple[tuple[str, str], ...] = ()

    def __str__(self) -> str:
        if self.detail:
            return f"{self.status}: {self.detail}"
        return str(self.status)


class NotFound(HTTPError):  # noqa: N818
    """404 — the scan exhausted every router without terminating."""

    def __init__(self, detail: str = "Not Found") -> None:
        super().__init__(status=404, detail=detail)


class PayloadTooLarge(HTTPError):  # noqa: N818
    """413 — the request body exceeds the configured limit."""

    def __init__(self, limit: int, detail: str = "") -> None:
        super().__init__(
            status=413,
            detail=detail or f"Request body exceeds {limit} bytes",
        )
