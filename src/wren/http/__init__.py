"""HTTP types — immutable request, headers, query, and response values."""

from wren.http.headers import Headers, MutableHeaders
from wren.http.query import QueryParams
from wren.http.request import Request
from wren.http.response import Redirect, Response

__all__ = [
    "Headers",
    "MutableHeaders",
    "QueryParams",
    "Redirect",
    "Request",
    "Response",
]
