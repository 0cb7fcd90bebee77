"""Wren — ordered middleware dispatch for ASGI.

Requests flow through an ordered list of layers (middleware, routes,
and mounted sub-routers). Each handler explicitly passes control on
with ``next()``, diverts to error handlers with ``next(error)``, or
ends the exchange.

Basic usage::

    from wren import App

    app = App()

    def log_request(ctx, next):
        print(ctx.method, ctx.path)
        next()

    app.use(log_request)

    @app.get("/users/:id")
    def show_user(ctx, next):
        ctx.json({"id": ctx.params["id"]})

    app.run()
"""

__version__ = "0.1.0"
__all__ = [
    "App",
    "AppConfig",
    "ConfigurationError",
    "Context",
    "HTTPError",
    "Next",
    "NotFound",
    "PayloadTooLarge",
    "Redirect",
    "Request",
    "Response",
    "Route",
    "Router",
    "WrenError",
    "get_context",
]


def __getattr__(name: str) -> object:
    """Lazy imports for public API.

    Keeps ``import wren`` fast while providing a clean top-level API.
    """
    if name == "App":
        from wren.app import App

        return App

    if name == "AppConfig":
        from wren.config import AppConfig

        return AppConfig

    if name == "Request":
        from wren.http.request import Request

        return Request

    if name in ("Response", "Redirect"):
        from wren.http import response as _resp

        return getattr(_resp, name)

    if name in ("Router", "Route", "Next"):
        from wren import routing as _routing

        return getattr(_routing, name)

    if name in ("Context", "get_context"):
        from wren import context as _ctx

        return getattr(_ctx, name)

    if name in ("WrenError", "ConfigurationError", "HTTPError", "NotFound", "PayloadTooLarge"):
        from wren import errors as _errors

        return getattr(_errors, name)

    msg = f"module {__name__!r} has no attribute {name!r}"
    raise AttributeError(msg)
