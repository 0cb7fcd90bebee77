"""Wren application class.

Owns the configuration and the root Router. Registration is open for
the lifetime of the app: layers appended while requests are in flight
are seen by those requests' scans.
"""

from __future__ import annotations

import inspect
import logging
from collections.abc import Callable
from typing import Any

from wren._internal.asgi import Receive, Scope, Send
from wren._internal.types import Handler, ParamCallback
from wren.config import AppConfig
from wren.routing.layer import Layer
from wren.routing.pattern import PatternSource
from wren.routing.route import Route
from wren.routing.router import LayerInfo, Router
from wren.server.handler import handle_request

logger = logging.getLogger("wren.server")


class App:
    """The wren application.

    Usage::

        app = App(AppConfig(debug=True))
        app.use(log_request)

        @app.get("/users/:id")
        async def show_user(ctx, next):
            ctx.json({"id": ctx.params["id"]})

        app.use_error(render_error)
        app.run()
    """

    __slots__ = ("_router", "_shutdown_hooks", "_startup_hooks", "config")

    def __init__(self, config: AppConfig | None = None) -> None:
        self.config: AppConfig = config or AppConfig()
        self._router = Router(
            case_sensitive=self.config.case_sensitive,
            strict=self.config.strict,
            name="app",
        )
        self._startup_hooks: list[Callable[..., Any]] = []
        self._shutdown_hooks: list[Callable[..., Any]] = []

    @property
    def router(self) -> Router:
        """The root router every request is dispatched through."""
        return self._router

    # -- Registration (delegates to the root router) --

    def use(self, *args: Any) -> App:
        self._router.use(*args)
        return self

    def use_error(self, *args: Any) -> App:
        self._router.use_error(*args)
        return self

    def mount(self, path: PatternSource, router: Router) -> Layer:
        return self._router.mount(path, router)

    def route(self, path: PatternSource) -> Route:
        return self._router.route(path)

    def param(self, name: str, callback: ParamCallback) -> App:
        self._router.param(name, callback)
        return self

    def add(self, methods: list[str] | tuple[str, ...] | None, path: PatternSource, *handlers: Handler) -> Any:
        return self._router.add(methods, path, *handlers)

    def get(self, path: PatternSource, *handlers: Handler) -> Any:
        return self._router.get(path, *handlers)

    def post(self, path: PatternSource, *handlers: Handler) -> Any:
        return self._router.post(path, *handlers)

    def put(self, path: PatternSource, *handlers: Handler) -> Any:
        return self._router.put(path, *handlers)

    def patch(self, path: PatternSource, *handlers: Handler) -> Any:
        return self._router.patch(path, *handlers)

    def delete(self, path: PatternSource, *handlers: Handler) -> Any:
        return self._router.delete(path, *handlers)

    def head(self, path: PatternSource, *handlers: Handler) -> Any:
        return self._router.head(path, *handlers)

    def options(self, path: PatternSource, *handlers: Handler) -> Any:
        return self._router.options(path, *handlers)

    def all(self, path: PatternSource, *handlers: Handler) -> Any:
        return self._router.all(path, *handlers)

    def routes(self) -> list[LayerInfo]:
        """Flattened layer table, in dispatch order."""
        return list(self._router.walk())

    # -- Lifecycle hooks --

    def on_startup(self, func: Callable[..., Any]) -> Callable[..., Any]:
        """Register an async or sync startup hook via decorator.

        Hooks run in registration order during ASGI lifespan startup,
        before the server begins accepting HTTP requests.
        """
        self._startup_hooks.append(func)
        return func

    def on_shutdown(self, func: Callable[..., Any]) -> Callable[..., Any]:
        """Register an async or sync shutdown hook via decorator."""
        self._shutdown_hooks.append(func)
        return func

    # -- Server --

    def run(self, host: str | None = None, port: int | None = None) -> None:
        """Serve the app with uvicorn until interrupted."""
        import uvicorn

        server = uvicorn.Server(
            uvicorn.Config(
                self,
                host=host if host is not None else self.config.host,
                port=port if port is not None else self.config.port,
                log_level=self.config.log_level,
                lifespan="on",
            )
        )
        server.run()

    # -- ASGI interface --

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        """ASGI 3.0 entry point.

        Handles the lifespan scope directly, then delegates HTTP scopes
        to the request handler.
        """
        if scope["type"] == "lifespan":
            await self._handle_lifespan(receive, send)
            return

        await handle_request(
            scope,
            receive,
            send,
            router=self._router,
            config=self.config,
        )

    async def _handle_lifespan(self, receive: Receive, send: Send) -> None:
        """Run the ASGI lifespan protocol."""
        while True:
            message = await receive()
            msg_type = message["type"]

            if msg_type == "lifespan.startup":
                try:
                    for hook in self._startup_hooks:
                        result = hook()
                        if inspect.isawaitable(result):
                            await result
                except Exception as exc:
                    logger.exception("Startup hook failed")
                    await send({"type": "lifespan.startup.failed", "message": str(exc)})
                    return
                await send({"type": "lifespan.startup.complete"})

            elif msg_type == "lifespan.shutdown":
                for hook in self._shutdown_hooks:
                    result = hook()
                    if inspect.isawaitable(result):
                        await result
                await send({"type": "lifespan.shutdown.complete"})
                return

    def __repr__(self) -> str:
        return f"<App ({len(self._router)} layers, debug={self.config.debug})>"
