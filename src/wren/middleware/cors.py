"""Built-in middleware: CORS.

Answers preflight requests itself and stamps CORS headers on the
response before passing actual requests downstream.
"""

from dataclasses import dataclass

from wren.context import Context
from wren.routing.dispatch import Next


@dataclass(frozen=True, slots=True)
class CORSConfig:
    """CORS middleware configuration.

    All fields have secure defaults (nothing is allowed).
    Override what you need::

        CORSConfig(
            allow_origins=("https://example.com",),
            allow_methods=("GET", "POST"),
        )
    """

    allow_origins: tuple[str, ...] = ()
    allow_methods: tuple[str, ...] = ("GET", "HEAD", "OPTIONS")
    allow_headers: tuple[str, ...] = ()
    expose_headers: tuple[str, ...] = ()
    allow_credentials: bool = False
    max_age: int = 600  # 10 minutes


class CORSMiddleware:
    """Cross-Origin Resource Sharing as a normal-role layer.

    Handles:
    - Preflight ``OPTIONS`` requests (ends the exchange with 204)
    - Actual requests (sets CORS headers, then ``next()``)
    - Credential support (``Access-Control-Allow-Credentials``)
    - Wildcard origins (``"*"``) when credentials are disabled

    Requests without an ``Origin`` header, or from an origin not in the
    allow list, pass through untouched.

    Usage::

        app.use(CORSMiddleware(CORSConfig(
            allow_origins=("https://example.com",),
            allow_methods=("GET", "POST", "PUT"),
            allow_headers=("Content-Type", "Authorization"),
        )))
    """

    __slots__ = ("config",)

    def __init__(self, config: CORSConfig | None = None) -> None:
        self.config = config or CORSConfig()

    def _is_allowed_origin(self, origin: str) -> bool:
        if "*" in self.config.allow_origins:
            return True
        return origin in self.config.allow_origins

    def _set_cors_headers(self, ctx: Context, origin: str) -> None:
        cfg = self.config
        if "*" in cfg.allow_origins and not cfg.allow_credentials:
            ctx.set_header("Access-Control-Allow-Origin", "*")
        else:
            ctx.set_header("Access-Control-Allow-Origin", origin)
            ctx.append_header("Vary", "Origin")

        if cfg.allow_credentials:
            ctx.set_header("Access-Control-Allow-Credentials", "true")

        if cfg.expose_headers:
            ctx.set_header("Access-Control-Expose-Headers", ", ".join(cfg.expose_headers))

    def _preflight(self, ctx: Context, origin: str) -> None:
        cfg = self.config
        self._set_cors_headers(ctx, origin)
        if ctx.headers.get("access-control-request-method"):
            ctx.set_header("Access-Control-Allow-Methods", ", ".join(cfg.allow_methods))
        if cfg.allow_headers:
            ctx.set_header("Access-Control-Allow-Headers", ", ".join(cfg.allow_headers))
        ctx.set_header("Access-Control-Max-Age", str(cfg.max_age))
        ctx.send(b"", status=204)

    def __call__(self, ctx: Context, next: Next) -> None:
        origin = ctx.headers.get("origin")
        if origin is None or not self._is_allowed_origin(origin):
            next()
            return

        if ctx.method == "OPTIONS":
            self._preflight(ctx, origin)
            return

        self._set_cors_headers(ctx, origin)
        next()
