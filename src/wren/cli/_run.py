"""``wren run`` — serve an app with uvicorn."""

import argparse
import logging
import sys

import uvicorn

from wren.cli._resolve import resolve_app


def run_server(args: argparse.Namespace) -> None:
    """Resolve ``args.app`` and serve it until interrupted.

    CLI flags override the app's ``AppConfig``. With ``--reload`` (or
    ``AppConfig.reload``) uvicorn is given the import string so it can
    re-import the app in a fresh process.
    """
    try:
        app = resolve_app(args.app)
    except (ModuleNotFoundError, AttributeError, TypeError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        raise SystemExit(1) from exc

    config = app.config
    host = args.host if args.host is not None else config.host
    port = args.port if args.port is not None else config.port
    log_level = (args.log_level or config.log_level).lower()
    reload = args.reload or config.reload

    logging.basicConfig(
        level=log_level.upper(),
        format="%(asctime)s %(levelname)-8s %(name)s: %(message)s",
    )

    server = uvicorn.Server(
        uvicorn.Config(
            args.app if reload else app,
            host=host,
            port=port,
            reload=reload,
            log_level=log_level,
            lifespan="on",
        )
    )
    try:
        server.run()
    except KeyboardInterrupt:
        print("\nShutting down...")
