"""``wren routes`` — print the flattened layer table in dispatch order."""

import argparse
import sys

from wren.cli._resolve import resolve_app
from wren.routing.layer import Role


def run_routes(args: argparse.Namespace) -> None:
    """Print METHOD, PATH, ROLE and HANDLER for every handler layer.

    Prefix (middleware) layers are marked with a trailing ``*`` on the
    path; error-role layers show ``error`` in the ROLE column.
    """
    try:
        app = resolve_app(args.app)
    except (ModuleNotFoundError, AttributeError, TypeError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        raise SystemExit(1) from exc

    infos = app.routes()
    if not infos:
        print("No routes registered.")
        return

    rows = [
        (
            info.methods,
            f"{info.path}*" if info.prefix else info.path,
            "error" if info.role is Role.ERROR else "",
            info.handler,
        )
        for info in infos
    ]

    width_methods = max(6, *(len(r[0]) for r in rows))
    width_path = max(4, *(len(r[1]) for r in rows))
    fmt = f"{{:<{width_methods}}}  {{:<{width_path}}}  {{:<5}}  {{}}"
    print(fmt.format("METHOD", "PATH", "ROLE", "HANDLER"))
    sep_len = width_methods + width_path + 11 + max(len(r[3]) for r in rows)
    print("-" * min(sep_len, 80))
    for row in rows:
        print(fmt.format(*row))
