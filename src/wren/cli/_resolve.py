"""Locate the App named by a ``module:attribute`` string."""

import importlib
from functools import reduce

from wren.app import App


def resolve_app(import_string: str) -> App:
    """Import *import_string* and return the App it names.

    ``"pkg.web"`` means ``pkg.web:app``. The attribute part may be
    dotted (``"pkg.web:site.app"``). Anything callable that is not
    itself an App is treated as a factory and called with no arguments.

    Raises:
        ModuleNotFoundError: If the module cannot be imported.
        AttributeError: If the attribute does not exist.
        TypeError: If the result is not an ``App``, or a factory failed.
    """
    module_path, _, attr_path = import_string.partition(":")
    target = reduce(getattr, (attr_path or "app").split("."), importlib.import_module(module_path))

    if not isinstance(target, App) and callable(target):
        try:
            target = target()
        except Exception as exc:
            msg = f"App factory {import_string!r} failed: {exc}"
            raise TypeError(msg) from exc

    if not isinstance(target, App):
        msg = f"{import_string!r} is a {type(target).__name__}, not a wren.App"
        raise TypeError(msg)
    return target
