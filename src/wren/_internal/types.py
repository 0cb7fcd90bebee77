"""Shared type aliases used across wren modules."""

from collections.abc import Callable
from typing import Any, TypeAlias

# Normal-role handler: called as handler(ctx, next)
Handler: TypeAlias = Callable[..., Any]

# Param hook: called as callback(ctx, next, value)
ParamCallback: TypeAlias = Callable[..., Any]
