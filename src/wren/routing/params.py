"""Path parameter converters.

Regexes for typed segments like ``{id:int}``. The captured value is
always handed to handlers as a string; ``convert_param`` turns it into
the converter's Python type on demand.
"""


# (regex_pattern, python_type) for each supported converter.
# Patterns must not contain capturing groups.
CONVERTERS: dict[str, tuple[str, type]] = {
    "str": (r"[^/]+", str),
    "int": (r"\d+", int),
    "float": (r"\d+(?:\.\d+)?", float),
    "path": (r".*", str),
}


def convert_param(value: str, param_type: str) -> str | int | float:
    """Convert a captured path parameter string to the target type.

    Raises ``ValueError`` if the string cannot be converted.
    Raises ``KeyError`` if *param_type* is not a registered converter.
    """
    _, target_type = CONVERTERS[param_type]
    return target_type(value)
