"""Path matcher — compiles route patterns into deterministic matchers.

Pattern syntax (segments are ``/``-delimited)::

    /users              literal segment
    /users/:id          named parameter, exactly one non-empty segment
    /users/:id?         optional parameter (key omitted when absent)
    /users/{id:int}     typed parameter (str, int, float, path)
    /files/*            wildcard, zero or more segments -> params["0"]
    /files/*rest        named wildcard -> params["rest"]
    re.compile(r"...")  general regex; named groups bind by name,
                        unnamed groups become "0", "1", ...

A pattern compiles either in terminal mode (``end=True``: the whole
path must match, used by routes) or prefix mode (``end=False``: a
leading run of whole segments must match, used by middleware and
mounted routers).
"""

import re
from dataclasses import dataclass
from typing import TypeAlias

from wren.errors import ConfigurationError
from wren.routing.params import CONVERTERS

PatternSource: TypeAlias = str | re.Pattern[str]


@dataclass(frozen=True, slots=True)
class PathSegment:
    """A parsed segment of a route pattern.

    Static:    ``/users``    (is_param=False)
    Param:     ``/:id``      (is_param=True, param_name="id")
    Typed:     ``/{id:int}`` (is_param=True, param_name="id", param_type="int")
    Wildcard:  ``/*rest``    (is_param=True, is_wildcard=True, param_type="path")
    """

    value: str
    is_param: bool = False
    param_name: str | None = None
    param_type: str = "str"
    optional: bool = False
    is_wildcard: bool = False


@dataclass(frozen=True, slots=True)
class PathMatch:
    """Result of a successful pattern match.

    ``matched`` is the consumed portion of the path (the whole path in
    terminal mode, the mount prefix in prefix mode).
    """

    matched: str
    params: dict[str, str]


def _check_name(name: str, source: str) -> None:
    if not name.isidentifier():
        msg = f"Invalid parameter name {name!r} in route pattern {source!r}."
        raise ConfigurationError(msg)


def parse_pattern(source: str) -> list[PathSegment]:
    """Parse a route pattern string into segments.

    Examples::

        "/users"        -> [PathSegment("users")]
        "/users/:id"    -> [PathSegment("users"), PathSegment(":id", is_param=True, ...)]
        "/files/*"      -> [PathSegment("files"), PathSegment("*", is_wildcard=True, param_name="0")]

    Raises ``ConfigurationError`` for ``<param>`` segments, unknown
    converters, invalid names, or a name used twice.
    """
    segments: list[PathSegment] = []
    positional = 0
    for part in source.strip("/").split("/"):
        if not part:
            continue
        if part.startswith("<") and part.endswith(">"):
            msg = (
                f"Route pattern {source!r} uses <param> syntax. "
                "Use :param or {param} instead."
            )
            raise ConfigurationError(msg)

        if part.startswith("*"):
            name = part[1:]
            if name:
                _check_name(name, source)
            else:
                name = str(positional)
                positional += 1
            segment = PathSegment(
                value=part, is_param=True, param_name=name, param_type="path", is_wildcard=True
            )
        elif part.startswith(":"):
            name = part[1:]
            optional = name.endswith("?")
            if optional:
                name = name[:-1]
            _check_name(name, source)
            segment = PathSegment(value=part, is_param=True, param_name=name, optional=optional)
        elif part.startswith("{") and part.endswith("}"):
            name, _, param_type = part[1:-1].partition(":")
            param_type = param_type or "str"
            _check_name(name, source)
            if param_type not in CONVERTERS:
                msg = f"Unknown converter {param_type!r} in route pattern {source!r}."
                raise ConfigurationError(msg)
            segment = PathSegment(
                value=part,
                is_param=True,
                param_name=name,
                param_type=param_type,
                is_wildcard=param_type == "path",
            )
        else:
            segment = PathSegment(value=part)
        segments.append(segment)

    names = [s.param_name for s in segments if s.is_param]
    if len(names) != len(set(names)):
        msg = f"Duplicate parameter name in route pattern {source!r}."
        raise ConfigurationError(msg)
    return segments


def _segment_regex(segment: PathSegment) -> str:
    if not segment.is_param:
        return "/" + re.escape(segment.value)
    if segment.is_wildcard:
        return r"(?:/(.*))?"
    regex, _ = CONVERTERS[segment.param_type]
    if segment.optional:
        return f"(?:/({regex}))?"
    return f"/({regex})"


def _group_keys(regex: re.Pattern[str]) -> tuple[str, ...]:
    """Parameter keys for a user regex: group names, else positional indices."""
    names = {index: name for name, index in regex.groupindex.items()}
    keys: list[str] = []
    positional = 0
    for index in range(1, regex.groups + 1):
        if index in names:
            keys.append(names[index])
        else:
            keys.append(str(positional))
            positional += 1
    return tuple(keys)


class PathPattern:
    """A compiled route pattern.

    Usage::

        pattern = PathPattern("/users/:id")
        pattern.match("/users/42")   # PathMatch(matched="/users/42", params={"id": "42"})
        pattern.match("/users")      # None

        prefix = PathPattern("/api", end=False)
        prefix.match("/api/widgets") # PathMatch(matched="/api", params={})
    """

    __slots__ = ("_wildcards", "case_sensitive", "end", "keys", "regex", "source", "strict")

    def __init__(
        self,
        source: PatternSource,
        *,
        end: bool = True,
        strict: bool = False,
        case_sensitive: bool = True,
    ) -> None:
        self.source = source
        self.end = end
        self.strict = strict
        self.case_sensitive = case_sensitive

        if isinstance(source, re.Pattern):
            self.regex: re.Pattern[str] = source
            self.keys: tuple[str, ...] = _group_keys(source)
            self._wildcards: frozenset[str] = frozenset()
            return

        if not source:
            msg = "Route pattern must be a non-empty string."
            raise ConfigurationError(msg)
        if not source.startswith("/"):
            source = "/" + source

        segments = parse_pattern(source)
        body = "".join(_segment_regex(s) for s in segments)
        if not end:
            # Prefix mode consumes whole segments only
            body += r"(?=/|\Z)"
        elif not strict:
            body += "/?"
        elif source.endswith("/"):
            body += "/"

        self.regex = re.compile(body, 0 if case_sensitive else re.IGNORECASE)
        self.keys = tuple(s.param_name or "" for s in segments if s.is_param)
        self._wildcards = frozenset(s.param_name or "" for s in segments if s.is_wildcard)

    def match(self, path: str) -> PathMatch | None:
        """Test *path* and return the captured parameters, or None.

        Pure: the result depends only on the pattern and *path*.
        """
        found = self.regex.fullmatch(path) if self.end else self.regex.match(path)
        if found is None:
            return None
        if not self.end and not _ends_on_boundary(path, found.group(0)):
            # A prefix must cover whole segments
            return None
        params: dict[str, str] = {}
        for key, value in zip(self.keys, found.groups(), strict=True):
            if value is None:
                if key not in self._wildcards:
                    continue
                value = ""
            params[key] = value
        return PathMatch(matched=found.group(0), params=params)

    def __str__(self) -> str:
        if isinstance(self.source, re.Pattern):
            return self.source.pattern
        return self.source

    def __repr__(self) -> str:
        mode = "end" if self.end else "prefix"
        return f"PathPattern({str(self)!r}, {mode})"


def _ends_on_boundary(path: str, matched: str) -> bool:
    end = len(matched)
    return end == len(path) or matched.endswith("/") or path[end] == "/"


def remaining_path(path: str, matched: str) -> str:
    """Strip a consumed prefix from *path*; the result always starts with ``/``."""
    rest = path[len(matched):]
    if not rest.startswith("/"):
        rest = "/" + rest
    return rest


# Matches every path without consuming anything (used inside routes)
ANY_PATH = PathPattern("/", end=False)
