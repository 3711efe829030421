from typing import (
    Any,
    Callable,
    ClassVar,
    NamedTuple,
    Optional,
    Pattern,
)
from inspect import iscoroutine
import re

from .decorators import Transform, Meta
from .http.model import HTTPRequest, HTTPRequestError, HTTPResponse
from .utils.logging import debug, exception


async def awaited(value: Any) -> Any:
    return (await value) if iscoroutine(value) else value


# -----------------------------------------------------------------------------
#
# ROUTE
#
# -----------------------------------------------------------------------------
#
# A route is a URL template like `/files/{path:any}`, compiled to a regular
# expression where each `{name:pattern}` placeholder becomes a named group.


class RoutePattern(NamedTuple):
    """The expression a placeholder matches, and the function converting
    the matched text to the parameter value."""

    expr: str
    convert: Callable[[str], Any]


class TextChunk(NamedTuple):
    """Literal text, stored escaped."""

    text: str


class ParameterChunk(NamedTuple):
    name: str
    pattern: RoutePattern


TChunk = TextChunk | ParameterChunk


class Route:
    """A template matched against request paths. Placeholders are written
    `{name}` (the name then doubles as the pattern name) or `{name:pattern}`,
    where the pattern is either one of `PATTERNS` or a regular expression."""

    RE_PLACEHOLDER: ClassVar[Pattern[str]] = re.compile(
        r"\{(?P<name>[A-Za-z_]\w*)(?::(?P<pattern>[^}]+))?\}"
    )
    RE_WORD: ClassVar[Pattern[str]] = re.compile(r"^[A-Za-z]+$")

    PATTERNS: ClassVar[dict[str, RoutePattern]] = {
        # One path segment
        "segment": RoutePattern(r"[^/]+", str),
        "id": RoutePattern(r"[A-Za-z0-9_\-]+", str),
        "int": RoutePattern(r"-?\d+", int),
        # What remains of the path, possibly empty
        "any": RoutePattern(r".*", str),
        "rest": RoutePattern(r".+", str),
    }

    @classmethod
    def Parse(cls, template: str) -> list[TChunk]:
        """Splits the template into text and parameter chunks."""
        chunks: list[TChunk] = []
        end: int = 0
        for m in cls.RE_PLACEHOLDER.finditer(template):
            chunks.append(TextChunk(re.escape(template[end : m.start()])))
            name: str = m.group("name")
            key: str = m.group("pattern") or name
            if key.lower() in cls.PATTERNS:
                pattern = cls.PATTERNS[key.lower()]
            elif cls.RE_WORD.match(key):
                raise ValueError(
                    f"Unknown route pattern '{key}', expected one of: {', '.join(sorted(cls.PATTERNS))}"
                )
            else:
                pattern = RoutePattern(key, str)
            chunks.append(ParameterChunk(name, pattern))
            end = m.end()
        chunks.append(TextChunk(re.escape(template[end:])))
        return chunks

    def __init__(self, text: str, handler: Optional["Handler"] = None):
        self.text: str = text
        self.handler: Handler | None = handler
        self.chunks: list[TChunk] = self.Parse(text)
        self.params: dict[str, RoutePattern] = {
            _.name: _.pattern for _ in self.chunks if isinstance(_, ParameterChunk)
        }
        try:
            self.regexp: Pattern[str] = re.compile(f"^{self.toRegExp()}$")
        except re.error as e:
            raise ValueError(f"Malformed route {text!r}: {e}") from e

    @property
    def priority(self) -> int:
        return self.handler.priority if self.handler else 0

    @property
    def pattern(self) -> str:
        return self.regexp.pattern

    def toRegExp(self) -> str:
        return "".join(
            _.text
            if isinstance(_, TextChunk)
            else f"(?P<{_.name}>{_.pattern.expr})"
            for _ in self.chunks
        )

    def match(self, path: str) -> dict[str, Any] | None:
        """Returns the converted parameters when `path` matches, `None`
        otherwise."""
        m = self.regexp.match(path)
        if not m:
            return None
        return {k: p.convert(m.group(k)) for k, p in self.params.items()}

    def __repr__(self) -> str:
        return f"(Route {self.text!r} {self.priority})"


# -----------------------------------------------------------------------------
#
# HANDLER
#
# -----------------------------------------------------------------------------


class Handler:
    """Wraps a function annotated with `@on`, along with the post transforms
    set by `@post` decorators."""

    @staticmethod
    def Has(value: Any) -> bool:
        return hasattr(value, Meta.ON)

    @staticmethod
    def Get(value: Any) -> Optional["Handler"]:
        """Returns the handler for the given (annotated) function, if any."""
        if not Handler.Has(value):
            return None
        return Handler(
            functor=value,
            methods=getattr(value, Meta.ON),
            priority=getattr(value, Meta.ON_PRIORITY, 0),
            post=getattr(value, Meta.POST, None),
        )

    def __init__(
        self,
        functor: Callable[..., Any],
        methods: list[tuple[str, str]],
        priority: int = 0,
        post: list[Transform] | None = None,
    ):
        self.functor = functor
        self.priority: int = priority
        self.post: list[Transform] = post or []
        self.methods: dict[str, list[str]] = {}
        for method, path in methods:
            self.methods.setdefault(method, []).append(path)

    async def __call__(
        self, request: HTTPRequest, params: dict[str, Any]
    ) -> HTTPResponse:
        """Runs the function and then the post transforms. Request errors
        become error responses and other exceptions a logged `500`."""
        try:
            response: HTTPResponse = await awaited(self.functor(request, **params))
        except HTTPRequestError as e:
            response = request.error(e.status or 500, e.message)
        except Exception as e:
            exception(e, f"Handler failed on {request.method} {request.path}")
            response = request.fail()
        for t in self.post:
            response = t.transform(request, response, *t.args, **t.kwargs) or response
        return response

    def __repr__(self) -> str:
        return f"(Handler {self.functor.__name__} {self.methods})"


# -----------------------------------------------------------------------------
#
# DISPATCHER
#
# -----------------------------------------------------------------------------


class Dispatcher:
    """Indexes routes by HTTP method and finds the one matching a
    request."""

    def __init__(self) -> None:
        self.routes: dict[str, list[Route]] = {}
        self.isPrepared: bool = True

    def register(self, handler: Handler, prefix: str | None = None) -> "Dispatcher":
        for method, paths in handler.methods.items():
            for path in paths:
                path = f"{prefix or ''}{path}"
                if not path.startswith("/"):
                    path = f"/{path}"
                debug("Registered route", Method=method, Path=path)
                self.routes.setdefault(method, []).append(Route(path, handler))
        self.isPrepared = False
        return self

    def prepare(self) -> "Dispatcher":
        """Orders the routes by decreasing priority, and then by pattern so
        that the order does not depend on registration."""
        for routes in self.routes.values():
            routes.sort(key=lambda _: (-_.priority, _.pattern))
        self.isPrepared = True
        return self

    def methods(self, path: str) -> list[str]:
        """Lists the methods for which a route matches `path`."""
        return sorted(
            method
            for method, routes in self.routes.items()
            if any(_.match(path) is not None for _ in routes)
        )

    def match(
        self, method: str, path: str
    ) -> tuple[Route | None, dict[str, Any] | None]:
        """Returns the first route for `method` matching `path` along with
        its parameters, or `(None, None)`."""
        if not self.isPrepared:
            self.prepare()
        for route in self.routes.get(method, ()):
            params = route.match(path)
            if params is not None:
                return route, params
        return None, None


# EOF
