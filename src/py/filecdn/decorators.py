from typing import Any, Callable, NamedTuple, TypeVar, Union, cast

from .http.model import HTTPRequest, HTTPResponse

T = TypeVar("T")


class Transform(NamedTuple):
    """A function applied after a request handler, with the
    extra arguments it is given."""

    transform: Callable[..., Any]
    args: tuple[Any, ...]
    kwargs: dict[str, Any]


class Meta:
    """Names of the attributes set on handler functions by the decorators."""

    ON: str = "_cdn_on"
    ON_PRIORITY: str = "_cdn_on_priority"
    POST: str = "_cdn_post"

    @staticmethod
    def Get(function: Any) -> dict[str, Any]:
        if not hasattr(function, "__dict__"):
            raise RuntimeError(f"Metadata cannot be attached to object: {function}")
        return cast(dict[str, Any], function.__dict__)


def on(
    priority: int = 0, **methods: Union[str, list[str], tuple[str, ...]]
) -> Callable[[T], T]:
    """Binds the decorated method to one or more HTTP methods and URL
    patterns, so that it is used to process the matching requests.

    Keyword arguments name the HTTP methods, joined with `_` when a
    pattern is shared, and take one pattern or a list/tuple of patterns
    (see `Route`):

    >    @on(GET_HEAD=("/files", "/files/{path:any}"))

    implies a method like

    >    def read(self, request, path="") -> HTTPResponse:
    >        return request.respond(...)

    Routes with a higher priority win when more than one matches."""

    def decorator(function: T) -> T:
        meta = Meta.Get(function)
        bindings = meta.setdefault(Meta.ON, [])
        meta.setdefault(Meta.ON_PRIORITY, priority)
        for names, urls in methods.items():
            for method in names.upper().split("_"):
                for url in (urls,) if isinstance(urls, str) else urls:
                    bindings.append((method, url))
        return function

    return decorator


def post(
    transform: Callable[[HTTPRequest, HTTPResponse], HTTPResponse]
) -> Callable[[T], T]:
    """Registers the given `transform` as a post-processing step of the
    decorated function. The transform receives `(request, response)` and
    returns the response to send."""

    def decorator(function: T, *args: Any, **kwargs: Any) -> T:
        Meta.Get(function).setdefault(Meta.POST, []).append(
            Transform(transform, args, kwargs)
        )
        return function

    return decorator


# EOF
