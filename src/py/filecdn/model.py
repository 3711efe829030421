from typing import ClassVar, Iterable, Iterator, Optional

from .routing import Handler, Dispatcher
from .http.model import HTTPRequest, HTTPResponse
from .utils.logging import info, exception

# -----------------------------------------------------------------------------
#
# SERVICE
#
# -----------------------------------------------------------------------------


class Service:
    """A set of request handlers (the methods decorated with `@on`) mounted
    together in an application, their routes being optionally prefixed."""

    PREFIX: ClassVar[str] = ""
    # Attributes that are never handlers, `handlers` would recurse
    NOT_HANDLERS: ClassVar[frozenset[str]] = frozenset(
        ("app", "handlers", "isMounted", "name", "prefix", "start", "stop")
    )

    def __init__(
        self, name: Optional[str] = None, *, prefix: str | None = None
    ) -> None:
        self.name: str = name or self.__class__.__name__
        self.prefix: str = prefix or self.PREFIX
        self.app: Optional[Application] = None
        self._handlers: Optional[list[Handler]] = None

    async def start(self) -> None:
        """Called when the application starts, before any request."""

    async def stop(self) -> None:
        """Called when the application stops."""

    @property
    def isMounted(self) -> bool:
        return self.app is not None

    @property
    def handlers(self) -> list[Handler]:
        if self._handlers is None:
            self._handlers = list(self.iterHandlers())
        return self._handlers

    def iterHandlers(self) -> Iterator[Handler]:
        for attr in dir(self):
            if attr.startswith("_") or attr in self.NOT_HANDLERS:
                continue
            handler = Handler.Get(getattr(self, attr))
            if handler:
                yield handler

    def __repr__(self) -> str:
        return f"(Service {self.name}{' :mounted' if self.isMounted else ''})"


# -----------------------------------------------------------------------------
#
# APPLICATION
#
# -----------------------------------------------------------------------------


class Application:
    """Dispatches requests to the handlers of its mounted services."""

    def __init__(self, services: Iterable[Service] = ()) -> None:
        self.dispatcher: Dispatcher = Dispatcher()
        self.services: list[Service] = []
        self.isStarted: bool = False
        for service in services:
            self.mount(service)

    def mount(self, service: Service, prefix: Optional[str] = None) -> Service:
        if service.isMounted:
            raise RuntimeError(f"Service is already mounted: {service}")
        for handler in service.handlers:
            self.dispatcher.register(handler, prefix or service.prefix)
        service.app = self
        self.services.append(service)
        return service

    async def start(self) -> "Application":
        self.dispatcher.prepare()
        for service in self.services:
            try:
                await service.start()
            except Exception as e:
                raise exception(e, f"Could not start {service}")
        self.isStarted = True
        return self

    async def stop(self) -> "Application":
        for service in self.services:
            try:
                await service.stop()
            except Exception as e:
                raise exception(e, f"Could not stop {service}")
        self.isStarted = False
        return self

    async def process(self, request: HTTPRequest) -> HTTPResponse:
        route, params = self.dispatcher.match(request.method, request.path or "/")
        if route and route.handler:
            return await route.handler(request, params or {})
        else:
            return self.onRouteNotFound(request)

    def onRouteNotFound(self, request: HTTPRequest) -> HTTPResponse:
        """Responds with a `405` when the path is routed for other methods,
        and a `404` otherwise."""
        allowed: list[str] = self.dispatcher.methods(request.path or "/")
        if allowed:
            return request.notAllowed(allowed)
        info("No route found", Method=request.method, Path=request.path)
        return request.notFound(message="No route matches the request path")


def mount(*components: Application | Service) -> Application:
    """Mounts the given services in the first given application, or in a
    new one."""
    apps: list[Application] = [_ for _ in components if isinstance(_, Application)]
    app: Application = apps[0] if apps else Application()
    for item in components:
        if isinstance(item, Service):
            if item.app is not app:
                app.mount(item)
        elif not isinstance(item, Application):
            raise RuntimeError(f"Unsupported component type {type(item)}: {item}")
    return app


# EOF
