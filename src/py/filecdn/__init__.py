from .http.model import (
    HTTPRequest,
    HTTPResponse,
    HTTPRequestError,
)  # NOQA: F401
from .decorators import on, post  # NOQA: F401
from .model import Application, Service, mount  # NOQA: F401
from .config import CDNConfig  # NOQA: F401
from .cdn import application, services  # NOQA: F401
from .server import run  # NOQA: F401

__version__ = "1.0.0"

# EOF
