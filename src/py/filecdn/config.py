from os import getenv
from pathlib import Path
from typing import NamedTuple

# --
# Configuration is read from the environment once, and can then be
# overridden from the command line (see `__main__`).

PORT: int = int(getenv("PORT", 8000))

# We want the server to be reachable from everywhere by default
HOST: str = getenv("HOST", "0.0.0.0")  # nosec: B104

ROOT: str = getenv("CDN_ROOT", "public/files")

# Prefix of the URLs generated in listings, like `https://cdn.example.com`
PUBLIC_URL: str = getenv("CDN_PUBLIC_URL", "")

WALK_DEPTH: int = int(getenv("CDN_WALK_DEPTH", 10))

LOG_REQUESTS: bool = getenv("CDN_LOG_REQUESTS", "1") == "1"

LOG_LEVEL: str = getenv("CDN_LOG_LEVEL", "info")


class CDNConfig(NamedTuple):
	root: Path = Path(ROOT)
	host: str = HOST
	port: int = PORT
	publicURL: str = PUBLIC_URL
	depth: int = WALK_DEPTH
	logRequests: bool = LOG_REQUESTS
	logLevel: str = LOG_LEVEL


# EOF
