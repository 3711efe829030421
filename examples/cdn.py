"""
Embedded CDN Example

This mounts the CDN services next to a custom service in one application.
Features shown:
- Composing the CDN from a `CDNConfig`
- Adding a service with its own routes
- Running the embedded server

Usage:
    python cdn.py [ROOT]

Test with:
    curl http://localhost:8000/api/json/files
    curl http://localhost:8000/health
"""

import sys
from pathlib import Path

from filecdn import CDNConfig, HTTPRequest, HTTPResponse, Service, on, run, services
from filecdn.utils.logging import info


class HealthService(Service):
	def __init__(self, root: Path):
		super().__init__()
		self.root = root

	@on(GET_HEAD="/health")
	def health(self, request: HTTPRequest) -> HTTPResponse:
		return request.returns({"status": "ok", "root": self.root.is_dir()})


if __name__ == "__main__":
	config = CDNConfig(root=Path(sys.argv[1] if len(sys.argv) > 1 else "."))
	info("Starting embedded CDN", Root=str(config.root))
	run(*services(config), HealthService(config.root), port=config.port)

# EOF
