import asyncio
from typing import Any, Coroutine, TypeVar

from ..http.model import HTTPProcessingStatus, HTTPRequest, HTTPResponse
from ..http.parser import HTTPParser, parseQuery
from ..model import Application, Service, mount

T = TypeVar("T")


class Bridge:
	"""Processes requests against an application in-process, without any
	socket. Responses are returned the way the server would send them, ie.
	without a body for `HEAD` requests."""

	def __init__(self, application: Application):
		self.application: Application = application
		if not self.application:
			raise ValueError("Bridge has not been given an application")

	def run(self, coroutine: Coroutine[Any, Any, T]) -> T:
		return asyncio.run(coroutine)

	def start(self) -> "Bridge":
		if not self.application.isStarted:
			self.run(self.application.start())
		return self

	def stop(self) -> "Bridge":
		if self.application.isStarted:
			self.run(self.application.stop())
		return self

	def process(self, request: HTTPRequest) -> HTTPResponse:
		self.start()
		response: HTTPResponse = self.run(self.application.process(request))
		if request.isHead:
			response.body = None
		return response

	def request(
		self,
		method: str = "GET",
		path: str = "/",
		headers: dict[str, str] | None = None,
	) -> HTTPResponse:
		"""Processes a request for `path`, which may have a query string."""
		uri, _, query = path.partition("?")
		return self.process(
			HTTPRequest.Create(method, uri, parseQuery(query), headers)
		)

	def get(self, path: str, headers: dict[str, str] | None = None) -> HTTPResponse:
		return self.request("GET", path, headers)

	def head(self, path: str, headers: dict[str, str] | None = None) -> HTTPResponse:
		return self.request("HEAD", path, headers)

	def requestBytes(self, data: bytes) -> list[HTTPResponse]:
		"""Parses the raw HTTP requests in `data` and processes each of
		them, a malformed request yielding a `400` and ending the batch."""
		res: list[HTTPResponse] = []
		for atom in HTTPParser().feed(data):
			if atom is HTTPProcessingStatus.BadFormat:
				res.append(HTTPRequest.Create().badRequest(message="Malformed request"))
				break
			elif isinstance(atom, HTTPRequest):
				res.append(self.process(atom))
		return res


def bridge(*components: Application | Service) -> Bridge:
	"""Mounts the components in an application and returns its bridge."""
	return Bridge(mount(*components))


# EOF
