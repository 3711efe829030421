from ..model import Service
from ..http.model import HTTPRequest, HTTPResponse
from ..utils.files import AccessDenied, FileError, TypeClassifier
from ..utils.logging import error, info, warning
from ..utils.paths import PathResolver


class RootService(Service):
	"""Base for the services exposing the files under a resolver's root."""

	def __init__(
		self,
		resolver: PathResolver,
		classifier: TypeClassifier | None = None,
		*,
		name: str | None = None,
		prefix: str | None = None,
	):
		super().__init__(name, prefix=prefix)
		self.resolver: PathResolver = resolver
		self.classifier: TypeClassifier = classifier or TypeClassifier()

	def failed(self, request: HTTPRequest, failure: FileError) -> HTTPResponse:
		"""Translates a file error into its JSON error response. Server-side
		failures are logged with their detail, which never ends up in the
		response."""
		if failure.status >= 500:
			error(
				"Could not access file",
				"IOFAILURE",
				Path=failure.path,
				Detail=failure.detail,
			)
		elif isinstance(failure, AccessDenied):
			warning("Access denied", Method=request.method, Path=request.path)
		else:
			info(failure.error, Method=request.method, Path=request.path)
		return request.error(failure.status, failure.error, failure.message)


# EOF
