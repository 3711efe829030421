from ..decorators import on
from ..features.cors import cors
from ..http.model import HTTPRequest, HTTPResponse
from ..utils.files import FileError, WrongKind, fstat, readBytes
from .base import RootService

# Content at a given path is assumed to never change once published
CACHE_CONTROL: str = "public, max-age=31536000, immutable"


class FileService(RootService):
	"""Delivers the raw content of the files under the root. Directories
	are not listed here, see `MetadataService`."""

	@cors
	@on(GET_HEAD=("/files", "/files/{path:any}"))
	def read(self, request: HTTPRequest, path: str = "") -> HTTPResponse:
		try:
			local_path = self.resolver.resolvePath(path)
			stat = fstat(local_path)
			if not stat.isFile:
				raise WrongKind(path)
			headers: dict[str, str] = {
				"Cache-Control": CACHE_CONTROL,
				"X-Content-Type-Options": "nosniff",
			}
			content_type: str = self.classifier.contentType(local_path.name)
			if request.isHead:
				return request.respond(
					contentType=content_type,
					contentLength=stat.size,
					headers=headers,
				)
			else:
				return request.respondBytes(
					readBytes(local_path), content_type, headers=headers
				)
		except FileError as e:
			return self.failed(request, e)

	@cors
	@on(OPTIONS=("/files", "/files/{path:any}"))
	def preflight(self, request: HTTPRequest, path: str = "") -> HTTPResponse:
		return request.empty()


# EOF
