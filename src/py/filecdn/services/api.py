from ..decorators import on
from ..features.cors import cors
from ..http.model import HTTPRequest, HTTPResponse
from ..utils.files import FileError, WrongKind, fstat
from ..utils.listing import DirectoryLister
from .base import RootService


class MetadataService(RootService):
	"""Returns JSON metadata for files, and listings for directories."""

	def __init__(self, lister: DirectoryLister, *, name: str | None = None):
		super().__init__(lister.resolver, lister.classifier, name=name)
		self.lister: DirectoryLister = lister

	@cors
	@on(GET_HEAD=("/api/json/files", "/api/json/files/{path:any}"))
	def metadata(self, request: HTTPRequest, path: str = "") -> HTTPResponse:
		try:
			local_path = self.resolver.resolvePath(path)
			stat = fstat(local_path)
			entry = self.lister.entry(self.resolver.relative(local_path), stat)
			if stat.isDirectory:
				return request.returns(
					{
						"name": entry.name,
						"path": entry.path,
						"url": entry.url,
						"isDirectory": True,
						"files": self.lister.list(local_path),
					}
				)
			elif stat.isFile:
				return request.returns(entry)
			else:
				raise WrongKind(path, error="Unsupported file type")
		except FileError as e:
			return self.failed(request, e)

	@cors
	@on(OPTIONS=("/api/json/files", "/api/json/files/{path:any}"))
	def preflight(self, request: HTTPRequest, path: str = "") -> HTTPResponse:
		return request.empty()


# EOF
