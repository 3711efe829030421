import os
import stat as statmodule
from enum import Enum
from types import MappingProxyType
from typing import ClassVar, Mapping, NamedTuple

# -----------------------------------------------------------------------------
#
# ERRORS
#
# -----------------------------------------------------------------------------


class FileError(Exception):
	"""Base class of the errors raised when resolving, inspecting or reading
	a file under the root. Each error kind carries the HTTP status and the
	public error/message it is reported with. The `path` and `detail` are
	for server-side logs only."""

	STATUS: ClassVar[int] = 500
	ERROR: ClassVar[str] = "Internal server error"
	MESSAGE: ClassVar[str | None] = "Error reading file or directory"

	def __init__(
		self, path: str, detail: str | None = None, *, error: str | None = None
	):
		super().__init__(f"{self.ERROR}: {path}{f' ({detail})' if detail else ''}")
		self.path: str = path
		self.detail: str | None = detail
		self.error: str = error or self.ERROR

	@property
	def status(self) -> int:
		return self.STATUS

	@property
	def message(self) -> str | None:
		return self.MESSAGE

	@property
	def payload(self) -> dict[str, str]:
		res: dict[str, str] = {"error": self.error}
		if self.message:
			res["message"] = self.message
		return res


class AccessDenied(FileError):
	STATUS = 403
	ERROR = "Access denied"
	MESSAGE = "Path traversal detected"


class NotFound(FileError):
	STATUS = 404
	ERROR = "Not found"
	MESSAGE = "File or directory does not exist"


class WrongKind(FileError):
	STATUS = 400
	ERROR = "Path is not a file"
	MESSAGE = None


class IOFailure(FileError):
	STATUS = 500


# -----------------------------------------------------------------------------
#
# CLASSIFICATION
#
# -----------------------------------------------------------------------------


class Category(Enum):
	"""Coarse grouping of files, used for display only."""

	Video = "video"
	Audio = "audio"
	Image = "image"
	Document = "document"
	Archive = "archive"
	Web = "web"
	File = "file"


class ContentType(NamedTuple):
	category: Category
	mime: str


FALLBACK: ContentType = ContentType(Category.File, "application/octet-stream")


def _table(
	entries: dict[Category, dict[str, str]]
) -> Mapping[str, ContentType]:
	return MappingProxyType(
		{
			ext: ContentType(category, mime)
			for category, mimes in entries.items()
			for ext, mime in mimes.items()
		}
	)


# Keys are lowercased extensions without the dot
CONTENT_TYPES: Mapping[str, ContentType] = _table(
	{
		Category.Video: {
			"mp4": "video/mp4",
			"mov": "video/quicktime",
			"avi": "video/x-msvideo",
			"webm": "video/webm",
			"mkv": "video/x-matroska",
		},
		Category.Audio: {
			"mp3": "audio/mpeg",
			"wav": "audio/wav",
			"ogg": "audio/ogg",
			"m4a": "audio/mp4",
			"flac": "audio/flac",
		},
		Category.Image: {
			"jpg": "image/jpeg",
			"jpeg": "image/jpeg",
			"png": "image/png",
			"gif": "image/gif",
			"svg": "image/svg+xml",
			"webp": "image/webp",
			"ico": "image/x-icon",
		},
		Category.Document: {
			"pdf": "application/pdf",
			"txt": "text/plain",
			"csv": "text/csv",
			"doc": "application/msword",
			"docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
		},
		Category.Web: {
			"html": "text/html",
			"css": "text/css",
			"js": "application/javascript",
			"json": "application/json",
			"xml": "application/xml",
		},
		Category.Archive: {
			"zip": "application/zip",
			"tar": "application/x-tar",
			"gz": "application/gzip",
			"rar": "application/x-rar-compressed",
			"7z": "application/x-7z-compressed",
		},
	}
)


class TypeClassifier:
	"""Maps file names to a `(category, mime)` pair using an explicit
	extension table. The content of the file is never looked at."""

	def __init__(
		self,
		table: Mapping[str, ContentType] = CONTENT_TYPES,
		fallback: ContentType = FALLBACK,
	):
		self.table: Mapping[str, ContentType] = table
		self.fallback: ContentType = fallback

	@staticmethod
	def Extension(name: str) -> str | None:
		"""Returns the case-folded text after the last `.` of the base name,
		or `None` when there is no dot."""
		base: str = name.rsplit("/", 1)[-1]
		i: int = base.rfind(".")
		return None if i == -1 else base[i + 1 :].casefold()

	def classify(self, name: str) -> ContentType:
		ext = self.Extension(name)
		return self.table.get(ext, self.fallback) if ext else self.fallback

	def contentType(self, name: str) -> str:
		return self.classify(name).mime

	def category(self, name: str) -> Category:
		return self.classify(name).category


# -----------------------------------------------------------------------------
#
# FILESYSTEM
#
# -----------------------------------------------------------------------------


class FileKind(Enum):
	File = "file"
	Directory = "directory"
	# Sockets, pipes and devices are never served
	Other = "other"


class FileStat(NamedTuple):
	kind: FileKind
	size: int
	lastModified: float

	@property
	def isFile(self) -> bool:
		return self.kind is FileKind.File

	@property
	def isDirectory(self) -> bool:
		return self.kind is FileKind.Directory


def fstat(path: str | os.PathLike[str]) -> FileStat:
	"""Stats the given path, following symlinks, raising `NotFound` when
	it does not exist and `IOFailure` on any other error."""
	try:
		st = os.stat(path)
	except (FileNotFoundError, NotADirectoryError) as e:
		raise NotFound(os.fspath(path)) from e
	except OSError as e:
		raise IOFailure(os.fspath(path), str(e)) from e
	mode: int = st.st_mode
	kind: FileKind = (
		FileKind.Directory
		if statmodule.S_ISDIR(mode)
		else FileKind.File
		if statmodule.S_ISREG(mode)
		else FileKind.Other
	)
	return FileStat(kind, st.st_size if kind is FileKind.File else 0, st.st_mtime)


def readBytes(path: str | os.PathLike[str]) -> bytes:
	"""Reads the whole file in memory."""
	try:
		with open(path, "rb") as f:
			return f.read()
	except (FileNotFoundError, NotADirectoryError) as e:
		raise NotFound(os.fspath(path)) from e
	except IsADirectoryError as e:
		raise WrongKind(os.fspath(path)) from e
	except OSError as e:
		raise IOFailure(os.fspath(path), str(e)) from e


SIZE_UNITS: tuple[str, ...] = ("B", "KB", "MB", "GB", "TB")


def formatSize(size: int) -> str:
	"""Formats a byte count with base-1024 units, keeping at most two
	decimals: `0 B`, `13 B`, `1.5 KB`, `2 MB`."""
	if size <= 0:
		return "0 B"
	value: float = float(size)
	unit: int = 0
	while value >= 1024 and unit < len(SIZE_UNITS) - 1:
		value /= 1024
		unit += 1
	return f"{value:.2f}".rstrip("0").rstrip(".") + f" {SIZE_UNITS[unit]}"


# EOF
