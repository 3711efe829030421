import locale
import os
from pathlib import Path
from typing import Any, Iterator, NamedTuple
from urllib.parse import quote

from .files import (
	AccessDenied,
	FileStat,
	IOFailure,
	NotFound,
	TypeClassifier,
	fstat,
	formatSize,
)
from .logging import debug, warning
from .paths import PathResolver
from .primitives import isoformat

# Default cap of the recursive walk
WALK_DEPTH: int = 10


def displayName(name: str) -> str:
	"""Returns the printable form of a file system name, where the bytes
	that aren't valid UTF-8 are replaced by `U+FFFD`."""
	return os.fsencode(name).decode("utf8", "replace")


def useSystemCollation() -> bool:
	"""Makes `SortKey` follow the collation of the environment's locale
	(`LC_ALL`, `LC_COLLATE` or `LANG`). Names otherwise sort by code
	point."""
	try:
		locale.setlocale(locale.LC_COLLATE, "")
	except locale.Error as e:
		warning("Locale collation unavailable, sorting by code point", Reason=str(e))
		return False
	return True


class FileEntry(NamedTuple):
	"""Metadata for one file or directory, computed from a `stat` call."""

	name: str
	path: str
	url: str
	isDirectory: bool
	type: str
	lastModified: str
	size: int | None = None
	category: str | None = None

	def asPrimitive(self) -> dict[str, Any]:
		res: dict[str, Any] = {
			"name": self.name,
			"path": self.path,
			"url": self.url,
		}
		if not self.isDirectory:
			res["size"] = self.size or 0
			res["sizeFormatted"] = formatSize(self.size or 0)
			res["category"] = self.category
		res["type"] = self.type
		res["isDirectory"] = self.isDirectory
		res["lastModified"] = self.lastModified
		return res


class DirectoryLister:
	"""Produces `FileEntry` values for the files and directories under
	the resolver's root. Directories link to the listing endpoint and files
	to the raw delivery endpoint, both prefixed with `baseURL`."""

	def __init__(
		self,
		resolver: PathResolver,
		classifier: TypeClassifier,
		*,
		baseURL: str = "",
		filesPath: str = "/files",
		listingPath: str = "/api/json/files",
		depth: int = WALK_DEPTH,
	):
		self.resolver: PathResolver = resolver
		self.classifier: TypeClassifier = classifier
		self.baseURL: str = baseURL.rstrip("/")
		self.filesPath: str = filesPath.rstrip("/")
		self.listingPath: str = listingPath.rstrip("/")
		self.depth: int = depth

	@staticmethod
	def SortKey(entry: FileEntry) -> tuple[bool, str, str]:
		"""Directories first, then by locale-aware name order. The raw
		name breaks ties so that the order is total."""
		return (not entry.isDirectory, locale.strxfrm(entry.name.casefold()), entry.name)

	def url(self, path: str, isDirectory: bool) -> str:
		base: str = self.listingPath if isDirectory else self.filesPath
		# Encodes the original bytes, so that names that are not valid
		# UTF-8 still resolve when requested.
		return f"{self.baseURL}{base}/{quote(os.fsencode(path), safe='/')}"

	def entry(self, path: str, stat: FileStat) -> FileEntry:
		"""Creates the entry for the given root-relative `path`."""
		name: str = path.rsplit("/", 1)[-1] if path else "root"
		if stat.isDirectory:
			return FileEntry(
				name=displayName(name),
				path=displayName(path),
				url=self.url(path, True),
				isDirectory=True,
				type="directory",
				lastModified=isoformat(stat.lastModified),
			)
		else:
			content_type = self.classifier.classify(name)
			return FileEntry(
				name=displayName(name),
				path=displayName(path),
				url=self.url(path, False),
				isDirectory=False,
				type=content_type.mime,
				lastModified=isoformat(stat.lastModified),
				size=stat.size,
				category=content_type.category.value,
			)

	def children(self, directory: Path) -> Iterator[tuple[FileEntry, Path]]:
		"""Yields the entries of the immediate children of `directory` (a
		resolved path) along with their resolved paths, unsorted. Children
		that resolve outside of the root, that vanished or that aren't
		regular files or directories are skipped."""
		parent: list[str] = [_ for _ in self.resolver.relative(directory).split("/") if _]
		try:
			names: list[str] = os.listdir(directory)
		except (FileNotFoundError, NotADirectoryError) as e:
			raise NotFound(str(directory)) from e
		except OSError as e:
			raise IOFailure(str(directory), str(e)) from e
		for name in names:
			try:
				resolved = self.resolver.resolve([*parent, name])
			except AccessDenied:
				debug("Skipping entry outside of root", Name=name)
				continue
			try:
				stat = fstat(resolved)
			except NotFound:
				warning("Skipping entry that can't be found", Name=name)
				continue
			if not (stat.isFile or stat.isDirectory):
				continue
			yield self.entry("/".join([*parent, name]), stat), resolved

	def list(self, directory: Path) -> list[FileEntry]:
		"""Returns the sorted entries of the immediate children of the
		resolved `directory`."""
		return sorted((_ for _, __ in self.children(directory)), key=self.SortKey)

	def walk(
		self, directory: Path | None = None, depth: int | None = None
	) -> Iterator[FileEntry]:
		"""Recursively yields the file entries under `directory` (the root by
		default), in listing order. Recursion stops `depth` levels below
		the directory and never enters the same canonical directory twice,
		which guards against symlink cycles."""
		visited: set[Path] = set()
		yield from self._walk(
			directory or self.resolver.root,
			self.depth if depth is None else depth,
			visited,
		)

	def _walk(
		self, directory: Path, depth: int, visited: set[Path]
	) -> Iterator[FileEntry]:
		if directory in visited:
			return
		visited.add(directory)
		children = sorted(self.children(directory), key=lambda _: self.SortKey(_[0]))
		for entry, resolved in children:
			if not entry.isDirectory:
				yield entry
			elif depth > 0:
				yield from self._walk(resolved, depth - 1, visited)


# EOF
