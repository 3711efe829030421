import os
import posixpath
from pathlib import Path
from typing import Iterable
from urllib.parse import unquote

from .files import AccessDenied, IOFailure
from .logging import warning


class PathResolver:
	"""Confines untrusted request paths to a fixed root directory.

	Segments are joined onto the root and the result is canonicalized
	(`..` collapsed, symlinks followed) before being checked against the
	root. Only the canonical form is ever compared, and the check happens
	before anything probes for the file's existence, so that requests for
	paths outside the root can't tell whether these exist or not."""

	def __init__(self, root: str | os.PathLike[str]):
		self.root: Path = Path(os.path.realpath(os.fspath(root)))
		# `os.path.join(root, "")` adds the trailing separator, except
		# when the root already ends with one (ie. `/`).
		self.prefix: str = os.path.join(str(self.root), "")

	@staticmethod
	def Segments(path: str) -> list[str]:
		"""Splits a URL path into percent-decoded segments, dropping the
		empty ones. Bytes that aren't valid UTF-8 decode the way `os`
		decodes file names."""
		return [unquote(_, errors="surrogateescape") for _ in path.split("/") if _]

	def contains(self, path: str | os.PathLike[str]) -> bool:
		p: str = os.fspath(path)
		return p == str(self.root) or p.startswith(self.prefix)

	def resolve(self, segments: Iterable[str] = ()) -> Path:
		"""Returns the canonical path of the segments relative to the root,
		raising `AccessDenied` when it falls outside the root."""
		parts: list[str] = list(segments)
		if any("\x00" in _ for _ in parts):
			raise AccessDenied("/".join(parts).replace("\x00", "\\0"), "NUL byte")
		try:
			joined: str = os.path.join(str(self.root), *parts)
			resolved: str = os.path.realpath(joined)
		except ValueError as e:
			# Embedded NUL bytes and the like
			raise AccessDenied("/".join(parts), str(e)) from e
		except OSError as e:
			raise IOFailure("/".join(parts), str(e)) from e
		if not self.contains(resolved):
			warning(
				"Request path escapes the root",
				Path="/".join(parts),
				Resolved=resolved,
			)
			raise AccessDenied("/".join(parts), resolved)
		return Path(resolved)

	def resolvePath(self, path: str) -> Path:
		"""Resolves a URL path, see `Segments` and `resolve`."""
		return self.resolve(self.Segments(path))

	def relative(self, path: str | os.PathLike[str]) -> str:
		"""Returns the `/`-separated path of a resolved path relative to
		the root, the root itself being the empty string."""
		rel: str = os.path.relpath(os.fspath(path), str(self.root))
		if rel == os.curdir:
			return ""
		return posixpath.join(*rel.split(os.sep))

	def __repr__(self) -> str:
		return f"(PathResolver {self.root})"


# EOF
