from typing import Iterator, ClassVar
from urllib.parse import unquote_plus
from ..utils.io import LineParser
from .model import (
	HTTPRequest,
	HTTPRequestLine,
	HTTPHeaders,
	HTTPBodyBlob,
	HTTPAtom,
	HTTPProcessingStatus,
	headername,
)


class MessageParser:
	"""Parses an HTTP request line."""

	__slots__ = ["line", "value"]

	def __init__(self) -> None:
		self.line: LineParser = LineParser()
		self.value: HTTPRequestLine | None = None

	def flush(self) -> HTTPRequestLine | None:
		res = self.value
		self.reset()
		return res

	def reset(self) -> "MessageParser":
		self.line.reset()
		self.value = None
		return self

	def feed(self, chunk: bytes, start: int = 0) -> tuple[bool | None, int]:
		"""Returns `True` when a request line was parsed, `False` when the
		line is malformed and `None` when more data is needed."""
		line, read = self.line.feed(chunk, start)
		if line is None:
			return (False if self.line.isOverflowing else None), read
		elif not line:
			# Stray CRLF between pipelined requests are tolerated
			return None, read
		else:
			ln = line.decode("latin-1")
			i = ln.find(" ")
			j = ln.rfind(" ")
			if i == -1 or i == j or not ln[j + 1 :].startswith("HTTP/"):
				return False, read
			p: list[str] = ln[i + 1 : j].split("?", 1)
			self.value = HTTPRequestLine(
				ln[0:i].upper(), p[0], p[1] if len(p) > 1 else "", ln[j + 1 :]
			)
			return True, read

	def __str__(self) -> str:
		return f"MessageParser({self.value})"


class HeadersParser:
	__slots__ = ["headers", "contentType", "contentLength", "line"]

	def __init__(self) -> None:
		self.line: LineParser = LineParser()
		self.headers: dict[str, str] = {}
		self.contentType: str | None = None
		self.contentLength: int | None = None

	def flush(self) -> HTTPHeaders:
		res = HTTPHeaders(self.headers, self.contentType, self.contentLength)
		self.reset()
		return res

	def reset(self) -> "HeadersParser":
		self.line.reset()
		self.headers = {}
		self.contentType = None
		self.contentLength = None
		return self

	def feed(self, chunk: bytes, start: int = 0) -> tuple[str | bool | None, int]:
		"""Feeds data from chunk, starting at `start` offset. Returns
		a value and the number of bytes read. The value is `None` when more
		data is needed, `True` once the empty line ending the headers is
		reached, or the normalized name of the header that was just parsed."""
		line, read = self.line.feed(chunk, start)
		if line is None:
			return None, read
		elif not line:
			return True, read
		else:
			ln: str = line.decode("latin-1")
			i = ln.find(":")
			if i == -1:
				# Malformed header lines are skipped
				return None, read
			h = ln[:i].lower().strip()
			v = ln[i + 1 :].strip()
			if h == "content-length":
				try:
					self.contentLength = int(v)
				except ValueError:
					self.contentLength = None
			elif h == "content-type":
				self.contentType = v
			n: str = headername(h)
			self.headers[n] = v
			return n, read

	def __str__(self) -> str:
		return f"HeadersParser({self.headers})"


class BodyLengthParser:
	"""Parses the body of a request with `Content-Length` set"""

	__slots__ = ["expected", "read", "data"]

	def __init__(self) -> None:
		self.expected: int = 0
		self.read: int = 0
		self.data: list[bytes] = []

	def flush(self) -> HTTPBodyBlob:
		res = HTTPBodyBlob(b"".join(self.data), self.read)
		self.reset()
		return res

	def reset(self, length: int = 0) -> "BodyLengthParser":
		self.expected = length
		self.read = 0
		self.data.clear()
		return self

	def feed(self, chunk: bytes, start: int = 0) -> tuple[bool | None, int]:
		to_read: int = min(len(chunk) - start, self.expected - self.read)
		self.data.append(chunk[start : start + to_read])
		self.read += to_read
		return (True if self.read >= self.expected else None), to_read


class HTTPParser:
	"""A stateful, incremental HTTP/1.1 request parser. Chunks are fed as
	they come from the socket, and the parser yields atoms (request lines,
	headers, processing status and complete requests)."""

	MAX_BODY: ClassVar[int] = 1_000_000

	def __init__(self) -> None:
		self.message: MessageParser = MessageParser()
		self.headers: HeadersParser = HeadersParser()
		self.bodyLength: BodyLengthParser = BodyLengthParser()
		self.parser: MessageParser | HeadersParser | BodyLengthParser = self.message
		self.requestLine: HTTPRequestLine | None = None
		self.requestHeaders: HTTPHeaders | None = None

	def reset(self) -> "HTTPParser":
		self.message.reset()
		self.headers.reset()
		self.bodyLength.reset()
		self.parser = self.message
		self.requestLine = None
		self.requestHeaders = None
		return self

	def request(self, body: HTTPBodyBlob) -> HTTPRequest:
		line = self.requestLine
		headers = self.requestHeaders
		assert line is not None
		return HTTPRequest(
			method=line.method,
			path=line.path,
			query=parseQuery(line.query),
			headers=headers or HTTPHeaders({}),
			protocol=line.protocol,
			body=body,
		)

	def feed(self, chunk: bytes) -> Iterator[HTTPAtom]:
		size: int = len(chunk)
		offset: int = 0
		while offset < size:
			# A partially consumed chunk is buffered by the underlying parser
			# until it's flushed, so it never needs to be re-fed.
			value, read = self.parser.feed(chunk, offset)
			offset += read
			if value is None:
				continue
			elif self.parser is self.message:
				line = self.message.flush()
				if value is False or line is None:
					yield HTTPProcessingStatus.BadFormat
					self.reset()
					return
				self.requestLine = line
				self.requestHeaders = None
				yield line
				self.parser = self.headers
			elif self.parser is self.headers:
				if value is not True:
					# A header was parsed, we keep going
					continue
				headers = self.headers.flush()
				self.requestHeaders = headers
				yield headers
				length: int = headers.contentLength or 0
				if length > self.MAX_BODY:
					yield HTTPProcessingStatus.BadFormat
					self.reset()
					return
				elif length <= 0:
					yield self.request(HTTPBodyBlob(b"", 0))
					self.parser = self.message.reset()
				else:
					self.parser = self.bodyLength.reset(length)
					yield HTTPProcessingStatus.Body
			elif self.parser is self.bodyLength:
				yield self.request(self.bodyLength.flush())
				self.parser = self.message.reset()
			else:
				raise RuntimeError(f"Unsupported parser: {self.parser}")


def parseQuery(text: str) -> dict[str, str]:
	res: dict[str, str] = {}
	if not text:
		return res
	for item in text.split("&"):
		if not item:
			continue
		kv = item.split("=", 1)
		if len(kv) == 1:
			res[unquote_plus(item)] = ""
		else:
			res[unquote_plus(kv[0])] = unquote_plus(kv[1])
	return res


# EOF
