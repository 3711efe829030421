from abc import ABC, abstractmethod
from typing import Any, Generic, Iterator, TypeVar

from ..utils.json import json
from .status import HTTP_STATUS

T = TypeVar("T")

# -----------------------------------------------------------------------------
#
# API
#
# -----------------------------------------------------------------------------

# --
# == HTTP Request Response API
#
# Defines the high level API functions (orthogonal to the underlying model)
# to create responses from a request. Error responses are JSON documents
# shaped like `{"error": …, "message": …}`.


class ResponseFactory(ABC, Generic[T]):
	@abstractmethod
	def respond(
		self,
		content: Any = None,
		contentType: str | None = None,
		contentLength: int | None = None,
		status: int = 200,
		headers: dict[str, str] | None = None,
		message: str | None = None,
	) -> T: ...

	def empty(
		self,
		status: int = 200,
		headers: dict[str, str] | None = None,
	) -> T:
		return self.respond(
			content=None,
			contentType=None,
			status=status,
			headers=headers,
		)

	def error(
		self,
		status: int,
		error: str | None = None,
		message: str | None = None,
		headers: dict[str, str] | None = None,
	) -> T:
		"""Returns a JSON error document with the given status."""
		payload: dict[str, str] = {
			"error": error or HTTP_STATUS.get(status, "Server Error")
		}
		if message:
			payload["message"] = message
		return self.returns(payload, headers, status=status)

	def badRequest(
		self, error: str = "Bad request", message: str | None = None
	) -> T:
		return self.error(400, error, message)

	def notFound(
		self, error: str = "Not found", message: str | None = None
	) -> T:
		return self.error(404, error, message)

	def notAllowed(self, allowed: list[str]) -> T:
		return self.error(
			405,
			"Method not allowed",
			headers={"Allow": ", ".join(allowed)},
		)

	def fail(
		self,
		error: str = "Internal server error",
		message: str | None = None,
		*,
		status: int = 500,
	) -> T:
		return self.error(status, error, message)

	def returns(
		self,
		value: Any,
		headers: dict[str, str] | None = None,
		*,
		status: int = 200,
		contentType: str = "application/json",
	) -> T:
		payload: bytes = json(value)
		return self.respond(
			payload,
			contentType=contentType,
			contentLength=len(payload),
			headers=headers,
			status=status,
		)

	def respondText(
		self,
		content: str | bytes,
		contentType: str = "text/plain",
		status: int = 200,
	) -> T:
		return self.respond(content=content, contentType=contentType, status=status)

	def respondHTML(
		self, html: str | bytes | Iterator[str], status: int = 200
	) -> T:
		return self.respond(
			content=html if isinstance(html, (str, bytes)) else "".join(html),
			contentType="text/html; charset=utf-8",
			status=status,
		)

	def respondBytes(
		self,
		content: bytes,
		contentType: str,
		headers: dict[str, str] | None = None,
		status: int = 200,
	) -> T:
		"""Responds with the given payload verbatim, `Content-Length` being
		the exact byte length."""
		base_headers: dict[str, str] = {
			"Content-Type": contentType,
			"Content-Length": str(len(content)),
		}
		return self.respond(
			content=content,
			status=status,
			headers=base_headers | headers if headers else base_headers,
		)


# EOF
