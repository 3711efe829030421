from ..http.model import HTTPRequest, HTTPResponse
from ..decorators import post

# Files are public: any origin may read them, but nothing else
CORS_METHODS: tuple[str, ...] = ("GET", "HEAD", "OPTIONS")
CORS_MAX_AGE: int = 86400


@post
def cors(
	request: HTTPRequest, response: HTTPResponse, allowAll: bool = True
) -> HTTPResponse:
	"""Post transform adding the CORS headers to the handler's response,
	whatever its status."""
	return setCORSHeaders(
		response, origin=request.getHeader("Origin"), allowAll=allowAll
	)


def setCORSHeaders(
	response: HTTPResponse,
	*,
	origin: str | None = None,
	methods: tuple[str, ...] = CORS_METHODS,
	allowAll: bool = True,
) -> HTTPResponse:
	"""Sets the CORS headers on the response. Unless `allowAll` is set,
	the request's `origin` is echoed back, which makes the response vary
	by origin.

	See <https://developer.mozilla.org/en-US/docs/Web/HTTP/CORS>
	"""
	echoed: bool = bool(origin) and not allowAll
	response.setHeaders(
		{
			"Access-Control-Allow-Origin": origin if echoed else "*",
			"Access-Control-Allow-Headers": "*",
			"Access-Control-Allow-Methods": ", ".join(methods),
			"Access-Control-Max-Age": CORS_MAX_AGE,
		}
	)
	if echoed:
		response.setHeader("Vary", "Origin")
	return response


# EOF
