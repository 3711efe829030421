import asyncio
import socket
import threading
from dataclasses import dataclass
from signal import SIGINT, SIGTERM
from typing import Any, Callable, Literal, NamedTuple

from .config import HOST, PORT
from .http.model import (
	HTTPBodyWriter,
	HTTPProcessingStatus,
	HTTPRequest,
	HTTPResponse,
)
from .http.parser import HTTPParser
from .model import Application, Service, mount
from .utils.json import json
from .utils.limits import LimitType, unlimit
from .utils.logging import debug, error, event, exception, info, logged, warning


@dataclass(slots=True)
class ServerState:
	isRunning: bool = True

	def stop(self) -> None:
		info("Server stopping…")
		self.isRunning = False

	def onException(
		self, loop: asyncio.AbstractEventLoop, context: dict[str, Any]
	) -> None:
		e = context.get("exception")
		if e:
			exception(e)


class ServerOptions(NamedTuple):
	host: str = "0.0.0.0"  # nosec: B104
	port: int = 8000
	backlog: int = 10_000
	# Polling timeout for accepting new connections
	polling: float = 1.0
	readsize: int = 4_096
	keepalive: float = 30.0
	logRequests: bool = True
	condition: Callable[[], bool] | None = None
	stopSignals: bool = True


OPTIONS: ServerOptions = ServerOptions()


def _static(status: str, payload: bytes) -> bytes:
	return (
		f"HTTP/1.1 {status}\r\n"
		"Content-Type: application/json\r\n"
		f"Content-Length: {len(payload)}\r\n"
		"Connection: close\r\n"
		"\r\n"
	).encode("ascii") + payload


SERVER_BADREQUEST: bytes = _static(
	"400 Bad Request", json({"error": "Bad request", "message": "Malformed request"})
)
SERVER_ERROR: bytes = _static(
	"500 Internal Server Error",
	json({"error": "Internal server error", "message": "Response not sent"}),
)


class AIOSocketBodyWriter(HTTPBodyWriter):
	"""Writes to an AIO socket."""

	def __init__(self, client: "socket.socket", loop: asyncio.AbstractEventLoop):
		super().__init__()
		self.client: socket.socket = client
		self.loop: asyncio.AbstractEventLoop = loop

	async def _writeBytes(
		self, chunk: bytes | None | Literal[False], more: bool = False
	) -> bool:
		if chunk:
			await self.loop.sock_sendall(self.client, chunk)
		return True


class AIOSocketServer:
	"""AsyncIO server working on non-blocking sockets directly."""

	@classmethod
	async def OnRequest(
		cls,
		app: Application,
		client: socket.socket,
		*,
		loop: asyncio.AbstractEventLoop,
		options: ServerOptions,
	) -> None:
		"""Processes the requests sent on the `client` connection, until the
		client closes it, asks for it to be closed or stays idle for longer
		than the keep-alive timeout."""
		buffer = bytearray(options.readsize)
		keep_alive: bool = True
		status: HTTPProcessingStatus = HTTPProcessingStatus.Processing
		req_count: int = 0
		res_count: int = 0
		try:
			parser: HTTPParser = HTTPParser()
			writer: AIOSocketBodyWriter = AIOSocketBodyWriter(client, loop)
			while keep_alive and not writer.shouldClose:
				try:
					n = await asyncio.wait_for(
						loop.sock_recv_into(client, buffer),
						timeout=options.keepalive,
					)
				except TimeoutError:
					status = HTTPProcessingStatus.Timeout
					break
				if not n:
					# No data means the client closed the connection
					status = HTTPProcessingStatus.NoData
					break
				# Pipelined requests may come in the same chunk
				for atom in parser.feed(bytes(buffer[:n])):
					if atom is HTTPProcessingStatus.BadFormat:
						warning("Malformed request", Client=f"{id(client):x}")
						await writer.write(SERVER_BADREQUEST)
						keep_alive = False
						break
					elif isinstance(atom, HTTPRequest):
						req_count += 1
						if options.logRequests:
							event(atom.method, atom.path)
						res = await cls.SendResponse(atom, app, writer)
						if res:
							res_count += 1
						if not atom.keepAlive or (res and res.shouldClose):
							keep_alive = False
							break
			if status is HTTPProcessingStatus.Timeout and req_count != res_count:
				warning(
					"Client timed out",
					Status=status.name,
					Requests=req_count,
					Responses=res_count,
				)
			else:
				logged(debug) and debug(
					"Connection ended",
					Status=status.name,
					Requests=req_count,
					Responses=res_count,
				)
		except Exception as e:
			exception(e)
		finally:
			client.close()

	@staticmethod
	async def SendResponse(
		request: HTTPRequest,
		app: Application,
		writer: HTTPBodyWriter,
	) -> HTTPResponse | None:
		"""Processes the request within the application and sends the
		response using the given writer. Responses to `HEAD` requests have
		their head sent only."""
		res: HTTPResponse | None = None
		sent: bool = False
		try:
			res = await app.process(request)
			if not request.keepAlive:
				res.shouldClose = True
			await writer.write(res.head())
			sent = True
			if not request.isHead:
				await writer.write(res.body)
		except BrokenPipeError:
			# Client did an early close
			sent = True
		except Exception as e:
			exception(e, f"Could not respond to {request.method} {request.path}")
		if not sent:
			warning(
				"Server did not send a response",
				Method=request.method,
				Path=request.path,
			)
			writer.shouldClose = True
			try:
				await writer.write(SERVER_ERROR)
			except OSError as e:
				exception(e)
		return res

	@staticmethod
	def Bind(options: ServerOptions, attempts: int = 5) -> tuple[socket.socket, int]:
		"""Returns a listening, non-blocking socket bound to the options'
		port, or to one of the next `attempts - 1` ports when it is taken."""
		server = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
		server.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
		server.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)
		failure: OSError | None = None
		for port in range(options.port, options.port + attempts):
			try:
				server.bind((options.host, port))
			except OSError as e:
				warning("Port is not available", Host=options.host, Port=port)
				failure = failure or e
				continue
			if port != options.port:
				info("Using alternate port", Port=port)
			server.listen(options.backlog)
			server.setblocking(False)
			return server, port
		server.close()
		error("Could not bind server", "HOSTPORTERR", Host=options.host, Port=options.port)
		raise failure or OSError(f"Could not bind to {options.host}:{options.port}")

	@classmethod
	async def Serve(
		cls,
		app: Application,
		options: ServerOptions = OPTIONS,
	) -> None:
		"""Serves the application until stopped by a signal or by the
		options' `condition`."""
		await app.start()
		server, port = cls.Bind(options)

		tasks: set[asyncio.Task[None]] = set()
		loop = asyncio.get_running_loop()
		state = ServerState()
		# Signal handlers can only be set from the main thread
		if options.stopSignals and threading.current_thread() is threading.main_thread():
			loop.add_signal_handler(SIGINT, state.stop)
			loop.add_signal_handler(SIGTERM, state.stop)
		loop.set_exception_handler(state.onException)

		info(
			"File CDN listening",
			icon="🚀",
			Host=options.host,
			Port=port,
		)

		try:
			while state.isRunning:
				if options.condition and not options.condition():
					break
				try:
					client, _ = await asyncio.wait_for(
						loop.sock_accept(server), timeout=options.polling or 1.0
					)
				except TimeoutError:
					continue
				except OSError as e:
					# [Errno 24] Too many open files
					if e.errno == 24:
						await asyncio.sleep(0.1)
					else:
						exception(e)
					continue
				task = loop.create_task(
					cls.OnRequest(app, client, loop=loop, options=options)
				)
				tasks.add(task)
				task.add_done_callback(tasks.discard)
		finally:
			server.close()
			for task in tasks:
				task.cancel()
			await asyncio.gather(*tasks, return_exceptions=True)
			await app.stop()


def run(
	*components: Application | Service,
	host: str = HOST,
	port: int = PORT,
	backlog: int = OPTIONS.backlog,
	condition: Callable[[], bool] | None = None,
	polling: float = OPTIONS.polling,
	logRequests: bool = OPTIONS.logRequests,
	keepalive: float = OPTIONS.keepalive,
) -> None:
	"""Mounts the components in an application and serves it until
	interrupted."""
	unlimit(LimitType.Files)
	options = ServerOptions(
		host=host,
		port=port,
		backlog=backlog,
		condition=condition,
		polling=polling,
		logRequests=logRequests,
		keepalive=keepalive,
	)
	app = mount(*components)
	try:
		asyncio.run(AIOSocketServer.Serve(app, options))
	except KeyboardInterrupt:
		event("ManualShutdown")
	event("EOK")


# EOF
