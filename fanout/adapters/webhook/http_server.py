"""HTTP server adapter for the webhook routes.

Provides a threaded HTTP server using Python's built-in http.server module.
Each request is read on its own thread and handed to the asyncio event
loop, where the matching RouteHandler produces the synthetic response and
spawns the forward workers.

Also serves the Prometheus counters on GET /metrics.
"""

import asyncio
import logging
import time
from collections.abc import Callable, Sequence
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Any
from urllib.parse import urlsplit

from fanout.adapters.metrics.prometheus import PrometheusMetrics
from fanout.core.models import InboundRequest, SyntheticResponse
from fanout.core.route_handler import RouteHandler

logger = logging.getLogger(__name__)

METRICS_PATH = "/metrics"

# Upper bound on how long a request thread waits for its RouteHandler.
HANDLER_TIMEOUT_SECONDS = 30


class _FanoutHTTPServer(ThreadingHTTPServer):
    # Request threads are joined on server_close(), so every accepted
    # request has dispatched its forwards before the drain starts.
    daemon_threads = False
    block_on_close = True


def parse_bind_address(address: str) -> tuple[str, int]:
    """Split a ``host:port`` bind address; an empty host binds all interfaces.

    Raises:
        ValueError: If the port is missing or not a valid port number.
    """
    host, sep, port_str = address.rpartition(":")
    if not sep or not port_str.isdigit():
        raise ValueError(f"invalid bind address {address!r}, expected host:port")
    port = int(port_str)
    if port > 65535:
        raise ValueError(f"invalid port in bind address {address!r}")
    return host.strip("[]"), port


def _read_chunked(rfile: Any, before_read: Callable[[], None]) -> bytes:
    chunks = []
    while True:
        before_read()
        line = rfile.readline(65537)
        if not line:
            raise ConnectionError("connection closed while reading chunked body")
        size = int(line.split(b";", 1)[0].strip(), 16)
        if size < 0:
            raise ValueError(f"negative chunk size {size}")
        if size == 0:
            # Discard trailers up to the terminating blank line.
            while True:
                before_read()
                if rfile.readline(65537) in (b"\r\n", b"\n", b""):
                    break
            return b"".join(chunks)
        data = b""
        while len(data) < size:
            before_read()
            piece = rfile.read1(size - len(data))
            if not piece:
                raise ConnectionError("connection closed while reading chunked body")
            data += piece
        chunks.append(data)
        before_read()
        rfile.readline(65537)


def make_request_handler(
    routes: dict[str, RouteHandler],
    event_loop: asyncio.AbstractEventLoop,
    metrics: PrometheusMetrics | None,
    read_timeout: float,
) -> type[BaseHTTPRequestHandler]:
    """Factory to create a request handler class with instance-specific state.

    Args:
        routes: Route handlers keyed by exact path.
        event_loop: Event loop the route handlers run on.
        metrics: Metrics adapter rendered on /metrics (None disables the endpoint).
        read_timeout: Seconds allowed for reading the request line and
            headers, and separately for reading the whole body.

    Returns:
        A FanoutHTTPHandler class configured with the provided dependencies
    """

    class FanoutHTTPHandler(BaseHTTPRequestHandler):
        """HTTP request handler dispatching to the configured routes.

        Every method, standard or not, reaches ``_dispatch`` so the route
        itself decides whether the method is acceptable.
        """

        timeout = read_timeout

        def __getattr__(self, name: str) -> Any:
            if name.startswith("do_"):
                return self._dispatch
            raise AttributeError(name)

        def _dispatch(self) -> None:
            path = urlsplit(self.path).path

            route = routes.get(path)
            if route is None:
                if path == METRICS_PATH and metrics is not None:
                    self._send_metrics(metrics)
                    return
                self.send_error(404, "Not found")
                return

            request = InboundRequest(
                method=self.command,
                path=path,
                headers=tuple(self.headers.items()),
                client_ip=self.client_address[0] if self.client_address else "",
                read_body=self._read_body_async,
            )

            future = asyncio.run_coroutine_threadsafe(route.handle(request), event_loop)
            try:
                response = future.result(timeout=HANDLER_TIMEOUT_SECONDS)
            except Exception as e:
                # A handler still running must not dispatch after the caller got an error
                future.cancel()
                # Log full exception server-side for debugging
                logger.error(f"Error handling webhook request: {e}", exc_info=True)
                # Return generic error to client without details
                self.send_error(500, "Internal server error")
                return

            self._send(response)

        async def _read_body_async(self) -> bytes:
            return await asyncio.to_thread(self._read_body)

        def _read_body(self) -> bytes:
            deadline = time.monotonic() + read_timeout

            def before_read() -> None:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    raise TimeoutError(f"request body not received within {read_timeout}s")
                self.connection.settimeout(remaining)

            try:
                if "chunked" in self.headers.get("Transfer-Encoding", "").lower():
                    try:
                        return _read_chunked(self.rfile, before_read)
                    except ValueError as e:
                        raise ConnectionError(f"malformed chunked body: {e}") from e
                return self._read_sized_body(before_read)
            finally:
                self.connection.settimeout(read_timeout)

        def _read_sized_body(self, before_read: Callable[[], None]) -> bytes:
            length_header = self.headers.get("Content-Length", "0") or "0"
            try:
                length = int(length_header)
            except ValueError as e:
                raise ConnectionError(f"invalid Content-Length {length_header!r}") from e
            if length < 0:
                raise ConnectionError(f"invalid Content-Length {length_header!r}")

            body = b""
            while len(body) < length:
                before_read()
                piece = self.rfile.read1(length - len(body))
                if not piece:
                    raise ConnectionError(
                        f"connection closed after {len(body)} of {length} body bytes"
                    )
                body += piece
            return body

        def _send(self, response: SyntheticResponse) -> None:
            self.send_response(response.status)
            for name, value in response.headers:
                self.send_header(name, value)
            if response.status not in (204, 304) and not 100 <= response.status < 200:
                self.send_header("Content-Length", str(len(response.body)))
            self.end_headers()
            if response.body and self.command != "HEAD":
                self.wfile.write(response.body)

        def _send_metrics(self, sink: PrometheusMetrics) -> None:
            payload = sink.render()
            self.send_response(200)
            self.send_header("Content-Type", sink.content_type)
            self.send_header("Content-Length", str(len(payload)))
            self.end_headers()
            if self.command != "HEAD":
                self.wfile.write(payload)

        def log_message(self, format: str, *args: Any) -> None:
            """Log HTTP request."""
            logger.debug(f"HTTP {self.client_address[0]}: {format % args}")

    return FanoutHTTPHandler


class FanoutHTTPServer:
    """HTTP listener for the webhook routes and the metrics endpoint."""

    def __init__(
        self,
        handlers: Sequence[RouteHandler],
        metrics: PrometheusMetrics | None = None,
        host: str = "",
        port: int = 9001,
        read_timeout: float = 5.0,
    ):
        """Initialize the HTTP server.

        Args:
            handlers: One RouteHandler per configured route.
            metrics: Prometheus adapter served on /metrics.
            host: Host to listen on ('' for all interfaces).
            port: Port to listen on (0 picks a free port).
            read_timeout: Socket timeout in seconds for reading requests.

        Raises:
            ValueError: If two handlers share a path or a handler claims /metrics.
        """
        self.routes: dict[str, RouteHandler] = {}
        for handler in handlers:
            if handler.path in self.routes:
                raise ValueError(f"duplicate route path: {handler.path}")
            if metrics is not None and handler.path == METRICS_PATH:
                raise ValueError(f"route path {METRICS_PATH} is reserved")
            self.routes[handler.path] = handler

        self.metrics = metrics
        self.host = host
        self.port = port
        self.read_timeout = read_timeout
        self.server: ThreadingHTTPServer | None = None
        self._server_task: asyncio.Task[None] | None = None

    @property
    def bound_port(self) -> int:
        """Port actually bound (differs from ``port`` when it was 0)."""
        if self.server is None:
            return self.port
        return self.server.server_address[1]

    @property
    def serving(self) -> asyncio.Task[None] | None:
        """Task running the serve loop; finishes when the listener stops."""
        return self._server_task

    async def start(self) -> None:
        """Bind the socket and start serving.

        Raises:
            OSError: If the address cannot be bound.
        """
        handler_class = make_request_handler(
            routes=self.routes,
            event_loop=asyncio.get_running_loop(),
            metrics=self.metrics,
            read_timeout=self.read_timeout,
        )

        self.server = _FanoutHTTPServer((self.host, self.port), handler_class)

        for path in self.routes:
            logger.info(f"Registering webhook {path}", extra={"webhook": path})

        # Run server in a separate thread to avoid blocking
        self._server_task = asyncio.create_task(self._run_server())
        logger.info(f"Starting web server on {self.host or '0.0.0.0'}:{self.bound_port}")

    async def _run_server(self) -> None:
        """Run the HTTP server loop in a thread pool."""
        if not self.server:
            return

        # Run the blocking server loop in a thread pool to avoid blocking the event loop
        await asyncio.to_thread(self.server.serve_forever)

    async def stop(self) -> None:
        """Stop accepting requests and wait for request threads to finish."""
        if self.server:
            await asyncio.to_thread(self.server.shutdown)
            await asyncio.to_thread(self.server.server_close)
        if self._server_task:
            await self._server_task
        logger.info("Web server stopped")
