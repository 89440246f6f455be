"""
=============================================================================
HTTP SERVER
=============================================================================

Ties the transport, the HTTP layer and the directory handler together.

=============================================================================
REQUEST LIFECYCLE
=============================================================================

    1. SocketServer accepts a TCP connection
    2. The connection is queued on the ThreadPool (503 if the queue is full)
    3. A worker reads one request off the socket      (408 / 413 on failure)
    4. RequestParser builds an HTTPRequest            (400 / 405 / 505)
    5. Middleware → DirectoryIndexHandler.handle()   (500 if it raises)
    6. Connection / Keep-Alive headers are set
    7. The response is serialised; HEAD drops the body
    8. Keep-alive: back to 3. Otherwise close.

=============================================================================
"""

import logging
from typing import Optional, Callable, Tuple

from .config import ServerConfig
from .core import SocketServer, Connection, ConnectionState, ThreadPool, RequestTooLarge
from .http import (
    HTTPRequest, RequestParser, HTTPParseError,
    HTTPResponse, ResponseBuilder, HTTPStatus,
    internal_error,
)
from .handlers import DirectoryIndexHandler
from .middleware import MiddlewarePipeline, Middleware, LoggingMiddleware


logger = logging.getLogger(__name__)


Handler = Callable[[HTTPRequest], HTTPResponse]


def setup_logging(log_level: str = "INFO"):
    """
    Configure the root logger once per process.

    basicConfig() is a no-op when handlers already exist, so calling this
    again (CLI, then server.run()) only adjusts the dirserve level.
    """
    level = getattr(logging, log_level.upper(), logging.INFO)

    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    logging.getLogger("dirserve").setLevel(level)


class HTTPServer:
    """
    Multi-threaded HTTP/1.1 server with a single catch-all handler.

    Usage:
        config = ServerConfig(root_dir="/srv/files", port=8000)
        server = HTTPServer(config)
        server.use(LoggingMiddleware())
        server.run()  # blocks until SIGINT / SIGTERM / shutdown()

    Args:
        config: Server configuration; validated here.
        handler: Callable answering every request. Defaults to a
                 DirectoryIndexHandler over config.root_dir.
    """

    def __init__(self, config: Optional[ServerConfig] = None, handler: Optional[Handler] = None):
        self.config = config or ServerConfig()
        self.config.validate()

        self._socket_server = SocketServer(self.config)
        self._thread_pool = ThreadPool(
            min_workers=self.config.min_workers,
            max_workers=self.config.max_workers,
        )
        self._parser = RequestParser(max_request_size=self.config.max_request_size)

        if handler is None:
            handler = DirectoryIndexHandler(
                self.config.root_dir,
                ignored_paths=self.config.ignored_paths,
            ).handle
        self._endpoint = handler
        self._middleware = MiddlewarePipeline()

        # middleware.wrap(endpoint), rebuilt whenever middleware is added
        self._handler: Handler = handler
        self._running = False

    # =========================================================================
    # CONFIGURATION
    # =========================================================================

    def use(self, middleware: Middleware) -> "HTTPServer":
        """Add middleware; the first one added is outermost."""
        self._middleware.add(middleware)
        self._handler = self._middleware.wrap(self._endpoint)
        return self

    def handle(self, request: HTTPRequest) -> HTTPResponse:
        """
        Run one request through middleware and the handler.

        Exceptions become a 500 and are logged with their traceback.
        """
        try:
            return self._handler(request)
        except Exception as e:
            logger.exception(f"Handler error for {request.method} {request.path}: {e}")
            return internal_error()

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    @property
    def address(self) -> Optional[Tuple[str, int]]:
        """Bound (host, port) while running, None otherwise."""
        return self._socket_server.bound_address

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        """Block until the listening socket is up (for tests and embedding)."""
        return self._socket_server.ready.wait(timeout)

    def run(self, host: Optional[str] = None, port: Optional[int] = None):
        """
        Start serving. Blocks until shutdown.

        Args:
            host: Override config.host.
            port: Override config.port (0 picks a free port).

        Raises:
            OSError: If the address cannot be bound.
        """
        if host:
            self.config.host = host
        if port is not None:
            self.config.port = port

        self._setup_logging()
        self._running = True
        self._thread_pool.start()

        logger.info(
            f"Serving {self.config.root_dir} on {self.config.host}:{self.config.port} "
            f"({self.config.min_workers}-{self.config.max_workers} workers)"
        )

        try:
            self._socket_server.start(self._handle_connection)
        except KeyboardInterrupt:
            logger.info("Received keyboard interrupt")
        finally:
            self._shutdown()

    def shutdown(self):
        """Ask a running server to stop; run() returns once it has."""
        self._socket_server.shutdown()

    def _setup_logging(self):
        setup_logging(self.config.log_level)

    def _shutdown(self):
        logger.info("Shutting down server...")
        self._running = False
        self._thread_pool.shutdown(wait=True, timeout=30.0)
        logger.info("Server stopped")

    # =========================================================================
    # CONNECTION HANDLING
    # =========================================================================

    def _handle_connection(self, conn: Connection):
        submitted = self._thread_pool.submit(
            self._process_connection,
            args=(conn,),
            timeout=self.config.timeout,
        )

        if not submitted:
            logger.warning(f"[{conn.id}] Thread pool full, rejecting connection")
            self._send_error(conn, HTTPStatus.SERVICE_UNAVAILABLE, "Server overloaded")
            conn.close()

    def _process_connection(self, conn: Connection):
        """Keep-alive loop for one connection (runs on a worker thread)."""
        with conn:
            while self._running:
                try:
                    raw_request = conn.read_request()
                except TimeoutError:
                    self._send_error(conn, HTTPStatus.REQUEST_TIMEOUT, "Request timeout")
                    break
                except RequestTooLarge as e:
                    self._send_error(conn, HTTPStatus.PAYLOAD_TOO_LARGE, str(e))
                    break

                if raw_request is None:
                    break

                try:
                    request = self._parser.parse(raw_request, conn.address)
                except HTTPParseError as e:
                    self._send_error(conn, HTTPStatus(e.status_code), str(e))
                    break

                conn.state = ConnectionState.PROCESSING
                response = self.handle(request)

                keep_alive = request.is_keep_alive and self.config.keep_alive
                if keep_alive:
                    response.headers.setdefault("Connection", "keep-alive")
                    response.headers.setdefault(
                        "Keep-Alive", f"timeout={int(self.config.keep_alive_timeout)}"
                    )
                else:
                    response.headers["Connection"] = "close"

                data = response.to_bytes(
                    self.config.server_name,
                    include_body=not request.is_head,
                )
                if not conn.send_response(data) or not keep_alive:
                    break

                conn.set_keep_alive()

    def _send_error(self, conn: Connection, status: HTTPStatus, message: str):
        """Plain-text error for failures before a request reaches the handler."""
        response = (ResponseBuilder()
            .status(status)
            .text(message + "\n")
            .close_connection()
            .build())
        conn.send_response(response.to_bytes(self.config.server_name))


def create_app(config: Optional[ServerConfig] = None) -> HTTPServer:
    """
    Server over config.root_dir with access logging enabled.

    Example:
        app = create_app(ServerConfig(root_dir="/srv/files", port=8000))
        app.run()
    """
    server = HTTPServer(config)
    server.use(LoggingMiddleware(log_format=server.config.log_format))
    return server
