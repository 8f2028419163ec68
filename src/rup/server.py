"""
Connection handling and the accept loop.

Each accepted connection gets its own daemon thread that reads one
request line, answers it and closes. Workers share nothing but the frozen
ServerConfig.
"""

import logging
import socket
import threading

from .config import ServerConfig
from .errors import ServeError
from .request import parse_request_line, read_request_line
from .resolver import resolve
from .response import SendResult, from_error, from_target, reason_phrase, send, send_error

logger = logging.getLogger(__name__)

LISTEN_BACKLOG = 128


def format_peer(addr) -> str:
    if isinstance(addr, tuple) and len(addr) >= 2:
        return f"{addr[0]}:{addr[1]}"
    return str(addr or "-")


def serve_request(rfile, wfile, config: ServerConfig) -> SendResult:
    try:
        request = parse_request_line(read_request_line(rfile, config.max_line))
    except ServeError as e:
        return send_error(wfile, from_error(e), config.not_found_page)

    logger.info("%s %s", request.method, request.path)
    target = resolve(config.root_dir, request)
    return send(from_target(target), wfile, config.not_found_page)


def handle_connection(conn: socket.socket, addr, config: ServerConfig) -> SendResult | None:
    """Answer exactly one request on `conn` and close it.

    Returns None when the connection itself failed.
    """
    peer = format_peer(addr)
    try:
        conn.settimeout(config.timeout)
        with conn, conn.makefile("rb") as rfile, conn.makefile("wb") as wfile:
            result = serve_request(rfile, wfile, config)
    except OSError as e:
        logger.error("%s connection error: %s", peer, e)
        return None

    if result.failed:
        logger.warning("%s %d %s: %s", peer, result.status, reason_phrase(result.status), result.detail)
    else:
        logger.debug("%s %d, %d bytes", peer, result.status, result.written)
    return result


class StaticServer:
    def __init__(self, config: ServerConfig):
        self.config = config
        self.socket: socket.socket | None = None
        self._stop = threading.Event()

    @property
    def address(self) -> tuple[str, int]:
        if self.socket is None:
            raise RuntimeError("server is not bound")
        host, port = self.socket.getsockname()[:2]
        return host, port

    def bind(self) -> tuple[str, int]:
        s = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        try:
            s.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            s.bind((self.config.host, self.config.port))
            s.listen(LISTEN_BACKLOG)
        except OSError:
            s.close()
            raise
        self.socket = s
        return self.address

    def serve_forever(self, poll_interval: float = 0.5):
        self._stop.clear()
        if self.socket is None:
            self.bind()
        self.socket.settimeout(poll_interval)
        try:
            with self.socket:
                while not self._stop.is_set():
                    try:
                        conn, addr = self.socket.accept()
                    except socket.timeout:
                        continue
                    except OSError as e:
                        if self._stop.is_set():
                            break
                        logger.error("accept failed: %s", e)
                        continue
                    t = threading.Thread(target=handle_connection, args=(conn, addr, self.config), daemon=True)
                    t.start()
        finally:
            self.socket = None

    def shutdown(self):
        self._stop.set()


def run_server(config: ServerConfig):
    server = StaticServer(config)
    host, port = server.bind()
    logger.info("Starting server on http://%s:%d", "localhost" if host == "0.0.0.0" else host, port)
    logger.info("Serving %s", config.root_dir)
    logger.info("Hit Ctrl+C to exit.")
    try:
        server.serve_forever()
    except KeyboardInterrupt:
        logger.info("Shutting down server.")
        server.shutdown()
