import socket
import threading

import pytest

from rup.config import ServerConfig
from rup.server import StaticServer


def recv_all(sock: socket.socket) -> bytes:
    chunks = []
    while True:
        data = sock.recv(4096)
        if not data:
            break
        chunks.append(data)
    return b"".join(chunks)


def fetch(port: int, request: bytes, host: str = "127.0.0.1") -> bytes:
    with socket.create_connection((host, port), timeout=5) as s:
        s.sendall(request)
        return recv_all(s)


def split_response(raw: bytes) -> tuple[str, bytes]:
    head, body = raw.split(b"\r\n\r\n", 1)
    return head.decode("utf-8"), body


@pytest.fixture
def site_root(tmp_path):
    root = tmp_path / "www"
    root.mkdir()
    (root / "hello.txt").write_text("hello\n")
    (root / "style.css").write_text("body { color: red; }\n")
    (root / "pixel.png").write_bytes(b"\x89PNG\r\n\x1a\n" + bytes(16))
    (root / "docs").mkdir()
    (root / "docs" / "notes.txt").write_text("notes\n")
    (root / "site").mkdir()
    (root / "site" / "index.html").write_text("<h1>site</h1>\n")
    (root / "아마존").mkdir()
    (root / "아마존" / "page.html").write_text("<p>amazon</p>\n")
    return root


@pytest.fixture
def config(site_root, tmp_path):
    return ServerConfig(
        host="127.0.0.1",
        port=0,
        root=site_root,
        timeout=2.0,
        not_found_page=str(tmp_path / "missing-404.html"),
    )


@pytest.fixture
def live_server(config):
    server = StaticServer(config)
    host, port = server.bind()
    t = threading.Thread(target=server.serve_forever, kwargs={"poll_interval": 0.05}, daemon=True)
    t.start()
    yield host, port
    server.shutdown()
    t.join(timeout=5)
