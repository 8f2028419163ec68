import io
import os

import pytest

from rup.errors import MalformedUri
from rup.resolver import Directory, File, MethodNotAllowed, NotFound
from rup.response import (
    CHUNK_SIZE,
    Error,
    SendResult,
    build_head,
    content_type,
    from_error,
    from_target,
    send,
)

NO_PAGE = "/nonexistent/404.html"


def split(raw: bytes) -> tuple[str, bytes]:
    head, body = raw.split(b"\r\n\r\n", 1)
    return head.decode("utf-8"), body


def run(response, not_found_page=NO_PAGE) -> tuple[bytes, SendResult]:
    out = io.BytesIO()
    result = send(response, out, not_found_page)
    return out.getvalue(), result


def test_build_head_uses_bare_lf():
    assert build_head(200, [("A", 1), ("B", "x")]) == b"HTTP/1.1 200 OK\nA: 1\nB: x\r\n\r\n"


@pytest.mark.parametrize("path, ctype", [
    ("a.txt", "text/plain; charset=utf-8"),
    ("a.HTML", "text/html; charset=utf-8"),
    ("a.js", "text/javascript; charset=utf-8"),
    ("a.png", "image/png"),
    ("a.json", "application/json"),
    ("a.unknownext", "application/octet-stream"),
    ("Makefile", "application/octet-stream"),
])
def test_content_type(path, ctype):
    assert content_type(path) == ctype


def test_send_file(site_root):
    raw, result = run(File(str(site_root / "hello.txt")))
    assert raw == (
        b"HTTP/1.1 200 OK\n"
        b"Cache-Control: max-age=3600\n"
        b"Content-Type: text/plain; charset=utf-8\n"
        b"Content-Length: 6\r\n\r\n"
        b"hello\n"
    )
    assert result == SendResult(200, 6)
    assert not result.failed


def test_send_binary_file(site_root):
    data = (site_root / "pixel.png").read_bytes()
    raw, result = run(File(str(site_root / "pixel.png")))
    head, body = split(raw)
    assert "Content-Type: image/png\n" in head
    assert body == data
    assert result.written == len(data)


def test_send_large_file_in_chunks(tmp_path):
    data = os.urandom(CHUNK_SIZE * 3 + 123)
    path = tmp_path / "blob.bin"
    path.write_bytes(data)
    raw, result = run(File(str(path)))
    head, body = split(raw)
    assert f"Content-Length: {len(data)}" in head
    assert body == data
    assert result == SendResult(200, len(data))


def test_unopenable_file_is_404(tmp_path):
    raw, result = run(File(str(tmp_path / "gone.txt")))
    assert raw.startswith(b"HTTP/1.1 404 Not Found\n")
    assert result.status == 404


def test_directory_listing_at_root(site_root):
    root = str(site_root)
    raw, result = run(Directory(root, root))
    head, body = split(raw)
    assert head.startswith("HTTP/1.1 200 OK\n")
    assert "Content-Type: text/html; charset=utf-8\n" in head
    assert f"Content-Length: {len(body)}" in head
    assert result == SendResult(200, len(body))
    html = body.decode("utf-8")
    assert f"Path: {root.lstrip('/')}" in html
    assert ">..</a>" not in html
    assert '<li><a href="/hello.txt">hello.txt</a></li>' in html
    assert '<li><a href="/docs">docs</a></li>' in html
    assert '<a href="/%EC%95%84%EB%A7%88%EC%A1%B4">아마존</a>' in html
    assert html.index('href="/docs"') < html.index('href="/hello.txt"')


def test_directory_listing_nested(site_root):
    root = str(site_root)
    (site_root / "docs" / "a b.txt").write_text("x")
    raw, _ = run(Directory(root, os.path.join(root, "docs")))
    html = split(raw)[1].decode("utf-8")
    assert '<li><a href="/">..</a></li>' in html
    assert '<li><a href="/docs/notes.txt">notes.txt</a></li>' in html
    assert '<li><a href="/docs/a%20b.txt">a b.txt</a></li>' in html


def test_directory_listing_deep_parent(site_root):
    root = str(site_root)
    (site_root / "docs" / "inner").mkdir()
    raw, _ = run(Directory(root, os.path.join(root, "docs", "inner")))
    assert b'<li><a href="/docs">..</a></li>' in raw


def test_directory_listing_escapes_names(site_root):
    root = str(site_root)
    (site_root / "<b>.txt").write_text("x")
    raw, _ = run(Directory(root, root))
    assert b"&lt;b&gt;.txt" in raw
    assert b"<b>.txt" not in raw


def test_unreadable_directory_is_500(tmp_path):
    raw, result = run(Directory(str(tmp_path), str(tmp_path / "vanished")))
    head, body = split(raw)
    assert head.startswith("HTTP/1.1 500 Internal Server Error\n")
    assert body.startswith(b"Internal Server Error: Fail to read directory")
    assert result.failed


def test_400():
    raw, result = run(Error(400, "Malformed URI"))
    body = b"Bad Request: Malformed URI\n"
    assert raw == (
        b"HTTP/1.1 400 Bad Request\n"
        b"Content-Type: text/plain\n"
        b"Content-Length: " + str(len(body)).encode() + b"\r\n\r\n" + body
    )
    assert result == SendResult(400, len(body), "Malformed URI")
    assert result.failed


def test_404_plain():
    raw, result = run(Error(404, "Requested path does not exist."))
    head, body = split(raw)
    assert head.startswith("HTTP/1.1 404 Not Found\n")
    assert "Content-Type: text/plain\n" in head
    assert body == b"Not Found: Requested path does not exist.\n"
    assert result.status == 404


def test_404_custom_page(tmp_path):
    page = tmp_path / "404.html"
    page.write_text("<h1>lost</h1>\n")
    raw, result = run(Error(404, "Requested path does not exist."), str(page))
    head, body = split(raw)
    assert head == "HTTP/1.1 404 Not Found\nContent-Type: text/html\nContent-Length: 14"
    assert body == b"<h1>lost</h1>\n"
    assert result == SendResult(404, 14, "Requested path does not exist.")


def test_404_page_from_working_directory(tmp_path, monkeypatch):
    (tmp_path / "404.html").write_text("custom")
    monkeypatch.chdir(tmp_path)
    out = io.BytesIO()
    send(Error(404, "x"), out)
    assert split(out.getvalue())[1] == b"custom"


def test_405():
    raw, result = run(Error(405, "Requested HTTP method POST is not supported."))
    assert raw == (
        b"HTTP/1.1 405 Method Not Allowed\n"
        b"Allow: GET\n"
        b"Content-Type: text/plain\n"
        b"Content-Length: 23\r\n\r\n"
        b"405 Method Not Allowed\n"
    )
    assert result.status == 405


def test_from_target():
    assert from_target(NotFound()) == Error(404, "Requested path does not exist.")
    assert from_target(MethodNotAllowed("PUT")).code == 405
    assert from_target(File("/x")) == File("/x")
    assert from_target(Directory("/", "/")) == Directory("/", "/")


def test_from_error():
    assert from_error(MalformedUri("Malformed URI")) == Error(400, "Malformed URI")
