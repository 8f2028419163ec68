"""
Response framing.

Status and header lines end with a bare LF; the header block ends with
CRLF CRLF. File bodies are streamed, never held in memory. Every send
returns a SendResult: the bytes went out, and `status` tells the caller
whether the request itself failed.
"""

import html
import logging
import os
from dataclasses import dataclass
from http import HTTPStatus
from typing import NamedTuple, Union
from urllib.parse import quote

from .errors import ErrorKind, ServeError
from .mime import guess_mime
from .resolver import NOT_FOUND_DETAIL, Directory, File, MethodNotAllowed, NotFound, ResolvedTarget

logger = logging.getLogger(__name__)

CHUNK_SIZE = 8 * 1024
CACHE_CONTROL = "max-age=3600"
NOT_FOUND_PAGE = "404.html"

CSS = "<style>body { font-size: 1.2rem; line-height: 1.2; margin: 1rem; }</style>"


@dataclass(frozen=True)
class Error:
    code: int
    message: str


Response = Union[File, Directory, Error]


class SendResult(NamedTuple):
    status: int
    written: int
    detail: str | None = None

    @property
    def failed(self) -> bool:
        return self.status >= 400


def from_target(target: ResolvedTarget) -> Response:
    if isinstance(target, NotFound):
        return Error(ErrorKind.NOT_FOUND.status, target.detail)
    if isinstance(target, MethodNotAllowed):
        return Error(ErrorKind.METHOD_NOT_ALLOWED.status, f"Requested HTTP method {target.method} is not supported.")
    return target


def from_error(err: ServeError) -> Error:
    return Error(err.status, err.detail)


def reason_phrase(code: int) -> str:
    try:
        return HTTPStatus(code).phrase
    except ValueError:
        return "Error"


def content_type(path: str) -> str:
    ctype = guess_mime(path)
    if "text" in ctype:
        return f"{ctype}; charset=utf-8"
    return ctype


def build_head(status: int, headers: list[tuple[str, object]]) -> bytes:
    lines = [f"HTTP/1.1 {status} {reason_phrase(status)}"]
    lines.extend(f"{k}: {v}" for k, v in headers)
    return ("\n".join(lines) + "\r\n\r\n").encode("utf-8")


def write_file(wfile, f) -> int:
    written = 0
    while True:
        chunk = f.read(CHUNK_SIZE)
        if not chunk:
            return written
        wfile.write(chunk)
        written += len(chunk)


def send_file(wfile, path: str, not_found_page: str = NOT_FOUND_PAGE) -> SendResult:
    try:
        f = open(path, "rb")
    except OSError as e:
        logger.debug("Cannot open %s: %s", path, e)
        return send_error(wfile, Error(ErrorKind.NOT_FOUND.status, NOT_FOUND_DETAIL), not_found_page)
    with f:
        size = os.fstat(f.fileno()).st_size
        wfile.write(build_head(200, [
            ("Cache-Control", CACHE_CONTROL),
            ("Content-Type", content_type(path)),
            ("Content-Length", size),
        ]))
        written = write_file(wfile, f)
    return SendResult(200, written)


def render_listing(base: str, path: str) -> bytes:
    entries = sorted(os.listdir(path))

    def href(target: str) -> str:
        rel = os.path.relpath(target, base).replace(os.sep, "/")
        if rel == ".":
            return "/"
        return "/" + quote(rel, errors="surrogateescape")

    items = []
    if path != base:
        items.append(f'<li><a href="{href(os.path.dirname(path))}">..</a></li>')
    for name in entries:
        items.append(f'<li><a href="{href(os.path.join(path, name))}">{html.escape(name)}</a></li>')

    banner = html.escape(path.lstrip(os.sep))
    doc = (
        f"<html><head>{CSS}</head><body>"
        f'<p style="color: #fff; background-color: #44f;">Path: {banner}</p>'
        f"<ol>{''.join(items)}</ol>"
        "</body></html>"
    )
    return doc.encode("utf-8", errors="surrogateescape")


def send_directory(wfile, base: str, path: str) -> SendResult:
    try:
        body = render_listing(base, path)
    except OSError as e:
        return send_error(wfile, Error(ErrorKind.IO.status, f"Fail to read directory: {e.strerror}"))
    wfile.write(build_head(200, [
        ("Content-Type", "text/html; charset=utf-8"),
        ("Content-Length", len(body)),
    ]))
    wfile.write(body)
    return SendResult(200, len(body))


def _send_text(wfile, code: int, body: str, headers: list[tuple[str, object]] | None = None) -> int:
    data = body.encode("utf-8")
    head = list(headers or [])
    head += [("Content-Type", "text/plain"), ("Content-Length", len(data))]
    wfile.write(build_head(code, head))
    wfile.write(data)
    return len(data)


def send_not_found(wfile, message: str, page: str = NOT_FOUND_PAGE) -> int:
    if page and os.path.isfile(page):
        try:
            f = open(page, "rb")
        except OSError as e:
            logger.warning("Cannot open custom 404 page %s: %s", page, e)
        else:
            with f:
                size = os.fstat(f.fileno()).st_size
                wfile.write(build_head(404, [
                    ("Content-Type", "text/html"),
                    ("Content-Length", size),
                ]))
                return write_file(wfile, f)
    return _send_text(wfile, 404, f"Not Found: {message}\n")


def send_error(wfile, error: Error, not_found_page: str = NOT_FOUND_PAGE) -> SendResult:
    code = error.code
    if code == 400:
        written = _send_text(wfile, 400, f"Bad Request: {error.message}\n")
    elif code == 404:
        written = send_not_found(wfile, error.message, not_found_page)
    elif code == 405:
        written = _send_text(wfile, 405, "405 Method Not Allowed\n", [("Allow", "GET")])
    else:
        written = _send_text(wfile, code, f"{reason_phrase(code)}: {error.message}\n")
    return SendResult(code, written, error.message)


def send(response: Response, wfile, not_found_page: str = NOT_FOUND_PAGE) -> SendResult:
    """Write one complete framed response for `response` to `wfile`."""
    if isinstance(response, File):
        return send_file(wfile, response.path, not_found_page)
    if isinstance(response, Directory):
        return send_directory(wfile, response.base, response.path)
    return send_error(wfile, response, not_found_page)
