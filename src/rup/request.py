"""
Request line parsing.

Only the method and the path of the request line are of interest. The
protocol version and any headers that follow are never read.
"""

import re
from dataclasses import dataclass

from .decode import decode_percent
from .errors import ParseError

MAX_LINE = 8192

_SUFFIX = re.compile(r"[#?]")


@dataclass(frozen=True)
class Request:
    method: str
    path: str


def trim_path(raw: str) -> str:
    """Drop the query string and fragment, keeping only the path component."""
    return _SUFFIX.split(raw, 1)[0]


def parse_request_line(line: str) -> Request:
    parts = line.split(None, 2)
    if len(parts) < 2:
        raise ParseError("Fail to get request method/path")
    method, raw_path = parts[0], parts[1]
    path = trim_path(raw_path)
    if not path.startswith("/"):
        raise ParseError(f"Request path must start with '/': {raw_path}")
    return Request(method=method, path=decode_percent(path))


def read_request_line(rfile, max_line: int = MAX_LINE) -> str:
    """Read exactly one line from a binary file-like connection."""
    try:
        raw = rfile.readline(max_line + 1)
    except OSError as e:
        raise ParseError(f"Fail to get request line: {e}") from e
    if len(raw) > max_line:
        raise ParseError("Request line too long")
    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError:
        raise ParseError("Fail to get request line") from None
