"""
Map a decoded request path onto the filesystem under the server root.

The decoded path is always appended to the root segment by segment. Any
`..` segment is refused outright, so a request can never name a location
outside the root.
"""

import logging
import os
from dataclasses import dataclass
from typing import Union

from .request import Request

logger = logging.getLogger(__name__)

INDEX_FILE = "index.html"
NOT_FOUND_DETAIL = "Requested path does not exist."
TRAVERSAL_DETAIL = "Requested path escapes the server root."


@dataclass(frozen=True)
class File:
    path: str


@dataclass(frozen=True)
class Directory:
    base: str
    path: str


@dataclass(frozen=True)
class NotFound:
    detail: str = NOT_FOUND_DETAIL


@dataclass(frozen=True)
class MethodNotAllowed:
    method: str


ResolvedTarget = Union[File, Directory, NotFound, MethodNotAllowed]


def path_segments(path: str) -> list[str] | None:
    """
    Split a URL path into filesystem segments.

    Empty and `.` segments are dropped. Returns None when any segment is
    `..`.
    """
    segments = []
    for seg in path.split("/"):
        if seg in ("", "."):
            continue
        if seg == "..":
            return None
        segments.append(seg)
    return segments


def candidate_path(root: str, path: str) -> str | None:
    if path == "/":
        return root
    segments = path_segments(path)
    if segments is None:
        return None
    return os.path.join(root, *segments)


def resolve(root, request: Request) -> ResolvedTarget:
    if request.method != "GET":
        return MethodNotAllowed(request.method)

    root = os.fspath(root)
    candidate = candidate_path(root, request.path)
    if candidate is None:
        logger.warning("Refusing traversal outside root: %s", request.path)
        return NotFound(TRAVERSAL_DETAIL)

    # os.path.exists() reports False for embedded NUL bytes instead of raising
    if not os.path.exists(candidate):
        return NotFound()
    if os.path.isdir(candidate):
        index = os.path.join(candidate, INDEX_FILE)
        if os.path.exists(index):
            return File(index)
        return Directory(root, candidate)
    if request.path.endswith(("/", "/.")):
        # root/file.txt/ is ENOTDIR on the filesystem
        return NotFound()
    return File(candidate)
