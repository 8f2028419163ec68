"""
Error taxonomy for the request pipeline.

Every failure is a ServeError carrying a kind and a human-readable
detail. The detail is only formatted at the boundary (response body,
log line).
"""

from enum import Enum
from http import HTTPStatus


class ErrorKind(Enum):
    MALFORMED_URI = "malformed-uri"
    PARSE = "parse"
    NOT_FOUND = "not-found"
    METHOD_NOT_ALLOWED = "method-not-allowed"
    IO = "io"

    @property
    def status(self) -> int:
        return _STATUS[self]

    @property
    def reason(self) -> str:
        return HTTPStatus(self.status).phrase


_STATUS = {
    ErrorKind.MALFORMED_URI: 400,
    ErrorKind.PARSE: 400,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.METHOD_NOT_ALLOWED: 405,
    ErrorKind.IO: 500,
}


class ServeError(Exception):
    kind = ErrorKind.IO

    def __init__(self, detail: str, kind: ErrorKind | None = None):
        super().__init__(detail)
        self.detail = detail
        if kind is not None:
            self.kind = kind

    @property
    def status(self) -> int:
        return self.kind.status

    def __str__(self) -> str:
        return f"{self.status} {self.kind.reason}: {self.detail}"


class MalformedUri(ServeError, ValueError):
    kind = ErrorKind.MALFORMED_URI


class ParseError(ServeError):
    kind = ErrorKind.PARSE
