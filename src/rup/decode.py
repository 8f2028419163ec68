"""Percent-decoding of URL paths."""

import string

from .errors import MalformedUri

MALFORMED_URI = "Malformed URI"

_HEX_DIGITS = frozenset(string.hexdigits)


def _hex_byte(chars) -> int:
    pair = ""
    for _ in range(2):
        c = next(chars, None)
        if c is None or c not in _HEX_DIGITS:
            raise MalformedUri(MALFORMED_URI)
        pair += c
    return int(pair, 16)


def _flush(buf: bytearray, out: list[str]):
    # a run of consecutive escapes must form complete UTF-8 on its own
    if not buf:
        return
    try:
        out.append(buf.decode("utf-8"))
    except UnicodeDecodeError:
        raise MalformedUri(MALFORMED_URI) from None
    buf.clear()


def decode_percent(value: str) -> str:
    """
    Decode %XX escapes in `value`.

    Consecutive escapes are gathered as raw bytes and decoded as one UTF-8
    unit, so a multi-byte character split over several escapes comes back
    whole. Raises MalformedUri on a truncated or non-hex escape, or when a
    run of escapes is not valid UTF-8. Nothing is returned on failure.
    """
    out: list[str] = []
    buf = bytearray()
    chars = iter(value)
    for c in chars:
        if c == "%":
            buf.append(_hex_byte(chars))
        else:
            _flush(buf, out)
            out.append(c)
    _flush(buf, out)
    return "".join(out)
