#!/usr/bin/python3.7+
# -*- coding:utf-8 -*-
"""
@date: 2024-03-11
@desc: 访问日志中请求行的转义

The request target is written between double quotes, so anything that could
break the line (quotes, backslashes, control bytes, broken UTF-8) is escaped.
The rules follow Go's ``strconv.Quote`` family so existing log parsers keep
working.
"""
from typing import Union

__all__ = [
    "append_quoted",
    "quote",
    "to_bytes",
]

LOWER_HEX = "0123456789abcdef"

MAX_RUNE = 0x10FFFF
RUNE_ERROR = 0xFFFD

_SIMPLE_ESCAPES = {
    0x07: b"\\a",
    0x08: b"\\b",
    0x0C: b"\\f",
    0x0A: b"\\n",
    0x0D: b"\\r",
    0x09: b"\\t",
    0x0B: b"\\v",
}


def to_bytes(s: Union[str, bytes, bytearray]) -> bytes:
    """
    Raw bytes of ``s``: ``surrogateescape`` characters map back to their
    original byte, any other lone surrogate becomes its (invalid UTF-8)
    three-byte form so the escaper hex-escapes it.
    """
    if isinstance(s, (bytes, bytearray)):
        return bytes(s)
    try:
        return s.encode("utf-8", "surrogateescape")
    except UnicodeEncodeError:
        pass
    out = bytearray()
    for ch in s:
        if "\udc80" <= ch <= "\udcff":
            out.append(ord(ch) - 0xDC00)
        else:
            out += ch.encode("utf-8", "surrogatepass")
    return bytes(out)


def _sequence_length(lead: int) -> int:
    if 0xC2 <= lead <= 0xDF:
        return 2
    if 0xE0 <= lead <= 0xEF:
        return 3
    if 0xF0 <= lead <= 0xF4:
        return 4
    return 0


def _decode_rune(data: bytes, i: int):
    """
    Decode one character starting at ``data[i]``.

    :return: (code point, width); (RUNE_ERROR, 1) for a malformed unit
    """
    lead = data[i]
    if lead < 0x80:
        return lead, 1
    width = _sequence_length(lead)
    if not width or i + width > len(data):
        return RUNE_ERROR, 1
    try:
        char = data[i:i + width].decode("utf-8")
    except UnicodeDecodeError:
        # overlong, surrogate and > U+10FFFF are all rejected here
        return RUNE_ERROR, 1
    return ord(char), width


def _append_hex(buf: bytearray, value: int, digits: int):
    for shift in range((digits - 1) * 4, -1, -4):
        buf.append(ord(LOWER_HEX[(value >> shift) & 0xF]))


def _is_print(r: int) -> bool:
    return chr(r).isprintable()


def append_quoted(buf: bytearray, s: Union[str, bytes, bytearray]) -> bytearray:
    """
    Append the escaped form of ``s`` to ``buf`` and return ``buf``.

    Never raises: malformed input degrades to ``\\xHH`` escapes.
    """
    data = to_bytes(s)
    i = 0
    n = len(data)
    while i < n:
        r, width = _decode_rune(data, i)
        if width == 1 and r == RUNE_ERROR:
            buf += b"\\x"
            _append_hex(buf, data[i], 2)
            i += 1
            continue
        i += width
        if r == 0x22 or r == 0x5C:  # always backslashed
            buf.append(0x5C)
            buf.append(r)
            continue
        if r <= MAX_RUNE and _is_print(r):
            buf += chr(r).encode("utf-8")
            continue
        if r in _SIMPLE_ESCAPES:
            buf += _SIMPLE_ESCAPES[r]
        elif r < 0x20:
            buf += b"\\x"
            _append_hex(buf, r, 2)
        else:
            if r > MAX_RUNE:
                r = RUNE_ERROR
            if r < 0x10000:
                buf += b"\\u"
                _append_hex(buf, r, 4)
            else:
                buf += b"\\U"
                _append_hex(buf, r, 8)
    return buf


def quote(s: Union[str, bytes, bytearray]) -> str:
    """
    Escape ``s`` for embedding between double quotes on one log line,
    e.g. ``hello "world"`` becomes ``hello \\"world\\"``.
    """
    return append_quoted(bytearray(), s).decode("utf-8")
