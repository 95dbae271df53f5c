"""Bencode codec for the nREPL wire format.

Bencode is self-describing and length-prefixed:

- integers: ``i<digits>e``
- byte strings: ``<length>:<bytes>``
- lists: ``l<items>e``
- mappings: ``d<key><value>...e`` with byte-string keys

nREPL pipelines several top-level mappings over one socket with no other
framing, so the decoder works on a growing buffer: it returns every value
that is fully present plus the bytes that are not yet decodable. The
caller keeps that remainder and prepends it to the next chunk.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from typing import Any

from ..errors import DecodeError, EncodeError

_INT = re.compile(rb"-?\d+")
_INT_PREFIX = re.compile(rb"-?\d*")

# Deepest list/mapping nesting accepted from the wire
MAX_DEPTH = 256


class _Incomplete(Exception):
    """Raised internally when the buffer ends inside a value."""


def encode(value: Any) -> bytes:
    """Serialize a value to bencode.

    Supports int (bool as 0/1), str, bytes, list/tuple and mappings with
    str or bytes keys. Mapping keys are written in insertion order.

    Raises:
        EncodeError: For any other type, including None and float.
    """
    out = bytearray()
    _encode_into(value, out)
    return bytes(out)


def _encode_into(value: Any, out: bytearray) -> None:
    if isinstance(value, bool):
        out += b"i1e" if value else b"i0e"
    elif isinstance(value, int):
        out += b"i%de" % value
    elif isinstance(value, str):
        _encode_bytes(value.encode("utf-8"), out)
    elif isinstance(value, (bytes, bytearray, memoryview)):
        _encode_bytes(bytes(value), out)
    elif isinstance(value, Mapping):
        out += b"d"
        for key, item in value.items():
            if isinstance(key, str):
                _encode_bytes(key.encode("utf-8"), out)
            elif isinstance(key, bytes):
                _encode_bytes(key, out)
            else:
                raise EncodeError(f"Mapping keys must be str or bytes, got {type(key).__name__}")
            _encode_into(item, out)
        out += b"e"
    elif isinstance(value, (list, tuple)):
        out += b"l"
        for item in value:
            _encode_into(item, out)
        out += b"e"
    else:
        raise EncodeError(f"Cannot bencode value of type {type(value).__name__}")


def _encode_bytes(raw: bytes, out: bytearray) -> None:
    out += b"%d:" % len(raw)
    out += raw


def decode_objects(buffer: bytes | bytearray | memoryview) -> tuple[list[Any], bytes]:
    """Decode every complete top-level value at the start of ``buffer``.

    Args:
        buffer: Accumulated bytes, possibly ending inside a value

    Returns:
        Tuple of (decoded values in arrival order, undecoded remainder).
        A truncated trailing value is returned untouched in the remainder.

    Raises:
        DecodeError: If the buffer holds bytes that can never be valid bencode
    """
    data = bytes(buffer)
    objects: list[Any] = []
    pos = 0
    while pos < len(data):
        try:
            value, end = _decode_value(data, pos)
        except _Incomplete:
            break
        objects.append(value)
        pos = end
    return objects, data[pos:]


def decode_first(buffer: bytes | bytearray | memoryview) -> tuple[Any, bytes] | None:
    """Decode the first top-level value of ``buffer``, if it is complete.

    Bytes after that value are not inspected, so a consumer can stop
    reading at any value without validating what follows it.

    Returns:
        Tuple of (value, remaining bytes), or None if the buffer is empty
        or ends inside the first value

    Raises:
        DecodeError: If the first value can never be valid bencode
    """
    data = bytes(buffer)
    try:
        value, end = _decode_value(data, 0)
    except _Incomplete:
        return None
    return value, data[end:]


def decode(data: bytes | bytearray | memoryview) -> Any:
    """Decode exactly one complete value.

    Raises:
        DecodeError: If the data is malformed, truncated, or has trailing bytes
    """
    raw = bytes(data)
    try:
        value, end = _decode_value(raw, 0)
    except _Incomplete:
        raise DecodeError("Truncated bencode value", offset=len(raw)) from None
    if end != len(raw):
        raise DecodeError(f"{len(raw) - end} trailing bytes after value", offset=end)
    return value


def _decode_value(data: bytes, pos: int, depth: int = 0) -> tuple[Any, int]:
    if pos >= len(data):
        raise _Incomplete
    lead = data[pos : pos + 1]

    if lead in (b"l", b"d") and depth >= MAX_DEPTH:
        raise DecodeError(f"Nesting deeper than {MAX_DEPTH} levels", offset=pos)

    if lead == b"i":
        end = data.find(b"e", pos + 1)
        if end == -1:
            if not _INT_PREFIX.fullmatch(data, pos + 1):
                raise DecodeError("Malformed integer", offset=pos)
            raise _Incomplete
        digits = data[pos + 1 : end]
        if not _INT.fullmatch(digits):
            raise DecodeError(f"Malformed integer {digits!r}", offset=pos)
        return int(digits), end + 1

    if lead == b"l":
        items: list[Any] = []
        pos += 1
        while True:
            if pos >= len(data):
                raise _Incomplete
            if data[pos : pos + 1] == b"e":
                return items, pos + 1
            item, pos = _decode_value(data, pos, depth + 1)
            items.append(item)

    if lead == b"d":
        mapping: dict[str, Any] = {}
        pos += 1
        while True:
            if pos >= len(data):
                raise _Incomplete
            if data[pos : pos + 1] == b"e":
                return mapping, pos + 1
            if not data[pos : pos + 1].isdigit():
                raise DecodeError("Mapping keys must be byte strings", offset=pos)
            raw_key, pos = _decode_bytes(data, pos)
            value, pos = _decode_value(data, pos, depth + 1)
            mapping[raw_key.decode("utf-8", errors="replace")] = value

    if lead.isdigit():
        raw, end = _decode_bytes(data, pos)
        return _as_text(raw), end

    raise DecodeError(f"Unexpected byte {lead!r}", offset=pos)


def _decode_bytes(data: bytes, pos: int) -> tuple[bytes, int]:
    colon = data.find(b":", pos)
    if colon == -1:
        if not data[pos:].isdigit():
            raise DecodeError("Malformed string length", offset=pos)
        raise _Incomplete
    length = data[pos:colon]
    if not length.isdigit():
        raise DecodeError(f"Malformed string length {length!r}", offset=pos)
    start = colon + 1
    end = start + int(length)
    if end > len(data):
        raise _Incomplete
    return data[start:end], end


def _as_text(raw: bytes) -> str | bytes:
    # nREPL strings are UTF-8; anything else stays binary
    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError:
        return raw
