"""DER encoding of SM2 signatures and ciphertexts."""

from __future__ import annotations

from typing import Tuple

_INTEGER = 0x02
_OCTET_STRING = 0x04
_SEQUENCE = 0x30


class _Malformed(Exception):
    pass


def _encode_length(length: int) -> bytes:
    if length < 0x80:
        return bytes([length])
    body = length.to_bytes((length.bit_length() + 7) // 8, "big")
    return bytes([0x80 | len(body)]) + body


def _tlv(tag: int, content: bytes) -> bytes:
    return bytes([tag]) + _encode_length(len(content)) + content


def _encode_integer(value: int) -> bytes:
    magnitude = value if value >= 0 else ~value
    size = (magnitude.bit_length() + 8) // 8
    return _tlv(_INTEGER, value.to_bytes(size, "big", signed=True))


class _Reader:
    def __init__(self, data: bytes) -> None:
        self._data = bytes(data)
        self._pos = 0

    def empty(self) -> bool:
        return self._pos == len(self._data)

    def _take(self, count: int) -> bytes:
        end = self._pos + count
        if end > len(self._data):
            raise _Malformed
        chunk = self._data[self._pos:end]
        self._pos = end
        return chunk

    def read(self, tag: int) -> bytes:
        header = self._take(2)
        if header[0] != tag:
            raise _Malformed
        first = header[1]
        if first < 0x80:
            length = first
        else:
            count = first & 0x7F
            if count == 0 or count > 4:
                raise _Malformed
            raw = self._take(count)
            if raw[0] == 0:
                raise _Malformed
            length = int.from_bytes(raw, "big")
            if length < 0x80:
                raise _Malformed
        return self._take(length)

    def read_integer(self) -> int:
        content = self.read(_INTEGER)
        if not content:
            raise _Malformed
        if len(content) > 1 and (
            (content[0] == 0x00 and content[1] < 0x80)
            or (content[0] == 0xFF and content[1] >= 0x80)
        ):
            raise _Malformed
        return int.from_bytes(content, "big", signed=True)


def encode_signature(r: int, s: int) -> bytes:
    """Encode (r, s) as SEQUENCE { INTEGER r, INTEGER s }."""
    return _tlv(_SEQUENCE, _encode_integer(r) + _encode_integer(s))


def decode_signature(data: bytes) -> Tuple[int, int]:
    """Decode a DER signature into (r, s); raise ValueError if malformed."""
    try:
        outer = _Reader(data)
        inner = _Reader(outer.read(_SEQUENCE))
        if not outer.empty():
            raise _Malformed
        r = inner.read_integer()
        s = inner.read_integer()
        if not inner.empty():
            raise _Malformed
    except _Malformed:
        raise ValueError("SM2: invalid asn1 format signature") from None
    return r, s


def encode_ciphertext(x1: int, y1: int, c2: bytes, c3: bytes) -> bytes:
    """Encode SEQUENCE { INTEGER x1, INTEGER y1, OCTET STRING c3, OCTET STRING c2 }."""
    return _tlv(
        _SEQUENCE,
        _encode_integer(x1)
        + _encode_integer(y1)
        + _tlv(_OCTET_STRING, bytes(c3))
        + _tlv(_OCTET_STRING, bytes(c2)),
    )


def decode_ciphertext(data: bytes) -> Tuple[int, int, bytes, bytes]:
    """Decode a DER ciphertext into (x1, y1, c2, c3); raise ValueError if malformed."""
    try:
        outer = _Reader(data)
        inner = _Reader(outer.read(_SEQUENCE))
        if not outer.empty():
            raise _Malformed
        x1 = inner.read_integer()
        y1 = inner.read_integer()
        c3 = inner.read(_OCTET_STRING)
        c2 = inner.read(_OCTET_STRING)
        if not inner.empty():
            raise _Malformed
    except _Malformed:
        raise ValueError("SM2: invalid asn1 format ciphertext") from None
    return x1, y1, c2, c3