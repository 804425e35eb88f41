"""SM3 cryptographic hash function (GB/T 32905-2016)."""

from __future__ import annotations

import struct

SIZE = 32
"""Size of an SM3 checksum in bytes."""

SIZE_BIT_SIZE = 5
"""Bit size of SIZE (SIZE == 1 << SIZE_BIT_SIZE)."""

BLOCK_SIZE = 64
"""Block size of SM3 in bytes."""

_IV = (
    0x7380166F,
    0x4914B2B9,
    0x172442D7,
    0xDA8A0600,
    0xA96F30BC,
    0x163138AA,
    0xE38DEE4D,
    0xB0FB0E4E,
)

_MAGIC = b"sm3\x03"
_MARSHALED_SIZE = len(_MAGIC) + 8 * 4 + BLOCK_SIZE + 8
_MASK32 = 0xFFFFFFFF
_MASK64 = 0xFFFFFFFFFFFFFFFF


def _rotl(x: int, n: int) -> int:
    n &= 31
    return ((x << n) | (x >> (32 - n))) & _MASK32


def _p0(x: int) -> int:
    return x ^ _rotl(x, 9) ^ _rotl(x, 17)


def _p1(x: int) -> int:
    return x ^ _rotl(x, 15) ^ _rotl(x, 23)


_T_ROTATED = tuple(
    _rotl(0x79CC4519 if j < 16 else 0x7A879D8A, j) for j in range(64)
)


def _compress(state: tuple[int, ...], block: bytes | memoryview) -> tuple[int, ...]:
    """Apply the SM3 compression function to one 64-byte block."""
    w = list(struct.unpack(">16I", block))
    for j in range(16, 68):
        w.append(
            _p1(w[j - 16] ^ w[j - 9] ^ _rotl(w[j - 3], 15))
            ^ _rotl(w[j - 13], 7)
            ^ w[j - 6]
        )

    a, b, c, d, e, f, g, h = state
    for j, t in enumerate(_T_ROTATED):
        a12 = _rotl(a, 12)
        ss1 = _rotl((a12 + e + t) & _MASK32, 7)
        ss2 = ss1 ^ a12
        if j < 16:
            ff = a ^ b ^ c
            gg = e ^ f ^ g
        else:
            ff = (a & b) | (a & c) | (b & c)
            gg = (e & f) | (~e & g)
        tt1 = (ff + d + ss2 + (w[j] ^ w[j + 4])) & _MASK32
        tt2 = (gg + h + ss1 + w[j]) & _MASK32
        d = c
        c = _rotl(b, 9)
        b = a
        a = tt1
        h = g
        g = _rotl(f, 19)
        f = e
        e = _p0(tt2)

    return tuple(
        x ^ y for x, y in zip(state, (a, b, c, d, e, f, g, h))
    )


def _compress_all(state: tuple[int, ...], data: bytes) -> tuple[int, ...]:
    view = memoryview(data)
    for offset in range(0, len(view), BLOCK_SIZE):
        state = _compress(state, view[offset:offset + BLOCK_SIZE])
    return state


class SM3:
    """Incremental SM3 hash object with a hashlib-like interface."""

    name = "sm3"
    digest_size = SIZE
    block_size = BLOCK_SIZE

    def __init__(self, data: bytes = b"") -> None:
        self._state: tuple[int, ...] = _IV
        self._pending = b""
        self._length = 0
        if data:
            self.update(data)

    def update(self, data: bytes) -> None:
        """Feed more bytes into the hash."""
        data = bytes(data)
        self._length = (self._length + len(data)) & _MASK64
        buffered = self._pending + data
        full = len(buffered) - len(buffered) % BLOCK_SIZE
        if full:
            self._state = _compress_all(self._state, buffered[:full])
        self._pending = buffered[full:]

    def digest(self) -> bytes:
        """Return the checksum of the data so far without changing the state."""
        pad_len = (55 - self._length) % BLOCK_SIZE
        tail = (
            self._pending
            + b"\x80"
            + b"\x00" * pad_len
            + ((self._length << 3) & _MASK64).to_bytes(8, "big")
        )
        state = _compress_all(self._state, tail)
        return struct.pack(">8I", *state)

    def hexdigest(self) -> str:
        """Return the checksum as a lower-case hexadecimal string."""
        return self.digest().hex()

    def copy(self) -> "SM3":
        """Return an independent copy of this hash object."""
        clone = SM3.__new__(SM3)
        clone._state = self._state
        clone._pending = self._pending
        clone._length = self._length
        return clone

    def reset(self) -> None:
        """Return the hash object to its initial state."""
        self._state = _IV
        self._pending = b""
        self._length = 0

    def marshal_state(self) -> bytes:
        """Serialize the internal hash state."""
        return (
            _MAGIC
            + struct.pack(">8I", *self._state)
            + self._pending.ljust(BLOCK_SIZE, b"\x00")
            + self._length.to_bytes(8, "big")
        )

    @classmethod
    def from_state(cls, state: bytes) -> "SM3":
        """Rebuild a hash object from the output of marshal_state."""
        state = bytes(state)
        if len(state) < len(_MAGIC) or not state.startswith(_MAGIC):
            raise ValueError("sm3: invalid hash state identifier")
        if len(state) != _MARSHALED_SIZE:
            raise ValueError("sm3: invalid hash state size")
        body = state[len(_MAGIC):]
        words = struct.unpack(">8I", body[:32])
        buffer = body[32:32 + BLOCK_SIZE]
        length = int.from_bytes(body[32 + BLOCK_SIZE:], "big")
        obj = cls.__new__(cls)
        obj._state = tuple(words)
        obj._length = length
        obj._pending = buffer[:length % BLOCK_SIZE]
        return obj


def sm3_sum(data: bytes) -> bytes:
    """Return the SM3 checksum of data."""
    return SM3(data).digest()