"""Short Weierstrass curves with a = -3 and SM2 point encodings."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple, Union

UNCOMPRESSED = 0x04
COMPRESSED_02 = 0x02
COMPRESSED_03 = 0x03
MIXED_06 = 0x06
MIXED_07 = 0x07

Scalar = Union[int, bytes, bytearray]

# Jacobian coordinates (X, Y, Z); Z == 0 is the point at infinity.
_Jacobian = Tuple[int, int, int]
_INFINITY: _Jacobian = (1, 1, 0)


def _to_jacobian(x: int, y: int) -> _Jacobian:
    if x == 0 and y == 0:
        return _INFINITY
    return (x, y, 1)


def _to_affine(point: _Jacobian, p: int) -> Tuple[int, int]:
    x, y, z = point
    if z % p == 0:
        return 0, 0
    z_inv = pow(z, -1, p)
    z_inv2 = z_inv * z_inv % p
    return x * z_inv2 % p, y * z_inv2 * z_inv % p


def _double(point: _Jacobian, p: int) -> _Jacobian:
    x, y, z = point
    if z == 0 or y == 0:
        return _INFINITY
    delta = z * z % p
    gamma = y * y % p
    beta = x * gamma % p
    alpha = 3 * (x - delta) * (x + delta) % p
    x3 = (alpha * alpha - 8 * beta) % p
    z3 = ((y + z) * (y + z) - gamma - delta) % p
    y3 = (alpha * (4 * beta - x3) - 8 * gamma * gamma) % p
    return (x3, y3, z3)


def _add(first: _Jacobian, second: _Jacobian, p: int) -> _Jacobian:
    x1, y1, z1 = first
    x2, y2, z2 = second
    if z1 == 0:
        return second
    if z2 == 0:
        return first
    z1z1 = z1 * z1 % p
    z2z2 = z2 * z2 % p
    u1 = x1 * z2z2 % p
    u2 = x2 * z1z1 % p
    s1 = y1 * z2 * z2z2 % p
    s2 = y2 * z1 * z1z1 % p
    if u1 == u2:
        if s1 == s2:
            return _double(first, p)
        return _INFINITY
    h = (u2 - u1) % p
    r = (s2 - s1) % p
    hh = h * h % p
    hhh = h * hh % p
    v = u1 * hh % p
    x3 = (r * r - hhh - 2 * v) % p
    y3 = (r * (v - x3) - s1 * hhh) % p
    z3 = z1 * z2 * h % p
    return (x3, y3, z3)


def _scalar_to_int(k: Scalar) -> int:
    if isinstance(k, (bytes, bytearray)):
        return int.from_bytes(k, "big")
    if k < 0:
        raise ValueError("scalar must not be negative")
    return k


@dataclass(frozen=True)
class Curve:
    """A prime-field curve y^2 = x^3 - 3x + b with affine (0, 0) as infinity."""

    name: str
    p: int
    n: int
    b: int
    gx: int
    gy: int
    bit_size: int

    @property
    def a(self) -> int:
        """The curve coefficient a, which is p - 3."""
        return self.p - 3

    @property
    def byte_len(self) -> int:
        """Number of bytes needed for one field element."""
        return (self.bit_size + 7) >> 3

    def is_on_curve(self, x: int, y: int) -> bool:
        """Report whether (x, y) is a point of the curve."""
        if not (0 <= x < self.p and 0 <= y < self.p):
            return False
        return (y * y - (x * x * x - 3 * x + self.b)) % self.p == 0

    def add(self, x1: int, y1: int, x2: int, y2: int) -> Tuple[int, int]:
        """Return the sum of two affine points."""
        total = _add(_to_jacobian(x1, y1), _to_jacobian(x2, y2), self.p)
        return _to_affine(total, self.p)

    def _multiply(self, point: _Jacobian, k: int) -> Tuple[int, int]:
        result = _INFINITY
        for bit in bin(k)[2:]:
            result = _double(result, self.p)
            if bit == "1":
                result = _add(result, point, self.p)
        return _to_affine(result, self.p)

    def scalar_mult(self, x: int, y: int, k: Scalar) -> Tuple[int, int]:
        """Return k * (x, y); k is an integer or big-endian bytes."""
        return self._multiply(_to_jacobian(x, y), _scalar_to_int(k))

    def scalar_base_mult(self, k: Scalar) -> Tuple[int, int]:
        """Return k * G; k is an integer or big-endian bytes."""
        return self._multiply((self.gx, self.gy, 1), _scalar_to_int(k))


_SM2_P256 = Curve(
    name="sm2p256v1",
    p=0xFFFFFFFEFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFF00000000FFFFFFFFFFFFFFFF,
    n=0xFFFFFFFEFFFFFFFFFFFFFFFFFFFFFFFF7203DF6B21C6052B53BBF40939D54123,
    b=0x28E9FA9E9D9F5E344D5A9E4BCF6509A7F39789F515AB8F92DDBCBD414D940E93,
    gx=0x32C4AE2C1F1981195F9904466A39C9948FE30BBFF2660BE1715A4589334C74C7,
    gy=0xBC3736A2F4F6779C59BDCEE36B692153D0A9877CC62A474002DF32E52139F0A0,
    bit_size=256,
)


def sm2_curve() -> Curve:
    """Return the SM2 recommended 256-bit curve."""
    return _SM2_P256


def to_bytes(curve: Curve, value: int) -> bytes:
    """Encode value big-endian, left-padded to the curve's field size."""
    return value.to_bytes(curve.byte_len, "big")


def point_to_uncompressed(curve: Curve, x: int, y: int) -> bytes:
    """Encode a point as 04 || x || y."""
    return bytes([UNCOMPRESSED]) + to_bytes(curve, x) + to_bytes(curve, y)


def point_to_compressed(curve: Curve, x: int, y: int) -> bytes:
    """Encode a point as 02/03 || x."""
    prefix = COMPRESSED_03 if last_bit_of_y(x, y) else COMPRESSED_02
    return bytes([prefix]) + to_bytes(curve, x)


def point_to_mixed(curve: Curve, x: int, y: int) -> bytes:
    """Encode a point as 06/07 || x || y."""
    prefix = MIXED_07 if last_bit_of_y(x, y) else MIXED_06
    return bytes([prefix]) + to_bytes(curve, x) + to_bytes(curve, y)


def last_bit_of_y(x: int, y: int) -> int:
    """Return the lowest bit of y, or 0 for the point with x == 0."""
    if x == 0:
        return 0
    return y & 1


def to_point_xy(data: bytes) -> int:
    """Interpret bytes as an unsigned big-endian integer."""
    return int.from_bytes(data, "big")


def _mod_sqrt(a: int, p: int) -> Optional[int]:
    a %= p
    if a == 0:
        return 0
    if pow(a, (p - 1) // 2, p) != 1:
        return None
    if p % 4 == 3:
        return pow(a, (p + 1) // 4, p)
    q, s = p - 1, 0
    while q % 2 == 0:
        q //= 2
        s += 1
    z = 2
    while pow(z, (p - 1) // 2, p) != p - 1:
        z += 1
    m, c, t, r = s, pow(z, q, p), pow(a, q, p), pow(a, (q + 1) // 2, p)
    while t != 1:
        i, t2 = 0, t
        while t2 != 1:
            t2 = t2 * t2 % p
            i += 1
        b = pow(c, 1 << (m - i - 1), p)
        m, c, t, r = i, b * b % p, t * b * b % p, r * b % p
    return r


def calculate_prime_curve_y(curve: Curve, x: int) -> int:
    """Return a y with y^2 = x^3 - 3x + b, or raise ValueError."""
    rhs = (x * x * x - 3 * x + curve.b) % curve.p
    y = _mod_sqrt(rhs, curve.p)
    if y is None:
        raise ValueError("can't calculate y based on x")
    return y


def bytes_to_point(curve: Curve, data: bytes) -> Tuple[int, int, int]:
    """Decode a point at the start of data.

    Returns (x, y, consumed) where consumed is the number of bytes used.
    """
    if len(data) < 1 + curve.bit_size // 8:
        raise ValueError(f"invalid bytes length {len(data)}")
    fmt = data[0]
    byte_len = curve.byte_len
    if fmt in (UNCOMPRESSED, MIXED_06, MIXED_07):
        if len(data) < 1 + byte_len * 2:
            raise ValueError(f"invalid uncompressed bytes length {len(data)}")
        x = to_point_xy(data[1:1 + byte_len])
        y = to_point_xy(data[1 + byte_len:1 + byte_len * 2])
        if not curve.is_on_curve(x, y):
            raise ValueError(f"point c1 is not on curve {curve.name}")
        return x, y, 1 + byte_len * 2
    if fmt in (COMPRESSED_02, COMPRESSED_03):
        if len(data) < 1 + byte_len:
            raise ValueError(f"invalid compressed bytes length {len(data)}")
        if curve.name.startswith("P-") or curve.name.lower() == _SM2_P256.name.lower():
            x = to_point_xy(data[1:1 + byte_len])
            y = calculate_prime_curve_y(curve, x)
            odd = last_bit_of_y(x, y) > 0
            if (odd and fmt == COMPRESSED_02) or (not odd and fmt == COMPRESSED_03):
                y = curve.p - y
            return x, y, 1 + byte_len
        raise ValueError(f"unsupport bytes format {fmt}, curve {curve.name}")
    raise ValueError(f"unknown bytes format {fmt}")