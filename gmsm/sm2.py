"""SM2 public key signatures and encryption (GB/T 32918.2-2016, GB/T 32918.4-2016)."""

from __future__ import annotations

import hashlib
import hmac
import os
import secrets
import struct
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional, Tuple

from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from gmsm.der import (
    decode_ciphertext,
    decode_signature,
    encode_ciphertext,
    encode_signature,
)
from gmsm.ec import (
    Curve,
    bytes_to_point,
    point_to_compressed,
    point_to_mixed,
    point_to_uncompressed,
    sm2_curve,
    to_bytes,
)
from gmsm.sm3 import SIZE as SM3_SIZE
from gmsm.sm3 import SM3, sm3_sum

RandomSource = Callable[[int], bytes]
"""A callable that returns exactly the requested number of random bytes."""

DEFAULT_UID = b"1234567812345678"
MAX_RETRY_LIMIT = 100

_AES_IV = b"IV for ECDSA CTR"


class SM2Error(ValueError):
    """Raised when an SM2 operation fails."""


class PointMarshalMode(Enum):
    """How the point C1 is written into a plain ciphertext."""

    UNCOMPRESSED = 0
    COMPRESSED = 1
    MIXED = 2

    def marshal(self, curve: Curve, x: int, y: int) -> bytes:
        """Encode the point (x, y) in this mode."""
        if self is PointMarshalMode.COMPRESSED:
            return point_to_compressed(curve, x, y)
        if self is PointMarshalMode.MIXED:
            return point_to_mixed(curve, x, y)
        return point_to_uncompressed(curve, x, y)


class SplicingOrder(Enum):
    """Order of the parts of a plain ciphertext."""

    C1C3C2 = 0
    C1C2C3 = 1


class CiphertextEncoding(Enum):
    """Plain concatenation or DER encoding of a ciphertext."""

    PLAIN = 0
    ASN1 = 1


@dataclass(frozen=True)
class EncrypterOpts:
    """Options for encryption."""

    encoding: CiphertextEncoding = CiphertextEncoding.PLAIN
    marshal_mode: PointMarshalMode = PointMarshalMode.UNCOMPRESSED
    splicing_order: SplicingOrder = SplicingOrder.C1C3C2


@dataclass(frozen=True)
class DecrypterOpts:
    """Options for decryption."""

    encoding: CiphertextEncoding = CiphertextEncoding.PLAIN
    splicing_order: SplicingOrder = SplicingOrder.C1C3C2


DEFAULT_ENCRYPTER_OPTS = EncrypterOpts()
ASN1_ENCRYPTER_OPTS = EncrypterOpts(CiphertextEncoding.ASN1)
ASN1_DECRYPTER_OPTS = DecrypterOpts(CiphertextEncoding.ASN1)


def plain_encrypter_opts(marshal_mode: PointMarshalMode, splicing_order: SplicingOrder) -> EncrypterOpts:
    """Return plain-encoding encryption options."""
    return EncrypterOpts(CiphertextEncoding.PLAIN, marshal_mode, splicing_order)


def plain_decrypter_opts(splicing_order: SplicingOrder) -> DecrypterOpts:
    """Return plain-encoding decryption options."""
    return DecrypterOpts(CiphertextEncoding.PLAIN, splicing_order)


@dataclass(frozen=True)
class SignerOption:
    """SM2 signing option: with force_gm_sign the input is the raw message."""

    uid: bytes = b""
    force_gm_sign: bool = False


def new_signer_option(force_gm_sign: bool, uid: bytes = b"") -> SignerOption:
    """Create a signer option, using the default UID when GM signing without one."""
    if force_gm_sign and not uid:
        uid = DEFAULT_UID
    return SignerOption(bytes(uid), force_gm_sign)


@dataclass(frozen=True)
class PublicKey:
    """A point on a curve used as a public key."""

    curve: Curve
    x: int
    y: int


@dataclass(frozen=True)
class PrivateKey:
    """An SM2 private key together with its public key."""

    public_key: PublicKey
    d: int

    @property
    def curve(self) -> Curve:
        return self.public_key.curve

    def public(self) -> PublicKey:
        """Return the public part of the key."""
        return self.public_key

    def sign(self, digest: bytes, opts: Optional[SignerOption] = None,
             rand: Optional[RandomSource] = None) -> bytes:
        """Sign and return a DER signature.

        With a SignerOption whose force_gm_sign is set, digest is the raw
        message and the option's UID is used.
        """
        if isinstance(opts, SignerOption) and opts.force_gm_sign:
            r, s = sign_with_sm2(self, opts.uid, digest, rand)
        else:
            r, s = sign(self, digest, rand)
        return encode_signature(r, s)

    def sign_with_sm2(self, uid: bytes, msg: bytes, rand: Optional[RandomSource] = None) -> bytes:
        """Sign a raw message with uid and return a DER signature."""
        return self.sign(msg, new_signer_option(True, uid), rand)

    def decrypt(self, ciphertext: bytes, opts: Optional[DecrypterOpts] = None) -> bytes:
        """Decrypt a ciphertext produced by encrypt."""
        return _decrypt(self, ciphertext, opts if isinstance(opts, DecrypterOpts) else None)


def zero_reader(n: int) -> bytes:
    """A random source that yields only zero bytes."""
    return b"\x00" * n


def _read(rand: Optional[RandomSource], n: int) -> bytes:
    data = (rand or os.urandom)(n)
    if len(data) != n:
        raise SM2Error("SM2: short read from random source")
    return bytes(data)


def _maybe_read_byte(rand: Optional[RandomSource]) -> None:
    # Consume a byte half of the time so callers cannot rely on determinism.
    if secrets.randbits(1):
        (rand or os.urandom)(1)


def _rand_field_element(curve: Curve, rand: Optional[RandomSource]) -> int:
    """Random k in [1, n-1] (FIPS 186-4, B.5.1)."""
    c = int.from_bytes(_read(rand, curve.bit_size // 8 + 8), "big")
    return c % (curve.n - 1) + 1


def _int_bytes(value: int) -> bytes:
    return value.to_bytes((value.bit_length() + 7) // 8, "big")


def generate_key(rand: Optional[RandomSource] = None) -> PrivateKey:
    """Generate a new SM2 key pair."""
    curve = sm2_curve()
    d = _rand_field_element(curve, rand)
    x, y = curve.scalar_base_mult(d)
    return PrivateKey(PublicKey(curve, x, y), d)


def kdf(z: bytes, length: int) -> Optional[bytes]:
    """Key derivation (GB/T 32918.4-2016 5.4.3); None if the output is all zero."""
    blocks = (length + SM3_SIZE - 1) // SM3_SIZE
    out = b"".join(
        sm3_sum(bytes(z) + struct.pack(">I", counter))
        for counter in range(1, blocks + 1)
    )[:length]
    if not any(out):
        return None
    return out


def _calculate_c3(curve: Curve, x2: int, y2: int, msg: bytes) -> bytes:
    return sm3_sum(to_bytes(curve, x2) + msg + to_bytes(curve, y2))


def _splice(c1: bytes, c2: bytes, c3: bytes, order: SplicingOrder) -> bytes:
    if order is SplicingOrder.C1C3C2:
        return c1 + c3 + c2
    return c1 + c2 + c3


def encrypt(pub: PublicKey, msg: bytes, opts: Optional[EncrypterOpts] = None,
            rand: Optional[RandomSource] = None) -> bytes:
    """Encrypt msg for pub (GB/T 32918.4-2016)."""
    msg = bytes(msg)
    if not msg:
        return b""
    opts = opts or DEFAULT_ENCRYPTER_OPTS
    curve = pub.curve
    if pub.x == 0 and pub.y == 0:
        raise SM2Error("SM2: invalid public key")
    for _ in range(MAX_RETRY_LIMIT):
        k = _rand_field_element(curve, rand)
        x1, y1 = curve.scalar_base_mult(k)
        x2, y2 = curve.scalar_mult(pub.x, pub.y, k)
        t = kdf(to_bytes(curve, x2) + to_bytes(curve, y2), len(msg))
        if t is None:
            continue
        c2 = bytes(m ^ v for m, v in zip(msg, t))
        c3 = _calculate_c3(curve, x2, y2, msg)
        if opts.encoding is CiphertextEncoding.PLAIN:
            c1 = opts.marshal_mode.marshal(curve, x1, y1)
            return _splice(c1, c2, c3, opts.splicing_order)
        return encode_ciphertext(x1, y1, c2, c3)
    raise SM2Error(f"SM2: A5, failed to calculate valid t, tried {MAX_RETRY_LIMIT} times")


def encrypt_asn1(pub: PublicKey, msg: bytes, rand: Optional[RandomSource] = None) -> bytes:
    """Encrypt msg for pub and return the DER encoding."""
    return encrypt(pub, msg, ASN1_ENCRYPTER_OPTS, rand)


def _raw_decrypt(priv: PrivateKey, x1: int, y1: int, c2: bytes, c3: bytes) -> bytes:
    curve = priv.curve
    x2, y2 = curve.scalar_mult(x1, y1, priv.d)
    t = kdf(to_bytes(curve, x2) + to_bytes(curve, y2), len(c2))
    if t is None:
        raise SM2Error("SM2: invalid cipher text")
    msg = bytes(c ^ v for c, v in zip(c2, t))
    if not hmac.compare_digest(bytes(c3), _calculate_c3(curve, x2, y2, msg)):
        raise SM2Error("SM2: invalid hash value")
    return msg


def _unmarshal_asn1(ciphertext: bytes) -> Tuple[int, int, bytes, bytes]:
    try:
        return decode_ciphertext(ciphertext)
    except ValueError as exc:
        raise SM2Error(str(exc)) from None


def _decrypt_asn1(priv: PrivateKey, ciphertext: bytes) -> bytes:
    return _raw_decrypt(priv, *_unmarshal_asn1(ciphertext))


def _split_plain(curve: Curve, ciphertext: bytes,
                 order: SplicingOrder) -> Tuple[int, int, bytes, bytes, bytes]:
    """Return (x1, y1, c1, c2, c3) from a plain ciphertext."""
    if len(ciphertext) <= 1 + curve.bit_size // 8 + SM3_SIZE:
        raise SM2Error("SM2: invalid ciphertext length")
    try:
        x1, y1, c3_start = bytes_to_point(curve, ciphertext)
    except ValueError as exc:
        raise SM2Error(str(exc)) from None
    c1 = ciphertext[:c3_start]
    if order is SplicingOrder.C1C3C2:
        c3 = ciphertext[c3_start:c3_start + SM3_SIZE]
        c2 = ciphertext[c3_start + SM3_SIZE:]
    else:
        c2 = ciphertext[c3_start:len(ciphertext) - SM3_SIZE]
        c3 = ciphertext[len(ciphertext) - SM3_SIZE:]
    return x1, y1, c1, c2, c3


def _decrypt(priv: PrivateKey, ciphertext: bytes, opts: Optional[DecrypterOpts]) -> bytes:
    ciphertext = bytes(ciphertext)
    order = SplicingOrder.C1C3C2
    if opts is not None:
        if opts.encoding is CiphertextEncoding.ASN1:
            return _decrypt_asn1(priv, ciphertext)
        order = opts.splicing_order
    if not ciphertext:
        raise SM2Error("SM2: invalid ciphertext length")
    if ciphertext[0] == 0x30:
        return _decrypt_asn1(priv, ciphertext)
    x1, y1, _, c2, c3 = _split_plain(priv.curve, ciphertext, order)
    return _raw_decrypt(priv, x1, y1, c2, c3)


def decrypt(priv: PrivateKey, ciphertext: bytes) -> bytes:
    """Decrypt a C1C3C2 plain or DER ciphertext."""
    return _decrypt(priv, ciphertext, None)


def asn1_ciphertext_to_plain(ciphertext: bytes, opts: Optional[EncrypterOpts] = None) -> bytes:
    """Convert a DER ciphertext to the plain encoding described by opts."""
    opts = opts or DEFAULT_ENCRYPTER_OPTS
    x1, y1, c2, c3 = _unmarshal_asn1(ciphertext)
    c1 = opts.marshal_mode.marshal(sm2_curve(), x1, y1)
    return _splice(c1, c2, c3, opts.splicing_order)


def plain_ciphertext_to_asn1(ciphertext: bytes, from_order: SplicingOrder) -> bytes:
    """Convert a plain ciphertext in from_order to the DER encoding."""
    ciphertext = bytes(ciphertext)
    if not ciphertext or ciphertext[0] == 0x30:
        raise SM2Error("SM2: invalid plain encoding ciphertext")
    x1, y1, _, c2, c3 = _split_plain(sm2_curve(), ciphertext, from_order)
    return encode_ciphertext(x1, y1, c2, c3)


def adjust_ciphertext_splicing_order(ciphertext: bytes, from_order: SplicingOrder,
                                     to_order: SplicingOrder) -> bytes:
    """Reorder the C2 and C3 parts of a plain ciphertext."""
    ciphertext = bytes(ciphertext)
    if from_order is to_order:
        return ciphertext
    _, _, c1, c2, c3 = _split_plain(sm2_curve(), ciphertext, from_order)
    return _splice(c1, c2, c3, to_order)


def hash_to_int(digest: bytes, curve: Curve) -> int:
    """Convert a hash to an integer using its left-most bits (FIPS 186-4, 6.4)."""
    order_bits = curve.n.bit_length()
    order_bytes = (order_bits + 7) // 8
    digest = bytes(digest)[:order_bytes]
    value = int.from_bytes(digest, "big")
    excess = len(digest) * 8 - order_bits
    if excess > 0:
        value >>= excess
    return value


def calculate_za(pub: PublicKey, uid: bytes) -> bytes:
    """ZA = SM3(ENTLA || IDA || a || b || xG || yG || xA || yA) (GB/T 32918.2-2016 5.5)."""
    uid = bytes(uid)
    if len(uid) >= 0x2000:
        raise SM2Error("the uid is too long")
    curve = pub.curve
    md = SM3(((len(uid) << 3) & 0xFFFF).to_bytes(2, "big"))
    md.update(uid)
    for value in (curve.p - 3, curve.b, curve.gx, curve.gy, pub.x, pub.y):
        md.update(to_bytes(curve, value))
    return md.digest()


def _sign_generic(priv: PrivateKey, csprng: RandomSource, digest: bytes) -> Tuple[int, int]:
    curve = priv.curve
    n = curve.n
    if n == 0:
        raise SM2Error("zero parameter")
    e = hash_to_int(digest, curve)
    dp1_inv = pow(priv.d + 1, n - 2, n)
    while True:
        while True:
            k = _rand_field_element(curve, csprng)
            x, _ = curve.scalar_base_mult(k)
            r = (x + e) % n
            if r != 0 and r + k != n:
                break
        s = (k - priv.d * r) * dp1_inv % n
        if s != 0:
            return r, s


def sign(priv: PrivateKey, digest: bytes, rand: Optional[RandomSource] = None) -> Tuple[int, int]:
    """Sign a digest, returning (r, s); the nonce mixes the key, entropy and digest."""
    _maybe_read_byte(rand)
    entropy = _read(rand, 32)
    digest = bytes(digest)
    key = hashlib.sha512(_int_bytes(priv.d) + entropy + digest).digest()[:32]
    encryptor = Cipher(algorithms.AES(key), modes.CTR(_AES_IV)).encryptor()

    def csprng(n: int) -> bytes:
        return encryptor.update(b"\x00" * n)

    return _sign_generic(priv, csprng, digest)


def sign_with_sm2(priv: PrivateKey, uid: bytes, msg: bytes,
                  rand: Optional[RandomSource] = None) -> Tuple[int, int]:
    """Sign a raw message with the SM2 ZA prefix, returning (r, s)."""
    za = calculate_za(priv.public_key, uid or DEFAULT_UID)
    return sign(priv, sm3_sum(za + bytes(msg)), rand)


def sign_asn1(priv: PrivateKey, digest: bytes, opts: Optional[SignerOption] = None,
              rand: Optional[RandomSource] = None) -> bytes:
    """Sign and return a DER signature."""
    return priv.sign(digest, opts, rand)


def verify(pub: PublicKey, digest: bytes, r: int, s: int) -> bool:
    """Report whether (r, s) is a valid signature of digest."""
    curve = pub.curve
    n = curve.n
    if r <= 0 or s <= 0 or r >= n or s >= n:
        return False
    e = hash_to_int(digest, curve)
    t = (r + s) % n
    if t == 0:
        return False
    x1, y1 = curve.scalar_base_mult(s)
    x2, y2 = curve.scalar_mult(pub.x, pub.y, t)
    x, _ = curve.add(x1, y1, x2, y2)
    return (x + e) % n == r


def verify_asn1(pub: PublicKey, digest: bytes, sig: bytes) -> bool:
    """Report whether the DER signature sig of digest is valid."""
    try:
        r, s = decode_signature(sig)
    except ValueError:
        return False
    return verify(pub, digest, r, s)


def verify_with_sm2(pub: PublicKey, uid: bytes, msg: bytes, r: int, s: int) -> bool:
    """Report whether (r, s) is a valid SM2 signature of the raw message."""
    try:
        za = calculate_za(pub, uid or DEFAULT_UID)
    except SM2Error:
        return False
    return verify(pub, sm3_sum(za + bytes(msg)), r, s)


def verify_asn1_with_sm2(pub: PublicKey, uid: bytes, msg: bytes, sig: bytes) -> bool:
    """Report whether the DER signature sig of the raw message is valid."""
    try:
        r, s = decode_signature(sig)
    except ValueError:
        return False
    return verify_with_sm2(pub, uid, msg, r, s)


def is_sm2_public_key(key: object) -> bool:
    """Report whether key is a public key on the SM2 curve."""
    return isinstance(key, PublicKey) and key.curve.name.lower() == sm2_curve().name.lower()