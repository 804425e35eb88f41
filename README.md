# gmsm

Pure Python implementations of two Chinese national cryptography standards:

- **SM3** (GB/T 32905-2016), a 256-bit cryptographic hash function.
- **SM2** (GB/T 32918.2-2016 and GB/T 32918.4-2016), elliptic-curve digital
  signatures and public-key encryption on the SM2 recommended curve.

The package has four modules:

- `gmsm.sm3`: the SM3 hash.
- `gmsm.ec`: the curve arithmetic (`Curve`, `sm2_curve()`) and the point
  encodings (uncompressed `04`, compressed `02`/`03`, mixed `06`/`07`).
- `gmsm.der`: DER encoding and decoding of signatures and ciphertexts.
- `gmsm.sm2`: keys, signing, verification, encryption and decryption.

## Installation

```
pip install gmsm
```

## SM3 hashing

`gmsm.sm3.SM3` follows the familiar `hashlib` interface (`update`, `digest`,
`hexdigest`, `copy`, plus `reset`):

```python
from gmsm.sm3 import SM3, sm3_sum

h = SM3(b"ab")
h.update(b"c")
print(h.hexdigest())
# 66c7f0f462eeedd9d1f2d46bdc10e4e24167c4875cf2f7a2297da02b8f4ba8e0

assert sm3_sum(b"abc") == h.digest()
```

A running hash can be saved and resumed later with `marshal_state()` and
`SM3.from_state(state)`; `from_state` raises `ValueError` for a state of the
wrong identifier or size.

## SM2 signatures

```python
from gmsm import sm2
from gmsm.sm3 import sm3_sum

priv = sm2.generate_key()
pub = priv.public()

# Sign a precomputed digest, DER-encoded signature
digest = sm3_sum(b"message")
sig = priv.sign(digest)
assert sm2.verify_asn1(pub, digest, sig)

# Sign a raw message with the standard ZA prefix and a user id
sig = priv.sign_with_sm2(b"1234567812345678", b"message")
assert sm2.verify_asn1_with_sm2(pub, b"1234567812345678", b"message", sig)
```

`sm2.sign` and `sm2.sign_with_sm2` return the pair `(r, s)`, checked by
`sm2.verify` and `sm2.verify_with_sm2`. When no user id is given, the default
`sm2.DEFAULT_UID` (`b"1234567812345678"`) is used. `sm2.calculate_za` exposes
the ZA value itself.

Every function that needs randomness takes an optional `rand` argument: a
callable that returns the requested number of bytes. It defaults to
`os.urandom`. The signing nonce is derived from the private key, 32 bytes of
this entropy and the digest, so signatures stay distinct even with a broken
source such as `sm2.zero_reader`.

## SM2 encryption

```python
from gmsm import sm2

priv = sm2.generate_key()
ciphertext = sm2.encrypt(priv.public(), b"encryption standard")
assert sm2.decrypt(priv, ciphertext) == b"encryption standard"
```

Ciphertexts may be produced in several layouts:

- plain `C1 || C3 || C2` (the default) or `C1 || C2 || C3`
  (`sm2.SplicingOrder`), chosen with
  `sm2.plain_encrypter_opts(marshal_mode, splicing_order)`;
- the C1 point uncompressed, compressed or mixed (`sm2.PointMarshalMode`);
- ASN.1 DER, via `sm2.encrypt_asn1`.

`sm2.decrypt` reads the default `C1 || C3 || C2` layout and also accepts DER.
For other layouts use `priv.decrypt(ciphertext, sm2.plain_decrypter_opts(order))`
or `priv.decrypt(ciphertext, sm2.ASN1_DECRYPTER_OPTS)`.

Helpers convert between these layouts: `sm2.asn1_ciphertext_to_plain`,
`sm2.plain_ciphertext_to_asn1` and `sm2.adjust_ciphertext_splicing_order`.

Encrypting an empty message returns `b""`. Failures such as a malformed
ciphertext or a hash mismatch raise `sm2.SM2Error`.

## What the package does not do

- It has no reading or writing of key or certificate files (PEM, PKCS#8,
  X.509). Keys are the dataclasses `sm2.PrivateKey` (an integer `d` and its
  `sm2.PublicKey`) and `sm2.PublicKey` (a curve and the point `x`, `y`).
- It offers no command-line tool; it is a library only.
- The arithmetic uses Python integers and is not constant-time.

## Running the tests

```
pip install -e ".[test]"
pytest
```