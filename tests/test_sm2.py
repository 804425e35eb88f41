import pytest

from gmsm.der import decode_signature
from gmsm.ec import sm2_curve
from gmsm.sm2 import (
    ASN1_DECRYPTER_OPTS,
    ASN1_ENCRYPTER_OPTS,
    DEFAULT_UID,
    PointMarshalMode,
    PublicKey,
    SignerOption,
    SM2Error,
    SplicingOrder,
    adjust_ciphertext_splicing_order,
    asn1_ciphertext_to_plain,
    calculate_za,
    decrypt,
    encrypt,
    encrypt_asn1,
    generate_key,
    hash_to_int,
    is_sm2_public_key,
    kdf,
    new_signer_option,
    plain_ciphertext_to_asn1,
    plain_decrypter_opts,
    plain_encrypter_opts,
    sign,
    sign_asn1,
    sign_with_sm2,
    verify,
    verify_asn1,
    verify_asn1_with_sm2,
    verify_with_sm2,
    zero_reader,
)
from gmsm.sm3 import sm3_sum

TEXTS = [
    "encryption standard",
    "encryption standard encryption ",
    "encryption standard encryption standard",
]


@pytest.fixture(scope="module")
def priv():
    return generate_key()


def test_kdf_vector():
    x2 = bytes.fromhex("64D20D27D0632957F8028C1E024F6B02EDF23102A566C932AE8BD613A8E865FE")
    y2 = bytes.fromhex("58D225ECA784AE300A81A2D48281A828E1CEDF11C4219099840265375077BF78")
    result = kdf(x2 + y2, 19)
    assert result is not None
    assert result.hex() == "006e30dae231b071dfad8aa379e90264491603"


def test_kdf_zero_length_fails():
    assert kdf(b"abc", 0) is None


@pytest.mark.parametrize("text", TEXTS)
@pytest.mark.parametrize(
    "from_order,to_order",
    [
        (SplicingOrder.C1C2C3, SplicingOrder.C1C3C2),
        (SplicingOrder.C1C3C2, SplicingOrder.C1C2C3),
    ],
)
def test_splicing_order(priv, text, from_order, to_order):
    ct = encrypt(priv.public(), text.encode(), plain_encrypter_opts(PointMarshalMode.UNCOMPRESSED, from_order))
    assert priv.decrypt(ct, plain_decrypter_opts(from_order)) == text.encode()
    adjusted = adjust_ciphertext_splicing_order(ct, from_order, to_order)
    assert len(adjusted) == len(ct)
    assert priv.decrypt(adjusted, plain_decrypter_opts(to_order)) == text.encode()


@pytest.mark.parametrize("text", TEXTS)
def test_encrypt_decrypt_asn1(priv, text):
    ct = encrypt(priv.public(), text.encode(), ASN1_ENCRYPTER_OPTS)
    assert ct[0] == 0x30
    assert priv.decrypt(ct, ASN1_DECRYPTER_OPTS) == text.encode()
    assert decrypt(priv, ct) == text.encode()


@pytest.mark.parametrize("text", TEXTS)
def test_plain_ciphertext_to_asn1(priv, text):
    ct = encrypt(priv.public(), text.encode())
    converted = plain_ciphertext_to_asn1(ct, SplicingOrder.C1C3C2)
    assert priv.decrypt(converted, ASN1_DECRYPTER_OPTS) == text.encode()


@pytest.mark.parametrize("text", TEXTS)
def test_asn1_ciphertext_to_plain(priv, text):
    ct = encrypt_asn1(priv.public(), text.encode())
    plain = asn1_ciphertext_to_plain(ct, None)
    assert plain[0] == 0x04
    assert priv.decrypt(plain, None) == text.encode()


@pytest.mark.parametrize("text", TEXTS)
@pytest.mark.parametrize(
    "mode", [PointMarshalMode.UNCOMPRESSED, PointMarshalMode.COMPRESSED, PointMarshalMode.MIXED]
)
def test_encrypt_decrypt_modes(priv, text, mode):
    ct = encrypt(priv.public(), text.encode(), plain_encrypter_opts(mode, SplicingOrder.C1C3C2))
    assert decrypt(priv, ct) == text.encode()


def test_ciphertext_lengths(priv):
    msg = b"encryption standard"
    assert len(encrypt(priv.public(), msg)) == 65 + 32 + len(msg)
    compressed = encrypt(priv.public(), msg, plain_encrypter_opts(PointMarshalMode.COMPRESSED, SplicingOrder.C1C3C2))
    assert len(compressed) == 33 + 32 + len(msg)
    assert compressed[0] in (0x02, 0x03)


def test_encrypt_empty_message(priv):
    assert encrypt(priv.public(), b"") == b""


def test_encrypt_rejects_infinity():
    with pytest.raises(SM2Error):
        encrypt(PublicKey(sm2_curve(), 0, 0), b"message")


def test_decrypt_tampered(priv):
    ct = bytearray(encrypt(priv.public(), b"encryption standard"))
    ct[-1] ^= 0x01
    with pytest.raises(SM2Error):
        decrypt(priv, bytes(ct))


def test_decrypt_too_short(priv):
    with pytest.raises(SM2Error):
        decrypt(priv, b"\x04" + b"\x00" * 40)


def test_plain_to_asn1_rejects_der(priv):
    ct = encrypt_asn1(priv.public(), b"data")
    with pytest.raises(SM2Error):
        plain_ciphertext_to_asn1(ct, SplicingOrder.C1C3C2)


@pytest.mark.parametrize("text", TEXTS)
def test_sign_verify(priv, text):
    digest = sm3_sum(text.encode())
    sig = priv.sign(digest, None)
    assert verify_asn1(priv.public(), digest, sig)
    assert not verify_asn1(priv.public(), sm3_sum(b"other"), sig)


def test_sign_with_sm2_round_trip(priv):
    msg = b"message to sign"
    sig = priv.sign_with_sm2(b"", msg)
    assert verify_asn1_with_sm2(priv.public(), DEFAULT_UID, msg, sig)
    assert not verify_asn1_with_sm2(priv.public(), DEFAULT_UID, b"changed", sig)
    r, s = sign_with_sm2(priv, b"custom id", msg)
    assert verify_with_sm2(priv.public(), b"custom id", msg, r, s)
    assert not verify_with_sm2(priv.public(), DEFAULT_UID, msg, r, s)


def test_sign_asn1_with_option(priv):
    msg = b"raw message"
    sig = sign_asn1(priv, msg, new_signer_option(True, b""))
    assert verify_asn1_with_sm2(priv.public(), b"", msg, sig)


def test_new_signer_option_default_uid():
    assert new_signer_option(True, b"") == SignerOption(DEFAULT_UID, True)
    assert new_signer_option(False, b"") == SignerOption(b"", False)


def test_verify_rejects_out_of_range(priv):
    n = sm2_curve().n
    digest = sm3_sum(b"x")
    assert not verify(priv.public(), digest, 0, 1)
    assert not verify(priv.public(), digest, 1, n)


def test_verify_asn1_rejects_garbage(priv):
    assert not verify_asn1(priv.public(), sm3_sum(b"x"), b"\x30\x00\x01")


def test_nonce_safety(priv):
    r0, s0 = sign(priv, b"testing", zero_reader)
    r1, s1 = sign(priv, b"testing...", zero_reader)
    assert s0 != s1
    assert r0 != r1


def test_ind_cca(priv):
    r0, s0 = sign(priv, b"testing")
    r1, s1 = sign(priv, b"testing")
    assert s0 != s1
    assert r0 != r1
    assert verify(priv.public(), b"testing", r0, s0)


def test_signature_der_decodes(priv):
    sig = priv.sign(sm3_sum(b"abc"))
    r, s = decode_signature(sig)
    assert 0 < r < sm2_curve().n
    assert 0 < s < sm2_curve().n


def test_equal():
    private = generate_key()
    public = private.public_key
    assert public == public
    assert public == private.public()
    assert private == private
    other = generate_key()
    assert public != other.public_key
    assert private != other


def test_zero_reader():
    assert zero_reader(5) == b"\x00" * 5


def test_hash_to_int_truncates():
    curve = sm2_curve()
    data = bytes(range(40))
    assert hash_to_int(data, curve) == int.from_bytes(data[:32], "big")


def test_calculate_za_uid_too_long(priv):
    with pytest.raises(SM2Error):
        calculate_za(priv.public(), b"a" * 0x2000)


def test_calculate_za_depends_on_uid(priv):
    za = calculate_za(priv.public(), DEFAULT_UID)
    assert len(za) == 32
    assert za == calculate_za(priv.public(), DEFAULT_UID)
    assert za != calculate_za(priv.public(), b"other")


def test_is_sm2_public_key(priv):
    assert is_sm2_public_key(priv.public())
    assert not is_sm2_public_key(priv)
    assert not is_sm2_public_key("key")