import pytest

from gmsm.sm3 import BLOCK_SIZE, SIZE, SM3, sm3_sum

_IV_HEX = "7380166f4914b2b9172442d7da8a0600a96f30bc163138aae38dee4db0fb0e4e"
_AFTER_ONE_BLOCK_HEX = "5950de81468664eb42fd4c861e7ca00ac0a5910bae9a55ea1adb8d17763ca222"

ABCD16 = "abcd" * 16
ABCD32 = "abcd" * 32

GOLDEN = [
    ("66c7f0f462eeedd9d1f2d46bdc10e4e24167c4875cf2f7a2297da02b8f4ba8e0", "abc"),
    ("debe9ff92275b8a138604889c18e5a4d6fdb70e5387e5765293dcba39c0c5732", ABCD16),
    ("952eb84cacee9c10bde4d6882d29d63140ba72af6fe485085095dccd5b872453", ABCD16 + "abc"),
    ("90d52a2e85631a8d6035262626941fa11b85ce570cec1e3e991e2dd7ed258148", ABCD32),
    ("e1c53f367a9c5d19ab6ddd30248a7dafcc607e74e6bcfa52b00e0ba35e470421", ABCD32 + "abc"),
]


def _half_state(h_hex, pending, length):
    return (
        b"sm3\x03"
        + bytes.fromhex(h_hex)
        + pending.ljust(64, b"\x00")
        + length.to_bytes(8, "big")
    )


HALF_STATES = [
    _half_state(_IV_HEX, b"a", 1),
    _half_state(_IV_HEX, b"abcd" * 8, 32),
    _half_state(_IV_HEX, b"abcd" * 8 + b"a", 33),
    _half_state(_AFTER_ONE_BLOCK_HEX, b"", 64),
    _half_state(_AFTER_ONE_BLOCK_HEX, b"a", 65),
]


@pytest.mark.parametrize("expected,text", GOLDEN)
def test_golden_sum(expected, text):
    assert sm3_sum(text.encode()).hex() == expected


@pytest.mark.parametrize("expected,text", GOLDEN)
def test_golden_incremental(expected, text):
    data = text.encode()
    h = SM3()
    h.update(data)
    assert h.hexdigest() == expected
    h.reset()
    h.update(data)
    assert h.hexdigest() == expected
    h.reset()
    half = len(data) // 2
    h.update(data[:half])
    h.digest()
    h.update(data[half:])
    assert h.hexdigest() == expected


@pytest.mark.parametrize("expected,text", GOLDEN)
def test_constructor_data(expected, text):
    assert SM3(text.encode()).hexdigest() == expected


@pytest.mark.parametrize(("expected", "text"), GOLDEN)
def test_byte_by_byte(expected, text):
    h = SM3()
    for ch in text.encode():
        h.update(bytes([ch]))
    assert h.hexdigest() == expected


@pytest.mark.parametrize("golden,half_state", list(zip(GOLDEN, HALF_STATES)))
def test_golden_marshal(golden, half_state):
    expected, text = golden
    data = text.encode()
    half = len(data) // 2
    h = SM3()
    h.update(data[:half])
    state = h.marshal_state()
    assert state == half_state
    h2 = SM3.from_state(state)
    h.update(data[half:])
    h2.update(data[half:])
    assert h.digest() == h2.digest()
    assert h2.hexdigest() == expected


def test_size_and_block_size():
    h = SM3()
    assert h.digest_size == SIZE == 32
    assert h.block_size == BLOCK_SIZE == 64
    assert len(h.digest()) == SIZE


def test_copy_is_independent():
    h = SM3(b"ab")
    c = h.copy()
    c.update(b"c")
    assert c.hexdigest() == GOLDEN[0][0]
    assert h.digest() == sm3_sum(b"ab")


def test_digest_does_not_change_state():
    h = SM3(b"abc")
    first = h.digest()
    assert h.digest() == first


def test_from_state_bad_magic():
    state = SM3(b"abc").marshal_state()
    with pytest.raises(ValueError, match="identifier"):
        SM3.from_state(b"xyz\x03" + state[4:])


def test_from_state_bad_size():
    state = SM3(b"abc").marshal_state()
    with pytest.raises(ValueError, match="size"):
        SM3.from_state(state[:-1])


def test_from_state_too_short():
    with pytest.raises(ValueError, match="identifier"):
        SM3.from_state(b"sm")