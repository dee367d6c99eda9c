import pytest

from cltvlock.errors import EncodingError, InvalidParameter
from cltvlock.scriptnum import (
    CLTV_MAX_NUM_SIZE,
    decode_scriptnum,
    encode_lock_height,
    encode_scriptnum,
    is_minimal,
)


@pytest.mark.parametrize('n,hex_', [
    (0, ''),
    (1, '01'),
    (16, '10'),
    (127, '7f'),
    (128, '8000'),
    (255, 'ff00'),
    (256, '0001'),
    (1000, 'e803'),
    (32767, 'ff7f'),
    (32768, '008000'),
    (8388608, '00008000'),
    (499_999_999, 'ff64cd1d'),
    (-1, '81'),
    (-127, 'ff'),
    (-128, '8080'),
    (-255, 'ff80'),
])
def test_encode_vectors(n: int, hex_: str) -> None:
    assert encode_scriptnum(n).hex() == hex_
    assert decode_scriptnum(bytes.fromhex(hex_), max_size=CLTV_MAX_NUM_SIZE) == n


def test_lock_height_roundtrip_across_byte_boundaries():
    for n in (1, 0x7f, 0x80, 0xff, 0x100, 0x7fff, 0x8000, 0x7fffff, 0x800000, 0x7fffffff, 0x80000000):
        assert decode_scriptnum(encode_lock_height(n), max_size=CLTV_MAX_NUM_SIZE) == n


@pytest.mark.parametrize('bad', [0, -5, 1.5, '10', True, None])
def test_encode_lock_height_rejects_non_positive_and_non_int(bad) -> None:
    with pytest.raises(InvalidParameter):
        encode_lock_height(bad)


@pytest.mark.parametrize('hex_', ['00', '80', 'e80300', '0100', '7f00', 'ff0080', '000000'])
def test_decode_rejects_non_minimal(hex_: str) -> None:
    assert not is_minimal(bytes.fromhex(hex_))
    with pytest.raises(EncodingError, match='non-minimal'):
        decode_scriptnum(bytes.fromhex(hex_), max_size=CLTV_MAX_NUM_SIZE)


def test_decode_accepts_sign_disambiguating_padding():
    # 0x80 alone would read as negative zero; the 0x00 is required
    assert decode_scriptnum(b'\x80\x00') == 128
    assert decode_scriptnum(b'\xff\x80') == -255


def test_decode_non_minimal_allowed_when_not_required():
    assert decode_scriptnum(bytes.fromhex('e80300'), require_minimal=False) == 1000


def test_decode_rejects_oversized_operands():
    with pytest.raises(EncodingError, match='overflow'):
        decode_scriptnum(b'\x01\x02\x03\x04\x05')
    assert decode_scriptnum(b'\x01\x02\x03\x04\x05', max_size=5) == 0x0504030201
    with pytest.raises(EncodingError, match='overflow'):
        decode_scriptnum(b'\x01' * 6, max_size=CLTV_MAX_NUM_SIZE)
