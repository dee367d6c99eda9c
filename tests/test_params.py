import pytest
from typing import Any, cast

from cltvlock.errors import InvalidParameter
from cltvlock.params import LockParameters, normalize_lock_height

PK = '02' + '11' * 32


def test_from_hex_ok_and_coercion():
    p = LockParameters.from_hex(cast(Any, '1000'), PK)
    assert p.lock_height == 1000
    assert p.owner_pubkey == bytes.fromhex(PK)


def test_params_are_immutable():
    p = LockParameters.from_hex(1000, PK)
    with pytest.raises(AttributeError):
        p.lock_height = 5  # type: ignore[misc]


@pytest.mark.parametrize('height', [0, -1, 500_000_000, 600_000_000, 'abc', 1.5])
def test_invalid_lock_heights(height: Any) -> None:
    with pytest.raises(InvalidParameter):
        normalize_lock_height(height)
    with pytest.raises(InvalidParameter):
        LockParameters.from_hex(height, PK)


def test_boundary_height_accepted():
    assert LockParameters.from_hex(499_999_999, PK).lock_height == 499_999_999


@pytest.mark.parametrize('pk', [
    '04' + '11' * 32,   # uncompressed prefix
    '00' + '11' * 32,
    '02' + '11' * 31,   # 32 bytes
    '02' + '11' * 33,   # 34 bytes
    'zz' * 33,
])
def test_invalid_pubkeys(pk: str) -> None:
    with pytest.raises(InvalidParameter):
        LockParameters.from_hex(1000, pk)


def test_validate_catches_direct_construction():
    with pytest.raises(InvalidParameter, match='0x02 or 0x03'):
        LockParameters(1000, b'\x05' + b'\x11' * 32).validate()
    with pytest.raises(InvalidParameter, match='integer'):
        LockParameters(cast(Any, '1000'), bytes.fromhex(PK)).validate()
