import pytest

from cltvlock.address import (
    address_to_script_pubkey,
    derive_address,
    funding_commitment,
    parse_address,
    script_address,
    verify_script_address,
)
from cltvlock.errors import AddressChecksumMismatch, AddressError, AddressVersionMismatch, InvalidParameter
from cltvlock.network import MAINNET, REGTEST, TESTNET
from cltvlock.params import LockParameters
from cltvlock.script import build_funding_script, build_locking_script, hash160

from conftest import G_COMPRESSED

BASE58_ALPHABET = '123456789ABCDEFGHJKLMNPQRSTUVWXYZabcdefghijkmnopqrstuvwxyz'


def test_known_vectors():
    assert derive_address(hash160(G_COMPRESSED), 0x00) == '1BgGZ9tcN4rm9KBzDn7KprQz87SZ26SAMH'
    # leading zero bytes map to leading '1's
    assert derive_address(b'\x00' * 20, 0x00) == '1111111111111111111114oLvT2'


@pytest.mark.parametrize('version', [MAINNET.script_version, TESTNET.script_version, 0x00, 0x6f])
def test_roundtrip_and_prefix(version: int) -> None:
    h = bytes(range(20))
    addr = derive_address(h, version)
    assert parse_address(addr, version) == h
    if version == MAINNET.script_version:
        assert addr.startswith('3')
    if version == TESTNET.script_version:
        assert addr.startswith('2')


def test_single_character_corruption_is_rejected():
    h = bytes.fromhex('11' * 20)
    addr = derive_address(h, MAINNET.script_version)
    for i, ch in enumerate(addr):
        replacement = BASE58_ALPHABET[(BASE58_ALPHABET.index(ch) + 1) % 58]
        corrupted = addr[:i] + replacement + addr[i + 1:]
        with pytest.raises(AddressError):
            parse_address(corrupted, MAINNET.script_version)


def test_single_byte_corruption_reports_checksum():
    import base58
    h = bytes.fromhex('22' * 20)
    raw = bytearray(base58.b58decode(derive_address(h, MAINNET.script_version)))
    for i in range(len(raw)):
        corrupted = bytearray(raw)
        corrupted[i] ^= 0x01
        with pytest.raises(AddressChecksumMismatch):
            parse_address(base58.b58encode(bytes(corrupted)).decode(), MAINNET.script_version)


def test_version_mismatch():
    addr = derive_address(b'\x33' * 20, TESTNET.script_version)
    with pytest.raises(AddressVersionMismatch):
        parse_address(addr, MAINNET.script_version)


@pytest.mark.parametrize('bad', ['', '0OIl', '1111', 'not an address'])
def test_undecodable_or_wrong_length(bad: str) -> None:
    with pytest.raises(AddressError):
        parse_address(bad, MAINNET.script_version)


@pytest.mark.parametrize('pad', [' {}', '{}\n', '{} ', '\t{}'])
def test_surrounding_whitespace_rejected(pad: str) -> None:
    addr = derive_address(b'\x33' * 20, MAINNET.script_version)
    assert parse_address(addr, MAINNET.script_version) == b'\x33' * 20
    with pytest.raises(AddressError, match='whitespace'):
        parse_address(pad.format(addr), MAINNET.script_version)


def test_derive_rejects_bad_input():
    with pytest.raises(InvalidParameter):
        derive_address(b'\x00' * 19, 5)
    with pytest.raises(InvalidParameter):
        derive_address(b'\x00' * 20, 256)


def test_funding_commitment_and_verify():
    script = build_locking_script(LockParameters(1000, G_COMPRESSED))
    fc = funding_commitment(script, REGTEST)
    assert fc.script_hash == hash160(script)
    assert fc.script_pubkey == build_funding_script(script)
    assert fc.address == script_address(script, REGTEST)
    assert verify_script_address(script, fc.address, REGTEST) is True

    other = build_locking_script(LockParameters(1001, G_COMPRESSED))
    assert verify_script_address(other, fc.address, REGTEST) is False
    # mainnet address for the same script does not verify on regtest
    assert verify_script_address(script, script_address(script, MAINNET), REGTEST) is False


def test_address_to_script_pubkey():
    script = build_locking_script(LockParameters(1000, G_COMPRESSED))
    assert address_to_script_pubkey(script_address(script, MAINNET), MAINNET) == build_funding_script(script)
    p2pkh = address_to_script_pubkey('1BgGZ9tcN4rm9KBzDn7KprQz87SZ26SAMH', MAINNET)
    assert p2pkh.hex() == '76a914751e76e8199196d454941c45d1b3a323f1433bd688ac'
    with pytest.raises(AddressVersionMismatch):
        address_to_script_pubkey('1BgGZ9tcN4rm9KBzDn7KprQz87SZ26SAMH', REGTEST)
