"""
Base58Check addresses for the P2SH funding output.

derive_address / parse_address are exact inverses. parse_address checks
length, then checksum, then version, so a corrupted string is reported as
a checksum failure before anything else is trusted.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass

import base58

from .errors import AddressChecksumMismatch, AddressError, AddressVersionMismatch, InvalidParameter
from .network import Network
from .script import OP_EQUAL, OP_HASH160, SCRIPT_HASH_LEN, build_funding_script, build_p2pkh_script, hash160, pushdata, sha256d

logger = logging.getLogger(__name__)

CHECKSUM_LEN = 4
DECODED_LEN = 1 + SCRIPT_HASH_LEN + CHECKSUM_LEN


@dataclass(frozen=True)
class FundingCommitment:
    """P2SH commitment to a locking script.

    Attributes:
        script_hash: 20-byte hash160 of the locking script.
        address: Base58Check P2SH address for the network it was derived for.
        script_pubkey: OP_HASH160 <script_hash> OP_EQUAL.
    """
    script_hash: bytes
    address: str
    script_pubkey: bytes


def checksum(payload: bytes) -> bytes:
    return sha256d(payload)[:CHECKSUM_LEN]


def derive_address(script_hash: bytes, version: int) -> str:
    if not isinstance(script_hash, (bytes, bytearray)) or len(script_hash) != SCRIPT_HASH_LEN:
        raise InvalidParameter(f"script hash must be {SCRIPT_HASH_LEN} bytes")
    if isinstance(version, bool) or not isinstance(version, int) or not 0 <= version <= 0xff:
        raise InvalidParameter("version must be a single byte (0-255)")
    payload = bytes([version]) + bytes(script_hash)
    # base58 maps each leading zero byte to a leading '1'
    return base58.b58encode(payload + checksum(payload)).decode('ascii')


def _decode_payload(address: str) -> bytes:
    if not isinstance(address, str) or not address:
        raise AddressError("address must be a non-empty string")
    if address.strip() != address:
        raise AddressError("address must not carry surrounding whitespace")
    try:
        raw = base58.b58decode(address)
    except ValueError as exc:
        raise AddressError(f"invalid base58 address: {exc}") from exc
    if len(raw) != DECODED_LEN:
        raise AddressError(f"decoded address must be {DECODED_LEN} bytes (got {len(raw)})")
    payload, check = raw[:-CHECKSUM_LEN], raw[-CHECKSUM_LEN:]
    if checksum(payload) != check:
        raise AddressChecksumMismatch("address checksum mismatch")
    return payload


def parse_address(address: str, version: int) -> bytes:
    """Return the 20-byte hash of an address, requiring the given version byte."""
    payload = _decode_payload(address)
    if payload[0] != version:
        raise AddressVersionMismatch(f"address version 0x{payload[0]:02x} != expected 0x{version:02x}")
    return payload[1:]


def script_address(locking_script: bytes, network: Network) -> str:
    return derive_address(hash160(locking_script), network.script_version)


def funding_commitment(locking_script: bytes, network: Network) -> FundingCommitment:
    h = hash160(locking_script)
    address = derive_address(h, network.script_version)
    logger.debug("funding commitment %s on %s", address, network.name)
    return FundingCommitment(h, address, build_funding_script(locking_script))


def verify_script_address(locking_script: bytes, address: str, network: Network) -> bool:
    """Check that a revealed locking script is the one committed to by address."""
    try:
        committed = parse_address(address, network.script_version)
    except AddressError as exc:
        logger.debug("address %s rejected: %s", address, exc)
        return False
    return committed == hash160(locking_script)


def address_to_script_pubkey(address: str, network: Network) -> bytes:
    """scriptPubKey paying to a P2SH or P2PKH address of the given network."""
    payload = _decode_payload(address)
    version, h = payload[0], payload[1:]
    if version == network.script_version:
        return bytes([OP_HASH160]) + pushdata(h) + bytes([OP_EQUAL])
    if version == network.pubkey_version:
        return build_p2pkh_script(h)
    raise AddressVersionMismatch(f"address version 0x{version:02x} is not valid on {network.name}")
