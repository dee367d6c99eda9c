"""
Lock parameters for the CLTV script.

A lightweight, explicit container for the two values that define a lock:
the absolute block height and the owner's compressed public key.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from .duration import LOCKTIME_THRESHOLD
from .errors import InvalidParameter
from .hexutil import parse_hex

COMPRESSED_PUBKEY_LEN = 33
COMPRESSED_PREFIXES = (0x02, 0x03)


def normalize_lock_height(value: Any) -> int:
    """Coerce a lock height to int and enforce the block-height range."""
    if isinstance(value, bool):
        raise InvalidParameter("lock_height must be an integer")
    try:
        n = int(value)
    except (TypeError, ValueError) as exc:
        raise InvalidParameter("lock_height must be an integer") from exc
    if isinstance(value, float) and value != n:
        raise InvalidParameter("lock_height must be an integer")
    if n <= 0:
        raise InvalidParameter("lock_height must be a positive integer")
    if n >= LOCKTIME_THRESHOLD:
        raise InvalidParameter(f"lock_height must be < {LOCKTIME_THRESHOLD} (larger values are timestamps)")
    return n


def check_compressed_pubkey(pubkey: Any) -> bytes:
    if not isinstance(pubkey, (bytes, bytearray)):
        raise InvalidParameter("owner_pubkey must be bytes")
    if len(pubkey) != COMPRESSED_PUBKEY_LEN:
        raise InvalidParameter(f"owner_pubkey must be {COMPRESSED_PUBKEY_LEN} bytes (got {len(pubkey)})")
    if pubkey[0] not in COMPRESSED_PREFIXES:
        raise InvalidParameter(f"owner_pubkey must start with 0x02 or 0x03 (got 0x{pubkey[0]:02x})")
    return bytes(pubkey)


@dataclass(frozen=True)
class LockParameters:
    """Parameters defining the timelocked script.

    Attributes:
        lock_height: absolute block height, 1 <= h < 500_000_000.
        owner_pubkey: 33-byte compressed secp256k1 public key.
    """
    lock_height: int
    owner_pubkey: bytes

    def validate(self) -> None:
        if isinstance(self.lock_height, bool) or not isinstance(self.lock_height, int):
            raise InvalidParameter("lock_height must be an integer")
        normalize_lock_height(self.lock_height)
        check_compressed_pubkey(self.owner_pubkey)

    @classmethod
    def from_hex(cls, lock_height: Any, pubkey_hex: str) -> 'LockParameters':
        try:
            pubkey = parse_hex('pubkey', pubkey_hex, length=COMPRESSED_PUBKEY_LEN)
        except ValueError as exc:
            raise InvalidParameter(str(exc)) from exc
        params = cls(normalize_lock_height(lock_height), pubkey)
        params.validate()
        return params
