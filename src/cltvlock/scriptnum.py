"""
Script number codec (minimal signed little-endian, as used by CScriptNum).

Encoding
- Smallest byte count that represents n; sign carried in the high bit of
  the last byte.
- 0x00 (or 0x80 for negatives) is appended when the magnitude's top byte
  already has its high bit set.
- Zero encodes as the empty byte string.

Decoding rejects operands longer than ``max_size`` and, by default, any
non-minimal encoding, matching the consensus behaviour of
OP_CHECKLOCKTIMEVERIFY (5-byte operands, minimal encoding required).
"""
from __future__ import annotations

from typing import Any

from .errors import EncodingError, InvalidParameter

CLTV_MAX_NUM_SIZE = 5
DEFAULT_MAX_NUM_SIZE = 4


def _require_int(name: str, value: Any) -> int:
    # bool is an int subclass but never a meaningful script number here
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidParameter(f"{name} must be an integer (got {type(value).__name__})")
    return value


def encode_scriptnum(n: int) -> bytes:
    n = _require_int('n', n)
    if n == 0:
        return b""
    neg = n < 0
    n = abs(n)
    result = bytearray()
    while n:
        result.append(n & 0xff)
        n >>= 8
    if result[-1] & 0x80:
        result.append(0x80 if neg else 0x00)
    elif neg:
        result[-1] |= 0x80
    return bytes(result)


def encode_lock_height(n: int) -> bytes:
    """Encode a lock height operand; heights are strictly positive."""
    n = _require_int('lock_height', n)
    if n <= 0:
        raise InvalidParameter(f"lock_height must be positive (got {n})")
    return encode_scriptnum(n)


def is_minimal(data: bytes) -> bool:
    if not data:
        return True
    # last byte carries only the sign (or nothing): it must be needed to
    # disambiguate the sign of the byte before it
    if data[-1] & 0x7f == 0:
        if len(data) <= 1 or not (data[-2] & 0x80):
            return False
    return True


def decode_scriptnum(data: bytes, max_size: int = DEFAULT_MAX_NUM_SIZE, require_minimal: bool = True) -> int:
    if not isinstance(data, (bytes, bytearray)):
        raise EncodingError("script number must be bytes")
    if len(data) > max_size:
        raise EncodingError(f"script number overflow ({len(data)} > {max_size} bytes)")
    if require_minimal and not is_minimal(data):
        raise EncodingError(f"non-minimally encoded script number: {bytes(data).hex()}")
    if not data:
        return 0
    value = int.from_bytes(data, 'little')
    if data[-1] & 0x80:
        return -(value & ~(0x80 << (8 * (len(data) - 1))))
    return value
