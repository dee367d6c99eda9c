"""
Hex and file input helpers.

Centralizes hex parsing for CLI flags and constructors so malformed input
fails with one consistent error type and message.
"""
from __future__ import annotations

import binascii
import re
from typing import Optional

from .errors import InvalidParameter

_HEX_RE = re.compile(r"^[0-9a-fA-F]*$")


def is_hex_str(s: str) -> bool:
    return bool(s) and bool(_HEX_RE.fullmatch(s))


def parse_hex(name: str, s: Optional[str], length: Optional[int] = None) -> bytes:
    """Parse a hex string into bytes with optional fixed-length validation.

    Args:
        name: human-readable name for error messages.
        s: hex string (case-insensitive, whitespace ignored, even length required).
        length: expected length in bytes (optional). If set, enforce exact length.

    Returns:
        Decoded bytes.
    """
    if s is None:
        raise InvalidParameter(f"{name} is required")
    s = ''.join(s.split())
    if not is_hex_str(s) or len(s) % 2 != 0:
        raise InvalidParameter(f"Invalid hex for {name}")
    try:
        b = binascii.unhexlify(s)
    except binascii.Error as exc:
        raise InvalidParameter(f"Invalid hex for {name}") from exc
    if length is not None and len(b) != length:
        raise InvalidParameter(f"{name} must be {length} bytes (got {len(b)})")
    return b


def read_hex_file(name: str, file_path: str, length: Optional[int] = None) -> bytes:
    """Read a file containing hex; an unreadable file is an InvalidParameter."""
    try:
        with open(file_path, 'rt') as f:
            text = f.read()
    except OSError as exc:
        raise InvalidParameter(f"cannot read {name} file {file_path!r}: {exc.strerror or exc}") from exc
    return parse_hex(name, text, length)


def file_or_hex(name: str, hex_value: Optional[str], file_path: Optional[str], *, length: Optional[int] = None) -> bytes:
    """Read bytes from a hex string or a file containing hex.

    Precedence: hex_value if provided; otherwise file_path is used.
    """
    if hex_value:
        return parse_hex(name, hex_value, length)
    if file_path:
        return read_hex_file(name, file_path, length)
    raise InvalidParameter(f"{name} required")


def parse_txid(s: Optional[str]) -> bytes:
    """Parse a txid in display (RPC/explorer) byte order."""
    return parse_hex('txid', s, length=32)
