"""
CLTV script utilities

Locking (redeem) script
  <lock_height> OP_CHECKLOCKTIMEVERIFY OP_DROP <owner_pubkey> OP_CHECKSIG

Funding (P2SH) script
  OP_HASH160 <hash160(locking_script)> OP_EQUAL

Unlocking data (scriptSig)
  <DER signature + sighash byte> <locking_script>

This module builds and parses these scripts, computes the P2SH script hash
and produces a simple disassembly for debugging.
"""
from __future__ import annotations

import hashlib
import logging
from typing import Dict, Iterator, List, Optional, Tuple

from Crypto.Hash import RIPEMD160

from .errors import EncodingError
from .params import LockParameters, check_compressed_pubkey, normalize_lock_height
from .scriptnum import CLTV_MAX_NUM_SIZE, decode_scriptnum, encode_lock_height

logger = logging.getLogger(__name__)

# Opcodes
OP_0 = 0x00
OP_PUSHDATA1 = 0x4c
OP_PUSHDATA2 = 0x4d
OP_PUSHDATA4 = 0x4e
OP_1NEGATE = 0x4f
OP_1 = 0x51
OP_16 = 0x60
OP_DROP = 0x75
OP_EQUAL = 0x87
OP_HASH160 = 0xa9
OP_CODESEPARATOR = 0xab
OP_CHECKSIG = 0xac
OP_CHECKLOCKTIMEVERIFY = 0xb1

SCRIPT_HASH_LEN = 20

_NAMES: Dict[int, str] = {
    OP_0: 'OP_0',
    OP_1NEGATE: 'OP_1NEGATE',
    OP_DROP: 'OP_DROP',
    OP_EQUAL: 'OP_EQUAL',
    OP_HASH160: 'OP_HASH160',
    OP_CODESEPARATOR: 'OP_CODESEPARATOR',
    OP_CHECKSIG: 'OP_CHECKSIG',
    OP_CHECKLOCKTIMEVERIFY: 'OP_CHECKLOCKTIMEVERIFY',
}


def sha256(data: bytes) -> bytes:
    return hashlib.sha256(data).digest()


def sha256d(data: bytes) -> bytes:
    return hashlib.sha256(hashlib.sha256(data).digest()).digest()


def hash160(data: bytes) -> bytes:
    """RIPEMD160(SHA256(data)), the P2SH/P2PKH commitment hash."""
    return RIPEMD160.new(sha256(data)).digest()


def pushdata(data: bytes) -> bytes:
    n = len(data)
    if n < OP_PUSHDATA1:
        return bytes([n]) + data
    elif n <= 0xff:
        return bytes([OP_PUSHDATA1, n]) + data
    elif n <= 0xffff:
        return bytes([OP_PUSHDATA2]) + n.to_bytes(2, "little") + data
    else:
        return bytes([OP_PUSHDATA4]) + n.to_bytes(4, "little") + data


def push_lock_height(n: int) -> bytes:
    # heights 1..16 have a dedicated opcode; a data push would violate MINIMALDATA
    if 1 <= n <= 16:
        return bytes([OP_1 + n - 1])
    return pushdata(encode_lock_height(n))


def iter_script(script: bytes) -> Iterator[Tuple[int, Optional[bytes], int]]:
    """Yield (opcode, pushed data or None, offset) for each script element."""
    i = 0
    n = len(script)
    while i < n:
        start = i
        op = script[i]
        i += 1
        if op > OP_PUSHDATA4:
            yield op, None, start
            continue
        if op < OP_PUSHDATA1:
            ln = op
        elif op == OP_PUSHDATA1:
            if i + 1 > n:
                raise EncodingError("truncated PUSHDATA1 length")
            ln = script[i]
            i += 1
        elif op == OP_PUSHDATA2:
            if i + 2 > n:
                raise EncodingError("truncated PUSHDATA2 length")
            ln = int.from_bytes(script[i:i + 2], 'little')
            i += 2
        else:
            if i + 4 > n:
                raise EncodingError("truncated PUSHDATA4 length")
            ln = int.from_bytes(script[i:i + 4], 'little')
            i += 4
        if i + ln > n:
            raise EncodingError(f"push of {ln} bytes overruns script at offset {start}")
        yield op, script[i:i + ln], start
        i += ln


def build_locking_script(params: LockParameters) -> bytes:
    """Build the CLTV locking script for the given parameters.

    Pure and deterministic: identical params always yield identical bytes,
    which is what keeps the funded P2SH address stable.
    """
    params.validate()
    script = bytearray()
    script += push_lock_height(params.lock_height)
    script += bytes([OP_CHECKLOCKTIMEVERIFY, OP_DROP])
    script += pushdata(params.owner_pubkey) + bytes([OP_CHECKSIG])
    logger.debug("built locking script height=%d len=%d", params.lock_height, len(script))
    return bytes(script)


def script_hash(locking_script: bytes) -> bytes:
    return hash160(locking_script)


def build_funding_script(locking_script: bytes) -> bytes:
    if not locking_script:
        raise EncodingError("locking script must not be empty")
    return bytes([OP_HASH160]) + pushdata(script_hash(locking_script)) + bytes([OP_EQUAL])


def build_p2pkh_script(pubkey_hash: bytes) -> bytes:
    # OP_DUP OP_HASH160 <20> OP_EQUALVERIFY OP_CHECKSIG
    return b"\x76" + bytes([OP_HASH160]) + pushdata(pubkey_hash) + b"\x88" + bytes([OP_CHECKSIG])


def _decode_height_element(op: int, data: Optional[bytes]) -> int:
    if OP_1 <= op <= OP_16:
        return op - OP_1 + 1
    if data is None or op == OP_0:
        raise EncodingError("locking script must start with a lock height push")
    return decode_scriptnum(data, max_size=CLTV_MAX_NUM_SIZE)


def parse_locking_script(script: bytes) -> LockParameters:
    """Recover LockParameters from a locking script, rejecting any deviation.

    The script is rebuilt from the parsed values and must match byte for
    byte, so non-minimal pushes or extra elements are refused.
    """
    elements = list(iter_script(script))
    if len(elements) != 5:
        raise EncodingError(f"locking script must have 5 elements (got {len(elements)})")
    (h_op, h_data, _), (cltv, _, _), (drop, _, _), (pk_op, pk_data, _), (chk, _, _) = elements
    if (cltv, drop, chk) != (OP_CHECKLOCKTIMEVERIFY, OP_DROP, OP_CHECKSIG):
        raise EncodingError("not a CLTV locking script")
    if pk_data is None:
        raise EncodingError("locking script is missing the owner public key push")
    height = normalize_lock_height(_decode_height_element(h_op, h_data))
    params = LockParameters(height, check_compressed_pubkey(pk_data))
    if build_locking_script(params) != bytes(script):
        raise EncodingError("locking script is not canonically encoded")
    return params


def build_unlocking_script(signature: bytes, locking_script: bytes) -> bytes:
    if not signature:
        raise EncodingError("signature must not be empty")
    if not locking_script:
        raise EncodingError("locking script must not be empty")
    return pushdata(signature) + pushdata(locking_script)


def parse_unlocking_script(script_sig: bytes) -> List[bytes]:
    """Return the items pushed by a push-only scriptSig."""
    items: List[bytes] = []
    for op, data, offset in iter_script(script_sig):
        if data is not None:
            items.append(data)
        elif op == OP_1NEGATE:
            items.append(b"\x81")
        elif OP_1 <= op <= OP_16:
            items.append(bytes([op - OP_1 + 1]))
        else:
            raise EncodingError(f"scriptSig is not push-only (opcode 0x{op:02x} at offset {offset})")
    return items


def strip_codeseparators(script: bytes) -> bytes:
    """Remove OP_CODESEPARATOR opcodes (not data bytes) from a scriptCode."""
    out = bytearray()
    elements = list(iter_script(script)) + [(None, None, len(script))]
    for (op, _data, start), (_n, _d, end) in zip(elements, elements[1:]):
        if op != OP_CODESEPARATOR:
            out += script[start:end]
    return bytes(out)


def disasm(script: bytes) -> str:
    out: List[str] = []
    for op, data, _ in iter_script(script):
        if data is not None:
            out.append(data.hex() if data else 'OP_0')
        elif OP_1 <= op <= OP_16:
            out.append(str(op - OP_1 + 1))
        else:
            out.append(_NAMES.get(op, f'OP_UNKNOWN<0x{op:02x}>'))
    return ' '.join(out)
