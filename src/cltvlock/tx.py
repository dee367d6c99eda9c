"""
Legacy (non-witness) transaction model and serialization.

All values are frozen dataclasses holding tuples, so a signed transaction
cannot be mutated behind the signature; ``Transaction.with_script_sig``
returns a new transaction instead.

Layout
  version u32 | compactsize n_in | inputs | compactsize n_out | outputs | lock_time u32
  input  = prev txid (32, internal order) | vout u32 | varstr script_sig | sequence u32
  output = value u64 | varstr script_pubkey
"""
from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Iterable, Tuple

from .errors import EncodingError, InvalidParameter
from .script import sha256d

SEQUENCE_FINAL = 0xFFFFFFFF
DEFAULT_SEQUENCE = 0xFFFFFFFE  # non-final, no BIP-125 replaceability signal
MAX_MONEY = 21_000_000 * 100_000_000
U32_MAX = 0xFFFFFFFF


def compactsize(n: int) -> bytes:
    if n < 0:
        raise InvalidParameter("compactsize cannot encode negative values")
    if n < 0xfd:
        return bytes([n])
    elif n <= 0xffff:
        return b"\xfd" + n.to_bytes(2, "little")
    elif n <= 0xffffffff:
        return b"\xfe" + n.to_bytes(4, "little")
    else:
        return b"\xff" + n.to_bytes(8, "little")


def read_compactsize(data: bytes, offset: int) -> Tuple[int, int]:
    """Decode a canonical compactsize at offset; returns (value, new_offset)."""
    if offset >= len(data):
        raise EncodingError("truncated compactsize")
    first = data[offset]
    offset += 1
    if first < 0xfd:
        return first, offset
    width = {0xfd: 2, 0xfe: 4, 0xff: 8}[first]
    if offset + width > len(data):
        raise EncodingError("truncated compactsize")
    value = int.from_bytes(data[offset:offset + width], 'little')
    if compactsize(value)[0] != first:
        raise EncodingError("non-canonical compactsize")
    return value, offset + width


def varstr(data: bytes) -> bytes:
    return compactsize(len(data)) + data


def _check_u32(name: str, value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or not 0 <= value <= U32_MAX:
        raise InvalidParameter(f"{name} must be an unsigned 32-bit integer (got {value!r})")
    return value


def _check_value(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or not 0 <= value <= MAX_MONEY:
        raise InvalidParameter(f"output value must be 0..{MAX_MONEY} satoshi (got {value!r})")
    return value


@dataclass(frozen=True)
class OutPoint:
    """Reference to a previous output. ``txid`` is in display (RPC) order."""
    txid: bytes
    vout: int

    def __post_init__(self) -> None:
        if not isinstance(self.txid, (bytes, bytearray)) or len(self.txid) != 32:
            raise InvalidParameter("txid must be 32 bytes")
        _check_u32('vout', self.vout)

    def serialize(self) -> bytes:
        return bytes(self.txid)[::-1] + self.vout.to_bytes(4, 'little')


@dataclass(frozen=True)
class TxIn:
    prevout: OutPoint
    script_sig: bytes = b""
    sequence: int = SEQUENCE_FINAL

    def __post_init__(self) -> None:
        _check_u32('sequence', self.sequence)

    @property
    def is_final(self) -> bool:
        return self.sequence == SEQUENCE_FINAL

    def serialize(self) -> bytes:
        return self.prevout.serialize() + varstr(self.script_sig) + self.sequence.to_bytes(4, 'little')


@dataclass(frozen=True)
class TxOut:
    value: int
    script_pubkey: bytes

    def __post_init__(self) -> None:
        _check_value(self.value)

    def serialize(self) -> bytes:
        return self.value.to_bytes(8, 'little') + varstr(self.script_pubkey)


@dataclass(frozen=True)
class UnspentReference:
    """An unspent timelocked output as supplied by UTXO discovery.

    Attributes:
        txid: funding transaction id (display order).
        vout: output index in the funding transaction.
        value: amount in satoshi.
        locking_script: the CLTV redeem script committed to by the output.
    """
    txid: bytes
    vout: int
    value: int
    locking_script: bytes

    def __post_init__(self) -> None:
        OutPoint(self.txid, self.vout)
        _check_value(self.value)

    @property
    def outpoint(self) -> OutPoint:
        return OutPoint(self.txid, self.vout)


@dataclass(frozen=True)
class Transaction:
    version: int = 1
    inputs: Tuple[TxIn, ...] = field(default_factory=tuple)
    outputs: Tuple[TxOut, ...] = field(default_factory=tuple)
    lock_time: int = 0

    def __post_init__(self) -> None:
        _check_u32('version', self.version)
        _check_u32('lock_time', self.lock_time)
        # accept any iterable but store tuples so the value stays hashable/immutable
        object.__setattr__(self, 'inputs', tuple(self.inputs))
        object.__setattr__(self, 'outputs', tuple(self.outputs))

    def serialize(self) -> bytes:
        s = bytearray()
        s += self.version.to_bytes(4, 'little')
        s += compactsize(len(self.inputs))
        for txin in self.inputs:
            s += txin.serialize()
        s += compactsize(len(self.outputs))
        for txout in self.outputs:
            s += txout.serialize()
        s += self.lock_time.to_bytes(4, 'little')
        return bytes(s)

    def hex(self) -> str:
        return self.serialize().hex()

    def txid(self) -> str:
        return sha256d(self.serialize())[::-1].hex()

    def total_out(self) -> int:
        return sum(o.value for o in self.outputs)

    def with_script_sig(self, index: int, script_sig: bytes) -> 'Transaction':
        if index < 0 or index >= len(self.inputs):
            raise IndexError(f"input index {index} out of range (num_inputs={len(self.inputs)})")
        inputs = list(self.inputs)
        inputs[index] = replace(inputs[index], script_sig=bytes(script_sig))
        return replace(self, inputs=tuple(inputs))

    @classmethod
    def from_parts(cls, inputs: Iterable[TxIn], outputs: Iterable[TxOut], lock_time: int, version: int = 1) -> 'Transaction':
        return cls(version, tuple(inputs), tuple(outputs), lock_time)

    @classmethod
    def parse(cls, raw: bytes) -> 'Transaction':
        """Parse a legacy serialized transaction; trailing bytes are an error."""
        def take(n: int) -> bytes:
            nonlocal offset
            if offset + n > len(raw):
                raise EncodingError("truncated transaction")
            chunk = raw[offset:offset + n]
            offset += n
            return chunk

        offset = 0
        version = int.from_bytes(take(4), 'little')
        n_in, offset = read_compactsize(raw, offset)
        if n_in == 0:
            raise EncodingError("transaction has no inputs (segwit serialization is not supported)")
        inputs = []
        for _ in range(n_in):
            txid = take(32)[::-1]
            vout = int.from_bytes(take(4), 'little')
            ln, offset = read_compactsize(raw, offset)
            script_sig = take(ln)
            sequence = int.from_bytes(take(4), 'little')
            inputs.append(TxIn(OutPoint(txid, vout), script_sig, sequence))
        n_out, offset = read_compactsize(raw, offset)
        outputs = []
        for _ in range(n_out):
            value = int.from_bytes(take(8), 'little')
            ln, offset = read_compactsize(raw, offset)
            outputs.append(TxOut(value, take(ln)))
        lock_time = int.from_bytes(take(4), 'little')
        if offset != len(raw):
            raise EncodingError(f"{len(raw) - offset} trailing bytes after transaction")
        return cls(version, tuple(inputs), tuple(outputs), lock_time)
