"""
Legacy signature hash and ECDSA signing/verification.

compute_sighash implements the pre-segwit algorithm used for P2SH spends:
the signed input carries the scriptCode (here: the CLTV locking script),
other inputs/outputs are blanked per the sighash flags, the 4-byte type
is appended and the result is double-SHA256'd.

Signing and verification use coincurve (libsecp256k1): RFC6979 nonces,
low-S signatures, DER encoding plus one sighash-type byte.
"""
from __future__ import annotations

import logging
from typing import Optional, Protocol, Union

import base58
from coincurve import PrivateKey, PublicKey

from .errors import InvalidParameter, SignatureVerificationFailed
from .hexutil import is_hex_str, parse_hex
from .network import Network
from .script import sha256d, strip_codeseparators
from .tx import Transaction, compactsize

logger = logging.getLogger(__name__)

SIGHASH_ALL = 0x01
SIGHASH_NONE = 0x02
SIGHASH_SINGLE = 0x03
SIGHASH_ANYONECANPAY = 0x80

SECP256K1_ORDER = int(
    "FFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEBAAEDCE6AF48A03BBFD25E8CD0364141", 16
)
SECP256K1_HALF_ORDER = SECP256K1_ORDER // 2

# consensus quirk: SIGHASH_SINGLE without a matching output signs the number one
SIGHASH_SINGLE_BUG = (1).to_bytes(32, 'little')

_BLANK_OUTPUT = b"\xff" * 8 + b"\x00"  # CTxOut(): value -1, empty script


def compute_sighash(tx: Transaction, input_index: int, script_code: bytes, sighash_type: int = SIGHASH_ALL) -> bytes:
    """Return the 32-byte legacy sighash for ``tx.inputs[input_index]``."""
    if input_index < 0 or input_index >= len(tx.inputs):
        raise InvalidParameter(f"input index {input_index} out of range (num_inputs={len(tx.inputs)})")
    if not 0 <= sighash_type <= 0xFFFFFFFF:
        raise InvalidParameter("sighash type must fit in 4 bytes")
    base = sighash_type & 0x1f
    anyone_can_pay = bool(sighash_type & SIGHASH_ANYONECANPAY)
    if base == SIGHASH_SINGLE and input_index >= len(tx.outputs):
        logger.debug("SIGHASH_SINGLE without matching output for input %d", input_index)
        return SIGHASH_SINGLE_BUG

    code = strip_codeseparators(script_code)
    s = bytearray()
    s += tx.version.to_bytes(4, 'little')

    indices = [input_index] if anyone_can_pay else range(len(tx.inputs))
    s += compactsize(len(indices))
    for i in indices:
        txin = tx.inputs[i]
        s += txin.prevout.serialize()
        if i == input_index:
            s += compactsize(len(code)) + code
            s += txin.sequence.to_bytes(4, 'little')
        else:
            s += b"\x00"
            sequence = 0 if base in (SIGHASH_NONE, SIGHASH_SINGLE) else txin.sequence
            s += sequence.to_bytes(4, 'little')

    if base == SIGHASH_NONE:
        s += compactsize(0)
    elif base == SIGHASH_SINGLE:
        s += compactsize(input_index + 1)
        for i in range(input_index):
            s += _BLANK_OUTPUT
        s += tx.outputs[input_index].serialize()
    else:
        s += compactsize(len(tx.outputs))
        for txout in tx.outputs:
            s += txout.serialize()

    s += tx.lock_time.to_bytes(4, 'little')
    s += sighash_type.to_bytes(4, 'little')
    digest = sha256d(bytes(s))
    logger.debug("sighash input=%d type=0x%02x -> %s", input_index, sighash_type, digest.hex())
    return digest


def is_strict_der(sig: bytes) -> bool:
    """BIP66 strict DER check; ``sig`` includes the trailing sighash byte."""
    n = len(sig)
    if n < 9 or n > 73:
        return False
    if sig[0] != 0x30 or sig[1] != n - 3:
        return False
    len_r = sig[3]
    if 5 + len_r >= n:
        return False
    len_s = sig[5 + len_r]
    if len_r + len_s + 7 != n:
        return False
    if sig[2] != 0x02 or len_r == 0 or sig[4] & 0x80:
        return False
    if len_r > 1 and sig[4] == 0x00 and not sig[5] & 0x80:
        return False
    if sig[len_r + 4] != 0x02 or len_s == 0 or sig[len_r + 6] & 0x80:
        return False
    if len_s > 1 and sig[len_r + 6] == 0x00 and not sig[len_r + 7] & 0x80:
        return False
    return True


def _der_s(der: bytes) -> int:
    len_r = der[3]
    len_s = der[5 + len_r]
    return int.from_bytes(der[6 + len_r:6 + len_r + len_s], 'big')


def is_low_s(der: bytes) -> bool:
    """True when S <= n/2. ``der`` is the bare DER signature (no sighash byte)."""
    s = _der_s(der)
    return 1 <= s <= SECP256K1_HALF_ORDER


def _as_private_key(private_key: Union[PrivateKey, bytes]) -> PrivateKey:
    if isinstance(private_key, PrivateKey):
        return private_key
    if isinstance(private_key, (bytes, bytearray)) and len(private_key) == 32:
        try:
            return PrivateKey(bytes(private_key))
        except ValueError as exc:
            raise InvalidParameter(f"invalid private key: {exc}") from exc
    raise InvalidParameter("private key must be a coincurve PrivateKey or 32 raw bytes")


def sign(digest: bytes, private_key: Union[PrivateKey, bytes], sighash_type: int = SIGHASH_ALL) -> bytes:
    """Sign a 32-byte sighash; returns DER signature + sighash-type byte."""
    if len(digest) != 32:
        raise InvalidParameter("digest must be 32 bytes")
    if not 0 <= sighash_type <= 0xff:
        raise InvalidParameter("sighash type must be a single byte")
    key = _as_private_key(private_key)
    # digest is already SHA256d; hasher=None signs it as-is.
    # libsecp256k1 always emits the low-S form.
    der = key.sign(digest, hasher=None)
    return der + bytes([sighash_type])


def verify(digest: bytes, signature: bytes, pubkey: bytes, sighash_type: Optional[int] = SIGHASH_ALL) -> bool:
    """Verify DER+type signature over digest. Never raises for malformed input.

    ``sighash_type`` is the type the digest was computed for; the signature's
    trailing byte must match it. Pass None to accept any trailing byte.
    """
    if len(digest) != 32 or not signature:
        return False
    if sighash_type is not None and signature[-1] != sighash_type:
        return False
    if not is_strict_der(signature):
        return False
    der = signature[:-1]
    if not is_low_s(der):
        return False
    try:
        return bool(PublicKey(bytes(pubkey)).verify(der, digest, hasher=None))
    except (ValueError, TypeError) as exc:
        logger.debug("signature/pubkey rejected by secp256k1: %s", exc)
        return False


def require_valid_signature(digest: bytes, signature: bytes, pubkey: bytes, sighash_type: Optional[int] = SIGHASH_ALL) -> None:
    if not verify(digest, signature, pubkey, sighash_type):
        raise SignatureVerificationFailed("signature does not verify against public key")


class KeyCustody(Protocol):
    """External signer: never hands out private key material."""

    @property
    def public_key(self) -> bytes: ...

    def sign(self, digest: bytes, sighash_type: int = SIGHASH_ALL) -> bytes: ...


class LocalKeyCustody:
    """In-process KeyCustody over a coincurve key (tests, CLI)."""

    def __init__(self, private_key: Union[PrivateKey, bytes]) -> None:
        self._key = _as_private_key(private_key)

    @property
    def public_key(self) -> bytes:
        return self._key.public_key.format(compressed=True)

    def sign(self, digest: bytes, sighash_type: int = SIGHASH_ALL) -> bytes:
        return sign(digest, self._key, sighash_type)

    @classmethod
    def from_hex(cls, secret_hex: str) -> 'LocalKeyCustody':
        return cls(parse_hex('private key', secret_hex, length=32))

    @classmethod
    def from_wif(cls, wif: str, network: Optional[Network] = None) -> 'LocalKeyCustody':
        try:
            raw = base58.b58decode_check(wif.strip())
        except ValueError as exc:
            raise InvalidParameter(f"invalid WIF: {exc}") from exc
        if len(raw) != 34 or raw[-1] != 0x01:
            raise InvalidParameter("WIF must encode a compressed-pubkey private key")
        if network is not None and raw[0] != network.wif_version:
            raise InvalidParameter(f"WIF version 0x{raw[0]:02x} does not match {network.name}")
        return cls(raw[1:33])

    @classmethod
    def from_string(cls, value: str, network: Optional[Network] = None) -> 'LocalKeyCustody':
        """Accept either a 64-char hex secret or a WIF string."""
        s = value.strip()
        if len(s) == 64 and is_hex_str(s):
            return cls.from_hex(s)
        return cls.from_wif(s, network)
