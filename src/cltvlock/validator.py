"""
Spend validation for CLTV-locked P2SH outputs.

validate() checks, in order:
  1. tx lock_time is a height >= the script's lock height
  2. at least one input is non-final (else CLTV is a no-op)
  3. the timelocked input's scriptSig is exactly <sig> <locking_script>
     and that input is itself non-final
  4. the signature verifies against the script's public key
  5. (optional) the chain-height oracle reports a mature height

Expected negative outcomes are returned as ValidationResult values; only a
malformed locking script (a caller error) raises.
"""
from __future__ import annotations

import logging
from enum import Enum
from typing import NamedTuple, Optional, Protocol

from .duration import LOCKTIME_THRESHOLD
from .errors import EncodingError
from .params import LockParameters
from .script import build_unlocking_script, parse_locking_script, parse_unlocking_script
from .sighash import SIGHASH_ANYONECANPAY, compute_sighash, verify
from .tx import Transaction

logger = logging.getLogger(__name__)

_DEFINED_SIGHASH_BASES = (0x01, 0x02, 0x03)


class InvalidReason(Enum):
    LOCK_TIME_TOO_LOW = "lock time below lock height"
    LOCK_TIME_TYPE_MISMATCH = "lock time is a timestamp, lock is a block height"
    ALL_INPUTS_FINAL = "all inputs final (CLTV disabled)"
    MISSING_TIMELOCKED_INPUT = "no input spends the locking script"
    MALFORMED_UNLOCKING_DATA = "unlocking data is not <sig> <locking_script>"
    INPUT_FINAL = "timelocked input has a final sequence number"
    SIGNATURE_VERIFICATION_FAILED = "signature verification failed"
    NOT_YET_MATURE = "chain height below lock height"


class ValidationResult(NamedTuple):
    ok: bool
    reason: Optional[InvalidReason] = None
    detail: Optional[str] = None

    def __bool__(self) -> bool:
        return self.ok

    @classmethod
    def valid(cls) -> 'ValidationResult':
        return cls(True)

    @classmethod
    def invalid(cls, reason: InvalidReason, detail: Optional[str] = None) -> 'ValidationResult':
        return cls(False, reason, detail or reason.value)


class HeightOracle(Protocol):
    def current_height(self) -> int: ...


class StaticHeightOracle:
    """Oracle pinned to a fixed height (tests, simulations, offline checks)."""

    def __init__(self, height: int) -> None:
        self.height = height

    def current_height(self) -> int:
        return self.height


def is_mature(lock_height: int, oracle: HeightOracle) -> bool:
    return oracle.current_height() >= lock_height


def _find_timelocked_input(tx: Transaction, locking_script: bytes) -> Optional[int]:
    for i, txin in enumerate(tx.inputs):
        try:
            items = parse_unlocking_script(txin.script_sig)
        except EncodingError:
            continue
        if items and items[-1] == locking_script:
            return i
    return None


def _check_structure(tx: Transaction, locking_script: bytes, params: LockParameters,
                     input_index: Optional[int]) -> ValidationResult:
    if tx.lock_time >= LOCKTIME_THRESHOLD:
        return ValidationResult.invalid(InvalidReason.LOCK_TIME_TYPE_MISMATCH,
                                        f"lock_time {tx.lock_time} is a timestamp")
    if tx.lock_time < params.lock_height:
        return ValidationResult.invalid(InvalidReason.LOCK_TIME_TOO_LOW,
                                        f"lock_time {tx.lock_time} < lock height {params.lock_height}")
    if all(txin.is_final for txin in tx.inputs):
        return ValidationResult.invalid(InvalidReason.ALL_INPUTS_FINAL)

    if input_index is None:
        input_index = _find_timelocked_input(tx, locking_script)
    if input_index is None or not 0 <= input_index < len(tx.inputs):
        return ValidationResult.invalid(InvalidReason.MISSING_TIMELOCKED_INPUT)
    txin = tx.inputs[input_index]
    try:
        items = parse_unlocking_script(txin.script_sig)
    except EncodingError as exc:
        return ValidationResult.invalid(InvalidReason.MALFORMED_UNLOCKING_DATA, str(exc))
    if len(items) != 2 or items[1] != locking_script or not items[0]:
        return ValidationResult.invalid(InvalidReason.MALFORMED_UNLOCKING_DATA)
    if build_unlocking_script(items[0], locking_script) != txin.script_sig:
        return ValidationResult.invalid(InvalidReason.MALFORMED_UNLOCKING_DATA, "non-minimal pushes in scriptSig")
    if txin.is_final:
        return ValidationResult.invalid(InvalidReason.INPUT_FINAL, f"input {input_index} sequence is final")

    signature = items[0]
    sighash_type = signature[-1]
    if sighash_type & ~SIGHASH_ANYONECANPAY not in _DEFINED_SIGHASH_BASES:
        return ValidationResult.invalid(InvalidReason.SIGNATURE_VERIFICATION_FAILED,
                                        f"undefined sighash type 0x{sighash_type:02x}")
    digest = compute_sighash(tx, input_index, locking_script, sighash_type)
    if not verify(digest, signature, params.owner_pubkey, sighash_type):
        return ValidationResult.invalid(InvalidReason.SIGNATURE_VERIFICATION_FAILED)
    return ValidationResult.valid()


def validate_structure(candidate: Transaction, locking_script: bytes,
                       input_index: Optional[int] = None) -> ValidationResult:
    """Static checks 1-4; needs no chain state."""
    params = parse_locking_script(locking_script)
    return _check_structure(candidate, locking_script, params, input_index)


def validate(candidate: Transaction, oracle: Optional[HeightOracle], locking_script: bytes,
             input_index: Optional[int] = None) -> ValidationResult:
    """Validate a spend of ``locking_script`` by ``candidate``.

    Args:
        candidate: fully assembled (signed) spending transaction.
        oracle: chain-height source; None skips the maturity check.
        locking_script: the CLTV redeem script being spent.
        input_index: the spending input; located by scriptSig when None.
    """
    params = parse_locking_script(locking_script)
    result = _check_structure(candidate, locking_script, params, input_index)
    if result.ok and oracle is not None:
        height = oracle.current_height()
        if height < params.lock_height:
            result = ValidationResult.invalid(InvalidReason.NOT_YET_MATURE,
                                              f"chain height {height} < lock height {params.lock_height}")
    if logger.isEnabledFor(logging.DEBUG):
        if result.ok:
            logger.debug("spend %s valid for lock height %d", candidate.txid(), params.lock_height)
        else:
            logger.debug("spend %s invalid: %s", candidate.txid(), result.detail)
    return result
