"""
Assemble and sign a transaction spending timelocked outputs.

build_spend produces the unsigned candidate; sign_timelocked_input returns
a new transaction with the input's scriptSig set to
``<sig> <locking_script>``. Signing refuses a candidate whose lock time or
sequence would make the CLTV check fail, so a signature is never produced
for a transaction that can not be mined.
"""
from __future__ import annotations

import logging
from typing import Iterable, Optional, Sequence, Tuple

from .address import address_to_script_pubkey
from .duration import LOCKTIME_THRESHOLD
from .errors import InvalidParameter
from .network import Network
from .script import build_unlocking_script, parse_locking_script
from .sighash import SIGHASH_ALL, KeyCustody, compute_sighash
from .tx import DEFAULT_SEQUENCE, SEQUENCE_FINAL, Transaction, TxIn, TxOut, UnspentReference

logger = logging.getLogger(__name__)

DEFAULT_DUST_THRESHOLD = 546


def build_spend(
    utxos: Sequence[UnspentReference],
    outputs: Iterable[Tuple[str, int]],
    lock_time: int,
    *,
    network: Network,
    sequence: int = DEFAULT_SEQUENCE,
    version: int = 1,
    dust_threshold: int = DEFAULT_DUST_THRESHOLD,
) -> Transaction:
    """Build an unsigned spend of ``utxos`` paying ``(address, value)`` outputs.

    The fee is whatever the inputs exceed the outputs by; fee estimation is
    the caller's concern.
    """
    if not utxos:
        raise InvalidParameter("at least one input is required")
    if isinstance(lock_time, bool) or not isinstance(lock_time, int) or not 0 <= lock_time < LOCKTIME_THRESHOLD:
        raise InvalidParameter(f"lock_time must be a block height below {LOCKTIME_THRESHOLD}")
    txouts = []
    for address, value in outputs:
        if value < dust_threshold:
            raise InvalidParameter(f"output of {value} sat to {address} is below dust threshold {dust_threshold}")
        txouts.append(TxOut(value, address_to_script_pubkey(address, network)))
    if not txouts:
        raise InvalidParameter("at least one output is required")
    total_in = sum(u.value for u in utxos)
    total_out = sum(o.value for o in txouts)
    if total_out > total_in:
        raise InvalidParameter(f"outputs ({total_out} sat) exceed inputs ({total_in} sat)")
    txins = [TxIn(u.outpoint, b"", sequence) for u in utxos]
    tx = Transaction(version, tuple(txins), tuple(txouts), lock_time)
    logger.info("built spend %d in / %d out, fee=%d sat, lock_time=%d",
                len(txins), len(txouts), total_in - total_out, lock_time)
    return tx


def sign_timelocked_input(
    tx: Transaction,
    input_index: int,
    locking_script: bytes,
    custody: KeyCustody,
    sighash_type: int = SIGHASH_ALL,
) -> Transaction:
    """Return ``tx`` with input ``input_index`` unlocked by custody's signature."""
    if input_index < 0 or input_index >= len(tx.inputs):
        raise InvalidParameter(f"input index {input_index} out of range (num_inputs={len(tx.inputs)})")
    params = parse_locking_script(locking_script)
    if tx.lock_time >= LOCKTIME_THRESHOLD or tx.lock_time < params.lock_height:
        raise InvalidParameter(f"lock_time {tx.lock_time} does not satisfy lock height {params.lock_height}")
    if tx.inputs[input_index].sequence == SEQUENCE_FINAL:
        raise InvalidParameter("timelocked input must have a non-final sequence number")
    if custody.public_key != params.owner_pubkey:
        raise InvalidParameter("signing key does not match the locking script's public key")
    digest = compute_sighash(tx, input_index, locking_script, sighash_type)
    signature = custody.sign(digest, sighash_type)
    return tx.with_script_sig(input_index, build_unlocking_script(signature, locking_script))


def spend_timelocked(
    utxo: UnspentReference,
    to_address: str,
    fee: int,
    custody: KeyCustody,
    *,
    network: Network,
    lock_time: Optional[int] = None,
    sequence: int = DEFAULT_SEQUENCE,
    dust_threshold: int = DEFAULT_DUST_THRESHOLD,
) -> Transaction:
    """Sweep one timelocked UTXO to ``to_address`` minus ``fee``, signed.

    ``lock_time`` defaults to the script's lock height.
    """
    params = parse_locking_script(utxo.locking_script)
    if lock_time is None:
        lock_time = params.lock_height
    if fee < 0:
        raise InvalidParameter("fee must be non-negative")
    tx = build_spend([utxo], [(to_address, utxo.value - fee)], lock_time,
                     network=network, sequence=sequence, dust_threshold=dust_threshold)
    return sign_timelocked_input(tx, 0, utxo.locking_script, custody)
