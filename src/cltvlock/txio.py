"""
Transaction IO helpers.

Read/write raw transaction hex files, and convert to/from python-bitcointx
CTransaction objects (via dynamic import, so the core does not require it)
for handing a signed spend to wallet or broadcast tooling.
"""
from __future__ import annotations

from typing import Any

from .hexutil import read_hex_file
from .tx import Transaction


def _imp_ctransaction():
    import importlib
    return importlib.import_module('bitcointx.core').CTransaction


def load_tx_from_file(path: str) -> Transaction:
    """Load a legacy-serialized transaction from a file containing hex."""
    return Transaction.parse(read_hex_file('transaction', path))


def write_tx(tx: Transaction, path: str) -> None:
    """Write the transaction to file as hex."""
    with open(path, 'wt') as f:
        f.write(tx.hex())


def to_bitcointx(tx: Transaction) -> Any:
    """Return an equivalent bitcointx.core.CTransaction.

    Raises:
        ImportError if python-bitcointx is not installed.
    """
    CTransaction = _imp_ctransaction()
    return CTransaction.deserialize(tx.serialize())


def from_bitcointx(ctx: Any) -> Transaction:
    """Convert a non-witness bitcointx transaction back into the local model."""
    return Transaction.parse(ctx.serialize())
