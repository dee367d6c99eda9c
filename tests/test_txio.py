import os
import tempfile

import pytest

from cltvlock.errors import InvalidParameter
from cltvlock.txio import from_bitcointx, load_tx_from_file, to_bitcointx, write_tx


def test_write_and_load_roundtrip(signed_spend):
    with tempfile.TemporaryDirectory() as td:
        p = os.path.join(td, 'spend.hex')
        write_tx(signed_spend, p)
        with open(p, 'rt') as f:
            assert f.read() == signed_spend.hex()
        assert load_tx_from_file(p) == signed_spend


def test_load_rejects_garbage():
    with tempfile.TemporaryDirectory() as td:
        p = os.path.join(td, 'bad.hex')
        with open(p, 'wt') as f:
            f.write('zz')
        with pytest.raises(ValueError, match='hex'):
            load_tx_from_file(p)


def test_load_missing_file():
    with tempfile.TemporaryDirectory() as td:
        with pytest.raises(InvalidParameter, match='cannot read transaction file'):
            load_tx_from_file(os.path.join(td, 'nope.hex'))


def test_bitcointx_roundtrip(signed_spend):
    pytest.importorskip('bitcointx.core', reason='python-bitcointx not installed')
    ctx = to_bitcointx(signed_spend)
    assert ctx.GetTxid()[::-1].hex() == signed_spend.txid()
    assert ctx.nLockTime == signed_spend.lock_time
    assert ctx.vin[0].nSequence == signed_spend.inputs[0].sequence
    assert from_bitcointx(ctx) == signed_spend
