import pytest
from dataclasses import replace

from cltvlock.errors import EncodingError, InvalidParameter
from cltvlock.tx import (
    SEQUENCE_FINAL,
    OutPoint,
    Transaction,
    TxIn,
    TxOut,
    UnspentReference,
    compactsize,
    read_compactsize,
)


def _tx(lock_time: int = 1000) -> Transaction:
    txin = TxIn(OutPoint(bytes.fromhex('ab' * 32), 1), b'', 0xFFFFFFFE)
    txout = TxOut(99_000, bytes.fromhex('76a914' + '00' * 20 + '88ac'))
    return Transaction(1, (txin,), (txout,), lock_time)


def test_serialize_layout():
    raw = _tx().serialize()
    exp = (
        '01000000'              # version
        '01'                    # n_in
        + 'ab' * 32 +           # prev txid (internal order)
        '01000000'              # vout
        '00'                    # empty scriptSig
        'feffffff'              # sequence
        '01'                    # n_out
        'b882010000000000'      # 99000 sat
        '19' '76a914' + '00' * 20 + '88ac'
        + 'e8030000'            # lock_time 1000
    )
    assert raw.hex() == exp


def test_txid_byte_order():
    txid = bytes(range(32))
    raw = OutPoint(txid, 0).serialize()
    assert raw[:32] == txid[::-1]


def test_serialization_is_deterministic_and_parses_back():
    a = _tx()
    b = _tx()
    assert a.serialize() == b.serialize()
    assert a.txid() == b.txid()
    assert Transaction.parse(a.serialize()) == a


def test_with_script_sig_returns_new_transaction():
    tx = _tx()
    signed = tx.with_script_sig(0, b'\x01\x02')
    assert tx.inputs[0].script_sig == b''
    assert signed.inputs[0].script_sig == b'\x01\x02'
    assert signed.txid() != tx.txid()
    with pytest.raises(IndexError):
        tx.with_script_sig(1, b'')


def test_transaction_is_immutable():
    tx = _tx()
    with pytest.raises(AttributeError):
        tx.lock_time = 5  # type: ignore[misc]
    assert isinstance(Transaction(1, [], [], 0).inputs, tuple)


@pytest.mark.parametrize('n,hex_', [
    (0, '00'), (0xfc, 'fc'), (0xfd, 'fdfd00'), (0xffff, 'fdffff'),
    (0x10000, 'fe00000100'), (0x100000000, 'ff0000000001000000'),
])
def test_compactsize(n: int, hex_: str) -> None:
    assert compactsize(n).hex() == hex_
    assert read_compactsize(bytes.fromhex(hex_), 0) == (n, len(hex_) // 2)


def test_read_compactsize_rejects_non_canonical():
    with pytest.raises(EncodingError, match='non-canonical'):
        read_compactsize(bytes.fromhex('fd0100'), 0)


def test_parse_rejects_truncated_and_trailing():
    raw = _tx().serialize()
    with pytest.raises(EncodingError, match='truncated'):
        Transaction.parse(raw[:-1])
    with pytest.raises(EncodingError, match='trailing'):
        Transaction.parse(raw + b'\x00')
    with pytest.raises(EncodingError, match='no inputs'):
        Transaction.parse(bytes.fromhex('0100000000') + raw[5:])


@pytest.mark.parametrize('kwargs', [
    {'version': -1}, {'lock_time': 2 ** 32}, {'lock_time': True},
])
def test_transaction_field_ranges(kwargs) -> None:
    with pytest.raises(InvalidParameter):
        replace(_tx(), **kwargs)


def test_component_field_ranges():
    with pytest.raises(InvalidParameter):
        OutPoint(b'\x00' * 31, 0)
    with pytest.raises(InvalidParameter):
        OutPoint(b'\x00' * 32, -1)
    with pytest.raises(InvalidParameter):
        TxIn(OutPoint(b'\x00' * 32, 0), b'', SEQUENCE_FINAL + 1)
    with pytest.raises(InvalidParameter):
        TxOut(-1, b'')
    with pytest.raises(InvalidParameter):
        TxOut(21_000_000 * 100_000_000 + 1, b'')
    with pytest.raises(InvalidParameter):
        UnspentReference(b'\x00' * 32, 0, -5, b'\x51')


def test_input_finality():
    assert TxIn(OutPoint(b'\x00' * 32, 0)).is_final
    assert not TxIn(OutPoint(b'\x00' * 32, 0), sequence=0xFFFFFFFE).is_final
