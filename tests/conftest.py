import pytest

from cltvlock.address import derive_address, funding_commitment
from cltvlock.network import REGTEST
from cltvlock.params import LockParameters
from cltvlock.script import build_locking_script, hash160
from cltvlock.sighash import LocalKeyCustody
from cltvlock.spend import spend_timelocked
from cltvlock.tx import UnspentReference

# secp256k1 generator G, i.e. the public key of private key 1
G_COMPRESSED = bytes.fromhex('0279be667ef9dcbbac55a06295ce870b07029bfcdb2dce28d959f2815b16f81798')

LOCK_HEIGHT = 1000
FUNDING_TXID = bytes.fromhex('ab' * 32)
FUNDING_VALUE = 100_000


@pytest.fixture
def owner() -> LocalKeyCustody:
    return LocalKeyCustody(bytes.fromhex('11' * 32))


@pytest.fixture
def locking_script(owner: LocalKeyCustody) -> bytes:
    return build_locking_script(LockParameters(LOCK_HEIGHT, owner.public_key))


@pytest.fixture
def utxo(locking_script: bytes) -> UnspentReference:
    return UnspentReference(FUNDING_TXID, 0, FUNDING_VALUE, locking_script)


@pytest.fixture
def dest_address(owner: LocalKeyCustody) -> str:
    return derive_address(hash160(owner.public_key), REGTEST.pubkey_version)


@pytest.fixture
def lock_address(locking_script: bytes) -> str:
    return funding_commitment(locking_script, REGTEST).address


@pytest.fixture
def signed_spend(utxo, dest_address, owner):
    return spend_timelocked(utxo, dest_address, 1_000, owner, network=REGTEST)
