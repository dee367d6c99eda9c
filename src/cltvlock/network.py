"""
Network parameters (version bytes) for Base58Check addresses and WIF keys.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict

from .errors import InvalidParameter


@dataclass(frozen=True)
class Network:
    """Version bytes of one Bitcoin-family network.

    Attributes:
        name: registry key (mainnet, testnet, regtest, signet).
        pubkey_version: P2PKH address version byte.
        script_version: P2SH address version byte.
        wif_version: WIF private key prefix byte.
    """
    name: str
    pubkey_version: int
    script_version: int
    wif_version: int


MAINNET = Network('mainnet', 0x00, 0x05, 0x80)
TESTNET = Network('testnet', 0x6F, 0xC4, 0xEF)
REGTEST = Network('regtest', 0x6F, 0xC4, 0xEF)
SIGNET = Network('signet', 0x6F, 0xC4, 0xEF)

NETWORKS: Dict[str, Network] = {n.name: n for n in (MAINNET, TESTNET, REGTEST, SIGNET)}

DEFAULT_NETWORK = 'regtest'


def get_network(name: str) -> Network:
    try:
        return NETWORKS[name.lower()]
    except (KeyError, AttributeError):
        raise InvalidParameter(f"unknown network {name!r} (expected one of: {', '.join(NETWORKS)})") from None
