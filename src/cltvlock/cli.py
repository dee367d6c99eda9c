#!/usr/bin/env python3
"""
cltvlock CLI: build CLTV-locked P2SH outputs, spend and validate them

Quick start (regtest sketch)
1) bitcoind -regtest; note the owner's compressed pubkey and the tip height
2) Build the lock and fund the printed P2SH address:
   python -m cltvlock.cli build-lock --pubkey <pk> --duration 1w --current-height <tip>
3) Once mined past the lock height, sweep it:
   python -m cltvlock.cli spend --txid <funding txid> --vout <n> --value <sat> \
       --locking-script <hex> --to <addr> --fee 500 --privkey <WIF>
4) Check a spend before broadcasting:
   python -m cltvlock.cli validate --tx <hex> --locking-script <hex> --current-height <tip>

Notes
- Broadcast, UTXO lookup and key storage are left to bitcoind / your wallet.
- Lock heights are block heights only (< 500000000).
"""
import argparse
import logging
import sys
from typing import Any, Dict, Optional, Sequence

from .address import address_to_script_pubkey, funding_commitment, parse_address, verify_script_address
from .duration import PRESETS, resolve_lock_height
from .errors import CltvLockError, EncodingError, InvalidParameter
from .hexutil import file_or_hex, parse_hex, parse_txid
from .network import DEFAULT_NETWORK, NETWORKS, Network, get_network
from .params import LockParameters
from .script import build_locking_script, disasm, parse_locking_script
from .sighash import LocalKeyCustody
from .spend import DEFAULT_DUST_THRESHOLD, spend_timelocked
from .tx import DEFAULT_SEQUENCE, Transaction, UnspentReference
from .txio import load_tx_from_file, write_tx
from .validator import StaticHeightOracle, validate

logger = logging.getLogger(__name__)


def _print_result(args: argparse.Namespace, out: Dict[str, Any]) -> None:
    if args.json:
        import json
        print(json.dumps(out))
    else:
        width = max(len(k) for k in out)
        for k, v in out.items():
            print(f"{k.ljust(width)} = {v}")


def _lock_summary(locking_script: bytes, params: LockParameters, network: Network) -> Dict[str, Any]:
    fc = funding_commitment(locking_script, network)
    return {
        'network': network.name,
        'lock_height': params.lock_height,
        'owner_pubkey': params.owner_pubkey.hex(),
        'locking_script_hex': locking_script.hex(),
        'script_hash': fc.script_hash.hex(),
        'funding_script_hex': fc.script_pubkey.hex(),
        'address': fc.address,
    }


def _read_locking_script(args: argparse.Namespace) -> bytes:
    return file_or_hex('locking script', args.locking_script, getattr(args, 'locking_script_file', None))


def cmd_build_lock(args: argparse.Namespace) -> None:
    network = get_network(args.network)
    if args.height is not None:
        height = resolve_lock_height(args.height, 0)
    else:
        if args.current_height is None:
            raise InvalidParameter("--duration requires --current-height")
        height = resolve_lock_height(args.duration, args.current_height)
    params = LockParameters.from_hex(height, args.pubkey)
    script = build_locking_script(params)
    out = _lock_summary(script, params, network)
    if args.disasm:
        out['disasm'] = disasm(script)
    logger.info("lock at height %d -> %s", height, out['address'])
    _print_result(args, out)


def cmd_decode_script(args: argparse.Namespace) -> None:
    network = get_network(args.network)
    script = file_or_hex('script', args.script, args.script_file)
    out: Dict[str, Any] = {'disasm': disasm(script)}
    try:
        params = parse_locking_script(script)
    except (EncodingError, InvalidParameter) as e:
        out['cltv'] = False
        out['reason'] = str(e)
    else:
        out['cltv'] = True
        out.update(_lock_summary(script, params, network))
    _print_result(args, out)


def cmd_verify_address(args: argparse.Namespace) -> None:
    network = get_network(args.network)
    script = _read_locking_script(args)
    ok = verify_script_address(script, args.address, network)
    if args.json:
        import json
        print(json.dumps({'ok': ok, 'address': args.address, 'expected_address': funding_commitment(script, network).address}))
    else:
        print('[OK] locking script matches address' if ok else '[FAIL] locking script does not match address')
        print('address          =', args.address)
        print('expected_address =', funding_commitment(script, network).address)


def cmd_parse_address(args: argparse.Namespace) -> None:
    network = get_network(args.network)
    version = network.pubkey_version if args.p2pkh else network.script_version
    h = parse_address(args.address, version)
    _print_result(args, {
        'address': args.address,
        'version': version,
        'hash160': h.hex(),
        'script_pubkey_hex': address_to_script_pubkey(args.address, network).hex(),
    })


def cmd_spend(args: argparse.Namespace) -> None:
    network = get_network(args.network)
    script = _read_locking_script(args)
    utxo = UnspentReference(parse_txid(args.txid), args.vout, args.value, script)
    custody = LocalKeyCustody.from_string(args.privkey, network)
    tx = spend_timelocked(
        utxo, args.to, args.fee, custody,
        network=network,
        lock_time=args.locktime,
        sequence=args.sequence,
        dust_threshold=args.dust_threshold,
    )
    if args.tx_out:
        write_tx(tx, args.tx_out)
    _print_result(args, {'txid': tx.txid(), 'lock_time': tx.lock_time, 'tx_hex': tx.hex()})


def cmd_validate(args: argparse.Namespace) -> None:
    if args.tx:
        tx = Transaction.parse(parse_hex('tx', args.tx))
    elif args.tx_file:
        tx = load_tx_from_file(args.tx_file)
    else:
        raise InvalidParameter("Provide --tx or --tx-file")
    script = _read_locking_script(args)
    oracle: Optional[StaticHeightOracle] = None
    if args.current_height is not None:
        oracle = StaticHeightOracle(args.current_height)
    res = validate(tx, oracle, script, args.input_index)
    if args.json:
        import json
        print(json.dumps({
            'ok': res.ok,
            'txid': tx.txid(),
            'reason': res.reason.name if res.reason else None,
            'detail': res.detail,
        }))
    else:
        print('[OK] spend is valid' if res.ok else '[FAIL] spend rejected')
        print('txid   =', tx.txid())
        if not res.ok:
            print('reason =', res.reason.name)
            print('detail =', res.detail)


def _configure_logging(verbosity: int) -> None:
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity >= 2:
        level = logging.DEBUG
    logging.basicConfig(level=level, stream=sys.stderr, format='%(levelname)s %(name)s: %(message)s')


def build_parser() -> argparse.ArgumentParser:
    epilog = (
        "Quick start (regtest):\n"
        "  1) build-lock --pubkey <pk> --duration 1w --current-height <tip>; fund the address\n"
        "  2) after the lock height: spend --txid .. --vout .. --value .. --locking-script .. --to .. --fee .. --privkey ..\n"
        "  3) validate --tx <hex> --locking-script <hex> [--current-height <tip>]\n"
        "Notes: broadcast with bitcoin-cli sendrawtransaction."
    )
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument('--network', default=DEFAULT_NETWORK, choices=sorted(NETWORKS), help='address network (default: regtest)')
    common.add_argument('--json', action='store_true', help='print JSON output')
    common.add_argument('-v', '--verbose', action='count', default=0, help='log to stderr (-v info, -vv debug)')

    ap = argparse.ArgumentParser(description="cltvlock CLI (absolute-timelock P2SH outputs)", epilog=epilog,
                                 formatter_class=argparse.RawDescriptionHelpFormatter)
    sub = ap.add_subparsers(dest='cmd', required=True)

    ap_b = sub.add_parser('build-lock', parents=[common], help='build the CLTV locking script and its P2SH address')
    ap_b.add_argument('--pubkey', required=True, help='33B hex compressed owner pubkey')
    grp = ap_b.add_mutually_exclusive_group(required=True)
    grp.add_argument('--height', type=int, help='absolute lock height')
    grp.add_argument('--duration', help=f"preset added to --current-height ({', '.join(PRESETS)})")
    ap_b.add_argument('--current-height', type=int, help='chain tip height (with --duration)')
    ap_b.add_argument('--disasm', action='store_true', help='include a simple disassembly')
    ap_b.set_defaults(func=cmd_build_lock)

    ap_d = sub.add_parser('decode-script', parents=[common], help='disassemble a script and decode it if it is a CLTV lock')
    ap_d.add_argument('--script', help='script hex')
    ap_d.add_argument('--script-file', help='read script hex from file')
    ap_d.set_defaults(func=cmd_decode_script)

    ap_v = sub.add_parser('verify-address', parents=[common], help='check a revealed locking script against a funded address')
    ap_v.add_argument('--locking-script', help='locking script hex')
    ap_v.add_argument('--locking-script-file', help='read locking script hex from file')
    ap_v.add_argument('--address', required=True, help='P2SH address that was funded')
    ap_v.set_defaults(func=cmd_verify_address)

    ap_p = sub.add_parser('parse-address', parents=[common], help='decode a Base58Check address')
    ap_p.add_argument('--address', required=True)
    ap_p.add_argument('--p2pkh', action='store_true', help='expect a P2PKH instead of a P2SH version byte')
    ap_p.set_defaults(func=cmd_parse_address)

    ap_s = sub.add_parser('spend', parents=[common], help='build and sign a transaction sweeping a timelocked output')
    ap_s.add_argument('--txid', required=True, help='funding txid (hex, display order)')
    ap_s.add_argument('--vout', required=True, type=int, help='funding output index')
    ap_s.add_argument('--value', required=True, type=int, help='funding output value (sats)')
    ap_s.add_argument('--locking-script', help='locking script hex')
    ap_s.add_argument('--locking-script-file', help='read locking script hex from file')
    ap_s.add_argument('--to', required=True, help='destination address (P2PKH or P2SH)')
    ap_s.add_argument('--fee', required=True, type=int, help='absolute fee in sats')
    ap_s.add_argument('--privkey', required=True, help='owner private key (64 hex chars or WIF)')
    ap_s.add_argument('--locktime', type=int, help='tx lock time (default: the script lock height)')
    ap_s.add_argument('--sequence', type=lambda s: int(s, 0), default=DEFAULT_SEQUENCE, help='input sequence (default 0xfffffffe)')
    ap_s.add_argument('--dust-threshold', type=int, default=DEFAULT_DUST_THRESHOLD, help='minimum output value (sats)')
    ap_s.add_argument('--tx-out', help='optional file to write the raw tx hex to')
    ap_s.set_defaults(func=cmd_spend)

    ap_c = sub.add_parser('validate', parents=[common], help='validate a signed spend of a timelocked output')
    ap_c.add_argument('--tx', help='raw transaction hex')
    ap_c.add_argument('--tx-file', help='read raw transaction hex from file')
    ap_c.add_argument('--locking-script', help='locking script hex')
    ap_c.add_argument('--locking-script-file', help='read locking script hex from file')
    ap_c.add_argument('--input-index', type=int, help='spending input (default: located by scriptSig)')
    ap_c.add_argument('--current-height', type=int, help='also require the lock to be mature at this height')
    ap_c.set_defaults(func=cmd_validate)
    return ap


def main(argv: Optional[Sequence[str]] = None) -> None:
    ap = build_parser()
    args = ap.parse_args(argv)
    _configure_logging(args.verbose)
    try:
        args.func(args)
    except CltvLockError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == '__main__':
    main()
