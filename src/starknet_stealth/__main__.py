"""Main entry point: python -m starknet_stealth"""

from __future__ import annotations

import argparse
import json
import logging
import sys

from starknet_stealth import __version__
from starknet_stealth.analysis.metrics import ScanMetrics
from starknet_stealth.analysis.scanner import StealthScanner
from starknet_stealth.analysis.sources import InMemoryRegistry, RpcEventSource
from starknet_stealth.core.keys import (
    create_meta_address,
    decode_meta_address,
    encode_meta_address,
    generate_private_key,
    get_public_key,
    parse_felt,
)
from starknet_stealth.core.stealth import generate_stealth_address
from starknet_stealth.core.withdrawal import plan_withdrawals
from starknet_stealth.utils.config import StealthConfig
from starknet_stealth.utils.errors import ScanError, StealthError
from starknet_stealth.utils.log import configure_logging
from starknet_stealth.utils.types import WithdrawalPlanOptions

logger = logging.getLogger("starknet_stealth.cli")

DEMO_FACTORY = 0x2
DEMO_CLASS_HASH = 0x1234


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="starknet-stealth",
        description="Dual-key stealth addresses on the STARK curve",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    parser.add_argument("--config", type=str, help="JSON config file (default: STEALTH_* env vars)")

    sub = parser.add_subparsers(dest="command")

    # keygen
    sub.add_parser("keygen", help="Generate spending and viewing key pairs")

    # meta-address
    meta = sub.add_parser("meta-address", help="Build a meta-address from private keys")
    meta.add_argument("--spending-key", type=str, required=True, help="Spending private key")
    meta.add_argument("--viewing-key", type=str, help="Viewing private key (dual-key scheme)")

    # send
    send = sub.add_parser("send", help="Derive a stealth address for a meta-address")
    send.add_argument("--spending-x", type=str, required=True)
    send.add_argument("--spending-y", type=str, required=True)
    send.add_argument("--viewing-x", type=str)
    send.add_argument("--viewing-y", type=str)
    send.add_argument("--scheme-id", type=int, default=0)

    # scan
    scan = sub.add_parser("scan", help="Scan the announcement log over RPC")
    scan.add_argument("--spending-key", type=str, required=True, help="Spending private key")
    scan.add_argument("--viewing-key", type=str, help="Viewing private key (defaults to spending)")
    scan.add_argument("--from-block", type=int, default=0)
    scan.add_argument("--to-block", type=int)

    # plan
    plan = sub.add_parser("plan", help="Plan randomized withdrawals")
    plan.add_argument("--amount", type=str, required=True, help="Total amount (base units)")
    plan.add_argument("--splits", type=int, default=1)
    plan.add_argument("--min-delay-ms", type=int, default=0)
    plan.add_argument("--max-delay-ms", type=int)

    # demo
    demo = sub.add_parser("demo", help="Run a full in-memory send/scan flow")
    demo.add_argument("--payments", type=int, default=3, help="Payments to the recipient")
    demo.add_argument("--noise", type=int, default=200, help="Unrelated announcements")

    return parser


def load_config(args: argparse.Namespace) -> StealthConfig:
    if getattr(args, "config", None):
        return StealthConfig.load(args.config)
    return StealthConfig.from_env()


def print_json(payload: dict) -> None:
    print(json.dumps(payload, indent=2))


def run_keygen(args: argparse.Namespace) -> None:
    spending = generate_private_key()
    viewing = generate_private_key()
    meta = create_meta_address(spending, viewing)
    print_json(
        {
            "spending_private_key": hex(spending),
            "viewing_private_key": hex(viewing),
            "meta_address": encode_meta_address(meta),
        }
    )


def run_meta_address(args: argparse.Namespace) -> None:
    spending = parse_felt(args.spending_key)
    viewing = parse_felt(args.viewing_key) if args.viewing_key else None
    print_json(encode_meta_address(create_meta_address(spending, viewing)))


def run_send(args: argparse.Namespace) -> None:
    config = load_config(args)
    meta = decode_meta_address(
        args.spending_x, args.spending_y, args.viewing_x, args.viewing_y, args.scheme_id
    )
    result = generate_stealth_address(meta, config.factory_address, config.account_class_hash)
    print_json(
        {
            "stealth_address": hex(result.stealth_address),
            "stealth_pubkey": [hex(result.stealth_pubkey.x), hex(result.stealth_pubkey.y)],
            "ephemeral_pubkey": [hex(result.ephemeral_pubkey.x), hex(result.ephemeral_pubkey.y)],
            "view_tag": result.view_tag,
        }
    )


def run_scan(args: argparse.Namespace) -> None:
    config = load_config(args)
    errors = config.validate()
    if errors:
        for error in errors:
            print(f"config: {error}", file=sys.stderr)
        sys.exit(2)

    spending = parse_felt(args.spending_key)
    viewing = parse_felt(args.viewing_key) if args.viewing_key else spending

    with RpcEventSource(
        config.rpc_url,
        config.registry_address,
        chunk_size=config.chunk_size,
        timeout=config.request_timeout,
    ) as source:
        scanner = StealthScanner(
            source, config.factory_address, config.account_class_hash, config.max_pages
        )
        results = scanner.scan(
            get_public_key(spending), viewing, spending, args.from_block, args.to_block
        )

    print_results(results, ScanMetrics(scanner.last_stats))


def print_results(results: list, metrics: ScanMetrics) -> None:
    summary = metrics.summary()
    print()
    print("=" * 50)
    print(" SCAN RESULTS")
    print("=" * 50)
    print(f"  Announcements:       {summary['total_announcements']}")
    print(f"  View tag matches:    {summary['view_tag_matches']}")
    print(f"  Confirmed payments:  {summary['confirmed_matches']}")
    print(f"  False positive rate: {summary['false_positive_rate']:.4f}")
    print(f"  Tag match rate:      {summary['tag_match_rate']:.5f} (expected {summary['expected_tag_match_rate']:.5f})")
    print(f"  Scan time:           {summary['scan_time_ms']:.1f} ms")
    print("=" * 50)
    for result in results:
        print(f"  {result.stealth_address}  spending key {hex(result.spending_key)}")


def run_plan(args: argparse.Namespace) -> None:
    options = WithdrawalPlanOptions(
        splits=args.splits,
        min_delay_ms=args.min_delay_ms,
        max_delay_ms=args.max_delay_ms,
    )
    steps = plan_withdrawals(parse_felt(args.amount), options)
    print_json({"steps": [{"amount": s.amount, "delay_ms": s.delay_ms} for s in steps]})


def run_demo(args: argparse.Namespace) -> None:
    """Register, pay, add noise, and scan, all against an in-memory registry."""
    registry = InMemoryRegistry(page_size=100)

    print("Recipient: generating keys and registering meta-address...")
    spending = generate_private_key()
    viewing = generate_private_key()
    meta = create_meta_address(spending, viewing)
    registry.register_meta_address(
        "alice",
        meta.spending_key.x,
        meta.spending_key.y,
        meta.viewing_key.x,
        meta.viewing_key.y,
        meta.scheme_id,
    )

    print(f"Sender: sending {args.payments} payments and {args.noise} unrelated announcements...")
    published = registry.get_meta_address("alice")
    for _ in range(args.payments):
        result = generate_stealth_address(published, DEMO_FACTORY, DEMO_CLASS_HASH)
        registry.announce(
            published.scheme_id,
            result.ephemeral_pubkey.x,
            result.ephemeral_pubkey.y,
            result.stealth_address,
            result.view_tag,
        )

    stranger = create_meta_address(generate_private_key(), generate_private_key())
    for _ in range(args.noise):
        result = generate_stealth_address(stranger, DEMO_FACTORY, DEMO_CLASS_HASH)
        registry.announce(
            stranger.scheme_id,
            result.ephemeral_pubkey.x,
            result.ephemeral_pubkey.y,
            result.stealth_address,
            result.view_tag,
        )

    print("Recipient: scanning...")
    scanner = StealthScanner(registry, DEMO_FACTORY, DEMO_CLASS_HASH)
    results = scanner.scan(meta.spending_key, viewing, spending)
    print_results(results, ScanMetrics(scanner.last_stats))


def main() -> None:
    parser = build_parser()
    args = parser.parse_args()
    configure_logging("DEBUG" if args.verbose else "WARNING")

    commands = {
        "keygen": run_keygen,
        "meta-address": run_meta_address,
        "send": run_send,
        "scan": run_scan,
        "plan": run_plan,
        "demo": run_demo,
    }
    command = commands.get(args.command)
    if command is None:
        parser.print_help()
        return

    try:
        command(args)
    except ScanError as exc:
        logger.error("Scan failed: %s", exc)
        sys.exit(3)
    except (StealthError, ValueError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
