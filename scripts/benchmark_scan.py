#!/usr/bin/env python3
"""Benchmark the two scan phases against the cost model.

Measures the view-tag pre-filter alone, a full scan with verification,
and a batch scan for several recipients, then prints measured times next
to ``estimate_scan_time``.
"""

from __future__ import annotations

import argparse
import time

import numpy as np

from starknet_stealth.analysis.metrics import ScanMetrics, estimate_scan_time
from starknet_stealth.analysis.scanner import BatchScanner, StealthScanner
from starknet_stealth.analysis.sources import InMemoryRegistry, fetch_announcements
from starknet_stealth.core.keys import create_meta_address, get_public_key
from starknet_stealth.core.stealth import check_view_tag, generate_stealth_address
from starknet_stealth.utils.constants import CURVE_ORDER
from starknet_stealth.utils.types import RecipientKeys

FACTORY = 0x2
CLASS_HASH = 0x1234


def build_log(registry: InMemoryRegistry, n_announcements: int, rng: np.random.Generator) -> None:
    """Fill the registry with announcements for random recipients."""
    for _ in range(n_announcements):
        spending = int.from_bytes(rng.bytes(32), "big") % (CURVE_ORDER - 1) + 1
        meta = create_meta_address(spending)
        result = generate_stealth_address(meta, FACTORY, CLASS_HASH)
        registry.announce(
            meta.scheme_id,
            result.ephemeral_pubkey.x,
            result.ephemeral_pubkey.y,
            result.stealth_address,
            result.view_tag,
        )


def benchmark(n_announcements: int, n_recipients: int, workers: int) -> dict:
    rng = np.random.default_rng(42)
    registry = InMemoryRegistry(page_size=100)

    t0 = time.perf_counter()
    build_log(registry, n_announcements, rng)
    t_build = time.perf_counter() - t0

    recipients = [
        RecipientKeys(get_public_key(1000 + i), 2000 + i, 1000 + i) for i in range(n_recipients)
    ]
    announcements = fetch_announcements(registry)

    # View tag only
    t0 = time.perf_counter()
    for ann in announcements:
        check_view_tag(recipients[0].viewing_key, ann.ephemeral_pubkey, ann.view_tag)
    t_tag = time.perf_counter() - t0

    # Full single-recipient scan
    scanner = StealthScanner(registry, FACTORY, CLASS_HASH)
    r = recipients[0]
    scanner.scan(r.spending_pubkey, r.viewing_key, r.spending_key)
    metrics = ScanMetrics(scanner.last_stats)

    # Batch
    batch = BatchScanner(registry, FACTORY, CLASS_HASH)
    t0 = time.perf_counter()
    batch.scan_batch(recipients, max_workers=workers)
    t_batch = time.perf_counter() - t0

    return {
        "build": t_build,
        "view_tag": t_tag,
        "scan_ms": scanner.last_stats.scan_time_ms,
        "estimate_ms": estimate_scan_time(n_announcements),
        "batch": t_batch,
        "tag_matches": scanner.last_stats.view_tag_matches,
        "pvalue": metrics.filter_pvalue(),
    }


def main() -> None:
    parser = argparse.ArgumentParser(description="Benchmark announcement scanning")
    parser.add_argument("--announcements", type=int, default=500)
    parser.add_argument("--recipients", type=int, default=4)
    parser.add_argument("--workers", type=int, default=4)
    args = parser.parse_args()

    results = benchmark(args.announcements, args.recipients, args.workers)

    print(f"\nBenchmark: {args.announcements:,} announcements, {args.recipients} recipients")
    print(f"{'Phase':<25} {'Measured':<14} {'Estimate':<14}")
    print("-" * 53)
    print(f"{'build log (s)':<25} {results['build']:<14.4f} {'N/A':<14}")
    print(f"{'view tag only (s)':<25} {results['view_tag']:<14.4f} {'N/A':<14}")
    print(f"{'full scan (ms)':<25} {results['scan_ms']:<14.1f} {results['estimate_ms']:<14.1f}")
    print(f"{'batch scan (s)':<25} {results['batch']:<14.4f} {'N/A':<14}")
    print(f"\nView tag matches: {results['tag_matches']} (filter p-value {results['pvalue']:.3f})")


if __name__ == "__main__":
    main()
