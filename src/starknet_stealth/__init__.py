"""Dual-key stealth addresses on the STARK curve.

Recipients publish a meta-address; senders derive one-time stealth
addresses from it; recipients find their payments by scanning the
announcement log.
"""

from starknet_stealth.analysis.metrics import (
    ScanMetrics,
    estimate_scan_time,
    expected_false_positive_rate,
)
from starknet_stealth.analysis.scanner import BatchScanner, StealthScanner
from starknet_stealth.analysis.sources import InMemoryRegistry, RpcEventSource
from starknet_stealth.core.address import compute_target_address
from starknet_stealth.core.curve import is_on_curve, normalize_point
from starknet_stealth.core.keys import (
    create_meta_address,
    decode_meta_address,
    encode_meta_address,
    generate_ephemeral_key_pair,
    generate_private_key,
    get_public_key,
    normalize_private_key,
)
from starknet_stealth.core.stealth import (
    check_view_tag,
    compute_shared_secret,
    compute_view_tag,
    derive_stealth_private_key,
    derive_stealth_pubkey,
    generate_stealth_address,
    hash_shared_secret,
    verify_stealth_address,
)
from starknet_stealth.core.withdrawal import plan_withdrawals
from starknet_stealth.utils.types import (
    Announcement,
    MetaAddress,
    Point,
    RecipientKeys,
    ScanResult,
    ScanStats,
)

__version__ = "0.1.0"

__all__ = [
    "Announcement",
    "BatchScanner",
    "InMemoryRegistry",
    "MetaAddress",
    "Point",
    "RecipientKeys",
    "RpcEventSource",
    "ScanMetrics",
    "ScanResult",
    "ScanStats",
    "StealthScanner",
    "check_view_tag",
    "compute_shared_secret",
    "compute_target_address",
    "compute_view_tag",
    "create_meta_address",
    "decode_meta_address",
    "derive_stealth_private_key",
    "derive_stealth_pubkey",
    "encode_meta_address",
    "estimate_scan_time",
    "expected_false_positive_rate",
    "generate_ephemeral_key_pair",
    "generate_private_key",
    "generate_stealth_address",
    "get_public_key",
    "hash_shared_secret",
    "is_on_curve",
    "normalize_point",
    "normalize_private_key",
    "plan_withdrawals",
    "verify_stealth_address",
]
