"""Deterministic contract address computation.

Reproduces the ledger's deploy-address formula:

    address = H([PREFIX, deployer, salt, class_hash, H(constructor_args)])
              mod (2^251 - 256)

where H is the Pedersen hash-on-elements chain and PREFIX is the ASCII
string "STARKNET_CONTRACT_ADDRESS" read as a big-endian integer. The formula
is a fixed external contract: any change here strands funds at addresses
nobody can deploy to, so it is versioned and pinned by fixed vectors.
"""

from __future__ import annotations

from collections.abc import Sequence

from starknet_stealth.core.hashing import compute_hash_on_elements
from starknet_stealth.utils.constants import (
    ADDRESS_FORMULA_VERSION,
    ADDRESS_UPPER_BOUND,
    CONTRACT_ADDRESS_PREFIX,
)
from starknet_stealth.utils.types import Point

__all__ = [
    "ADDRESS_FORMULA_VERSION",
    "addresses_equal",
    "compute_stealth_contract_address",
    "compute_target_address",
    "format_address",
    "parse_address",
]


def parse_address(value: int | str) -> int:
    """Accept an int or a hex string ("0x..." or bare hex)."""
    if isinstance(value, int):
        return value
    cleaned = value.strip().lower()
    if cleaned.startswith("0x"):
        cleaned = cleaned[2:]
    try:
        return int(cleaned, 16)
    except ValueError:
        raise ValueError(f"Invalid address: {value!r}")


def format_address(value: int | str) -> str:
    """Lowercase 0x-prefixed hex without zero padding."""
    return hex(parse_address(value))


def addresses_equal(a: int | str, b: int | str) -> bool:
    """Case-insensitive comparison of two addresses."""
    try:
        return parse_address(a) == parse_address(b)
    except ValueError:
        return False


def compute_target_address(
    class_id: int | str,
    deployer_id: int | str,
    salt: int,
    constructor_args: Sequence[int],
) -> int:
    """Address the deployer will produce for (class, salt, constructor args)."""
    args_hash = compute_hash_on_elements([int(arg) for arg in constructor_args])
    raw_address = compute_hash_on_elements(
        [
            CONTRACT_ADDRESS_PREFIX,
            parse_address(deployer_id),
            int(salt),
            parse_address(class_id),
            args_hash,
        ]
    )
    return raw_address % ADDRESS_UPPER_BOUND


def compute_stealth_contract_address(
    class_id: int | str,
    deployer_id: int | str,
    salt: int,
    stealth_pubkey: Point,
) -> int:
    """Stealth account address; the account constructor takes (pubkey_x, pubkey_y)."""
    return compute_target_address(
        class_id, deployer_id, salt, [stealth_pubkey.x, stealth_pubkey.y]
    )
