"""Starknet-native hash primitives.

Poseidon (Hades permutation, width 3) drives the shared-secret scalar, the
view tag and the deployment salt. Pedersen drives the contract address
chain. Both come from the libraries the Starknet Python tooling itself
uses, so the outputs agree bit-for-bit with the ledger.
"""

from __future__ import annotations

from collections.abc import Sequence
from functools import reduce

from poseidon_py.poseidon_hash import poseidon_hash_many as _poseidon_hash_many
from starknet_py.hash.utils import pedersen_hash as _pedersen_hash

from starknet_stealth.utils.constants import FIELD_PRIME


def _felt(value: int) -> int:
    value = int(value)
    if value < 0 or value >= FIELD_PRIME:
        raise ValueError(f"Value {value:#x} is not a field element")
    return value


def poseidon_hash_many(values: Sequence[int]) -> int:
    """Poseidon sponge over a sequence of field elements."""
    return _poseidon_hash_many([_felt(v) for v in values])


def pedersen_hash(left: int, right: int) -> int:
    return _pedersen_hash(_felt(left), _felt(right))


def compute_hash_on_elements(values: Sequence[int]) -> int:
    """Pedersen chain h(h(h(0, a0), a1), ..., len(values))."""
    return reduce(pedersen_hash, [*values, len(values)], 0)
