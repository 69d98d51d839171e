"""ECDH stealth derivation (DKSAP over the STARK curve).

Protocol:

1. Recipient publishes meta-address (K, V) = (k*G, v*G).
2. Sender picks ephemeral r, publishes R = r*G.
3. Sender computes S = r*V; recipient computes the same S = v*R. Both
   scalars are normalized, so both sides reach the same affine point; S is
   hashed as is, without reflecting y.
4. Stealth public key P = K + h(S)*G; recipient's key p = k + h(S) mod n.
5. View tag = low byte of the Poseidon digest behind h(S).

Every function taking a point from outside validates it. ``check_view_tag``
and ``verify_stealth_address`` are the only functions that swallow
validation errors, because the scanner feeds them untrusted log entries.
``ecdh`` and ``matches_stealth_address`` are the pieces the scanner reuses
with keys it normalized once per scan.
"""

from __future__ import annotations

import logging

from starknet_stealth.core.address import addresses_equal, compute_stealth_contract_address
from starknet_stealth.core.curve import (
    assert_valid_point,
    assert_valid_scalar,
    base_multiply,
    normalize_point,
    point_add,
    scalar_multiply,
)
from starknet_stealth.core.hashing import poseidon_hash_many
from starknet_stealth.core.keys import (
    generate_ephemeral_key_pair,
    get_public_key,
    normalize_private_key,
    validate_meta_address,
)
from starknet_stealth.utils.constants import CURVE_ORDER, VIEW_TAG_MASK
from starknet_stealth.utils.errors import CurveValidationError, InvalidPoint, InvalidScalar
from starknet_stealth.utils.types import (
    EphemeralKeyPair,
    MetaAddress,
    Point,
    StealthAddressResult,
)

logger = logging.getLogger(__name__)


def ecdh(normalized_scalar: int, point: Point) -> Point:
    """normalized_scalar * point, raw affine. The scalar must already be normalized."""
    public = assert_valid_point(point, "ECDH public key")
    return scalar_multiply(normalized_scalar, public)


def compute_shared_secret(scalar: int, point: Point) -> Point:
    """S = normalize(scalar) * point, not reflected to canonical y."""
    return ecdh(normalize_private_key(scalar), point)


def _split_digest(shared_secret: Point) -> tuple[int, int]:
    # Single source for both the scalar and the view tag
    digest = poseidon_hash_many([shared_secret.x, shared_secret.y])
    scalar = digest % CURVE_ORDER
    if scalar == 0:
        raise InvalidScalar("Invalid shared secret hash scalar (zero)")
    return scalar, digest & VIEW_TAG_MASK


def hash_shared_secret(shared_secret: Point) -> int:
    """Poseidon(S.x, S.y) mod n, nonzero."""
    return _split_digest(shared_secret)[0]


def compute_view_tag(shared_secret: Point) -> int:
    """Low 8 bits of the unreduced digest."""
    return _split_digest(shared_secret)[1]


def derive_stealth_pubkey(spending_pubkey: Point, shared_secret: Point) -> Point:
    """P = K + h(S)*G, canonical."""
    spending = assert_valid_point(spending_pubkey, "spending public key")
    hash_point = base_multiply(hash_shared_secret(shared_secret))
    return normalize_point(point_add(spending, hash_point))


def derive_stealth_private_key(spending_private_key: int, shared_secret: Point) -> int:
    """p = k + h(S) mod n, normalized so that p*G is the canonical P."""
    spending = normalize_private_key(spending_private_key)
    derived = (spending + hash_shared_secret(shared_secret)) % CURVE_ORDER
    return normalize_private_key(derived)


def compute_deployment_salt(ephemeral_pubkey: Point) -> int:
    """Poseidon(R.x, R.y): reproducible from the announced ephemeral key."""
    return poseidon_hash_many([ephemeral_pubkey.x, ephemeral_pubkey.y])


def generate_stealth_address(
    meta_address: MetaAddress,
    deployer_id: int | str,
    class_id: int | str,
    ephemeral: EphemeralKeyPair | None = None,
) -> StealthAddressResult:
    """Derive a one-time stealth address for ``meta_address``.

    A fresh ephemeral key pair is generated unless one is supplied. Callers
    that supply one must never reuse it for another payment.
    """
    meta = validate_meta_address(meta_address)

    if ephemeral is None:
        ephemeral = generate_ephemeral_key_pair()
    else:
        assert_valid_scalar(ephemeral.private_key, "ephemeral private key")
        if assert_valid_point(ephemeral.public_key, "ephemeral public key") != get_public_key(
            ephemeral.private_key
        ):
            raise InvalidPoint("Ephemeral public key does not match its private key")

    shared_secret = compute_shared_secret(ephemeral.private_key, meta.viewing_key)
    stealth_pubkey = derive_stealth_pubkey(meta.spending_key, shared_secret)
    view_tag = compute_view_tag(shared_secret)

    salt = compute_deployment_salt(ephemeral.public_key)
    stealth_address = compute_stealth_contract_address(class_id, deployer_id, salt, stealth_pubkey)

    logger.debug("Derived stealth address %#x (scheme %d)", stealth_address, meta.scheme_id)
    return StealthAddressResult(
        stealth_address=stealth_address,
        stealth_pubkey=stealth_pubkey,
        ephemeral_pubkey=ephemeral.public_key,
        view_tag=view_tag,
        shared_secret=shared_secret,
    )


def check_view_tag(viewing_private_key: int, ephemeral_pubkey: Point, announced_view_tag: int) -> bool:
    """Fast pre-filter. False on any validation failure, never raises."""
    try:
        shared_secret = compute_shared_secret(viewing_private_key, ephemeral_pubkey)
        return compute_view_tag(shared_secret) == announced_view_tag
    except (CurveValidationError, TypeError, ValueError):
        return False


def matches_stealth_address(
    spending_pubkey: Point,
    shared_secret: Point,
    ephemeral_pubkey: Point,
    announced_stealth_address: int | str,
    deployer_id: int | str,
    class_id: int | str,
) -> bool:
    """Full check of an announced address given an already computed shared secret."""
    try:
        stealth_pubkey = derive_stealth_pubkey(spending_pubkey, shared_secret)
        salt = compute_deployment_salt(ephemeral_pubkey)
        expected = compute_stealth_contract_address(class_id, deployer_id, salt, stealth_pubkey)
    except (CurveValidationError, TypeError, ValueError):
        return False
    return addresses_equal(expected, announced_stealth_address)


def verify_stealth_address(
    spending_pubkey: Point,
    viewing_private_key: int,
    ephemeral_pubkey: Point,
    announced_stealth_address: int | str,
    deployer_id: int | str,
    class_id: int | str,
) -> Point | None:
    """Return the shared secret if the announced address is ours, else None."""
    try:
        shared_secret = compute_shared_secret(viewing_private_key, ephemeral_pubkey)
    except (CurveValidationError, TypeError, ValueError):
        return None

    if matches_stealth_address(
        spending_pubkey, shared_secret, ephemeral_pubkey, announced_stealth_address, deployer_id, class_id
    ):
        return shared_secret
    return None
