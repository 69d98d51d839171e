"""Private key sampling and normalization, public keys, meta-addresses."""

from __future__ import annotations

import logging
import secrets

from starknet_stealth.core.curve import (
    assert_valid_point,
    assert_valid_scalar,
    base_multiply,
    normalize_point,
)
from starknet_stealth.utils.constants import (
    CURVE_ORDER,
    FIELD_HALF,
    FIELD_PRIME,
    SCHEME_DUAL_KEY,
    SCHEME_SINGLE_KEY,
    SUPPORTED_SCHEMES,
)
from starknet_stealth.utils.errors import InvalidPoint, UnsupportedScheme
from starknet_stealth.utils.types import EphemeralKeyPair, MetaAddress, Point

logger = logging.getLogger(__name__)


def parse_felt(value: str | int | bytes) -> int:
    """Accept an int, 32 raw bytes, a 0x-hex string, or a decimal string."""
    if isinstance(value, bool):
        raise TypeError("Felt must be str, int, or bytes, got bool")
    if isinstance(value, int):
        if value < 0 or value >= FIELD_PRIME:
            raise ValueError("Integer felt must be in range [0, p - 1]")
        return value
    if isinstance(value, bytes):
        if len(value) != 32:
            raise ValueError(f"Bytes felt must be exactly 32 bytes, got {len(value)}")
        return parse_felt(int.from_bytes(value, byteorder="big"))
    if isinstance(value, str):
        cleaned = value.strip().lower()
        try:
            if cleaned.startswith("0x"):
                parsed = int(cleaned, 16)
            else:
                parsed = int(cleaned, 10)
        except ValueError:
            raise ValueError(f"Invalid felt string: {value!r}")
        return parse_felt(parsed)
    raise TypeError(f"Felt must be str, int, or bytes, got {type(value).__name__}")


def generate_private_key() -> int:
    """Random scalar in [1, n - 1] from the OS CSPRNG, normalized."""
    raw = int.from_bytes(secrets.token_bytes(32), byteorder="big")
    key = raw % (CURVE_ORDER - 1) + 1
    return normalize_private_key(key)


def normalize_private_key(private_key: int) -> int:
    """Return the scalar whose public key is the canonical one.

    If k*G has y > (p - 1) / 2 the key is replaced by n - k, whose public
    key is the reflection (x, p - y). Idempotent.
    """
    assert_valid_scalar(private_key, "private key")
    raw = base_multiply(private_key)
    if raw.y > FIELD_HALF:
        return CURVE_ORDER - private_key
    return private_key


def get_public_key(private_key: int) -> Point:
    """k*G in canonical form."""
    assert_valid_scalar(private_key, "private key")
    return normalize_point(base_multiply(private_key))


def generate_ephemeral_key_pair() -> EphemeralKeyPair:
    private_key = generate_private_key()
    return EphemeralKeyPair(private_key=private_key, public_key=get_public_key(private_key))


def create_meta_address(spending_key: int, viewing_key: int | None = None) -> MetaAddress:
    """Build a meta-address from private keys.

    Scheme 0 when the viewing key is omitted or normalizes to the spending
    key, scheme 1 otherwise.
    """
    spending = normalize_private_key(spending_key)
    viewing = normalize_private_key(viewing_key) if viewing_key is not None else spending

    spending_pub = assert_valid_point(get_public_key(spending), "spending public key")
    viewing_pub = assert_valid_point(get_public_key(viewing), "viewing public key")

    scheme_id = SCHEME_DUAL_KEY if viewing != spending else SCHEME_SINGLE_KEY
    logger.debug("Created meta-address with scheme_id %d", scheme_id)
    return MetaAddress(spending_key=spending_pub, viewing_key=viewing_pub, scheme_id=scheme_id)


def validate_meta_address(meta: MetaAddress) -> MetaAddress:
    """Check the scheme id and both keys of an externally sourced meta-address."""
    if meta.scheme_id not in SUPPORTED_SCHEMES:
        raise UnsupportedScheme(meta.scheme_id)
    spending = assert_valid_point(meta.spending_key, "spending public key")
    viewing = assert_valid_point(meta.viewing_key, "viewing public key")
    if meta.scheme_id == SCHEME_SINGLE_KEY and spending != viewing:
        raise InvalidPoint("Viewing key must match spending key for scheme_id 0")
    return MetaAddress(spending_key=spending, viewing_key=viewing, scheme_id=meta.scheme_id)


def encode_meta_address(meta: MetaAddress) -> dict[str, str | int]:
    """Registry arguments for ``register_meta_address`` as hex strings."""
    return {
        "spending_x": hex(meta.spending_key.x),
        "spending_y": hex(meta.spending_key.y),
        "viewing_x": hex(meta.viewing_key.x),
        "viewing_y": hex(meta.viewing_key.y),
        "scheme_id": meta.scheme_id,
    }


def decode_meta_address(
    spending_x: str | int,
    spending_y: str | int,
    viewing_x: str | int | None = None,
    viewing_y: str | int | None = None,
    scheme_id: int = SCHEME_SINGLE_KEY,
) -> MetaAddress:
    """Rebuild a meta-address from registry values, validating everything."""
    if scheme_id not in SUPPORTED_SCHEMES:
        raise UnsupportedScheme(scheme_id)

    spending = assert_valid_point(
        Point(parse_felt(spending_x), parse_felt(spending_y)), "spending public key"
    )
    has_viewing = viewing_x is not None and viewing_y is not None

    if scheme_id == SCHEME_SINGLE_KEY:
        if has_viewing:
            viewing = Point(parse_felt(viewing_x), parse_felt(viewing_y))  # type: ignore[arg-type]
            if viewing != spending:
                raise InvalidPoint("Viewing key must match spending key for scheme_id 0")
        return MetaAddress(spending_key=spending, viewing_key=spending, scheme_id=scheme_id)

    if not has_viewing:
        raise InvalidPoint("Viewing key required for scheme_id 1")
    viewing = assert_valid_point(
        Point(parse_felt(viewing_x), parse_felt(viewing_y)),  # type: ignore[arg-type]
        "viewing public key",
    )
    return MetaAddress(spending_key=spending, viewing_key=viewing, scheme_id=scheme_id)
