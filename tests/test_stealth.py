"""Tests for ECDH stealth derivation, view tags and address verification."""

import pytest
from poseidon_py.poseidon_hash import poseidon_hash_many as reference_poseidon_many
from starknet_py.hash.address import compute_address
from starknet_py.hash.utils import private_to_stark_key

from starknet_stealth.core.curve import STARK_CURVE, base_multiply, normalize_point, scalar_multiply
from starknet_stealth.core.hashing import poseidon_hash_many
from starknet_stealth.core.keys import create_meta_address, get_public_key, normalize_private_key
from starknet_stealth.core.stealth import (
    check_view_tag,
    compute_deployment_salt,
    compute_shared_secret,
    compute_view_tag,
    derive_stealth_private_key,
    derive_stealth_pubkey,
    ecdh,
    generate_stealth_address,
    hash_shared_secret,
    verify_stealth_address,
)
from starknet_stealth.utils.constants import CURVE_ORDER, FIELD_PRIME, GENERATOR_X, GENERATOR_Y
from starknet_stealth.utils.errors import InvalidPoint, InvalidScalar, UnsupportedScheme
from starknet_stealth.utils.types import EphemeralKeyPair, MetaAddress, Point

from conftest import ACCOUNT_CLASS_HASH, FACTORY_ADDRESS, random_scalar

G = Point(GENERATOR_X, GENERATOR_Y)


@pytest.fixture
def fixed_ephemeral():
    return EphemeralKeyPair(private_key=3, public_key=get_public_key(3))


class TestSharedSecret:
    def test_ecdh_symmetry(self, rng):
        for _ in range(5):
            a, b = random_scalar(rng), random_scalar(rng)
            assert compute_shared_secret(a, get_public_key(b)) == compute_shared_secret(
                b, get_public_key(a)
            )

    def test_shared_secret_on_curve(self, rng):
        secret = compute_shared_secret(random_scalar(rng), get_public_key(random_scalar(rng)))
        assert STARK_CURVE.contains(secret.x, secret.y)

    def test_shared_secret_not_reflected(self, rng):
        for _ in range(5):
            a, b = random_scalar(rng), random_scalar(rng)
            raw = scalar_multiply(normalize_private_key(a), get_public_key(b))
            assert compute_shared_secret(a, get_public_key(b)) == raw

    def test_shared_secret_of_small_keys(self):
        secret = compute_shared_secret(3, get_public_key(2))
        assert normalize_point(secret) == get_public_key(6)
        assert secret == STARK_CURVE.multiply(G, normalize_private_key(3) * normalize_private_key(2))

    def test_ecdh_takes_normalized_scalar(self, rng):
        a = random_scalar(rng)
        B = get_public_key(random_scalar(rng))
        assert ecdh(normalize_private_key(a), B) == compute_shared_secret(a, B)

    def test_rejects_invalid_point(self):
        with pytest.raises(InvalidPoint):
            compute_shared_secret(3, Point(1, 2))

    def test_rejects_invalid_scalar(self):
        with pytest.raises(InvalidScalar):
            compute_shared_secret(0, get_public_key(2))

    def test_hash_and_tag_share_digest(self, rng):
        secret = get_public_key(random_scalar(rng))
        digest = poseidon_hash_many([secret.x, secret.y])
        assert hash_shared_secret(secret) == digest % CURVE_ORDER
        assert compute_view_tag(secret) == digest & 0xFF


class TestDerivation:
    def test_private_key_matches_pubkey(self, rng):
        for _ in range(5):
            spending = random_scalar(rng)
            secret = get_public_key(random_scalar(rng))
            derived = derive_stealth_private_key(spending, secret)
            assert get_public_key(derived) == derive_stealth_pubkey(get_public_key(spending), secret)

    def test_derived_key_normalized(self, rng):
        secret = get_public_key(random_scalar(rng))
        derived = derive_stealth_private_key(random_scalar(rng), secret)
        assert 1 <= derived < CURVE_ORDER
        assert base_multiply(derived) == normalize_point(base_multiply(derived))

    def test_pubkey_is_spending_plus_hash_point(self, rng):
        spending = get_public_key(random_scalar(rng))
        secret = get_public_key(random_scalar(rng))
        expected = normalize_point(
            STARK_CURVE.add(spending, base_multiply(hash_shared_secret(secret)))
        )
        assert derive_stealth_pubkey(spending, secret) == expected

    def test_salt_is_poseidon_of_ephemeral(self):
        R = get_public_key(3)
        assert compute_deployment_salt(R) == poseidon_hash_many([R.x, R.y])


class TestFixedScenario:
    """spending = 1, viewing = 2, ephemeral = 3."""

    def test_scenario_values(self, fixed_ephemeral):
        meta = create_meta_address(1, 2)
        result = generate_stealth_address(meta, FACTORY_ADDRESS, ACCOUNT_CLASS_HASH, fixed_ephemeral)

        assert result.view_tag == 0xA6
        assert result.ephemeral_pubkey == get_public_key(3)
        # 6G hashed as computed, not reflected to canonical y
        assert normalize_point(result.shared_secret) == get_public_key(6)
        assert result.shared_secret != get_public_key(6)

    def test_scenario_matches_starknet_libraries(self, fixed_ephemeral):
        """Each step recomputed with starknet-py and poseidon-py directly."""
        meta = create_meta_address(1, 2)
        result = generate_stealth_address(meta, FACTORY_ADDRESS, ACCOUNT_CLASS_HASH, fixed_ephemeral)

        raw_secret = STARK_CURVE.multiply(G, normalize_private_key(3) * normalize_private_key(2))
        assert result.shared_secret == raw_secret

        digest = reference_poseidon_many([raw_secret.x, raw_secret.y])
        assert digest & 0xFF == 0xA6
        scalar = digest % CURVE_ORDER
        assert hash_shared_secret(result.shared_secret) == scalar

        stealth_key = (normalize_private_key(1) + scalar) % CURVE_ORDER
        assert private_to_stark_key(stealth_key) == result.stealth_pubkey.x
        assert derive_stealth_private_key(1, result.shared_secret) in (stealth_key, CURVE_ORDER - stealth_key)

        R = result.ephemeral_pubkey
        salt = reference_poseidon_many([R.x, R.y])
        assert result.stealth_address == compute_address(
            class_hash=ACCOUNT_CLASS_HASH,
            constructor_calldata=[result.stealth_pubkey.x, result.stealth_pubkey.y],
            salt=salt,
            deployer_address=FACTORY_ADDRESS,
        )

    def test_scenario_reproducible(self, fixed_ephemeral):
        meta = create_meta_address(1, 2)
        first = generate_stealth_address(meta, FACTORY_ADDRESS, ACCOUNT_CLASS_HASH, fixed_ephemeral)
        second = generate_stealth_address(meta, FACTORY_ADDRESS, ACCOUNT_CLASS_HASH, fixed_ephemeral)
        assert first == second

    def test_recipient_recovers(self, fixed_ephemeral):
        meta = create_meta_address(1, 2)
        result = generate_stealth_address(meta, FACTORY_ADDRESS, ACCOUNT_CLASS_HASH, fixed_ephemeral)

        assert check_view_tag(2, result.ephemeral_pubkey, result.view_tag)
        secret = verify_stealth_address(
            meta.spending_key,
            2,
            result.ephemeral_pubkey,
            result.stealth_address_hex,
            FACTORY_ADDRESS,
            ACCOUNT_CLASS_HASH,
        )
        assert secret == result.shared_secret

    def test_mismatched_ephemeral_rejected(self):
        meta = create_meta_address(1, 2)
        bad = EphemeralKeyPair(private_key=3, public_key=get_public_key(4))
        with pytest.raises(InvalidPoint):
            generate_stealth_address(meta, FACTORY_ADDRESS, ACCOUNT_CLASS_HASH, bad)


class TestGenerateStealthAddress:
    def test_result_follows_single_derivation_path(self):
        meta = create_meta_address(1, 2)
        for _ in range(3):
            result = generate_stealth_address(meta, FACTORY_ADDRESS, ACCOUNT_CLASS_HASH)
            assert result.stealth_pubkey == derive_stealth_pubkey(meta.spending_key, result.shared_secret)
            assert result.view_tag == compute_view_tag(result.shared_secret)

    def test_fresh_ephemeral_each_call(self):
        meta = create_meta_address(1, 2)
        first = generate_stealth_address(meta, FACTORY_ADDRESS, ACCOUNT_CLASS_HASH)
        second = generate_stealth_address(meta, FACTORY_ADDRESS, ACCOUNT_CLASS_HASH)
        assert first.ephemeral_pubkey != second.ephemeral_pubkey
        assert first.stealth_address != second.stealth_address

    def test_single_key_scheme(self):
        meta = create_meta_address(11)
        result = generate_stealth_address(meta, FACTORY_ADDRESS, ACCOUNT_CLASS_HASH)
        assert check_view_tag(11, result.ephemeral_pubkey, result.view_tag)

    def test_view_tag_in_byte_range(self):
        meta = create_meta_address(1, 2)
        for _ in range(5):
            result = generate_stealth_address(meta, FACTORY_ADDRESS, ACCOUNT_CLASS_HASH)
            assert 0 <= result.view_tag <= 0xFF

    def test_hex_deployer_and_class(self, fixed_ephemeral):
        meta = create_meta_address(1, 2)
        as_int = generate_stealth_address(meta, FACTORY_ADDRESS, ACCOUNT_CLASS_HASH, fixed_ephemeral)
        as_hex = generate_stealth_address(meta, "0x2", "0x1234", fixed_ephemeral)
        assert as_int.stealth_address == as_hex.stealth_address

    @pytest.mark.parametrize("scheme", [2, 100, 255])
    def test_unsupported_scheme(self, scheme):
        meta = create_meta_address(1, 2)
        with pytest.raises(UnsupportedScheme):
            generate_stealth_address(
                MetaAddress(meta.spending_key, meta.viewing_key, scheme),
                FACTORY_ADDRESS,
                ACCOUNT_CLASS_HASH,
            )

    def test_invalid_viewing_key(self):
        meta = create_meta_address(1, 2)
        bad = MetaAddress(meta.spending_key, Point(meta.viewing_key.x, FIELD_PRIME - meta.viewing_key.y), 1)
        with pytest.raises(InvalidPoint):
            generate_stealth_address(bad, FACTORY_ADDRESS, ACCOUNT_CLASS_HASH)


class TestRecipientChecks:
    def test_wrong_viewing_key_fails_verification(self):
        meta = create_meta_address(1, 2)
        result = generate_stealth_address(meta, FACTORY_ADDRESS, ACCOUNT_CLASS_HASH)
        assert (
            verify_stealth_address(
                meta.spending_key,
                5,
                result.ephemeral_pubkey,
                result.stealth_address,
                FACTORY_ADDRESS,
                ACCOUNT_CLASS_HASH,
            )
            is None
        )

    def test_wrong_deployer_fails_verification(self):
        meta = create_meta_address(1, 2)
        result = generate_stealth_address(meta, FACTORY_ADDRESS, ACCOUNT_CLASS_HASH)
        assert (
            verify_stealth_address(
                meta.spending_key, 2, result.ephemeral_pubkey, result.stealth_address, 0x3, ACCOUNT_CLASS_HASH
            )
            is None
        )

    def test_invalid_ephemeral_never_raises(self):
        spending = get_public_key(1)
        for bad in (Point(0, 0), Point(1, 1), (None, None), Point(FIELD_PRIME, 1)):
            assert check_view_tag(2, bad, 0) is False
            assert verify_stealth_address(spending, 2, bad, "0x1", FACTORY_ADDRESS, ACCOUNT_CLASS_HASH) is None

    def test_invalid_viewing_key_never_raises(self):
        R = get_public_key(3)
        assert check_view_tag(0, R, 0) is False
        assert check_view_tag(CURVE_ORDER, R, 0) is False

    def test_garbage_announced_address(self):
        meta = create_meta_address(1, 2)
        result = generate_stealth_address(meta, FACTORY_ADDRESS, ACCOUNT_CLASS_HASH)
        assert (
            verify_stealth_address(
                meta.spending_key, 2, result.ephemeral_pubkey, "0xnothex", FACTORY_ADDRESS, ACCOUNT_CLASS_HASH
            )
            is None
        )
