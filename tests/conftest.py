"""Shared fixtures: deterministic key material and a fake account factory."""

import numpy as np
import pytest
from starknet_py.hash.address import compute_address

from starknet_stealth.analysis.sources import InMemoryRegistry
from starknet_stealth.core.keys import create_meta_address, get_public_key
from starknet_stealth.core.stealth import compute_deployment_salt, generate_stealth_address
from starknet_stealth.utils.constants import CURVE_ORDER
from starknet_stealth.utils.types import RecipientKeys

FACTORY_ADDRESS = 0x2
ACCOUNT_CLASS_HASH = 0x1234


def random_scalar(rng: np.random.Generator) -> int:
    """Uniform-ish scalar in [1, n - 1] drawn from a seeded numpy generator."""
    return int.from_bytes(rng.bytes(32), byteorder="big") % (CURVE_ORDER - 1) + 1


class FakeAccountFactory:
    """Stands in for the on-chain factory, using starknet_py's address formula."""

    def __init__(self, address: int = FACTORY_ADDRESS, class_hash: int = ACCOUNT_CLASS_HASH) -> None:
        self.address = address
        self.class_hash = class_hash
        self.deployed: dict[int, tuple[int, int]] = {}

    def get_class_id(self) -> int:
        return self.class_hash

    def compute_address(self, pubkey_x: int, pubkey_y: int, salt: int) -> int:
        return compute_address(
            class_hash=self.class_hash,
            constructor_calldata=[pubkey_x, pubkey_y],
            salt=salt,
            deployer_address=self.address,
        )

    def deploy(self, pubkey_x: int, pubkey_y: int, salt: int) -> int:
        address = self.compute_address(pubkey_x, pubkey_y, salt)
        self.deployed[address] = (pubkey_x, pubkey_y)
        return address


@pytest.fixture
def rng():
    return np.random.default_rng(42)


@pytest.fixture
def factory():
    return FakeAccountFactory()


@pytest.fixture
def registry():
    return InMemoryRegistry(page_size=16)


@pytest.fixture
def recipient():
    """Dual-key recipient with spending key 1 and viewing key 2."""
    return RecipientKeys(spending_pubkey=get_public_key(1), viewing_key=2, spending_key=1)


@pytest.fixture
def recipient_meta():
    return create_meta_address(1, 2)


def announce_payment(registry: InMemoryRegistry, meta, deployer=FACTORY_ADDRESS, class_id=ACCOUNT_CLASS_HASH):
    """Send one stealth payment to ``meta`` and log its announcement."""
    result = generate_stealth_address(meta, deployer, class_id)
    registry.announce(
        meta.scheme_id,
        result.ephemeral_pubkey.x,
        result.ephemeral_pubkey.y,
        result.stealth_address,
        result.view_tag,
    )
    return result


def salt_for(result) -> int:
    return compute_deployment_salt(result.ephemeral_pubkey)
