"""Curve, protocol and scanning constants for the STARK-curve stealth scheme."""

# -- STARK curve: y^2 = x^3 + alpha*x + beta over F_p --
FIELD_PRIME: int = 0x800000000000011000000000000000000000000000000000000000000000001
FIELD_HALF: int = (FIELD_PRIME - 1) // 2
CURVE_ORDER: int = 0x800000000000010FFFFFFFFFFFFFFFFB781126DCAE7B2321E66A241ADC64D2F
CURVE_ALPHA: int = 1
CURVE_BETA: int = 0x6F21413EFBE40DE150E596D72F7A8C5609AD26C15C915C1F4CDFCB99CEE9E89

GENERATOR_X: int = 0x1EF15C18599971B7BECED415A40F0C7DEACFD9B0D1819E03D723D8BC943CFCA
GENERATOR_Y: int = 0x5668060AA49730B7BE4801DF46EC62DE53ECD11ABE43A32873000C36E8DC1F

# -- Scheme identifiers (wire-level enum) --
SCHEME_SINGLE_KEY: int = 0
SCHEME_DUAL_KEY: int = 1
SCHEME_RESERVED: frozenset[int] = frozenset({2, 255})
SUPPORTED_SCHEMES: frozenset[int] = frozenset({SCHEME_SINGLE_KEY, SCHEME_DUAL_KEY})

# -- View tags --
VIEW_TAG_BITS: int = 8
VIEW_TAG_MASK: int = (1 << VIEW_TAG_BITS) - 1
VIEW_TAG_FALSE_POSITIVE_RATE: float = 1.0 / (1 << VIEW_TAG_BITS)

# -- Contract address formula --
CONTRACT_ADDRESS_PREFIX: int = int.from_bytes(b"STARKNET_CONTRACT_ADDRESS", byteorder="big")
ADDRESS_UPPER_BOUND: int = 2**251 - 256
ADDRESS_FORMULA_VERSION: str = "starknet-pedersen-v0"

# -- Scanning --
DEFAULT_MAX_PAGES: int = 1000
DEFAULT_CHUNK_SIZE: int = 1000
DEFAULT_REQUEST_TIMEOUT: float = 30.0

# Rough per-operation costs used by scan-time estimates (milliseconds)
VIEW_TAG_CHECK_MS: float = 0.1
FULL_VERIFICATION_MS: float = 1.0

# -- Withdrawal planning --
WEIGHT_SCALE: int = 1_000_000_000
