"""STARK curve arithmetic, canonical form and validation.

Points cross module boundaries as affine ``Point`` tuples with Python ints.
Internally, scalar multiplication runs in Jacobian coordinates so that a
multiplication costs a single modular inversion.

Canonical form: of the two roots y and p - y, the one <= (p - 1) / 2 is
used. Arithmetic results are raw; public keys go through
``normalize_point`` before being handed out, ECDH shared secrets do not.
Points arriving from outside must pass ``assert_valid_point`` before use.
"""

from __future__ import annotations

from starknet_stealth.utils.constants import (
    CURVE_ALPHA,
    CURVE_BETA,
    CURVE_ORDER,
    FIELD_HALF,
    FIELD_PRIME,
    GENERATOR_X,
    GENERATOR_Y,
)
from starknet_stealth.utils.errors import InvalidPoint, InvalidScalar
from starknet_stealth.utils.types import Point

# (X, Y, Z) with Z == 0 meaning the point at infinity
_Jacobian = tuple[int, int, int]
_INFINITY: _Jacobian = (1, 1, 0)


def mod_p(value: int) -> int:
    """Reduce into [0, p)."""
    return value % FIELD_PRIME


def mod_n(value: int) -> int:
    """Reduce into [0, n)."""
    return value % CURVE_ORDER


class StarkCurve:
    """Elliptic curve y^2 = x^3 + ax + b over F_p with a prime-order group.

    Supports add/negate/multiply on affine points, with None standing for
    the point at infinity. Multiples of the generator use a table of
    precomputed powers 2^i * G, so a base multiplication is only additions.
    """

    def __init__(
        self,
        p: int = FIELD_PRIME,
        a: int = CURVE_ALPHA,
        b: int = CURVE_BETA,
        order: int = CURVE_ORDER,
        generator: Point = Point(GENERATOR_X, GENERATOR_Y),
    ) -> None:
        self.p = p
        self.a = a
        self.b = b
        self.order = order
        self.generator = generator
        self._power_points: list[_Jacobian] | None = None

    def contains(self, x: int, y: int) -> bool:
        """Curve equation only, no range or canonical checks."""
        p = self.p
        return (y * y - (x * x * x + self.a * x + self.b)) % p == 0

    # -- Jacobian internals --

    def _double(self, P: _Jacobian) -> _Jacobian:
        X1, Y1, Z1 = P
        if Z1 == 0 or Y1 == 0:
            return _INFINITY
        p = self.p
        YY = Y1 * Y1 % p
        S = 4 * X1 * YY % p
        ZZ = Z1 * Z1 % p
        M = (3 * X1 * X1 + self.a * ZZ * ZZ) % p
        X3 = (M * M - 2 * S) % p
        Y3 = (M * (S - X3) - 8 * YY * YY) % p
        Z3 = 2 * Y1 * Z1 % p
        return (X3, Y3, Z3)

    def _add(self, P: _Jacobian, Q: _Jacobian) -> _Jacobian:
        if P[2] == 0:
            return Q
        if Q[2] == 0:
            return P
        p = self.p
        X1, Y1, Z1 = P
        X2, Y2, Z2 = Q
        Z1Z1 = Z1 * Z1 % p
        Z2Z2 = Z2 * Z2 % p
        U1 = X1 * Z2Z2 % p
        U2 = X2 * Z1Z1 % p
        S1 = Y1 * Z2 * Z2Z2 % p
        S2 = Y2 * Z1 * Z1Z1 % p
        if U1 == U2:
            if S1 != S2:
                return _INFINITY
            return self._double(P)
        H = (U2 - U1) % p
        R = (S2 - S1) % p
        HH = H * H % p
        HHH = H * HH % p
        V = U1 * HH % p
        X3 = (R * R - HHH - 2 * V) % p
        Y3 = (R * (V - X3) - S1 * HHH) % p
        Z3 = H * Z1 * Z2 % p
        return (X3, Y3, Z3)

    def _to_affine(self, P: _Jacobian) -> Point | None:
        X, Y, Z = P
        if Z == 0:
            return None
        p = self.p
        z_inv = pow(Z, -1, p)
        z_inv2 = z_inv * z_inv % p
        return Point(X * z_inv2 % p, Y * z_inv2 * z_inv % p)

    def _powers(self) -> list[_Jacobian]:
        if self._power_points is None:
            powers = []
            current: _Jacobian = (self.generator.x, self.generator.y, 1)
            for _ in range(self.order.bit_length()):
                powers.append(current)
                current = self._double(current)
            self._power_points = powers
        return self._power_points

    # -- Affine API --

    def add(self, P: Point | None, Q: Point | None) -> Point | None:
        if P is None:
            return Q
        if Q is None:
            return P
        return self._to_affine(self._add((P[0], P[1], 1), (Q[0], Q[1], 1)))

    def neg(self, P: Point | None) -> Point | None:
        if P is None:
            return None
        return Point(P[0], (self.p - P[1]) % self.p)

    def multiply(self, P: Point | None, k: int) -> Point | None:
        k %= self.order
        if k == 0 or P is None:
            return None
        result = _INFINITY
        addend: _Jacobian = (P[0], P[1], 1)
        while k:
            if k & 1:
                result = self._add(result, addend)
            addend = self._double(addend)
            k >>= 1
        return self._to_affine(result)

    def multiply_generator(self, k: int) -> Point | None:
        k %= self.order
        result = _INFINITY
        for i, power in enumerate(self._powers()):
            if (k >> i) & 1:
                result = self._add(result, power)
        return self._to_affine(result)


STARK_CURVE = StarkCurve()


def is_canonical(point: Point) -> bool:
    return point.y <= FIELD_HALF


def normalize_point(point: Point) -> Point:
    """Reflect y to p - y when y > (p - 1) / 2."""
    if point.y > FIELD_HALF:
        return Point(point.x, FIELD_PRIME - point.y)
    return Point(point.x, point.y)


def is_on_curve(point: Point) -> bool:
    """True for an in-range, canonical point satisfying the curve equation."""
    try:
        x, y = point[0], point[1]
    except (TypeError, IndexError, KeyError):
        return False
    for coord in (x, y):
        if not isinstance(coord, int) or isinstance(coord, bool):
            return False
    if x <= 0 or y <= 0:
        return False
    if x >= FIELD_PRIME or y >= FIELD_PRIME:
        return False
    if y > FIELD_HALF:
        return False
    return STARK_CURVE.contains(x, y)


def assert_valid_point(point: Point, context: str = "public key") -> Point:
    """Return ``point`` as a ``Point`` or raise InvalidPoint."""
    if not is_on_curve(point):
        raise InvalidPoint(f"Invalid {context} point (not a canonical STARK curve point)")
    return Point(point[0], point[1])


def assert_valid_scalar(scalar: int, context: str = "private key") -> int:
    if not isinstance(scalar, int) or isinstance(scalar, bool):
        raise InvalidScalar(f"Invalid {context} scalar: expected int, got {type(scalar).__name__}")
    if scalar <= 0 or scalar >= CURVE_ORDER:
        raise InvalidScalar(f"Invalid {context} scalar (must be in [1, n-1])")
    return scalar


def point_add(P: Point, Q: Point) -> Point:
    """P + Q for trusted points. Raises InvalidPoint if the sum is infinity."""
    result = STARK_CURVE.add(P, Q)
    if result is None:
        raise InvalidPoint("Point addition produced the point at infinity")
    return result


def scalar_multiply(k: int, P: Point) -> Point:
    """k * P for a trusted point, not normalized."""
    result = STARK_CURVE.multiply(P, k)
    if result is None:
        raise InvalidPoint("Scalar multiplication produced the point at infinity")
    return result


def base_multiply(k: int) -> Point:
    """k * G, not normalized."""
    result = STARK_CURVE.multiply_generator(k)
    if result is None:
        raise InvalidScalar("Scalar is a multiple of the curve order")
    return result
