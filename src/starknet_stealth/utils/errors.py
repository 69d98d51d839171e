"""Exception hierarchy for stealth derivation and scanning."""

from __future__ import annotations


class StealthError(Exception):
    """Base class for every error raised by starknet_stealth."""


class CurveValidationError(StealthError, ValueError):
    """Input was cryptographically invalid."""


class InvalidPoint(CurveValidationError):
    """Point is off-curve, non-canonical, or has a zero/out-of-field coordinate."""


class InvalidScalar(CurveValidationError):
    """Scalar is zero or not below the curve order."""


class UnsupportedScheme(StealthError, ValueError):
    """Scheme id is not one this engine can derive addresses for."""

    def __init__(self, scheme_id: object) -> None:
        super().__init__(f"Unsupported scheme_id {scheme_id!r}: only 0 or 1 is supported")
        self.scheme_id = scheme_id


class ScanError(StealthError):
    """Failure of the announcement retrieval layer."""


class PaginationLimitExceeded(ScanError):
    """The announcement source returned more pages than allowed."""

    def __init__(self, max_pages: int) -> None:
        super().__init__(f"Event pagination limit exceeded ({max_pages} pages)")
        self.max_pages = max_pages


class TransportError(ScanError):
    """The external announcement source could not be reached or answered badly."""


class ScanCancelled(ScanError):
    """The caller requested cancellation between two page fetches."""


class InvalidAmount(StealthError, ValueError):
    """Withdrawal total is not positive."""
