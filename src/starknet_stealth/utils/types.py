"""Dataclass definitions for stealth addresses, announcements and scans."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import NamedTuple


class Point(NamedTuple):
    """Affine point on the STARK curve."""

    x: int
    y: int


@dataclass(frozen=True)
class MetaAddress:
    """A recipient's published (spending, viewing) public key pair."""

    spending_key: Point
    viewing_key: Point
    scheme_id: int = 0


@dataclass(frozen=True)
class EphemeralKeyPair:
    """One-time sender key pair. Never reuse across payments."""

    private_key: int
    public_key: Point

    def __repr__(self) -> str:
        return f"EphemeralKeyPair(public_key=({self.public_key.x:#x}, ...))"


@dataclass(frozen=True)
class StealthAddressResult:
    """Sender-side output of a stealth address derivation."""

    stealth_address: int
    stealth_pubkey: Point
    ephemeral_pubkey: Point
    view_tag: int
    shared_secret: Point

    @property
    def stealth_address_hex(self) -> str:
        return hex(self.stealth_address)


@dataclass(frozen=True)
class Announcement:
    """A logged stealth payment notification."""

    scheme_id: int
    ephemeral_pubkey: Point
    stealth_address: str
    view_tag: int
    metadata: int = 0
    index: int | None = None
    block_number: int | None = None
    tx_hash: str | None = None


@dataclass(frozen=True)
class ScanResult:
    """Outcome of checking one announcement against one recipient."""

    is_ours: bool
    announcement: Announcement | None = None
    spending_key: int | None = None
    stealth_address: str | None = None

    def __repr__(self) -> str:
        # no spending_key
        return f"ScanResult(is_ours={self.is_ours}, stealth_address={self.stealth_address!r})"


@dataclass
class ScanStats:
    """Counters for a single scan invocation."""

    total_announcements: int = 0
    view_tag_matches: int = 0
    confirmed_matches: int = 0
    scan_time_ms: float = 0.0

    @property
    def false_positives(self) -> int:
        return self.view_tag_matches - self.confirmed_matches

    @property
    def false_positive_rate(self) -> float:
        """(tag matches - confirmed) / tag matches, 0.0 when nothing matched."""
        if self.view_tag_matches == 0:
            return 0.0
        return self.false_positives / self.view_tag_matches

    def merge(self, other: ScanStats) -> None:
        self.total_announcements += other.total_announcements
        self.view_tag_matches += other.view_tag_matches
        self.confirmed_matches += other.confirmed_matches
        self.scan_time_ms += other.scan_time_ms

    def as_dict(self) -> dict:
        return {
            "total_announcements": self.total_announcements,
            "view_tag_matches": self.view_tag_matches,
            "confirmed_matches": self.confirmed_matches,
            "scan_time_ms": self.scan_time_ms,
            "false_positive_rate": self.false_positive_rate,
        }


@dataclass(frozen=True)
class RecipientKeys:
    """Key set a recipient scans with."""

    spending_pubkey: Point
    viewing_key: int
    spending_key: int

    def __repr__(self) -> str:
        return f"RecipientKeys(spending_pubkey=({self.spending_pubkey.x:#x}, ...))"


@dataclass
class EventPage:
    """One page of raw announcement events plus the continuation token."""

    events: list[dict] = field(default_factory=list)  # type: ignore[type-arg]
    continuation_token: str | None = None


@dataclass
class WithdrawalPlanOptions:
    """Options for randomized withdrawal planning."""

    splits: int = 1
    min_delay_ms: int = 0
    max_delay_ms: int | None = None


@dataclass(frozen=True)
class WithdrawalStep:
    """A single planned withdrawal."""

    amount: int
    delay_ms: int
