"""Two-phase announcement scanner.

Each announcement goes from unseen to exactly one of:

- rejected for an unsupported scheme id,
- rejected by the 8-bit view tag (about 255 in 256 unrelated entries),
- rejected by the full address check (view tag collision),
- confirmed, in which case the stealth spending key is derived.

Recipient keys are validated and normalized once per scan, so the fast
path costs one scalar multiplication and one Poseidon hash per entry.
Fetching the log dominates the cost, so ``BatchScanner`` fetches once and
checks every announcement against all recipients.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Sequence
from concurrent.futures import ThreadPoolExecutor

from starknet_stealth.analysis.sources import AnnouncementSource, fetch_announcements
from starknet_stealth.core.curve import assert_valid_point
from starknet_stealth.core.keys import normalize_private_key
from starknet_stealth.core.stealth import (
    compute_view_tag,
    derive_stealth_private_key,
    ecdh,
    matches_stealth_address,
)
from starknet_stealth.utils.constants import DEFAULT_MAX_PAGES, SUPPORTED_SCHEMES
from starknet_stealth.utils.errors import CurveValidationError
from starknet_stealth.utils.types import (
    Announcement,
    Point,
    RecipientKeys,
    ScanResult,
    ScanStats,
)

logger = logging.getLogger(__name__)

_NOT_OURS = ScanResult(is_ours=False)


def prepare_recipient(spending_pubkey: Point, viewing_key: int, spending_key: int) -> RecipientKeys:
    """Validate a recipient's keys and normalize both private scalars.

    Raises:
        CurveValidationError: the recipient's own keys are invalid.
    """
    return RecipientKeys(
        spending_pubkey=assert_valid_point(spending_pubkey, "spending public key"),
        viewing_key=normalize_private_key(viewing_key),
        spending_key=normalize_private_key(spending_key),
    )


def _check_prepared(
    announcement: Announcement,
    keys: RecipientKeys,
    deployer_id: int | str,
    class_id: int | str,
    stats: ScanStats | None,
) -> ScanResult:
    if announcement.scheme_id not in SUPPORTED_SCHEMES:
        return _NOT_OURS

    try:
        ephemeral = assert_valid_point(announcement.ephemeral_pubkey, "ephemeral public key")
        shared_secret = ecdh(keys.viewing_key, ephemeral)
        view_tag = compute_view_tag(shared_secret)
    except (CurveValidationError, TypeError, ValueError):
        return _NOT_OURS

    if view_tag != announcement.view_tag:
        return _NOT_OURS
    if stats is not None:
        stats.view_tag_matches += 1

    if not matches_stealth_address(
        keys.spending_pubkey,
        shared_secret,
        ephemeral,
        announcement.stealth_address,
        deployer_id,
        class_id,
    ):
        return _NOT_OURS

    try:
        derived = derive_stealth_private_key(keys.spending_key, shared_secret)
    except CurveValidationError:
        return _NOT_OURS

    if stats is not None:
        stats.confirmed_matches += 1
    return ScanResult(
        is_ours=True,
        announcement=announcement,
        spending_key=derived,
        stealth_address=announcement.stealth_address,
    )


def check_announcement(
    announcement: Announcement,
    spending_pubkey: Point,
    viewing_key: int,
    spending_key: int,
    deployer_id: int | str,
    class_id: int | str,
    stats: ScanStats | None = None,
) -> ScanResult:
    """Run both phases on one announcement. Never raises on bad entries."""
    keys = prepare_recipient(spending_pubkey, viewing_key, spending_key)
    return _check_prepared(announcement, keys, deployer_id, class_id, stats)


class StealthScanner:
    """Find announcements addressed to one recipient.

    Statistics belong to a single ``scan`` call: they are returned through
    ``last_stats`` and, when the caller passes an accumulator, added to it.
    Use one scanner per thread when scanning concurrently.
    """

    def __init__(
        self,
        source: AnnouncementSource,
        deployer_id: int | str,
        class_id: int | str,
        max_pages: int = DEFAULT_MAX_PAGES,
    ) -> None:
        self.source = source
        self.deployer_id = deployer_id
        self.class_id = class_id
        self.max_pages = max_pages
        self.last_stats = ScanStats()

    def fetch_announcements(
        self,
        from_block: int = 0,
        to_block: int | None = None,
        should_cancel: Callable[[], bool] | None = None,
    ) -> list[Announcement]:
        return fetch_announcements(self.source, from_block, to_block, self.max_pages, should_cancel)

    def check_announcement(
        self,
        announcement: Announcement,
        spending_pubkey: Point,
        viewing_key: int,
        spending_key: int,
        stats: ScanStats | None = None,
    ) -> ScanResult:
        return check_announcement(
            announcement,
            spending_pubkey,
            viewing_key,
            spending_key,
            self.deployer_id,
            self.class_id,
            stats,
        )

    def scan_announcements(
        self,
        announcements: Sequence[Announcement],
        spending_pubkey: Point,
        viewing_key: int,
        spending_key: int,
        stats: ScanStats | None = None,
    ) -> list[ScanResult]:
        """Scan an already fetched announcement list."""
        keys = prepare_recipient(spending_pubkey, viewing_key, spending_key)
        stats = stats if stats is not None else ScanStats()
        stats.total_announcements += len(announcements)
        results = []
        for announcement in announcements:
            result = _check_prepared(announcement, keys, self.deployer_id, self.class_id, stats)
            if result.is_ours:
                logger.info("Found stealth payment at %s", result.stealth_address)
                results.append(result)
        return results

    def scan(
        self,
        spending_pubkey: Point,
        viewing_key: int,
        spending_key: int,
        from_block: int = 0,
        to_block: int | None = None,
        stats: ScanStats | None = None,
        should_cancel: Callable[[], bool] | None = None,
    ) -> list[ScanResult]:
        """Fetch the announcement range and return the ones that are ours.

        Raises:
            PaginationLimitExceeded: source offered more than ``max_pages`` pages.
            TransportError: the source could not be read.
        """
        start = time.perf_counter()
        run_stats = ScanStats()

        announcements = self.fetch_announcements(from_block, to_block, should_cancel)
        results = self.scan_announcements(
            announcements, spending_pubkey, viewing_key, spending_key, run_stats
        )

        run_stats.scan_time_ms = (time.perf_counter() - start) * 1000.0
        self.last_stats = run_stats
        if stats is not None:
            stats.merge(run_stats)

        logger.debug(
            "Scanned %d announcements: %d tag matches, %d confirmed",
            run_stats.total_announcements,
            run_stats.view_tag_matches,
            run_stats.confirmed_matches,
        )
        return results

    def get_stats(self) -> dict:
        return self.last_stats.as_dict()


class BatchScanner:
    """Scan one announcement stream for many recipients in a single pass."""

    def __init__(
        self,
        source: AnnouncementSource,
        deployer_id: int | str,
        class_id: int | str,
        max_pages: int = DEFAULT_MAX_PAGES,
    ) -> None:
        self.scanner = StealthScanner(source, deployer_id, class_id, max_pages)
        self.last_stats: dict[int, ScanStats] = {}

    def _scan_recipient(
        self, announcements: Sequence[Announcement], recipient: RecipientKeys
    ) -> tuple[list[ScanResult], ScanStats]:
        start = time.perf_counter()
        stats = ScanStats()
        results = self.scanner.scan_announcements(
            announcements,
            recipient.spending_pubkey,
            recipient.viewing_key,
            recipient.spending_key,
            stats,
        )
        stats.scan_time_ms = (time.perf_counter() - start) * 1000.0
        return results, stats

    def scan_batch(
        self,
        recipients: Sequence[RecipientKeys],
        from_block: int = 0,
        to_block: int | None = None,
        max_workers: int | None = None,
        should_cancel: Callable[[], bool] | None = None,
    ) -> dict[int, list[ScanResult]]:
        """Results keyed by recipient position in ``recipients``.

        With ``max_workers`` > 1 recipients are checked on a thread pool;
        each worker reads only its own keys and the shared announcement list.
        """
        announcements = self.scanner.fetch_announcements(from_block, to_block, should_cancel)

        if max_workers is not None and max_workers > 1 and len(recipients) > 1:
            with ThreadPoolExecutor(max_workers=max_workers) as pool:
                outcomes = list(
                    pool.map(lambda r: self._scan_recipient(announcements, r), recipients)
                )
        else:
            outcomes = [self._scan_recipient(announcements, r) for r in recipients]

        self.last_stats = {i: stats for i, (_, stats) in enumerate(outcomes)}
        return {i: results for i, (results, _) in enumerate(outcomes)}
