"""Statistics over scan runs: view-tag filter efficiency and false positives."""

from __future__ import annotations

from collections.abc import Mapping

import numpy as np
from scipy.stats import binom, binomtest

from starknet_stealth.utils.constants import (
    FULL_VERIFICATION_MS,
    VIEW_TAG_CHECK_MS,
    VIEW_TAG_FALSE_POSITIVE_RATE,
)
from starknet_stealth.utils.types import ScanStats


def expected_false_positive_rate() -> float:
    """Chance an unrelated announcement passes an 8-bit view tag (1/256)."""
    return VIEW_TAG_FALSE_POSITIVE_RATE


def estimate_scan_time(num_announcements: int) -> float:
    """Rough scan time in milliseconds for ``num_announcements`` entries."""
    tag_checks = num_announcements * VIEW_TAG_CHECK_MS
    full_checks = num_announcements * VIEW_TAG_FALSE_POSITIVE_RATE * FULL_VERIFICATION_MS
    return tag_checks + full_checks


class ScanMetrics:
    """Analyze the counters of one scan (or several merged scans).

    ``unrelated`` announcements are those that were not confirmed; each one
    passes the view tag with probability 1/256, so the number of false
    positives among them is binomial.
    """

    def __init__(self, stats: ScanStats) -> None:
        self.stats = stats

    @property
    def unrelated(self) -> int:
        return self.stats.total_announcements - self.stats.confirmed_matches

    def tag_match_rate(self) -> float:
        """Fraction of unrelated announcements that passed the view tag."""
        if self.unrelated <= 0:
            return 0.0
        return self.stats.false_positives / self.unrelated

    def false_positive_rate(self) -> float:
        return self.stats.false_positive_rate

    def confidence_interval(self, alpha: float = 0.95) -> tuple[float, float]:
        """Binomial confidence interval on the tag-match rate.

        Returns (lower, upper) bounds as fractions in [0, 1].
        """
        n = self.unrelated
        if n <= 0:
            return (0.0, 0.0)
        lo, hi = binom.interval(alpha, n, self.tag_match_rate())
        return (float(lo) / n, float(hi) / n)

    def filter_pvalue(self) -> float:
        """Two-sided p-value of the observed false positives against 1/256."""
        n = self.unrelated
        if n <= 0:
            return 1.0
        result = binomtest(self.stats.false_positives, n, VIEW_TAG_FALSE_POSITIVE_RATE)
        return float(result.pvalue)

    def is_consistent_with_filter(self, significance: float = 0.001) -> bool:
        return self.filter_pvalue() >= significance

    def speedup(self) -> float:
        """Announcements per full verification actually performed."""
        if self.stats.view_tag_matches == 0:
            return float(self.stats.total_announcements)
        return self.stats.total_announcements / self.stats.view_tag_matches

    def summary(self) -> dict:
        return {
            **self.stats.as_dict(),
            "tag_match_rate": self.tag_match_rate(),
            "confidence_interval": self.confidence_interval(),
            "filter_pvalue": self.filter_pvalue(),
            "expected_tag_match_rate": expected_false_positive_rate(),
        }


def batch_summary(stats_by_recipient: Mapping[int, ScanStats]) -> dict:
    """Aggregate per-recipient stats of a batch scan."""
    if not stats_by_recipient:
        return {
            "recipients": 0,
            "confirmed_total": 0,
            "view_tag_matches_total": 0,
            "confirmed_per_recipient": [],
            "scan_time_ms_mean": 0.0,
            "scan_time_ms_max": 0.0,
        }

    ordered = [stats_by_recipient[i] for i in sorted(stats_by_recipient)]
    confirmed = np.array([s.confirmed_matches for s in ordered], dtype=np.int64)
    tag_matches = np.array([s.view_tag_matches for s in ordered], dtype=np.int64)
    times = np.array([s.scan_time_ms for s in ordered], dtype=np.float64)

    return {
        "recipients": len(ordered),
        "confirmed_total": int(confirmed.sum()),
        "view_tag_matches_total": int(tag_matches.sum()),
        "confirmed_per_recipient": confirmed.tolist(),
        "scan_time_ms_mean": float(np.mean(times)),
        "scan_time_ms_max": float(np.max(times)),
    }
