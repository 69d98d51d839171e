"""Tests for scan statistics and view-tag filter analysis."""

import numpy as np
import pytest

from starknet_stealth.analysis.metrics import (
    ScanMetrics,
    batch_summary,
    estimate_scan_time,
    expected_false_positive_rate,
)
from starknet_stealth.utils.types import ScanStats


def make_stats(total: int, tag_matches: int, confirmed: int, time_ms: float = 1.0) -> ScanStats:
    return ScanStats(
        total_announcements=total,
        view_tag_matches=tag_matches,
        confirmed_matches=confirmed,
        scan_time_ms=time_ms,
    )


class TestEstimates:
    def test_expected_rate(self):
        assert expected_false_positive_rate() == pytest.approx(1 / 256)

    def test_scan_time_linear(self):
        assert estimate_scan_time(0) == 0.0
        assert estimate_scan_time(2000) == pytest.approx(2 * estimate_scan_time(1000))

    def test_scan_time_value(self):
        # 0.1 ms per tag check plus 1 ms per expected full check
        assert estimate_scan_time(256) == pytest.approx(25.6 + 1.0)


class TestScanStats:
    def test_false_positive_rate(self):
        stats = make_stats(1000, 5, 1)
        assert stats.false_positives == 4
        assert stats.false_positive_rate == pytest.approx(0.8)

    def test_merge(self):
        a = make_stats(10, 2, 1, 3.0)
        a.merge(make_stats(5, 1, 1, 2.0))
        assert a.as_dict() == {
            "total_announcements": 15,
            "view_tag_matches": 3,
            "confirmed_matches": 2,
            "scan_time_ms": 5.0,
            "false_positive_rate": pytest.approx(1 / 3),
        }


class TestScanMetrics:
    def test_tag_match_rate_excludes_confirmed(self):
        metrics = ScanMetrics(make_stats(1001, 5, 1))
        assert metrics.unrelated == 1000
        assert metrics.tag_match_rate() == pytest.approx(0.004)

    def test_empty(self):
        metrics = ScanMetrics(ScanStats())
        assert metrics.tag_match_rate() == 0.0
        assert metrics.confidence_interval() == (0.0, 0.0)
        assert metrics.filter_pvalue() == 1.0
        assert metrics.speedup() == 0.0

    def test_confidence_interval_contains_rate(self):
        metrics = ScanMetrics(make_stats(25600, 100, 0))
        lo, hi = metrics.confidence_interval()
        assert lo <= metrics.tag_match_rate() <= hi
        assert lo <= expected_false_positive_rate() <= hi

    def test_consistent_filter(self):
        assert ScanMetrics(make_stats(25600, 100, 0)).is_consistent_with_filter()

    def test_broken_filter_detected(self):
        # every announcement passing the tag is far from 1/256
        metrics = ScanMetrics(make_stats(1000, 1000, 0))
        assert metrics.filter_pvalue() < 1e-6
        assert not metrics.is_consistent_with_filter()

    def test_speedup(self):
        assert ScanMetrics(make_stats(1000, 4, 1)).speedup() == pytest.approx(250.0)

    def test_summary_keys(self):
        summary = ScanMetrics(make_stats(512, 3, 1)).summary()
        for key in (
            "total_announcements",
            "view_tag_matches",
            "confirmed_matches",
            "false_positive_rate",
            "tag_match_rate",
            "confidence_interval",
            "filter_pvalue",
            "expected_tag_match_rate",
        ):
            assert key in summary


class TestBatchSummary:
    def test_empty(self):
        assert batch_summary({})["recipients"] == 0

    def test_aggregates(self):
        summary = batch_summary(
            {1: make_stats(10, 2, 2, 4.0), 0: make_stats(10, 1, 0, 2.0)}
        )
        assert summary["recipients"] == 2
        assert summary["confirmed_total"] == 2
        assert summary["view_tag_matches_total"] == 3
        assert summary["confirmed_per_recipient"] == [0, 2]
        np.testing.assert_allclose(summary["scan_time_ms_mean"], 3.0)
        assert summary["scan_time_ms_max"] == 4.0
