"""Tests for the LatencyStats fixed-window statistics engine."""

import math
import sys
import unittest

from tcpping.errors import ProbeError
from tcpping.stats import LatencyStats, skewness


class TestRecord(unittest.TestCase):
    """Verify running counters maintained by record()."""

    def test_initial_state(self):
        engine = LatencyStats(5)
        stats = engine.stats
        self.assertEqual(stats.total_probes, 0)
        self.assertEqual(stats.overall_min_latency, sys.float_info.max)
        self.assertEqual(stats.overall_max_latency, 0.0)
        self.assertEqual(engine.samples(), [])

    def test_totals_follow_attempts(self):
        """total_probes equals the attempt number and ok + ko adds up."""
        engine = LatencyStats(5)
        for attempt in range(1, 8):
            error = ProbeError("refused") if attempt % 3 == 0 else None
            engine.record(attempt, float(attempt), error)
        stats = engine.stats
        self.assertEqual(stats.total_probes, 7)
        self.assertEqual(stats.total_failures, 2)
        self.assertEqual(stats.total_successful + stats.total_failures, stats.total_probes)

    def test_consecutive_counters_are_exclusive(self):
        """Exactly one streak counter is non-zero after every record."""
        engine = LatencyStats(3)
        outcomes = [None, None, ProbeError("x"), ProbeError("x"), ProbeError("x"), None]
        for attempt, error in enumerate(outcomes, start=1):
            engine.record(attempt, 1.0, error)
            stats = engine.stats
            self.assertEqual(min(stats.consecutive_successful, stats.consecutive_failures), 0)
            self.assertGreater(max(stats.consecutive_successful, stats.consecutive_failures), 0)
        self.assertEqual(engine.stats.consecutive_successful, 1)
        self.assertEqual(engine.stats.consecutive_failures, 0)

    def test_delta_and_last_latency(self):
        engine = LatencyStats(3)
        engine.record(1, 10.0)
        self.assertEqual(engine.stats.delta_latency, -10.0)
        engine.record(2, 4.0)
        self.assertEqual(engine.stats.last_latency, 4.0)
        self.assertEqual(engine.stats.delta_latency, 6.0)

    def test_lifetime_extremes_are_monotonic(self):
        engine = LatencyStats(2)
        previous_min, previous_max = sys.float_info.max, 0.0
        for attempt, latency in enumerate([5.0, 3.0, 9.0, 4.0, 1.0, 7.0], start=1):
            engine.record(attempt, latency)
            self.assertLessEqual(engine.stats.overall_min_latency, previous_min)
            self.assertGreaterEqual(engine.stats.overall_max_latency, previous_max)
            previous_min = engine.stats.overall_min_latency
            previous_max = engine.stats.overall_max_latency
        self.assertEqual(previous_min, 1.0)
        self.assertEqual(previous_max, 9.0)

    def test_first_observation_sets_both_extremes(self):
        engine = LatencyStats(2)
        engine.record(1, 12.5)
        self.assertEqual(engine.stats.overall_min_latency, 12.5)
        self.assertEqual(engine.stats.overall_max_latency, 12.5)

    def test_window_never_exceeds_capacity(self):
        """After more than window_size attempts only the newest samples remain."""
        engine = LatencyStats(3)
        for attempt in range(1, 8):
            engine.record(attempt, float(attempt))
            self.assertLessEqual(len(engine.samples()), 3)
        self.assertEqual(engine.samples(), [5.0, 6.0, 7.0])

    def test_invalid_window_size(self):
        with self.assertRaises(ValueError):
            LatencyStats(0)


class TestSnapshot(unittest.TestCase):
    """Verify windowed aggregates computed by snapshot()."""

    def test_empty_snapshot_is_all_zero(self):
        snap = LatencyStats(4).snapshot()
        self.assertEqual(snap.sample_count, 0)
        self.assertEqual(snap.min_latency, 0.0)
        self.assertEqual(snap.max_latency, 0.0)
        self.assertEqual(snap.average_latency, 0.0)
        self.assertEqual(snap.standard_deviation, 0.0)
        self.assertEqual(snap.skewness, 0.0)

    def test_single_sample_has_zero_sigma_and_skew(self):
        engine = LatencyStats(4)
        engine.record(1, 42.0)
        snap = engine.snapshot()
        self.assertEqual(snap.sample_count, 1)
        self.assertEqual(snap.standard_deviation, 0.0)
        self.assertEqual(snap.skewness, 0.0)
        self.assertFalse(math.isnan(snap.skewness))
        self.assertEqual(snap.average_latency, 42.0)

    def test_flat_sample_has_zero_skew(self):
        engine = LatencyStats(4)
        for attempt in range(1, 4):
            engine.record(attempt, 7.0)
        snap = engine.snapshot()
        self.assertEqual(snap.standard_deviation, 0.0)
        self.assertEqual(snap.skewness, 0.0)

    def test_flat_inexact_sample_has_zero_sigma_and_skew(self):
        engine = LatencyStats(8)
        for attempt in range(1, 4):
            engine.record(attempt, 0.1)
        snap = engine.snapshot()
        self.assertEqual(snap.average_latency, 0.1)
        self.assertEqual(snap.standard_deviation, 0.0)
        self.assertEqual(snap.skewness, 0.0)

    def test_population_moments(self):
        engine = LatencyStats(10)
        for attempt, latency in enumerate([1.0, 2.0, 3.0, 10.0], start=1):
            engine.record(attempt, latency)
        snap = engine.snapshot()
        # mean 4, deviations -3,-2,-1,6 -> m2 = 12.5, m3 = 45
        self.assertAlmostEqual(snap.average_latency, 4.0)
        self.assertAlmostEqual(snap.standard_deviation, math.sqrt(12.5))
        self.assertAlmostEqual(snap.skewness, 45.0 / 12.5 ** 1.5)
        self.assertEqual(snap.min_latency, 1.0)
        self.assertEqual(snap.max_latency, 10.0)

    def test_snapshot_reflects_only_window(self):
        engine = LatencyStats(2)
        for attempt, latency in enumerate([100.0, 1.0, 3.0], start=1):
            engine.record(attempt, latency)
        snap = engine.snapshot()
        self.assertEqual(snap.sample_count, 2)
        self.assertEqual(snap.max_latency, 3.0)
        self.assertEqual(snap.overall_max_latency, 100.0)
        self.assertAlmostEqual(snap.average_latency, 2.0)

    def test_snapshot_writes_back_into_stats(self):
        engine = LatencyStats(3)
        engine.record(1, 2.0)
        engine.record(2, 4.0)
        engine.snapshot()
        self.assertAlmostEqual(engine.stats.average_latency, 3.0)
        self.assertAlmostEqual(engine.stats.standard_deviation, 1.0)


class TestSkewness(unittest.TestCase):

    def test_symmetric_sample(self):
        self.assertAlmostEqual(skewness([1.0, 2.0, 3.0], 2.0, math.sqrt(2.0 / 3.0)), 0.0)

    def test_guards(self):
        self.assertEqual(skewness([], 0.0, 0.0), 0.0)
        self.assertEqual(skewness([5.0], 5.0, 0.0), 0.0)


if __name__ == "__main__":
    unittest.main()
