"""
Dynamic threshold engine tests.

Covers tension classification, trend detection, the per-signal tension rules,
trend clamping, family floors and consistency.
"""

import sys
import os

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import unittest


class TestTensionLevel(unittest.TestCase):
    """Test calculate_tension_level boundaries."""

    def test_high_low_moderate(self):
        from a2e2.context_adjustments import calculate_tension_level
        from a2e2.types import TensionLevel
        self.assertEqual(calculate_tension_level(0.6, -0.1), TensionLevel.HIGH)
        self.assertEqual(calculate_tension_level(0.1, 0.3), TensionLevel.LOW)
        self.assertEqual(calculate_tension_level(0.4, 0.1), TensionLevel.MODERATE)

    def test_boundaries_are_strict(self):
        """arousal exactly 0.5 or valence exactly 0 is not high tension."""
        from a2e2.context_adjustments import calculate_tension_level
        from a2e2.types import TensionLevel
        self.assertEqual(calculate_tension_level(0.5, -0.5), TensionLevel.MODERATE)
        self.assertEqual(calculate_tension_level(0.9, 0.0), TensionLevel.MODERATE)
        self.assertEqual(calculate_tension_level(0.2, 0.5), TensionLevel.MODERATE)
        self.assertEqual(calculate_tension_level(0.1, 0.2), TensionLevel.MODERATE)

    def test_absent_readings_are_moderate(self):
        from a2e2.context_adjustments import calculate_tension_level
        from a2e2.types import TensionLevel
        self.assertEqual(calculate_tension_level(None, -0.9), TensionLevel.MODERATE)
        self.assertEqual(calculate_tension_level(0.9, float("nan")), TensionLevel.MODERATE)


class TestEmotionTrend(unittest.TestCase):
    """Test calculate_emotion_trend."""

    def _records(self, *pairs):
        from a2e2.types import RecentEmotionRecord
        return [RecentEmotionRecord("anger", ts, score) for ts, score in pairs]

    def test_increasing_and_decreasing(self):
        from a2e2.context_adjustments import calculate_emotion_trend
        from a2e2.types import EmotionTrend
        rising = self._records((1000, 0.05), (5000, 0.10))
        falling = self._records((1000, 0.10), (5000, 0.05))
        self.assertEqual(calculate_emotion_trend(rising, "anger", 10000, 6000), EmotionTrend.INCREASING)
        self.assertEqual(calculate_emotion_trend(falling, "anger", 10000, 6000), EmotionTrend.DECREASING)

    def test_small_change_is_stable(self):
        """A change of exactly 0.02 is not enough."""
        from a2e2.context_adjustments import calculate_emotion_trend
        from a2e2.types import EmotionTrend
        records = self._records((1000, 0.10), (5000, 0.12))
        self.assertEqual(calculate_emotion_trend(records, "anger", 10000, 6000), EmotionTrend.STABLE)

    def test_needs_two_records_in_window(self):
        from a2e2.context_adjustments import calculate_emotion_trend
        from a2e2.types import EmotionTrend
        records = self._records((0, 0.0), (15000, 0.5))
        self.assertEqual(calculate_emotion_trend(records, "anger", 10000, 20000), EmotionTrend.STABLE)
        self.assertEqual(calculate_emotion_trend(None, "anger", 10000, 20000), EmotionTrend.STABLE)

    def test_missing_score_counts_as_zero(self):
        from a2e2.context_adjustments import calculate_emotion_trend
        from a2e2.types import EmotionTrend
        records = self._records((1000, None), (2000, 0.1))
        self.assertEqual(calculate_emotion_trend(records, "anger", 10000, 3000), EmotionTrend.INCREASING)


class TestTensionRules(unittest.TestCase):
    """Test apply_tension and the named wrappers."""

    def test_named_wrappers(self):
        from a2e2 import context_adjustments as ca
        from a2e2.types import TensionLevel
        high, low = TensionLevel.HIGH, TensionLevel.LOW
        self.assertAlmostEqual(ca.get_hostility_threshold(0.10, high), 0.08)
        self.assertAlmostEqual(ca.get_threat_threshold(0.10, high), 0.085)
        self.assertAlmostEqual(ca.get_deep_sadness_threshold(0.10, high), 0.09)
        self.assertAlmostEqual(ca.get_engagement_threshold(0.10, low), 0.09)
        self.assertAlmostEqual(ca.get_serenity_threshold(0.10, low), 0.085)
        self.assertAlmostEqual(ca.get_connection_threshold(0.10, low), 0.09)

    def test_rule_only_applies_at_its_level(self):
        from a2e2 import context_adjustments as ca
        from a2e2.types import TensionLevel
        self.assertEqual(ca.get_hostility_threshold(0.10, TensionLevel.LOW), 0.10)
        self.assertEqual(ca.get_serenity_threshold(0.10, TensionLevel.HIGH), 0.10)
        self.assertEqual(ca.get_engagement_threshold(0.10, TensionLevel.MODERATE), 0.10)

    def test_unknown_rule_raises(self):
        from a2e2.context_adjustments import apply_tension
        from a2e2.types import TensionLevel
        with self.assertRaises(ValueError):
            apply_tension(0.1, TensionLevel.HIGH, "nonsense")


class TestTrendAndFloors(unittest.TestCase):
    """Test trend clamping, dynamic composition and floors."""

    def test_trend_clamps_against_current(self):
        """Rising takes min(current, base*0.85); falling takes max(current, base*1.1)."""
        from a2e2.context_adjustments import NEGATIVE, apply_trend
        from a2e2.types import EmotionTrend
        self.assertAlmostEqual(apply_trend(0.10, 0.10, EmotionTrend.INCREASING, NEGATIVE), 0.085)
        self.assertAlmostEqual(apply_trend(0.08, 0.10, EmotionTrend.INCREASING, NEGATIVE), 0.08)
        self.assertAlmostEqual(apply_trend(0.08, 0.10, EmotionTrend.DECREASING, NEGATIVE), 0.11)
        self.assertAlmostEqual(apply_trend(0.12, 0.10, EmotionTrend.DECREASING, NEGATIVE), 0.12)

    def test_trend_ignores_non_negative_categories(self):
        from a2e2.context_adjustments import POSITIVE, apply_trend
        from a2e2.types import EmotionTrend
        self.assertEqual(apply_trend(0.1, 0.1, EmotionTrend.INCREASING, POSITIVE), 0.1)

    def test_dynamic_threshold_composes_tension_then_trend(self):
        from a2e2.context_adjustments import NEGATIVE, get_dynamic_threshold
        from a2e2.types import EmotionTrend
        ctx = {"arousal": 0.7, "valence": -0.3, "trend": EmotionTrend.INCREASING}
        # tension 0.10 * 0.8 = 0.08, then min(0.08, 0.085)
        self.assertAlmostEqual(get_dynamic_threshold(0.10, ctx, NEGATIVE), 0.08)
        ctx["trend"] = EmotionTrend.DECREASING
        self.assertAlmostEqual(get_dynamic_threshold(0.10, ctx, NEGATIVE), 0.11)

    def test_dynamic_threshold_never_below_minimum(self):
        from a2e2.context_adjustments import MIN_THRESHOLD, NEGATIVE, get_dynamic_threshold
        self.assertEqual(get_dynamic_threshold(0.001, {"arousal": 0.9, "valence": -0.9}, NEGATIVE), MIN_THRESHOLD)

    def test_threshold_by_trend(self):
        from a2e2.context_adjustments import NEGATIVE, get_threshold_by_trend
        from a2e2.types import EmotionTrend
        self.assertAlmostEqual(get_threshold_by_trend(0.2, EmotionTrend.INCREASING, NEGATIVE), 0.17)

    def test_family_floor(self):
        """Reductions stop at the floor but a base under the floor is kept."""
        from a2e2.context_adjustments import apply_family_floor
        self.assertAlmostEqual(apply_family_floor(0.0595, 0.07, 0.08), 0.07)
        self.assertAlmostEqual(apply_family_floor(0.085, 0.12, 0.08), 0.085)
        self.assertAlmostEqual(apply_family_floor(0.06, 0.12, 0.08), 0.08)


class TestConsistency(unittest.TestCase):
    """Test has_consistent_trend."""

    def _records(self, *ts):
        from a2e2.types import RecentEmotionRecord
        return [RecentEmotionRecord("hostilidade", t, 0.1) for t in ts]

    def test_three_close_firings(self):
        from a2e2.context_adjustments import has_consistent_trend
        self.assertTrue(has_consistent_trend(self._records(1000, 10000, 20000), "hostilidade", 30000, 25000))

    def test_gap_of_fifteen_seconds_breaks_it(self):
        from a2e2.context_adjustments import has_consistent_trend
        self.assertFalse(has_consistent_trend(self._records(1000, 5000, 20000), "hostilidade", 30000, 25000))

    def test_needs_three(self):
        from a2e2.context_adjustments import has_consistent_trend
        self.assertFalse(has_consistent_trend(self._records(1000, 5000), "hostilidade", 30000, 25000))
        self.assertFalse(has_consistent_trend([], "hostilidade", 30000, 25000))


if __name__ == "__main__":
    unittest.main()
