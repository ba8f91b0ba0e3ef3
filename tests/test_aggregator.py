"""
Sample buffer, windowed aggregator and smoothed-state store tests.
"""

import sys
import os

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import math
import unittest


class TestWindow(unittest.TestCase):
    """Test window() coverage statistics."""

    def test_counts_samples_inside_window(self):
        """Only samples with timestamp >= now - window_ms are counted."""
        from a2e2.aggregator import window
        from tests.fixtures.participants import NOW, make_state
        state = make_state(count=40, speech_ratio=0.5)  # 19.5 s of samples
        stats = window(state, NOW, 10000)
        self.assertEqual(stats.samples_count, 21)
        self.assertEqual(stats.start, NOW - 10000)
        self.assertEqual(stats.end, NOW)
        self.assertAlmostEqual(stats.speech_coverage, stats.speech_count / 21)

    def test_empty_window_has_no_coverage(self):
        """An empty window reports None coverage rather than zero."""
        from a2e2.aggregator import window
        from a2e2.types import ParticipantState
        stats = window(ParticipantState(), 5000, 1000)
        self.assertEqual(stats.samples_count, 0)
        self.assertIsNone(stats.speech_coverage)
        self.assertIsNone(stats.mean_loudness_db)

    def test_mean_loudness_ignores_missing_and_nan(self):
        """Absent and NaN loudness values are left out of the mean."""
        from a2e2.aggregator import append_sample, window
        from a2e2.types import ParticipantState, Sample
        state = ParticipantState()
        append_sample(state, Sample(1000, True, -20.0))
        append_sample(state, Sample(1500, True, None))
        append_sample(state, Sample(2000, False, float("nan")))
        append_sample(state, Sample(2500, True, -40.0))
        stats = window(state, 2500, 5000)
        self.assertEqual(stats.samples_count, 4)
        self.assertEqual(stats.speech_count, 3)
        self.assertAlmostEqual(stats.mean_loudness_db, -30.0)

    def test_non_positive_window_raises(self):
        """window_ms <= 0 is a programming error."""
        from a2e2.aggregator import window
        from a2e2.types import ParticipantState
        with self.assertRaises(ValueError):
            window(ParticipantState(), 1000, 0)
        with self.assertRaises(ValueError):
            window(ParticipantState(), 1000, -5)

    def test_window_does_not_mutate_buffer(self):
        """window() is pure."""
        from a2e2.aggregator import window
        from tests.fixtures.participants import NOW, make_state
        state = make_state(count=10)
        before = list(state.samples)
        window(state, NOW, 2000)
        self.assertEqual(list(state.samples), before)


class TestBuffer(unittest.TestCase):
    """Test append/prune and has_spoken."""

    def test_out_of_order_sample_is_dropped(self):
        """A sample older than the tail is rejected and logged."""
        from a2e2.aggregator import append_sample
        from a2e2.types import ParticipantState, Sample
        state = ParticipantState()
        self.assertTrue(append_sample(state, Sample(2000, True)))
        with self.assertLogs("a2e2.aggregator", level="WARNING"):
            self.assertFalse(append_sample(state, Sample(1000, True)))
        self.assertEqual(len(state.samples), 1)

    def test_equal_timestamps_are_accepted(self):
        """Non-decreasing order allows equal timestamps."""
        from a2e2.aggregator import append_sample
        from a2e2.types import ParticipantState, Sample
        state = ParticipantState()
        append_sample(state, Sample(1000, True))
        self.assertTrue(append_sample(state, Sample(1000, False)))

    def test_prune_drops_samples_older_than_horizon(self):
        """Samples older than 65 s are removed by default."""
        from a2e2.aggregator import append_sample, prune_samples
        from a2e2.types import ParticipantState, Sample
        state = ParticipantState()
        for ts in (0, 10000, 40000, 70000):
            append_sample(state, Sample(ts, True))
        removed = prune_samples(state, 80000)
        self.assertEqual(removed, 1)
        self.assertEqual([s.timestamp for s in state.samples], [40000, 70000])

    def test_has_spoken(self):
        """has_spoken is true once any speech sample is buffered."""
        from a2e2.aggregator import has_spoken
        from tests.fixtures.participants import make_state
        self.assertFalse(has_spoken(make_state(count=10, speech_ratio=0.0)))
        self.assertTrue(has_spoken(make_state(count=10, speech_ratio=0.1)))


class TestEma(unittest.TestCase):
    """Test the smoothed-state store."""

    def test_first_value_seeds_average(self):
        """smooth() returns the first finite value unchanged."""
        from a2e2.ema import smooth
        self.assertEqual(smooth(None, 0.4, 0.3), 0.4)

    def test_smooth_blends_with_alpha(self):
        """alpha * value + (1 - alpha) * previous."""
        from a2e2.ema import smooth
        self.assertAlmostEqual(smooth(0.0, 1.0, 0.3), 0.3)
        self.assertAlmostEqual(smooth(0.5, 0.0, 0.2), 0.4)

    def test_absent_reading_keeps_previous(self):
        """None and NaN leave the stored value untouched."""
        from a2e2.ema import smooth
        self.assertEqual(smooth(0.25, None), 0.25)
        self.assertEqual(smooth(0.25, float("nan")), 0.25)

    def test_update_ema_lowercases_emotions(self):
        """Emotion keys are stored lower-cased; missing ones keep their value."""
        from a2e2.ema import update_ema
        from a2e2.types import ParticipantState, Sample
        state = ParticipantState()
        update_ema(state, Sample(0, True, -30.0, 0.2, 0.1, {"Anger": 0.5, "Joy": 0.2}))
        update_ema(state, Sample(500, True, None, None, None, {"anger": 0.0}), alpha=0.5)
        self.assertAlmostEqual(state.ema.emotions["anger"], 0.25)
        self.assertAlmostEqual(state.ema.emotions["joy"], 0.2)
        self.assertAlmostEqual(state.ema.arousal, 0.2)
        self.assertAlmostEqual(state.ema.rms, -30.0)

    def test_emotion_lookup_defaults_to_zero(self):
        """EmaState.emotion returns 0 for unknown or NaN entries."""
        from a2e2.types import EmaState
        ema = EmaState(emotions={"joy": float("nan"), "anger": 0.1})
        self.assertEqual(ema.emotion("fear"), 0.0)
        self.assertEqual(ema.emotion("joy"), 0.0)
        self.assertEqual(ema.emotion("anger"), 0.1)

    def test_top_emotions(self):
        """top_emotions sorts by score, highest first."""
        from a2e2.ema import top_emotions
        from tests.fixtures.participants import make_state
        state = make_state(emotions={"a": 0.1, "b": 0.3, "c": 0.2})
        self.assertEqual([k for k, _ in top_emotions(state, 2)], ["b", "c"])


class TestFinite(unittest.TestCase):
    """Test numeric absence handling."""

    def test_finite(self):
        from a2e2.types import finite
        self.assertIsNone(finite(None))
        self.assertIsNone(finite(float("nan")))
        self.assertIsNone(finite(math.inf))
        self.assertIsNone(finite("x"))
        self.assertEqual(finite(1), 1.0)


if __name__ == "__main__":
    unittest.main()
