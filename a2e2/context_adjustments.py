"""
Dynamic threshold engine.

Adapts static base thresholds to the participant's emotional context:

- Tension: high energy with negative tone lowers thresholds for negative
  signals; calm positive tone lowers them for positive signals.
- Trend: a negative emotion that is rising is caught earlier; one that is
  fading needs more evidence.
- Consistency: a signal that keeps firing at a steady rhythm gets one more
  reduction (applied by the detector, see has_consistent_trend()).

Adjustments compose in the order tension -> trend -> consistency. Each step
clamps against the previous result, and nothing goes below MIN_THRESHOLD.
"""

from typing import Any, Dict, Iterable, Mapping, Optional, Tuple

from a2e2.thresholds import GUARDS
from a2e2.types import EmotionTrend, RecentEmotionRecord, TensionLevel, finite

MIN_THRESHOLD = GUARDS["min_threshold"]
TREND_DELTA = GUARDS["trend_delta"]
CONSISTENCY_FACTOR = GUARDS["consistency_factor"]

NEGATIVE = "negative"
POSITIVE = "positive"
NEUTRAL = "neutral"

# rule name -> (tension level that triggers it, multiplier)
TENSION_RULES: Dict[str, Tuple[TensionLevel, float]] = {
    NEGATIVE: (TensionLevel.HIGH, 0.8),
    POSITIVE: (TensionLevel.LOW, 0.9),
    "hostility": (TensionLevel.HIGH, 0.8),
    "threat": (TensionLevel.HIGH, 0.85),
    "deep_sadness": (TensionLevel.HIGH, 0.9),
    "engagement": (TensionLevel.LOW, 0.9),
    "serenity": (TensionLevel.LOW, 0.85),
    "connection": (TensionLevel.LOW, 0.9),
}

# trend -> (multiplier on the base, clamp)
_TREND_STEPS = {
    EmotionTrend.INCREASING: (0.85, min),
    EmotionTrend.DECREASING: (1.1, max),
}


def calculate_tension_level(arousal: Optional[float], valence: Optional[float]) -> TensionLevel:
    """High iff arousal > 0.5 and valence < 0; low iff arousal < 0.2 and valence > 0.2."""
    return TensionLevel.from_affect(arousal, valence)


def calculate_emotion_trend(
    records: Optional[Iterable[RecentEmotionRecord]],
    emotion_name: str,
    window_ms: int,
    now: int,
) -> EmotionTrend:
    """
    Direction of one emotion over a short window.

    Takes the earliest and latest record of that emotion inside the window
    (at least two are needed). A missing score counts as 0.
    """
    if not records:
        return EmotionTrend.STABLE
    cutoff = now - window_ms
    matching = sorted(
        (r for r in records if r.type == emotion_name and r.ts >= cutoff),
        key=lambda r: r.ts,
    )
    if len(matching) < 2:
        return EmotionTrend.STABLE
    first = finite(matching[0].score) or 0.0
    last = finite(matching[-1].score) or 0.0
    change = last - first
    if change > TREND_DELTA:
        return EmotionTrend.INCREASING
    if change < -TREND_DELTA:
        return EmotionTrend.DECREASING
    return EmotionTrend.STABLE


def apply_tension(base: float, tension: TensionLevel, rule: str) -> float:
    """Scale base by the rule's multiplier when the tension level matches."""
    try:
        level, factor = TENSION_RULES[rule]
    except KeyError:
        raise ValueError("Unknown tension rule: %r" % (rule,))
    return base * factor if tension == level else base


def apply_trend(current: float, base: float, trend: EmotionTrend, category: str) -> float:
    """Trend step; only negative emotions move. Rising: min(current, base*0.85). Falling: max(current, base*1.1)."""
    if category != NEGATIVE:
        return current
    step = _TREND_STEPS.get(trend)
    if step is None:
        return current
    factor, clamp = step
    return clamp(current, base * factor)


def apply_family_floor(threshold: float, base: float, floor: float) -> float:
    """Keep a signal family from eroding below its floor, without ever raising the base."""
    return max(threshold, min(base, floor))


def get_hostility_threshold(base: float, tension: TensionLevel) -> float:
    return apply_tension(base, tension, "hostility")


def get_threat_threshold(base: float, tension: TensionLevel) -> float:
    return apply_tension(base, tension, "threat")


def get_deep_sadness_threshold(base: float, tension: TensionLevel) -> float:
    return apply_tension(base, tension, "deep_sadness")


def get_engagement_threshold(base: float, tension: TensionLevel) -> float:
    return apply_tension(base, tension, "engagement")


def get_serenity_threshold(base: float, tension: TensionLevel) -> float:
    return apply_tension(base, tension, "serenity")


def get_connection_threshold(base: float, tension: TensionLevel) -> float:
    return apply_tension(base, tension, "connection")


def get_threshold_by_trend(base: float, trend: EmotionTrend, category: str) -> float:
    """Trend step on its own, starting from the base."""
    return max(apply_trend(base, base, trend, category), MIN_THRESHOLD)


def get_dynamic_threshold(
    base: float,
    ctx: Mapping[str, Any],
    category: str,
    rule: Optional[str] = None,
) -> float:
    """
    Compose tension and trend adjustments for one base threshold.

    Args:
        base: Static threshold from the table
        ctx: Mapping with "arousal" and "valence" (or a precomputed "tension")
            and an optional "trend" (EmotionTrend)
        category: "negative", "positive" or "neutral"
        rule: Signal-specific tension rule; defaults to the category's generic rule

    Returns:
        Adjusted threshold, never below MIN_THRESHOLD.
    """
    tension = ctx.get("tension")
    if not isinstance(tension, TensionLevel):
        tension = calculate_tension_level(ctx.get("arousal"), ctx.get("valence"))
    if rule is None:
        rule = category if category in (NEGATIVE, POSITIVE) else None
    result = apply_tension(base, tension, rule) if rule else base
    trend = ctx.get("trend")
    if isinstance(trend, EmotionTrend):
        result = apply_trend(result, base, trend, category)
    return max(result, MIN_THRESHOLD)


def has_consistent_trend(
    records: Optional[Iterable[RecentEmotionRecord]],
    signal_type: str,
    window_ms: Optional[int] = None,
    now: int = 0,
) -> bool:
    """
    True when the signal fired at least 3 times in the window and the three
    most recent firings are less than 15 s apart from each other.
    """
    if not records:
        return False
    window_ms = GUARDS["consistency_window"] if window_ms is None else window_ms
    cutoff = now - window_ms
    hits = sorted(
        (r.ts for r in records if r.type == signal_type and r.ts >= cutoff),
        reverse=True,
    )
    needed = GUARDS["consistency_min_count"]
    if len(hits) < needed:
        return False
    latest = hits[:needed]
    max_gap = GUARDS["consistency_max_gap"]
    return all(latest[i] - latest[i + 1] < max_gap for i in range(needed - 1))
