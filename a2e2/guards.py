"""
Dedup and oscillation guards.

Both read the participant's recent-emotion history (previously emitted signal
types) and never write to it.
"""

from typing import Iterable, Optional

from a2e2.thresholds import GUARDS
from a2e2.types import RecentEmotionRecord, finite

OSCILLATION_WINDOW_MS = GUARDS["oscillation_window"]
OVERLAP_WINDOW_MS = GUARDS["overlap_window"]


def count_recent(
    records: Optional[Iterable[RecentEmotionRecord]], signal_type: str, window_ms: int, now: int
) -> int:
    if not records:
        return 0
    cutoff = now - window_ms
    return sum(1 for r in records if r.type == signal_type and r.ts >= cutoff)


def is_oscillating(
    records: Optional[Iterable[RecentEmotionRecord]],
    signal_type: str,
    window_ms: int = OSCILLATION_WINDOW_MS,
    now: int = 0,
) -> bool:
    """Spam cap: the type already fired 3 or more times in the window."""
    return count_recent(records, signal_type, window_ms, now) >= GUARDS["oscillation_max"]


def has_recent_overlap(
    records: Optional[Iterable[RecentEmotionRecord]],
    signal_type: str,
    score: float,
    window_ms: int = OVERLAP_WINDOW_MS,
    now: int = 0,
) -> bool:
    """
    True when a same-type record inside the window has not been beaten by a
    clear margin: the current score must exceed prior * 1.2. A prior record
    without a score is taken as score * 0.8.
    """
    if not records:
        return False
    cutoff = now - window_ms
    prior = None
    for r in records:
        if r.type != signal_type or r.ts < cutoff:
            continue
        if prior is None or r.ts > prior.ts:
            prior = r
    if prior is None:
        return False
    prior_score = finite(prior.score)
    if prior_score is None:
        prior_score = score * GUARDS["overlap_default_ratio"]
    return score <= prior_score * GUARDS["overlap_margin"]
