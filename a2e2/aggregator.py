"""
Sample buffer and windowed aggregator.

The buffer is a time-ordered deque per participant; window() turns its tail
into coverage statistics over any trailing window ending "now".
"""

import logging
from typing import List, Optional

import numpy as np

from a2e2.thresholds import WINDOWS
from a2e2.types import ParticipantState, Sample, WindowStats, finite

logger = logging.getLogger(__name__)


def append_sample(state: ParticipantState, sample: Sample) -> bool:
    """
    Append a sample keeping timestamps non-decreasing.

    Returns:
        True if appended; False if the sample is older than the buffer tail.
    """
    if state.samples and sample.timestamp < state.samples[-1].timestamp:
        logger.warning(
            "Dropping out-of-order sample: %s < %s", sample.timestamp, state.samples[-1].timestamp
        )
        return False
    state.samples.append(sample)
    return True


def prune_samples(state: ParticipantState, now: int, horizon_ms: Optional[int] = None) -> int:
    """Drop samples older than the pruning horizon. Returns how many were removed."""
    horizon = WINDOWS["prune"] if horizon_ms is None else horizon_ms
    cutoff = now - horizon
    removed = 0
    while state.samples and state.samples[0].timestamp < cutoff:
        state.samples.popleft()
        removed += 1
    return removed


def samples_in_window(state: ParticipantState, now: int, window_ms: int) -> List[Sample]:
    """Samples with timestamp >= now - window_ms, oldest first."""
    start = now - window_ms
    tail = []
    for s in reversed(state.samples):
        if s.timestamp < start:
            break
        tail.append(s)
    tail.reverse()
    return tail


def window(state: ParticipantState, now: int, window_ms: int) -> WindowStats:
    """
    Coverage statistics over the trailing window [now - window_ms, now].

    Args:
        state: Participant whose buffer is read (never modified)
        now: Window end (ms)
        window_ms: Window length (ms, > 0)

    Returns:
        WindowStats; mean_loudness_db is None when no sample carries loudness.
    """
    if window_ms <= 0:
        raise ValueError("window_ms must be positive, got %r" % (window_ms,))
    samples = samples_in_window(state, now, window_ms)
    speech = sum(1 for s in samples if s.is_speech)
    loudness = [v for v in (finite(s.loudness_db) for s in samples) if v is not None]
    mean_loudness = float(np.mean(loudness)) if loudness else None
    return WindowStats(
        start=now - window_ms,
        end=now,
        samples_count=len(samples),
        speech_count=speech,
        mean_loudness_db=mean_loudness,
    )


def has_spoken(state: ParticipantState) -> bool:
    """True if any buffered sample was speech."""
    return any(s.is_speech for s in state.samples)
