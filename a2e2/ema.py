"""
Smoothed-state store: exponential moving averages of arousal, valence,
loudness and per-emotion confidences.

Written by the ingest side once per sample; every detector reads it.
"""

from typing import List, Optional, Tuple

from a2e2.types import ParticipantState, Sample, finite

try:
    import config as _config
except Exception:
    _config = None

EMA_ALPHA = float(getattr(_config, "A2E2_EMA_ALPHA", 0.3))


def smooth(previous: Optional[float], value: Optional[float], alpha: float = EMA_ALPHA) -> Optional[float]:
    """alpha * value + (1 - alpha) * previous; the first finite value seeds the average."""
    v = finite(value)
    if v is None:
        return previous
    p = finite(previous)
    if p is None:
        return v
    return alpha * v + (1.0 - alpha) * p


def update_ema(state: ParticipantState, sample: Sample, alpha: float = EMA_ALPHA) -> None:
    """
    Fold one sample into the participant's smoothed state.

    Readings that are absent or NaN leave the stored value untouched. Emotion
    names are lower-cased; emotions missing from the sample keep their value.
    """
    ema = state.ema
    ema.arousal = smooth(ema.arousal, sample.arousal, alpha)
    ema.valence = smooth(ema.valence, sample.valence, alpha)
    ema.rms = smooth(ema.rms, sample.loudness_db, alpha)
    if sample.emotions:
        for name, score in sample.emotions.items():
            key = str(name).lower()
            updated = smooth(ema.emotions.get(key), score, alpha)
            if updated is not None:
                ema.emotions[key] = updated


def top_emotions(state: ParticipantState, n: int = 5) -> List[Tuple[str, float]]:
    """Highest smoothed emotions, for diagnostics."""
    items = sorted(state.ema.emotions.items(), key=lambda kv: kv[1], reverse=True)
    return items[:n]
