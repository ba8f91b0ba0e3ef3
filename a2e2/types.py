"""
Data model shared by every A2E2 layer.

Timestamps are integer milliseconds. Arousal and valence live in [-1, 1];
emotion scores, ratios and coverages in [0, 1]. Absent numeric readings are
None; NaN is treated the same way (see finite()).
"""

import math
from collections import deque
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Deque, Dict, List, Optional


def finite(value: Any) -> Optional[float]:
    """Return value as float, or None when it is missing, NaN or infinite."""
    if value is None or isinstance(value, bool):
        return None
    try:
        f = float(value)
    except (TypeError, ValueError):
        return None
    return f if math.isfinite(f) else None


class TensionLevel(Enum):
    """Coarse energy x polarity classification used to scale thresholds."""
    HIGH = "high"
    MODERATE = "moderate"
    LOW = "low"

    @classmethod
    def from_affect(cls, arousal: Optional[float], valence: Optional[float]) -> 'TensionLevel':
        """
        Classify tension from smoothed arousal and valence.

        Args:
            arousal: Smoothed arousal (-1..1) or None
            valence: Smoothed valence (-1..1) or None

        Returns:
            HIGH when arousal > 0.5 and valence < 0, LOW when arousal < 0.2 and
            valence > 0.2, MODERATE otherwise (including absent readings).
        """
        a = finite(arousal)
        v = finite(valence)
        if a is None or v is None:
            return cls.MODERATE
        if a > 0.5 and v < 0.0:
            return cls.HIGH
        if a < 0.2 and v > 0.2:
            return cls.LOW
        return cls.MODERATE


class EmotionTrend(Enum):
    """Short-window direction of one emotion's score."""
    INCREASING = "increasing"
    DECREASING = "decreasing"
    STABLE = "stable"


SEVERITY_INFO = "info"
SEVERITY_WARNING = "warning"
SEVERITY_CRITICAL = "critical"


@dataclass(frozen=True)
class Sample:
    """One audio-derived reading. Immutable once recorded."""
    timestamp: int
    is_speech: bool
    loudness_db: Optional[float] = None  # RMS in dBFS
    arousal: Optional[float] = None
    valence: Optional[float] = None
    emotions: Optional[Dict[str, float]] = None  # raw per-emotion confidences


@dataclass
class EmaState:
    """Exponentially smoothed readings; written by the ingest side only."""
    arousal: Optional[float] = None
    valence: Optional[float] = None
    rms: Optional[float] = None
    emotions: Dict[str, float] = field(default_factory=dict)

    def emotion(self, name: str) -> float:
        """Smoothed score for one emotion; absent or NaN reads as 0."""
        v = finite(self.emotions.get(name))
        return v if v is not None else 0.0


@dataclass
class ParticipantState:
    """
    Everything the engine knows about one participant.

    Detectors treat samples and ema as read-only; the only write they perform
    is to the cooldown ledger (cooldowns / last_feedback_at) on success.
    """
    samples: Deque[Sample] = field(default_factory=deque)
    ema: EmaState = field(default_factory=EmaState)
    cooldowns: Dict[str, int] = field(default_factory=dict)  # signal type -> expiry ts
    last_feedback_at: Optional[int] = None


@dataclass(frozen=True)
class WindowStats:
    """Coverage statistics over a trailing window ending at ``end``."""
    start: int
    end: int
    samples_count: int
    speech_count: int
    mean_loudness_db: Optional[float] = None

    @property
    def speech_coverage(self) -> Optional[float]:
        """speech_count / samples_count, or None when the window is empty."""
        if self.samples_count <= 0:
            return None
        return self.speech_count / self.samples_count


@dataclass(frozen=True)
class RecentEmotionRecord:
    """A previously emitted signal type, kept for guards and trend lookups."""
    type: str
    ts: int
    score: Optional[float] = None


@dataclass(frozen=True)
class FeedbackEvent:
    """The single output of a tick."""
    id: str
    type: str
    severity: str  # info | warning | critical
    ts: int
    meeting_id: str
    participant_id: str
    window: Dict[str, int]
    message: str
    tips: List[str] = field(default_factory=list)
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
