"""
A2E2 feedback engine.

This package turns a stream of audio-derived samples per meeting participant
into rate-limited feedback events:
- Aggregator and EMA store: windowed coverage statistics and smoothed readings
- Dynamic thresholds: tension, trend and consistency adjustments
- Guards and cooldowns: oscillation, overlap, per-type and global spacing
- Detectors: primary emotions, meta-states, prosody and long-term behavior
- Pipeline: runs the layers in priority order, first event wins
"""

from .types import (
    EmaState,
    EmotionTrend,
    FeedbackEvent,
    ParticipantState,
    RecentEmotionRecord,
    Sample,
    TensionLevel,
    WindowStats,
)
from .thresholds import A2E2_THRESHOLDS, THRESHOLDS_VERSION
from .context import DetectionContext
from .pipeline import run_a2e2_pipeline

__all__ = [
    'A2E2_THRESHOLDS',
    'THRESHOLDS_VERSION',
    'DetectionContext',
    'EmaState',
    'EmotionTrend',
    'FeedbackEvent',
    'ParticipantState',
    'RecentEmotionRecord',
    'Sample',
    'TensionLevel',
    'WindowStats',
    'run_a2e2_pipeline',
]
