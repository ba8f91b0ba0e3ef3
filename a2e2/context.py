"""
Detection context: the capabilities a detector consumes from the host.

A detector never reaches for globals. Everything it needs beyond the
participant's own state (clock, names, ids, the ledger, optional history and
trend providers, and meeting-wide views for group signals) arrives here. Any
optional provider left as None falls back to the engine's own computation.
"""

import uuid
from dataclasses import dataclass, replace
from typing import Any, Callable, Dict, List, Optional, Tuple

from a2e2 import aggregator, cooldown
from a2e2.context_adjustments import calculate_emotion_trend, calculate_tension_level
from a2e2.message_contextualizer import contextualize_message
from a2e2.thresholds import GUARDS
from a2e2.types import EmotionTrend, ParticipantState, RecentEmotionRecord, TensionLevel, WindowStats


def _make_id() -> str:
    return uuid.uuid4().hex


def _no_name(meeting_id: str, participant_id: str) -> Optional[str]:
    return None


@dataclass
class DetectionContext:
    """Per-tick capability bundle for one participant (or one meeting)."""
    meeting_id: str
    participant_id: str
    now: int

    get_participant_name: Callable[[str, str], Optional[str]] = _no_name
    make_id: Callable[[], str] = _make_id
    window: Callable[[ParticipantState, int, int], WindowStats] = aggregator.window
    in_cooldown: Callable[[ParticipantState, str, int], bool] = cooldown.in_cooldown
    set_cooldown: Callable[[ParticipantState, str, int, int], None] = cooldown.set_cooldown
    in_global_cooldown: Callable[[ParticipantState, int], bool] = cooldown.in_global_cooldown

    # Optional providers
    get_recent_emotions: Optional[Callable[[ParticipantState, int, int], List[RecentEmotionRecord]]] = None
    get_tension_level: Optional[Callable[[ParticipantState], TensionLevel]] = None
    get_emotion_trend: Optional[Callable[[ParticipantState, str, int, int], EmotionTrend]] = None
    contextualize: Callable[[str, List[str], Dict[str, Any]], Tuple[str, List[str]]] = contextualize_message

    # Meeting-scoped capabilities (required only by group signals)
    get_participants_for_meeting: Optional[Callable[[str], List[str]]] = None
    get_participant_state: Optional[Callable[[str, str], Optional[ParticipantState]]] = None
    get_participant_role: Optional[Callable[[str, str], Optional[str]]] = None
    get_overlap_history: Optional[Callable[[str], List[int]]] = None
    update_overlap_history: Optional[Callable[[str, List[int]], None]] = None
    get_last_overlap_sample_at: Optional[Callable[[str], Optional[int]]] = None
    set_last_overlap_sample_at: Optional[Callable[[str, int], None]] = None
    get_last_speaker: Optional[Callable[[str], Optional[str]]] = None
    get_post_interruption_candidates: Optional[Callable[[str], List[Dict[str, Any]]]] = None
    update_post_interruption_candidates: Optional[Callable[[str, List[Dict[str, Any]]], None]] = None
    in_cooldown_meeting: Optional[Callable[[str, str, int], bool]] = None
    set_cooldown_meeting: Optional[Callable[[str, str, int, int], None]] = None

    def recent_emotions(self, state: ParticipantState, window_ms: int) -> Optional[List[RecentEmotionRecord]]:
        """History of emitted types in the window, or None without a provider."""
        if self.get_recent_emotions is None:
            return None
        return self.get_recent_emotions(state, window_ms, self.now)

    def tension_level(self, state: ParticipantState) -> TensionLevel:
        if self.get_tension_level is not None:
            return self.get_tension_level(state)
        return calculate_tension_level(state.ema.arousal, state.ema.valence)

    def emotion_trend(self, state: ParticipantState, name: str, window_ms: Optional[int] = None) -> EmotionTrend:
        """
        Trend of one emotion. Uses the provider when present, otherwise the
        recent history records of that name, otherwise STABLE.
        """
        window_ms = GUARDS["trend_window"] if window_ms is None else window_ms
        if self.get_emotion_trend is not None:
            return self.get_emotion_trend(state, name, window_ms, self.now)
        records = self.recent_emotions(state, window_ms)
        if not records:
            return EmotionTrend.STABLE
        return calculate_emotion_trend(records, name, window_ms, self.now)

    def participant_name(self, participant_id: Optional[str] = None) -> str:
        pid = self.participant_id if participant_id is None else participant_id
        name = self.get_participant_name(self.meeting_id, pid)
        return name or "Participante"

    def with_participant(self, participant_id: str) -> 'DetectionContext':
        """Copy of this context pointed at another participant of the same meeting."""
        return replace(self, participant_id=participant_id)
