"""
In-memory registry of meetings and their participants.

Owns each participant's ParticipantState plus the histories the engine reads
through DetectionContext: recent emitted types, snapshots of smoothed emotion
scores, the meeting's overlap history, last speaker and post-interruption
candidates. Ingestion and evaluation may run on different threads; every
public method takes the registry lock, and an evaluation tick holds it
through locked() so samples cannot land mid-tick. Nothing is persisted.
"""

import logging
import threading
from collections import deque
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Deque, Dict, List, Optional, Tuple

from a2e2.aggregator import append_sample, prune_samples
from a2e2.context import DetectionContext
from a2e2.cooldown import MeetingCooldownLedger
from a2e2.detector import HOST_ROLE
from a2e2.ema import update_ema
from a2e2.thresholds import GUARDS, WINDOWS
from a2e2.types import EmotionTrend, FeedbackEvent, ParticipantState, RecentEmotionRecord, Sample, finite

try:
    import config as _config
except Exception:
    _config = None

logger = logging.getLogger(__name__)

INCLUDE_HOST = bool(getattr(_config, "A2E2_INCLUDE_HOST", False))
SAMPLE_PRUNE_MS = int(getattr(_config, "A2E2_SAMPLE_PRUNE_MS", WINDOWS["prune"]))
RECENT_EMOTIONS_RETENTION_MS = int(getattr(_config, "A2E2_RECENT_EMOTIONS_RETENTION_MS", 60000))
EMOTION_HISTORY_LEN = int(getattr(_config, "A2E2_EMOTION_HISTORY_LEN", 120))

# The floor passes to a new speaker only after this much silence from the last one
FLOOR_RELEASE_MS = 1500


@dataclass
class _Participant:
    state: ParticipantState
    name: Optional[str] = None
    role: Optional[str] = None
    recent: Deque[RecentEmotionRecord] = field(default_factory=deque)
    emotion_history: Deque[Tuple[int, Dict[str, float]]] = field(default_factory=deque)
    last_speech_at: Optional[int] = None


@dataclass
class _Meeting:
    participants: Dict[str, _Participant] = field(default_factory=dict)
    overlap_history: List[int] = field(default_factory=list)
    last_overlap_sample_at: Optional[int] = None
    last_speaker: Optional[str] = None
    candidates: List[Dict[str, Any]] = field(default_factory=list)


class MeetingRegistry:
    """Meetings keyed by id, participants keyed by id within each meeting."""

    def __init__(
        self,
        include_host: Optional[bool] = None,
        prune_ms: Optional[int] = None,
        retention_ms: Optional[int] = None,
        history_len: Optional[int] = None,
    ):
        self.include_host = INCLUDE_HOST if include_host is None else include_host
        self.prune_ms = SAMPLE_PRUNE_MS if prune_ms is None else prune_ms
        self.retention_ms = RECENT_EMOTIONS_RETENTION_MS if retention_ms is None else retention_ms
        self.history_len = EMOTION_HISTORY_LEN if history_len is None else history_len
        self.ledger = MeetingCooldownLedger()
        self._meetings: Dict[str, _Meeting] = {}
        self._lock = threading.RLock()

    # ------------------------------------------------------------------
    # Membership
    # ------------------------------------------------------------------

    def join(
        self,
        meeting_id: str,
        participant_id: str,
        name: Optional[str] = None,
        role: Optional[str] = None,
    ) -> ParticipantState:
        """Register a participant (idempotent; name/role are updated when given)."""
        with self._lock:
            meeting = self._meetings.setdefault(meeting_id, _Meeting())
            entry = meeting.participants.get(participant_id)
            if entry is None:
                entry = _Participant(
                    state=ParticipantState(),
                    emotion_history=deque(maxlen=self.history_len),
                )
                meeting.participants[participant_id] = entry
                logger.info("Participant %s joined meeting %s", participant_id, meeting_id)
            if name is not None:
                entry.name = name
            if role is not None:
                entry.role = role
            return entry.state

    def leave(self, meeting_id: str, participant_id: str) -> bool:
        """Remove a participant; the meeting is dropped with its last participant."""
        with self._lock:
            meeting = self._meetings.get(meeting_id)
            if meeting is None or participant_id not in meeting.participants:
                return False
            del meeting.participants[participant_id]
            if meeting.last_speaker == participant_id:
                meeting.last_speaker = None
            meeting.candidates = [c for c in meeting.candidates if c.get("interrupted_id") != participant_id]
            if not meeting.participants:
                del self._meetings[meeting_id]
                self.ledger.clear(meeting_id)
            return True

    def participant(self, meeting_id: str, participant_id: str) -> Optional[ParticipantState]:
        with self._lock:
            entry = self._entry(meeting_id, participant_id)
            return entry.state if entry else None

    def participants(self, meeting_id: str) -> List[str]:
        with self._lock:
            meeting = self._meetings.get(meeting_id)
            return list(meeting.participants) if meeting else []

    def participant_name(self, meeting_id: str, participant_id: str) -> Optional[str]:
        with self._lock:
            entry = self._entry(meeting_id, participant_id)
            return entry.name if entry else None

    def participant_role(self, meeting_id: str, participant_id: str) -> Optional[str]:
        with self._lock:
            entry = self._entry(meeting_id, participant_id)
            return entry.role if entry else None

    def is_evaluated(self, meeting_id: str, participant_id: str) -> bool:
        """Hosts are left out unless A2E2_INCLUDE_HOST is set."""
        return self.include_host or self.participant_role(meeting_id, participant_id) != HOST_ROLE

    # ------------------------------------------------------------------
    # Ingestion
    # ------------------------------------------------------------------

    def ingest(self, meeting_id: str, participant_id: str, sample: Sample) -> bool:
        """
        Feed one sample: buffer append, pruning, EMA update, emotion snapshot
        and speaker tracking. Unknown participants are joined on the fly.

        Returns:
            True if the sample was stored; False for hosts (when excluded)
            and out-of-order samples.
        """
        with self._lock:
            self.join(meeting_id, participant_id)
            meeting = self._meetings[meeting_id]
            entry = meeting.participants[participant_id]
            if not self.include_host and entry.role == HOST_ROLE:
                return False
            state = entry.state
            if not append_sample(state, sample):
                return False
            prune_samples(state, sample.timestamp, self.prune_ms)
            update_ema(state, sample)
            if sample.emotions:
                entry.emotion_history.append((sample.timestamp, dict(state.ema.emotions)))
            if sample.is_speech:
                self._track_speaker(meeting, participant_id, sample.timestamp)
            return True

    def _track_speaker(self, meeting: _Meeting, participant_id: str, ts: int) -> None:
        holder = meeting.participants.get(meeting.last_speaker) if meeting.last_speaker else None
        floor_free = (
            holder is None
            or holder.last_speech_at is None
            or ts - holder.last_speech_at >= FLOOR_RELEASE_MS
        )
        if floor_free:
            meeting.last_speaker = participant_id
        meeting.participants[participant_id].last_speech_at = ts

    # ------------------------------------------------------------------
    # Histories
    # ------------------------------------------------------------------

    def record_feedback(self, event: FeedbackEvent) -> None:
        """Remember an emitted event for the guards and the contextualizer."""
        with self._lock:
            entry = self._entry(event.meeting_id, event.participant_id)
            if entry is None:
                return
            entry.recent.append(RecentEmotionRecord(
                type=event.type,
                ts=event.ts,
                score=finite(event.metadata.get("score")),
            ))
            cutoff = event.ts - self.retention_ms
            while entry.recent and entry.recent[0].ts < cutoff:
                entry.recent.popleft()

    def recent_emotions(
        self, meeting_id: str, participant_id: str, window_ms: int, now: int
    ) -> List[RecentEmotionRecord]:
        with self._lock:
            entry = self._entry(meeting_id, participant_id)
            if entry is None:
                return []
            cutoff = now - window_ms
            return [r for r in entry.recent if r.ts >= cutoff]

    def emotion_trend(
        self, meeting_id: str, participant_id: str, name: str, window_ms: int, now: int
    ) -> EmotionTrend:
        """
        Compare the oldest and newest smoothed score of one emotion inside the
        window. Fewer than two snapshots means STABLE.
        """
        with self._lock:
            entry = self._entry(meeting_id, participant_id)
            if entry is None:
                return EmotionTrend.STABLE
            cutoff = now - window_ms
            points = [snap.get(name, 0.0) for ts, snap in entry.emotion_history if cutoff <= ts <= now]
        if len(points) < 2:
            return EmotionTrend.STABLE
        delta = points[-1] - points[0]
        if delta > GUARDS["trend_delta"]:
            return EmotionTrend.INCREASING
        if delta < -GUARDS["trend_delta"]:
            return EmotionTrend.DECREASING
        return EmotionTrend.STABLE

    # ------------------------------------------------------------------
    # Meeting-scoped state
    # ------------------------------------------------------------------

    def overlap_history(self, meeting_id: str) -> List[int]:
        with self._lock:
            meeting = self._meetings.get(meeting_id)
            return list(meeting.overlap_history) if meeting else []

    def update_overlap_history(self, meeting_id: str, history: List[int]) -> None:
        with self._lock:
            meeting = self._meetings.get(meeting_id)
            if meeting is not None:
                meeting.overlap_history = list(history)

    def last_overlap_sample_at(self, meeting_id: str) -> Optional[int]:
        with self._lock:
            meeting = self._meetings.get(meeting_id)
            return meeting.last_overlap_sample_at if meeting else None

    def set_last_overlap_sample_at(self, meeting_id: str, ts: int) -> None:
        with self._lock:
            meeting = self._meetings.get(meeting_id)
            if meeting is not None:
                meeting.last_overlap_sample_at = ts

    def last_speaker(self, meeting_id: str) -> Optional[str]:
        with self._lock:
            meeting = self._meetings.get(meeting_id)
            return meeting.last_speaker if meeting else None

    def post_interruption_candidates(self, meeting_id: str) -> List[Dict[str, Any]]:
        with self._lock:
            meeting = self._meetings.get(meeting_id)
            return [dict(c) for c in meeting.candidates] if meeting else []

    def update_post_interruption_candidates(self, meeting_id: str, candidates: List[Dict[str, Any]]) -> None:
        with self._lock:
            meeting = self._meetings.get(meeting_id)
            if meeting is not None:
                meeting.candidates = [dict(c) for c in candidates]

    # ------------------------------------------------------------------
    # Context
    # ------------------------------------------------------------------

    @contextmanager
    def locked(self):
        """Hold the registry lock across several calls (one evaluation tick)."""
        with self._lock:
            yield self

    def build_context(self, meeting_id: str, participant_id: str, now: int) -> DetectionContext:
        """
        DetectionContext for one tick. History providers resolve the
        participant from the state they are given, so contexts re-pointed
        with with_participant() read the right history.
        """
        def locate(state: ParticipantState) -> Tuple[str, str]:
            return meeting_id, self._participant_id_for(meeting_id, state) or participant_id

        return DetectionContext(
            meeting_id=meeting_id,
            participant_id=participant_id,
            now=now,
            get_participant_name=self.participant_name,
            get_recent_emotions=lambda state, window_ms, at: self.recent_emotions(*locate(state), window_ms, at),
            get_emotion_trend=lambda state, name, window_ms, at: self.emotion_trend(
                *locate(state), name, window_ms, at),
            get_participants_for_meeting=self.participants,
            get_participant_state=self.participant,
            get_participant_role=self.participant_role,
            get_overlap_history=self.overlap_history,
            update_overlap_history=self.update_overlap_history,
            get_last_overlap_sample_at=self.last_overlap_sample_at,
            set_last_overlap_sample_at=self.set_last_overlap_sample_at,
            get_last_speaker=self.last_speaker,
            get_post_interruption_candidates=self.post_interruption_candidates,
            update_post_interruption_candidates=self.update_post_interruption_candidates,
            in_cooldown_meeting=self.ledger.in_cooldown,
            set_cooldown_meeting=self.ledger.set_cooldown,
        )

    def clear(self, meeting_id: Optional[str] = None) -> None:
        """Forget one meeting, or everything."""
        with self._lock:
            if meeting_id is None:
                self._meetings.clear()
            else:
                self._meetings.pop(meeting_id, None)
            self.ledger.clear(meeting_id)

    def _entry(self, meeting_id: str, participant_id: str) -> Optional[_Participant]:
        meeting = self._meetings.get(meeting_id)
        return meeting.participants.get(participant_id) if meeting else None

    def _participant_id_for(self, meeting_id: str, state: ParticipantState) -> Optional[str]:
        with self._lock:
            meeting = self._meetings.get(meeting_id)
            if meeting is None:
                return None
            for pid, entry in meeting.participants.items():
                if entry.state is state:
                    return pid
            return None


# Lazy singleton: created on first use
_registry: Optional[MeetingRegistry] = None


def get_registry() -> MeetingRegistry:
    """Return the process-wide registry, creating it on first call (lazy init)."""
    global _registry
    if _registry is None:
        _registry = MeetingRegistry()
    return _registry
