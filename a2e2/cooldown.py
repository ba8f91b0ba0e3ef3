"""
Cooldown ledger.

Per-participant, per-type expiry timestamps plus a type-agnostic global
spacing derived from last_feedback_at. Group signals use the meeting-scoped
ledger instead.
"""

import threading
from typing import Dict, Optional, Tuple

from a2e2.types import ParticipantState

try:
    import config as _config
except Exception:
    _config = None

GLOBAL_FEEDBACK_SPACING_MS = int(getattr(_config, "A2E2_GLOBAL_FEEDBACK_SPACING_MS", 2000))


def in_cooldown(state: ParticipantState, signal_type: str, now: int) -> bool:
    until = state.cooldowns.get(signal_type)
    return until is not None and until > now


def set_cooldown(state: ParticipantState, signal_type: str, now: int, duration_ms: int) -> None:
    """Start the type's cooldown and stamp the global spacing clock."""
    state.cooldowns[signal_type] = now + int(duration_ms)
    state.last_feedback_at = now


def in_global_cooldown(state: ParticipantState, now: int, min_gap_ms: Optional[int] = None) -> bool:
    """True while less than the global spacing has passed since the last event."""
    gap = GLOBAL_FEEDBACK_SPACING_MS if min_gap_ms is None else min_gap_ms
    return state.last_feedback_at is not None and now - state.last_feedback_at < gap


def cooldown_remaining_ms(state: ParticipantState, signal_type: str, now: int) -> int:
    until = state.cooldowns.get(signal_type)
    if until is None:
        return 0
    return max(0, until - now)


class MeetingCooldownLedger:
    """Meeting-scoped cooldowns for signals that describe the whole group."""

    def __init__(self):
        self._until: Dict[Tuple[str, str], int] = {}
        self._lock = threading.Lock()

    def in_cooldown(self, meeting_id: str, signal_type: str, now: int) -> bool:
        with self._lock:
            until = self._until.get((meeting_id, signal_type))
        return until is not None and until > now

    def set_cooldown(self, meeting_id: str, signal_type: str, now: int, duration_ms: int) -> None:
        with self._lock:
            self._until[(meeting_id, signal_type)] = now + int(duration_ms)

    def clear(self, meeting_id: Optional[str] = None) -> None:
        """Forget cooldowns for one meeting, or for all of them."""
        with self._lock:
            if meeting_id is None:
                self._until.clear()
                return
            for key in [k for k in self._until if k[0] == meeting_id]:
                del self._until[key]
