"""
Evaluation entry points: run the A2E2 pipeline for a participant or a whole
meeting against the registry, and record what was emitted.
"""

import logging
import time
from typing import List, Optional

from a2e2.pipeline import run_a2e2_pipeline
from a2e2.types import FeedbackEvent
from services.meeting_registry import MeetingRegistry, get_registry

logger = logging.getLogger(__name__)


def _now_ms() -> int:
    return int(time.time() * 1000)


def evaluate_participant(
    meeting_id: str,
    participant_id: str,
    now: Optional[int] = None,
    registry: Optional[MeetingRegistry] = None,
) -> Optional[FeedbackEvent]:
    """
    One tick for one participant.

    Args:
        meeting_id: Meeting the participant belongs to
        participant_id: Participant to evaluate
        now: Tick time in ms (defaults to the wall clock)
        registry: Registry to read and update (defaults to the global one)

    Returns:
        The emitted FeedbackEvent, or None (also for unknown participants).
    """
    registry = registry or get_registry()
    now = _now_ms() if now is None else now
    with registry.locked():
        state = registry.participant(meeting_id, participant_id)
        if state is None:
            return None
        ctx = registry.build_context(meeting_id, participant_id, now)
        event = run_a2e2_pipeline(state, ctx)
        if event is not None:
            registry.record_feedback(event)
    if event is not None:
        logger.info(
            "A2E2 feedback %s [%s] meeting=%s participant=%s: %s",
            event.type, event.severity, event.meeting_id, event.participant_id, event.message,
        )
    return event


def evaluate_meeting(
    meeting_id: str,
    now: Optional[int] = None,
    registry: Optional[MeetingRegistry] = None,
) -> List[FeedbackEvent]:
    """Evaluate every (non-host) participant once; returns the events of this tick."""
    registry = registry or get_registry()
    now = _now_ms() if now is None else now
    events = []
    for participant_id in registry.participants(meeting_id):
        if not registry.is_evaluated(meeting_id, participant_id):
            continue
        event = evaluate_participant(meeting_id, participant_id, now=now, registry=registry)
        if event is not None:
            events.append(event)
    return events
