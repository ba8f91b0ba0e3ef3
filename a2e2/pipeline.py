"""
Pipeline orchestrator.

One tick for one participant: primary emotions, then meta-states, then
prosody, then long-term behavior. The first event wins, so a tick emits at
most one event.
"""

import logging
from typing import Optional

from a2e2 import longterm, metastates, primary, prosody
from a2e2.context import DetectionContext
from a2e2.detector import run_in_order
from a2e2.types import FeedbackEvent, ParticipantState

logger = logging.getLogger(__name__)

LAYERS = [primary.run, metastates.run, prosody.run, longterm.run]


def run_a2e2_pipeline(state: ParticipantState, ctx: DetectionContext) -> Optional[FeedbackEvent]:
    """
    Evaluate every layer in priority order.

    Args:
        state: Participant being evaluated
        ctx: Capabilities for this tick

    Returns:
        The first FeedbackEvent produced, or None.
    """
    event = run_in_order(LAYERS, state, ctx)
    if event is not None:
        logger.debug("A2E2 %s/%s -> %s (%s)", ctx.meeting_id, ctx.participant_id, event.type, event.severity)
    return event
