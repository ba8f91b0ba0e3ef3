"""
Meta-state signals: patterns across time or across participants rather than
a single emotion reading.

- Frustration trend: fallback for frustration when no primary emotion is
  significant; compares early vs late half of the trend window.
- Post-interruption: valence drop of someone who was just interrupted.
- Polarization: the group splits into clearly positive and negative camps.
"""

import logging
from typing import Any, Dict, List, Optional

import numpy as np

from a2e2.aggregator import samples_in_window
from a2e2.context import DetectionContext
from a2e2.detector import (
    GROUP_PARTICIPANT,
    admit,
    admit_meeting,
    build_event,
    diagnostic,
    has_significant_emotions,
    meeting_states,
    oscillating,
    run_in_order,
)
from a2e2.thresholds import (
    COOLDOWNS,
    FRUSTRATION,
    GATES,
    METASTATES,
    POLARIZATION,
    POST_INTERRUPTION,
    WINDOWS,
)
from a2e2.types import SEVERITY_INFO, SEVERITY_WARNING, FeedbackEvent, ParticipantState, finite

logger = logging.getLogger(__name__)


def _mean(values: List[float]) -> Optional[float]:
    return float(np.mean(values)) if values else None


def detect_frustration_trend(state: ParticipantState, ctx: DetectionContext) -> Optional[FeedbackEvent]:
    """
    Rising energy and/or falling tone over the trend window.

    Shares the frustration type (and therefore its cooldown) with the primary
    frustration signal; only runs when primary emotions are not significant.
    """
    if has_significant_emotions(state):
        return None
    if oscillating(state, ctx, FRUSTRATION):
        return None

    t = METASTATES["frustration_trend"]
    now = ctx.now
    window_ms = WINDOWS["trend"]
    midpoint = now - window_ms // 2
    samples = samples_in_window(state, now, window_ms)

    early_arousal, late_arousal, early_valence, late_valence = [], [], [], []
    speech = 0
    for s in samples:
        if s.is_speech:
            speech += 1
        arousal, valence = finite(s.arousal), finite(s.valence)
        early = s.timestamp < midpoint
        if arousal is not None:
            (early_arousal if early else late_arousal).append(arousal)
        if valence is not None:
            (early_valence if early else late_valence).append(valence)

    readings = len(early_arousal) + len(late_arousal) + len(early_valence) + len(late_valence)
    if speech < t["min_speech_samples"] or readings < t["min_readings"]:
        return None
    if not (early_arousal and late_arousal and early_valence and late_valence):
        return None

    coverage = speech / len(samples)
    if coverage < GATES["meta"]:
        diagnostic(FRUSTRATION, "trend coverage %.2f", coverage)
        return None

    arousal_delta = _mean(late_arousal) - _mean(early_arousal)
    valence_delta = _mean(late_valence) - _mean(early_valence)
    rising = arousal_delta >= t["arousal_delta"]
    falling = valence_delta <= t["valence_delta"]
    if not (rising or falling):
        return None

    if not admit(state, ctx, FRUSTRATION, COOLDOWNS["frustration_trend"]):
        return None

    name = ctx.participant_name()
    if rising and falling:
        severity = SEVERITY_WARNING
        message = "%s: indícios de frustração crescente." % name
    else:
        severity = SEVERITY_INFO
        message = "%s: possível frustração (%s)." % (name, "energia aumentando" if rising else "tom diminuindo")

    return build_event(
        ctx,
        FRUSTRATION,
        severity,
        now - window_ms,
        message,
        ["Reduza o ritmo e cheque entendimento", "Valide objeções antes de avançar"],
        {
            "arousal_ema": finite(state.ema.arousal),
            "valence_ema": finite(state.ema.valence),
            "speech_coverage": coverage,
            "arousal_delta": arousal_delta,
            "valence_delta": valence_delta,
        },
    )


def detect_post_interruption(state: ParticipantState, ctx: DetectionContext) -> Optional[FeedbackEvent]:
    """
    Check pending interruption candidates of the meeting.

    A candidate younger than window_min is kept for later; one older than
    window_max expires. In between, a valence drop of at least valence_delta
    (with the interrupted participant still speaking) fires on their behalf.
    """
    if ctx.get_post_interruption_candidates is None:
        return None
    candidates = ctx.get_post_interruption_candidates(ctx.meeting_id) or []
    if not candidates:
        return None

    t = METASTATES["post_interruption"]
    now = ctx.now
    remaining: List[Dict[str, Any]] = []
    event = None

    for index, rec in enumerate(candidates):
        age = now - rec["ts"]
        if age < t["window_min"]:
            remaining.append(rec)
            continue
        if age > t["window_max"]:
            continue

        interrupted_id = rec["interrupted_id"]
        target = ctx.get_participant_state(ctx.meeting_id, interrupted_id) if ctx.get_participant_state else None
        before = finite(rec.get("valence_before"))
        after = finite(target.ema.valence) if target is not None else None
        if after is None or before is None:
            remaining.append(rec)
            continue

        stats = ctx.window(target, now, WINDOWS["long"])
        coverage = stats.speech_coverage or 0.0
        if after - before > t["valence_delta"] or coverage < t["min_coverage"]:
            remaining.append(rec)
            continue

        target_ctx = ctx.with_participant(interrupted_id)
        if oscillating(target, target_ctx, POST_INTERRUPTION):
            remaining.append(rec)
            continue
        if not admit(target, target_ctx, POST_INTERRUPTION, COOLDOWNS[POST_INTERRUPTION]):
            remaining.append(rec)
            continue

        event = build_event(
            target_ctx,
            POST_INTERRUPTION,
            SEVERITY_WARNING,
            rec["ts"],
            "%s: queda de ânimo após interrupção." % target_ctx.participant_name(),
            ["Convide a concluir a ideia interrompida", "Garanta espaço de fala"],
            {"valence_ema": after, "valence_before": before, "speech_coverage": coverage},
        )
        remaining.extend(candidates[index + 1:])
        break

    if ctx.update_post_interruption_candidates is not None:
        ctx.update_post_interruption_candidates(ctx.meeting_id, remaining)
    return event


def detect_polarization(state: ParticipantState, ctx: DetectionContext) -> Optional[FeedbackEvent]:
    """Group split into positive and negative valence camps (hosts excluded)."""
    t = METASTATES["polarization"]
    if len(meeting_states(ctx)) < t["min_participants"]:
        return None

    now = ctx.now
    window_ms = WINDOWS["long"]
    negative: List[float] = []
    positive: List[float] = []
    for _pid, st in meeting_states(ctx, skip_hosts=True):
        coverage = ctx.window(st, now, window_ms).speech_coverage
        if coverage is None or coverage < GATES["meta"]:
            continue
        v = finite(st.ema.valence)
        if v is None:
            continue
        if v <= t["valence_negative"]:
            negative.append(v)
        if v >= t["valence_positive"]:
            positive.append(v)

    if not negative or not positive:
        return None
    neg_mean, pos_mean = _mean(negative), _mean(positive)
    diff = pos_mean - neg_mean
    if diff < t["difference"]:
        return None

    if not admit_meeting(ctx, POLARIZATION, COOLDOWNS[POLARIZATION]):
        return None

    significant = len(negative) >= 2 and len(positive) >= 2
    severity = SEVERITY_WARNING if diff >= 0.5 and significant else SEVERITY_INFO
    if severity == SEVERITY_WARNING:
        message = "Polarização emocional no grupo (opiniões muito divergentes)."
    else:
        message = "Polarização emocional leve detectada no grupo."
    return build_event(
        ctx,
        POLARIZATION,
        severity,
        now - window_ms,
        message,
        ["Reconheça pontos de ambos os lados", "Estabeleça objetivos comuns antes de decidir"],
        {
            "valence_ema": round((pos_mean + neg_mean) / 2, 3),
            "difference": round(diff, 3),
            "positive_count": len(positive),
            "negative_count": len(negative),
        },
        participant_id=GROUP_PARTICIPANT,
    )


DETECTORS = [detect_frustration_trend, detect_post_interruption, detect_polarization]


def run(state: ParticipantState, ctx: DetectionContext) -> Optional[FeedbackEvent]:
    """Meta-state layer: frustration trend, post-interruption, polarization."""
    return run_in_order(DETECTORS, state, ctx)
