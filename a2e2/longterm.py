"""
Long-term behavioral signals: prolonged silence, overlapping speech and
frequent interruptions.

Silence is about one participant over a minute. Overlap and interruptions
look at every participant of the meeting; interruptions also keep the
meeting's overlap history and queue post-interruption candidates for the
meta-state layer.
"""

import logging
from typing import List, Optional

from a2e2.aggregator import has_spoken
from a2e2.context import DetectionContext
from a2e2.detector import (
    GROUP_PARTICIPANT,
    admit,
    admit_meeting,
    build_event,
    diagnostic,
    meeting_states,
    oscillating,
    run_in_order,
)
from a2e2.thresholds import COOLDOWNS, GATES, INTERRUPTIONS, LONGTERM, METASTATES, OVERLAP, SILENCE, WINDOWS
from a2e2.types import SEVERITY_INFO, SEVERITY_WARNING, FeedbackEvent, ParticipantState, finite

logger = logging.getLogger(__name__)

SILENCE_AROUSAL_BLOCK = 0.5
SILENCE_AROUSAL_LOW = 0.2


def _join_names(names: List[str]) -> str:
    return " e ".join(names)


def detect_silence(state: ParticipantState, ctx: DetectionContext) -> Optional[FeedbackEvent]:
    """
    Prolonged silence from someone who has spoken before.

    A level at or below rms_threshold (or no level at all) points to a muted
    or disconnected microphone; otherwise low energy makes it an invitation to
    participate.
    """
    t = LONGTERM["silence"]
    window_ms = t["window_ms"]
    stats = ctx.window(state, ctx.now, window_ms)
    if stats.samples_count < t["min_samples"]:
        return None
    coverage = stats.speech_coverage
    if coverage is None or coverage >= t["speech_coverage"]:
        return None
    if not has_spoken(state):
        return None

    arousal = finite(state.ema.arousal)
    if arousal is not None and arousal >= SILENCE_AROUSAL_BLOCK:
        diagnostic(SILENCE, "arousal %.2f", arousal)
        return None

    rms = finite(stats.mean_loudness_db)
    if rms is None:
        rms = finite(state.ema.rms)

    name = ctx.participant_name()
    if rms is None or rms <= t["rms_threshold"]:
        severity = SEVERITY_WARNING
        level = "N/A" if rms is None else "%.1f" % rms
        message = "%s: sem áudio há 60s (%.1f%% de fala, %s dBFS); microfone pode estar desconectado." % (
            name, coverage * 100, level)
        tips = [
            "Verifique se o microfone está conectado",
            "Cheque as permissões de áudio",
            "Teste o microfone nas configurações do sistema",
        ]
    elif arousal is not None and arousal < SILENCE_AROUSAL_LOW:
        if arousal < 0:
            severity = SEVERITY_WARNING
            message = "%s: silêncio prolongado e energia baixa. Considere convidar à participação." % name
        else:
            severity = SEVERITY_INFO
            message = "%s: silêncio prolongado detectado. Considere convidar à participação." % name
        tips = [
            "Faça uma pergunta direta",
            "Convide a pessoa a compartilhar sua opinião",
            "Mude o tópico brevemente para reengajar",
        ]
    else:
        return None

    if oscillating(state, ctx, SILENCE):
        return None
    if not admit(state, ctx, SILENCE, COOLDOWNS[SILENCE]):
        return None

    return build_event(
        ctx,
        SILENCE,
        severity,
        ctx.now - window_ms,
        message,
        tips,
        {"speech_coverage": coverage, "rms_dbfs": rms, "arousal_ema": arousal},
    )


def detect_overlap(state: ParticipantState, ctx: DetectionContext) -> Optional[FeedbackEvent]:
    """
    Two or more participants speaking in the same window.

    The event is attributed to the current participant when they are among
    the speakers, otherwise to the speaker with the highest coverage.
    """
    t = LONGTERM["overlap"]
    window_ms = WINDOWS["long"]
    speakers = []
    for pid, st in meeting_states(ctx):
        coverage = ctx.window(st, ctx.now, window_ms).speech_coverage
        if coverage is not None and coverage >= t["min_coverage"]:
            speakers.append((pid, st, coverage))
    if len(speakers) < t["min_participants"]:
        return None

    speakers.sort(key=lambda item: item[2], reverse=True)
    target = next((item for item in speakers if item[0] == ctx.participant_id), speakers[0])
    target_id, target_state, target_coverage = target
    target_ctx = ctx.with_participant(target_id)

    if oscillating(target_state, target_ctx, OVERLAP):
        return None
    if not admit(target_state, target_ctx, OVERLAP, COOLDOWNS[OVERLAP]):
        return None

    others = [target_ctx.participant_name(pid) for pid, _st, _cov in speakers if pid != target_id][:2]
    message = "%s (com %s) falando ao mesmo tempo com frequência (%.1f%% de fala)." % (
        target_ctx.participant_name(), _join_names(others), target_coverage * 100)
    return build_event(
        target_ctx,
        OVERLAP,
        SEVERITY_WARNING,
        ctx.now - window_ms,
        message,
        [
            "Combine turnos de fala",
            "Use levantar a mão antes de falar",
            "Aguarde a pessoa terminar antes de começar",
        ],
        {"speech_coverage": target_coverage, "speakers": len(speakers)},
        participant_id=target_id,
    )


def _sample_overlap(ctx: DetectionContext, speaking: List[str], states: dict) -> List[int]:
    """
    Record one overlap sample (throttled) and queue a post-interruption
    candidate for the previous speaker. Returns the pruned history.
    """
    t = LONGTERM["interruptions"]
    now = ctx.now
    history = list(ctx.get_overlap_history(ctx.meeting_id) or [])
    last_at = ctx.get_last_overlap_sample_at(ctx.meeting_id) if ctx.get_last_overlap_sample_at else None

    if len(speaking) >= 2 and (last_at is None or now - last_at >= t["throttle_ms"]):
        if ctx.set_last_overlap_sample_at is not None:
            ctx.set_last_overlap_sample_at(ctx.meeting_id, now)
        history.append(now)
        history = [ts for ts in history if ts >= now - t["window_ms"]]
        if ctx.update_overlap_history is not None:
            ctx.update_overlap_history(ctx.meeting_id, history)
        _queue_candidate(ctx, states)
        return history

    return [ts for ts in history if ts >= now - t["window_ms"]]


def _queue_candidate(ctx: DetectionContext, states: dict) -> None:
    if ctx.get_last_speaker is None or ctx.update_post_interruption_candidates is None:
        return
    interrupted_id = ctx.get_last_speaker(ctx.meeting_id)
    interrupted = states.get(interrupted_id)
    if interrupted is None:
        return
    candidates = list(ctx.get_post_interruption_candidates(ctx.meeting_id) or []) \
        if ctx.get_post_interruption_candidates else []
    candidates.append({
        "ts": ctx.now,
        "interrupted_id": interrupted_id,
        "valence_before": finite(interrupted.ema.valence),
    })
    cap = METASTATES["post_interruption"]["max_candidates"]
    ctx.update_post_interruption_candidates(ctx.meeting_id, candidates[-cap:])


def detect_interruptions(state: ParticipantState, ctx: DetectionContext) -> Optional[FeedbackEvent]:
    """Several overlap samples in the last minute, reported for the group."""
    if ctx.get_overlap_history is None:
        return None
    t = LONGTERM["interruptions"]
    participants = meeting_states(ctx)
    if len(participants) < 2:
        return None

    now = ctx.now
    speaking = []
    for pid, st in participants:
        coverage = ctx.window(st, now, WINDOWS["short"]).speech_coverage
        if coverage is not None and coverage >= t["speaking_coverage"]:
            speaking.append(pid)

    history = _sample_overlap(ctx, speaking, dict(participants))
    if len(history) < t["min_count"]:
        return None
    if not admit_meeting(ctx, INTERRUPTIONS, COOLDOWNS[INTERRUPTIONS]):
        return None

    per_minute = len(history) / (t["window_ms"] / 60000.0)
    severity = SEVERITY_WARNING if per_minute >= t["warning_per_min"] else SEVERITY_INFO

    ranked = []
    for pid, st in participants:
        coverage = ctx.window(st, now, WINDOWS["long"]).speech_coverage or 0.0
        if coverage >= GATES["longterm"]:
            ranked.append((coverage, pid))
    ranked.sort(key=lambda item: item[0], reverse=True)
    names = [ctx.participant_name(pid) for _cov, pid in ranked[:2]]
    who = " (%s)" % _join_names(names) if names else ""

    message = "Interrupções frequentes nos últimos 60s (%.1f por minuto)%s. Combine turnos de fala." % (
        per_minute, who)
    return build_event(
        ctx,
        INTERRUPTIONS,
        severity,
        now - t["window_ms"],
        message,
        [
            "Use levantar a mão antes de falar",
            "Defina ordem de fala",
            "Aguarde a pessoa terminar antes de começar",
            "Use sinais visuais para indicar que quer falar",
        ],
        {"overlap_count": len(history), "per_minute": round(per_minute, 2)},
        participant_id=GROUP_PARTICIPANT,
    )


DETECTORS = [detect_silence, detect_overlap, detect_interruptions]


def run(state: ParticipantState, ctx: DetectionContext) -> Optional[FeedbackEvent]:
    """Long-term layer: silence, overlap, interruptions."""
    return run_in_order(DETECTORS, state, ctx)
