"""
Prosodic signals: loudness, intonation variety, speaking pace, energy and
tone, plus the energy of the group as a whole.

These read the smoothed arousal/valence and loudness rather than emotion
channels. Arousal and valence step aside whenever a primary emotion is
significant, since the primary layer describes the same moment better.
"""

import logging
from typing import Optional

import numpy as np

from a2e2.aggregator import has_spoken, samples_in_window
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
    ENGAGEMENT,
    GATES,
    GROUP_ENERGY,
    LOW_ENGAGEMENT,
    MIN_SAMPLES,
    MONOTONY,
    NEGATIVE_TREND,
    PACE_FAST,
    PACE_SLOW,
    PROSODY,
    VOLUME_HIGH,
    VOLUME_LOW,
    WINDOWS,
)
from a2e2.types import (
    SEVERITY_CRITICAL,
    SEVERITY_INFO,
    SEVERITY_WARNING,
    FeedbackEvent,
    ParticipantState,
    WindowStats,
    finite,
)

logger = logging.getLogger(__name__)


def _gated_window(
    state: ParticipantState,
    ctx: DetectionContext,
    signal_type: str,
    window_ms: int,
    min_samples: int,
    min_coverage: float,
) -> Optional[WindowStats]:
    """Window stats when both the sample floor and the coverage gate pass."""
    stats = ctx.window(state, ctx.now, window_ms)
    if stats.samples_count < min_samples:
        diagnostic(signal_type, "samples %d < %d", stats.samples_count, min_samples)
        return None
    coverage = stats.speech_coverage
    if coverage is None or coverage < min_coverage:
        diagnostic(signal_type, "coverage %s < %.2f", coverage, min_coverage)
        return None
    return stats


def detect_volume(state: ParticipantState, ctx: DetectionContext) -> Optional[FeedbackEvent]:
    """Input level too low or too high, with a critical tier on each side."""
    t = PROSODY["volume"]
    window_ms = WINDOWS["short"]
    stats = _gated_window(state, ctx, VOLUME_LOW, window_ms, MIN_SAMPLES["volume"], GATES["volume"])
    if stats is None:
        return None

    level = finite(stats.mean_loudness_db)
    if level is None:
        level = finite(state.ema.rms)
    if level is None:
        return None

    name = ctx.participant_name()
    if level <= t["low"]:
        signal_type = VOLUME_LOW
        if level <= t["low_critical"]:
            severity = SEVERITY_CRITICAL
            message = "%s: quase inaudível (%.1f dBFS); aumente o ganho imediatamente." % (name, level)
            tips = ["Aumente o ganho de entrada", "Aproxime-se do microfone"]
        else:
            severity = SEVERITY_WARNING
            message = "%s: volume baixo (%.1f dBFS); aproxime-se do microfone." % (name, level)
            tips = ["Verifique entrada de áudio", "Desative redução agressiva de ruído"]
    elif level >= t["high"]:
        signal_type = VOLUME_HIGH
        if level >= t["high_critical"]:
            severity = SEVERITY_CRITICAL
            message = "%s: áudio clipando (%.1f dBFS); reduza o ganho." % (name, level)
        else:
            severity = SEVERITY_WARNING
            message = "%s: volume alto (%.1f dBFS); afaste-se um pouco." % (name, level)
        tips = ["Reduza sensibilidade do microfone"]
    else:
        return None

    if oscillating(state, ctx, signal_type):
        return None
    if not admit(state, ctx, signal_type, COOLDOWNS["volume"]):
        return None

    return build_event(
        ctx,
        signal_type,
        severity,
        ctx.now - window_ms,
        message,
        tips,
        {"rms_dbfs": level, "speech_coverage": stats.speech_coverage},
    )


def detect_monotony(state: ParticipantState, ctx: DetectionContext) -> Optional[FeedbackEvent]:
    """
    Flat intonation: low population standard deviation of per-sample arousal.

    Only considered while the smoothed energy sits in the neutral band; very
    high or very low energy is handled by detect_arousal.
    """
    t = PROSODY["monotony"]
    window_ms = WINDOWS["long"]
    samples = samples_in_window(state, ctx.now, window_ms)
    speech = sum(1 for s in samples if s.is_speech)
    values = [v for v in (finite(s.arousal) for s in samples) if v is not None]
    if speech < MIN_SAMPLES["prosodic"] or len(values) < MIN_SAMPLES["prosodic"]:
        return None
    coverage = speech / len(samples)
    if coverage < GATES["prosodic"]:
        return None

    arousal = finite(state.ema.arousal)
    if arousal is not None and (arousal >= t["arousal_max"] or arousal <= t["arousal_min"]):
        return None

    stdev = float(np.std(values))
    if stdev >= t["stdev_info"]:
        return None
    if oscillating(state, ctx, MONOTONY):
        return None
    if not admit(state, ctx, MONOTONY, COOLDOWNS[MONOTONY]):
        return None

    name = ctx.participant_name()
    if stdev < t["stdev_warning"]:
        severity = SEVERITY_WARNING
        message = "%s: fala monótona; varie entonação e pausas." % name
    else:
        severity = SEVERITY_INFO
        message = "%s: pouca variação de entonação." % name
    return build_event(
        ctx,
        MONOTONY,
        severity,
        ctx.now - window_ms,
        message,
        ["Use pausas e ênfases para destacar pontos"],
        {"arousal_stdev": round(stdev, 4), "arousal_ema": arousal, "speech_coverage": coverage},
    )


def _speech_segments(samples, start: int, now: int):
    """
    Walk the window's speech/silence runs.

    Returns (switches, speech_segments, longest_silence_s). A run still open
    at the end of the window is closed at now.
    """
    switches = 0
    segments = 0
    longest = 0.0
    current = None
    current_start = start
    last_ts = start
    for s in samples:
        gap = (s.timestamp - last_ts) / 1000.0
        if current is False and gap > longest:
            longest = gap
        if current is None:
            current = s.is_speech
            current_start = last_ts = s.timestamp
            continue
        if s.is_speech != current:
            switches += 1
            run_s = (s.timestamp - current_start) / 1000.0
            if current:
                segments += 1
            else:
                longest = max(longest, run_s)
            current = s.is_speech
            current_start = s.timestamp
        last_ts = s.timestamp

    tail = (now - current_start) / 1000.0
    if current:
        segments += 1
    elif current is False:
        longest = max(longest, tail)
    return switches, segments, longest


def detect_pace(state: ParticipantState, ctx: DetectionContext) -> Optional[FeedbackEvent]:
    """
    Speaking pace from speech/silence alternation in the long window.

    Many short speech bursts read as hurried speech; a long silence with very
    little speech reads as a halting pace. Energy that contradicts the reading
    (hurried but flat, halting but excited) suppresses it.
    """
    t = PROSODY["pace"]
    window_ms = WINDOWS["long"]
    now = ctx.now
    start = now - window_ms
    samples = samples_in_window(state, now, window_ms)
    if len(samples) < t["min_samples"] or not has_spoken(state):
        return None

    switches, segments, longest = _speech_segments(samples, start, now)
    switches_per_sec = switches / (window_ms / 1000.0)
    coverage = ctx.window(state, now, window_ms).speech_coverage or 0.0

    fast = switches_per_sec >= t["fast_switches_per_sec"] and segments >= t["fast_min_segments"]
    slow = longest >= t["slow_longest_silence_s"] and coverage < t["slow_max_coverage"]
    if not fast and not slow:
        return None
    if fast and slow:
        diagnostic(PACE_FAST, "hurried and halting at once")
        return None

    arousal = finite(state.ema.arousal)
    if arousal is not None:
        if fast and arousal <= PROSODY["arousal"]["low"]:
            diagnostic(PACE_FAST, "arousal %.2f contradicts fast pace", arousal)
            return None
        if slow and arousal >= PROSODY["arousal"]["high"]:
            diagnostic(PACE_SLOW, "arousal %.2f contradicts slow pace", arousal)
            return None

    name = ctx.participant_name()
    if fast:
        signal_type = PACE_FAST
        if switches_per_sec >= t["fast_warning"]:
            severity = SEVERITY_WARNING
            message = "%s: ritmo acelerado; desacelere para melhor entendimento." % name
        else:
            severity = SEVERITY_INFO
            message = "%s: ritmo rápido; considere pausas curtas." % name
        tips = ["Faça pausas para respiração", "Enuncie com clareza"]
    else:
        signal_type = PACE_SLOW
        if longest >= t["slow_warning_s"]:
            severity = SEVERITY_WARNING
            message = "%s: pausas muito longas (≥%.1fs); tente manter um ritmo mais constante." % (name, longest)
        else:
            severity = SEVERITY_INFO
            message = "%s: ritmo lento; considere reduzir pausas longas." % name
        tips = ["Reduza pausas longas", "Mantenha frases mais curtas"]

    if not admit(state, ctx, signal_type, COOLDOWNS[signal_type]):
        return None

    return build_event(
        ctx,
        signal_type,
        severity,
        start,
        message,
        tips,
        {
            "switches_per_sec": round(switches_per_sec, 2),
            "speech_segments": segments,
            "longest_silence_s": round(longest, 2),
            "speech_coverage": coverage,
        },
    )


def detect_arousal(state: ParticipantState, ctx: DetectionContext) -> Optional[FeedbackEvent]:
    """High energy (enthusiasm or stress, by tone) or low energy."""
    if has_significant_emotions(state):
        return None
    arousal = finite(state.ema.arousal)
    if arousal is None:
        return None

    t = PROSODY["arousal"]
    window_ms = WINDOWS["long"]
    stats = _gated_window(state, ctx, LOW_ENGAGEMENT, window_ms, MIN_SAMPLES["prosodic"], GATES["prosodic"])
    if stats is None:
        return None

    valence = finite(state.ema.valence)
    name = ctx.participant_name()

    if arousal >= t["high"]:
        if valence is not None and valence > 0:
            signal_type = ENGAGEMENT
            if arousal >= t["high_warning"]:
                severity = SEVERITY_WARNING
                message = "%s: energia muito alta; canalize em próximos passos." % name
            else:
                severity = SEVERITY_INFO
                message = "%s: entusiasmo alto; ótimo momento para direcionar ações." % name
            tips = ["Direcione para decisões e próximos passos"]
        else:
            signal_type = NEGATIVE_TREND
            severity = SEVERITY_WARNING
            message = "%s: sinais de estresse (energia alta com tom negativo)." % name
            tips = ["Reduza o ritmo", "Valide objeções antes de avançar"]
        duration = COOLDOWNS["arousal_warning" if severity == SEVERITY_WARNING else "arousal"]
    elif arousal <= t["low_info"]:
        signal_type = LOW_ENGAGEMENT
        if arousal <= t["low"]:
            severity = SEVERITY_WARNING
            message = "%s: engajamento baixo (tom desanimado)." % name
            duration = COOLDOWNS["arousal_low_warning"]
        else:
            severity = SEVERITY_INFO
            message = "%s: energia baixa. Um pouco mais de ênfase pode ajudar." % name
            duration = COOLDOWNS["arousal"]
        tips = ["Fale com mais variação de tom", "Projete a voz mais próxima do microfone"]
    else:
        return None

    if oscillating(state, ctx, signal_type):
        return None
    if not admit(state, ctx, signal_type, duration):
        return None

    return build_event(
        ctx,
        signal_type,
        severity,
        ctx.now - window_ms,
        message,
        tips,
        {"arousal_ema": arousal, "valence_ema": valence, "speech_coverage": stats.speech_coverage},
    )


def detect_valence(state: ParticipantState, ctx: DetectionContext) -> Optional[FeedbackEvent]:
    """Negative tone; the severe tier is worded by the current energy."""
    if has_significant_emotions(state):
        return None
    valence = finite(state.ema.valence)
    if valence is None:
        return None

    t = PROSODY["valence"]
    if valence > t["negative_info"]:
        return None

    window_ms = WINDOWS["long"]
    stats = _gated_window(state, ctx, NEGATIVE_TREND, window_ms, MIN_SAMPLES["prosodic"], GATES["prosodic"])
    if stats is None:
        return None
    if oscillating(state, ctx, NEGATIVE_TREND):
        return None

    arousal = finite(state.ema.arousal)
    name = ctx.participant_name()
    if valence <= t["negative_severe"]:
        severity = SEVERITY_WARNING
        duration = COOLDOWNS["valence_severe"]
        if arousal is not None and arousal >= PROSODY["arousal"]["high"]:
            message = "%s: sinais de tensão (tom negativo com energia alta)." % name
            tips = ["Reduza o ritmo", "Valide objeções antes de avançar", "Mostre concordância antes de divergir"]
        elif arousal is not None and arousal <= PROSODY["arousal"]["low_info"]:
            message = "%s: sinais de desânimo (tom negativo com energia baixa)." % name
            tips = ["Mostre concordância antes de divergir", "Evite frases muito secas", "Fale com mais variação de tom"]
        else:
            message = "%s: tom negativo perceptível. Considere suavizar a comunicação." % name
            tips = ["Mostre concordância antes de divergir", "Evite frases muito secas"]
    else:
        severity = SEVERITY_INFO
        duration = COOLDOWNS["valence"]
        message = "%s: tendência emocional negativa. Tente um tom mais positivo." % name
        tips = ["Mostre concordância antes de divergir", "Evite frases muito secas"]

    if not admit(state, ctx, NEGATIVE_TREND, duration):
        return None

    return build_event(
        ctx,
        NEGATIVE_TREND,
        severity,
        ctx.now - window_ms,
        message,
        tips,
        {"valence_ema": valence, "arousal_ema": arousal, "speech_coverage": stats.speech_coverage},
    )


def detect_group_energy(state: ParticipantState, ctx: DetectionContext) -> Optional[FeedbackEvent]:
    """Mean smoothed arousal of the speaking non-host participants is low."""
    t = PROSODY["group_energy"]
    window_ms = WINDOWS["long"]
    values = []
    for _pid, st in meeting_states(ctx, skip_hosts=True):
        stats = ctx.window(st, ctx.now, window_ms)
        if stats.samples_count == 0:
            continue
        coverage = stats.speech_coverage
        if coverage is None or coverage < GATES["meta"]:
            continue
        arousal = finite(st.ema.arousal)
        if arousal is not None:
            values.append(arousal)

    if not values:
        return None
    mean = float(np.mean(values))
    if mean > t["low"]:
        return None
    if not admit_meeting(ctx, GROUP_ENERGY, COOLDOWNS[GROUP_ENERGY]):
        return None

    if mean <= t["low_warning"]:
        severity = SEVERITY_WARNING
        message = "Energia do grupo baixa. Considere perguntas diretas ou mudança de dinâmica."
    else:
        severity = SEVERITY_INFO
        message = "Energia do grupo em queda. Estimule participação."
    return build_event(
        ctx,
        GROUP_ENERGY,
        severity,
        ctx.now - window_ms,
        message,
        ["Convide pessoas específicas a opinar", "Introduza uma pergunta aberta"],
        {"arousal_ema": round(mean, 3), "participants": len(values)},
        participant_id=GROUP_PARTICIPANT,
    )


DETECTORS = [
    detect_volume,
    detect_monotony,
    detect_pace,
    detect_arousal,
    detect_valence,
    detect_group_energy,
]


def run(state: ParticipantState, ctx: DetectionContext) -> Optional[FeedbackEvent]:
    """Prosody layer: volume, monotony, pace, arousal, valence, group energy."""
    return run_in_order(DETECTORS, state, ctx)
