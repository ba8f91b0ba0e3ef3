"""
Generic signal executor.

Every primary-emotion signal follows the same skeleton and differs only in
data: which channels it reads, how they group into subcategories, which
contextual guards apply, how thresholds adapt and which message to show.
A SignalDescriptor carries that data; run_signal() executes the skeleton:

  1. oscillation guard          7. relative (ratio) guards
  2. window + minimum samples   8. overlap guard on the score
  3. speech-coverage gate       9. cooldown + global cooldown, then set cooldown
  4. smoothed readings         10. dominant channel, severity, template
  5. absolute guards           11. contextualize and emit
  6. scoring vs adjusted thresholds (strict >)

Steps 5-7 are pure, so their relative order does not change the outcome.
Nothing is written before step 9 and nothing after it can reject.
"""

import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Mapping, Optional, Sequence, Tuple

from a2e2.context import DetectionContext
from a2e2.context_adjustments import (
    CONSISTENCY_FACTOR,
    MIN_THRESHOLD,
    NEGATIVE,
    apply_family_floor,
    apply_tension,
    apply_trend,
    has_consistent_trend,
)
from a2e2.guards import OSCILLATION_WINDOW_MS, has_recent_overlap, is_oscillating
from a2e2.thresholds import GATES, GUARDS, MIN_SAMPLES, PRIMARY, WINDOWS
from a2e2.types import (
    SEVERITY_INFO,
    EmotionTrend,
    FeedbackEvent,
    ParticipantState,
    RecentEmotionRecord,
    TensionLevel,
    WindowStats,
    finite,
)

try:
    import config as _config
except Exception:
    _config = None

logger = logging.getLogger(__name__)

DIAGNOSTIC_LOGGING = bool(getattr(_config, "A2E2_DIAGNOSTIC_LOGGING", False))
CONTEXT_HISTORY_MS = 60000

# Channel groups shared by several signals
ACTIVE_HOSTILITY = ("anger", "disgust", "distress", "rage", "contempt")
THREAT = ("terror", "horror", "fear", "anxiety")
HOSTILITY_ALL = ACTIVE_HOSTILITY + THREAT
CORE_HOSTILITY = ("rage", "anger", "contempt")
DEEP_SADNESS = ("despair", "grief", "sorrow")
SADNESS_WITH_DEEP = ("sadness", "despair", "grief", "sorrow")
COMPETING_SADNESS = ("despair", "grief", "sorrow", "sadness", "melancholy")


def diagnostic(signal_type: str, reason: str, *args) -> None:
    """Log why a detector stopped, when diagnostic logging is enabled."""
    if DIAGNOSTIC_LOGGING:
        logger.info("[%s] rejected: " + reason, signal_type, *args)


# ---------------------------------------------------------------------------
# Readings
# ---------------------------------------------------------------------------


class Reading:
    """Read-only view of one participant's smoothed state for one tick."""

    def __init__(
        self,
        state: ParticipantState,
        ctx: DetectionContext,
        stats: Optional[WindowStats] = None,
        recent: Optional[List[RecentEmotionRecord]] = None,
    ):
        self.state = state
        self.ctx = ctx
        self.stats = stats
        self.recent = recent
        self.arousal = finite(state.ema.arousal)
        self.valence = finite(state.ema.valence)
        self._tension: Optional[TensionLevel] = None
        self._trends: Dict[str, EmotionTrend] = {}

    @property
    def now(self) -> int:
        return self.ctx.now

    @property
    def tension(self) -> TensionLevel:
        if self._tension is None:
            self._tension = self.ctx.tension_level(self.state)
        return self._tension

    @property
    def speech_coverage(self) -> Optional[float]:
        return self.stats.speech_coverage if self.stats is not None else None

    def channel(self, name: str) -> float:
        return self.state.ema.emotion(name)

    def peak(self, channels: Sequence[str]) -> float:
        return max((self.channel(c) for c in channels), default=0.0)

    def trend(self, name: str) -> EmotionTrend:
        if name not in self._trends:
            self._trends[name] = self.ctx.emotion_trend(self.state, name)
        return self._trends[name]


@dataclass(frozen=True)
class Subcategory:
    name: str
    channels: Tuple[str, ...]


@dataclass(frozen=True)
class Template:
    text: str
    tips: Tuple[str, ...] = ()


@dataclass
class Assessment:
    """Scores and adjusted thresholds of one signal for one tick."""
    score: float
    subscores: Dict[str, float]
    thresholds: Dict[str, float]
    passed: List[str]  # subcategory names, in priority order

    def has(self, subcategory: str) -> bool:
        return subcategory in self.passed

    def subscore(self, subcategory: str) -> float:
        return self.subscores.get(subcategory, 0.0)

    def lead(self) -> Optional[str]:
        """Passed subcategory with the highest score; ties go to priority order."""
        best = None
        for name in self.passed:
            if best is None or self.subscores[name] > self.subscores[best]:
                best = name
        return best


# Guards return True to BLOCK the detection.
AbsoluteGuard = Callable[[Reading], bool]
RelativeGuard = Callable[[Reading, Assessment], bool]
ThresholdRule = Callable[[Reading, str, float], float]
SeverityRule = Callable[[Reading, Assessment, Optional[str]], str]


@dataclass
class SignalDescriptor:
    """Declarative definition of one primary-emotion signal."""
    type: str
    subcategories: Tuple[Subcategory, ...]  # message-priority order
    base_thresholds: Mapping[str, float]
    cooldown_ms: int
    absolute_guards: Tuple[AbsoluteGuard, ...] = ()
    relative_guards: Tuple[RelativeGuard, ...] = ()
    threshold: Optional[ThresholdRule] = None
    consistency_channels: Tuple[str, ...] = ()
    family_floor: Optional[float] = None
    severity: Optional[SeverityRule] = None
    templates: Mapping[str, Template] = field(default_factory=dict)
    default_template: Template = Template("estado detectado.")
    # Optional override of the template key (e.g. intensity-dependent wording)
    choose_template: Optional[Callable[[Reading, Assessment, Optional[str]], Optional[str]]] = None
    competitor: Optional[Callable[[Reading, Assessment], float]] = None
    window_ms: int = WINDOWS["long"]
    min_samples: int = MIN_SAMPLES["primary"]
    min_speech: float = GATES["primary"]

    @property
    def channels(self) -> Tuple[str, ...]:
        out: List[str] = []
        for sub in self.subcategories:
            out.extend(c for c in sub.channels if c not in out)
        return tuple(out)


# ---------------------------------------------------------------------------
# Guard and threshold building blocks
# ---------------------------------------------------------------------------


def above(channels: Sequence[str], limit: float, inclusive: bool = False) -> AbsoluteGuard:
    """Block when the strongest of the channels exceeds limit."""
    channels = tuple(channels)

    def guard(r: Reading) -> bool:
        value = r.peak(channels)
        return value >= limit if inclusive else value > limit

    guard.__name__ = "above(%s, %s)" % ("/".join(channels), limit)
    return guard


def all_of(*guards: AbsoluteGuard) -> AbsoluteGuard:
    """Block only when every guard would block (combination guards)."""

    def guard(r: Reading) -> bool:
        return all(g(r) for g in guards)

    guard.__name__ = "all_of(%s)" % ", ".join(g.__name__ for g in guards)
    return guard


def arousal_below(limit: float) -> AbsoluteGuard:
    def guard(r: Reading) -> bool:
        return r.arousal is not None and r.arousal < limit

    guard.__name__ = "arousal<%s" % limit
    return guard


def arousal_above(limit: float) -> AbsoluteGuard:
    def guard(r: Reading) -> bool:
        return r.arousal is not None and r.arousal > limit

    guard.__name__ = "arousal>%s" % limit
    return guard


def valence_above(limit: float) -> AbsoluteGuard:
    def guard(r: Reading) -> bool:
        return r.valence is not None and r.valence > limit

    guard.__name__ = "valence>%s" % limit
    return guard


def valence_below(limit: float, inclusive: bool = False) -> AbsoluteGuard:
    def guard(r: Reading) -> bool:
        if r.valence is None:
            return False
        return r.valence <= limit if inclusive else r.valence < limit

    guard.__name__ = "valence<%s%s" % ("=" if inclusive else "", limit)
    return guard


def outweighed(competitor: float, basis: float, ratio: float) -> bool:
    return competitor > basis * ratio


def tension_rule(rule: Optional[str] = None, trend: bool = False) -> ThresholdRule:
    """Threshold rule: signal-specific tension step, then the negative trend step."""

    def adjust(r: Reading, channel: str, base: float) -> float:
        value = apply_tension(base, r.tension, rule) if rule else base
        if trend:
            value = apply_trend(value, base, r.trend(channel), NEGATIVE)
        return value

    return adjust


def rule_by_channel(rules: Mapping[str, ThresholdRule], default: ThresholdRule) -> ThresholdRule:
    def adjust(r: Reading, channel: str, base: float) -> float:
        return rules.get(channel, default)(r, channel, base)

    return adjust


def severity_constant(level: str) -> SeverityRule:
    def grade(r: Reading, a: Assessment, dominant: Optional[str]) -> str:
        return level

    return grade


# ---------------------------------------------------------------------------
# Executor
# ---------------------------------------------------------------------------


def adjusted_thresholds(signal: SignalDescriptor, reading: Reading, consistent: bool) -> Dict[str, float]:
    """Per-channel thresholds: rule, consistency bonus, family floor, absolute floor."""
    out = {}
    for channel in signal.channels:
        base = signal.base_thresholds[channel]
        value = signal.threshold(reading, channel, base) if signal.threshold else base
        if consistent and channel in signal.consistency_channels:
            value *= CONSISTENCY_FACTOR
        if signal.family_floor is not None:
            value = apply_family_floor(value, base, signal.family_floor)
        out[channel] = max(value, MIN_THRESHOLD)
    return out


def assess(signal: SignalDescriptor, reading: Reading, thresholds: Dict[str, float]) -> Assessment:
    subscores: Dict[str, float] = {}
    passed: List[str] = []
    for sub in signal.subcategories:
        subscores[sub.name] = reading.peak(sub.channels)
        if any(reading.channel(c) > thresholds[c] for c in sub.channels):
            passed.append(sub.name)
    score = max(subscores.values(), default=0.0)
    return Assessment(score=score, subscores=subscores, thresholds=thresholds, passed=passed)


def dominant_channel(signal: SignalDescriptor, reading: Reading, assessment: Assessment) -> Optional[str]:
    """
    The channel that names the message: above its own threshold, equal to
    the lead subcategory's score, and strictly above every sibling.
    """
    lead = assessment.lead()
    if lead is None:
        return None
    sub = next(s for s in signal.subcategories if s.name == lead)
    lead_score = assessment.subscores[lead]
    for channel in sub.channels:
        value = reading.channel(channel)
        if value <= assessment.thresholds[channel] or value != lead_score:
            continue
        if all(value > reading.channel(other) for other in sub.channels if other != channel):
            return channel
    return None


def pick_template(
    signal: SignalDescriptor, reading: Reading, assessment: Assessment, dominant: Optional[str]
) -> Template:
    if signal.choose_template is not None:
        key = signal.choose_template(reading, assessment, dominant)
        if key is not None and key in signal.templates:
            return signal.templates[key]
    if dominant is not None and dominant in signal.templates:
        return signal.templates[dominant]
    lead = assessment.lead()
    if lead is not None and lead in signal.templates:
        return signal.templates[lead]
    return signal.default_template


def run_signal(
    signal: SignalDescriptor, state: ParticipantState, ctx: DetectionContext
) -> Optional[FeedbackEvent]:
    """
    Run one signal through the shared detection skeleton.

    Args:
        signal: Declarative signal definition
        state: Participant state (read-only except for the cooldown ledger)
        ctx: Capabilities for this tick

    Returns:
        FeedbackEvent, or None when any step rejects.
    """
    now = ctx.now
    recent = ctx.recent_emotions(state, OSCILLATION_WINDOW_MS)
    if is_oscillating(recent, signal.type, OSCILLATION_WINDOW_MS, now):
        diagnostic(signal.type, "oscillation cap")
        return None

    stats = ctx.window(state, now, signal.window_ms)
    if stats.samples_count < signal.min_samples:
        diagnostic(signal.type, "samples %s < %s", stats.samples_count, signal.min_samples)
        return None
    if not state.ema.emotions:
        diagnostic(signal.type, "no emotions")
        return None
    coverage = stats.speech_coverage
    if coverage is None or coverage < signal.min_speech:
        diagnostic(signal.type, "speech coverage %s < %s", coverage, signal.min_speech)
        return None

    reading = Reading(state, ctx, stats, recent)
    for guard in signal.absolute_guards:
        if guard(reading):
            diagnostic(signal.type, "guard %s", getattr(guard, "__name__", guard))
            return None

    consistent = has_consistent_trend(recent, signal.type, GUARDS["consistency_window"], now)
    assessment = assess(signal, reading, adjusted_thresholds(signal, reading, consistent))
    if not assessment.passed:
        diagnostic(signal.type, "score %.3f below thresholds", assessment.score)
        return None

    for guard in signal.relative_guards:
        if guard(reading, assessment):
            diagnostic(signal.type, "relative guard %s", getattr(guard, "__name__", guard))
            return None

    if has_recent_overlap(recent, signal.type, assessment.score, GUARDS["overlap_window"], now):
        diagnostic(signal.type, "recent overlap at score %.3f", assessment.score)
        return None

    if ctx.in_cooldown(state, signal.type, now) or ctx.in_global_cooldown(state, now):
        diagnostic(signal.type, "cooldown")
        return None
    ctx.set_cooldown(state, signal.type, now, signal.cooldown_ms)

    dominant = dominant_channel(signal, reading, assessment)
    severity = signal.severity(reading, assessment, dominant) if signal.severity else SEVERITY_INFO
    template = pick_template(signal, reading, assessment, dominant)

    message = "%s: %s" % (ctx.participant_name(), template.text)
    tips = list(template.tips)
    competing = signal.competitor(reading, assessment) if signal.competitor else 0.0
    message, tips = ctx.contextualize(
        message,
        tips,
        {
            "signal_type": signal.type,
            "now": now,
            "recent_emotions": ctx.recent_emotions(state, CONTEXT_HISTORY_MS),
            "relative_intensity": competing / assessment.score if competing > 0 and assessment.score > 0 else None,
        },
    )

    return FeedbackEvent(
        id=ctx.make_id(),
        type=signal.type,
        severity=severity,
        ts=now,
        meeting_id=ctx.meeting_id,
        participant_id=ctx.participant_id,
        window={"start": stats.start, "end": stats.end},
        message=message,
        tips=tips,
        metadata={
            "valence_ema": reading.valence,
            "arousal_ema": reading.arousal,
            "speech_coverage": coverage,
            "score": assessment.score,
            "dominant": dominant,
            "subcategory": assessment.lead(),
        },
    )


Detector = Callable[[ParticipantState, DetectionContext], Optional[FeedbackEvent]]


def run_in_order(detectors: Sequence[Detector], state, ctx: DetectionContext) -> Optional[FeedbackEvent]:
    """
    Call detectors in priority order and return the first event.

    A detector that raises is logged and skipped; the rest still run.
    """
    for detect in detectors:
        try:
            event = detect(state, ctx)
        except Exception as e:
            logger.warning("A2E2 detector %s failed: %s", getattr(detect, "__name__", detect), e)
            continue
        if event is not None:
            return event
    return None


# ---------------------------------------------------------------------------
# Helpers for hand-written (non-descriptor) detectors
# ---------------------------------------------------------------------------


def has_significant_emotions(state: ParticipantState, limit: Optional[float] = None) -> bool:
    """True when any smoothed emotion exceeds the primary-layer takeover level."""
    limit = PRIMARY["significant_emotion"] if limit is None else limit
    return any((finite(v) or 0.0) > limit for v in state.ema.emotions.values())


def oscillating(state: ParticipantState, ctx: DetectionContext, signal_type: str) -> bool:
    recent = ctx.recent_emotions(state, OSCILLATION_WINDOW_MS)
    if is_oscillating(recent, signal_type, OSCILLATION_WINDOW_MS, ctx.now):
        diagnostic(signal_type, "oscillation cap")
        return True
    return False


def admit(state: ParticipantState, ctx: DetectionContext, signal_type: str, duration_ms: int) -> bool:
    """
    Cooldown step for participant-level signals: both the type's cooldown and
    the global spacing must have elapsed. On success the type's cooldown is set.
    """
    if ctx.in_cooldown(state, signal_type, ctx.now) or ctx.in_global_cooldown(state, ctx.now):
        diagnostic(signal_type, "cooldown")
        return False
    ctx.set_cooldown(state, signal_type, ctx.now, duration_ms)
    return True


def admit_meeting(ctx: DetectionContext, signal_type: str, duration_ms: int) -> bool:
    """Cooldown step for group signals, on the meeting-scoped ledger."""
    if ctx.in_cooldown_meeting is not None and ctx.in_cooldown_meeting(ctx.meeting_id, signal_type, ctx.now):
        diagnostic(signal_type, "meeting cooldown")
        return False
    if ctx.set_cooldown_meeting is not None:
        ctx.set_cooldown_meeting(ctx.meeting_id, signal_type, ctx.now, duration_ms)
    return True


def build_event(
    ctx: DetectionContext,
    signal_type: str,
    severity: str,
    start: int,
    message: str,
    tips: Sequence[str],
    metadata: Optional[Dict] = None,
    participant_id: Optional[str] = None,
) -> FeedbackEvent:
    return FeedbackEvent(
        id=ctx.make_id(),
        type=signal_type,
        severity=severity,
        ts=ctx.now,
        meeting_id=ctx.meeting_id,
        participant_id=ctx.participant_id if participant_id is None else participant_id,
        window={"start": start, "end": ctx.now},
        message=message,
        tips=list(tips),
        metadata=dict(metadata or {}),
    )


HOST_ROLE = "host"
GROUP_PARTICIPANT = "group"


def meeting_states(ctx: DetectionContext, skip_hosts: bool = False) -> List[Tuple[str, ParticipantState]]:
    """(participant_id, state) pairs of the meeting, optionally without hosts."""
    if ctx.get_participants_for_meeting is None or ctx.get_participant_state is None:
        return []
    out = []
    for pid in ctx.get_participants_for_meeting(ctx.meeting_id):
        if skip_hosts and ctx.get_participant_role is not None:
            if ctx.get_participant_role(ctx.meeting_id, pid) == HOST_ROLE:
                continue
        st = ctx.get_participant_state(ctx.meeting_id, pid)
        if st is not None:
            out.append((pid, st))
    return out
