"""
Default message contextualizer.

Rewrites the wording of an already-decided event using recent history and
the relative intensity of a competing emotion. It only touches message and
tips; type, severity and metadata are fixed before it runs.
"""

from typing import Any, Dict, Iterable, List, Optional, Tuple

from a2e2.thresholds import CONNECTION, ENGAGEMENT, FRUSTRATION, HOSTILITY, SADNESS, SERENITY
from a2e2.types import RecentEmotionRecord

HISTORY_WINDOW_MS = 60000

_TENSION_TIPS_ENGAGEMENT = ["Considere abordar a tensão sutilmente", "Mantenha o tom positivo mas seja sensível"]
_TENSION_TIPS_SERENITY = ["Considere elevar sutilmente o humor", "Mantenha a calma mas seja empático"]
_TENSION_TIPS_CONNECTION = [
    "Considere abordar a tensão com empatia",
    "Mantenha o ambiente acolhedor mas seja sensível",
]

# (signal type, recent types that trigger it, (needle, replacement) pairs tried in order)
_HISTORY_REWRITES: List[Tuple[str, Tuple[str, ...], Tuple[Tuple[str, str], ...]]] = [
    (
        ENGAGEMENT,
        (HOSTILITY,),
        (("O grupo parece engajado.", "O grupo parece engajado após o momento anterior."),),
    ),
    (
        SERENITY,
        (HOSTILITY, FRUSTRATION),
        (
            ("tranquilidade detectada", "tranquilidade detectada. O ambiente parece estar se acalmando"),
            ("calma detectada", "calma detectada. O ambiente parece estar se acalmando"),
        ),
    ),
    (
        SADNESS,
        (ENGAGEMENT,),
        (
            ("tristeza detectada", "tristeza detectada. O grupo parece ter perdido o engajamento anterior"),
            ("desanimado", "desanimado após o engajamento anterior"),
        ),
    ),
]

_CONNECTION_PHRASES = (
    "conexão emocional detectada",
    "vínculo profundo detectado",
    "carinho leve detectado",
    "compaixão detectada",
    "sofrimento empático detectado",
)


def has_recent_emotion(
    records: Optional[Iterable[RecentEmotionRecord]],
    signal_type: str,
    window_ms: int = HISTORY_WINDOW_MS,
    now: int = 0,
) -> bool:
    if not records:
        return False
    cutoff = now - window_ms
    return any(r.type == signal_type and r.ts >= cutoff for r in records)


def _rewrite_by_history(message: str, signal_type: str, records, now: int) -> str:
    for target, triggers, replacements in _HISTORY_REWRITES:
        if target != signal_type:
            continue
        if not any(has_recent_emotion(records, t, HISTORY_WINDOW_MS, now) for t in triggers):
            return message
        for needle, replacement in replacements:
            if needle in message:
                return message.replace(needle, replacement, 1)
    return message


def _rewrite_by_intensity(message: str, signal_type: str, intensity: Optional[float]) -> Tuple[str, List[str]]:
    if intensity is None or not (0.6 <= intensity <= 0.8):
        return message, []
    if signal_type == ENGAGEMENT:
        needle = "ótima energia e clareza! O grupo parece engajado."
        if needle in message:
            return (
                message.replace(needle, needle[:-1] + ", mas há alguma tensão no ambiente."),
                list(_TENSION_TIPS_ENGAGEMENT),
            )
        return message, list(_TENSION_TIPS_ENGAGEMENT)
    if signal_type == SERENITY:
        return (
            message.replace("tranquilidade detectada", "tranquilidade detectada, mas há uma leve melancolia"),
            list(_TENSION_TIPS_SERENITY),
        )
    if signal_type == CONNECTION:
        for phrase in _CONNECTION_PHRASES:
            if phrase in message:
                return (
                    message.replace(phrase, phrase + ", mas há alguma tensão no ambiente"),
                    list(_TENSION_TIPS_CONNECTION),
                )
    return message, []


def contextualize_message(
    message: str,
    tips: List[str],
    context: Dict[str, Any],
) -> Tuple[str, List[str]]:
    """
    Adjust wording for recent history and competing-emotion intensity.

    Args:
        message: Rendered base message
        tips: Rendered base tips
        context: {"signal_type", "now", "recent_emotions" (list of
            RecentEmotionRecord), "relative_intensity" (competitor / score)}

    Returns:
        (message, tips); tips may gain extra entries, never lose any.
    """
    signal_type = context.get("signal_type")
    now = int(context.get("now") or 0)
    records = context.get("recent_emotions")
    out_tips = list(tips)
    if records:
        message = _rewrite_by_history(message, signal_type, records, now)
    message, extra = _rewrite_by_intensity(message, signal_type, context.get("relative_intensity"))
    out_tips.extend(extra)
    return message, out_tips
