"""
Primary-emotion signals.

Each signal is a SignalDescriptor run by a2e2.detector.run_signal(). They are
evaluated in the priority order of DETECTORS; the first to fire wins the tick.
Negative signals come first so a tense moment is never masked by a positive one.

Thresholds and guards are tuned on the smoothed 0-1 confidence scale.
"""

from typing import Optional

from a2e2.context import DetectionContext
from a2e2.detector import (
    ACTIVE_HOSTILITY,
    COMPETING_SADNESS,
    CORE_HOSTILITY,
    DEEP_SADNESS,
    HOSTILITY_ALL,
    SADNESS_WITH_DEEP,
    THREAT,
    Assessment,
    Reading,
    SignalDescriptor,
    Subcategory,
    Template,
    above,
    all_of,
    arousal_above,
    arousal_below,
    outweighed,
    rule_by_channel,
    run_in_order,
    run_signal,
    severity_constant,
    tension_rule,
    valence_above,
    valence_below,
)
from a2e2.thresholds import (
    BOREDOM,
    CONFUSION,
    CONNECTION,
    COOLDOWNS,
    ENGAGEMENT,
    FRUSTRATION,
    HOSTILITY,
    MENTAL_STATE,
    PRIMARY,
    SADNESS,
    SERENITY,
)
from a2e2.types import SEVERITY_INFO, SEVERITY_WARNING, FeedbackEvent, ParticipantState, TensionLevel

POSITIVE_CHANNELS = ("joy", "interest", "enthusiasm", "excitement", "amusement")
SADNESS_SCORE_CHANNELS = ("sadness", "disappointment") + DEEP_SADNESS


def _frustration(r: Reading) -> float:
    return r.channel("frustration")


def _negatives(r: Reading, sadness_channels=SADNESS_SCORE_CHANNELS):
    """(hostility, sadness, frustration) competitor scores."""
    return r.peak(HOSTILITY_ALL), r.peak(sadness_channels), _frustration(r)


# ============================================================================
# HOSTILITY (hostilidade)
# ============================================================================


def _hostility_active_low_energy(r: Reading, a: Assessment) -> bool:
    return a.has("active") and r.arousal is not None and r.arousal < 0.2


def _hostility_threat_low_energy(r: Reading, a: Assessment) -> bool:
    return a.has("threat") and r.arousal is not None and r.arousal < 0.15


def _hostility_positive_tone(r: Reading, a: Assessment) -> bool:
    # Active hostility with positive tone is contradictory; fear can have any tone.
    return a.has("active") and not a.has("threat") and r.valence is not None and r.valence > 0.1


def _hostility_positive_dominates(r: Reading, a: Assessment) -> bool:
    return outweighed(r.peak(POSITIVE_CHANNELS), a.score, 0.4)


def _hostility_positive_anxiety(r: Reading, a: Assessment) -> bool:
    anxiety_only = a.has("threat") and not a.has("active") and r.channel("anxiety") > a.thresholds["anxiety"]
    return anxiety_only and r.valence is not None and r.valence > 0.0


def _hostility_severity(r: Reading, a: Assessment, dominant: Optional[str]) -> str:
    if dominant == "anxiety" and r.channel("anxiety") < 0.15:
        return SEVERITY_INFO
    if any(r.channel(c) > a.thresholds[c] for c in ("terror", "horror", "rage")):
        return SEVERITY_WARNING
    if r.channel("fear") > 0.10 or r.channel("anxiety") > 0.10:
        return SEVERITY_WARNING
    if r.arousal is not None and r.arousal >= 0.3:
        return SEVERITY_WARNING
    return SEVERITY_INFO


def _hostility_template(r: Reading, a: Assessment, dominant: Optional[str]) -> Optional[str]:
    if dominant == "anxiety" and r.channel("anxiety") < 0.15:
        return "anxiety_low"
    return None


HOSTILITY_SIGNAL = SignalDescriptor(
    type=HOSTILITY,
    subcategories=(
        Subcategory("active", ("rage", "contempt", "anger", "disgust", "distress")),
        Subcategory("threat", ("terror", "horror", "fear", "anxiety")),
    ),
    base_thresholds=PRIMARY["hostility"],
    cooldown_ms=COOLDOWNS[HOSTILITY],
    relative_guards=(
        _hostility_active_low_energy,
        _hostility_threat_low_energy,
        _hostility_positive_tone,
        _hostility_positive_dominates,
        _hostility_positive_anxiety,
    ),
    threshold=rule_by_channel(
        {c: tension_rule("threat", trend=True) for c in THREAT},
        tension_rule("hostility", trend=True),
    ),
    consistency_channels=HOSTILITY_ALL,
    family_floor=PRIMARY["hostility_floor"],
    severity=_hostility_severity,
    templates={
        "terror": Template(
            "pânico extremo detectado. Priorize acalmar o ambiente.",
            ("Crie um espaço seguro", "Valide o medo expresso", "Reduza a pressão imediatamente"),
        ),
        "horror": Template(
            "horror detectado. Ambiente precisa de acalmação urgente.",
            ("Crie um espaço seguro", "Valide o sentimento", "Considere fazer uma pausa"),
        ),
        "fear": Template(
            "medo detectado. Considere criar um ambiente mais seguro.",
            ("Valide o medo expresso", "Crie um espaço seguro", "Reduza a pressão"),
        ),
        "anxiety_low": Template(
            "parece haver alguma tensão ou ansiedade. Considere criar um ambiente mais acolhedor.",
            ("Valide a ansiedade", "Reduza a pressão", "Crie um espaço seguro"),
        ),
        "anxiety": Template(
            "ansiedade detectada. Considere reduzir a pressão.",
            ("Valide a ansiedade", "Reduza a pressão", "Crie um ambiente mais acolhedor"),
        ),
        "rage": Template(
            "raiva explosiva detectada. Priorize desescalar a situação.",
            ("Não reaja com raiva", "Respire fundo", "Considere fazer uma pausa"),
        ),
        "contempt": Template(
            "desprezo detectado. Considere validar o ponto do outro.",
            ("Evite julgamentos", "Valide diferentes perspectivas", "Mantenha respeito"),
        ),
    },
    default_template=Template(
        "a conversa esquentou. Considere validar o ponto do outro antes de prosseguir.",
        ("Respire fundo", 'Use frases como "Entendo seu ponto..."', "Evite interrupções agora"),
    ),
    choose_template=_hostility_template,
)


# ============================================================================
# FRUSTRATION (frustracao_crescente)
# ============================================================================

FRUSTRATION_SIGNAL = SignalDescriptor(
    type=FRUSTRATION,
    subcategories=(Subcategory("frustration", ("frustration",)),),
    base_thresholds=PRIMARY["frustration"],
    cooldown_ms=COOLDOWNS[FRUSTRATION],
    threshold=tension_rule(trend=True),
    consistency_channels=("frustration",),
    severity=severity_constant(SEVERITY_WARNING),
    default_template=Template(
        "parece haver um bloqueio ou frustração.",
        ("Reconheça a dificuldade", 'Pergunte: "O que está impedindo nosso progresso?"'),
    ),
)


# ============================================================================
# SADNESS (tristeza)
# ============================================================================

_SADNESS_SEVERE = ("despair", "grief", "shame", "guilt", "embarrassment", "regret")


def _sadness_severity(r: Reading, a: Assessment, dominant: Optional[str]) -> str:
    # Severity cutoffs are absolute, not tension/trend adjusted, except this one step.
    cutoff = 0.12 if r.tension == TensionLevel.HIGH else 0.15
    severity = SEVERITY_WARNING if any(r.channel(c) >= cutoff for c in _SADNESS_SEVERE) else SEVERITY_INFO
    if dominant in ("despair", "grief"):
        return SEVERITY_WARNING if r.channel(dominant) >= 0.15 else SEVERITY_INFO
    if dominant in ("regret", "shame", "guilt", "embarrassment") and severity != SEVERITY_WARNING:
        return SEVERITY_WARNING if r.channel(dominant) >= 0.15 else SEVERITY_INFO
    return severity


SADNESS_SIGNAL = SignalDescriptor(
    type=SADNESS,
    subcategories=(
        Subcategory("deep_loss", ("despair", "grief")),
        Subcategory("isolation", ("loneliness", "melancholy")),
        Subcategory("self_evaluation", ("regret", "shame", "guilt", "embarrassment")),
        Subcategory("direct", ("sorrow", "sadness", "disappointment")),
        Subcategory("judgment", ("disapproval",)),
    ),
    base_thresholds=PRIMARY["sadness"],
    cooldown_ms=COOLDOWNS[SADNESS],
    absolute_guards=(
        valence_above(0.1),
        above(("rage", "contempt", "terror", "horror", "anger", "disgust", "distress", "fear"), 0.10),
        above(("frustration",), 0.15),
    ),
    threshold=rule_by_channel(
        {c: tension_rule("deep_sadness", trend=True) for c in ("grief", "despair")},
        tension_rule(),
    ),
    consistency_channels=("grief", "despair"),
    severity=_sadness_severity,
    templates={
        "despair": Template(
            "desespero detectado. Momento crítico que requer atenção imediata.",
            ("Priorize acolhimento", "Valide o sofrimento profundo", "Considere suporte profissional se apropriado"),
        ),
        "grief": Template(
            "luto detectado. Momento de perda profunda que requer espaço e validação.",
            ("Valide o luto", "Crie espaço para expressão", "Respeite o tempo de processamento"),
        ),
        "loneliness": Template(
            "solidão detectada. Considere criar conexão e validação.",
            ("Crie espaço para conexão", "Valide a solidão", "Ofereça presença e acolhimento"),
        ),
        "melancholy": Template(
            "melancolia detectada. Ambiente de tristeza profunda e reflexiva.",
            ("Valide a melancolia", "Crie espaço para expressão", "Respeite o momento de reflexão"),
        ),
        "regret": Template(
            "arrependimento detectado. Considere criar espaço para expressão e validação.",
            ("Valide o arrependimento", "Evite julgamentos", "Ofereça perspectiva se apropriado"),
        ),
        "shame": Template(
            "vergonha detectada. Ambiente precisa de acolhimento e validação.",
            ("Crie um espaço seguro", "Valide sem julgamento", "Evite minimizar o sentimento"),
        ),
        "guilt": Template(
            "culpa detectada. Considere criar espaço para expressão e validação.",
            ("Valide o sentimento", "Evite julgamentos", "Ofereça perspectiva se apropriado"),
        ),
        "embarrassment": Template(
            "constrangimento detectado. Considere criar um ambiente mais acolhedor.",
            ("Reduza a pressão", "Crie um espaço seguro", "Valide o desconforto"),
        ),
        "sorrow": Template(
            "pesar detectado. Considere validar sentimentos e criar espaço para expressão.",
            ("Valide o pesar", "Crie espaço para diálogo", "Ofereça suporte se apropriado"),
        ),
        "sadness": Template(
            "tristeza detectada. Considere validar sentimentos e criar espaço para expressão.",
            ("Valide a tristeza", "Crie espaço para diálogo", "Ofereça suporte se apropriado"),
        ),
        "disappointment": Template(
            "decepção detectada. Considere validar expectativas e criar espaço para expressão.",
            ("Valide a decepção", "Reconheça expectativas não atendidas", "Crie espaço para diálogo"),
        ),
        "disapproval": Template(
            "desaprovação detectada. Considere explorar diferentes perspectivas.",
            ("Explore diferentes pontos de vista", "Valide preocupações", "Evite polarização"),
        ),
    },
    default_template=Template(
        "tom negativo detectado. Considere validar sentimentos e criar espaço para expressão.",
        ("Valide os sentimentos expressos", "Crie espaço para diálogo", "Considere fazer uma pausa se necessário"),
    ),
)


# ============================================================================
# BOREDOM (tedio)
# ============================================================================

BOREDOM_SIGNAL = SignalDescriptor(
    type=BOREDOM,
    subcategories=(Subcategory("low_energy", ("boredom", "tiredness")),),
    base_thresholds=PRIMARY["boredom"],
    cooldown_ms=COOLDOWNS[BOREDOM],
    absolute_guards=(
        above(("frustration",), 0.05),
        above(("rage", "contempt", "terror", "horror"), 0.10),
        above(("interest",), PRIMARY["boredom"]["interest_low"], inclusive=True),
    ),
    severity=lambda r, a, d: SEVERITY_WARNING if _frustration(r) <= 0.03 else SEVERITY_INFO,
    templates={
        "boredom": Template(
            "tédio detectado. O grupo parece desinteressado.",
            ("Varie a dinâmica", "Engaje de forma diferente", "Considere fazer uma pausa"),
        ),
        "tiredness": Template(
            "cansaço detectado. O grupo parece estar cansado.",
            ("Considere fazer uma pausa", "Reduza o ritmo", "Ofereça um momento de descanso"),
        ),
    },
    default_template=Template(
        "energia baixa detectada. Que tal trazer um novo ponto de vista?",
        ("Mude a entonação", "Faça uma pergunta aberta ao grupo"),
    ),
)


# ============================================================================
# CONFUSION (confusao)
# ============================================================================

CONFUSION_SIGNAL = SignalDescriptor(
    type=CONFUSION,
    subcategories=(Subcategory("uncertainty", ("confusion", "doubt")),),
    base_thresholds=PRIMARY["confusion"],
    cooldown_ms=COOLDOWNS[CONFUSION],
    absolute_guards=(
        valence_above(0.2),
        above(("rage", "contempt", "terror", "horror"), 0.10),
        above(("frustration",), 0.12),
    ),
    severity=lambda r, a, d: SEVERITY_INFO if r.valence is not None and r.valence > 0 else SEVERITY_WARNING,
    templates={
        "confusion": Template(
            "confusão detectada. O grupo parece estar confuso.",
            ("Esclareça pontos confusos", "Faça perguntas abertas", "Valide a confusão"),
        ),
        "doubt": Template(
            "dúvida detectada. O grupo parece ter dúvidas.",
            ("Explore a dúvida", "Valide preocupações", "Ofereça clareza"),
        ),
    },
    default_template=Template(
        "pontos de dúvida detectados. Seria bom checar o entendimento.",
        ('Pergunte: "Isso faz sentido?"', "Ofereça um exemplo prático"),
    ),
)


# ============================================================================
# ENGAGEMENT (entusiasmo_alto)
# ============================================================================


def _engagement_negatives_dominate(r: Reading, a: Assessment) -> bool:
    hostility, sadness, frustration = _negatives(r)
    return (
        outweighed(hostility, a.score, 1.5)
        or outweighed(sadness, a.score, 1.3)
        or outweighed(frustration, a.score, 1.4)
    )


def _engagement_intense_contradicted(r: Reading, a: Assessment) -> bool:
    if not a.has("intense"):
        return False
    basis = a.subscore("intense")
    return any(outweighed(v, basis, 0.8) for v in _negatives(r))


def _engagement_playful_contradicted(r: Reading, a: Assessment) -> bool:
    return a.has("playful") and outweighed(r.peak(HOSTILITY_ALL), a.subscore("playful"), 0.7)


def _engagement_severity(r: Reading, a: Assessment, dominant: Optional[str]) -> str:
    hostility, sadness, frustration = _negatives(r)
    if hostility > 0.03:
        return SEVERITY_INFO
    if outweighed(sadness, a.score, 0.6) or outweighed(frustration, a.score, 0.6):
        return SEVERITY_INFO
    if r.valence is not None and r.valence <= -0.1:
        return SEVERITY_INFO
    if r.arousal is not None and r.arousal < 0.2:
        return SEVERITY_INFO
    return SEVERITY_WARNING


ENGAGEMENT_SIGNAL = SignalDescriptor(
    type=ENGAGEMENT,
    subcategories=(
        Subcategory("moderate", ("enthusiasm", "excitement", "joy", "determination", "interest")),
        Subcategory("intense", ("ecstasy", "triumph", "awe", "admiration")),
        Subcategory("playful", ("amusement", "entrancement")),
    ),
    base_thresholds=PRIMARY["engagement"],
    cooldown_ms=COOLDOWNS[ENGAGEMENT],
    absolute_guards=(
        valence_below(-0.3, inclusive=True),
        arousal_below(0.1),
        above(HOSTILITY_ALL, 0.05),
        above(("grief", "despair"), 0.10),
        above(DEEP_SADNESS, 0.12),
        above(("frustration",), 0.12),
        all_of(above(SADNESS_WITH_DEEP, 0.08), above(("frustration",), 0.08)),
    ),
    relative_guards=(
        _engagement_negatives_dominate,
        _engagement_intense_contradicted,
        _engagement_playful_contradicted,
    ),
    threshold=tension_rule("engagement"),
    severity=_engagement_severity,
    templates={
        "ecstasy": Template(
            "euforia extrema detectada! Momento de alta energia positiva.",
            ("Aproveite o momento de euforia", "Canalize a energia para ações produtivas"),
        ),
        "triumph": Template(
            "sensação de vitória detectada! Momento de celebração.",
            ("Celebre a conquista", "Reconheça o esforço do grupo"),
        ),
        "awe": Template(
            "assombro ou admiração profunda detectada. Momento especial.",
            ("Reconheça o momento especial", "Aproveite para reflexão profunda"),
        ),
        "admiration": Template(
            "admiração detectada. Ambiente de respeito e apreciação.",
            ("Reconheça o que está sendo admirado", "Mantenha o ambiente positivo"),
        ),
        "amusement": Template(
            "humor leve detectado. Ambiente descontraído e positivo.",
            ("Aproveite o momento de leveza", "Mantenha o tom positivo"),
        ),
        "entrancement": Template(
            "absorção profunda detectada. Momento de atenção focada.",
            ("Aproveite o momento de foco", "Evite interrupções desnecessárias"),
        ),
        "enthusiasm": Template(
            "entusiasmo detectado! Energia positiva e motivada.",
            ("Canalize o entusiasmo", "Aproveite para avançar em objetivos"),
        ),
        "excitement": Template(
            "alta excitação detectada! Momento de energia elevada.",
            ("Aproveite a energia", "Direcione para ações produtivas"),
        ),
        "joy": Template(
            "alegria detectada! Ambiente positivo e energizado.",
            ("Mantenha o tom positivo", "Aproveite o momento"),
        ),
        "determination": Template(
            "determinação detectada! Momento de foco e propósito.",
            ("Aproveite a determinação", "Canalize para objetivos claros"),
        ),
    },
    default_template=Template(
        "ótima energia e clareza! O grupo parece engajado.",
        ("Mantenha esse tom", "Aproveite para definir próximos passos"),
    ),
    competitor=lambda r, a: r.peak(HOSTILITY_ALL),
)


# ============================================================================
# SERENITY (serenidade)
# ============================================================================


def _serenity_subcategory_contradicted(r: Reading, a: Assessment) -> bool:
    # Reactive serenity (relief after tension) resists contradiction better than basal calm.
    negatives = _negatives(r, COMPETING_SADNESS)
    if a.has("reactive"):
        return any(outweighed(v, a.subscore("reactive"), 0.8) for v in negatives)
    if a.has("basal"):
        return any(outweighed(v, a.subscore("basal"), 0.6) for v in negatives)
    return False


def _serenity_negatives_dominate(r: Reading, a: Assessment) -> bool:
    hostility, sadness, frustration = _negatives(r, COMPETING_SADNESS)
    return hostility >= a.score or outweighed(sadness, a.score, 0.8) or outweighed(frustration, a.score, 0.6)


SERENITY_SIGNAL = SignalDescriptor(
    type=SERENITY,
    subcategories=(
        Subcategory("basal", ("calmness", "contentment")),
        Subcategory("reactive", ("relief", "satisfaction")),
    ),
    base_thresholds=PRIMARY["serenity"],
    cooldown_ms=COOLDOWNS[SERENITY],
    absolute_guards=(
        arousal_above(0.4),
        valence_below(0.0),
        above(THREAT, 0.04),
        above(CORE_HOSTILITY, 0.04),
        above(("disgust", "distress"), 0.05),
        above(("frustration",), 0.08),
        above(("despair", "grief"), 0.12),
        above(("sorrow",), 0.10),
        above(("sadness", "melancholy"), 0.08),
        all_of(above(SADNESS_WITH_DEEP, 0.08), above(("frustration",), 0.06)),
    ),
    relative_guards=(_serenity_subcategory_contradicted, _serenity_negatives_dominate),
    threshold=tension_rule("serenity"),
    severity=severity_constant(SEVERITY_INFO),
    templates={
        "calmness": Template(
            "calma detectada. Ambiente tranquilo e sereno.",
            ("Aproveite a calma", "Mantenha o ambiente tranquilo", "Respeite o momento de paz"),
        ),
        "contentment": Template(
            "contentamento detectado. Ambiente de satisfação leve e bem-estar.",
            ("Reconheça o contentamento", "Mantenha o tom positivo", "Aproveite o momento"),
        ),
        "relief": Template(
            "alívio detectado. Momento de relaxamento após tensão.",
            ("Reconheça o alívio", "Aproveite o momento de calma", "Mantenha o ambiente positivo"),
        ),
        "satisfaction": Template(
            "satisfação detectada. Ambiente de contentamento e realização.",
            ("Reconheça a satisfação", "Celebre o momento", "Mantenha o tom positivo"),
        ),
    },
    default_template=Template(
        "ambiente tranquilo detectado. Bom momento para reflexão ou síntese.",
        ("Aproveite o momento de calma", "Considere fazer uma síntese do que foi discutido"),
    ),
    competitor=lambda r, a: r.peak(COMPETING_SADNESS),
)


# ============================================================================
# CONNECTION (conexao)
# ============================================================================


def _connection_subcategory_contradicted(r: Reading, a: Assessment) -> bool:
    negatives = _negatives(r, COMPETING_SADNESS)
    if a.has("deep"):
        return any(outweighed(v, a.subscore("deep"), 1.5) for v in negatives)
    if a.has("light"):
        return any(outweighed(v, a.subscore("light"), 1.3) for v in negatives)
    return False


def _connection_negatives_dominate(r: Reading, a: Assessment) -> bool:
    hostility, sadness, frustration = _negatives(r, COMPETING_SADNESS)
    return (
        outweighed(frustration, a.score, 1.4)
        or outweighed(hostility, a.score, 1.3)
        or outweighed(sadness, a.score, 1.2)
    )


CONNECTION_SIGNAL = SignalDescriptor(
    type=CONNECTION,
    subcategories=(
        Subcategory("deep", ("love", "emphatic pain")),
        Subcategory("light", ("affection", "sympathy")),
    ),
    base_thresholds=PRIMARY["connection"],
    cooldown_ms=COOLDOWNS[CONNECTION],
    absolute_guards=(
        valence_below(-0.2),
        arousal_below(0.1),
        arousal_above(0.6),
        above(HOSTILITY_ALL, 0.05),
        above(("frustration",), 0.10),
        above(DEEP_SADNESS, 0.12),
        above(("sadness", "melancholy"), 0.10),
        all_of(above(SADNESS_WITH_DEEP, 0.08), above(("frustration",), 0.08)),
    ),
    relative_guards=(_connection_subcategory_contradicted, _connection_negatives_dominate),
    threshold=tension_rule("connection"),
    severity=severity_constant(SEVERITY_INFO),
    templates={
        "love": Template(
            "vínculo profundo detectado. Momento de conexão emocional intensa.",
            ("Reconheça o vínculo", "Aproveite para fortalecer relacionamentos", "Crie espaço para expressão"),
        ),
        "affection": Template(
            "carinho leve detectado. Ambiente de cuidado e atenção.",
            ("Aproveite o momento de carinho", "Mantenha o ambiente acolhedor", "Valide os sentimentos expressos"),
        ),
        "sympathy": Template(
            "compaixão detectada. Ambiente de empatia e compreensão.",
            ("Reconheça a compaixão", "Valide os sentimentos", "Crie espaço para expressão"),
        ),
        "emphatic pain": Template(
            "sofrimento empático detectado. Momento de conexão através da dor compartilhada.",
            ("Valide o sofrimento", "Crie espaço para expressão", "Ofereça suporte se apropriado"),
        ),
    },
    default_template=Template(
        "conexão emocional detectada. Ambiente propício para diálogo profundo.",
        ("Aproveite o momento de conexão", "Considere explorar temas mais profundos"),
    ),
    competitor=lambda r, a: max(_negatives(r, COMPETING_SADNESS)),
)


# ============================================================================
# MENTAL STATE (estado_mental)
# ============================================================================

_POSITIVE_STATES = ("curiosity", "hope", "tranquility")
_NEUTRAL_STATES = ("focus", "neutral", "interest")


def _positive_mental_state(r: Reading) -> bool:
    return r.channel("curiosity") > 0.09 or r.channel("hope") > 0.10 or r.channel("anticipation") > 0.09


def _mental_state_negatives_dominate(r: Reading, a: Assessment) -> bool:
    negatives = _negatives(r)
    if any(a.has(s) for s in _POSITIVE_STATES):
        return any(outweighed(v, a.score, 1.3) for v in negatives)
    if any(a.has(s) for s in _NEUTRAL_STATES):
        return any(outweighed(v, a.score, 1.4) for v in negatives)
    return False


def _mental_state_positive_contradicted(r: Reading, a: Assessment) -> bool:
    negatives = _negatives(r)
    for sub, ratio in (("curiosity", 0.7), ("hope", 0.8), ("tranquility", 0.9)):
        if a.has(sub) and any(outweighed(v, a.subscore(sub), ratio) for v in negatives):
            return True
    return False


_OBSERVE_TIPS = ("Observe o estado emocional", "Adapte a abordagem conforme necessário")

MENTAL_STATE_SIGNAL = SignalDescriptor(
    type=MENTAL_STATE,
    subcategories=(
        Subcategory("suffering", ("pain",)),
        Subcategory("social", ("awkwardness", "envy")),
        Subcategory("low_energy", ("boredom",)),
        Subcategory("uncertainty", ("confusion", "doubt")),
        Subcategory("curiosity", ("curiosity", "anticipation")),
        Subcategory("hope", ("hope",)),
        Subcategory("tranquility", ("relief", "satisfaction", "calmness", "contentment")),
        Subcategory("interest", ("interest",)),
        Subcategory("focus", ("concentration", "contemplation")),
        Subcategory("insight", ("realization",)),
        Subcategory("pride", ("pride",)),
        Subcategory("nostalgia", ("nostalgia",)),
        Subcategory("motivation", ("desire",)),
        Subcategory("surprise", ("surprise",)),
        Subcategory("neutral", ("neutral",)),
    ),
    base_thresholds=PRIMARY["mental_state"],
    cooldown_ms=COOLDOWNS[MENTAL_STATE],
    absolute_guards=(
        above(ACTIVE_HOSTILITY, 0.10),
        above(THREAT, 0.10),
        above(DEEP_SADNESS, 0.12),
        above(("frustration",), 0.12),
        all_of(_positive_mental_state, above(CORE_HOSTILITY, 0.08)),
        all_of(_positive_mental_state, above(CORE_HOSTILITY, 0.06), above(("frustration",), 0.08)),
        all_of(_positive_mental_state, above(SADNESS_WITH_DEEP, 0.08), above(("frustration",), 0.08)),
        all_of(_positive_mental_state, above(CORE_HOSTILITY, 0.06), above(SADNESS_WITH_DEEP, 0.08)),
        all_of(_positive_mental_state, above(THREAT, 0.08)),
    ),
    relative_guards=(_mental_state_negatives_dominate, _mental_state_positive_contradicted),
    severity=lambda r, a, d: (
        SEVERITY_WARNING if r.channel("pain") >= 0.15 or r.channel("awkwardness") >= 0.12 else SEVERITY_INFO
    ),
    templates={
        "pain": Template(
            "sofrimento detectado. Considere criar espaço para expressão.",
            ("Valide o sofrimento expresso", "Ofereça suporte se apropriado"),
        ),
        "awkwardness": Template(
            "desconforto social detectado. Considere facilitar a interação.",
            ("Crie um ambiente mais acolhedor", "Facilite a participação", "Reduza a pressão"),
        ),
        "envy": Template(
            "inveja detectada. Considere criar espaço para validação.",
            ("Valide sentimentos", "Crie espaço para expressão", "Evite comparações"),
        ),
        "social": Template(
            "desconforto social detectado. Considere facilitar a interação.",
            ("Crie um ambiente mais acolhedor", "Facilite a participação"),
        ),
        "boredom": Template(
            "tédio detectado. Considere variar a dinâmica.",
            ("Varie a dinâmica", "Engaje de forma diferente", "Considere fazer uma pausa"),
        ),
        "confusion": Template(
            "confusão detectada. Considere esclarecer pontos.",
            ("Esclareça pontos confusos", "Faça perguntas abertas", "Valide a confusão"),
        ),
        "doubt": Template(
            "dúvida detectada. Considere explorar e validar.",
            ("Explore a dúvida", "Valide preocupações", "Ofereça clareza"),
        ),
        "curiosity": Template(
            "curiosidade detectada. Bom momento para explorar e aprender.",
            ("Aproveite a curiosidade", "Explore temas interessantes", "Faça perguntas abertas"),
        ),
        "anticipation": Template(
            "antecipação detectada. Ambiente de expectativa positiva.",
            ("Aproveite a antecipação", "Mantenha o engajamento", "Prepare para o que vem"),
        ),
        "hope": Template(
            "esperança detectada. Ambiente positivo e otimista.",
            ("Reconheça a esperança", "Mantenha o tom positivo", "Aproveite o momento"),
        ),
        "relief": Template(
            "alívio detectado. Momento de relaxamento após tensão.",
            ("Reconheça o alívio", "Aproveite o momento de calma", "Mantenha o ambiente positivo"),
        ),
        "satisfaction": Template(
            "satisfação detectada. Ambiente de contentamento.",
            ("Reconheça a satisfação", "Celebre o momento", "Mantenha o tom positivo"),
        ),
        "calmness": Template(
            "calma detectada. Ambiente tranquilo e sereno.",
            ("Aproveite a calma", "Mantenha o ambiente tranquilo", "Respeite o momento"),
        ),
        "contentment": Template(
            "contentamento detectado. Ambiente de satisfação leve.",
            ("Reconheça o contentamento", "Mantenha o tom positivo", "Aproveite o momento"),
        ),
        "interest": Template(
            "interesse detectado. Bom momento para engajamento.",
            ("Aproveite o interesse", "Explore temas relevantes", "Mantenha o engajamento"),
        ),
        "concentration": Template(
            "concentração detectada. Bom momento para trabalho profundo.",
            ("Aproveite o momento de foco", "Evite interrupções desnecessárias", "Respeite o foco"),
        ),
        "contemplation": Template(
            "contemplação detectada. Momento de reflexão profunda.",
            ("Respeite o momento de reflexão", "Evite interrupções", "Aproveite para insights"),
        ),
        "realization": Template(
            "insight ou realização detectada. Considere explorar o momento.",
            ("Explore o insight compartilhado", "Faça perguntas abertas", "Aproveite o momento"),
        ),
        "pride": Template(
            "orgulho ou autoafirmação detectada. Reconheça a conquista.",
            ("Reconheça a conquista", "Celebre o momento", "Valide o orgulho"),
        ),
        "nostalgia": Template(
            "nostalgia detectada. Momento de memória afetiva.",
            ("Valide a nostalgia", "Crie espaço para compartilhar", "Respeite o momento"),
        ),
        "desire": Template(
            "desejo ou motivação detectada. Ambiente de propósito.",
            ("Aproveite a motivação", "Canalize para objetivos", "Mantenha o engajamento"),
        ),
        "surprise": Template(
            "surpresa detectada. Momento de quebra de expectativa.",
            ("Valide a surpresa", "Explore o momento", "Adapte conforme necessário"),
        ),
        "neutral": Template("estado neutro detectado. Ambiente equilibrado.", _OBSERVE_TIPS),
    },
    default_template=Template("estado mental contextual detectado.", _OBSERVE_TIPS),
)


# ============================================================================
# ENTRY POINTS
# ============================================================================

SIGNALS = (
    HOSTILITY_SIGNAL,
    FRUSTRATION_SIGNAL,
    SADNESS_SIGNAL,
    BOREDOM_SIGNAL,
    CONFUSION_SIGNAL,
    ENGAGEMENT_SIGNAL,
    SERENITY_SIGNAL,
    CONNECTION_SIGNAL,
    MENTAL_STATE_SIGNAL,
)


def detect_hostility(state: ParticipantState, ctx: DetectionContext) -> Optional[FeedbackEvent]:
    return run_signal(HOSTILITY_SIGNAL, state, ctx)


def detect_frustration(state: ParticipantState, ctx: DetectionContext) -> Optional[FeedbackEvent]:
    return run_signal(FRUSTRATION_SIGNAL, state, ctx)


def detect_sadness(state: ParticipantState, ctx: DetectionContext) -> Optional[FeedbackEvent]:
    return run_signal(SADNESS_SIGNAL, state, ctx)


def detect_boredom(state: ParticipantState, ctx: DetectionContext) -> Optional[FeedbackEvent]:
    return run_signal(BOREDOM_SIGNAL, state, ctx)


def detect_confusion(state: ParticipantState, ctx: DetectionContext) -> Optional[FeedbackEvent]:
    return run_signal(CONFUSION_SIGNAL, state, ctx)


def detect_engagement(state: ParticipantState, ctx: DetectionContext) -> Optional[FeedbackEvent]:
    return run_signal(ENGAGEMENT_SIGNAL, state, ctx)


def detect_serenity(state: ParticipantState, ctx: DetectionContext) -> Optional[FeedbackEvent]:
    return run_signal(SERENITY_SIGNAL, state, ctx)


def detect_connection(state: ParticipantState, ctx: DetectionContext) -> Optional[FeedbackEvent]:
    return run_signal(CONNECTION_SIGNAL, state, ctx)


def detect_mental_state(state: ParticipantState, ctx: DetectionContext) -> Optional[FeedbackEvent]:
    return run_signal(MENTAL_STATE_SIGNAL, state, ctx)


DETECTORS = [
    detect_hostility,
    detect_frustration,
    detect_sadness,
    detect_boredom,
    detect_confusion,
    detect_engagement,
    detect_serenity,
    detect_connection,
    detect_mental_state,
]


def run(state: ParticipantState, ctx: DetectionContext) -> Optional[FeedbackEvent]:
    """Primary layer: first primary-emotion event in priority order, or None."""
    return run_in_order(DETECTORS, state, ctx)
