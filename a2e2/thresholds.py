"""
A2E2 threshold table.

Static, versioned configuration for every layer: window lengths, speech
coverage gates, minimum sample floors, guard windows, cooldowns and the base
thresholds of each signal. Detectors read it; nothing writes to it at runtime.
Tension, trend and consistency adjustments are applied on top of these values
by a2e2.context_adjustments.

All durations are milliseconds. Emotion thresholds are on the 0-1 confidence
scale; loudness in dBFS; arousal/valence on -1..1.
"""

from typing import Any, Dict

THRESHOLDS_VERSION = "10.3"

# Signal types (wire values consumed by the UI)
HOSTILITY = "hostilidade"
FRUSTRATION = "frustracao_crescente"
SADNESS = "tristeza"
BOREDOM = "tedio"
CONFUSION = "confusao"
ENGAGEMENT = "entusiasmo_alto"
SERENITY = "serenidade"
CONNECTION = "conexao"
MENTAL_STATE = "estado_mental"
NEGATIVE_TREND = "tendencia_emocional_negativa"
LOW_ENGAGEMENT = "engajamento_baixo"
VOLUME_LOW = "volume_baixo"
VOLUME_HIGH = "volume_alto"
MONOTONY = "monotonia_prosodica"
PACE_FAST = "ritmo_acelerado"
PACE_SLOW = "ritmo_pausado"
GROUP_ENERGY = "energia_grupo_baixa"
POST_INTERRUPTION = "efeito_pos_interrupcao"
POLARIZATION = "polarizacao_emocional"
SILENCE = "silencio_prolongado"
OVERLAP = "overlap_fala"
INTERRUPTIONS = "interrupcoes_frequentes"

A2E2_THRESHOLDS: Dict[str, Any] = {
    "windows": {
        "short": 5000,
        "long": 10000,
        "trend": 20000,
        "prune": 65000,
    },
    # Minimum speech coverage per layer
    "gates": {
        "primary": 0.18,
        "meta": 0.22,
        "prosodic": 0.30,
        "volume": 0.35,
        "longterm": 0.15,
    },
    # Minimum samples in the window (about 60-80% of the expected count)
    "min_samples": {
        "primary": 6,
        "prosodic": 8,
        "volume": 5,
        "silence": 20,
    },
    "guards": {
        "oscillation_window": 30000,
        "oscillation_max": 3,
        "overlap_window": 20000,
        "overlap_margin": 1.2,
        "overlap_default_ratio": 0.8,
        "trend_window": 10000,
        "trend_delta": 0.02,
        "consistency_window": 30000,
        "consistency_max_gap": 15000,
        "consistency_min_count": 3,
        "consistency_factor": 0.9,
        "min_threshold": 0.01,
    },
    "cooldowns": {
        HOSTILITY: 30000,
        BOREDOM: 25000,
        FRUSTRATION: 25000,
        CONFUSION: 25000,
        ENGAGEMENT: 60000,
        SERENITY: 90000,
        CONNECTION: 75000,
        SADNESS: 40000,
        MENTAL_STATE: 60000,
        "frustration_trend": 25000,
        POST_INTERRUPTION: 25000,
        POLARIZATION: 45000,
        "volume": 15000,
        MONOTONY: 20000,
        PACE_FAST: 20000,
        PACE_SLOW: 60000,
        "arousal": 20000,
        "arousal_warning": 20000,
        "arousal_low_warning": 20000,
        "valence": 20000,
        "valence_severe": 25000,
        GROUP_ENERGY: 30000,
        SILENCE: 120000,
        OVERLAP: 20000,
        INTERRUPTIONS: 30000,
    },
    "primary": {
        "hostility": {
            "anger": 0.07,
            "disgust": 0.07,
            "distress": 0.07,
            "rage": 0.08,
            "contempt": 0.07,
            "fear": 0.10,
            "horror": 0.12,
            "terror": 0.12,
            "anxiety": 0.08,
        },
        # Repeated reductions never take a hostility channel below this
        "hostility_floor": 0.08,
        "frustration": {
            "frustration": 0.15,
        },
        "sadness": {
            "sadness": 0.10,
            "disappointment": 0.10,
            "sorrow": 0.10,
            "guilt": 0.12,
            "shame": 0.12,
            "embarrassment": 0.12,
            "regret": 0.12,
            "disapproval": 0.08,
            "grief": 0.11,
            "despair": 0.11,
            "loneliness": 0.10,
            "melancholy": 0.10,
        },
        "boredom": {
            "boredom": 0.15,
            "tiredness": 0.20,
            "interest_low": 0.15,
        },
        "confusion": {
            # Scores never exceed 1.0, so only doubt can trigger this signal
            "confusion": 1.0,
            "doubt": 0.15,
        },
        "engagement": {
            "interest": 0.06,
            "joy": 0.06,
            "determination": 0.06,
            "enthusiasm": 0.06,
            "excitement": 0.06,
            "ecstasy": 0.08,
            "triumph": 0.08,
            "awe": 0.08,
            "admiration": 0.08,
            "amusement": 0.07,
            "entrancement": 0.07,
        },
        "serenity": {
            "calmness": 0.08,
            "contentment": 0.08,
            "relief": 0.08,
            "satisfaction": 0.08,
        },
        "connection": {
            "affection": 0.07,
            "emphatic pain": 0.07,
            "love": 0.07,
            "sympathy": 0.07,
        },
        "mental_state": {
            "concentration": 0.10,
            "contemplation": 0.10,
            "awkwardness": 0.08,
            "envy": 0.08,
            "pain": 0.12,
            "pride": 0.09,
            "realization": 0.07,
            "nostalgia": 0.10,
            "desire": 0.10,
            "surprise": 0.10,
            "neutral": 0.15,
            "curiosity": 0.09,
            "anticipation": 0.09,
            "hope": 0.10,
            "relief": 0.08,
            "satisfaction": 0.08,
            "calmness": 0.08,
            "contentment": 0.08,
            "interest": 0.10,
            "confusion": 0.08,
            "doubt": 0.08,
            "boredom": 0.10,
        },
        # Above this, any single channel means primary emotions take over from
        # the prosodic and meta layers
        "significant_emotion": 0.07,
    },
    "prosody": {
        "volume": {
            "low": -38.0,
            "low_critical": -44.0,
            "high": -10.0,
            "high_critical": -6.0,
        },
        "arousal": {
            "low": -0.4,
            "low_info": -0.2,
            "high": 0.5,
            "high_warning": 0.7,
        },
        "valence": {
            "negative_severe": -0.6,
            "negative_info": -0.35,
        },
        "monotony": {
            "stdev_warning": 0.06,
            "stdev_info": 0.10,
            "arousal_max": 0.4,
            "arousal_min": -0.2,
        },
        "pace": {
            "fast_switches_per_sec": 1.0,
            "fast_min_segments": 6,
            "fast_warning": 1.5,
            "slow_longest_silence_s": 5.0,
            "slow_warning_s": 7.0,
            "slow_max_coverage": 0.10,
            "min_samples": 8,
        },
        "group_energy": {
            "low": -0.3,
            "low_warning": -0.5,
        },
    },
    "metastates": {
        "frustration_trend": {
            "arousal_delta": 0.25,
            "valence_delta": -0.15,
            "min_speech_samples": 8,
            "min_readings": 12,
        },
        "post_interruption": {
            "valence_delta": -0.15,
            "min_coverage": 0.30,
            "window_min": 6000,
            "window_max": 30000,
            "max_candidates": 10,
        },
        "polarization": {
            "valence_positive": 0.2,
            "valence_negative": -0.2,
            "difference": 0.4,
            "min_participants": 3,
        },
    },
    "longterm": {
        "silence": {
            "window_ms": 60000,
            "speech_coverage": 0.05,
            "rms_threshold": -50.0,
            "min_samples": 20,
        },
        "overlap": {
            "min_participants": 2,
            "min_coverage": 0.15,
        },
        "interruptions": {
            "window_ms": 60000,
            "min_count": 3,
            "throttle_ms": 2000,
            "speaking_coverage": 0.2,
            "warning_per_min": 5.0,
        },
    },
}

WINDOWS = A2E2_THRESHOLDS["windows"]
GATES = A2E2_THRESHOLDS["gates"]
MIN_SAMPLES = A2E2_THRESHOLDS["min_samples"]
GUARDS = A2E2_THRESHOLDS["guards"]
COOLDOWNS = A2E2_THRESHOLDS["cooldowns"]
PRIMARY = A2E2_THRESHOLDS["primary"]
PROSODY = A2E2_THRESHOLDS["prosody"]
METASTATES = A2E2_THRESHOLDS["metastates"]
LONGTERM = A2E2_THRESHOLDS["longterm"]
