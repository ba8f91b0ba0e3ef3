"""
Prosody and long-term detector tests.

Covers volume, monotony, pace, arousal, valence, group energy, silence,
overlap and frequent interruptions.
"""

import sys
import os

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import unittest


class TestVolume(unittest.TestCase):
    """Test detect_volume tiers."""

    def _detect(self, **kwargs):
        from a2e2.prosody import detect_volume
        from tests.fixtures.participants import make_context, make_state
        return detect_volume(make_state(**kwargs), make_context())

    def test_low_and_critical_low(self):
        low = self._detect(loudness_db=-40.0)
        self.assertEqual((low.type, low.severity), ("volume_baixo", "warning"))
        self.assertIn("volume baixo (-40.0 dBFS)", low.message)
        critical = self._detect(loudness_db=-45.0)
        self.assertEqual(critical.severity, "critical")
        self.assertIn("quase inaudível", critical.message)

    def test_high_and_clipping(self):
        high = self._detect(loudness_db=-8.0)
        self.assertEqual((high.type, high.severity), ("volume_alto", "warning"))
        clipping = self._detect(loudness_db=-5.0)
        self.assertEqual(clipping.severity, "critical")
        self.assertIn("áudio clipando", clipping.message)

    def test_normal_level_and_low_coverage(self):
        self.assertIsNone(self._detect(loudness_db=-20.0))
        self.assertIsNone(self._detect(loudness_db=-40.0, speech_ratio=0.2))

    def test_falls_back_to_smoothed_level(self):
        event = self._detect(loudness_db=None, rms=-41.0)
        self.assertEqual(event.metadata["rms_dbfs"], -41.0)


class TestMonotony(unittest.TestCase):
    """Test detect_monotony."""

    def _detect(self, series, arousal=0.1):
        from a2e2.prosody import detect_monotony
        from tests.fixtures.participants import make_context, make_state
        state = make_state(arousal=arousal, arousal_series=series)
        return detect_monotony(state, make_context())

    def test_flat_intonation_is_warning(self):
        event = self._detect([0.1] * 20)
        self.assertEqual((event.type, event.severity), ("monotonia_prosodica", "warning"))
        self.assertIn("fala monótona", event.message)

    def test_little_variation_is_info(self):
        event = self._detect([0.0, 0.16] * 10)
        self.assertEqual(event.severity, "info")
        self.assertIn("pouca variação de entonação", event.message)

    def test_varied_or_out_of_band(self):
        self.assertIsNone(self._detect([0.0, 0.4] * 10))
        self.assertIsNone(self._detect([0.1] * 20, arousal=0.5))
        self.assertIsNone(self._detect([0.1] * 5 + [None] * 15))


class TestPace(unittest.TestCase):
    """Test detect_pace from speech/silence alternation."""

    def _detect(self, flags, arousal=None, **context):
        from a2e2.prosody import detect_pace
        from a2e2.types import Sample
        from tests.fixtures.participants import NOW, make_context, make_state
        count = len(flags)
        samples = [
            Sample(timestamp=NOW - (count - 1 - i) * 500, is_speech=speech, loudness_db=-30.0)
            for i, speech in enumerate(flags)
        ]
        state = make_state(arousal=arousal, samples=samples)
        return detect_pace(state, make_context(**context))

    def test_rapid_alternation_is_hurried(self):
        event = self._detect([False, True] * 10)
        self.assertEqual((event.type, event.severity), ("ritmo_acelerado", "warning"))
        self.assertEqual(event.message, "Ana: ritmo acelerado; desacelere para melhor entendimento.")
        self.assertEqual(event.metadata["switches_per_sec"], 1.9)
        self.assertEqual(event.metadata["speech_segments"], 10)

    def test_moderate_alternation_is_info(self):
        event = self._detect([True] * 8 + [False, True] * 6)
        self.assertEqual((event.type, event.severity), ("ritmo_acelerado", "info"))
        self.assertIn("ritmo rápido", event.message)
        self.assertEqual(event.metadata["speech_segments"], 7)

    def test_long_silence_is_halting(self):
        event = self._detect([True] + [False] * 19)
        self.assertEqual((event.type, event.severity), ("ritmo_pausado", "warning"))
        self.assertEqual(
            event.message,
            "Ana: pausas muito longas (≥9.0s); tente manter um ritmo mais constante.",
        )

    def test_shorter_silence_is_info(self):
        event = self._detect([False] * 8 + [True] + [False] * 11)
        self.assertEqual((event.type, event.severity), ("ritmo_pausado", "info"))
        self.assertEqual(event.metadata["longest_silence_s"], 5.0)

    def test_contradicting_energy_suppresses(self):
        self.assertIsNone(self._detect([False, True] * 10, arousal=-0.5))
        self.assertIsNone(self._detect([True] + [False] * 19, arousal=0.6))
        self.assertIsNotNone(self._detect([False, True] * 10, arousal=0.3))

    def test_steady_speech_silent_and_sparse_buffers(self):
        self.assertIsNone(self._detect([True] * 20))
        self.assertIsNone(self._detect([False] * 20))
        self.assertIsNone(self._detect([False, True] * 3))

    def test_cooldown_per_type(self):
        from a2e2.prosody import detect_pace
        from a2e2.types import Sample
        from tests.fixtures.participants import NOW, make_context, make_state
        samples = [Sample(timestamp=NOW - (19 - i) * 500, is_speech=i % 2 == 1) for i in range(20)]
        state = make_state(samples=samples)
        self.assertIsNotNone(detect_pace(state, make_context()))
        self.assertEqual(state.cooldowns["ritmo_acelerado"], NOW + 20000)
        self.assertIsNone(detect_pace(state, make_context()))


class TestGroupEnergy(unittest.TestCase):
    """Test detect_group_energy over the non-host participants."""

    def _meeting(self, arousals, roles=None, ratios=None):
        from tests.fixtures.participants import FakeMeeting, make_state
        states = {
            pid: make_state(arousal=a, speech_ratio=(ratios or {}).get(pid, 1.0))
            for pid, a in arousals.items()
        }
        return FakeMeeting(states, roles=roles)

    def test_low_group_energy_warns(self):
        from a2e2.prosody import detect_group_energy
        meeting = self._meeting({"p1": -0.6, "p2": -0.5})
        event = detect_group_energy(meeting.states["p1"], meeting.context("p1"))
        self.assertEqual((event.type, event.severity), ("energia_grupo_baixa", "warning"))
        self.assertEqual(event.participant_id, "group")
        self.assertEqual(event.metadata["arousal_ema"], -0.55)
        self.assertIn("perguntas diretas", event.message)
        # meeting-scoped cooldown
        self.assertIsNone(detect_group_energy(meeting.states["p2"], meeting.context("p2")))

    def test_falling_energy_is_info(self):
        from a2e2.prosody import detect_group_energy
        meeting = self._meeting({"p1": -0.4, "p2": -0.3})
        event = detect_group_energy(meeting.states["p1"], meeting.context("p1"))
        self.assertEqual(event.severity, "info")
        self.assertEqual(event.message, "Energia do grupo em queda. Estimule participação.")

    def test_hosts_and_quiet_participants_are_ignored(self):
        from a2e2.prosody import detect_group_energy
        meeting = self._meeting(
            {"h": -0.9, "p1": 0.1, "p2": -0.9},
            roles={"h": "host"},
            ratios={"p2": 0.1},
        )
        self.assertIsNone(detect_group_energy(meeting.states["p1"], meeting.context("p1")))

    def test_lively_group_and_no_meeting(self):
        from a2e2.prosody import detect_group_energy
        from tests.fixtures.participants import make_context, make_state
        meeting = self._meeting({"p1": -0.2, "p2": -0.1})
        self.assertIsNone(detect_group_energy(meeting.states["p1"], meeting.context("p1")))
        self.assertIsNone(detect_group_energy(make_state(arousal=-0.9), make_context()))


class TestArousalValence(unittest.TestCase):
    """Test detect_arousal and detect_valence."""

    def _state(self, arousal, valence, emotions=None):
        from tests.fixtures.participants import make_state
        return make_state(emotions=emotions, arousal=arousal, valence=valence)

    def test_high_energy_positive(self):
        from a2e2.prosody import detect_arousal
        from tests.fixtures.participants import make_context
        info = detect_arousal(self._state(0.6, 0.2), make_context())
        self.assertEqual((info.type, info.severity), ("entusiasmo_alto", "info"))
        warning = detect_arousal(self._state(0.75, 0.2), make_context())
        self.assertIn("energia muito alta", warning.message)

    def test_high_energy_negative_is_stress(self):
        from a2e2.prosody import detect_arousal
        from tests.fixtures.participants import make_context
        event = detect_arousal(self._state(0.6, -0.2), make_context())
        self.assertEqual((event.type, event.severity), ("tendencia_emocional_negativa", "warning"))
        self.assertIn("sinais de estresse", event.message)

    def test_low_energy(self):
        from a2e2.prosody import detect_arousal
        from tests.fixtures.participants import make_context
        info = detect_arousal(self._state(-0.3, 0.0), make_context())
        self.assertEqual((info.type, info.severity), ("engajamento_baixo", "info"))
        warning = detect_arousal(self._state(-0.5, 0.0), make_context())
        self.assertIn("engajamento baixo (tom desanimado)", warning.message)
        self.assertIsNone(detect_arousal(self._state(0.1, 0.0), make_context()))

    def test_defers_to_primary_emotions(self):
        from a2e2.prosody import detect_arousal, detect_valence
        from tests.fixtures.participants import make_context
        self.assertIsNone(detect_arousal(self._state(0.8, 0.2, {"anger": 0.08}), make_context()))
        self.assertIsNone(detect_valence(self._state(0.0, -0.8, {"sadness": 0.08}), make_context()))

    def test_valence_tiers(self):
        from a2e2.prosody import detect_valence
        from tests.fixtures.participants import make_context
        cases = [
            ((0.6, -0.7), "warning", "sinais de tensão"),
            ((-0.3, -0.7), "warning", "sinais de desânimo"),
            ((0.0, -0.7), "warning", "tom negativo perceptível"),
            ((0.0, -0.4), "info", "tendência emocional negativa"),
        ]
        for (arousal, valence), severity, text in cases:
            with self.subTest(arousal=arousal, valence=valence):
                event = detect_valence(self._state(arousal, valence), make_context())
                self.assertEqual(event.type, "tendencia_emocional_negativa")
                self.assertEqual(event.severity, severity)
                self.assertIn(text, event.message)
        self.assertIsNone(detect_valence(self._state(0.0, -0.3), make_context()))


class TestSilence(unittest.TestCase):
    """Test detect_silence branches."""

    def _detect(self, **kwargs):
        from a2e2.longterm import detect_silence
        from tests.fixtures.participants import make_context, make_state
        params = dict(count=100, step_ms=600, speech_ratio=0.03, loudness_db=-30.0, arousal=0.1)
        params.update(kwargs)
        return detect_silence(make_state(**params), make_context())

    def test_working_microphone_invites_participation(self):
        info = self._detect()
        self.assertEqual(info.severity, "info")
        self.assertIn("silêncio prolongado detectado", info.message)
        warning = self._detect(arousal=-0.1)
        self.assertEqual(warning.severity, "warning")
        self.assertIn("energia baixa", warning.message)

    def test_no_level_reads_as_muted(self):
        event = self._detect(loudness_db=None)
        self.assertIn("N/A dBFS", event.message)
        self.assertIsNone(event.metadata["rms_dbfs"])

    def test_blocked_cases(self):
        self.assertIsNone(self._detect(arousal=0.3))
        self.assertIsNone(self._detect(arousal=0.6, loudness_db=-60.0))
        self.assertIsNone(self._detect(speech_ratio=0.0))
        self.assertIsNone(self._detect(speech_ratio=0.05))
        self.assertIsNone(self._detect(count=19, step_ms=3000))


class TestOverlapAndInterruptions(unittest.TestCase):
    """Test the meeting-scoped long-term detectors."""

    def _meeting(self, ratios, valences=None):
        from tests.fixtures.participants import FakeMeeting, make_state
        names = {"p1": "Ana", "p2": "Bruno", "p3": "Carla"}
        states = {}
        for pid, ratio in ratios.items():
            valence = valences[pid] if valences else None
            states[pid] = make_state(speech_ratio=ratio, valence=valence)
        return FakeMeeting(states, names=names)

    def test_overlap_attributed_to_current_speaker(self):
        from a2e2.longterm import detect_overlap
        meeting = self._meeting({"p1": 1.0, "p2": 0.5, "p3": 0.0})
        event = detect_overlap(meeting.states["p1"], meeting.context("p1"))
        self.assertEqual(event.type, "overlap_fala")
        self.assertEqual(event.participant_id, "p1")
        self.assertEqual(event.message, "Ana (com Bruno) falando ao mesmo tempo com frequência (100.0% de fala).")
        self.assertIn("overlap_fala", meeting.states["p1"].cooldowns)

    def test_overlap_falls_back_to_top_speaker(self):
        from a2e2.longterm import detect_overlap
        meeting = self._meeting({"p1": 1.0, "p2": 0.5, "p3": 0.0})
        event = detect_overlap(meeting.states["p3"], meeting.context("p3"))
        self.assertEqual(event.participant_id, "p1")
        self.assertEqual(meeting.states["p3"].cooldowns, {})

    def test_single_speaker_is_not_overlap(self):
        from a2e2.longterm import detect_overlap
        meeting = self._meeting({"p1": 1.0, "p2": 0.0})
        self.assertIsNone(detect_overlap(meeting.states["p1"], meeting.context("p1")))

    def test_interruptions_fire_on_third_overlap(self):
        from a2e2.longterm import detect_interruptions
        from tests.fixtures.participants import NOW
        meeting = self._meeting({"p1": 1.0, "p2": 1.0}, valences={"p1": 0.1, "p2": 0.3})
        meeting.overlap_history = [NOW - 20000, NOW - 10000]
        meeting.last_overlap_at = NOW - 10000
        meeting.last_speaker = "p2"
        event = detect_interruptions(meeting.states["p1"], meeting.context("p1"))
        self.assertEqual(event.type, "interrupcoes_frequentes")
        self.assertEqual(event.severity, "info")
        self.assertEqual(event.participant_id, "group")
        self.assertEqual(
            event.message,
            "Interrupções frequentes nos últimos 60s (3.0 por minuto) (Ana e Bruno). Combine turnos de fala.",
        )
        self.assertEqual(meeting.last_overlap_at, NOW)
        self.assertEqual(meeting.candidates, [{"ts": NOW, "interrupted_id": "p2", "valence_before": 0.3}])
        # meeting-scoped cooldown
        self.assertIsNone(detect_interruptions(meeting.states["p2"], meeting.context("p2", now=NOW + 2000)))

    def test_overlap_sampling_is_throttled(self):
        from a2e2.longterm import detect_interruptions
        from tests.fixtures.participants import NOW
        meeting = self._meeting({"p1": 1.0, "p2": 1.0})
        meeting.overlap_history = [NOW - 20000, NOW - 1000]
        meeting.last_overlap_at = NOW - 1000
        self.assertIsNone(detect_interruptions(meeting.states["p1"], meeting.context("p1")))
        self.assertEqual(len(meeting.overlap_history), 2)

    def test_many_interruptions_warn(self):
        from a2e2.longterm import detect_interruptions
        from tests.fixtures.participants import NOW
        meeting = self._meeting({"p1": 1.0, "p2": 1.0})
        meeting.overlap_history = [NOW - 50000, NOW - 40000, NOW - 30000, NOW - 20000]
        event = detect_interruptions(meeting.states["p1"], meeting.context("p1"))
        self.assertEqual(event.severity, "warning")
        self.assertEqual(event.metadata["overlap_count"], 5)


if __name__ == "__main__":
    unittest.main()
