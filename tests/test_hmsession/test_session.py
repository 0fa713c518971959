"""Tests for the practice session controller and offline take scoring."""

import asyncio
import threading

import numpy as np
import pytest

from hmmelody import HarmonyMode, Note, generate_melody, midi_to_frequency
from hmpitch import (
    BufferedSource,
    MicrophonePermissionError,
    PitchDetector,
    PitchEstimate,
    SoftwareYinBackend,
    cents_difference,
)
from hmsession import PracticeSession, PracticeSettings, score_take, track_pitch

SR = 44100
BLOCK = 2048


class FakeClock:
    def __init__(self):
        self.now = 10_000.0

    def __call__(self):
        return self.now


def sine(freq, n, sr=SR):
    t = np.arange(n) / sr
    return (0.5 * np.sin(2 * np.pi * freq * t)).astype(np.float32)


def sung_take(notes, sr=SR):
    """Pure-sine rendition of a note line, phase-continuous across notes."""
    parts = []
    phase = 0.0
    for note in notes:
        n = int(note.duration_ms / 1000 * sr)
        freq = midi_to_frequency(note.pitch)
        parts.append(0.5 * np.sin(phase + 2 * np.pi * freq * np.arange(n) / sr))
        phase += 2 * np.pi * freq * n / sr
    return np.concatenate(parts).astype(np.float32)


async def granted():
    return True


async def denied():
    return False


def make_session(permission=granted, **settings):
    source = BufferedSource(sample_rate=SR, block_size=BLOCK)
    detector = PitchDetector(source=source, backend=SoftwareYinBackend(), permission=permission)
    clock = FakeClock()
    confirms = []
    session = PracticeSession(
        settings=PracticeSettings(**settings),
        detector=detector,
        clock=clock,
        on_confirm=lambda: confirms.append(clock.now),
    )
    return session, source, clock, confirms


class TestPrepare:
    """Phrase generation through the session."""

    def test_prepare_with_seed(self):
        session, *_ = make_session(key="C", notes_per_loop=8, seed=12345)
        melody, harmony = session.prepare()

        assert melody == generate_melody(12345, "C", 2, 8)
        assert [n.pitch for n in harmony] == [74, 74, 74, 69, 74, 74, 74, 74]
        assert session.seed == 12345
        assert session.playback.phrase_ms == 6600

    def test_fixed_interval(self):
        session, *_ = make_session(notes_per_loop=4, seed=1, interval_mode="fixed", harmony_interval="5th")
        melody, harmony = session.prepare()
        assert [h.pitch - m.pitch for m, h in zip(melody, harmony)] == [7, 7, 7, 7]

    def test_harmony_below(self):
        session, *_ = make_session(notes_per_loop=6, seed=3, direction=-1)
        melody, harmony = session.prepare()
        assert all(h.pitch < m.pitch for m, h in zip(melody, harmony))

    def test_random_seed_when_unset(self):
        session, *_ = make_session(notes_per_loop=4)
        session.prepare()
        assert 0 <= session.seed <= 0xFFFFFFFF
        assert len(session.melody) == 4

    def test_explicit_seed_overrides_settings(self):
        session, *_ = make_session(notes_per_loop=4, seed=1)
        session.prepare(seed=2)
        assert session.seed == 2


class TestLiveSession:
    """Detector -> scoring -> feedback wiring."""

    def test_run_scores_live_audio(self):
        session, source, clock, confirms = make_session(key="C", notes_per_loop=8, seed=12345)
        asyncio.run(session.start())
        assert session.is_running

        target = midi_to_frequency(74)
        for _ in range(20):
            source.push(sine(target, BLOCK))
            clock.now += 20.0

        assert session.scoring.is_on_target()
        assert session.scoring.get_current_target_midi() == 74
        assert confirms == [10_300.0]

        score = session.stop()
        assert not session.is_running
        assert score.total_voiced_frames == 20
        assert score.overall_score_percent == 100.0
        assert score.note_results[0].correct_frames == 20
        assert not session.detector.is_running()

    def test_ghost_mode_mutes_until_on_target(self):
        session, source, clock, _ = make_session(seed=12345, ghost_mode=True)
        asyncio.run(session.start())
        assert session.harmony_muted

        source.push(sine(midi_to_frequency(74), BLOCK))
        assert not session.harmony_muted

        source.push(np.zeros(BLOCK, dtype=np.float32))
        assert session.harmony_muted
        session.stop()

    def test_ghost_mode_off_keeps_harmony(self):
        session, source, _, _ = make_session(seed=12345, ghost_mode=False)
        asyncio.run(session.start())
        source.push(np.zeros(BLOCK, dtype=np.float32))
        assert not session.harmony_muted
        session.stop()

    def test_permission_denied(self):
        session, *_ = make_session(permission=denied, seed=1)
        with pytest.raises(MicrophonePermissionError):
            asyncio.run(session.start())
        assert not session.is_running
        assert session.stop() is None

    def test_stop_without_start(self):
        session, *_ = make_session(seed=1)
        assert session.stop() is None
        assert session.stop() is None

    def test_async_context_manager(self):
        async def practice():
            session, source, _, _ = make_session(seed=12345)
            async with session:
                await session.start()
                source.push(sine(midi_to_frequency(74), BLOCK))
            return session

        session = asyncio.run(practice())
        assert not session.is_running
        assert session.detector.listener_count == 0

    def test_render_mix_respects_muting(self):
        session, *_ = make_session(seed=5, notes_per_loop=3, ghost_mode=True)
        session.prepare()
        muted = session.render_mix()
        session.harmony_muted = False
        full = session.render_mix()
        assert len(muted) == len(full)
        assert not np.allclose(muted, full)


class TestOfflineScoring:
    """score_take / track_pitch."""

    def test_accurate_take(self):
        melody = generate_melody(12345, "C", 2, 8)
        harmony = [Note(pitch=n.pitch + 3, start_ms=n.start_ms, duration_ms=n.duration_ms) for n in melody]
        take = sung_take(harmony)

        score = score_take(take, SR, harmony)
        assert score.overall_score_percent > 80.0
        assert score.total_voiced_frames > 250
        assert score.duration_ms == pytest.approx(6600.0, abs=1.0)
        assert all(r.score_percent > 50.0 for r in score.note_results)

    def test_wrong_part_scores_low(self):
        melody = generate_melody(12345, "C", 2, 8)
        harmony = [Note(pitch=n.pitch + 4, start_ms=n.start_ms, duration_ms=n.duration_ms) for n in melody]

        score = score_take(sung_take(melody), SR, harmony)
        assert score.overall_score_percent < 10.0

    def test_silent_take(self):
        harmony = [Note(pitch=69, start_ms=0, duration_ms=1000)]
        score = score_take(np.zeros(SR, dtype=np.float32), SR, harmony)
        assert score.overall_score_percent == 0.0
        assert score.total_voiced_frames == 0
        assert score.note_results[0].avg_cents_deviation == 0.0

    def test_tolerance_applies(self):
        harmony = [Note(pitch=69, start_ms=0, duration_ms=1000)]
        take = sine(440.0 * 2 ** (35 / 1200), SR)
        assert score_take(take, SR, harmony, tolerance_cents=50).overall_score_percent > 90.0
        assert score_take(take, SR, harmony, tolerance_cents=25).overall_score_percent == 0.0

    def test_track_pitch(self):
        track = track_pitch(sine(440.0, SR), SR, hop_ms=20.0)
        assert len(track) == (SR - BLOCK) // 882 + 1
        assert track[0].timestamp_ms == 0.0
        assert track[1].timestamp_ms == pytest.approx(20.0)
        assert all(e.is_voiced for e in track)
        assert all(abs(cents_difference(e.frequency_hz, 440.0)) < 3.0 for e in track)

    def test_track_pitch_stereo(self):
        mono = sine(330.0, SR // 2)
        stereo = np.stack([mono, mono], axis=1)
        track = track_pitch(stereo, SR)
        assert track and all(e.is_voiced for e in track)


class TestPracticeSettings:
    """Settings validation."""

    def test_defaults(self):
        settings = PracticeSettings()
        assert settings.key == "C"
        assert settings.notes_per_loop == 4
        assert settings.tolerance_cents == 50.0
        assert settings.harmony_amount == 2
        assert settings.interval_mode is HarmonyMode.DIATONIC

    def test_fixed_amount(self):
        assert PracticeSettings(interval_mode="fixed", harmony_interval="3rd").harmony_amount == 4

    @pytest.mark.parametrize(
        "field, value",
        [("key", "H"), ("direction", 0), ("notes_per_loop", 11), ("notes_per_loop", 0), ("tolerance_cents", 0)],
    )
    def test_invalid(self, field, value):
        with pytest.raises(ValueError):
            PracticeSettings(**{field: value})

    def test_from_settings(self):
        from hmcore.config import Settings

        settings = PracticeSettings.from_settings(Settings(HM_TOLERANCE_CENTS=75, HM_HOLD_THRESHOLD_MS=200), key="Am")
        assert settings.tolerance_cents == 75.0
        assert settings.hold_threshold_ms == 200
        assert settings.key == "Am"


class TestEnvironmentDefaults:
    """Sessions built without explicit settings read the HM_* environment."""

    def test_detector_and_scoring_from_env(self, monkeypatch):
        monkeypatch.setenv("HM_MIN_FREQUENCY", "150")
        monkeypatch.setenv("HM_MAX_FREQUENCY", "900")
        monkeypatch.setenv("HM_YIN_THRESHOLD", "0.1")
        monkeypatch.setenv("HM_MIN_VOLUME", "0.02")
        monkeypatch.setenv("HM_PITCH_BACKEND", "yin")
        monkeypatch.setenv("HM_TOLERANCE_CENTS", "25")
        monkeypatch.setenv("HM_HOLD_THRESHOLD_MS", "200")

        session = PracticeSession()
        config = session.detector.config
        assert (config.min_frequency, config.max_frequency) == (150.0, 900.0)
        assert config.threshold == 0.1
        assert config.min_volume == 0.02
        assert session.detector.backend.name == "yin"
        assert session.scoring.tolerance_cents == 25.0
        assert session.settings.hold_threshold_ms == 200

    def test_explicit_settings_win(self, monkeypatch):
        monkeypatch.setenv("HM_TOLERANCE_CENTS", "25")
        session, *_ = make_session(tolerance_cents=75)
        assert session.scoring.tolerance_cents == 75.0


class TestAudioThreadSafety:
    """Estimates delivered from several threads keep feedback state consistent."""

    def test_concurrent_estimates(self):
        session, _, clock, confirms = make_session(seed=12345, ghost_mode=True)
        asyncio.run(session.start())
        on_pitch = PitchEstimate(frequency_hz=midi_to_frequency(74), is_voiced=True, confidence=0.9, timestamp_ms=0.0)

        def feed():
            for _ in range(200):
                session._on_pitch(on_pitch)

        threads = [threading.Thread(target=feed) for _ in range(4)]
        clock.now += 400.0
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert not session.harmony_muted
        assert session.scoring.running_score().frames == 800
        score = session.stop()
        assert score.total_correct_frames == 800
        assert session.harmony_muted
        assert not session.feedback.confirmed
