"""Tests for harmony computation."""

import pytest

from hmmelody import (
    HarmonyEngine,
    HarmonyMode,
    HarmonyParams,
    Note,
    SCALES,
    compute_harmony,
    generate_melody,
    get_scale_degrees,
)
from hmmelody.harmony import diatonic_offset


def line(*pitches, duration=500):
    return [Note(pitch=p, start_ms=i * duration, duration_ms=duration) for i, p in enumerate(pitches)]


def pitches(notes):
    return [n.pitch for n in notes]


class TestFixedMode:
    """Fixed mode adds a constant semitone offset."""

    def test_above(self):
        harmony = compute_harmony(line(60, 62, 64), 4, HarmonyMode.FIXED, direction=1)
        assert pitches(harmony) == [64, 66, 68]

    def test_below(self):
        harmony = compute_harmony(line(60, 62, 64), 4, HarmonyMode.FIXED, direction=-1)
        assert pitches(harmony) == [56, 58, 60]

    def test_ignores_key(self):
        a = compute_harmony(line(60, 61, 62), 7, HarmonyMode.FIXED, key="Eb")
        b = compute_harmony(line(60, 61, 62), 7, HarmonyMode.FIXED, key="C")
        assert a == b


class TestDiatonicMode:
    """Diatonic mode moves by scale degrees within the key."""

    def test_thirds_in_c(self):
        """C4 -> E4 (major third), E4 -> G4 (minor third)."""
        harmony = compute_harmony(line(60, 64), 2, HarmonyMode.DIATONIC, key="C")
        assert pitches(harmony) == [64, 67]

    @pytest.mark.parametrize(
        "key, pitch, steps, direction, expected",
        [
            ("C", 71, 2, 1, 74),
            ("C", 60, 2, -1, 57),
            ("C", 60, 7, 1, 72),
            ("C", 60, 7, -1, 48),
            ("C", 62, 0, 1, 62),
            ("Am", 69, 2, 1, 72),
            ("Am", 67, 2, 1, 71),
            ("Am", 72, 4, 1, 79),
            ("Am", 69, 4, -1, 62),
            ("G", 66, 2, 1, 69),
            ("G", 71, 2, -1, 67),
        ],
    )
    def test_pinned_results(self, key, pitch, steps, direction, expected):
        harmony = compute_harmony(line(pitch), steps, HarmonyMode.DIATONIC, key=key, direction=direction)
        assert pitches(harmony) == [expected]

    def test_minor_third_above_tonic_in_a_minor(self):
        harmony = compute_harmony(line(69), 2, HarmonyMode.DIATONIC, key="Am")
        assert harmony[0].pitch - 69 == 3

    def test_non_diatonic_note_uses_nearest_scale_tone(self):
        # C#4 in C major takes the position of C (lowest index on a tie)
        assert pitches(compute_harmony(line(61), 2, key="C")) == [64]
        # E4 in Eb major sits between Eb and F; takes Eb's position
        assert pitches(compute_harmony(line(64), 2, key="Eb")) == [67]

    def test_negative_steps_reverse_direction(self):
        scale = SCALES["C"]
        assert diatonic_offset(60, -2, scale) == diatonic_offset(60, 2, scale, -1) == -3

    @pytest.mark.parametrize("key", sorted(SCALES))
    @pytest.mark.parametrize(
        "steps, allowed",
        [(1, {1, 2}), (2, {3, 4}), (3, {5, 6}), (4, {6, 7}), (5, {8, 9}), (6, {10, 11}), (7, {12})],
    )
    def test_interval_correctness(self, key, steps, allowed):
        """Every harmony note is a diatonic interval of the requested size."""
        melody = generate_melody(4242, key, 3, 24)
        for direction in (1, -1):
            harmony = compute_harmony(melody, steps, HarmonyMode.DIATONIC, key=key, direction=direction)
            for m, h in zip(melody, harmony):
                assert abs(h.pitch - m.pitch) in allowed
                assert (h.pitch - m.pitch) * direction > 0
                assert h.pitch % 12 in SCALES[key]

    def test_timing_preserved(self):
        melody = generate_melody(12345, "F", 2, 8)
        harmony = compute_harmony(melody, 2, HarmonyMode.DIATONIC, key="F")
        assert len(harmony) == len(melody)
        for m, h in zip(melody, harmony):
            assert (m.start_ms, m.duration_ms) == (h.start_ms, h.duration_ms)

    def test_empty_melody(self):
        assert compute_harmony([], 2, HarmonyMode.DIATONIC) == []
        assert compute_harmony([], 4, HarmonyMode.FIXED) == []


class TestHarmonyEngine:
    """Tests for HarmonyEngine queries and params."""

    def test_scale_degrees(self):
        engine = HarmonyEngine()
        assert engine.get_scale_degrees("C") == (0, 2, 4, 5, 7, 9, 11)
        assert engine.get_scale_degrees("Am") == (9, 11, 0, 2, 4, 5, 7)
        assert engine.get_scale_degrees("Bb") == (10, 0, 2, 3, 5, 7, 9)

    def test_scale_degree_fallbacks(self):
        assert get_scale_degrees("Zm") == get_scale_degrees("Am")
        assert get_scale_degrees("Q") == get_scale_degrees("C")

    def test_params_validation(self):
        with pytest.raises(ValueError):
            HarmonyParams(melody=[], direction=0)
        assert HarmonyParams(mode="fixed").mode is HarmonyMode.FIXED

    def test_engine_matches_function(self):
        melody = line(60, 62, 65)
        params = HarmonyParams(melody=melody, interval=4, mode=HarmonyMode.DIATONIC, key="C")
        assert HarmonyEngine().compute_harmony(params) == compute_harmony(melody, 4, key="C")
