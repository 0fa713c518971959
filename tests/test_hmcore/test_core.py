"""Tests for shared configuration, logging and audio helpers."""

import json
import logging
import sys

import numpy as np
import pytest

from hmcore.audio import frame_signal, read_wav, read_wav_bytes, to_mono, validate_format, write_wav, write_wav_bytes
from hmcore.config import Settings, get_settings
from hmcore.logging import QUIET_LOGGERS, JsonFormatter, setup_logging, setup_tracing, span


class TestSettings:
    """Environment-driven settings."""

    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("HM_TOLERANCE_CENTS", raising=False)
        s = get_settings()
        assert s.HM_SAMPLE_RATE == 44100
        assert s.HM_TOLERANCE_CENTS == 50.0
        assert s.HM_PITCH_BACKEND == "auto"

    def test_env_override(self, monkeypatch):
        monkeypatch.setenv("HM_TOLERANCE_CENTS", "25")
        monkeypatch.setenv("HM_PITCH_BACKEND", "yin")
        monkeypatch.setenv("HM_OTEL_ENDPOINT", "")
        s = get_settings()
        assert s.HM_TOLERANCE_CENTS == 25.0
        assert s.HM_PITCH_BACKEND == "yin"
        assert s.HM_OTEL_ENDPOINT is None

    def test_memoized(self):
        assert get_settings() is get_settings()

    def test_invalid_env(self, monkeypatch):
        monkeypatch.setenv("HM_SAMPLE_RATE", "not-a-number")
        with pytest.raises(ValueError):
            get_settings()

    def test_invalid_band(self):
        with pytest.raises(ValueError):
            Settings(HM_MIN_FREQUENCY=900.0, HM_MAX_FREQUENCY=800.0)


class TestAudio:
    """WAV I/O and framing."""

    def test_wav_bytes_roundtrip(self):
        audio = (0.5 * np.sin(2 * np.pi * 440 * np.arange(4410) / 44100)).astype(np.float32)
        data = write_wav_bytes(audio, 44100)
        decoded, sr = read_wav_bytes(data)
        assert sr == 44100
        assert decoded.shape == (4410, 1)
        np.testing.assert_allclose(decoded[:, 0], audio, atol=1e-3)

    def test_wav_file(self, tmp_path):
        path = str(tmp_path / "take.wav")
        write_wav(path, np.zeros((100, 2), dtype=np.float32), 22050)
        audio, sr = read_wav(path)
        assert sr == 22050
        assert audio.shape == (100, 2)

    def test_validate_format(self):
        with pytest.raises(ValueError):
            validate_format(0, 1)
        with pytest.raises(ValueError):
            validate_format(44100, 3)

    def test_to_mono(self):
        stereo = np.array([[1.0, 0.0], [0.5, 0.5]], dtype=np.float32)
        np.testing.assert_allclose(to_mono(stereo), [0.5, 0.5])
        np.testing.assert_allclose(to_mono(stereo[:, :1]), [1.0, 0.5])
        mono = np.ones(3, dtype=np.float32)
        assert to_mono(mono) is mono

    def test_frame_signal(self):
        signal = np.arange(10, dtype=np.float32)
        frames = list(frame_signal(signal, 4))
        assert [start for start, _ in frames] == [0, 4]
        np.testing.assert_array_equal(frames[1][1], [4, 5, 6, 7])

    def test_frame_signal_hop(self):
        frames = list(frame_signal(np.zeros(10), 4, 3))
        assert [start for start, _ in frames] == [0, 3, 6]
        assert all(len(block) == 4 for _, block in frames)

    def test_frame_signal_short_input(self):
        assert list(frame_signal(np.zeros(3), 4)) == []

    def test_frame_signal_invalid(self):
        with pytest.raises(ValueError):
            list(frame_signal(np.zeros(10), 0))


class TestLogging:
    """Structured logging."""

    def test_json_formatter(self):
        record = logging.LogRecord("hmpitch.detector", logging.INFO, __file__, 1, "Started %s", ("yin",), None)
        payload = json.loads(JsonFormatter().format(record))
        assert payload["level"] == "INFO"
        assert payload["logger"] == "hmpitch.detector"
        assert payload["message"] == "Started yin"
        assert "time" in payload

    def test_json_formatter_exception(self):
        try:
            raise RuntimeError("boom")
        except RuntimeError:
            record = logging.LogRecord("x", logging.ERROR, __file__, 1, "failed", (), sys.exc_info())
        payload = json.loads(JsonFormatter().format(record))
        assert "RuntimeError: boom" in payload["exc_info"]

    def test_tracing_disabled_without_endpoint(self, monkeypatch):
        monkeypatch.delenv("HM_OTEL_ENDPOINT", raising=False)
        assert setup_tracing("practice") is False

    def test_structured_fields(self):
        record = logging.LogRecord("hmscoring.engine", logging.INFO, __file__, 1, "Run ended", (), None)
        record.fields = {"score_percent": 87.5, "message": "ignored"}
        payload = json.loads(JsonFormatter().format(record))
        assert payload["score_percent"] == 87.5
        assert payload["message"] == "Run ended"

    def test_setup_logging_quiets_dependencies(self):
        root = logging.getLogger()
        saved = (root.handlers[:], root.level)
        try:
            setup_logging("debug")
            assert root.level == logging.DEBUG
            assert isinstance(root.handlers[0].formatter, JsonFormatter)
            assert all(logging.getLogger(name).level == logging.WARNING for name in QUIET_LOGGERS)
        finally:
            root.handlers[:] = saved[0]
            root.setLevel(saved[1])

    def test_span_without_tracer(self):
        with span("score_take", seed=42):
            value = 1
        assert value == 1
