"""Practice Pod: FastAPI service for harmony practice phrases and take scoring.

Generates seeded melodies with their harmony line, harmonizes arbitrary
melodies, and scores or pitch-tracks recorded takes uploaded as WAV.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from dataclasses import replace
from typing import Dict, List, Optional, Tuple

import numpy as np
from fastapi import FastAPI, File, Form, HTTPException, UploadFile
from pydantic import BaseModel, Field, field_validator

from config import Config
from hmcore.audio import read_wav_bytes, to_mono
from hmcore.config import get_settings
from hmcore.logging import setup_logging, setup_tracing, span
from hmmelody.generator import GenerationParams, Note, SeededMelodyGenerator, melody_duration_ms
from hmmelody.harmony import HarmonyEngine, HarmonyMode, HarmonyParams
from hmmelody.midi_utils import notes_to_f0_curve
from hmmelody.theory import (
    Difficulty,
    HarmonyInterval,
    frequency_to_midi,
    interval_to_scale_steps,
    interval_to_semitones,
    midi_to_note_name,
)
from hmpitch.detector import PitchDetectorConfig
from hmsession.session import DEFAULT_HOP_MS, score_take, track_pitch

logger = logging.getLogger(__name__)

SERVICE_NAME = Config.SERVICE_NAME
SERVICE_VERSION = Config.SERVICE_VERSION


class NoteModel(BaseModel):
    """Single note with millisecond timing."""

    pitch: int = Field(..., ge=0, le=127)
    start_ms: int = Field(..., ge=0)
    duration_ms: int = Field(..., gt=0)

    @classmethod
    def from_note(cls, note: Note) -> "NoteModel":
        return cls(pitch=note.pitch, start_ms=note.start_ms, duration_ms=note.duration_ms)

    def to_note(self) -> Note:
        return Note(pitch=self.pitch, start_ms=self.start_ms, duration_ms=self.duration_ms)


class F0Curve(BaseModel):
    """Target F0 curve."""

    times_ms: List[float]
    values: List[float]


def _coerce_difficulty(value):
    if not isinstance(value, str):
        return value
    value = value.strip()
    if value.isdigit():
        return int(value)
    try:
        return Difficulty[value.upper()]
    except KeyError as exc:
        raise ValueError("difficulty must be easy, medium, hard or 1-3") from exc


class PhraseOptions(BaseModel):
    """Generation + harmony options shared by /generate and /score."""

    seed: int = Field(default=42, ge=0, le=0xFFFFFFFF, description="Deterministic seed")
    key: str = Field(default="C", description="Key, e.g. C, Bb, Am")
    difficulty: Difficulty = Field(default=Difficulty.MEDIUM)
    note_count: int = Field(default=8, ge=1, le=Config.MAX_NOTE_COUNT)
    interval: HarmonyInterval = Field(default=HarmonyInterval.THIRD)
    mode: HarmonyMode = Field(default=HarmonyMode.DIATONIC)
    direction: int = Field(default=1)

    @field_validator("difficulty", mode="before")
    @classmethod
    def validate_difficulty(cls, value):
        return _coerce_difficulty(value)

    @field_validator("key")
    @classmethod
    def validate_key(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("key must be provided")
        return value.strip()

    @field_validator("direction")
    @classmethod
    def validate_direction(cls, value: int) -> int:
        if value not in (1, -1):
            raise ValueError("direction must be 1 or -1")
        return value


class GenerateRequest(PhraseOptions):
    emit_f0: bool = Field(default=False, description="Include target F0 curves")
    hop_ms: float = Field(default=10.0, gt=0.0, le=1000.0)


class GenerateResponse(BaseModel):
    seed: int
    key: str
    difficulty: int
    melody: List[NoteModel]
    harmony: List[NoteModel]
    duration_ms: int
    f0: Optional[Dict[str, F0Curve]] = None
    message: str


class HarmonyRequest(BaseModel):
    melody: List[NoteModel] = Field(default_factory=list)
    interval: int = Field(default=2, ge=0, le=24, description="Scale steps (diatonic) or semitones (fixed)")
    mode: HarmonyMode = Field(default=HarmonyMode.DIATONIC)
    key: str = Field(default="C")
    direction: int = Field(default=1)

    @field_validator("direction")
    @classmethod
    def validate_direction(cls, value: int) -> int:
        if value not in (1, -1):
            raise ValueError("direction must be 1 or -1")
        return value


class HarmonyResponse(BaseModel):
    harmony: List[NoteModel]
    scale_degrees: Tuple[int, ...]


def _build_phrase(options: PhraseOptions) -> Tuple[List[Note], List[Note]]:
    if options.mode is HarmonyMode.FIXED:
        amount = interval_to_semitones(options.interval)
    else:
        amount = interval_to_scale_steps(options.interval)

    melody = SeededMelodyGenerator().generate(
        GenerationParams(
            seed=options.seed,
            key=options.key,
            difficulty=options.difficulty,
            note_count=options.note_count,
        )
    )
    harmony = HarmonyEngine().compute_harmony(
        HarmonyParams(
            melody=melody,
            interval=amount,
            mode=options.mode,
            key=options.key,
            direction=options.direction,
        )
    )
    return melody, harmony


async def _read_take(file: UploadFile) -> Tuple[np.ndarray, int]:
    data = await file.read()
    if len(data) > Config.MAX_UPLOAD_SIZE:
        raise ValueError(f"Upload too large: {len(data)} bytes (max {Config.MAX_UPLOAD_SIZE})")
    try:
        audio, sr = read_wav_bytes(data)
    except RuntimeError as exc:  # soundfile.LibsndfileError
        raise ValueError(f"Unreadable audio: {exc}") from exc
    if len(audio) / sr > Config.MAX_AUDIO_DURATION:
        raise ValueError(f"Take longer than {Config.MAX_AUDIO_DURATION} s")
    return to_mono(audio), sr


def _detector_config(sample_rate: int) -> PitchDetectorConfig:
    return replace(PitchDetectorConfig.from_settings(get_settings()), sample_rate=sample_rate)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown hooks for logging/tracing."""
    try:
        setup_logging()
    except Exception as exc:  # pragma: no cover - logging fallback
        logging.basicConfig(level=getattr(logging, Config.LOG_LEVEL, logging.INFO))
        logger.warning(f"Logging fallback (invalid env?): {exc}")

    try:
        setup_tracing(service_name=f"{SERVICE_NAME}-pod", service_version=SERVICE_VERSION)
    except Exception as exc:  # pragma: no cover - optional tracing
        logger.info(f"Tracing not configured: {exc}")
    logger.info(f"{SERVICE_NAME} pod starting (v{SERVICE_VERSION})...")
    yield
    logger.info(f"{SERVICE_NAME} pod shutting down...")


app = FastAPI(
    title="Practice Pod",
    description="Seeded harmony practice phrases and take scoring",
    version=SERVICE_VERSION,
    lifespan=lifespan,
)


@app.get("/")
async def root():
    """API info endpoint."""
    return {
        "service": SERVICE_NAME,
        "version": SERVICE_VERSION,
        "description": "Harmony practice: phrase generation, harmonization, take scoring",
        "endpoints": {
            "GET /": "This info",
            "POST /health": "Health check",
            "POST /generate": "Generate melody + harmony",
            "POST /harmony": "Harmonize a melody",
            "POST /score": "Score a recorded take (WAV)",
            "POST /detect": "Pitch track of a recording (WAV)",
        },
    }


@app.post("/health")
async def health():
    """Health check endpoint."""
    return {"status": "ok", "service": SERVICE_NAME, "version": SERVICE_VERSION}


@app.post("/generate", response_model=GenerateResponse)
async def generate(request: GenerateRequest):
    """Generate a practice phrase (and optional target F0 curves)."""
    try:
        melody, harmony = _build_phrase(request)

        f0_payload = None
        if request.emit_f0:
            f0_payload = {}
            for name, notes in (("melody", melody), ("harmony", harmony)):
                times, values = notes_to_f0_curve(notes, hop_ms=request.hop_ms)
                f0_payload[name] = F0Curve(times_ms=times.tolist(), values=values.astype(float).tolist())

        return GenerateResponse(
            seed=request.seed,
            key=request.key,
            difficulty=int(request.difficulty),
            melody=[NoteModel.from_note(n) for n in melody],
            harmony=[NoteModel.from_note(n) for n in harmony],
            duration_ms=melody_duration_ms(melody),
            f0=f0_payload,
            message=f"Generated {len(melody)} notes in {request.key}",
        )

    except ValueError as exc:
        logger.error(f"Validation error: {exc}")
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except Exception as exc:  # pragma: no cover - unexpected errors
        logger.exception(f"Generation error: {exc}")
        raise HTTPException(status_code=500, detail="Phrase generation failed") from exc


@app.post("/harmony", response_model=HarmonyResponse)
async def harmony(request: HarmonyRequest):
    """Compute the harmony line for an explicit melody."""
    try:
        engine = HarmonyEngine()
        notes = engine.compute_harmony(
            HarmonyParams(
                melody=[n.to_note() for n in request.melody],
                interval=request.interval,
                mode=request.mode,
                key=request.key,
                direction=request.direction,
            )
        )
        return HarmonyResponse(
            harmony=[NoteModel.from_note(n) for n in notes],
            scale_degrees=engine.get_scale_degrees(request.key),
        )

    except ValueError as exc:
        logger.error(f"Validation error: {exc}")
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except Exception as exc:
        logger.exception(f"Harmony error: {exc}")
        raise HTTPException(status_code=500, detail="Harmony computation failed") from exc


@app.post("/score")
async def score(
    file: UploadFile = File(...),
    seed: int = Form(42),
    key: str = Form("C"),
    difficulty: str = Form("2"),
    note_count: int = Form(8),
    interval: str = Form(HarmonyInterval.THIRD.value),
    mode: str = Form(HarmonyMode.DIATONIC.value),
    direction: int = Form(1),
    tolerance_cents: float = Form(50.0),
    hop_ms: float = Form(DEFAULT_HOP_MS),
):
    """Score a recorded take against the harmony of a seeded phrase.

    The take must start at the beginning of the phrase.
    """
    try:
        options = PhraseOptions(
            seed=seed,
            key=key,
            difficulty=difficulty,
            note_count=note_count,
            interval=interval,
            mode=mode,
            direction=direction,
        )
        if tolerance_cents <= 0:
            raise ValueError("tolerance_cents must be positive")
        if hop_ms <= 0:
            raise ValueError("hop_ms must be positive")

        audio, sr = await _read_take(file)
        _, harmony_notes = _build_phrase(options)
        with span("practice.score_take", seed=options.seed, sample_rate=sr):
            result = score_take(
                audio,
                sr,
                harmony_notes,
                tolerance_cents=tolerance_cents,
                config=_detector_config(sr),
                hop_ms=hop_ms,
            )
        logger.info(
            "Scored take",
            extra={"fields": {"seed": options.seed, "score_percent": round(result.overall_score_percent, 1)}},
        )
        return {
            "seed": options.seed,
            "harmony": [NoteModel.from_note(n).model_dump() for n in harmony_notes],
            "score": result.to_dict(),
        }

    except ValueError as exc:
        logger.error(f"Validation error: {exc}")
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except Exception as exc:  # pragma: no cover - unexpected errors
        logger.exception(f"Scoring error: {exc}")
        raise HTTPException(status_code=500, detail="Take scoring failed") from exc


@app.post("/detect")
async def detect(file: UploadFile = File(...), hop_ms: float = Form(DEFAULT_HOP_MS)):
    """Per-hop smoothed pitch track of a recording."""
    try:
        if hop_ms <= 0:
            raise ValueError("hop_ms must be positive")
        audio, sr = await _read_take(file)
        with span("practice.track_pitch", sample_rate=sr):
            track = track_pitch(audio, sr, config=_detector_config(sr), hop_ms=hop_ms)

        frames = []
        for estimate in track:
            midi = frequency_to_midi(estimate.frequency_hz)
            frames.append(
                {
                    "timestamp_ms": estimate.timestamp_ms,
                    "frequency_hz": estimate.frequency_hz,
                    "is_voiced": estimate.is_voiced,
                    "confidence": estimate.confidence,
                    "midi": midi,
                    "note": midi_to_note_name(midi) if estimate.is_voiced else None,
                }
            )

        voiced = sum(1 for f in frames if f["is_voiced"])
        return {"sample_rate": sr, "frames": frames, "voiced_frames": voiced}

    except ValueError as exc:
        logger.error(f"Validation error: {exc}")
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except Exception as exc:  # pragma: no cover - unexpected errors
        logger.exception(f"Detection error: {exc}")
        raise HTTPException(status_code=500, detail="Pitch detection failed") from exc


if __name__ == "__main__":  # pragma: no cover
    import uvicorn

    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=Config.SERVICE_PORT,
        reload=Config.ENV == "development",
        log_level="info",
    )
