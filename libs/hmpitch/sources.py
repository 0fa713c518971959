"""Audio input sources feeding the pitch detector.

`MicrophoneSource` wraps a sounddevice input stream; its callback runs on
the PortAudio thread. `BufferedSource` delivers pre-recorded audio block by
block on the caller's thread, for tests and offline takes.
"""

from __future__ import annotations

import asyncio
import importlib.util
import logging
from typing import Callable, Optional, Protocol

import numpy as np

from hmcore.audio import DEFAULT_SAMPLE_RATE, frame_signal

from .errors import AudioSourceError, MicrophonePermissionError

logger = logging.getLogger(__name__)

AudioCallback = Callable[[np.ndarray], None]

DEFAULT_BLOCK_SIZE = 2048

# Microphone blocks are one estimate hop (20 ms at 44.1 kHz)
DEFAULT_HOP_SIZE = 882


class AudioSource(Protocol):
    sample_rate: int
    block_size: int

    def open(self, callback: AudioCallback) -> None:
        ...

    def close(self) -> None:
        ...


class MicrophoneSource:
    """Mono float32 microphone input via sounddevice."""

    def __init__(
        self,
        sample_rate: int = DEFAULT_SAMPLE_RATE,
        block_size: int = DEFAULT_HOP_SIZE,
        device: Optional[int] = None,
    ):
        self.sample_rate = sample_rate
        self.block_size = block_size
        self.device = device
        self._stream = None

    @property
    def is_open(self) -> bool:
        return self._stream is not None

    def open(self, callback: AudioCallback) -> None:
        if self._stream is not None:
            return

        try:
            import sounddevice as sd
        except OSError as exc:  # PortAudio shared library missing
            raise AudioSourceError(f"PortAudio unavailable: {exc}") from exc

        def on_block(indata, frames, time_info, status):
            if status:
                logger.debug(f"Input stream status: {status}")
            callback(indata[:, 0].copy())

        try:
            stream = sd.InputStream(
                samplerate=self.sample_rate,
                blocksize=self.block_size,
                channels=1,
                dtype="float32",
                device=self.device,
                callback=on_block,
            )
            stream.start()
        except sd.PortAudioError as exc:
            raise MicrophonePermissionError(f"Cannot open microphone: {exc}") from exc

        self._stream = stream
        logger.info(f"Microphone stream open ({self.sample_rate} Hz, block {self.block_size})")

    def close(self) -> None:
        if self._stream is None:
            return
        stream, self._stream = self._stream, None
        stream.stop()
        stream.close()
        logger.info("Microphone stream closed")


class BufferedSource:
    """Push-driven source for recorded audio."""

    def __init__(self, sample_rate: int = DEFAULT_SAMPLE_RATE, block_size: int = DEFAULT_BLOCK_SIZE):
        self.sample_rate = sample_rate
        self.block_size = block_size
        self._callback: Optional[AudioCallback] = None

    @property
    def is_open(self) -> bool:
        return self._callback is not None

    def open(self, callback: AudioCallback) -> None:
        self._callback = callback

    def close(self) -> None:
        self._callback = None

    def push(self, samples: np.ndarray) -> int:
        """Deliver whole blocks of `samples`; returns the number delivered.

        Nothing is delivered while the source is closed.
        """
        delivered = 0
        for _, block in frame_signal(samples, self.block_size):
            if self._callback is None:
                break
            self._callback(block)
            delivered += 1
        return delivered


async def request_microphone_access(device: Optional[int] = None) -> bool:
    """Check that an input device can be used.

    Desktop platforms have no permission prompt to await; access is granted
    when PortAudio reports a usable input device.
    """
    if importlib.util.find_spec("sounddevice") is None:
        logger.warning("sounddevice is not installed; microphone unavailable")
        return False

    def probe() -> bool:
        try:
            import sounddevice as sd
        except OSError as exc:
            logger.warning(f"PortAudio unavailable: {exc}")
            return False
        try:
            info = sd.query_devices(device=device, kind="input")
        except (ValueError, sd.PortAudioError) as exc:
            logger.warning(f"No usable input device: {exc}")
            return False
        return int(info.get("max_input_channels", 0)) > 0

    return await asyncio.to_thread(probe)


__all__ = [
    "AudioCallback",
    "AudioSource",
    "MicrophoneSource",
    "BufferedSource",
    "request_microphone_access",
]
