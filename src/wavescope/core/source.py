"""
Frequency data sources.

A source owns the analysis resolution and, on request, fills a byte
magnitude buffer (one value 0-255 per frequency bin) for the current
instant. The renderer only reads the buffer.
"""

import abc
import logging
from pathlib import Path
from typing import Iterable, Union

import librosa
import numpy as np

logger = logging.getLogger(__name__)


class FrequencyDataSource(abc.ABC):
    """Contract the frame renderer consumes."""

    def __init__(self):
        self.window_size: int | None = None

    def configure(self, window_size: int):
        """Set the analysis window size; bin count becomes window_size // 2."""
        if window_size < 32 or window_size & (window_size - 1):
            raise ValueError(f"window_size must be a power of two >= 32, got {window_size}")
        self.window_size = window_size

    @property
    def frequency_bin_count(self) -> int:
        if self.window_size is None:
            raise RuntimeError("Source is not configured; call configure() first")
        return self.window_size // 2

    def refresh(self, buffer: np.ndarray):
        """Fill ``buffer`` in place with the current byte magnitudes."""
        if len(buffer) != self.frequency_bin_count:
            raise ValueError(
                f"Buffer holds {len(buffer)} bins, source produces {self.frequency_bin_count}"
            )
        self._fill(buffer)

    @abc.abstractmethod
    def _fill(self, buffer: np.ndarray):
        pass


class SilentSource(FrequencyDataSource):
    """A source whose audio graph never started: always silence."""

    def _fill(self, buffer: np.ndarray):
        buffer[:] = 0


class ArraySource(FrequencyDataSource):
    """
    Replays scripted magnitude frames, one per refresh.

    Frames shorter than the bin count are zero padded, longer ones are
    truncated. Once the frames run out the source is silent, unless
    ``loop`` is set.
    """

    def __init__(self, frames: Iterable[Iterable[int]], loop: bool = False):
        super().__init__()
        self.frames = [np.asarray(f, dtype=np.uint8) for f in frames]
        self.loop = loop
        self.index = 0

    def _fill(self, buffer: np.ndarray):
        n = len(buffer)
        buffer[:] = 0
        if not self.frames:
            return
        if self.index >= len(self.frames):
            if not self.loop:
                return
            self.index = 0
        frame = self.frames[self.index][:n]
        buffer[:len(frame)] = frame
        self.index += 1


def _blackman(n: int) -> np.ndarray:
    """Blackman window as used by WebAudio analysers (alpha = 0.16)."""
    k = np.arange(n)
    a0, a1, a2 = 0.42, 0.5, 0.08
    return a0 - a1 * np.cos(2 * np.pi * k / n) + a2 * np.cos(4 * np.pi * k / n)


class AudioFileSource(FrequencyDataSource):
    """
    Byte frequency data from an audio file at a movable playback position.

    Reproduces ``AnalyserNode.getByteFrequencyData``: Blackman window,
    FFT magnitude scaled by 1/N, exponential smoothing over time, then
    dB values mapped linearly from [min_decibels, max_decibels] to 0-255.
    The source is silent until ``start()`` is called.
    """

    def __init__(
        self,
        audio_path: Union[str, Path],
        sample_rate: int | None = None,
        smoothing_time_constant: float = 0.8,
        min_decibels: float = -100.0,
        max_decibels: float = -30.0,
    ):
        """
        Load the audio file.

        Args:
            audio_path: Path to audio file (wav, mp3, flac).
            sample_rate: Target sample rate. None preserves original.
            smoothing_time_constant: Temporal smoothing (0-1).
            min_decibels: dB value mapped to byte 0.
            max_decibels: dB value mapped to byte 255.
        """
        super().__init__()
        if not 0 <= smoothing_time_constant <= 1:
            raise ValueError("smoothing_time_constant must be in [0, 1]")
        if min_decibels >= max_decibels:
            raise ValueError("min_decibels must be below max_decibels")

        self.audio_path = Path(audio_path)
        self.samples, self.sample_rate = librosa.load(self.audio_path, sr=sample_rate, mono=True)
        self.smoothing_time_constant = smoothing_time_constant
        self.min_decibels = min_decibels
        self.max_decibels = max_decibels

        self.position = 0.0
        self.started = False
        self._smoothed: np.ndarray | None = None
        self._window: np.ndarray | None = None

        logger.debug(
            "loaded %s: %.2fs at %d Hz", self.audio_path, self.duration, self.sample_rate
        )

    @property
    def duration(self) -> float:
        return len(self.samples) / self.sample_rate

    @property
    def finished(self) -> bool:
        return self.position >= self.duration

    def configure(self, window_size: int):
        super().configure(window_size)
        self._window = _blackman(window_size)
        self._smoothed = np.zeros(window_size // 2, dtype=np.float64)

    def start(self):
        self.started = True

    def stop(self):
        self.started = False

    def seek(self, position: float):
        self.position = min(max(0.0, position), self.duration)

    def advance(self, dt: float):
        self.seek(self.position + dt)

    def _time_window(self) -> np.ndarray:
        """The window_size samples ending at the playback position."""
        n = self.window_size
        end = int(round(self.position * self.sample_rate))
        start = end - n
        chunk = self.samples[max(0, start):end]
        if len(chunk) < n:
            chunk = np.concatenate([np.zeros(n - len(chunk), dtype=chunk.dtype), chunk])
        return chunk

    def _fill(self, buffer: np.ndarray):
        if not self.started:
            buffer[:] = 0
            return

        n = self.window_size
        spectrum = np.fft.rfft(self._time_window() * self._window)[: n // 2]
        magnitude = np.abs(spectrum) / n

        tau = self.smoothing_time_constant
        self._smoothed = tau * self._smoothed + (1 - tau) * magnitude

        with np.errstate(divide="ignore"):
            db = 20 * np.log10(self._smoothed)
        scale = 255.0 / (self.max_decibels - self.min_decibels)
        scaled = np.floor(scale * (db - self.min_decibels))
        buffer[:] = np.clip(np.nan_to_num(scaled, neginf=0.0), 0, 255).astype(np.uint8)
