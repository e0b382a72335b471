#!/usr/bin/env python3
"""
Audio output backend
Each deck owns one Sink; a Sink plays one decoded stream through sounddevice
"""

import logging
import threading
import numpy as np
import soundfile as sf
import audioread
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union
from .config import DeckConstants, PlaybackSettings
from .decoder import iter_frames, probe
from .errors import AudioIOError, DecodeError, SinkError

logger = logging.getLogger(__name__)

MAX_OUTPUT_CHANNELS = 2


def _sounddevice():
    """sounddevice, imported on first use so analysis works without PortAudio"""
    try:
        import sounddevice
    except OSError as e:
        raise SinkError(f"PortAudio is not available: {e}") from e
    return sounddevice


@dataclass
class DecodedStream:
    """Whole-file PCM ready for playback"""
    samples: np.ndarray  # (frames, channels) float32
    sample_rate: int
    label: str

    @property
    def channels(self) -> int:
        return self.samples.shape[1]

    @property
    def duration(self) -> float:
        return len(self.samples) / self.sample_rate


def open_decoded_stream(path: Union[str, Path]) -> DecodedStream:
    """Decode a whole file for playback"""
    path = Path(path)
    try:
        with open(path, 'rb'):
            pass
    except OSError as e:
        raise AudioIOError(f"Failed to open {path}: {e}") from e

    with probe(path) as reader:
        if reader.sample_rate <= 0:
            raise DecodeError(f"Invalid sample rate in {path}")
        try:
            blocks = list(iter_frames(reader))
        except (sf.LibsndfileError, audioread.DecodeError) as e:
            raise DecodeError(f"Failed to decode {path}: {e}") from e
        sample_rate = int(reader.sample_rate)

    if not blocks:
        raise DecodeError(f"No audio could be decoded from {path}")

    samples = np.concatenate(blocks).astype(np.float32, copy=False)
    if samples.shape[1] > MAX_OUTPUT_CHANNELS:
        samples = np.ascontiguousarray(samples[:, :MAX_OUTPUT_CHANNELS])
    return DecodedStream(samples=samples, sample_rate=sample_rate, label=path.name)


@dataclass
class OutputHandle:
    """Output device selection shared by every sink"""
    device: Optional[Union[int, str]] = None
    blocksize: int = 1024
    latency: Union[str, float] = "low"

    @classmethod
    def from_settings(cls, settings: PlaybackSettings) -> "OutputHandle":
        return cls(device=settings.device, blocksize=settings.blocksize, latency=settings.latency)


class Sink:
    """
    One playback voice with pause, volume and varispeed

    The stream is read at a fractional position advanced by `speed` per
    output frame, so speed changes tempo and pitch together.
    """

    def __init__(self, handle: OutputHandle):
        self.handle = handle
        self._lock = threading.Lock()
        self._source: Optional[DecodedStream] = None
        self._output = None
        self._position = 0.0
        self._paused = False
        self._volume = 1.0
        self._speed = 1.0
        self._stopped = False

    @property
    def is_paused(self) -> bool:
        return self._paused

    @property
    def volume(self) -> float:
        return self._volume

    @property
    def speed(self) -> float:
        return self._speed

    @property
    def position_seconds(self) -> float:
        if self._source is None:
            return 0.0
        return self._position / self._source.sample_rate

    @property
    def finished(self) -> bool:
        return self._source is None or self._position >= len(self._source.samples) - 1

    def append(self, stream: DecodedStream):
        """Queue a stream and open the device stream that plays it"""
        sd = _sounddevice()
        if self._stopped:
            raise SinkError("Sink has been stopped")
        with self._lock:
            self._source = stream
            self._position = 0.0
        try:
            self._output = sd.OutputStream(
                samplerate=stream.sample_rate,
                channels=stream.channels,
                dtype='float32',
                blocksize=self.handle.blocksize,
                latency=self.handle.latency,
                device=self.handle.device,
                callback=self._callback,
            )
            self._output.start()
        except (sd.PortAudioError, ValueError) as e:
            self._output = None
            raise SinkError(f"Audio output error: {e}") from e

    def play(self):
        self._paused = False

    def pause(self):
        self._paused = True

    def stop(self):
        """Stop output and release the device stream"""
        self._stopped = True
        self._paused = True
        output, self._output = self._output, None
        if output is not None:
            sd = _sounddevice()
            try:
                output.stop()
                output.close()
            except sd.PortAudioError as e:
                logger.warning("Error closing output stream: %s", e)
        with self._lock:
            self._source = None

    def set_volume(self, volume: float):
        self._volume = float(volume)

    def set_speed(self, speed: float):
        self._speed = max(float(speed), DeckConstants.MIN_SPEED)

    def _callback(self, outdata, frames, time_info, status):
        with self._lock:
            source = self._source
            if source is None or self._paused or self._stopped:
                outdata.fill(0)
                return

            data = source.samples
            last = len(data) - 1
            speed = self._speed
            positions = self._position + speed * np.arange(frames)
            self._position += speed * frames

        outdata.fill(0)
        playable = positions < last
        if not playable.any():
            return

        pos = positions[playable]
        base = pos.astype(np.int64)
        frac = (pos - base)[:, np.newaxis].astype(np.float32)
        chunk = data[base] * (1.0 - frac) + data[base + 1] * frac
        outdata[:len(chunk)] = chunk * self._volume


class AudioBackend:
    """Opens decoded streams and playback sinks on one output handle"""

    def __init__(self, handle: Optional[OutputHandle] = None):
        self.handle = handle or OutputHandle()

    def open_stream(self, path: Union[str, Path]) -> DecodedStream:
        return open_decoded_stream(path)

    def open_sink(self) -> Sink:
        sd = _sounddevice()
        try:
            sd.query_devices(self.handle.device, kind='output')
        except (sd.PortAudioError, ValueError) as e:
            raise SinkError(f"No usable audio output device: {e}") from e
        return Sink(self.handle)
