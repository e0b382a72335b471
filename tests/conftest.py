#!/usr/bin/env python3
"""
Shared fixtures: synthetic click tracks and an in-memory output backend
"""

import logging
from pathlib import Path

import librosa
import numpy as np
import pytest
import soundfile as sf

from nevealdj.core.errors import SinkError
from nevealdj.core.models import AnalysisResult

SAMPLE_RATE = 44100


def click_track(bpm: float, seconds: float, sample_rate: int = SAMPLE_RATE,
                offbeat_level: float = 0.6) -> np.ndarray:
    """Clicks on every beat with quieter clicks halfway between them"""
    period = 60.0 / bpm
    length = int(seconds * sample_rate)
    beats = np.arange(0.0, seconds, period)
    offbeats = beats + period / 2.0
    offbeats = offbeats[offbeats < seconds]

    signal = librosa.clicks(times=beats, sr=sample_rate, length=length)
    if offbeat_level > 0:
        signal = signal + offbeat_level * librosa.clicks(times=offbeats, sr=sample_rate, length=length)
    return (0.5 * signal / np.max(np.abs(signal))).astype(np.float32)


@pytest.fixture
def write_click_track(tmp_path):
    """Factory writing a click track to tmp_path and returning its path"""
    def _write(name: str = "clicks.wav", bpm: float = 128.0, seconds: float = 4.0,
               sample_rate: int = SAMPLE_RATE, channels: int = 1) -> Path:
        mono = click_track(bpm, seconds, sample_rate)
        data = mono if channels == 1 else np.column_stack([mono] * channels)
        path = tmp_path / name
        sf.write(str(path), data, sample_rate)
        return path
    return _write


class FakeAnalyzer:
    """AnalysisEngine stand-in returning a fixed BPM and counting calls"""

    def __init__(self, bpm=100.0):
        self.bpm = bpm
        self.calls = []

    def analyze_track(self, path):
        self.calls.append(Path(path))
        return AnalysisResult(bpm=self.bpm, sample_rate=SAMPLE_RATE, analyzed_seconds=1.0)


class FakeSink:
    """Records the state a real sink would hold"""

    def __init__(self, fail_append=False):
        self.fail_append = fail_append
        self.paused = False
        self.volume = 1.0
        self.speed = 1.0
        self.stopped = False
        self.stream = None

    @property
    def is_paused(self):
        return self.paused

    def append(self, stream):
        if self.fail_append:
            raise SinkError("append failed")
        self.stream = stream

    def play(self):
        self.paused = False

    def pause(self):
        self.paused = True

    def stop(self):
        self.stopped = True
        self.paused = True

    def set_volume(self, volume):
        self.volume = volume

    def set_speed(self, speed):
        self.speed = speed


class FakeBackend:
    """Hands out FakeSinks; failures are injected per call"""

    def __init__(self):
        self.sinks = []
        self.stream_error = None
        self.sink_error = None
        self.fail_append = False

    def open_stream(self, path):
        if self.stream_error is not None:
            raise self.stream_error
        return Path(path).name

    def open_sink(self):
        if self.sink_error is not None:
            raise self.sink_error
        sink = FakeSink(fail_append=self.fail_append)
        self.sinks.append(sink)
        return sink

    @property
    def last_sink(self):
        return self.sinks[-1]


@pytest.fixture
def fake_backend():
    return FakeBackend()


@pytest.fixture
def fake_analyzer():
    return FakeAnalyzer()


@pytest.fixture(autouse=True)
def reset_package_logging():
    """Drop handlers installed by CLI runs so later tests log through pytest"""
    yield
    logger = logging.getLogger("nevealdj")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    logger.propagate = True
