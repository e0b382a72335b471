#!/usr/bin/env python3
"""
Sample mixdown for tempo analysis
Pulls decoded packets, averages channels to mono and caps the analysis window
"""

import numpy as np
import soundfile as sf
import audioread
from pathlib import Path
from typing import Callable, List, Union
from .config import AnalysisConstants
from .decoder import FormatReader, iter_frames, probe
from .errors import DecodeError, InsufficientAudio, InvalidSampleRate
from .models import MonoSampleBuffer


def downmix_to_mono(frames: np.ndarray) -> np.ndarray:
    """Average channels per sample position"""
    frames = np.asarray(frames, dtype=np.float32)
    if frames.ndim == 1:
        return frames
    channel_count = max(frames.shape[1], 1)
    return (frames.sum(axis=1) / channel_count).astype(np.float32)


def read_mono_samples(reader: FormatReader,
                      max_seconds: int = AnalysisConstants.MAX_ANALYSIS_SECONDS) -> MonoSampleBuffer:
    """Drain a reader into a mono buffer of at most max_seconds"""
    sample_rate = int(reader.sample_rate or 0)
    if sample_rate <= 0:
        raise InvalidSampleRate(f"Invalid sample rate {reader.sample_rate} in {reader.path}")

    target_samples = sample_rate * max_seconds
    chunks: List[np.ndarray] = []
    collected = 0

    for frames in iter_frames(reader):
        mono = downmix_to_mono(frames)
        chunks.append(mono)
        collected += len(mono)
        if collected >= target_samples:
            break

    samples = np.concatenate(chunks) if chunks else np.zeros(0, dtype=np.float32)
    samples = samples[:target_samples]

    # Tempo estimation below one second is unreliable
    if len(samples) < sample_rate:
        raise InsufficientAudio(
            f"Could not decode enough samples from {reader.path} "
            f"({len(samples)} < {sample_rate})"
        )

    return MonoSampleBuffer(samples=samples, sample_rate=sample_rate)


def decode_mono_samples(path: Union[str, Path],
                        max_seconds: int = AnalysisConstants.MAX_ANALYSIS_SECONDS,
                        opener: Callable[[Path], FormatReader] = probe) -> MonoSampleBuffer:
    """Decode the first max_seconds of a file to mono float32"""
    path = Path(path)
    with opener(path) as reader:
        try:
            return read_mono_samples(reader, max_seconds)
        except (sf.LibsndfileError, audioread.DecodeError) as e:
            raise DecodeError(f"Failed to decode {path}: {e}") from e
