#!/usr/bin/env python3
"""
Spectral flux onset envelope
"""

import numpy as np
import librosa
from scipy import fft as sp_fft
from scipy.signal import get_window
from typing import Tuple
from .config import AnalysisConstants
from .models import FluxEnvelope, MonoSampleBuffer


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero for positive values"""
    return int(np.floor(value + 0.5))


def downsample_factor(native_rate: float,
                      target_rate: float = AnalysisConstants.TARGET_FLUX_RATE) -> int:
    """Integer block size bringing native_rate closest to target_rate, floored at 1"""
    return max(round_half_up(native_rate / target_rate), 1)


def block_average(values: np.ndarray, factor: int) -> np.ndarray:
    """Average non-overlapping blocks; a trailing partial block is averaged on its own"""
    if factor <= 1 or len(values) == 0:
        return values
    full = (len(values) // factor) * factor
    averaged = values[:full].reshape(-1, factor).mean(axis=1)
    if full < len(values):
        averaged = np.append(averaged, values[full:].mean())
    return averaged.astype(np.float32)


def spectral_flux(samples: np.ndarray, sample_rate: int,
                  window_size: int = AnalysisConstants.FLUX_WINDOW,
                  hop_size: int = AnalysisConstants.FLUX_HOP,
                  target_rate: float = AnalysisConstants.TARGET_FLUX_RATE) -> Tuple[np.ndarray, float]:
    """
    Half-wave rectified spectral difference of Hann-windowed frames

    Returns (envelope, envelope_rate). Fewer than MIN_FLUX_WINDOW samples
    yields an empty envelope with rate 0.
    """
    samples = np.ascontiguousarray(samples, dtype=np.float32)
    window = min(window_size, len(samples))
    if window < AnalysisConstants.MIN_FLUX_WINDOW:
        return np.zeros(0, dtype=np.float32), 0.0

    hop = max(min(hop_size, window // 4), 1)
    hann = get_window('hann', window).astype(np.float32)

    # (window, n_frames) strided view, no copy
    frames = librosa.util.frame(samples, frame_length=window, hop_length=hop)
    n_frames = frames.shape[1]
    half = window // 2

    envelope = np.empty(n_frames, dtype=np.float32)
    prev_mag = np.zeros(half - 1, dtype=np.float32)
    batch = AnalysisConstants.FLUX_BATCH_FRAMES

    for start in range(0, n_frames, batch):
        stop = min(start + batch, n_frames)
        windowed = frames[:, start:stop].T * hann
        spectrum = sp_fft.rfft(windowed, axis=-1)
        # positive-frequency bins without DC
        mags = np.abs(spectrum[:, 1:half]).astype(np.float32)

        previous = np.vstack([prev_mag[np.newaxis, :], mags[:-1]])
        rectified = np.maximum(mags - previous, 0.0)
        envelope[start:stop] = rectified.sum(axis=1)
        prev_mag = mags[-1]

    native_rate = sample_rate / hop
    factor = downsample_factor(native_rate, target_rate)
    if factor <= 1:
        return envelope, native_rate

    return block_average(envelope, factor), native_rate / factor


def flux_envelope(buffer: MonoSampleBuffer) -> FluxEnvelope:
    """Envelope for a decoded analysis buffer"""
    values, rate = spectral_flux(buffer.samples, buffer.sample_rate)
    return FluxEnvelope(values=values, rate=rate)
