#!/usr/bin/env python3
"""
Autocorrelation tempo estimation over a flux envelope
"""

import math
import numpy as np
from typing import Optional, Sequence, Tuple
from .config import AnalysisConstants
from .flux import round_half_up
from .models import FluxEnvelope, LagScoreTable


def lag_bounds(rate: float,
               bpm_min: float = AnalysisConstants.BPM_MIN,
               bpm_max: float = AnalysisConstants.BPM_MAX) -> Tuple[int, int]:
    """(min_lag, max_lag) in envelope samples for the BPM range"""
    min_lag = round_half_up(rate * 60.0 / bpm_max)
    max_lag = round_half_up(rate * 60.0 / bpm_min)
    return min_lag, max_lag


def autocorrelation_scores(centered: np.ndarray, min_lag: int, max_lag: int) -> LagScoreTable:
    """
    Normalized autocorrelation for each lag in [min_lag, max_lag]
    Non-positive scores are stored as zero so they never act as candidates
    """
    n = len(centered)
    scores = np.zeros(max_lag + 1, dtype=np.float32)
    for lag in range(min_lag, max_lag + 1):
        norm = n - lag
        if norm <= 0:
            continue
        score = float(np.dot(centered[lag:], centered[:n - lag])) / norm
        if score > 0.0:
            scores[lag] = score
    return LagScoreTable(scores=scores, min_lag=min_lag, max_lag=max_lag)


def harmonic_score(lag: int, raw_scores: np.ndarray,
                   harmonics: Sequence[Tuple[float, float]] = AnalysisConstants.HARMONICS) -> float:
    """Weighted sum of the raw scores at lag multiples and submultiples"""
    if lag <= 0 or lag >= len(raw_scores):
        return 0.0

    total = 0.0
    for ratio, weight in harmonics:
        idx = round_half_up(lag * ratio)
        if idx <= 0 or idx >= len(raw_scores):
            continue
        score = float(raw_scores[idx])
        if score > 0.0:
            total += score * weight
    return total


def select_best_lag(table: LagScoreTable) -> Optional[int]:
    """Candidate lag with the highest harmonic-weighted score; ties keep the shorter lag"""
    best_lag = None
    best_score = -math.inf
    for lag in table.candidates:
        total = harmonic_score(int(lag), table.scores)
        if total > best_score:
            best_score = total
            best_lag = int(lag)
    return best_lag


def parabolic_offset(prev: float, best: float, nxt: float,
                     epsilon: float = AnalysisConstants.REFINEMENT_EPSILON) -> float:
    """Vertex offset of the parabola through three neighbouring scores, clamped to [-1, 1]"""
    denom = prev - 2.0 * best + nxt
    if abs(denom) < epsilon:
        return 0.0
    offset = 0.5 * (prev - nxt) / denom
    return float(min(max(offset, -1.0), 1.0))


def refine_lag(lag: int, scores: np.ndarray) -> float:
    """Sub-sample lag from parabolic interpolation around an integer peak"""
    if lag <= 0 or lag >= len(scores):
        return float(lag)
    best = float(scores[lag])
    prev = float(scores[lag - 1]) if lag > 1 else best
    nxt = float(scores[lag + 1]) if lag + 1 < len(scores) else best
    return lag + parabolic_offset(prev, best, nxt)


def estimate_bpm(envelope: np.ndarray, rate: float,
                 bpm_min: float = AnalysisConstants.BPM_MIN,
                 bpm_max: float = AnalysisConstants.BPM_MAX) -> Optional[float]:
    """
    BPM from an onset envelope, or None when no confident estimate exists
    """
    envelope = np.asarray(envelope, dtype=np.float32)
    if len(envelope) < AnalysisConstants.MIN_ENVELOPE_LENGTH or rate <= 0:
        return None

    centered = envelope - envelope.mean()

    min_lag, max_lag = lag_bounds(rate, bpm_min, bpm_max)
    if max_lag >= len(centered) or min_lag == 0:
        return None

    table = autocorrelation_scores(centered, min_lag, max_lag)
    best_lag = select_best_lag(table)
    if best_lag is None:
        return None

    refined = refine_lag(best_lag, table.scores)
    bpm = 60.0 * rate / refined
    if not math.isfinite(bpm):
        return None
    return float(min(max(bpm, bpm_min), bpm_max))


def estimate_bpm_from_envelope(envelope: FluxEnvelope) -> Optional[float]:
    return estimate_bpm(envelope.values, envelope.rate)
