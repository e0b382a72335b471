#!/usr/bin/env python3
"""
Tempo analysis pipeline: decode -> spectral flux -> autocorrelation
"""

import logging
import time
import numpy as np
from pathlib import Path
from typing import Optional, Union
from .config import AnalysisConstants
from .flux import spectral_flux
from .mixdown import decode_mono_samples
from .models import AnalysisResult
from .tempo import estimate_bpm

logger = logging.getLogger(__name__)


def estimate_bpm_from_samples(samples: np.ndarray, sample_rate: int) -> Optional[float]:
    """BPM of a mono buffer; silence or too little signal gives None"""
    if len(samples) == 0 or sample_rate <= 0:
        return None
    envelope, envelope_rate = spectral_flux(samples, sample_rate)
    return estimate_bpm(envelope, envelope_rate)


class AnalysisEngine:
    """Runs the blocking tempo pipeline; every call allocates its own buffers"""

    def __init__(self, max_seconds: int = AnalysisConstants.MAX_ANALYSIS_SECONDS):
        self.max_seconds = max_seconds

    def analyze_track(self, path: Union[str, Path]) -> AnalysisResult:
        """Analyze a file; raises DecodeError when it cannot be decoded"""
        path = Path(path)
        started = time.perf_counter()

        buffer = decode_mono_samples(path, self.max_seconds)
        bpm = estimate_bpm_from_samples(buffer.samples, buffer.sample_rate)

        elapsed = time.perf_counter() - started
        if bpm is None:
            logger.info("No confident tempo for %s (%.1fs analyzed in %.2fs)",
                        path.name, buffer.duration, elapsed)
        else:
            logger.info("Estimated %.2f BPM for %s (%.1fs analyzed in %.2fs)",
                        bpm, path.name, buffer.duration, elapsed)

        return AnalysisResult(bpm=bpm, sample_rate=buffer.sample_rate,
                              analyzed_seconds=buffer.duration)
