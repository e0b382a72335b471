#!/usr/bin/env python3
"""
Configuration and constants for the NevealDJ engine
Centralized configuration shared by analysis, metadata and decks
"""

import logging
from dataclasses import dataclass, field
from typing import Optional, Union


class AnalysisConstants:
    """Tempo analysis constants"""
    MAX_ANALYSIS_SECONDS = 90
    BPM_MIN = 60.0
    BPM_MAX = 200.0

    # Spectral flux
    TARGET_FLUX_RATE = 220.0
    FLUX_WINDOW = 4096
    FLUX_HOP = 256
    MIN_FLUX_WINDOW = 512
    FLUX_BATCH_FRAMES = 512  # frames transformed per FFT batch

    # Correlation
    MIN_ENVELOPE_LENGTH = 4
    REFINEMENT_EPSILON = 1e-6

    # (lag ratio, weight) pairs used by the harmonic scoring
    HARMONICS = (
        (1.0, 1.0),
        (0.5, 0.8),
        (2.0, 0.7),
        (1.5, 0.6),
        (2.0 / 3.0, 0.5),
        (4.0 / 3.0, 0.4),
        (3.0 / 4.0, 0.35),
    )

    # Decoder
    PACKET_FRAMES = 4096


class MetadataConstants:
    """Tag storage constants"""
    HOT_CUES_STORAGE_KEY = "NEVEALDJ::HOTCUES"
    BPM_TIMESTAMP_KEY = "NEVEALDJ::BPM_TIMESTAMP"
    BPM_TIMESTAMP_TOLERANCE_SECS = 2
    ALTERNATIVE_BPM_KEYS = ("BPM", "TBPM", "TEMPO", "TMPO", "TMP0")
    DISPLAY_DECIMALS = 2


class DeckConstants:
    """Deck and mixer constants"""
    DEFAULT_DECK_COUNT = 6
    MAX_DECK_COUNT = 16
    PITCH_MIN = -99.0
    PITCH_MAX = 100.0
    PITCH_STOP_THRESHOLD = -99.0
    MIN_SPEED = 0.01
    DEFAULT_VOLUME = 1.0
    MASTER_VOLUME = 1.0


@dataclass
class PlaybackSettings:
    """Audio output settings shared by every deck sink"""
    device: Optional[Union[int, str]] = None
    blocksize: int = 1024
    latency: Union[str, float] = "low"

    def validate(self):
        """Validate settings"""
        if self.blocksize < 0:
            raise ValueError("Blocksize cannot be negative")
        if isinstance(self.latency, (int, float)) and self.latency <= 0:
            raise ValueError("Latency must be positive")


@dataclass
class EngineConfiguration:
    """Complete engine configuration"""
    deck_count: int = DeckConstants.DEFAULT_DECK_COUNT
    analyze_on_load: bool = True
    playback: PlaybackSettings = field(default_factory=PlaybackSettings)
    log_level: str = "INFO"

    def validate(self):
        """Validate complete configuration"""
        self.playback.validate()

        if not 1 <= self.deck_count <= DeckConstants.MAX_DECK_COUNT:
            raise ValueError(
                f"Deck count must be between 1 and {DeckConstants.MAX_DECK_COUNT}"
            )
        if not isinstance(logging.getLevelName(self.log_level.upper()), int):
            raise ValueError(f"Unknown log level: {self.log_level}")
