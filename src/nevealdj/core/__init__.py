#!/usr/bin/env python3
"""
Core engine: analysis pipeline, metadata, decks and mixer
"""

from .analysis import AnalysisEngine, estimate_bpm_from_samples
from .config import AnalysisConstants, DeckConstants, EngineConfiguration, MetadataConstants, PlaybackSettings
from .deck import Deck
from .engine import DjEngine
from .errors import (
    AudioIOError, DecodeError, EngineError, MetadataError, NotFoundError,
    SerializationError, SinkError, ValidationError
)
from .metadata import TrackMetadataService
from .mixer import Mixer
from .models import DeckState, EngineState, HotCue, MixerState, TrackMetadata, TrackMetadataUpdate

__all__ = [
    "AnalysisConstants", "AnalysisEngine", "AudioIOError", "Deck", "DeckConstants", "DeckState",
    "DecodeError", "DjEngine", "EngineConfiguration", "EngineError", "EngineState", "HotCue",
    "MetadataConstants", "MetadataError", "Mixer", "MixerState", "NotFoundError", "PlaybackSettings",
    "SerializationError", "SinkError", "TrackMetadata", "TrackMetadataService", "TrackMetadataUpdate",
    "ValidationError", "estimate_bpm_from_samples",
]
