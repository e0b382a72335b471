#!/usr/bin/env python3
"""
Engine facade: decks, mixer, metadata and analysis behind one object
"""

import logging
import math
from pathlib import Path
from typing import List, Optional, Union
from .analysis import AnalysisEngine
from .config import EngineConfiguration
from .deck import Deck
from .errors import NotFoundError, ValidationError
from .metadata import TrackMetadataService, require_file
from .mixer import Mixer
from .models import AnalysisResult, DeckState, EngineState, MixerState, TrackMetadata, TrackMetadataUpdate
from .playback import AudioBackend, OutputHandle

logger = logging.getLogger(__name__)


def require_finite(value: float, name: str) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError) as e:
        raise ValidationError(f"{name} must be a number") from e
    if not math.isfinite(number):
        raise ValidationError(f"{name} must be a finite number")
    return number


class DjEngine:
    """
    Multi-deck engine

    Calls are expected to be serialized by the caller; nothing here locks.
    """

    def __init__(self, config: Optional[EngineConfiguration] = None,
                 backend: Optional[AudioBackend] = None,
                 analyzer: Optional[AnalysisEngine] = None):
        self.config = config or EngineConfiguration()
        self.config.validate()

        self.backend = backend or AudioBackend(OutputHandle.from_settings(self.config.playback))
        self.analyzer = analyzer or AnalysisEngine()
        self.metadata = TrackMetadataService(self.analyzer)

        # Deck ids are 1-based; deck N lives at index N - 1
        self._decks: List[Deck] = [
            Deck(deck_id, self.backend) for deck_id in range(1, self.config.deck_count + 1)
        ]
        self.mixer = Mixer([deck.id for deck in self._decks])
        logger.info("Engine ready with %d decks", len(self._decks))

    def _deck(self, deck_id: int) -> Deck:
        index = int(deck_id) - 1
        if index < 0 or index >= len(self._decks):
            raise NotFoundError(f"Deck {deck_id} not found")
        return self._decks[index]

    # Queries

    def ping(self) -> str:
        return "pong"

    def get_state(self) -> EngineState:
        return EngineState(mixer=self.get_mixer(), decks=self.get_decks())

    def get_decks(self) -> List[DeckState]:
        return [deck.snapshot() for deck in self._decks]

    def get_deck(self, deck_id: int) -> Optional[DeckState]:
        try:
            return self._deck(deck_id).snapshot()
        except NotFoundError:
            return None

    def get_mixer(self) -> MixerState:
        return self.mixer.snapshot()

    # Deck operations

    def load_track(self, deck_id: int, file_path: Union[str, Path]) -> DeckState:
        deck = self._deck(deck_id)
        path = require_file(file_path)

        bpm = None
        if self.config.analyze_on_load:
            bpm = self.metadata.refresh_bpm(path)

        deck.load_track(path, bpm=bpm)
        return deck.snapshot()

    def toggle_playback(self, deck_id: int) -> DeckState:
        deck = self._deck(deck_id)
        deck.toggle_playback()
        return deck.snapshot()

    def set_volume(self, deck_id: int, volume: float) -> DeckState:
        volume = require_finite(volume, "Volume")
        deck = self._deck(deck_id)
        deck.set_volume(volume)
        return deck.snapshot()

    def set_pitch(self, deck_id: int, pitch_percent: float) -> DeckState:
        pitch_percent = require_finite(pitch_percent, "Pitch")
        deck = self._deck(deck_id)
        deck.set_pitch_percent(pitch_percent)
        return deck.snapshot()

    def clear_deck(self, deck_id: int) -> DeckState:
        deck = self._deck(deck_id)
        deck.clear_track()
        return deck.snapshot()

    # Tracks

    def get_track_metadata(self, file_path: Union[str, Path]) -> TrackMetadata:
        return self.metadata.get_track_metadata(file_path)

    def update_track_metadata(self, file_path: Union[str, Path],
                              update: TrackMetadataUpdate) -> TrackMetadata:
        return self.metadata.update_track_metadata(file_path, update)

    def analyze_track(self, file_path: Union[str, Path]) -> AnalysisResult:
        """Run the tempo pipeline without touching tags"""
        return self.analyzer.analyze_track(require_file(file_path))

    def close(self):
        for deck in self._decks:
            if deck.has_track:
                deck.clear_track()
        logger.debug("Engine closed")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False
