#!/usr/bin/env python3
"""
Deck playback state
Empty -> Loaded(paused) <-> Loaded(playing); clearing returns to Empty
"""

import logging
from enum import Enum
from pathlib import Path
from typing import Optional, Union
from .config import DeckConstants
from .errors import SinkError
from .models import DeckState
from .playback import AudioBackend, Sink

logger = logging.getLogger(__name__)


class DeckStatus(Enum):
    """Deck playback states"""
    EMPTY = "empty"
    PAUSED = "paused"
    PLAYING = "playing"


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def pitch_to_speed(pitch_percent: float) -> float:
    """Linear fader mapping: 0% -> 1.0, +100% -> 2.0, towards -100% -> near stop"""
    return max(1.0 + pitch_percent / 100.0, DeckConstants.MIN_SPEED)


class Deck:
    """One turntable: loaded track, volume, pitch and play/pause"""

    def __init__(self, deck_id: int, backend: AudioBackend):
        self.id = deck_id
        self.backend = backend
        self.volume = DeckConstants.DEFAULT_VOLUME
        self.pitch_percent = 0.0
        self.is_playing = False
        self.pitch_muted = False
        self.loaded_track: Optional[str] = None
        self.bpm: Optional[float] = None
        self._sink: Optional[Sink] = None

    @property
    def status(self) -> DeckStatus:
        if self._sink is None:
            return DeckStatus.EMPTY
        return DeckStatus.PLAYING if self.is_playing else DeckStatus.PAUSED

    @property
    def has_track(self) -> bool:
        return self._sink is not None

    @property
    def playback_speed(self) -> float:
        if self.pitch_muted:
            return DeckConstants.MIN_SPEED
        return pitch_to_speed(self.pitch_percent)

    @property
    def effective_volume(self) -> float:
        """Volume actually sent to the sink; a pitch-muted deck is silent"""
        return 0.0 if self.pitch_muted else self.volume

    def load_track(self, file_path: Union[str, Path], bpm: Optional[float] = None):
        """
        Load a file paused, keeping the current pitch and volume

        The previous sink keeps playing until the new one is ready; on any
        failure the deck is left exactly as it was.
        """
        path = Path(file_path)
        stream = self.backend.open_stream(path)
        sink = self.backend.open_sink()
        try:
            sink.pause()
            sink.set_speed(self.playback_speed)
            sink.set_volume(self.effective_volume)
            sink.append(stream)
        except SinkError:
            sink.stop()
            raise

        self._release_sink()
        self._sink = sink
        self.loaded_track = path.name
        self.is_playing = False
        self.bpm = bpm
        logger.info("Deck %d - Loaded %s", self.id, path.name)

    def toggle_playback(self):
        if self._sink is None:
            return

        self.is_playing = not self.is_playing
        if not self.is_playing:
            self._sink.pause()
        elif not self.pitch_muted:
            self._sink.play()
        logger.debug("Deck %d - %s", self.id, self.status.value)

    def set_volume(self, volume: float):
        self.volume = clamp(float(volume), 0.0, 1.0)
        if self._sink is not None and not self.pitch_muted:
            self._sink.set_volume(self.volume)

    def set_pitch_percent(self, pitch_percent: float):
        self.pitch_percent = clamp(float(pitch_percent), DeckConstants.PITCH_MIN, DeckConstants.PITCH_MAX)

        if self.pitch_percent <= DeckConstants.PITCH_STOP_THRESHOLD:
            # Motor stop: freeze output but keep the sink alive
            self.pitch_muted = True
            if self._sink is not None:
                self._sink.pause()
                self._sink.set_speed(DeckConstants.MIN_SPEED)
                self._sink.set_volume(0.0)
            return

        self.pitch_muted = False
        if self._sink is not None:
            self._sink.set_speed(pitch_to_speed(self.pitch_percent))
            self._sink.set_volume(self.volume)
            if self.is_playing:
                self._sink.play()

    def clear_track(self):
        self._release_sink()
        self.loaded_track = None
        self.is_playing = False
        self.bpm = None
        logger.info("Deck %d - Cleared", self.id)

    def _release_sink(self):
        sink, self._sink = self._sink, None
        if sink is not None:
            sink.stop()

    def snapshot(self) -> DeckState:
        return DeckState(
            id=self.id,
            volume=self.volume,
            pitch_percent=self.pitch_percent,
            is_playing=self.is_playing,
            pitch_muted=self.pitch_muted,
            loaded_track=self.loaded_track,
            bpm=self.bpm,
        )
