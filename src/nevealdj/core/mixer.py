#!/usr/bin/env python3
"""
Mixer: master volume and the ordered deck channels
"""

from typing import List, Sequence
from .config import DeckConstants
from .models import MixerState


class Mixer:
    """Aggregates the deck channels; master volume has no mutator yet"""

    def __init__(self, deck_channels: Sequence[int]):
        self._master_volume = DeckConstants.MASTER_VOLUME
        self._deck_channels: List[int] = list(deck_channels)

    @property
    def master_volume(self) -> float:
        return self._master_volume

    @property
    def channels(self) -> List[int]:
        return list(self._deck_channels)

    def snapshot(self) -> MixerState:
        return MixerState(master_volume=self._master_volume, deck_channels=self.channels)
