#!/usr/bin/env python3
"""
Data models for the NevealDJ engine
"""

import numpy as np
from dataclasses import dataclass, field
from typing import Optional, List, Dict, Any
from .config import AnalysisConstants
from .errors import ValidationError


@dataclass
class MonoSampleBuffer:
    """Mono float32 samples decoded for analysis"""
    samples: np.ndarray
    sample_rate: int

    def __post_init__(self):
        if self.sample_rate <= 0:
            raise ValueError("Sample rate must be positive")
        self.samples = np.asarray(self.samples, dtype=np.float32)

    @property
    def duration(self) -> float:
        """Duration in seconds"""
        return len(self.samples) / self.sample_rate

    def __len__(self) -> int:
        return len(self.samples)


@dataclass
class FluxEnvelope:
    """Onset-strength envelope and its rate in envelope samples per second"""
    values: np.ndarray
    rate: float

    def __post_init__(self):
        self.values = np.asarray(self.values, dtype=np.float32)
        if len(self.values) and self.rate <= 0:
            raise ValueError("Envelope rate must be positive for a non-empty envelope")

    @property
    def is_empty(self) -> bool:
        return len(self.values) == 0

    def __len__(self) -> int:
        return len(self.values)


@dataclass
class LagScoreTable:
    """Autocorrelation scores indexed by lag (in envelope samples)"""
    scores: np.ndarray
    min_lag: int
    max_lag: int

    @property
    def candidates(self) -> np.ndarray:
        """Lags with a positive score, in ascending order"""
        lags = np.arange(self.min_lag, self.max_lag + 1)
        return lags[self.scores[self.min_lag:self.max_lag + 1] > 0]

    def score(self, lag: int) -> float:
        if lag <= 0 or lag >= len(self.scores):
            return 0.0
        return float(self.scores[lag])


@dataclass
class AnalysisResult:
    """Result of running the tempo pipeline on a file"""
    bpm: Optional[float] = None
    sample_rate: Optional[int] = None
    analyzed_seconds: float = 0.0

    def __post_init__(self):
        if self.bpm is not None and not (
            AnalysisConstants.BPM_MIN <= self.bpm <= AnalysisConstants.BPM_MAX
        ):
            raise ValueError(
                f"BPM {self.bpm} outside valid range "
                f"{AnalysisConstants.BPM_MIN}-{AnalysisConstants.BPM_MAX}"
            )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "bpm": self.bpm,
            "sampleRate": self.sample_rate,
            "analyzedSeconds": self.analyzed_seconds,
        }


@dataclass
class HotCue:
    """Named marker inside a track"""
    position_seconds: float
    label: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {"positionSeconds": self.position_seconds, "label": self.label}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "HotCue":
        position = data.get("positionSeconds", data.get("position_seconds"))
        if position is None:
            raise KeyError("positionSeconds")
        label = data.get("label")
        return cls(position_seconds=float(position), label=None if label is None else str(label))


@dataclass
class TrackMetadata:
    """Metadata surfaced for a track"""
    path: str
    title: str
    artist: Optional[str] = None
    bpm: Optional[float] = None
    duration_seconds: Optional[float] = None
    hot_cues: List[HotCue] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "path": self.path,
            "title": self.title,
            "artist": self.artist,
            "bpm": self.bpm,
            "durationSeconds": self.duration_seconds,
            "hotCues": [cue.to_dict() for cue in self.hot_cues],
        }


@dataclass
class TrackMetadataUpdate:
    """Partial metadata update; None leaves a field untouched"""
    title: Optional[str] = None
    artist: Optional[str] = None
    bpm: Optional[float] = None
    hot_cues: Optional[List[HotCue]] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TrackMetadataUpdate":
        """Build an update from request JSON; wrong field types raise ValidationError"""
        for name in ("title", "artist"):
            if data.get(name) is not None and not isinstance(data[name], str):
                raise ValidationError(f"{name} must be a string")
        bpm = data.get("bpm")
        if bpm is not None and (isinstance(bpm, bool) or not isinstance(bpm, (int, float))):
            raise ValidationError("bpm must be a number")
        hot_cues = data.get("hotCues")
        if hot_cues is not None:
            if not isinstance(hot_cues, list) or not all(isinstance(cue, dict) for cue in hot_cues):
                raise ValidationError("hotCues must be a list of objects")
        return cls(
            title=data.get("title"),
            artist=data.get("artist"),
            bpm=None if data.get("bpm") is None else float(data["bpm"]),
            hot_cues=None if hot_cues is None else [HotCue.from_dict(cue) for cue in hot_cues],
        )


@dataclass
class DeckState:
    """Snapshot of one deck"""
    id: int
    volume: float
    pitch_percent: float
    is_playing: bool
    pitch_muted: bool = False
    loaded_track: Optional[str] = None
    bpm: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "volume": self.volume,
            "pitchPercent": self.pitch_percent,
            "isPlaying": self.is_playing,
            "pitchMuted": self.pitch_muted,
            "loadedTrack": self.loaded_track,
            "bpm": self.bpm,
        }


@dataclass
class MixerState:
    """Snapshot of the mixer"""
    master_volume: float
    deck_channels: List[int]

    def to_dict(self) -> Dict[str, Any]:
        return {"masterVolume": self.master_volume, "deckChannels": list(self.deck_channels)}


@dataclass
class EngineState:
    """Snapshot of the mixer and every deck"""
    mixer: MixerState
    decks: List[DeckState]

    def to_dict(self) -> Dict[str, Any]:
        return {"mixer": self.mixer.to_dict(), "decks": [deck.to_dict() for deck in self.decks]}
