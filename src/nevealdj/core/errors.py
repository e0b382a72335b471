#!/usr/bin/env python3
"""
Error taxonomy for the NevealDJ engine
"""


class EngineError(Exception):
    """Base class for every failure surfaced by the engine"""

    @property
    def kind(self) -> str:
        return type(self).__name__

    def to_dict(self) -> dict:
        return {"type": self.kind, "message": str(self)}


class DecodeError(EngineError):
    """Unreadable or unsupported audio"""


class NoAudioTrack(DecodeError):
    """Container exposes no decodable audio track"""


class InvalidSampleRate(DecodeError):
    """Reported sample rate is not positive"""


class InsufficientAudio(DecodeError):
    """Less than one second of audio could be decoded"""


class AudioIOError(EngineError):
    """File could not be opened for playback"""


class SinkError(EngineError):
    """Output backend could not allocate a playback channel"""


class NotFoundError(EngineError):
    """Unknown deck id or missing file"""


class ValidationError(EngineError):
    """Invalid input (non-finite numbers, empty paths, malformed requests)"""


class MetadataError(EngineError):
    """Tag read, parse or write failure"""


class SerializationError(EngineError):
    """Hot cue JSON could not be encoded or decoded"""
