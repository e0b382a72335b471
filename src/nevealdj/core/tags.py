#!/usr/bin/env python3
"""
Tag container access on top of mutagen
ID3 (MP3, WAV, AIFF), Vorbis comments (FLAC, Ogg) and MP4 atoms share one surface
"""

import logging
import mutagen
from contextlib import contextmanager
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Union
from mutagen.flac import FLAC
from mutagen.id3 import ID3, TBPM, TIT2, TPE1, TXXX
from mutagen.mp4 import MP4FreeForm, MP4Tags
from mutagen.ogg import OggFileType
from .config import MetadataConstants
from .errors import MetadataError

logger = logging.getLogger(__name__)

FIELDS = ("title", "artist", "bpm", "integer_bpm")


class TagHandle:
    """Field access on one file's primary tag"""

    FIELD_KEYS: Dict[str, Optional[str]] = {}

    def __init__(self, audio, tags):
        self.audio = audio
        self.tags = tags
        self.dirty = False

    @property
    def duration_seconds(self) -> Optional[float]:
        info = getattr(self.audio, "info", None)
        length = getattr(info, "length", None)
        if length is None or length <= 0:
            return None
        return float(length)

    def _key(self, field: str) -> Optional[str]:
        if field not in FIELDS:
            raise KeyError(f"Unknown tag field: {field}")
        return self.FIELD_KEYS.get(field)

    def get_text(self, field: str) -> Optional[str]:
        key = self._key(field)
        if key is None or self.tags is None:
            return None
        return self._get(key)

    def set_text(self, field: str, value: str):
        key = self._key(field)
        if key is None:
            return
        self._set(key, value)
        self.dirty = True

    def remove(self, field: str):
        key = self._key(field)
        if key is None or self.tags is None:
            return
        if self._remove(key):
            self.dirty = True

    def get_custom(self, name: str) -> Optional[str]:
        if self.tags is None:
            return None
        return self._get(self._custom_key(name))

    def set_custom(self, name: str, value: str):
        self._set(self._custom_key(name), value)
        self.dirty = True

    def remove_custom(self, name: str):
        if self.tags is None:
            return
        if self._remove(self._custom_key(name)):
            self.dirty = True

    def alternative_bpm_texts(self) -> List[str]:
        """Values stored under the non-standard BPM keys some taggers use"""
        if self.tags is None:
            return []
        texts = []
        for name in MetadataConstants.ALTERNATIVE_BPM_KEYS:
            value = self._get(self._custom_key(name))
            if value is not None:
                texts.append(value)
        return texts

    # Format-specific primitives
    def _custom_key(self, name: str) -> str:
        raise NotImplementedError

    def _get(self, key: str) -> Optional[str]:
        raise NotImplementedError

    def _set(self, key: str, value: str):
        raise NotImplementedError

    def _remove(self, key: str) -> bool:
        raise NotImplementedError


class Id3TagHandle(TagHandle):
    """ID3v2 frames; TBPM holds the integer, TXXX:BPM the decimal"""

    FIELD_KEYS = {"title": "TIT2", "artist": "TPE1", "bpm": "TXXX:BPM", "integer_bpm": "TBPM"}
    FRAMES = {"TIT2": TIT2, "TPE1": TPE1, "TBPM": TBPM}

    def _custom_key(self, name: str) -> str:
        return f"TXXX:{name}"

    def _get(self, key: str) -> Optional[str]:
        frame = self.tags.get(key)
        if frame is None and key.startswith("TXXX:"):
            # TXXX descriptions are matched case-insensitively
            wanted = key[5:].lower()
            for candidate in self.tags.getall("TXXX"):
                if candidate.desc.lower() == wanted:
                    frame = candidate
                    break
        if frame is None or not frame.text:
            return None
        return str(frame.text[0])

    def _set(self, key: str, value: str):
        if key.startswith("TXXX:"):
            self.tags.add(TXXX(encoding=3, desc=key[5:], text=[value]))
        else:
            self.tags.add(self.FRAMES[key](encoding=3, text=[value]))

    def _remove(self, key: str) -> bool:
        if key not in self.tags:
            return False
        self.tags.delall(key)
        return True


class VorbisTagHandle(TagHandle):
    """Vorbis comments; there is no separate integer BPM field"""

    FIELD_KEYS = {"title": "TITLE", "artist": "ARTIST", "bpm": "BPM", "integer_bpm": None}

    def _custom_key(self, name: str) -> str:
        return name

    def _get(self, key: str) -> Optional[str]:
        if key not in self.tags:
            return None
        values = self.tags[key]
        return str(values[0]) if values else None

    def _set(self, key: str, value: str):
        self.tags[key] = [value]

    def _remove(self, key: str) -> bool:
        if key not in self.tags:
            return False
        del self.tags[key]
        return True


class Mp4TagHandle(TagHandle):
    """iTunes atoms; tmpo holds the integer, a freeform atom the decimal"""

    FREEFORM_PREFIX = "----:com.apple.iTunes:"
    FIELD_KEYS = {"title": "\xa9nam", "artist": "\xa9ART",
                  "bpm": FREEFORM_PREFIX + "BPM", "integer_bpm": "tmpo"}

    def _custom_key(self, name: str) -> str:
        return self.FREEFORM_PREFIX + name

    def _get(self, key: str) -> Optional[str]:
        values = self.tags.get(key)
        if not values:
            return None
        value = values[0]
        if isinstance(value, (bytes, MP4FreeForm)):
            return bytes(value).decode('utf-8', errors='replace')
        return str(value)

    def _set(self, key: str, value: str):
        if key == "tmpo":
            self.tags[key] = [int(value)]
        elif key.startswith(self.FREEFORM_PREFIX):
            self.tags[key] = [MP4FreeForm(value.encode('utf-8'))]
        else:
            self.tags[key] = [value]

    def _remove(self, key: str) -> bool:
        if key not in self.tags:
            return False
        del self.tags[key]
        return True


class EmptyTagHandle(TagHandle):
    """Read-only view of a file without any tag"""

    def get_text(self, field: str) -> Optional[str]:
        self._key(field)
        return None

    def _custom_key(self, name: str) -> str:
        return name

    def _get(self, key: str) -> Optional[str]:
        return None

    def _set(self, key: str, value: str):
        raise MetadataError("File has no tag to write to")

    def _remove(self, key: str) -> bool:
        return False


def _load(path: Path):
    try:
        audio = mutagen.File(str(path))
    except (mutagen.MutagenError, OSError) as e:
        raise MetadataError(f"Failed to read metadata from {path}: {e}") from e
    if audio is None:
        raise MetadataError(f"Unsupported tag container: {path}")
    return audio


def _handle_for(audio, writable: bool) -> TagHandle:
    if audio.tags is None:
        if not writable:
            return EmptyTagHandle(audio, None)
        try:
            audio.add_tags()
        except (mutagen.MutagenError, NotImplementedError) as e:
            raise MetadataError(f"Cannot create a tag for {audio.filename}: {e}") from e

    tags = audio.tags
    if isinstance(tags, ID3):
        return Id3TagHandle(audio, tags)
    if isinstance(audio, (FLAC, OggFileType)):
        return VorbisTagHandle(audio, tags)
    if isinstance(tags, MP4Tags):
        return Mp4TagHandle(audio, tags)
    raise MetadataError(f"Unsupported tag type {type(tags).__name__} in {audio.filename}")


@contextmanager
def open_tags(path: Union[str, Path], writable: bool = False) -> Iterator[TagHandle]:
    """
    Scoped access to a file's primary tag

    A writable scope that exits normally saves the file when anything
    changed; an exception inside the scope discards every change.
    """
    path = Path(path)
    audio = _load(path)
    handle = _handle_for(audio, writable)

    yield handle

    if writable and handle.dirty:
        try:
            audio.save()
        except (mutagen.MutagenError, OSError) as e:
            raise MetadataError(f"Failed to write metadata to {path}: {e}") from e
        logger.debug("Saved tags for %s", path.name)
