#!/usr/bin/env python3
"""
Track metadata stored in tags: title, artist, BPM (with its analysis
timestamp) and hot cues
"""

import json
import logging
import math
import os
import time
from pathlib import Path
from typing import List, Optional, Union
from .analysis import AnalysisEngine
from .bpm_cache import resolve_bpm
from .config import MetadataConstants
from .errors import EngineError, MetadataError, NotFoundError, SerializationError, ValidationError
from .models import HotCue, TrackMetadata, TrackMetadataUpdate
from .tags import TagHandle, open_tags
from ..utils.parsing import (
    format_bpm, format_integer_bpm, parse_bpm_text, parse_timestamp_text
)

logger = logging.getLogger(__name__)


def require_file(file_path: Union[str, Path]) -> Path:
    """Validate a user supplied path"""
    if file_path is None or not str(file_path).strip():
        raise ValidationError("File path cannot be empty")
    path = Path(file_path)
    if not path.exists():
        raise NotFoundError(f"File not found: {file_path}")
    return path


def unix_timestamp_now() -> int:
    return int(time.time())


def file_modified_timestamp(path: Path) -> Optional[int]:
    """Modification time in whole unix seconds, None when unavailable"""
    try:
        mtime = os.stat(path).st_mtime
    except OSError:
        return None
    if mtime < 0:
        return None
    return int(mtime)


def round_bpm(bpm: float) -> float:
    """BPM rounded to the display precision"""
    scale = 10 ** MetadataConstants.DISPLAY_DECIMALS
    return math.floor(bpm * scale + 0.5) / scale


# Tag field helpers

def read_tag_bpm(tags: TagHandle) -> Optional[float]:
    """Decimal BPM, then integer BPM, then alternative keys"""
    for field in ("bpm", "integer_bpm"):
        bpm = parse_bpm_text(tags.get_text(field))
        if bpm is not None:
            return bpm
    for text in tags.alternative_bpm_texts():
        bpm = parse_bpm_text(text)
        if bpm is not None:
            return bpm
    return None


def read_bpm_timestamp(tags: TagHandle) -> Optional[int]:
    return parse_timestamp_text(tags.get_custom(MetadataConstants.BPM_TIMESTAMP_KEY))


def apply_bpm(tags: TagHandle, bpm: float):
    """Write decimal and integer BPM; a non-positive value clears both"""
    if bpm <= 0:
        tags.remove("bpm")
        tags.remove("integer_bpm")
        return
    tags.set_text("bpm", format_bpm(bpm))
    tags.set_text("integer_bpm", format_integer_bpm(bpm))


def apply_bpm_timestamp(tags: TagHandle, timestamp: int):
    tags.set_custom(MetadataConstants.BPM_TIMESTAMP_KEY, str(int(timestamp)))


def decode_hot_cues(payload: str) -> List[HotCue]:
    try:
        data = json.loads(payload)
        if not isinstance(data, list):
            raise TypeError("hot cue payload is not a list")
        return [HotCue.from_dict(item) for item in data]
    except (ValueError, TypeError, KeyError, AttributeError) as e:
        raise SerializationError(f"Failed to decode hot cues metadata: {e}") from e


def encode_hot_cues(cues: List[HotCue]) -> str:
    try:
        return json.dumps([cue.to_dict() for cue in cues], allow_nan=False)
    except (TypeError, ValueError) as e:
        raise SerializationError(f"Failed to serialize hot cues metadata: {e}") from e


def read_hot_cues(tags: TagHandle) -> List[HotCue]:
    payload = tags.get_custom(MetadataConstants.HOT_CUES_STORAGE_KEY)
    if not payload:
        return []
    try:
        return decode_hot_cues(payload)
    except SerializationError as e:
        logger.warning("Ignoring unreadable hot cues: %s", e)
        return []


def store_hot_cues(tags: TagHandle, cues: List[HotCue]):
    """Replace the stored hot cues; an empty list removes the field"""
    if not cues:
        tags.remove_custom(MetadataConstants.HOT_CUES_STORAGE_KEY)
        return
    payload = encode_hot_cues(cues)
    tags.set_custom(MetadataConstants.HOT_CUES_STORAGE_KEY, payload)


def persist_bpm(path: Union[str, Path], bpm: float, timestamp: Optional[int] = None) -> bool:
    """Best-effort BPM write-back; failures are logged and reported as False"""
    path = Path(path)
    try:
        with open_tags(path, writable=True) as tags:
            apply_bpm(tags, bpm)
            apply_bpm_timestamp(tags, unix_timestamp_now() if timestamp is None else timestamp)
    except MetadataError as e:
        logger.warning("Unable to persist BPM for %s: %s", path.name, e)
        return False
    logger.debug("Persisted %.2f BPM to %s", bpm, path.name)
    return True


class TrackMetadataService:
    """Reads and updates track metadata, keeping the tag BPM consistent"""

    def __init__(self, analyzer: Optional[AnalysisEngine] = None):
        self.analyzer = analyzer or AnalysisEngine()

    def _analyze_quietly(self, path: Path) -> Optional[float]:
        try:
            return self.analyzer.analyze_track(path).bpm
        except (EngineError, OSError) as e:
            logger.warning("Failed to analyze %s: %s", path, e)
            return None

    def _resolve(self, path: Path, tag_bpm: Optional[float],
                 stored_timestamp: Optional[int]) -> Optional[float]:
        resolution = resolve_bpm(
            tag_bpm,
            file_modified_timestamp(path),
            stored_timestamp,
            lambda: self._analyze_quietly(path),
        )
        if resolution.should_persist and resolution.bpm is not None:
            persist_bpm(path, resolution.bpm)
        return resolution.bpm

    def refresh_bpm(self, file_path: Union[str, Path]) -> Optional[float]:
        """
        Current BPM for a file, recomputed and written back when the tag is stale
        Never raises for analysis or tag failures
        """
        path = Path(file_path)
        try:
            with open_tags(path) as tags:
                tag_bpm = read_tag_bpm(tags)
                stored_timestamp = read_bpm_timestamp(tags)
        except MetadataError as e:
            logger.warning("Unable to read tags of %s: %s", path.name, e)
            tag_bpm, stored_timestamp = None, None
        return self._resolve(path, tag_bpm, stored_timestamp)

    def get_track_metadata(self, file_path: Union[str, Path]) -> TrackMetadata:
        path = require_file(file_path)

        with open_tags(path) as tags:
            title = tags.get_text("title")
            artist = tags.get_text("artist")
            tag_bpm = read_tag_bpm(tags)
            stored_timestamp = read_bpm_timestamp(tags)
            hot_cues = read_hot_cues(tags)
            duration = tags.duration_seconds

        bpm = self._resolve(path, tag_bpm, stored_timestamp)

        if title is None or not title.strip():
            title = path.stem or path.name

        return TrackMetadata(
            path=str(path),
            title=title,
            artist=artist,
            bpm=None if bpm is None else round_bpm(bpm),
            duration_seconds=duration,
            hot_cues=hot_cues,
        )

    def update_track_metadata(self, file_path: Union[str, Path],
                              update: TrackMetadataUpdate) -> TrackMetadata:
        path = require_file(file_path)
        if update.bpm is not None and not math.isfinite(update.bpm):
            raise ValidationError("BPM must be a finite number")

        with open_tags(path, writable=True) as tags:
            if update.title is not None:
                if update.title.strip():
                    tags.set_text("title", update.title)
                else:
                    tags.remove("title")

            if update.artist is not None:
                if update.artist.strip():
                    tags.set_text("artist", update.artist)
                else:
                    tags.remove("artist")

            if update.bpm is not None:
                apply_bpm(tags, update.bpm)
                apply_bpm_timestamp(tags, unix_timestamp_now())

            if update.hot_cues is not None:
                store_hot_cues(tags, update.hot_cues)

        return self.get_track_metadata(path)
