#!/usr/bin/env python3
"""
BPM cache consistency rules
A tag-stored BPM is trusted only while its analysis timestamp matches the file's mtime
"""

import logging
from dataclasses import dataclass
from typing import Callable, Optional
from .config import MetadataConstants

logger = logging.getLogger(__name__)


@dataclass
class BpmResolution:
    """Outcome of checking a stored BPM against the file"""
    bpm: Optional[float]
    should_persist: bool = False
    recomputed: bool = False


def timestamps_close(a: int, b: int,
                     tolerance: int = MetadataConstants.BPM_TIMESTAMP_TOLERANCE_SECS) -> bool:
    """Whether two unix times differ by at most the tolerance"""
    return abs(int(a) - int(b)) <= tolerance


def needs_recompute(tag_bpm: Optional[float], file_mtime: Optional[int],
                    stored_timestamp: Optional[int]) -> bool:
    """
    Decide whether the stored BPM must be replaced by a fresh estimate

    1. no tag BPM: recompute
    2. tag BPM and known mtime: recompute unless the stored timestamp is
       within the tolerance of the mtime (a missing timestamp never matches)
    3. tag BPM, unknown mtime and no stored timestamp: recompute
    4. otherwise trust the tag
    """
    if tag_bpm is None:
        return True
    if file_mtime is not None:
        if stored_timestamp is None:
            return True
        return not timestamps_close(stored_timestamp, file_mtime)
    return stored_timestamp is None


def resolve_bpm(tag_bpm: Optional[float], file_mtime: Optional[int],
                stored_timestamp: Optional[int],
                analyze: Callable[[], Optional[float]]) -> BpmResolution:
    """
    Apply the cache rules, running analyze() only when a recompute is due
    A failed analysis (None) leaves the tag value in place and persists nothing
    """
    if not needs_recompute(tag_bpm, file_mtime, stored_timestamp):
        return BpmResolution(bpm=tag_bpm)

    analyzed = analyze()
    if analyzed is None:
        return BpmResolution(bpm=tag_bpm)

    if tag_bpm is not None:
        logger.debug("Replacing stale tag BPM %.2f with %.2f", tag_bpm, analyzed)
    return BpmResolution(bpm=analyzed, should_persist=True, recomputed=True)
