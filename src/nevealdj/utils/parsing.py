#!/usr/bin/env python3
"""
Lenient parsing of numeric tag text
"""

import math
from typing import Optional, Union


def _to_float(text: str) -> Optional[float]:
    try:
        value = float(text)
    except ValueError:
        return None
    return value if math.isfinite(value) else None


def parse_bpm_text(value: Union[str, bytes, None]) -> Optional[float]:
    """
    Parse a BPM from tag text
    Tries the plain value, then a comma decimal, then the digits alone
    ("128,5" -> 128.5, "128 BPM" -> 128.0). Non-positive values count as absent.
    """
    if value is None:
        return None
    if isinstance(value, bytes):
        try:
            value = value.decode('utf-8')
        except UnicodeDecodeError:
            return None

    trimmed = str(value).strip()
    if not trimmed:
        return None

    bpm = _to_float(trimmed)
    if bpm is None:
        bpm = _to_float(trimmed.replace(',', '.'))
    if bpm is None:
        digits = ''.join(c for c in trimmed if c.isascii() and (c.isdigit() or c in '.,'))
        if digits:
            bpm = _to_float(digits.replace(',', '.'))

    if bpm is None or bpm <= 0:
        return None
    return bpm


def parse_timestamp_text(value: Union[str, bytes, None]) -> Optional[int]:
    """Unix seconds stored as decimal text"""
    if value is None:
        return None
    if isinstance(value, bytes):
        value = value.decode('utf-8', errors='ignore')
    text = str(value).strip()
    if not text.isdigit():
        return None
    return int(text)


def format_bpm(bpm: float) -> str:
    """Two-decimal BPM text"""
    return f"{bpm:.2f}"


def format_integer_bpm(bpm: float) -> str:
    """Rounded integer BPM text, halves away from zero"""
    return str(int(math.floor(bpm + 0.5)))
