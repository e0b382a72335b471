#!/usr/bin/env python3
"""
NevealDJ audio engine
Tempo estimation, tag-backed BPM cache, decks and mixer
"""

__version__ = "0.3.0"
