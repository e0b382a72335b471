#!/usr/bin/env python3
"""
Deck state machine tests
"""

import pytest

from nevealdj.core.deck import Deck, DeckStatus, pitch_to_speed
from nevealdj.core.errors import AudioIOError, DecodeError, SinkError


@pytest.fixture
def deck(fake_backend):
    return Deck(1, fake_backend)


@pytest.fixture
def loaded_deck(deck):
    deck.load_track("/music/first.wav", bpm=128.0)
    return deck


def test_pitch_to_speed_is_linear():
    assert pitch_to_speed(0) == 1.0
    assert pitch_to_speed(100) == 2.0
    assert pitch_to_speed(-50) == 0.5
    assert pitch_to_speed(-100) == 0.01


def test_empty_deck_toggle_is_a_no_op(deck):
    deck.toggle_playback()
    assert deck.status is DeckStatus.EMPTY
    assert not deck.is_playing


def test_load_creates_paused_sink_with_current_settings(deck, fake_backend):
    deck.set_volume(0.4)
    deck.set_pitch_percent(10)
    deck.load_track("/music/first.wav", bpm=128.0)

    sink = fake_backend.last_sink
    assert sink.paused
    assert sink.volume == 0.4
    assert sink.speed == pytest.approx(1.1)
    assert sink.stream == "first.wav"
    assert deck.loaded_track == "first.wav"
    assert deck.bpm == 128.0
    assert deck.status is DeckStatus.PAUSED


def test_reload_stops_previous_sink(loaded_deck, fake_backend):
    first = fake_backend.last_sink
    loaded_deck.toggle_playback()
    loaded_deck.load_track("/music/second.wav")

    assert first.stopped
    assert fake_backend.last_sink is not first
    assert loaded_deck.loaded_track == "second.wav"
    assert not loaded_deck.is_playing


@pytest.mark.parametrize("failure", ["stream", "sink", "append"])
def test_failed_load_leaves_deck_unchanged(loaded_deck, fake_backend, failure):
    loaded_deck.toggle_playback()
    previous_sink = fake_backend.last_sink
    before = loaded_deck.snapshot()

    if failure == "stream":
        fake_backend.stream_error = DecodeError("corrupt")
        expected = DecodeError
    elif failure == "sink":
        fake_backend.sink_error = SinkError("no device")
        expected = SinkError
    else:
        fake_backend.fail_append = True
        expected = SinkError

    with pytest.raises(expected):
        loaded_deck.load_track("/music/broken.wav")

    assert loaded_deck.snapshot() == before
    assert not previous_sink.stopped
    assert not previous_sink.paused
    if failure == "append":
        assert fake_backend.last_sink.stopped


def test_io_error_is_surfaced(deck, fake_backend):
    fake_backend.stream_error = AudioIOError("permission denied")
    with pytest.raises(AudioIOError):
        deck.load_track("/music/locked.wav")
    assert deck.status is DeckStatus.EMPTY


def test_toggle_plays_and_pauses(loaded_deck, fake_backend):
    sink = fake_backend.last_sink
    loaded_deck.toggle_playback()
    assert loaded_deck.is_playing and not sink.paused
    loaded_deck.toggle_playback()
    assert not loaded_deck.is_playing and sink.paused


def test_volume_is_clamped(loaded_deck, fake_backend):
    loaded_deck.set_volume(1.7)
    assert loaded_deck.volume == 1.0
    loaded_deck.set_volume(-0.2)
    assert loaded_deck.volume == 0.0
    assert fake_backend.last_sink.volume == 0.0


def test_pitch_is_clamped(loaded_deck, fake_backend):
    loaded_deck.set_pitch_percent(250)
    assert loaded_deck.pitch_percent == 100.0
    assert fake_backend.last_sink.speed == 2.0
    loaded_deck.set_pitch_percent(-400)
    assert loaded_deck.pitch_percent == -99.0
    assert loaded_deck.pitch_muted


def test_pitch_mute_silences_and_restore_resumes(loaded_deck, fake_backend):
    sink = fake_backend.last_sink
    loaded_deck.set_volume(0.8)
    loaded_deck.toggle_playback()

    loaded_deck.set_pitch_percent(-99)
    assert loaded_deck.pitch_muted
    assert loaded_deck.is_playing
    assert sink.paused
    assert sink.volume == 0.0
    assert sink.speed > 0.0
    assert loaded_deck.effective_volume == 0.0

    loaded_deck.set_pitch_percent(0)
    assert not loaded_deck.pitch_muted
    assert not sink.paused
    assert sink.volume == 0.8
    assert sink.speed == 1.0


def test_volume_change_while_muted_is_deferred(loaded_deck, fake_backend):
    sink = fake_backend.last_sink
    loaded_deck.set_pitch_percent(-99)
    loaded_deck.set_volume(0.3)

    assert sink.volume == 0.0
    loaded_deck.set_pitch_percent(5)
    assert sink.volume == 0.3


def test_toggle_while_muted_does_not_resume(loaded_deck, fake_backend):
    sink = fake_backend.last_sink
    loaded_deck.set_pitch_percent(-99)
    loaded_deck.toggle_playback()

    assert loaded_deck.is_playing
    assert sink.paused

    # leaving the mute resumes because the deck is logically playing
    loaded_deck.set_pitch_percent(-20)
    assert not sink.paused
    assert sink.speed == pytest.approx(0.8)


def test_unmute_while_paused_stays_paused(loaded_deck, fake_backend):
    loaded_deck.set_pitch_percent(-99)
    loaded_deck.set_pitch_percent(0)
    assert fake_backend.last_sink.paused


def test_load_while_muted_starts_silent(deck, fake_backend):
    deck.set_pitch_percent(-99)
    deck.load_track("/music/first.wav")
    sink = fake_backend.last_sink
    assert sink.volume == 0.0
    assert sink.speed == 0.01


def test_clear_returns_to_empty(loaded_deck, fake_backend):
    sink = fake_backend.last_sink
    loaded_deck.toggle_playback()
    loaded_deck.clear_track()

    assert sink.stopped
    assert loaded_deck.status is DeckStatus.EMPTY
    assert loaded_deck.loaded_track is None
    assert loaded_deck.bpm is None
    assert not loaded_deck.is_playing


def test_snapshot_serializes_camel_case(loaded_deck):
    data = loaded_deck.snapshot().to_dict()
    assert data == {
        "id": 1,
        "volume": 1.0,
        "pitchPercent": 0.0,
        "isPlaying": False,
        "pitchMuted": False,
        "loadedTrack": "first.wav",
        "bpm": 128.0,
    }
