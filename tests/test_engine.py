#!/usr/bin/env python3
"""
Engine facade tests
"""

import math

import pytest

from nevealdj.core.config import EngineConfiguration
from nevealdj.core.engine import DjEngine
from nevealdj.core.errors import NotFoundError, ValidationError
from nevealdj.core.models import TrackMetadataUpdate


@pytest.fixture
def engine(fake_backend, fake_analyzer):
    with DjEngine(EngineConfiguration(), backend=fake_backend, analyzer=fake_analyzer) as engine:
        yield engine


def test_ping(engine):
    assert engine.ping() == "pong"


def test_initial_state(engine):
    state = engine.get_state().to_dict()
    assert state["mixer"] == {"masterVolume": 1.0, "deckChannels": [1, 2, 3, 4, 5, 6]}
    assert [deck["id"] for deck in state["decks"]] == [1, 2, 3, 4, 5, 6]
    assert all(deck["loadedTrack"] is None for deck in state["decks"])


@pytest.mark.parametrize("deck_count", [0, 17])
def test_deck_count_is_validated(deck_count, fake_backend):
    with pytest.raises(ValueError):
        DjEngine(EngineConfiguration(deck_count=deck_count), backend=fake_backend)


def test_unknown_deck(engine):
    assert engine.get_deck(0) is None
    assert engine.get_deck(7) is None
    with pytest.raises(NotFoundError):
        engine.toggle_playback(7)
    with pytest.raises(NotFoundError):
        engine.set_volume(0, 0.5)


@pytest.mark.parametrize("value", [math.nan, math.inf, -math.inf, "loud"])
def test_non_finite_inputs_are_rejected(engine, value):
    with pytest.raises(ValidationError):
        engine.set_volume(1, value)
    with pytest.raises(ValidationError):
        engine.set_pitch(1, value)


def test_set_pitch_clamps(engine):
    assert engine.set_pitch(2, 180).pitch_percent == 100.0
    state = engine.set_pitch(2, -150)
    assert state.pitch_percent == -99.0
    assert state.pitch_muted


def test_load_track_validates_path(engine, tmp_path):
    with pytest.raises(ValidationError):
        engine.load_track(1, "")
    with pytest.raises(NotFoundError):
        engine.load_track(1, tmp_path / "missing.wav")


def test_load_track_refreshes_bpm(engine, write_click_track, fake_analyzer, fake_backend):
    path = write_click_track("deck_one.wav", seconds=2.0)
    state = engine.load_track(1, path)

    assert state.loaded_track == "deck_one.wav"
    assert state.bpm == 100.0
    assert not state.is_playing
    assert len(fake_analyzer.calls) == 1
    assert engine.get_track_metadata(path).bpm == 100.0

    assert engine.toggle_playback(1).is_playing
    assert not fake_backend.last_sink.paused


def test_load_without_analysis(fake_backend, fake_analyzer, write_click_track):
    config = EngineConfiguration(analyze_on_load=False)
    engine = DjEngine(config, backend=fake_backend, analyzer=fake_analyzer)
    state = engine.load_track(3, write_click_track("plain.wav", seconds=2.0))

    assert state.bpm is None
    assert fake_analyzer.calls == []


def test_failed_analysis_does_not_block_loading(engine, write_click_track, fake_analyzer):
    fake_analyzer.bpm = None
    state = engine.load_track(1, write_click_track("no_tempo.wav", seconds=2.0))
    assert state.loaded_track == "no_tempo.wav"
    assert state.bpm is None


def test_clear_deck(engine, write_click_track, fake_backend):
    engine.load_track(1, write_click_track("gone.wav", seconds=2.0))
    state = engine.clear_deck(1)
    assert state.loaded_track is None
    assert fake_backend.last_sink.stopped


def test_update_track_metadata(engine, write_click_track):
    path = write_click_track("tagged.wav", seconds=2.0)
    metadata = engine.update_track_metadata(path, TrackMetadataUpdate(title="Tagged", bpm=124.0))
    assert metadata.title == "Tagged"
    assert metadata.bpm == 124.0


def test_close_stops_every_sink(fake_backend, fake_analyzer, write_click_track):
    engine = DjEngine(EngineConfiguration(deck_count=2, analyze_on_load=False),
                      backend=fake_backend, analyzer=fake_analyzer)
    engine.load_track(1, write_click_track("a.wav", seconds=2.0))
    engine.load_track(2, write_click_track("b.wav", seconds=2.0))
    engine.close()

    assert all(sink.stopped for sink in fake_backend.sinks)
    assert all(deck.loaded_track is None for deck in engine.get_decks())
