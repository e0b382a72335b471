#!/usr/bin/env python3
"""
Decoding and mono mixdown tests
"""

from pathlib import Path

import numpy as np
import pytest

from nevealdj.core.decoder import (
    AudioreadReader, FormatReader, PacketDecodeError, ResetRequired, StreamIOError, iter_frames, probe
)
from nevealdj.core.errors import DecodeError, InsufficientAudio, InvalidSampleRate
from nevealdj.core.mixdown import decode_mono_samples, downmix_to_mono, read_mono_samples

BAD_PACKET = object()


class ScriptedReader(FormatReader):
    """Replays a script of packets and per-packet failures"""

    def __init__(self, script, sample_rate=1000, channels=1):
        super().__init__(Path("scripted.raw"), sample_rate, channels)
        self.script = list(script)
        self.resets = 0
        self.closed = False

    def next_packet(self):
        if not self.script:
            return None
        item = self.script.pop(0)
        if isinstance(item, Exception):
            raise item
        return item

    def decode(self, packet):
        if packet is BAD_PACKET:
            raise PacketDecodeError("corrupt packet")
        return packet

    def reset(self):
        self.resets += 1

    def close(self):
        self.closed = True


def block(frames, value=1.0, channels=1):
    return np.full((frames, channels), value, dtype=np.float32)


def test_downmix_averages_channels():
    frames = np.array([[1.0, 0.0], [0.5, 0.5], [-1.0, 1.0]], dtype=np.float32)
    np.testing.assert_allclose(downmix_to_mono(frames), [0.5, 0.5, 0.0])


def test_downmix_passes_mono_through():
    mono = np.array([0.1, 0.2], dtype=np.float32)
    np.testing.assert_allclose(downmix_to_mono(mono), mono)


def test_packet_policy_skips_resets_and_stops_on_io_error():
    reader = ScriptedReader([
        block(600, 0.25),
        BAD_PACKET,
        ResetRequired(),
        block(600, 0.75),
        StreamIOError("unexpected end of file"),
        block(600, 9.0),
    ])
    blocks = list(iter_frames(reader))

    assert len(blocks) == 2
    assert reader.resets == 1
    # the block after the I/O error is never read
    assert len(reader.script) == 1


def test_reset_requested_while_decoding_continues():
    class ResetOnce(ScriptedReader):
        def decode(self, packet):
            if packet is BAD_PACKET:
                raise ResetRequired()
            return packet

    reader = ResetOnce([BAD_PACKET, block(10)])
    assert len(list(iter_frames(reader))) == 1
    assert reader.resets == 1


def test_read_mono_samples_caps_the_window():
    reader = ScriptedReader([block(600, 0.5, channels=2) for _ in range(10)], channels=2)
    buffer = read_mono_samples(reader, max_seconds=2)

    assert buffer.sample_rate == 1000
    assert len(buffer) == 2000
    # stops pulling once the cap is reached
    assert len(reader.script) == 6
    np.testing.assert_allclose(buffer.samples, 0.5)


def test_read_mono_samples_needs_one_second():
    reader = ScriptedReader([block(500)])
    with pytest.raises(InsufficientAudio):
        read_mono_samples(reader)


def test_read_mono_samples_rejects_invalid_sample_rate():
    reader = ScriptedReader([block(500)], sample_rate=0)
    with pytest.raises(InvalidSampleRate):
        read_mono_samples(reader)


def test_decode_mono_samples_from_stereo_wav(write_click_track):
    path = write_click_track("stereo.wav", seconds=3.0, channels=2)
    buffer = decode_mono_samples(path, max_seconds=2)

    assert buffer.sample_rate == 44100
    assert len(buffer) == 2 * 44100
    assert buffer.samples.dtype == np.float32


def test_decode_mono_samples_closes_the_reader():
    reader = ScriptedReader([block(1500)])
    buffer = decode_mono_samples("scripted.raw", opener=lambda path: reader)
    assert len(buffer) == 1500
    assert reader.closed


def test_probe_prefers_libsndfile_for_wav(write_click_track):
    path = write_click_track(seconds=1.0)
    with probe(path) as reader:
        assert reader.backend == "soundfile"
        assert reader.sample_rate == 44100
        assert reader.channels == 1


def test_unreadable_file_is_a_decode_error(tmp_path):
    path = tmp_path / "not_audio.wav"
    path.write_bytes(b"this is not a RIFF file at all" * 10)
    with pytest.raises(DecodeError):
        decode_mono_samples(path)


class BlockAudioFile:
    """audioread-style file yielding fixed-size byte blocks"""

    def __init__(self, pcm, samplerate, channels, block_bytes):
        self.samplerate = samplerate
        self.channels = channels
        data = pcm.astype('<i2').tobytes()
        self.blocks = [data[i:i + block_bytes] for i in range(0, len(data), block_bytes)]
        self.closed = False

    def __iter__(self):
        return iter(self.blocks)

    def close(self):
        self.closed = True


def test_audioread_blocks_split_mid_frame_are_reassembled():
    # 4096-byte blocks never end on a 6-channel int16 frame boundary
    frames, channels = 48000, 6
    pcm = (np.arange(frames * channels) % 2000 - 1000).astype(np.int16).reshape(frames, channels)
    audio_file = BlockAudioFile(pcm, 48000, channels, block_bytes=4096)

    with AudioreadReader(Path("surround.m4a"), audio_file=audio_file) as reader:
        decoded = np.concatenate(list(iter_frames(reader)))

    assert audio_file.closed
    assert decoded.shape == (frames, channels)
    np.testing.assert_allclose(decoded, pcm.astype(np.float32) / 32768.0)


def test_audioread_multichannel_file_is_analyzable():
    frames, channels = 48000, 6
    pcm = np.full((frames, channels), 16384, dtype=np.int16)
    reader = AudioreadReader(Path("surround.ogg"), audio_file=BlockAudioFile(pcm, 48000, channels, 8192))

    buffer = read_mono_samples(reader)
    assert len(buffer) == frames
    np.testing.assert_allclose(buffer.samples, 0.5)


def test_audioread_reset_drops_partial_frame():
    pcm = np.arange(8, dtype=np.int16).reshape(4, 2)
    reader = AudioreadReader(Path("stereo.mp3"), audio_file=BlockAudioFile(pcm, 44100, 2, 6))

    first = reader.decode(reader.next_packet())
    assert first.shape == (1, 2)
    reader.reset()
    # the two pending bytes are gone; the next 6-byte block decodes one frame
    assert reader.decode(reader.next_packet()).shape == (1, 2)
