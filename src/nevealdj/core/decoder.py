#!/usr/bin/env python3
"""
Packet-level access to audio containers
libsndfile (through soundfile) is tried first, audioread covers the rest
"""

import logging
import numpy as np
import soundfile as sf
import audioread
from pathlib import Path
from typing import Iterator, Optional, Union
from .config import AnalysisConstants
from .errors import DecodeError, NoAudioTrack

logger = logging.getLogger(__name__)


class StreamIOError(Exception):
    """Transient I/O condition; the stream is treated as ended"""


class PacketDecodeError(Exception):
    """A single packet could not be decoded; it can be skipped"""


class ResetRequired(Exception):
    """The decoder must be reset before decoding continues"""


class FormatReader:
    """Common interface of the container readers"""

    backend = "unknown"

    def __init__(self, path: Path, sample_rate: int, channels: int):
        self.path = path
        self.sample_rate = sample_rate
        self.channels = channels

    def next_packet(self):
        """Return the next packet, or None at end of stream"""
        raise NotImplementedError

    def decode(self, packet) -> np.ndarray:
        """Decode a packet into a (frames, channels) float32 array"""
        raise NotImplementedError

    def reset(self):
        """Reset decoder state; PCM readers keep none"""

    def close(self):
        pass

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False


class SoundFileReader(FormatReader):
    """Reads blocks of frames through libsndfile"""

    backend = "soundfile"

    def __init__(self, path: Path, packet_frames: int = AnalysisConstants.PACKET_FRAMES):
        self._file = sf.SoundFile(str(path), mode='r')
        super().__init__(path, self._file.samplerate, self._file.channels)
        self.packet_frames = packet_frames

    def next_packet(self) -> Optional[np.ndarray]:
        try:
            block = self._file.read(self.packet_frames, dtype='float32', always_2d=True)
        except sf.LibsndfileError as e:
            raise StreamIOError(str(e)) from e
        if len(block) == 0:
            return None
        return block

    def decode(self, packet: np.ndarray) -> np.ndarray:
        # libsndfile hands out PCM already
        return packet

    def close(self):
        self._file.close()


class AudioreadReader(FormatReader):
    """
    Reads 16-bit PCM buffers from whichever audioread backend is available

    Backends hand out fixed-size byte blocks that need not end on a frame
    boundary; the partial frame is carried into the next packet.
    """

    backend = "audioread"

    def __init__(self, path: Path, audio_file=None):
        self._file = audio_file if audio_file is not None else audioread.audio_open(str(path))
        super().__init__(path, int(self._file.samplerate), int(self._file.channels))
        self._buffers = iter(self._file)
        self._pending = b""

    def next_packet(self) -> Optional[bytes]:
        try:
            return next(self._buffers)
        except StopIteration:
            return None
        except OSError as e:
            raise StreamIOError(str(e)) from e
        except audioread.DecodeError as e:
            raise PacketDecodeError(str(e)) from e

    def decode(self, packet: bytes) -> np.ndarray:
        channels = max(self.channels, 1)
        frame_bytes = 2 * channels
        data = self._pending + bytes(packet)
        whole = len(data) - len(data) % frame_bytes
        self._pending = data[whole:]
        pcm = np.frombuffer(data[:whole], dtype='<i2').astype(np.float32) / 32768.0
        return pcm.reshape(-1, channels)

    def reset(self):
        self._pending = b""

    def close(self):
        self._file.close()


def _libsndfile_handles(extension: str) -> bool:
    """Whether the extension hint names a major format libsndfile declares"""
    if not extension:
        return False
    formats = sf.available_formats()
    hint = extension.lstrip('.').upper()
    aliases = {'AIF': 'AIFF', 'OGA': 'OGG', 'OPUS': 'OGG'}
    return hint in formats or aliases.get(hint) in formats


def probe(path: Union[str, Path]) -> FormatReader:
    """
    Open a container reader for a file
    The extension hint picks the first backend; content probing decides
    """
    path = Path(path)
    if _libsndfile_handles(path.suffix):
        try:
            reader = SoundFileReader(path)
        except sf.LibsndfileError as e:
            logger.debug("libsndfile could not open %s (%s), trying audioread", path.name, e)
        else:
            return _checked(reader)

    try:
        reader = AudioreadReader(path)
    except FileNotFoundError as e:
        raise DecodeError(f"File not found: {path}") from e
    except (audioread.NoBackendError, audioread.DecodeError, OSError) as e:
        raise DecodeError(f"Unsupported or unreadable audio file {path}: {e}") from e
    return _checked(reader)


def _checked(reader: FormatReader) -> FormatReader:
    if reader.channels <= 0:
        reader.close()
        raise NoAudioTrack(f"No audio track found in {reader.path}")
    return reader


def iter_frames(reader: FormatReader) -> Iterator[np.ndarray]:
    """
    Yield decoded (frames, channels) blocks until the stream ends

    End-of-stream I/O conditions stop cleanly, reset requests reset the
    decoder, undecodable packets are skipped. Anything else propagates.
    """
    skipped = 0
    while True:
        try:
            packet = reader.next_packet()
        except StreamIOError as e:
            logger.debug("Stream ended early for %s: %s", reader.path, e)
            break
        except ResetRequired:
            reader.reset()
            continue
        if packet is None:
            break

        try:
            frames = reader.decode(packet)
        except StreamIOError as e:
            logger.debug("Stream ended while decoding %s: %s", reader.path, e)
            break
        except PacketDecodeError as e:
            skipped += 1
            logger.debug("Skipping undecodable packet in %s: %s", reader.path, e)
            continue
        except ResetRequired:
            reader.reset()
            continue

        yield frames

    if skipped:
        logger.info("Skipped %d undecodable packets in %s", skipped, Path(reader.path).name)
