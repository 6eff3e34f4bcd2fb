"""RIFF/WAVE encoding for synthesized audio.

Packs float sample buffers into 16-bit little-endian PCM WAV bytes and
reads them back.
"""

import io
import struct
import wave

import numpy as np

from ..errors import EncodingError
from .synthesizer import AudioBuffer

WAV_HEADER_SIZE = 44
BITS_PER_SAMPLE = 16
PCM_FORMAT_TAG = 1
PCM16_SCALE = 32767


def float_to_pcm16(samples: np.ndarray) -> np.ndarray:
    """Convert float samples to int16, clipping to [-1, 1] first."""
    clipped = np.clip(np.asarray(samples, dtype=np.float64), -1.0, 1.0)
    return np.round(clipped * PCM16_SCALE).astype("<i2")


def build_wav_header(sample_rate: int, channel_count: int, data_size: int) -> bytes:
    """Build the 44-byte canonical PCM WAV header."""
    block_align = channel_count * BITS_PER_SAMPLE // 8
    return struct.pack(
        "<4sI4s4sIHHIIHH4sI",
        b"RIFF",
        36 + data_size,
        b"WAVE",
        b"fmt ",
        16,
        PCM_FORMAT_TAG,
        channel_count,
        sample_rate,
        sample_rate * block_align,
        block_align,
        BITS_PER_SAMPLE,
        b"data",
        data_size,
    )


def encode_wav(buffer: AudioBuffer) -> bytes:
    """Encode an AudioBuffer as WAV bytes.

    Frames are interleaved in the order of ``buffer.channels``.

    Args:
        buffer: Audio to encode

    Returns:
        Complete WAV file contents

    Raises:
        EncodingError: If the channel arrays cannot be interleaved
    """
    try:
        frames = np.column_stack([float_to_pcm16(ch) for ch in buffer.channels])
    except ValueError as e:
        raise EncodingError(f"Cannot interleave channels: {e}") from e

    data = frames.astype("<i2").tobytes()
    return build_wav_header(buffer.sample_rate, buffer.channel_count, len(data)) + data


def decode_wav(data: bytes) -> AudioBuffer:
    """Decode 16-bit PCM WAV bytes into an AudioBuffer.

    Raises:
        EncodingError: If the data is not 16-bit PCM WAV
    """
    try:
        with wave.open(io.BytesIO(data), "rb") as wf:
            if wf.getsampwidth() != 2:
                raise EncodingError(f"Unsupported sample width: {wf.getsampwidth()}")
            channel_count = wf.getnchannels()
            sample_rate = wf.getframerate()
            raw = wf.readframes(wf.getnframes())
    except (wave.Error, EOFError) as e:
        raise EncodingError(f"Invalid WAV data: {e}") from e

    interleaved = np.frombuffer(raw, dtype="<i2").reshape(-1, channel_count)
    channels = [interleaved[:, i].astype(np.float64) / PCM16_SCALE for i in range(channel_count)]
    return AudioBuffer(sample_rate=sample_rate, channels=channels)


def pcm16_frames(data: bytes) -> tuple[bytes, int]:
    """Extract raw PCM frames and sample rate from WAV bytes.

    Returns:
        Tuple of (pcm_bytes, sample_rate)

    Raises:
        EncodingError: If the data is not valid WAV
    """
    try:
        with wave.open(io.BytesIO(data), "rb") as wf:
            return wf.readframes(wf.getnframes()), wf.getframerate()
    except (wave.Error, EOFError) as e:
        raise EncodingError(f"Invalid WAV data: {e}") from e


__all__ = [
    "PCM16_SCALE",
    "WAV_HEADER_SIZE",
    "build_wav_header",
    "decode_wav",
    "encode_wav",
    "float_to_pcm16",
    "pcm16_frames",
]
